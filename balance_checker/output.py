"""Output formatting — Rich tables per bucket, summary line, JSON export.

Everything here is a projection of a finished ResultBuckets.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from balance_checker.models import Bucket, ResultBuckets
from balance_checker.security import check_output_permissions

SEPARATORS = {"newline": "\n", "comma": ","}


def _balance_table(title: str, records: list, style: str) -> Table:
    table = Table(title=title, title_style=style, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Token", style="cyan", overflow="fold")
    table.add_column("Balance", justify="right")
    for i, r in enumerate(records, 1):
        table.add_row(str(i), Text(r.token), str(r.balance))
    return table


def render_buckets(buckets: ResultBuckets, console: Optional[Console] = None) -> None:
    """Print every non-empty bucket, duplicates, then the summary line."""
    console = console or Console()
    if buckets.valid:
        console.print(_balance_table(f"Valid (balance ≥ {buckets.threshold})", buckets.valid, "bold green"))
    if buckets.zero_balance:
        console.print(_balance_table("Zero / low balance", buckets.zero_balance, "bold yellow"))
    if buckets.invalid:
        table = Table(title="Invalid", title_style="bold red", show_lines=True)
        table.add_column("Token", style="cyan", overflow="fold")
        table.add_column("Status", justify="right")
        table.add_column("Message", style="red", overflow="fold")
        for r in buckets.invalid:
            table.add_row(Text(r.token), str(r.status or "—"), Text(r.message or ""))
        console.print(table)
    if buckets.duplicates:
        console.print(f"\n  [magenta]{len(buckets.duplicates)} duplicate token(s), each checked once:[/magenta]")
        for token in buckets.duplicates:
            console.print(Text(f"    {token}"))
    render_summary(buckets, console)


def render_summary(buckets: ResultBuckets, console: Optional[Console] = None) -> None:
    console = console or Console()
    c = buckets.counts()
    valid_c = f"[green]{c['valid']}[/green]" if c["valid"] else "0"
    zero_c = f"[yellow]{c['zero_balance']}[/yellow]" if c["zero_balance"] else "0"
    invalid_c = f"[red]{c['invalid']}[/red]" if c["invalid"] else "0"
    console.print()
    console.print(f"  [bold]Summary:[/bold] {buckets.checked} tokens — {valid_c} valid, "
                  f"{zero_c} zero/low balance, {invalid_c} invalid")
    if c["duplicates"]:
        console.print(f"  [dim]{c['duplicates']} duplicates removed[/dim]")
    console.print()


def export_tokens(buckets: ResultBuckets, bucket: Bucket, separator: str = "newline") -> str:
    return buckets.export(bucket, SEPARATORS.get(separator, separator))


def write_json(
    buckets: ResultBuckets,
    path: Path,
    force_insecure: bool = False,
    console: Optional[Console] = None,
) -> bool:
    """Write results (raw tokens included) as JSON. Returns True on success."""
    console = console or Console(stderr=True)
    if not check_output_permissions(path, force=force_insecure):
        console.print(
            f"[red]Refusing to write to {path} — world-readable. "
            f"Use --force-insecure-output to override.[/red]"
        )
        return False
    path.write_text(json.dumps(buckets.to_dict(), indent=2, ensure_ascii=False) + "\n")
    path.chmod(0o600)
    console.print(f"[green]Results written to {path}[/green]")
    return True
