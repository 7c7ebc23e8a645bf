"""CLI entry point — python -m balance_checker.

Usage:
    python -m balance_checker --serve
    python -m balance_checker --serve --port 8080 --probe
    python -m balance_checker --tokens tokens.txt --threshold 1
    python -m balance_checker --tokens - --export valid --separator comma < tokens.txt
    python -m balance_checker --tokens tokens.txt --proxy http://localhost:8000 --json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console

from balance_checker.classifier import parse_threshold
from balance_checker.config import DEFAULT_THRESHOLD, Settings
from balance_checker.errors import EmptyInputError, wrap_main

_EXPORT_BUCKETS = {"valid": "valid", "zero": "zero_balance", "invalid": "invalid"}


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="balance_checker",
        description="Check SiliconFlow API tokens for validity and remaining balance.",
    )
    p.add_argument("tokens", nargs="*", help="Tokens to check (comma separated is fine)")
    p.add_argument("--tokens", dest="token_file", metavar="FILE",
                   help="Read tokens from FILE, one per line or comma separated ('-' for stdin)")
    p.add_argument("--threshold", default=str(DEFAULT_THRESHOLD),
                   help=f"Minimum balance for the valid bucket (default: {DEFAULT_THRESHOLD})")
    p.add_argument("--serve", action="store_true", help="Run the web UI and /api/check-token proxy")
    p.add_argument("--host", help="Bind address for --serve (default: CHECKER_HOST or 0.0.0.0)")
    p.add_argument("--port", type=int, help="Port for --serve (default: CHECKER_PORT or 8000)")
    p.add_argument("--proxy", metavar="URL", help="Check through a running checker server instead of upstream")
    p.add_argument("--probe", action="store_true", default=None,
                   help="Send a tiny chat completion before the balance lookup")
    p.add_argument("--pipelined", action="store_true",
                   help="Keep 20 checks in flight continuously instead of batch by batch")
    p.add_argument("--env-file", type=Path, help="Load settings from a .env file")
    p.add_argument("--audit-log", type=Path, help="Append structured check events to this file")
    p.add_argument("--timeout", type=float, help="HTTP timeout in seconds (default: 30)")
    p.add_argument("--export", choices=sorted(_EXPORT_BUCKETS), help="Print only this bucket's tokens")
    p.add_argument("--separator", choices=["newline", "comma"], default="newline",
                   help="Separator for --export (default: newline)")
    p.add_argument("--json", action="store_true", help="Print JSON results to stdout")
    p.add_argument("--output", type=Path, help="Write JSON results to file")
    p.add_argument("--force-insecure-output", action="store_true", help="Skip file permission check")
    p.add_argument("--quiet", "-q", action="store_true", help="Suppress table output, only exit code")
    p.add_argument("--version", action="store_true", help="Show version and exit")
    return p


def _read_input(args: argparse.Namespace) -> str:
    parts = list(args.tokens)
    if args.token_file == "-":
        parts.append(sys.stdin.read())
    elif args.token_file:
        parts.append(Path(args.token_file).read_text(encoding="utf-8"))
    return "\n".join(parts)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    console = Console(quiet=args.quiet)

    if args.version:
        from balance_checker import __version__
        console.print(f"balance_checker {__version__}")
        return 0

    settings = Settings.load(args.env_file).override(
        host=args.host, port=args.port, timeout=args.timeout,
        probe=args.probe, audit_log=args.audit_log,
    )

    if args.serve:
        from balance_checker.server import serve
        return serve(settings, console)

    raw = _read_input(args)
    if not raw.strip():
        raise EmptyInputError("Please enter at least one token (arguments, --tokens FILE or --tokens -)")

    from balance_checker.checker import check_tokens
    from balance_checker.output import export_tokens, render_buckets, write_json

    threshold = parse_threshold(args.threshold)
    # Progress goes to stderr so --json / --export stay pipeable
    status_console = Console(stderr=True, quiet=args.quiet or args.json or bool(args.export))
    with status_console.status("Checking...") as status:
        buckets = asyncio.run(check_tokens(
            raw, settings, threshold,
            proxy_url=args.proxy,
            on_progress=lambda done, total: status.update(f"Checking... ({done}/{total})"),
            pipelined=args.pipelined,
        ))

    if args.export:
        print(export_tokens(buckets, _EXPORT_BUCKETS[args.export], args.separator))
    elif args.json:
        print(json.dumps(buckets.to_dict(), indent=2, ensure_ascii=False))
    else:
        render_buckets(buckets, console)

    if args.output:
        if not write_json(buckets, args.output, force_insecure=args.force_insecure_output, console=console):
            return 2

    return 0 if buckets.checked == len(buckets.valid) else 1


def run() -> None:
    sys.exit(wrap_main(main, "checking tokens"))


if __name__ == "__main__":
    run()
