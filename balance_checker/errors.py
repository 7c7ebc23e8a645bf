"""Checker exceptions and plain-English error messages for the CLI."""

from __future__ import annotations

from typing import Callable

from rich.console import Console


class CheckerError(Exception):
    """Base class for errors the checker raises on purpose."""


class EmptyInputError(CheckerError):
    """No tokens were found in the input, so nothing was checked."""

    def __init__(self, message: str = "Please enter at least one token") -> None:
        super().__init__(message)


class ConfigError(CheckerError):
    """A setting from the environment or .env file could not be parsed."""


# Maps exception type names → (friendly message, recovery steps)
_ERRORS: dict[str, tuple[str, list[str]]] = {
    "EmptyInputError": (
        "No tokens were found in your input.",
        [
            "Put one token per line, or separate them with commas",
            "Example: balance-checker --tokens tokens.txt",
        ],
    ),
    "ConfigError": (
        "One of the checker settings is not valid.",
        [
            "Check CHECKER_PORT / CHECKER_TIMEOUT in your environment or .env file",
            "Unset the variable to fall back to the default",
        ],
    ),
    "FileNotFoundError": (
        "We couldn't find the token file.",
        [
            "Double-check the path you passed to --tokens",
            "Use --tokens - to read tokens from standard input",
        ],
    ),
    "PermissionError": (
        "We don't have permission to access that file.",
        [
            "Make sure you own the file: ls -la <file>",
            "Run: chmod 600 <file>  (makes it readable by you only)",
        ],
    ),
    "ConnectError": (
        "We couldn't reach the service.",
        [
            "Check your internet connection",
            "If you used --proxy, make sure the checker server is running",
        ],
    ),
    "TimeoutError": (
        "The request took too long and timed out.",
        [
            "The service might be temporarily slow — try again",
            "Try increasing the timeout: --timeout 60",
        ],
    ),
    "OSError": (
        "The operating system refused the request.",
        [
            "If you are starting the server, the port may already be in use",
            "Pick another one: balance-checker --serve --port 8080",
        ],
    ),
    "KeyboardInterrupt": (
        "You stopped the process — that's totally fine!",
        ["Just run the command again whenever you're ready."],
    ),
}

_ERRORS["TimeoutException"] = _ERRORS["TimeoutError"]


def friendly_error(exc: BaseException, context: str = "") -> str:
    """Return a user-friendly error message with recovery steps."""
    etype = type(exc).__name__
    match = None
    # Walk the MRO so subclasses (e.g. httpx.ConnectTimeout → TimeoutException) still match
    for base in type(exc).__mro__:
        match = _ERRORS.get(base.__name__)
        if match:
            break

    if match:
        msg, steps = match
    else:
        msg = "Something unexpected went wrong."
        steps = ["Try running the command again"]

    lines = [f"\n  {msg}"]
    if context:
        lines.append(f"     (while {context})")
    lines.append("")
    lines.append("  Let's fix it:")
    for i, step in enumerate(steps, 1):
        lines.append(f"    {i}. {step}")
    lines.append("")
    lines.append(f"     Technical detail: {etype}: {exc}")
    lines.append("")
    return "\n".join(lines)


def wrap_main(func: Callable[[], int], context: str = "running the checker",
              console: Console | None = None) -> int:
    """Run func(), turning exceptions into friendly messages. Returns exit code."""
    console = console or Console(stderr=True)
    try:
        return func()
    except KeyboardInterrupt:
        console.print(friendly_error(KeyboardInterrupt(), context), markup=False)
        return 130
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    except CheckerError as e:
        console.print(friendly_error(e, context), markup=False)
        return 2
    except Exception as e:
        console.print(friendly_error(e, context), markup=False)
        return 1
