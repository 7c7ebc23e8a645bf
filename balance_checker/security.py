"""Security utilities — redaction, file permission checks, logging suppression.

Raw tokens only ever leave the process in the places the user asked for
them (export, JSON results). Console lines and the audit log carry a
redacted form.
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path


def suppress_credential_logging() -> None:
    """Keep httpx/httpcore from logging Authorization headers at DEBUG level."""
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def redact_key(key: str) -> str:
    """prefix...suffix, or all stars for keys too short to show any of."""
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def check_output_permissions(path: Path, force: bool = False) -> bool:
    """Return True if safe to write results containing raw tokens.

    Refuses symlinks outright; refuses world-readable targets (or a new
    file in a world-readable directory) unless forced.
    """
    if path.is_symlink():
        return False
    if not path.exists():
        parent = path.parent
        if parent.exists() and os.stat(parent).st_mode & stat.S_IROTH:
            return force
        return True
    if os.stat(path).st_mode & stat.S_IROTH:
        return force
    return True
