"""Structured file-based audit logging.

One JSON object per line. Tokens are recorded as redacted (prefix...suffix),
never in the clear.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from balance_checker.security import redact_key


class AuditLog:
    """Append-only structured audit log with size rotation.

    With ``path=None`` events are still counted but never written, so
    callers don't have to branch on whether logging is enabled.
    """

    MAX_SIZE = 10 * 1024 * 1024  # 10 MB

    def __init__(self, path: Optional[Path]):
        self.path = path
        self._entries: list[dict] = []
        # The server logs from many handler threads
        self._lock = threading.Lock()

    def log(
        self,
        event: str,
        token: str = "",
        bucket: str = "",
        status: Optional[int] = None,
        latency_ms: float = 0.0,
        detail: str = "",
    ) -> None:
        entry: dict = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "event": event,
        }
        if token:
            entry["token"] = redact_key(token)
        if bucket:
            entry["bucket"] = bucket
        if status is not None:
            entry["status"] = status
        if latency_ms:
            entry["latency_ms"] = round(latency_ms, 2)
        if detail:
            entry["detail"] = detail
        with self._lock:
            self._entries.append(entry)

    def flush(self) -> None:
        """Append buffered entries to the log file, rotating if oversized."""
        with self._lock:
            entries, self._entries = self._entries, []
        if not entries or self.path is None:
            return
        # Refuse to write through symlinks
        if self.path.is_symlink():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists() and self.path.stat().st_size > self.MAX_SIZE:
            rotated = self.path.with_suffix(".log.1")
            if rotated.exists():
                rotated.unlink()
            self.path.rename(rotated)
        with self.path.open("a") as f:
            for entry in entries:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")

    @property
    def entry_count(self) -> int:
        return len(self._entries)
