"""Runtime settings from the environment, with an optional .env file underneath."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values

from balance_checker.errors import ConfigError

DEFAULT_BASE_URL = "https://api.siliconflow.cn"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
DEFAULT_TIMEOUT = 30.0

# Checks in flight at once
CONCURRENCY_LIMIT = 20

# Pre-filled in the UI threshold box
DEFAULT_THRESHOLD = Decimal("0.5")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    base_url: str = DEFAULT_BASE_URL
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    probe: bool = False
    audit_log: Optional[Path] = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Optional[str]]) -> "Settings":
        def get(name: str) -> Optional[str]:
            value = values.get(name)
            return value.strip() if value and value.strip() else None

        port = get("CHECKER_PORT")
        timeout = get("CHECKER_TIMEOUT")
        try:
            port_num = int(port) if port else DEFAULT_PORT
        except ValueError:
            raise ConfigError(f"CHECKER_PORT must be an integer, got {port!r}") from None
        try:
            timeout_num = float(timeout) if timeout else DEFAULT_TIMEOUT
        except ValueError:
            raise ConfigError(f"CHECKER_TIMEOUT must be a number, got {timeout!r}") from None
        if not 0 <= port_num <= 65535:
            raise ConfigError(f"CHECKER_PORT out of range: {port_num}")
        if timeout_num <= 0:
            raise ConfigError(f"CHECKER_TIMEOUT must be positive, got {timeout_num}")

        audit_log = get("CHECKER_AUDIT_LOG")
        return cls(
            base_url=(get("SILICONFLOW_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            host=get("CHECKER_HOST") or DEFAULT_HOST,
            port=port_num,
            timeout=timeout_num,
            probe=(get("CHECKER_PROBE") or "").lower() in _TRUTHY,
            audit_log=Path(audit_log) if audit_log else None,
        )

    @classmethod
    def load(cls, env_file: Optional[Path] = None) -> "Settings":
        """Process environment wins over the .env file."""
        values: dict[str, Optional[str]] = {}
        if env_file is not None:
            if not env_file.is_file():
                raise ConfigError(f"Env file not found: {env_file}")
            values.update(dotenv_values(env_file))
        values.update(os.environ)
        return cls.from_mapping(values)

    def override(self, **changes: object) -> "Settings":
        """Apply CLI overrides, ignoring flags that were not given."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
