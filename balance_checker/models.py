"""Data models for credential checks.

A `CredentialRecord` is created once per distinct token when its check
settles and never changes afterwards. `ResultBuckets` is the aggregation
struct handed through the batch pipeline; rendering only ever reads it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Literal, Optional

Bucket = Literal["valid", "zero_balance", "invalid"]

BUCKETS: tuple[str, ...] = Bucket.__args__  # type: ignore[attr-defined]


@dataclass(frozen=True)
class CredentialRecord:
    """Outcome of checking one token against the upstream."""

    token: str = field(repr=False)
    is_valid: bool
    balance: Optional[Decimal] = None
    message: Optional[str] = None
    status: Optional[int] = None

    @classmethod
    def failed(cls, token: str, detail: object) -> "CredentialRecord":
        """Record for a check that never got an upstream response."""
        return cls(token=token, is_valid=False, message=f"request failed: {detail}")

    def to_response(self) -> dict:
        """Wire form served by POST /api/check-token (no token echo)."""
        if self.is_valid:
            return {"isValid": True, "balance": str(self.balance)}
        payload: dict = {"isValid": False, "message": self.message}
        if self.status is not None:
            payload["status"] = self.status
        return payload

    @classmethod
    def from_response(cls, token: str, data: dict) -> "CredentialRecord":
        """Inverse of to_response(), tolerant of a sloppy proxy."""
        if data.get("isValid"):
            balance = parse_balance(data.get("balance"))
            if balance is None:
                return cls.failed(token, f"non-numeric balance {data.get('balance')!r}")
            return cls(token=token, is_valid=True, balance=balance)
        status = data.get("status")
        return cls(
            token=token,
            is_valid=False,
            message=str(data.get("message") or data.get("error") or "unknown error"),
            status=status if isinstance(status, int) else None,
        )

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "is_valid": self.is_valid,
            "balance": str(self.balance) if self.balance is not None else None,
            "message": self.message,
            "status": self.status,
        }


def parse_balance(value: object) -> Optional[Decimal]:
    """Decimal from an upstream balance value, None when not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


@dataclass(frozen=True)
class ParsedInput:
    tokens: list[str]
    duplicates: list[str]

    def __bool__(self) -> bool:
        return bool(self.tokens)


@dataclass
class ResultBuckets:
    """Three disjoint outcome buckets plus the informational duplicate list."""

    threshold: Decimal
    duplicates: list[str] = field(default_factory=list)
    valid: list[CredentialRecord] = field(default_factory=list)
    zero_balance: list[CredentialRecord] = field(default_factory=list)
    invalid: list[CredentialRecord] = field(default_factory=list)
    completed: int = 0

    def bucket(self, name: Bucket) -> list[CredentialRecord]:
        if name not in BUCKETS:
            raise ValueError(f"Unknown bucket: {name}. Available: {list(BUCKETS)}")
        return getattr(self, name)

    def tokens(self, name: Bucket) -> list[str]:
        return [r.token for r in self.bucket(name)]

    def export(self, name: Bucket, separator: str = "\n") -> str:
        """Join a bucket's tokens for the clipboard / stdout."""
        return separator.join(self.tokens(name))

    @property
    def checked(self) -> int:
        return len(self.valid) + len(self.zero_balance) + len(self.invalid)

    def counts(self) -> dict[str, int]:
        return {
            "valid": len(self.valid),
            "zero_balance": len(self.zero_balance),
            "invalid": len(self.invalid),
            "duplicates": len(self.duplicates),
        }

    def to_dict(self) -> dict:
        return {
            "threshold": str(self.threshold),
            "counts": self.counts(),
            "valid": [r.to_dict() for r in self.valid],
            "zero_balance": [r.to_dict() for r in self.zero_balance],
            "invalid": [r.to_dict() for r in self.invalid],
            "duplicates": list(self.duplicates),
        }
