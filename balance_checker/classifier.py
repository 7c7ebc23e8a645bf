"""Bucket classification and sorting."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from balance_checker.models import Bucket, CredentialRecord, ResultBuckets

# What the upstream answers when a key works but has nothing left to spend
EXHAUSTED_MESSAGE = "Sorry, your account balance is insufficient"


def parse_threshold(text: Optional[str]) -> Decimal:
    """Threshold from UI/CLI text; anything unparseable or non-finite means 0."""
    if text is None:
        return Decimal(0)
    try:
        value = Decimal(str(text).strip())
    except (InvalidOperation, ValueError):
        return Decimal(0)
    return value if value.is_finite() else Decimal(0)


def bucket_for(record: CredentialRecord, threshold: Decimal) -> Bucket:
    if not record.is_valid:
        if record.message and EXHAUSTED_MESSAGE in record.message:
            return "zero_balance"
        return "invalid"
    if record.balance is not None and record.balance >= threshold:
        return "valid"
    return "zero_balance"


def add_records(buckets: ResultBuckets, records: Iterable[CredentialRecord]) -> None:
    """Append one settled batch. Exhausted-balance rejections are shown with balance 0."""
    for record in records:
        name = bucket_for(record, buckets.threshold)
        if name == "zero_balance" and not record.is_valid:
            record = CredentialRecord(
                token=record.token, is_valid=False, balance=Decimal(0),
                message=record.message, status=record.status,
            )
        buckets.bucket(name).append(record)
        buckets.completed += 1


def sort_valid(buckets: ResultBuckets) -> None:
    """Highest balance first; stable for ties."""
    buckets.valid.sort(key=lambda r: r.balance if r.balance is not None else Decimal(0), reverse=True)


def classify(
    records: Iterable[CredentialRecord],
    threshold: Decimal,
    duplicates: Optional[list[str]] = None,
) -> ResultBuckets:
    records = list(records)
    buckets = ResultBuckets(threshold=threshold, duplicates=list(duplicates or []))
    add_records(buckets, records)
    sort_valid(buckets)
    return buckets
