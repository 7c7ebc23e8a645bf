"""Bounded-concurrency dispatch of per-token checks.

Default policy is batch-barrier: slice the tokens into batches of at most
`limit`, gather each batch, then move on. `pipelined=True` swaps that for a
semaphore pool so a slow token doesn't hold back the next batch.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from balance_checker.config import CONCURRENCY_LIMIT
from balance_checker.models import CredentialRecord

CheckFn = Callable[[str], Awaitable[CredentialRecord]]
ProgressFn = Callable[[int, int], None]
BatchFn = Callable[[list[CredentialRecord]], None]


def batches(tokens: list[str], size: int) -> list[list[str]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [tokens[i:i + size] for i in range(0, len(tokens), size)]


def _settle(token: str, outcome: object) -> CredentialRecord:
    """A check that raised still produces a record for its token."""
    if isinstance(outcome, BaseException):
        return CredentialRecord.failed(token, f"{type(outcome).__name__}: {outcome}")
    return outcome  # type: ignore[return-value]


async def dispatch(
    tokens: list[str],
    check: CheckFn,
    limit: int = CONCURRENCY_LIMIT,
    on_progress: Optional[ProgressFn] = None,
    on_batch: Optional[BatchFn] = None,
    pipelined: bool = False,
) -> list[CredentialRecord]:
    """Run `check` once per token, at most `limit` in flight. Returns records in input order."""
    total = len(tokens)
    completed = 0

    async def _tracked(token: str) -> CredentialRecord:
        nonlocal completed
        try:
            return await check(token)
        finally:
            completed += 1
            if on_progress:
                on_progress(completed, total)

    if pipelined:
        sem = asyncio.Semaphore(limit)

        async def _throttled(token: str) -> CredentialRecord:
            async with sem:
                return await _tracked(token)

        raw = await asyncio.gather(*(_throttled(t) for t in tokens), return_exceptions=True)
        records = [_settle(t, r) for t, r in zip(tokens, raw)]
        if on_batch and records:
            on_batch(records)
        return records

    records: list[CredentialRecord] = []
    for chunk in batches(tokens, limit):
        raw = await asyncio.gather(*(_tracked(t) for t in chunk), return_exceptions=True)
        settled = [_settle(t, r) for t, r in zip(chunk, raw)]
        if on_batch:
            on_batch(settled)
        records.extend(settled)
    return records
