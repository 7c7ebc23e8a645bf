"""Batch workflow: parse → dispatch → classify.

Tokens can be checked in-process (``UpstreamValidator``) or through a
running checker server (``ProxyChecker``), the same way the browser page
does it.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Optional

import httpx

from balance_checker.audit_log import AuditLog
from balance_checker.classifier import add_records, bucket_for, sort_valid
from balance_checker.config import CONCURRENCY_LIMIT, Settings
from balance_checker.dispatcher import CheckFn, ProgressFn, dispatch
from balance_checker.errors import EmptyInputError
from balance_checker.models import CredentialRecord, ResultBuckets
from balance_checker.parser import parse_tokens
from balance_checker.security import suppress_credential_logging
from balance_checker.validator import UpstreamValidator

CHECK_ENDPOINT = "/api/check-token"


class ProxyChecker:
    """Client for POST /api/check-token on a checker server."""

    def __init__(self, client: httpx.AsyncClient, server_url: str):
        self.client = client
        self.url = server_url.rstrip("/") + CHECK_ENDPOINT

    async def check(self, token: str) -> CredentialRecord:
        try:
            resp = await self.client.post(self.url, json={"token": token})
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            return CredentialRecord.failed(token, str(exc) or type(exc).__name__)
        # Rejections come back with the upstream status, still as JSON
        if not isinstance(data, dict):
            return CredentialRecord.failed(token, f"unexpected response: {data!r}")
        return CredentialRecord.from_response(token, data)


async def run_check(
    raw: str,
    check: CheckFn,
    threshold: Decimal,
    limit: int = CONCURRENCY_LIMIT,
    on_progress: Optional[ProgressFn] = None,
    audit_log: Optional[AuditLog] = None,
    pipelined: bool = False,
) -> ResultBuckets:
    """Check every distinct token in `raw`. Raises EmptyInputError before any request."""
    parsed = parse_tokens(raw)
    if not parsed:
        raise EmptyInputError()

    alog = audit_log or AuditLog(None)
    alog.log("check_start", detail=f"{len(parsed.tokens)} tokens, {len(parsed.duplicates)} duplicates")
    buckets = ResultBuckets(threshold=threshold, duplicates=parsed.duplicates)

    def _on_batch(records: list[CredentialRecord]) -> None:
        add_records(buckets, records)
        for r in records:
            alog.log("check", token=r.token, bucket=bucket_for(r, threshold), status=r.status)

    start = time.monotonic()
    await dispatch(parsed.tokens, check, limit=limit, on_progress=on_progress,
                   on_batch=_on_batch, pipelined=pipelined)
    sort_valid(buckets)

    alog.log("check_end", latency_ms=(time.monotonic() - start) * 1000,
             detail=" ".join(f"{k}:{v}" for k, v in buckets.counts().items()))
    alog.flush()
    return buckets


async def check_tokens(
    raw: str,
    settings: Settings,
    threshold: Decimal,
    proxy_url: Optional[str] = None,
    on_progress: Optional[ProgressFn] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    pipelined: bool = False,
) -> ResultBuckets:
    """run_check() with a client built from settings, direct or via a proxy server."""
    suppress_credential_logging()
    async with httpx.AsyncClient(timeout=settings.timeout, max_redirects=0, transport=transport) as client:
        if proxy_url:
            check = ProxyChecker(client, proxy_url).check
        else:
            check = UpstreamValidator(client, settings.base_url, settings.probe).validate
        return await run_check(
            raw, check, threshold,
            on_progress=on_progress,
            audit_log=AuditLog(settings.audit_log),
            pipelined=pipelined,
        )
