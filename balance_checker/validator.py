"""Per-credential validation against the SiliconFlow API.

One GET to /v1/user/info decides validity (HTTP success is the only
signal) and yields the balance. Probe mode first spends a tiny chat
completion, which is how the upstream surfaces an exhausted balance.
No retries either way. Anything that goes wrong before an upstream
response arrives becomes a ``request failed:`` record.
"""

from __future__ import annotations

from typing import Optional

import httpx

from balance_checker.config import DEFAULT_BASE_URL, DEFAULT_TIMEOUT
from balance_checker.models import CredentialRecord, parse_balance

USER_INFO_PATH = "/v1/user/info"
CHAT_COMPLETIONS_PATH = "/v1/chat/completions"

PROBE_MODEL = "Qwen/Qwen2.5-7B-Instruct"


class AccountInfoError(ValueError):
    """Upstream said yes but the account-info payload has no usable balance."""


def _error_message(resp: httpx.Response) -> str:
    """Raw upstream error body, or a generic line when it can't be read."""
    try:
        body = resp.text.strip()
    except (httpx.ResponseNotRead, UnicodeDecodeError, LookupError):
        body = ""
    return body or f"upstream rejected credential (HTTP {resp.status_code})"


def _probe_message(resp: httpx.Response) -> str:
    """Chat-completion errors carry a JSON `message`; fall back to the raw body."""
    try:
        data = resp.json()
    except ValueError:
        return _error_message(resp)
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return _error_message(resp)


def _total_balance(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError as exc:
        raise AccountInfoError(f"account info is not JSON: {exc}") from exc
    info = data.get("data") if isinstance(data, dict) else None
    raw = info.get("totalBalance") if isinstance(info, dict) else None
    if parse_balance(raw) is None:
        raise AccountInfoError(f"account info has no numeric totalBalance: {raw!r}")
    return str(raw).strip()


class UpstreamValidator:
    """Checks tokens with a shared httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient, base_url: str = DEFAULT_BASE_URL,
                 probe: bool = False):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.probe = probe

    async def validate(self, token: str) -> CredentialRecord:
        """Full check: optional probe → balance lookup → CredentialRecord."""
        try:
            if self.probe:
                rejected = await self._probe(token)
                if rejected is not None:
                    return rejected
            return await self._balance(token)
        except Exception as exc:
            # httpx errors, bad account info, or a token that can't be sent as a header
            return CredentialRecord.failed(token, str(exc) or type(exc).__name__)

    async def _balance(self, token: str) -> CredentialRecord:
        resp = await self.client.get(
            self.base_url + USER_INFO_PATH,
            headers={"Authorization": f"Bearer {token}"},
        )
        if not resp.is_success:
            return CredentialRecord(
                token=token, is_valid=False,
                message=_error_message(resp), status=resp.status_code,
            )
        return CredentialRecord(
            token=token, is_valid=True, balance=parse_balance(_total_balance(resp)),
        )

    async def _probe(self, token: str) -> Optional[CredentialRecord]:
        """None when the completion went through, else the rejection record."""
        resp = await self.client.post(
            self.base_url + CHAT_COMPLETIONS_PATH,
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
            json={
                "model": PROBE_MODEL,
                "messages": [{"role": "user", "content": "hi"}],
                "max_tokens": 100,
                "stream": False,
            },
        )
        if resp.is_success:
            return None
        return CredentialRecord(
            token=token, is_valid=False,
            message=_probe_message(resp), status=resp.status_code,
        )


async def check_token(
    token: str,
    base_url: str = DEFAULT_BASE_URL,
    probe: bool = False,
    timeout: float = DEFAULT_TIMEOUT,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> CredentialRecord:
    """One-shot check with its own client — what each proxy request runs."""
    async with httpx.AsyncClient(timeout=timeout, max_redirects=0, transport=transport) as client:
        return await UpstreamValidator(client, base_url, probe).validate(token)
