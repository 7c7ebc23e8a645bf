"""Validation proxy — POST /api/check-token plus the inline HTML page."""

from __future__ import annotations

import asyncio
import json
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional

import httpx
from rich.console import Console
from rich.markup import escape

from balance_checker.audit_log import AuditLog
from balance_checker.config import Settings
from balance_checker.page import render_page
from balance_checker.security import redact_key, suppress_credential_logging
from balance_checker.validator import check_token

CHECK_PATH = "/api/check-token"


class CheckServer(ThreadingHTTPServer):
    """Threaded HTTP server carrying the settings each handler needs."""

    daemon_threads = True

    def __init__(
        self,
        settings: Settings,
        console: Optional[Console] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.console = console or Console(quiet=True)
        self.transport = transport
        self.audit_log = AuditLog(settings.audit_log)
        self.page = render_page().encode()
        super().__init__((settings.host, settings.port), Handler)


class Handler(BaseHTTPRequestHandler):
    server: CheckServer

    def log_message(self, *_a: object) -> None:
        pass

    def _sec_headers(self) -> None:
        self.send_header("X-Content-Type-Options", "nosniff")
        self.send_header("Referrer-Policy", "no-referrer")

    def _json(self, data: dict, code: int = 200) -> None:
        body = json.dumps(data, ensure_ascii=False).encode()
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self._sec_headers()
        self.end_headers()
        self.wfile.write(body)

    def _html(self) -> None:
        body = self.server.page
        self.send_response(200)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self._sec_headers()
        self.end_headers()
        self.wfile.write(body)

    def _text(self, text: str, code: int) -> None:
        body = text.encode()
        self.send_response(code)
        self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self._sec_headers()
        self.end_headers()
        self.wfile.write(body)

    def _read_body(self) -> bytes:
        """Raises ValueError on a non-integer or negative Content-Length."""
        length = int(self.headers.get("Content-Length", 0) or 0)
        if length < 0:
            raise ValueError(f"negative Content-Length: {length}")
        return self.rfile.read(length) if length else b""

    def do_GET(self) -> None:
        if self.path.split("?")[0] == CHECK_PATH:
            self._text("Method not allowed", 405)
        else:
            self._html()

    def do_POST(self) -> None:
        if self.path.split("?")[0] != CHECK_PATH:
            self._html()
            return
        try:
            body = self._read_body()
        except ValueError as exc:
            self._json({"error": f"Invalid Content-Length: {exc}"}, 400)
            return
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            self._json({"error": f"Invalid JSON: {exc}"}, 400)
            return
        token = data.get("token") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token.strip():
            self._json({"error": "Body must be {\"token\": \"<credential>\"}"}, 400)
            return
        self._check(token.strip())

    def _check(self, token: str) -> None:
        settings = self.server.settings
        start = time.monotonic()
        record = asyncio.run(check_token(
            token,
            base_url=settings.base_url,
            probe=settings.probe,
            timeout=settings.timeout,
            transport=self.server.transport,
        ))
        latency = (time.monotonic() - start) * 1000

        alog = self.server.audit_log
        alog.log("check", token=token, status=record.status, latency_ms=latency,
                 detail="valid" if record.is_valid else "rejected")
        alog.flush()
        if record.is_valid:
            self.server.console.print(f"  [green]✓[/green] {redact_key(token)} balance {record.balance}")
        else:
            self.server.console.print(f"  [red]✗[/red] {redact_key(token)} {escape(record.message or '')}")

        # Explicit upstream rejections keep the upstream status code
        self._json(record.to_response(), record.status or 200)


def serve(settings: Settings, console: Optional[Console] = None) -> int:
    suppress_credential_logging()
    console = console or Console()
    server = CheckServer(settings, console=console)
    server.audit_log.log("serve_start", detail=f"{settings.host}:{settings.port} upstream {settings.base_url}")
    server.audit_log.flush()

    host = "localhost" if settings.host in ("0.0.0.0", "") else settings.host
    console.print("\n  [bold]SiliconFlow Token Balance Checker[/bold]")
    console.print("  ────────────────────────────────")
    console.print(f"  Open in your browser: http://{host}:{server.server_address[1]}")
    if settings.probe:
        console.print("  [dim]probe mode: chat completion before balance lookup[/dim]")
    console.print("  Press Ctrl+C to stop\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        console.print("\n  Server stopped.")
    finally:
        server.server_close()
    return 0
