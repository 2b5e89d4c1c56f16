"""Test helpers for ltgrid."""
from __future__ import annotations

from dataclasses import dataclass, field

from aiohttp import BasicAuth, web


SESSION_ID = "5f2b9c3e-lt-session"


class LogCollector:
    """Lightweight replacement for a structlog logger that collects records.

    ltgrid modules use structlog (not stdlib logging), so caplog cannot capture
    their output. Replace a module-level ``log`` object with this collector
    and every call is recorded as a dict with ``event``, ``log_level`` and
    any keyword args.
    """

    def __init__(self) -> None:
        self.records: list[dict] = []

    def _log(self, level: str, event: str, **kw) -> None:
        self.records.append({"event": event, "log_level": level, **kw})

    def info(self, event, **kw):
        self._log("info", event, **kw)

    def warning(self, event, **kw):
        self._log("warning", event, **kw)

    def error(self, event, **kw):
        self._log("error", event, **kw)

    def debug(self, event, **kw):
        self._log("debug", event, **kw)

    def events(self) -> list[str]:
        return [r["event"] for r in self.records]


PLATFORMS = {
    "platforms": {
        "Desktop": [
            {
                "platform": "Windows 11",
                "browsers": [
                    {"browser_name": "chrome", "version": "120.0"},
                    {"browser_name": "firefox", "version": "121.0"},
                ],
            },
            {
                "platform": "macOS Sonoma",
                "browsers": [{"browser_name": "safari", "version": "17.0"}],
            },
        ],
        "Mobile": [
            {
                "platform": "android",
                "devices": [{"device_name": "Galaxy S23", "version": "13"}],
            },
        ],
    }
}


@dataclass
class FakeLambdaTest:
    """In-process stand-in for the LambdaTest automation REST API.

    Real-mobile sessions are served under ``/mobile``.
    """

    platforms: dict = field(default_factory=lambda: PLATFORMS)
    status_code: int = 200
    requests: list[dict] = field(default_factory=list)
    base_url: str = ""

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/platforms", self._platforms)
        app.router.add_patch("/sessions/{session_id}", self._update_session)
        app.router.add_patch("/mobile/sessions/{session_id}", self._update_session)
        return app

    def _record(self, request: web.Request, body: object = None) -> None:
        auth = request.headers.get("Authorization")
        self.requests.append({
            "method": request.method,
            "path": request.path,
            "auth": BasicAuth.decode(auth) if auth else None,
            "body": body,
        })

    async def _platforms(self, request: web.Request) -> web.Response:
        self._record(request)
        if self.status_code != 200:
            return web.Response(status=self.status_code, text="Unauthorized")
        return web.json_response(self.platforms)

    async def _update_session(self, request: web.Request) -> web.Response:
        body = await request.json()
        self._record(request, body)
        if self.status_code != 200:
            return web.Response(status=self.status_code, text="session not found")
        return web.json_response({
            "status": "success",
            "message": f"Session {request.match_info['session_id']} updated",
        })
