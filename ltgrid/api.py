"""LambdaTest automation REST API client (aiohttp).

Docs: https://www.lambdatest.com/support/api-doc/
"""
from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import structlog

from ltgrid.base import JobResult
from ltgrid.config import Config
from ltgrid.errors import LambdaTestAPIError

log = structlog.get_logger(__name__)

REQUEST_TIMEOUT = 30  # seconds; REST calls are short, unlike WebDriver commands


def job_status(job_result: JobResult | str, job_data: dict[str, Any] | None) -> str:
    """Map a runner job result to the status_ind LambdaTest expects.

    A job passes only when it finished (``done``) and no test failed.
    """
    job_data = job_data or {}
    if JobResult(job_result) is not JobResult.DONE:
        return "failed"
    failed = int(job_data.get("total", 0) or 0) - int(job_data.get("passed", 0) or 0)
    return "passed" if failed == 0 else "failed"


def flatten_platforms(payload: dict[str, Any]) -> list[str]:
    """Turn a /platforms response into ``name@version:platform`` browser names."""
    names: list[str] = []
    seen: set[str] = set()

    def add(name: str) -> None:
        if name not in seen:
            seen.add(name)
            names.append(name)

    platforms = payload.get("platforms", {})
    for entry in platforms.get("Desktop", []):
        platform = entry.get("platform", "")
        for browser in entry.get("browsers", []):
            add(f"{browser['browser_name']}@{browser.get('version', 'latest')}:{platform}")
    for entry in platforms.get("Mobile", []):
        platform = entry.get("platform", "")
        for device in entry.get("devices", []):
            add(f"{device['device_name']}@{device.get('version', 'latest')}:{platform}")
    return names


class LambdaTestAPI:
    """Async client for the LambdaTest automation API, authenticated with basic auth."""

    def __init__(self, cfg: Config, session: aiohttp.ClientSession | None = None) -> None:
        self.cfg = cfg
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> LambdaTestAPI:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def _http(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=aiohttp.BasicAuth(self.cfg.username, self.cfg.access_key),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    # -- Endpoints --

    async def get_browser_list(self) -> list[str]:
        """Return every browser/device name the grid currently offers."""
        data = await self._request("GET", f"{self.cfg.api_url}/platforms")
        names = flatten_platforms(data)
        log.debug("browser list fetched", count=len(names))
        return names

    async def update_job_status(
        self,
        session_id: str,
        job_result: JobResult | str,
        job_data: dict[str, Any] | None,
        is_real_mobile: bool = False,
    ) -> dict:
        """Mark the remote session passed or failed on the LambdaTest dashboard."""
        base = self.cfg.mobile_api_url if is_real_mobile else self.cfg.api_url
        payload = {"status_ind": job_status(job_result, job_data)}
        log.debug("updating job status", session_id=session_id, **payload)
        return await self._request("PATCH", f"{base}/sessions/{session_id}", json=payload)

    # -- HTTP helpers --

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict:
        try:
            async with self._http().request(method, url, **kwargs) as resp:
                if resp.status >= 400:
                    text = await resp.text()
                    raise LambdaTestAPIError(resp.status, text.strip() or resp.reason or "")
                if resp.content_type != "application/json":
                    return {}
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            log.debug("api request failed", method=method, url=url, error=repr(exc))
            raise LambdaTestAPIError(0, str(exc) or type(exc).__name__) from exc
        return data if isinstance(data, dict) else {"data": data}
