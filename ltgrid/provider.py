"""LambdaTest browser provider.

Opens one remote WebDriver session per runner browser id on the
LambdaTest grid, optionally through LT tunnels, and reports job results
back to the LambdaTest dashboard.

Open sequence (open_browser):
1. Credential check (LT_USERNAME / LT_ACCESS_KEY)
2. Tunnel connect, one per tunnel index
3. Capability parsing from the browser name
4. Remote session start + keep-alive ping + navigation
5. Session URL logging and runner meta info
"""
from __future__ import annotations

from typing import Any

import structlog

from ltgrid import files
from ltgrid.api import LambdaTestAPI
from ltgrid.base import BrowserProvider, JobResult, MetaInfoCallback
from ltgrid.capabilities import Capabilities, parse_capabilities
from ltgrid.config import Config
from ltgrid.errors import CapabilityError, LTAuthError, SessionNotFoundError
from ltgrid.session import RemoteSession
from ltgrid.tunnel import TunnelManager

log = structlog.get_logger(__name__)


class LambdaTestProvider(BrowserProvider):
    """Multi-browser provider backed by the LambdaTest remote grid."""

    is_multi_browser = True

    def __init__(
        self,
        cfg: Config,
        api: LambdaTestAPI | None = None,
        tunnels: TunnelManager | None = None,
        on_meta_info: MetaInfoCallback | None = None,
    ) -> None:
        super().__init__(on_meta_info=on_meta_info)
        self.cfg = cfg
        self.api = api if api is not None else LambdaTestAPI(cfg)
        self.tunnels = tunnels if tunnels is not None else TunnelManager(cfg)
        self.browser_names: list[str] = []
        self.opened_browsers: dict[str, RemoteSession] = {}

    # ------------------------------------------------------------------
    # Runner hooks
    # ------------------------------------------------------------------

    async def init(self) -> None:
        self.browser_names = await self.api.get_browser_list()

    async def open_browser(self, browser_id: str, page_url: str, browser_name: str) -> None:
        if not self.cfg.has_credentials:
            raise LTAuthError()

        for index in range(self.cfg.tunnel_number):
            await self.tunnels.connect(index)

        try:
            capabilities = parse_capabilities(
                browser_id,
                browser_name,
                self.cfg,
                tunnel_name=self.tunnels.name if self.tunnels.enabled else "",
            )
        except CapabilityError as exc:
            log.debug("open_browser error on parse_capabilities", error=str(exc))
            await self.dispose()
            raise

        await self._start_browser(browser_id, page_url, capabilities)
        session_url = self.session_url(browser_id)

        if self.cfg.log_session_url:
            await self.write_session_url_to_file(session_url, self.cfg.session_log_path)

        log.debug("session URL", browser_id=browser_id, session_url=session_url)
        self.set_user_agent_meta_info(browser_id, session_url)

    async def close_browser(self, browser_id: str) -> None:
        log.debug("close_browser initiated", browser_id=browser_id)
        session = self.opened_browsers.pop(browser_id, None)
        if session is None:
            log.debug("browser not found in open state", browser_id=browser_id)
            return

        session.stop_ping()
        if not session.session_id:
            log.debug("session id not found", browser_id=browser_id)
            return
        try:
            await session.quit()
        except Exception as exc:
            log.debug("error while closing browser", browser_id=browser_id, error=str(exc))

    async def dispose(self) -> None:
        log.debug("dispose initiated")
        try:
            for index in range(self.cfg.tunnel_number):
                await self.tunnels.destroy(index)
        except Exception as exc:
            log.debug("error while destroying tunnels", error=str(exc))
        log.debug("dispose completed")

    async def get_browser_list(self) -> list[str]:
        return self.browser_names

    async def is_valid_browser_name(self, browser_name: str) -> bool:
        # The grid's catalogue changes too often to validate names locally.
        return True

    async def resize_window(self, browser_id: str, width: int, height: int) -> None:
        await self._session(browser_id).set_window_size(width, height)

    async def maximize_window(self, browser_id: str) -> None:
        await self._session(browser_id).maximize()

    async def take_screenshot(self, browser_id: str, screenshot_path: str) -> None:
        await self._take_screenshot(browser_id, screenshot_path)

    async def report_job_result(
        self, browser_id: str, job_result: JobResult | str, job_data: dict[str, Any]
    ) -> dict | None:
        session = self.opened_browsers.get(browser_id)
        if session is None or not session.session_id:
            return None
        return await self.api.update_job_status(
            session.session_id,
            job_result,
            job_data,
            is_real_mobile=session.is_real_mobile,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _start_browser(
        self, browser_id: str, url: str, capabilities: Capabilities
    ) -> None:
        log.debug("start_browser initiated", browser_id=browser_id)
        if browser_id in self.opened_browsers:
            log.debug("closing previous session for browser id", browser_id=browser_id)
            await self.close_browser(browser_id)
        hub_url = self.cfg.mobile_hub_url if capabilities.is_real_mobile else self.cfg.hub_url
        session = RemoteSession(
            browser_id,
            hub_url,
            username=self.cfg.username,
            access_key=self.cfg.access_key,
            timeout=self.cfg.http_timeout,
            is_real_mobile=capabilities.is_real_mobile,
        )
        try:
            await session.start(capabilities)
            self.opened_browsers[browser_id] = session
            session.start_ping(self.cfg.ping_interval)
            await session.get(url)
        except Exception as exc:
            await self.dispose()
            log.debug("error while starting browser", browser_id=browser_id, error=str(exc))
            raise

    async def _take_screenshot(self, browser_id: str, screenshot_path: str) -> None:
        base64_data = await self._session(browser_id).screenshot_base64()
        await files.save_file(screenshot_path, base64_data)

    def session_url(self, browser_id: str) -> str:
        session_id = self._session(browser_id).session_id
        return f"{self.cfg.dashboard_url}/logs/?sessionID={session_id}"

    async def write_session_url_to_file(self, session_url: str, file_path: Any) -> None:
        try:
            await files.append_line(file_path, session_url)
        except OSError as exc:
            log.error("error writing session URL to file", path=str(file_path), error=str(exc))

    async def aclose(self) -> None:
        """Close every open browser, stop tunnels and release the API client."""
        for browser_id in list(self.opened_browsers):
            await self.close_browser(browser_id)
        await self.dispose()
        await self.api.close()

    def _session(self, browser_id: str) -> RemoteSession:
        try:
            return self.opened_browsers[browser_id]
        except KeyError:
            raise SessionNotFoundError(browser_id) from None
