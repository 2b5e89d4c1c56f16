"""Remote WebDriver session on the LambdaTest grid.

Selenium's client is blocking, so every driver call runs in a worker
thread via ``asyncio.to_thread``. A background task pings the session
so the grid does not reap it while the runner is idle between tests.
"""
from __future__ import annotations

import asyncio
from typing import Any

import structlog
from selenium import webdriver
from selenium.webdriver.common.options import ArgOptions
from selenium.webdriver.remote.client_config import ClientConfig

from ltgrid.capabilities import Capabilities, redacted

log = structlog.get_logger(__name__)

PING_SCRIPT = "return 1"


def build_options(capabilities: Capabilities) -> ArgOptions:
    options = ArgOptions()
    for name, value in capabilities.values.items():
        options.set_capability(name, value)
    return options


class RemoteSession:
    """One remote browser, addressed by the runner's browser id."""

    def __init__(
        self,
        browser_id: str,
        hub_url: str,
        username: str = "",
        access_key: str = "",
        timeout: float = 15 * 60,
        is_real_mobile: bool = False,
    ) -> None:
        self.browser_id = browser_id
        self.is_real_mobile = is_real_mobile
        self.hub_url = hub_url
        self._username = username
        self._access_key = access_key
        self._timeout = timeout
        self.driver: webdriver.Remote | None = None
        self._ping_task: asyncio.Task | None = None

    # -- Lifecycle -------------------------------------------------------------

    async def start(self, capabilities: Capabilities) -> RemoteSession:
        """Create the remote session with the given capabilities."""
        log.debug(
            "creating remote session",
            browser_id=self.browser_id,
            hub=self.hub_url,
            capabilities=redacted(capabilities.values),
        )
        client_config = ClientConfig(
            remote_server_addr=self.hub_url,
            username=self._username or None,
            password=self._access_key or None,
            timeout=self._timeout,
        )
        self.driver = await asyncio.to_thread(
            webdriver.Remote,
            command_executor=self.hub_url,
            options=build_options(capabilities),
            client_config=client_config,
        )
        log.debug(
            "remote session created", browser_id=self.browser_id, session_id=self.session_id
        )
        return self

    async def quit(self) -> None:
        self.stop_ping()
        driver = self._require_driver()
        await asyncio.to_thread(driver.quit)

    @property
    def session_id(self) -> str | None:
        if self.driver is None:
            return None
        return self.driver.session_id

    # -- Keep-alive ------------------------------------------------------------

    def start_ping(self, interval: float) -> None:
        if self._ping_task is not None and not self._ping_task.done():
            return
        self._ping_task = asyncio.get_running_loop().create_task(self._ping_loop(interval))
        log.debug("ping started", browser_id=self.browser_id, interval=interval)

    def stop_ping(self) -> None:
        if self._ping_task is not None:
            self._ping_task.cancel()
            self._ping_task = None

    @property
    def pinging(self) -> bool:
        return self._ping_task is not None and not self._ping_task.done()

    async def ping(self) -> Any:
        """Run a no-op script on the session; failures are logged, not raised."""
        try:
            driver = self._require_driver()
            result = await asyncio.to_thread(driver.execute_script, PING_SCRIPT)
        except Exception as exc:
            log.debug("ping error", browser_id=self.browser_id, error=str(exc))
            return None
        log.debug("ignore ping response", browser_id=self.browser_id, response=result)
        return result

    async def _ping_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.ping()

    # -- Browser commands ------------------------------------------------------

    async def get(self, url: str) -> None:
        driver = self._require_driver()
        await asyncio.to_thread(driver.get, url)

    async def set_window_size(self, width: int, height: int) -> None:
        driver = self._require_driver()
        # W3C drivers only resize the current window.
        await asyncio.to_thread(driver.set_window_size, width, height)

    async def maximize(self) -> None:
        driver = self._require_driver()
        await asyncio.to_thread(driver.maximize_window)

    async def screenshot_base64(self) -> str:
        driver = self._require_driver()
        return await asyncio.to_thread(driver.get_screenshot_as_base64)

    def _require_driver(self) -> webdriver.Remote:
        if self.driver is None:
            raise RuntimeError(f"RemoteSession {self.browser_id!r} not started")
        return self.driver
