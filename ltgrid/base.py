"""Browser-provider interface the test runner drives."""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable


class JobResult(str, Enum):
    """Outcome of a test-runner job, as passed to report_job_result."""

    DONE = "done"
    ERRORED = "errored"
    ABORTED = "aborted"


MetaInfoCallback = Callable[[str, str], None]


class BrowserProvider(ABC):
    """Lifecycle hooks a test runner calls on a browser provider.

    ``browser_id`` is the runner's opaque identifier for one browser
    connection; a multi-browser provider serves many ids concurrently.
    """

    is_multi_browser: bool = False
    JOB_RESULT = JobResult

    def __init__(self, on_meta_info: MetaInfoCallback | None = None) -> None:
        self.on_meta_info = on_meta_info
        self.meta_info: dict[str, str] = {}

    async def init(self) -> None:
        """Called once before any browser is opened."""

    async def dispose(self) -> None:
        """Called once after every browser is closed."""

    @abstractmethod
    async def open_browser(self, browser_id: str, page_url: str, browser_name: str) -> None:
        ...

    @abstractmethod
    async def close_browser(self, browser_id: str) -> None:
        ...

    async def get_browser_list(self) -> list[str]:
        return []

    async def is_valid_browser_name(self, browser_name: str) -> bool:
        return True

    async def resize_window(self, browser_id: str, width: int, height: int) -> None:
        raise NotImplementedError

    async def maximize_window(self, browser_id: str) -> None:
        raise NotImplementedError

    async def take_screenshot(self, browser_id: str, screenshot_path: str) -> None:
        raise NotImplementedError

    async def report_job_result(
        self, browser_id: str, job_result: JobResult, job_data: dict[str, Any]
    ) -> Any:
        return None

    def set_user_agent_meta_info(self, browser_id: str, info: str) -> None:
        """Attach extra text to the browser's user-agent line in runner reports."""
        self.meta_info[browser_id] = info
        if self.on_meta_info:
            self.on_meta_info(browser_id, info)
