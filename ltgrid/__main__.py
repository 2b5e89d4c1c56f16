"""ltgrid command line.

    ltgrid browsers
    ltgrid run "chrome@latest:Windows 11" https://example.com --screenshot shot.png
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import uuid

from selenium.common.exceptions import WebDriverException

from ltgrid import config as config_module
from ltgrid.base import JobResult
from ltgrid.errors import LTError
from ltgrid.provider import LambdaTestProvider
from ltgrid.trace import configure_logging


def _size(value: str) -> tuple[int, int]:
    try:
        width, height = value.lower().split("x", 1)
        return int(width), int(height)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ltgrid", description="Run browsers on the LambdaTest grid"
    )
    parser.add_argument("--trace", action="store_true", help="Enable trace logging")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("browsers", help="List browser names the grid offers")

    run = sub.add_parser("run", help="Open a browser, optionally act on it, then close it")
    run.add_argument("browser", help="Browser name, e.g. 'chrome@latest:Windows 11'")
    run.add_argument("url", help="Page to open")
    run.add_argument("--screenshot", help="Save a screenshot to this path")
    run.add_argument("--size", type=_size, help="Resize the window to WIDTHxHEIGHT")
    run.add_argument("--maximize", action="store_true", help="Maximize the window")
    run.add_argument(
        "--result",
        choices=[r.value for r in JobResult],
        default=JobResult.DONE.value,
        help="Job result to report before closing (default: done)",
    )
    return parser


async def _list_browsers(provider: LambdaTestProvider) -> None:
    await provider.init()
    for name in await provider.get_browser_list():
        print(name)


async def _run(provider: LambdaTestProvider, args: argparse.Namespace) -> None:
    browser_id = uuid.uuid4().hex[:8]
    try:
        await provider.open_browser(browser_id, args.url, args.browser)
        print(provider.meta_info.get(browser_id, ""))
        if args.size:
            await provider.resize_window(browser_id, *args.size)
        if args.maximize:
            await provider.maximize_window(browser_id)
        if args.screenshot:
            await provider.take_screenshot(browser_id, args.screenshot)
        await provider.report_job_result(
            browser_id, JobResult(args.result), {"total": 1, "passed": 1}
        )
    finally:
        await provider.aclose()


async def _main(args: argparse.Namespace) -> int:
    cfg = config_module.load()
    configure_logging(trace=cfg.trace or args.trace)
    provider = LambdaTestProvider(cfg)
    try:
        if args.command == "browsers":
            try:
                await _list_browsers(provider)
            finally:
                await provider.api.close()
        else:
            await _run(provider, args)
    except (LTError, WebDriverException) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: ltgrid browsers | ltgrid run"""
    args = build_parser().parse_args(argv)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
