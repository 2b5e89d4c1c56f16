"""Shared test fixtures for ltgrid.

Fixture tiers:
  lt_config      Config with fake credentials and tmp paths (no env, no toml)
  fake_api       aiohttp server standing in for the LambdaTest REST API
  mock_remote    patches selenium's Remote so no grid session is created
  fake_tunnel    executable script that behaves like the LT tunnel binary
"""
from __future__ import annotations

import stat
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import MagicMock, patch

import pytest
import structlog
from aiohttp.test_utils import TestServer

from ltgrid.config import Config
from tests.helpers import SESSION_ID, FakeLambdaTest


# ---------------------------------------------------------------------------
# Logging isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_structlog() -> Generator[None, None, None]:
    """Undo configure_logging() calls so no test logs into another test's capture."""
    yield
    structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Config fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def lt_config(tmp_path: Path) -> Config:
    """Isolated Config for a single test: fake credentials, tmp session log."""
    return Config(
        username="alice",
        access_key="s3cr3t",
        session_log_path=tmp_path / "sessionUrls.txt",
        ping_interval=30,
        tunnel_ready_timeout=5,
    )


# ---------------------------------------------------------------------------
# Vendor API fixture
# ---------------------------------------------------------------------------

@pytest.fixture
async def fake_api(lt_config: Config) -> AsyncGenerator[FakeLambdaTest, None]:
    """Serve FakeLambdaTest on a free port and point lt_config at it."""
    fake = FakeLambdaTest()
    server = TestServer(fake.app())
    await server.start_server()
    fake.base_url = str(server.make_url("/")).rstrip("/")
    lt_config.api_url = fake.base_url
    lt_config.mobile_api_url = f"{fake.base_url}/mobile"
    yield fake
    await server.close()


# ---------------------------------------------------------------------------
# Selenium fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_remote() -> Generator[dict, None, None]:
    """Patch selenium's Remote and ClientConfig used by ltgrid.session."""
    with patch("ltgrid.session.webdriver.Remote") as remote_cls, \
            patch("ltgrid.session.ClientConfig") as client_config_cls:
        driver = MagicMock()
        driver.session_id = SESSION_ID
        driver.execute_script.return_value = 1
        driver.get_screenshot_as_base64.return_value = "iVBORw0KGgo="
        remote_cls.return_value = driver
        yield {
            "Remote": remote_cls,
            "ClientConfig": client_config_cls,
            "driver": driver,
        }


# ---------------------------------------------------------------------------
# Tunnel binary fixture
# ---------------------------------------------------------------------------

def _write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def fake_tunnel(tmp_path: Path) -> Path:
    """Script that prints the LT ready banner, records its args, then idles."""
    args_file = tmp_path / "tunnel_args.txt"
    return _write_script(
        tmp_path / "LT",
        f'echo "$@" >> {args_file}\n'
        'echo "Tunnel starting"\n'
        'echo "You can start testing now"\n'
        "exec sleep 60\n",
    )


@pytest.fixture
def broken_tunnel(tmp_path: Path) -> Path:
    """Script that fails before reporting ready."""
    return _write_script(tmp_path / "LT-broken", 'echo "invalid credentials"\nexit 3\n')


@pytest.fixture
def silent_tunnel(tmp_path: Path) -> Path:
    """Script that never reports ready."""
    return _write_script(tmp_path / "LT-silent", "exec sleep 60\n")
