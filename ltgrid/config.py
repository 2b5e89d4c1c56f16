"""Load and provide ltgrid configuration from ltgrid.toml and LT_* env vars."""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Mapping

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]
from pathlib import Path

DEFAULT_HUB = "hub.lambdatest.com"
DEFAULT_MOBILE_HUB = "mobile-hub.lambdatest.com"
DEFAULT_API_URL = "https://api.lambdatest.com/automation/api/v1"
DEFAULT_MOBILE_API_URL = "https://mobile-api.lambdatest.com/mobile-automation/api/v1"
DEFAULT_DASHBOARD_URL = "https://automation.lambdatest.com"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Config:
    username: str = ""
    access_key: str = ""
    hub_host: str = DEFAULT_HUB
    mobile_hub_host: str = DEFAULT_MOBILE_HUB
    api_url: str = DEFAULT_API_URL
    mobile_api_url: str = DEFAULT_MOBILE_API_URL
    dashboard_url: str = DEFAULT_DASHBOARD_URL
    http_timeout: float = 15 * 60  # remote commands can block for minutes on the grid
    ping_interval: float = 30.0
    tunnel: bool = False
    tunnel_name: str = ""
    tunnel_number: int = 1
    tunnel_binary: str = "LT"
    tunnel_ready_timeout: float = 60.0
    tunnel_logfile: str = ""
    tunnel_verbose: bool = False
    proxy_host: str = ""
    proxy_port: str = ""
    proxy_user: str = ""
    proxy_pass: str = ""
    build: str = ""
    test_name: str = ""
    resolution: str = ""
    capability_path: str = ""
    real_mobile: bool = False
    log_session_url: bool = False
    session_log_path: Path = Path("sessionUrls.txt")
    trace: bool = False

    @property
    def has_credentials(self) -> bool:
        return bool(self.username and self.access_key)

    @property
    def hub_url(self) -> str:
        return f"https://{self.hub_host}:443/wd/hub"

    @property
    def mobile_hub_url(self) -> str:
        return f"https://{self.mobile_hub_host}:443/wd/hub"


def load(
    project_root: Path | None = None, environ: Mapping[str, str] | None = None
) -> Config:
    """Load config from ltgrid.toml, then apply LT_* environment overrides.

    Every field has a default, so a missing ltgrid.toml is fine.
    """
    if project_root is None:
        project_root = Path.cwd()
    if environ is None:
        environ = os.environ

    toml_path = project_root / "ltgrid.toml"
    data: dict = {}
    if toml_path.exists():
        with open(toml_path, "rb") as f:
            data = tomllib.load(f)

    auth = data.get("auth", {})
    grid = data.get("grid", {})
    tunnel = data.get("tunnel", {})
    session = data.get("session", {})
    logging_ = data.get("logging", {})

    def pick(env_key: str, section: dict, key: str, default):
        # Env var wins over TOML; empty env values count as unset.
        value = environ.get(env_key, "")
        if value != "":
            return value
        return section.get(key, default)

    return Config(
        username=pick("LT_USERNAME", auth, "username", ""),
        access_key=pick("LT_ACCESS_KEY", auth, "access_key", ""),
        hub_host=pick("LT_GRID_URL", grid, "hub", DEFAULT_HUB),
        mobile_hub_host=pick("LT_MOBILE_GRID_URL", grid, "mobile_hub", DEFAULT_MOBILE_HUB),
        api_url=pick("LT_API_URL", grid, "api_url", DEFAULT_API_URL).rstrip("/"),
        mobile_api_url=pick(
            "LT_MOBILE_API_URL", grid, "mobile_api_url", DEFAULT_MOBILE_API_URL
        ).rstrip("/"),
        dashboard_url=pick(
            "LT_DASHBOARD_URL", grid, "dashboard_url", DEFAULT_DASHBOARD_URL
        ).rstrip("/"),
        http_timeout=_number(
            "http_timeout", pick("LT_HTTP_TIMEOUT", grid, "http_timeout", 15 * 60), minimum=1
        ),
        ping_interval=_number(
            "ping_interval", pick("LT_PING_INTERVAL", session, "ping_interval", 30), minimum=1
        ),
        tunnel=_flag(pick("LT_TUNNEL", tunnel, "enabled", False)),
        tunnel_name=str(pick("LT_TUNNEL_NAME", tunnel, "name", "")),
        tunnel_number=int(
            _number("tunnel_number", pick("LT_TUNNEL_NUMBER", tunnel, "number", 1), minimum=1)
        ),
        tunnel_binary=str(pick("LT_TUNNEL_BINARY", tunnel, "binary", "LT")),
        tunnel_ready_timeout=_number(
            "ready_timeout", tunnel.get("ready_timeout", 60), minimum=1
        ),
        tunnel_logfile=str(pick("LT_LOGFILE", tunnel, "logfile", "")),
        tunnel_verbose=_flag(pick("LT_VERBOSE", tunnel, "verbose", False)),
        proxy_host=str(pick("LT_PROXY_HOST", tunnel, "proxy_host", "")),
        proxy_port=str(pick("LT_PROXY_PORT", tunnel, "proxy_port", "")),
        proxy_user=str(pick("LT_PROXY_USER", tunnel, "proxy_user", "")),
        proxy_pass=str(pick("LT_PROXY_PASS", tunnel, "proxy_pass", "")),
        build=str(pick("LT_BUILD", session, "build", "")),
        test_name=str(pick("LT_TEST_NAME", session, "test_name", "")),
        resolution=str(pick("LT_RESOLUTION", session, "resolution", "")),
        capability_path=str(pick("LT_CAPABILITY_PATH", session, "capability_path", "")),
        real_mobile=_flag(pick("LT_REAL_MOBILE", session, "real_mobile", False)),
        log_session_url=_flag(pick("LOG_LT_SESSION_URL", session, "log_url", False)),
        session_log_path=Path(
            pick("LT_SESSION_LOG_PATH", session, "log_path", "sessionUrls.txt")
        ),
        trace=_flag(pick("LT_ENABLE_TRACE", logging_, "trace", False)),
    )


def _flag(value: object) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _number(name: str, value: object, minimum: float) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"ltgrid config {name} must be a number, got {value!r}") from None
    if number < minimum:
        raise ValueError(f"ltgrid config {name} must be >= {minimum:g}.")
    return number
