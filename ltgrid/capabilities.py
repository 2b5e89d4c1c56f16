"""Turn runner browser names into LambdaTest W3C capabilities.

Browser names follow ``name@version:platform``, for example::

    chrome@latest:Windows 10
    firefox@121.0:macOS Sonoma
    iPhone 15@17:ios
    Galaxy S23@13:android

Version and platform are optional. ``ios`` and ``android`` platforms
produce mobile (device) capabilities; anything else is a desktop browser.
"""
from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from ltgrid.config import Config
from ltgrid.errors import CapabilityError

log = structlog.get_logger(__name__)

PLUGIN_NAME = "python-ltgrid"
MOBILE_PLATFORMS = ("ios", "android")
LT_OPTIONS = "LT:Options"


@dataclass(frozen=True)
class BrowserSpec:
    name: str
    version: str = "latest"
    platform: str = ""

    @property
    def is_mobile(self) -> bool:
        return self.platform.lower() in MOBILE_PLATFORMS


@dataclass
class Capabilities:
    """Capabilities for one remote session plus the hub routing flag."""

    browser: BrowserSpec
    values: dict[str, Any] = field(default_factory=dict)
    is_real_mobile: bool = False

    @property
    def lt_options(self) -> dict[str, Any]:
        return self.values.setdefault(LT_OPTIONS, {})


def parse_browser_name(browser_name: str) -> BrowserSpec:
    """Split ``name@version:platform`` into its parts."""
    raw = browser_name.strip()
    if not raw:
        raise CapabilityError("Browser name is empty")

    head, _, platform = raw.partition(":")
    name, _, version = head.partition("@")
    name = name.strip()
    if not name:
        raise CapabilityError(f"Browser name {browser_name!r} has no browser or device part")
    return BrowserSpec(
        name=name,
        version=version.strip() or "latest",
        platform=platform.strip(),
    )


def load_capability_file(path: str | Path) -> dict[str, dict[str, Any]]:
    """Load the per-browser extra-capability JSON file (LT_CAPABILITY_PATH)."""
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise CapabilityError(f"Capability file not found: {path}") from None
    except (OSError, json.JSONDecodeError) as exc:
        raise CapabilityError(f"Cannot read capability file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise CapabilityError(f"Capability file {path} must contain a JSON object")
    return data


def parse_capabilities(
    browser_id: str, browser_name: str, cfg: Config, tunnel_name: str = ""
) -> Capabilities:
    """Build the capabilities for opening ``browser_name`` under ``browser_id``.

    ``tunnel_name`` overrides the configured name, so sessions can join a
    tunnel whose name was generated at connect time.
    """
    spec = parse_browser_name(browser_name)

    options: dict[str, Any] = {
        "user": cfg.username,
        "accessKey": cfg.access_key,
        "name": cfg.test_name or browser_id,
        "w3c": True,
        "plugin": PLUGIN_NAME,
    }
    if cfg.build:
        options["build"] = cfg.build
    if cfg.resolution and not spec.is_mobile:
        options["resolution"] = cfg.resolution
    if cfg.tunnel:
        options["tunnel"] = True
        if tunnel_name or cfg.tunnel_name:
            options["tunnelName"] = tunnel_name or cfg.tunnel_name

    if spec.is_mobile:
        options.update(
            deviceName=spec.name,
            platformName=spec.platform.lower(),
            platformVersion=spec.version,
            isRealMobile=cfg.real_mobile,
        )
        values: dict[str, Any] = {"platformName": spec.platform.lower()}
    else:
        values = {"browserName": spec.name, "browserVersion": spec.version}
        if spec.platform:
            options["platformName"] = spec.platform

    values[LT_OPTIONS] = options

    if cfg.capability_path:
        extra = load_capability_file(cfg.capability_path).get(browser_name, {})
        _merge(values, extra)

    caps = Capabilities(
        browser=spec,
        values=values,
        is_real_mobile=bool(values[LT_OPTIONS].get("isRealMobile", False)),
    )
    log.debug(
        "capabilities parsed",
        browser_id=browser_id,
        browser_name=browser_name,
        is_real_mobile=caps.is_real_mobile,
    )
    return caps


def _merge(target: dict[str, Any], extra: dict[str, Any]) -> None:
    """Merge extra capabilities into target; LT:Options merges key by key."""
    for key, value in extra.items():
        if key == LT_OPTIONS and isinstance(value, dict):
            target.setdefault(LT_OPTIONS, {}).update(copy.deepcopy(value))
        elif key in ("isRealMobile", "deviceName", "platformVersion", "build", "tunnelName"):
            # Flat vendor keys belong under LT:Options.
            target.setdefault(LT_OPTIONS, {})[key] = value
        else:
            target[key] = copy.deepcopy(value)


def redacted(values: dict[str, Any]) -> dict[str, Any]:
    """Copy of capabilities with the access key masked, for logging."""
    safe = copy.deepcopy(values)
    options = safe.get(LT_OPTIONS)
    if isinstance(options, dict) and options.get("accessKey"):
        options["accessKey"] = "***"
    return safe
