"""Browser/device matrix for visual checkpoints."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel

from demo_qa.models.config import VisualConfig
from demo_qa.url_utils import slugify


class BrowserType(str, enum.Enum):
    CHROME = "chrome"
    FIREFOX = "firefox"
    SAFARI = "safari"
    EDGE_CHROMIUM = "edgechromium"
    IE_11 = "ie11"


class DeviceName(str, enum.Enum):
    IPHONE_X = "iPhone X"
    PIXEL_2 = "Pixel 2"
    GALAXY_S5 = "Galaxy S5"
    NEXUS_10 = "Nexus 10"
    IPAD_PRO = "iPad Pro"


class ScreenOrientation(str, enum.Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


# Playwright engine rendering each desktop browser; None means no local engine.
BROWSER_ENGINES: dict[BrowserType, Optional[str]] = {
    BrowserType.CHROME: "chromium",
    BrowserType.FIREFOX: "firefox",
    BrowserType.SAFARI: "webkit",
    BrowserType.EDGE_CHROMIUM: "chromium",
    BrowserType.IE_11: None,
}

# Names in Playwright's device descriptor registry.
PLAYWRIGHT_DEVICES: dict[DeviceName, str] = {
    DeviceName.IPHONE_X: "iPhone X",
    DeviceName.PIXEL_2: "Pixel 2",
    DeviceName.GALAXY_S5: "Galaxy S5",
    DeviceName.NEXUS_10: "Nexus 10",
    DeviceName.IPAD_PRO: "iPad Pro 11",
}


class MatrixEntry(BaseModel):
    renderer: str  # browser type value or device name
    width: int = 0  # 0 for device entries until the descriptor is resolved
    height: int = 0
    device_name: Optional[str] = None
    orientation: Optional[str] = None

    @property
    def is_device(self) -> bool:
        return self.device_name is not None

    @property
    def key(self) -> str:
        if self.is_device:
            return f"{slugify(self.device_name)}-{self.orientation}"
        return f"{self.renderer}-{self.width}x{self.height}"


def build_matrix(config: VisualConfig) -> list[MatrixEntry]:
    """Expand the visual config into one entry per browser and device."""
    entries = []
    for b in config.browsers:
        browser_type = BrowserType(b.browser_type.lower())
        entries.append(MatrixEntry(renderer=browser_type.value, width=b.width, height=b.height))
    for d in config.devices:
        device = DeviceName(d.device_name)
        orientation = ScreenOrientation(d.orientation.lower())
        entries.append(MatrixEntry(
            renderer=device.value, device_name=device.value, orientation=orientation.value,
        ))
    return entries


def engine_for(entry: MatrixEntry) -> Optional[str]:
    """Playwright engine for a desktop entry, or None when none is available."""
    return BROWSER_ENGINES[BrowserType(entry.renderer)]


def resolve_device(devices: dict, entry: MatrixEntry) -> tuple[str, dict]:
    """Return ``(engine, context_kwargs)`` for a device entry.

    ``devices`` is Playwright's ``playwright.devices`` registry.
    """
    descriptor = dict(devices[PLAYWRIGHT_DEVICES[DeviceName(entry.device_name)]])
    engine = descriptor.pop("default_browser_type", "chromium")
    if entry.orientation == ScreenOrientation.LANDSCAPE.value:
        for key in ("viewport", "screen"):
            size = descriptor.get(key)
            if size and size["width"] < size["height"]:
                descriptor[key] = {"width": size["height"], "height": size["width"]}
    return engine, descriptor
