"""Configuration models for the demo-bank test harness."""

from __future__ import annotations

import json
import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class ViewportConfig(BaseModel):
    width: int = 1600
    height: int = 1200


class LoginConfig(BaseModel):
    username: str = "andy"
    password: str = "i<3pandas"
    username_selector: str = "id=username"
    password_selector: str = "id=password"
    submit_selector: str = "id=log-in"

    @field_validator("password", mode="before")
    @classmethod
    def resolve_env_password(cls, v: str) -> str:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v


class BrowserEntry(BaseModel):
    width: int
    height: int
    browser_type: str  # chrome, firefox, safari, edgechromium, ie11


class DeviceEntry(BaseModel):
    device_name: str  # iPhone X, Pixel 2, Galaxy S5, Nexus 10, iPad Pro
    orientation: str = "portrait"  # portrait, landscape


class VisualConfig(BaseModel):
    app_name: str = "Applitools Demo App"
    batch_name: str = "Modern Cross Browser Testing in Python with Playwright"
    test_concurrency: int = 5

    browsers: list[BrowserEntry] = Field(
        default_factory=lambda: [
            BrowserEntry(width=800, height=600, browser_type="chrome"),
            BrowserEntry(width=700, height=500, browser_type="firefox"),
            BrowserEntry(width=1600, height=1200, browser_type="ie11"),
            BrowserEntry(width=1024, height=768, browser_type="edgechromium"),
            BrowserEntry(width=800, height=600, browser_type="safari"),
        ]
    )
    devices: list[DeviceEntry] = Field(
        default_factory=lambda: [
            DeviceEntry(device_name="iPhone X", orientation="portrait"),
            DeviceEntry(device_name="Pixel 2", orientation="portrait"),
            DeviceEntry(device_name="Galaxy S5", orientation="portrait"),
            DeviceEntry(device_name="Nexus 10", orientation="portrait"),
            DeviceEntry(device_name="iPad Pro", orientation="landscape"),
        ]
    )

    # Diff tolerances (fraction of differing pixels / layout cells)
    diff_tolerance: float = 0.05
    layout_tolerance: float = 0.10

    baselines_dir: str = "./.demo-qa/visual_baselines"
    raise_on_diff: bool = False
    save_new_baselines: bool = True

    @field_validator("test_concurrency")
    @classmethod
    def concurrency_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("test_concurrency must be at least 1")
        return v


class FrameworkConfig(BaseModel):
    # Target
    base_url: str = "https://demo.applitools.com"
    site_env_var: str = "DEMO_SITE"
    alternate_page: str = "/index_v2.html"

    # Browser
    browser: str = "chromium"
    headless: bool = True
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)

    # Execution
    execution_mode: str = "parallel"
    max_parallel_contexts: int = 3
    selector_timeout_seconds: int = 10
    navigation_timeout_seconds: int = 30
    assertion_timeout_seconds: int = 5

    credentials: LoginConfig = Field(default_factory=LoginConfig)
    visual: VisualConfig = Field(default_factory=VisualConfig)

    # Reporting
    report_formats: list[str] = Field(default_factory=lambda: ["json"])
    report_output_dir: str = "./qa-reports"
    runs_dir: str = "./runs"
    capture_failure_screenshots: bool = True

    @field_validator("execution_mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        if v not in ("parallel", "serial"):
            raise ValueError(f"execution_mode must be 'parallel' or 'serial', got '{v}'")
        return v

    @field_validator("browser")
    @classmethod
    def validate_browser(cls, v: str) -> str:
        if v not in ("chromium", "firefox", "webkit"):
            raise ValueError(f"Unsupported browser engine: {v}")
        return v

    @property
    def concurrency_limit(self) -> int:
        """Number of cases allowed to hold a browser context at once."""
        if self.execution_mode == "serial":
            return 1
        return max(1, self.max_parallel_contexts)

    @classmethod
    def load(cls, path: str | Path) -> "FrameworkConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)
