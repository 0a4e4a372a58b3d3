"""Shared models used across the browser harness."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BrowserKind(str, enum.Enum):
    """Browsers a profile can drive."""

    CHROME = "chrome"
    CHROME_HEADLESS = "chromeheadless"
    FIREFOX = "firefox"
    FIREFOX_HEADLESS = "firefoxheadless"
    EDGE = "edge"
    EDGE_CHROME = "edgechrome"
    IE = "ie"
    SAFARI = "safari"
    CHROME_EMBEDDED = "chromeembedded"
    ELECTRON = "electron"
    BROWSERSTACK = "browserstack"
    CROSSBROWSERTESTING = "crossbrowsertesting"


@dataclass(frozen=True)
class BrowserCapabilities:
    """Optional behaviours available for a browser kind."""

    supports_implicit_wait: bool
    supports_window_switch: bool
    supports_profile: bool = False
    is_headless: bool = False
    supports_page_source: bool = True
    supports_stability_check: bool = True
    id_via_xpath: bool = False
    remote_only: bool = False


_CAPABILITIES: dict[BrowserKind, BrowserCapabilities] = {
    BrowserKind.FIREFOX: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        supports_profile=True,
    ),
    BrowserKind.FIREFOX_HEADLESS: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        supports_profile=True,
        is_headless=True,
    ),
    BrowserKind.SAFARI: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        id_via_xpath=True,
    ),
    BrowserKind.CHROME: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        supports_profile=True,
    ),
    BrowserKind.CHROME_HEADLESS: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        supports_profile=True,
        is_headless=True,
    ),
    BrowserKind.IE: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
    ),
    BrowserKind.EDGE: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=False,
        supports_page_source=False,
    ),
    BrowserKind.EDGE_CHROME: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        supports_profile=True,
    ),
    BrowserKind.CHROME_EMBEDDED: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
    ),
    BrowserKind.ELECTRON: BrowserCapabilities(
        supports_implicit_wait=True,
        supports_window_switch=True,
        supports_stability_check=False,
    ),
    BrowserKind.BROWSERSTACK: BrowserCapabilities(
        supports_implicit_wait=False,
        supports_window_switch=True,
        remote_only=True,
    ),
    BrowserKind.CROSSBROWSERTESTING: BrowserCapabilities(
        supports_implicit_wait=False,
        supports_window_switch=True,
        remote_only=True,
    ),
}


def capabilities_for(kind: BrowserKind) -> BrowserCapabilities:
    """Return the capability record for ``kind``."""

    return _CAPABILITIES[BrowserKind(kind)]


class SessionState(str, enum.Enum):
    """Lifecycle states of a browser session."""

    READY = "ready"
    RECOVERING = "recovering"
    STALE = "stale"
    CLOSED = "closed"


class LocatorStrategy(str, enum.Enum):
    """Element search strategies understood by every endpoint."""

    ID = "id"
    CLASS = "class"
    NAME = "name"
    CSS = "css"
    LINK_TEXT = "link_text"
    PARTIAL_LINK_TEXT = "partial_link_text"
    XPATH = "xpath"
    TAG = "tag"


class LocatorSpec(BaseModel):
    """A parsed locator: one strategy and its argument."""

    model_config = ConfigDict(frozen=True)

    strategy: LocatorStrategy
    value: str

    def __str__(self) -> str:
        return f"{self.strategy.value}={self.value}"


class StepStatus(str, enum.Enum):
    """Outcome of a single scripted step."""

    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"


class StepResult(BaseModel):
    """Pass/fail outcome reported for a command."""

    status: StepStatus
    message: str
    command: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def passed(cls, message: str) -> "StepResult":
        return cls(status=StepStatus.PASS, message=message)

    @classmethod
    def failed(cls, message: str) -> "StepResult":
        return cls(status=StepStatus.FAIL, message=message)

    @classmethod
    def skipped(cls, message: str) -> "StepResult":
        return cls(status=StepStatus.SKIPPED, message=message)

    @property
    def is_success(self) -> bool:
        return self.status != StepStatus.FAIL


class ReportLevel(str, enum.Enum):
    """Severity of report events."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class ReportEvent(BaseModel):
    """Event emitted while a script runs."""

    type: str
    message: str
    level: ReportLevel = ReportLevel.INFO
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
