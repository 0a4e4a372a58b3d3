"""Automation endpoint abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from ..config import ProfileConfig
from ..errors import FailureKind
from ..models import BrowserKind, LocatorSpec

T = TypeVar("T")


@dataclass(frozen=True)
class Probe(Generic[T]):
    """Outcome of a lookup that may legitimately find nothing.

    Expected absence (``not_found``) is kept apart from real faults
    (``failed``) so callers do not need exception handlers for normal flow.
    """

    value: Optional[T] = None
    found: bool = False
    failure: Optional[FailureKind] = None
    error: Optional[BaseException] = None

    @classmethod
    def of(cls, value: T) -> "Probe[T]":
        return cls(value=value, found=True)

    @classmethod
    def not_found(cls) -> "Probe[T]":
        return cls()

    @classmethod
    def failed(cls, kind: FailureKind, error: BaseException) -> "Probe[T]":
        return cls(failure=kind, error=error)

    @property
    def is_failure(self) -> bool:
        return self.failure is not None


class RemoteElement(ABC):
    """One element found in the live page."""

    @property
    @abstractmethod
    def text(self) -> str:
        """Visible text of the element."""

    @abstractmethod
    def click(self) -> None:
        """Click the element."""

    @abstractmethod
    def send_keys(self, text: str) -> None:
        """Type ``text`` into the element."""

    @abstractmethod
    def clear(self) -> None:
        """Clear an editable element."""

    @abstractmethod
    def get_attribute(self, name: str) -> Optional[str]:
        """Return attribute ``name`` or None."""

    @abstractmethod
    def is_displayed(self) -> bool:
        """Return True when the element is visible."""


class RemoteSession(ABC):
    """A live browser session owned by an automation endpoint.

    Implementations raise the :mod:`browser_harness.errors` taxonomy, never
    their native exception types.
    """

    @property
    @abstractmethod
    def session_id(self) -> str:
        """Opaque identifier assigned by the endpoint."""

    @abstractmethod
    def current_window_handle(self) -> str:
        """Handle of the window that currently has focus."""

    @abstractmethod
    def window_handles(self) -> list[str]:
        """Handles of all open windows, in the endpoint's order."""

    @abstractmethod
    def switch_to_window(self, handle: str) -> None:
        """Move focus to ``handle``; raise StaleWindowError when it is gone."""

    @abstractmethod
    def new_window(self) -> str:
        """Open a new tab and return its handle without focusing it."""

    @abstractmethod
    def close_window(self) -> None:
        """Close the focused window."""

    @abstractmethod
    def quit(self) -> None:
        """End the session and close every window."""

    @abstractmethod
    def current_url(self) -> str:
        """URL of the focused window."""

    @abstractmethod
    def title(self) -> str:
        """Title of the focused window."""

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load ``url`` in the focused window."""

    @abstractmethod
    def refresh(self) -> None:
        """Reload the focused window."""

    @abstractmethod
    def back(self) -> None:
        """Go back in history."""

    @abstractmethod
    def page_source(self) -> str:
        """Serialized markup of the focused window."""

    @abstractmethod
    def ready_state(self) -> str:
        """Value of ``document.readyState``."""

    @abstractmethod
    def execute_script(self, script: str, *args: Any) -> Any:
        """Run ``script`` in the page and return its result."""

    @abstractmethod
    def set_implicit_wait(self, millis: int) -> None:
        """Configure the implicit element wait."""

    @abstractmethod
    def set_page_load_timeout(self, millis: int) -> None:
        """Configure the navigation timeout."""

    @abstractmethod
    def probe_dialog(self) -> Probe[str]:
        """Return the text of a pending native dialog, if any."""

    @abstractmethod
    def accept_dialog(self, text: Optional[str] = None) -> None:
        """Accept the pending dialog, typing ``text`` first for prompts."""

    @abstractmethod
    def dismiss_dialog(self) -> None:
        """Dismiss the pending dialog."""

    @abstractmethod
    def find_elements(self, spec: LocatorSpec) -> list[RemoteElement]:
        """Return every element matching ``spec`` (possibly none)."""


class AutomationEndpoint(ABC):
    """Creates browser sessions for a browser kind."""

    name: str = "endpoint"

    @abstractmethod
    def create_session(self, kind: BrowserKind, settings: ProfileConfig) -> RemoteSession:
        """Launch a browser of ``kind``; raise ConstructionError on failure."""
