"""Decide when the displayed page has stopped changing."""

from __future__ import annotations

import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional

from ..config import ProfileConfig
from ..endpoint.base import RemoteSession
from ..errors import (
    EndpointError,
    EndpointTimeoutError,
    StabilityCheckError,
    StaleWindowError,
    is_modal_blocking,
)
from ..models import BrowserCapabilities

LOGGER = logging.getLogger(__name__)

READY_STATE_COMPLETE = "complete"


def content_signature(markup: str) -> str:
    """Digest of the page markup, compared between polls."""

    return hashlib.blake2b(markup.encode("utf-8", "surrogatepass"), digest_size=20).hexdigest()


@dataclass
class StabilityWindow:
    """State of one stability wait."""

    deadline: float
    tolerance: int
    streak: int = 0
    signature: Optional[str] = None

    def observe(self, signature: str, ready: bool) -> bool:
        """Record one capture; return True once the streak reaches the tolerance."""

        if ready and signature == self.signature:
            self.streak += 1
            return self.streak >= self.tolerance
        self.streak = 0
        self.signature = signature
        return False


class QuiescenceDetector:
    """Layered page stability check.

    A blocking dialog or a window without a URL is never stable. Otherwise
    the ready-state signal is polled (fast path) or, when content stability
    is enforced or the browser cannot tune its waits, successive page
    captures must match while the document reports ready (strict path).
    """

    def __init__(
        self,
        settings: ProfileConfig,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._sleep = sleep

    @property
    def settings(self) -> ProfileConfig:
        return self._settings

    def uses_strict_path(self, capabilities: BrowserCapabilities) -> bool:
        return (
            self._settings.enforce_page_source_stability
            or not capabilities.supports_implicit_wait
        )

    def wait_for_stability(
        self,
        remote: RemoteSession,
        capabilities: BrowserCapabilities,
        max_wait_ms: Optional[int] = None,
    ) -> bool:
        """Return True once the page settled within ``max_wait_ms``."""

        if not capabilities.supports_stability_check:
            return False

        if not self._settings.alert_ignore:
            dialog = remote.probe_dialog()
            if dialog.found:
                LOGGER.debug("Dialog present (%s); page not stable", dialog.value)
                return False

        try:
            remote.current_url()
        except (EndpointTimeoutError, StaleWindowError) as exc:
            # e.g. a freshly opened download target without content
            LOGGER.debug("Current window has no URL: %s", exc)
            return False

        budget_ms = self._settings.page_load_timeout_ms if max_wait_ms is None else max_wait_ms
        if self.uses_strict_path(capabilities):
            return self._wait_strict(remote, capabilities, budget_ms)
        return self._wait_ready(remote, min(budget_ms, self._settings.page_load_timeout_ms))

    def is_load_complete(self, remote: RemoteSession) -> bool:
        try:
            state = remote.ready_state()
        except EndpointError as exc:
            LOGGER.debug("Unable to evaluate document.readyState: %s", exc)
            return False
        return state.strip() == READY_STATE_COMPLETE

    def _wait_ready(self, remote: RemoteSession, budget_ms: int) -> bool:
        deadline = self._clock() + budget_ms / 1000
        return self._poll_ready(remote, deadline)

    def _poll_ready(self, remote: RemoteSession, deadline: float) -> bool:
        interval = self._settings.ready_state_poll_ms / 1000
        while True:
            if self.is_load_complete(remote):
                return True
            if self._clock() >= deadline:
                return False
            self._sleep_until(deadline, interval)

    def _sleep_until(self, deadline: float, interval: float) -> None:
        remaining = deadline - self._clock()
        if remaining > 0:
            self._sleep(min(interval, remaining))

    def _wait_strict(
        self,
        remote: RemoteSession,
        capabilities: BrowserCapabilities,
        budget_ms: int,
    ) -> bool:
        min_wait_ms = self._settings.min_stability_wait_ms
        interval = min_wait_ms / 1000
        if not capabilities.supports_page_source:
            self._sleep(interval)
            return self.is_load_complete(remote)

        # force at least one comparison
        budget_ms = max(budget_ms, min_wait_ms + 1)
        window = StabilityWindow(
            deadline=self._clock() + budget_ms / 1000,
            tolerance=self._settings.stability_tolerance,
        )
        try:
            window.signature = content_signature(remote.page_source())
            while True:
                self._sleep_until(window.deadline, interval)
                self._dismiss_preemptive_dialog(remote)
                signature = content_signature(remote.page_source())
                if window.observe(signature, self.is_load_complete(remote)):
                    return True
                if self._clock() >= window.deadline:
                    return False
        except EndpointError as exc:
            if is_modal_blocking(exc):
                # a dialog blocks the page; it is in a known, settled state
                return True
            if window.streak == 0:
                if self._clock() >= window.deadline:
                    LOGGER.info("Browser stability unknown; exceeded allotted page load timeout")
                    return self.is_load_complete(remote)
                return self._poll_ready(remote, window.deadline)
            raise StabilityCheckError(f"Unable to determine browser stability: {exc}") from exc

    def _dismiss_preemptive_dialog(self, remote: RemoteSession) -> None:
        if not self._settings.preemptive_alert_check:
            return
        if remote.probe_dialog().found:
            LOGGER.info("Accepting dialog found while waiting for page stability")
            remote.accept_dialog()
