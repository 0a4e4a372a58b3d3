"""Lifecycle control of one browser session."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..config import ProfileConfig
from ..endpoint.base import AutomationEndpoint, RemoteSession
from ..errors import (
    EndpointError,
    FailureKind,
    NoOpenWindowsError,
    SessionUnavailable,
    StaleWindowError,
    classify_failure,
)
from ..models import BrowserCapabilities, BrowserKind, SessionState, capabilities_for
from .stability import QuiescenceDetector
from .windows import WindowHandleTracker

LOGGER = logging.getLogger(__name__)

SELECT_WINDOW_RETRY_MS = 250


class Liveness(str, enum.Enum):
    """Outcome of a liveness probe."""

    HEALTHY = "healthy"
    STALE_WINDOW = "stale_window"
    TRANSIENT = "transient"
    DEAD = "dead"


@dataclass
class Session:
    """A live connection to one browser instance."""

    session_id: str
    kind: BrowserKind
    capabilities: BrowserCapabilities
    remote: RemoteSession
    state: SessionState = SessionState.READY
    current_handle: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionController:
    """Hand out a browser session that is connected and focused on a real window.

    The controller repairs the usual failure modes of a long-running session:
    a closed window is recovered from the tracked handles (or from the live
    window list), a dropped connection is tolerated until the next probe, and
    anything else leads to a fresh browser.
    """

    def __init__(
        self,
        profile: str,
        settings: ProfileConfig,
        endpoint: AutomationEndpoint,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.profile = profile
        self.settings = settings
        self.target_kind: BrowserKind = settings.browser
        self._endpoint = endpoint
        self._clock = clock
        self._sleep = sleep
        self._session: Optional[Session] = None
        self.windows = WindowHandleTracker()
        self.detector = QuiescenceDetector(settings, clock=clock, sleep=sleep)

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def clock(self) -> Callable[[], float]:
        return self._clock

    @property
    def sleep(self) -> Callable[[float], None]:
        return self._sleep

    @property
    def is_live(self) -> bool:
        return self._session is not None and self._session.state != SessionState.CLOSED

    # Readiness ---------------------------------------------------------------

    def ensure_ready(self) -> Session:
        """Return a usable session, creating or repairing it as needed."""

        session = self._session
        recreated = False
        if session is None:
            LOGGER.info("No live browser for profile '%s'; initializing", self.profile)
            session = self._create()
            recreated = True
        elif session.kind != self.target_kind:
            LOGGER.warning(
                "Live browser (%s) does not match target browser (%s); restarting",
                session.kind.value,
                self.target_kind.value,
            )
            self.shutdown()
            session = self._create()
            recreated = True
        elif not self._verify(session):
            self.shutdown()
            session = self._create()
            recreated = True

        try:
            self._seed_initial_handle(session)
        except EndpointError as exc:
            if recreated:
                raise SessionUnavailable(
                    f"Browser '{session.kind.value}' is unresponsive after initialization: {exc}"
                ) from exc
            LOGGER.error("Unable to obtain window of live browser (%s); restarting", exc)
            self.shutdown()
            session = self._create()
            try:
                self._seed_initial_handle(session)
            except EndpointError as retry_exc:
                raise SessionUnavailable(
                    f"Browser '{session.kind.value}' is unresponsive after restart: {retry_exc}"
                ) from retry_exc

        LOGGER.debug("Browser ready for profile '%s'", self.profile)
        return session

    def probe(self, session: Session) -> Liveness:
        """Cheap, side-effect-free liveness check."""

        try:
            handle = session.remote.current_window_handle()
        except EndpointError as exc:
            kind = classify_failure(exc)
            if kind == FailureKind.STALE_WINDOW:
                return Liveness.STALE_WINDOW
            if kind == FailureKind.TRANSPORT:
                LOGGER.error("Readiness check: %s", exc)
                return Liveness.TRANSIENT
            LOGGER.error("Readiness check: %s; browser might be terminated, restarting", exc)
            return Liveness.DEAD
        LOGGER.debug("Readiness check: current window handle=%s", handle)
        session.current_handle = handle
        return Liveness.HEALTHY

    def _verify(self, session: Session) -> bool:
        liveness = self.probe(session)
        if liveness in (Liveness.HEALTHY, Liveness.TRANSIENT):
            return True
        if liveness == Liveness.DEAD:
            session.state = SessionState.STALE
            return False
        session.state = SessionState.RECOVERING
        try:
            self.recover_window()
        except (NoOpenWindowsError, EndpointError) as exc:
            LOGGER.error("Window recovery failed: %s", exc)
            session.state = SessionState.STALE
            return False
        session.state = SessionState.READY
        return True

    def _create(self) -> Session:
        kind = self.target_kind
        remote = self._endpoint.create_session(kind, self.settings)
        capabilities = capabilities_for(kind)
        session = Session(
            session_id=remote.session_id,
            kind=kind,
            capabilities=capabilities,
            remote=remote,
        )
        self._session = session
        self.windows.attach(remote)
        self._configure_timeouts(session)
        LOGGER.info("Browser initialization completed for '%s' (%s)", kind.value, self.profile)
        return session

    def _configure_timeouts(self, session: Session) -> None:
        if not session.capabilities.supports_implicit_wait:
            return
        poll_wait_ms = self.settings.poll_wait_ms
        try:
            if poll_wait_ms > 0 and not self.settings.explicit_wait:
                session.remote.set_implicit_wait(poll_wait_ms)
                LOGGER.info("Setting browser polling wait time to %s ms", poll_wait_ms)
            session.remote.set_page_load_timeout(self.settings.page_load_timeout_ms)
            LOGGER.info(
                "Setting browser page load timeout to %s ms", self.settings.page_load_timeout_ms
            )
        except EndpointError as exc:
            LOGGER.warning("Unable to configure browser timeouts: %s", exc)

    def _seed_initial_handle(self, session: Session) -> None:
        if self.windows.initial:
            return
        handle = session.remote.current_window_handle()
        self.windows.seed(handle)
        session.current_handle = handle

    # Window recovery ---------------------------------------------------------

    def recover_window(self) -> str:
        """Refocus on a surviving window, most recently tracked first.

        Falls back to the live window list when no tracked handle accepts
        focus, choosing the last listed window.
        """

        session = self._require_session()
        remote = session.remote
        failed: list[str] = []
        chosen: Optional[str] = None
        for handle in self.windows.most_recent_first():
            try:
                remote.switch_to_window(handle)
            except StaleWindowError:
                failed.append(handle)
                continue
            chosen = handle
            break
        for handle in failed:
            self.windows.remove(handle)

        if chosen is None:
            live = remote.window_handles()
            if not live:
                raise NoOpenWindowsError("No open browser window remains; browser likely terminated")
            chosen = live[-1]
            remote.switch_to_window(chosen)
            self.windows.adopt(live, initial=chosen)
            LOGGER.warning("Recovered from closed window; focus moved to live window %s", chosen)
        else:
            LOGGER.warning("Recovered from closed window; focus returned to %s", chosen)

        session.current_handle = chosen
        return chosen

    # Window commands ---------------------------------------------------------

    def window_handles(self) -> list[str]:
        self.ensure_ready()
        self.windows.resync()
        return self.windows.handles()

    def open_window(self, url: Optional[str] = None) -> str:
        """Open a new tab, focus it and track it."""

        session = self.ensure_ready()
        handle = session.remote.new_window()
        session.remote.switch_to_window(handle)
        self.windows.track(handle)
        session.current_handle = handle
        if url:
            session.remote.navigate(url)
            self.wait_for_stability()
        return handle

    def close_window(self) -> bool:
        """Close the focused window; return True when that ended the session."""

        session = self.ensure_ready()
        remote = session.remote
        last_window = self.windows.is_last_window()
        active = remote.current_window_handle()
        remote.close_window()

        if last_window:
            self._sleep(self.settings.post_close_wait_ms / 1000)
            self.shutdown()
            return True

        self.windows.remove(active)
        self.windows.resync()
        target = self.windows.latest()
        if target is None:
            self.recover_window()
            return False
        try:
            remote.switch_to_window(target)
            session.current_handle = target
            LOGGER.info("Focus returns to previous window '%s'", target)
        except StaleWindowError:
            LOGGER.error("Unable to focus on window %s; recovering", target)
            self.recover_window()
        return False

    def select_window(self, handle: Optional[str] = None, wait_ms: Optional[int] = None) -> bool:
        """Focus ``handle`` (or the initial window when blank), retrying until ``wait_ms``."""

        session = self.ensure_ready()
        if not session.capabilities.supports_window_switch:
            LOGGER.warning("Window switching is not supported by %s", session.kind.value)
            return False
        remote = session.remote
        try:
            self.windows.track(remote.current_window_handle())
        except StaleWindowError as exc:
            LOGGER.debug("Current window already gone: %s", exc)

        if not handle or handle == "null":
            handle = self.windows.initial_handle()
        if not handle:
            return False

        wait_ms = self.settings.poll_wait_ms if wait_ms is None else wait_ms
        deadline = self._clock() + wait_ms / 1000
        while True:
            try:
                remote.switch_to_window(handle)
            except EndpointError as exc:
                LOGGER.debug("Window %s not selectable yet: %s", handle, exc)
            else:
                self.windows.track(handle)
                session.current_handle = handle
                self.wait_for_stability()
                return True
            if self._clock() >= deadline:
                return False
            self._sleep(SELECT_WINDOW_RETRY_MS / 1000)

    # Stability ---------------------------------------------------------------

    def wait_for_stability(self, max_wait_ms: Optional[int] = None) -> bool:
        session = self.ensure_ready()
        return self.detector.wait_for_stability(session.remote, session.capabilities, max_wait_ms)

    def is_load_complete(self) -> bool:
        session = self.ensure_ready()
        return self.detector.is_load_complete(session.remote)

    # Teardown ----------------------------------------------------------------

    def shutdown(self) -> None:
        """Quit the browser and forget every window. Safe to call repeatedly."""

        session = self._session
        self._session = None
        self.windows.attach(None)
        if session is None:
            return
        LOGGER.info("Shutting down '%s' browser for profile '%s'", session.kind.value, self.profile)
        try:
            session.remote.quit()
        except Exception:  # pragma: no cover
            LOGGER.exception("Error while quitting browser session %s", session.session_id)
        session.state = SessionState.CLOSED

    def _require_session(self) -> Session:
        if self._session is None:
            raise SessionUnavailable(f"No browser session for profile '{self.profile}'")
        return self._session
