"""Window and tab handle bookkeeping for a browser session."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import Optional

from ..endpoint.base import RemoteSession
from ..errors import EndpointError, NoSuchSessionError

LOGGER = logging.getLogger(__name__)


class WindowSet:
    """Insertion-ordered, duplicate-free window handles plus an initial handle.

    The initial handle, when set, is always a member of the set.
    """

    def __init__(self, handles: Iterable[str] = (), initial: Optional[str] = None) -> None:
        self._handles: dict[str, None] = {}
        self._initial: Optional[str] = None
        self.extend(handles)
        if initial is not None:
            self.initial = initial

    def __contains__(self, handle: object) -> bool:
        return handle in self._handles

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))

    def __len__(self) -> int:
        return len(self._handles)

    def __repr__(self) -> str:
        return f"WindowSet({list(self._handles)!r}, initial={self._initial!r})"

    @property
    def handles(self) -> tuple[str, ...]:
        return tuple(self._handles)

    @property
    def initial(self) -> Optional[str]:
        return self._initial

    @initial.setter
    def initial(self, handle: Optional[str]) -> None:
        if handle:
            self.add(handle)
            self._initial = handle
        else:
            self._initial = None

    def add(self, handle: str) -> bool:
        """Append ``handle``; return False when it was already known."""

        if not handle or handle in self._handles:
            return False
        self._handles[handle] = None
        return True

    def extend(self, handles: Iterable[str]) -> None:
        for handle in handles:
            self.add(handle)

    def discard(self, handle: str) -> bool:
        """Drop ``handle``; clear the initial designation when it pointed there."""

        if handle not in self._handles:
            return False
        del self._handles[handle]
        if handle == self._initial:
            self._initial = None
        return True

    def latest(self) -> Optional[str]:
        """Most recently added handle."""

        return next(reversed(self._handles), None)

    def most_recent_first(self) -> list[str]:
        return list(reversed(self._handles))

    def reset(self, initial: Optional[str] = None) -> None:
        self._handles.clear()
        self._initial = None
        if initial:
            self.initial = initial

    def clear(self) -> None:
        self.reset()


class WindowHandleTracker:
    """Keep a :class:`WindowSet` consistent with the live session."""

    def __init__(self, windows: Optional[WindowSet] = None) -> None:
        self._windows = windows if windows is not None else WindowSet()
        self._remote: Optional[RemoteSession] = None

    @property
    def windows(self) -> WindowSet:
        return self._windows

    @property
    def initial(self) -> Optional[str]:
        return self._windows.initial

    def attach(self, remote: Optional[RemoteSession]) -> None:
        """Bind to a new live session and forget every known handle."""

        self._remote = remote
        self._windows.clear()

    def _require_remote(self) -> RemoteSession:
        if self._remote is None:
            raise NoSuchSessionError("No browser session attached to the window tracker")
        return self._remote

    def seed(self, handle: str) -> None:
        """Record ``handle`` as the initial window, tracking it if unknown."""

        self._windows.initial = handle

    def track(self, handle: str) -> None:
        """Remember ``handle`` as a focused window."""

        self._windows.add(handle)

    def adopt(self, handles: Iterable[str], initial: str) -> None:
        """Track live ``handles`` and make ``initial`` the initial window."""

        self._windows.extend(handles)
        self._windows.initial = initial

    def latest(self) -> Optional[str]:
        return self._windows.latest()

    def most_recent_first(self) -> list[str]:
        return self._windows.most_recent_first()

    def handles(self) -> list[str]:
        return list(self._windows)

    def resync(self) -> None:
        """Add every live handle and re-establish the initial handle if missing."""

        remote = self._require_remote()
        try:
            self._windows.extend(remote.window_handles())
            if self._windows.initial is None:
                try:
                    initial: Optional[str] = remote.current_window_handle()
                except EndpointError as exc:
                    LOGGER.debug("Current window unavailable during resync: %s", exc)
                    initial = next(iter(self._windows), None)
                self._windows.initial = initial
        except NoSuchSessionError as exc:
            # the last (or only) window was closed
            LOGGER.error("Unable to resync window handles: %s", exc)
            self._windows.clear()

    def initial_handle(self) -> Optional[str]:
        self.resync()
        return self._windows.initial

    def remove(self, handle: Optional[str]) -> None:
        """Forget ``handle``; an initial handle is re-picked on the next resync."""

        if not handle:
            return
        self._windows.discard(handle)

    def is_last_window(self) -> bool:
        """True when both the live session and the cache know at most one window."""

        remote = self._require_remote()
        return len(remote.window_handles()) <= 1 and len(self._windows) <= 1

    def clear(self) -> None:
        self._windows.clear()
