from __future__ import annotations

import pytest

from browser_harness.errors import NoSuchSessionError, StaleWindowError
from browser_harness.session.windows import WindowHandleTracker, WindowSet

from fakes import FakeRemoteSession


def test_window_set_keeps_insertion_order_without_duplicates() -> None:
    windows = WindowSet(["a", "b", "a", "c"])

    assert windows.handles == ("a", "b", "c")
    assert windows.add("b") is False
    assert windows.add("") is False
    assert windows.latest() == "c"
    assert windows.most_recent_first() == ["c", "b", "a"]


def test_initial_handle_is_always_a_member() -> None:
    windows = WindowSet(["a"])
    windows.initial = "z"

    assert "z" in windows
    assert windows.handles == ("a", "z")

    windows.discard("z")
    assert windows.initial is None
    assert "z" not in windows


def test_reset_replaces_everything() -> None:
    windows = WindowSet(["a", "b"], initial="a")
    windows.reset("c")

    assert list(windows) == ["c"]
    assert windows.initial == "c"
    windows.clear()
    assert len(windows) == 0
    assert windows.initial is None


def test_resync_adds_live_handles_and_picks_initial() -> None:
    remote = FakeRemoteSession(windows=["main", "popup"])
    remote.current = "popup"
    tracker = WindowHandleTracker()
    tracker.attach(remote)

    tracker.resync()

    assert tracker.handles() == ["main", "popup"]
    assert tracker.initial == "popup"


def test_resync_falls_back_to_first_handle_when_current_is_gone() -> None:
    remote = FakeRemoteSession(windows=["main", "popup"])
    remote.handle_errors.append(StaleWindowError("no such window"))
    tracker = WindowHandleTracker()
    tracker.attach(remote)

    assert tracker.initial_handle() == "main"


def test_resync_clears_when_session_is_gone() -> None:
    remote = FakeRemoteSession(windows=["main"])
    tracker = WindowHandleTracker()
    tracker.attach(remote)
    tracker.seed("main")
    remote.quit()

    tracker.resync()

    assert tracker.handles() == []
    assert tracker.initial is None


def test_seed_keeps_tracked_handles() -> None:
    tracker = WindowHandleTracker()
    tracker.attach(FakeRemoteSession(windows=["a", "b"]))
    tracker.track("a")
    tracker.track("b")

    tracker.seed("b")

    assert tracker.handles() == ["a", "b"]
    assert tracker.initial == "b"


def test_remove_ignores_blank_handles() -> None:
    tracker = WindowHandleTracker()
    tracker.attach(FakeRemoteSession(windows=["a"]))
    tracker.seed("a")

    tracker.remove(None)
    tracker.remove("")
    assert tracker.handles() == ["a"]

    tracker.remove("a")
    assert tracker.handles() == []
    assert tracker.initial is None


def test_is_last_window_checks_live_and_cache() -> None:
    remote = FakeRemoteSession(windows=["a"])
    tracker = WindowHandleTracker()
    tracker.attach(remote)
    tracker.seed("a")
    assert tracker.is_last_window() is True

    tracker.track("b")
    assert tracker.is_last_window() is False


def test_tracker_requires_attached_session() -> None:
    tracker = WindowHandleTracker()

    with pytest.raises(NoSuchSessionError):
        tracker.resync()
