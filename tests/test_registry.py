from __future__ import annotations

import threading

import pytest

from browser_harness.config import HarnessConfig, ProfileConfig
from browser_harness.models import BrowserKind
from browser_harness.session.registry import SessionRegistry

from fakes import FakeEndpoint


def _config() -> HarnessConfig:
    return HarnessConfig(
        profiles={
            "default": ProfileConfig(),
            "mobile": ProfileConfig(browser=BrowserKind.FIREFOX_HEADLESS),
        }
    )


def test_controller_created_once_per_profile() -> None:
    endpoints: list[FakeEndpoint] = []

    def factory(settings: ProfileConfig) -> FakeEndpoint:
        endpoint = FakeEndpoint()
        endpoints.append(endpoint)
        return endpoint

    registry = SessionRegistry(_config(), factory, shutdown_at_exit=False)

    default = registry.controller()
    assert registry.controller("default") is default
    mobile = registry.controller("mobile")

    assert mobile is not default
    assert mobile.target_kind == BrowserKind.FIREFOX_HEADLESS
    assert len(endpoints) == 2
    assert sorted(registry.profiles()) == ["default", "mobile"]


def test_unknown_profile_raises_key_error() -> None:
    registry = SessionRegistry(_config(), lambda _: FakeEndpoint(), shutdown_at_exit=False)

    with pytest.raises(KeyError, match="configured profiles: default, mobile"):
        registry.controller("tablet")


def test_shutdown_all_quits_every_browser() -> None:
    registry = SessionRegistry(_config(), lambda _: FakeEndpoint(), shutdown_at_exit=False)
    sessions = [registry.controller(name).ensure_ready() for name in ("default", "mobile")]

    registry.shutdown_all()

    assert all(session.remote.quit_called for session in sessions)
    assert registry.profiles() == []


def test_shutdown_single_profile() -> None:
    registry = SessionRegistry(_config(), lambda _: FakeEndpoint(), shutdown_at_exit=False)
    session = registry.controller("mobile").ensure_ready()
    registry.controller("default")

    registry.shutdown("mobile")
    registry.shutdown("unknown")

    assert session.remote.quit_called
    assert registry.profiles() == ["default"]


def test_concurrent_lookups_share_controller() -> None:
    registry = SessionRegistry(_config(), lambda _: FakeEndpoint(), shutdown_at_exit=False)
    seen = []

    def lookup() -> None:
        seen.append(registry.controller("default"))

    threads = [threading.Thread(target=lookup) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len({id(controller) for controller in seen}) == 1


def test_shutdown_registered_at_exit(monkeypatch) -> None:
    registered = []
    monkeypatch.setattr("browser_harness.session.registry.atexit.register", registered.append)

    registry = SessionRegistry(_config(), lambda _: FakeEndpoint())

    assert registered == [registry.shutdown_all]


def test_shutdown_all_releases_exit_hook(monkeypatch) -> None:
    registered, released = [], []
    monkeypatch.setattr("browser_harness.session.registry.atexit.register", registered.append)
    monkeypatch.setattr("browser_harness.session.registry.atexit.unregister", released.append)

    registry = SessionRegistry(_config(), lambda _: FakeEndpoint())
    registry.shutdown_all()
    registry.shutdown_all()

    assert released == registered == [registry.shutdown_all]
