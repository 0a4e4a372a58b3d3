from pathlib import Path

import pytest

from browser_harness.config import HarnessConfig, ProfileConfig, load_config
from browser_harness.models import BrowserKind


def test_defaults() -> None:
    profile = ProfileConfig()

    assert profile.browser == BrowserKind.CHROME
    assert profile.poll_wait_ms == 30_000
    assert profile.page_load_timeout_ms == 15_000
    assert profile.min_stability_wait_ms == 400
    assert profile.stability_tolerance == 3
    assert profile.post_close_wait_ms == 2_000
    assert profile.explicit_wait is True
    assert profile.enforce_page_source_stability is False


def test_load_config_reads_env_file(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text(
        "\n".join(
            [
                "BROWSER_HARNESS_DEFAULT_PROFILE=ci",
                'BROWSER_HARNESS_PROFILES={"ci": {"browser": "firefoxheadless", "poll_wait_ms": 5000}}',
                "BROWSER_HARNESS_REPORTER=console",
            ]
        )
    )

    config = load_config(env_file=env_path)

    assert config.default_profile == "ci"
    assert config.profile().browser == BrowserKind.FIREFOX_HEADLESS
    assert config.profile().poll_wait_ms == 5000
    assert config.reporter == "console"


def test_load_config_prioritises_overrides(tmp_path: Path) -> None:
    env_path = tmp_path / ".env"
    env_path.write_text("BROWSER_HARNESS_REPORTER=console\n")

    config_path = tmp_path / "harness.yaml"
    config_path.write_text(
        "\n".join(
            [
                "profiles:",
                "  default:",
                "    browser: chromeheadless",
                "    poll_wait_ms: 10000",
                "  legacy:",
                "    browser: ie",
            ]
        )
    )

    config = load_config(
        config_path,
        env_file=env_path,
        profiles={"default": {"enforce_page_source_stability": True}},
    )

    default = config.profile("default")
    assert default.browser == BrowserKind.CHROME_HEADLESS
    assert default.poll_wait_ms == 10000
    assert default.enforce_page_source_stability is True
    assert config.profile("legacy").browser == BrowserKind.IE
    assert config.reporter == "console"


def test_unknown_profile_lists_known_ones() -> None:
    config = HarnessConfig(profiles={"a": ProfileConfig(), "b": ProfileConfig()})

    with pytest.raises(KeyError, match="configured profiles: a, b"):
        config.profile("c")


def test_negative_waits_rejected() -> None:
    with pytest.raises(ValueError):
        ProfileConfig(poll_wait_ms=-1)
