"""Configuration models for the browser harness."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import BrowserKind


class ProfileConfig(BaseModel):
    """Settings for one automation channel (one browser instance)."""

    browser: BrowserKind = BrowserKind.CHROME
    endpoint: str = Field(default="selenium", description="Automation backend: selenium or playwright.")
    remote_url: Optional[str] = Field(
        default=None,
        description="Remote WebDriver URL; required by cloud browser kinds.",
    )
    driver_path: Optional[Path] = None
    binary_path: Optional[Path] = None
    profile_path: Optional[Path] = None
    browser_args: list[str] = Field(default_factory=list)
    incognito: bool = False
    window_width: Optional[int] = None
    window_height: Optional[int] = None

    poll_wait_ms: int = Field(default=30_000, ge=0)
    page_load_timeout_ms: int = Field(default=15_000, ge=0)
    explicit_wait: bool = Field(
        default=True,
        description="Poll for elements explicitly instead of relying on the driver's implicit wait.",
    )
    enforce_page_source_stability: bool = False
    stability_tolerance: int = Field(
        default=3,
        ge=1,
        description="Consecutive identical page captures required to call a page stable.",
    )
    min_stability_wait_ms: int = Field(default=400, ge=1)
    ready_state_poll_ms: int = Field(default=50, ge=1)
    alert_ignore: bool = False
    preemptive_alert_check: bool = False
    post_close_wait_ms: int = Field(default=2_000, ge=0)
    strict_locators: bool = Field(
        default=False,
        description="Reject unprefixed, non-XPath locators instead of treating them as tag names.",
    )


class HarnessConfig(BaseSettings):
    """Top-level configuration for a harness run."""

    model_config = SettingsConfigDict(
        env_prefix="BROWSER_HARNESS_",
        env_file=(".env",),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    default_profile: str = "default"
    reporter: str = Field(default="console", description="Comma-separated step reporting channels.")
    profiles: dict[str, ProfileConfig] = Field(
        default_factory=lambda: {"default": ProfileConfig()}
    )

    def profile(self, name: Optional[str] = None) -> ProfileConfig:
        """Return the settings of ``name`` (or of the default profile)."""

        key = name or self.default_profile
        try:
            return self.profiles[key]
        except KeyError:
            known = ", ".join(sorted(self.profiles)) or "<none>"
            raise KeyError(f"Unknown profile '{key}'; configured profiles: {known}") from None


def load_config(
    path: Path | None = None,
    *,
    env_file: Path | None = None,
    **overrides: object,
) -> HarnessConfig:
    """Load configuration from an optional file and overrides."""

    data: dict[str, Any] = {}
    if path:
        import yaml

        data = yaml.safe_load(path.read_text()) or {}
    if overrides:
        _deep_update(data, overrides)
    settings_kwargs: dict[str, object] = {}
    if env_file is not None:
        settings_kwargs["_env_file"] = env_file
    config = HarnessConfig(**data, **settings_kwargs)
    if not data:
        return config

    merged = config.model_dump(mode="python")
    _deep_update(merged, data)
    return HarnessConfig.model_validate(merged)


def _deep_update(target: dict[str, Any], updates: Mapping[str, Any]) -> None:
    """Recursively merge ``updates`` into ``target`` in-place."""

    for key, value in updates.items():
        if (
            isinstance(value, Mapping)
            and isinstance(existing := target.get(key), Mapping)
        ):
            nested: dict[str, Any]
            if isinstance(existing, dict):
                nested = existing
            else:
                nested = dict(existing)
            _deep_update(nested, value)
            target[key] = nested
        else:
            target[key] = value
