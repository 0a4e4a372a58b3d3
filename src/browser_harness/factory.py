"""Factories for constructing components from configuration."""

from __future__ import annotations

from .config import HarnessConfig, ProfileConfig
from .endpoint.base import AutomationEndpoint
from .endpoint.playwright import PlaywrightEndpoint
from .endpoint.webdriver import SeleniumEndpoint
from .notifications.base import CompositeReporter, ConsoleReporter, Reporter
from .session.registry import SessionRegistry


def build_endpoint(settings: ProfileConfig) -> AutomationEndpoint:
    backend = settings.endpoint.lower()
    if backend in {"selenium", "webdriver"}:
        return SeleniumEndpoint()
    if backend == "playwright":
        return PlaywrightEndpoint()
    raise ValueError(f"Unsupported automation endpoint: {settings.endpoint}")


def build_registry(config: HarnessConfig) -> SessionRegistry:
    return SessionRegistry(config, build_endpoint)


def build_reporter(config: HarnessConfig) -> Reporter:
    channels = [channel.strip().lower() for channel in config.reporter.split(",") if channel.strip()]
    reporters: list[Reporter] = []
    for channel in channels:
        if channel == "console":
            reporters.append(ConsoleReporter())
        else:
            raise ValueError(f"Unsupported reporter: {channel}")
    if not reporters:
        raise ValueError(f"Unsupported reporter: {config.reporter!r}")
    if len(reporters) == 1:
        return reporters[0]
    return CompositeReporter(reporters)
