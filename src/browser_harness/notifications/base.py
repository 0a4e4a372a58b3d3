"""Reporting channels for script runs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from rich.console import Console

from ..models import ReportEvent


class Reporter(ABC):
    """Interface for publishing events about a script run."""

    @abstractmethod
    def report(self, event: ReportEvent) -> None:
        """Publish a report event."""


class ConsoleReporter(Reporter):
    """Print events to the console using Rich."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    def report(self, event: ReportEvent) -> None:
        style = {
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
            "success": "green",
        }.get(event.level.value, "white")
        self._console.print(f"[{event.level.value.upper()}] {event.message}", style=style, markup=False)
        if event.data:
            self._console.print(event.data, style="dim")


class CompositeReporter(Reporter):
    """Fan-out reporter that forwards events to several reporters."""

    def __init__(self, reporters: Iterable[Reporter]) -> None:
        self._reporters = list(reporters)

    def report(self, event: ReportEvent) -> None:
        for reporter in self._reporters:
            reporter.report(event)
