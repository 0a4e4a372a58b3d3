"""Commands that handle native JavaScript dialogs."""

from __future__ import annotations

import enum
import logging
from typing import Optional

from ..models import StepResult
from ..session.controller import SessionController

LOGGER = logging.getLogger(__name__)


class MatchBy(str, enum.Enum):
    EXACT = "exact"
    CONTAINS = "contains"
    START = "start"
    END = "end"


def _matches(actual: str, expected: str, match_by: MatchBy) -> bool:
    if match_by == MatchBy.CONTAINS:
        return expected in actual
    if match_by == MatchBy.START:
        return actual.startswith(expected)
    if match_by == MatchBy.END:
        return actual.endswith(expected)
    return actual == expected


class AlertCommands:
    """Accept, dismiss and inspect dialogs raised by the page."""

    def __init__(self, controller: SessionController) -> None:
        self._controller = controller
        self.last_text: Optional[str] = None

    def _pending_text(self) -> Optional[str]:
        session = self._controller.ensure_ready()
        probe = session.remote.probe_dialog()
        if probe.is_failure:
            LOGGER.warning("Unable to inspect dialog: %s", probe.error)
            return None
        if not probe.found:
            return None
        self.last_text = probe.value or ""
        return self.last_text

    def accept(self) -> StepResult:
        text = self._pending_text()
        if text is None:
            return StepResult.failed("No dialog found")
        self._controller.ensure_ready().remote.accept_dialog()
        return StepResult.passed(f"dialog '{text}' accepted")

    def dismiss(self) -> StepResult:
        text = self._pending_text()
        if text is None:
            return StepResult.failed("No dialog found")
        self._controller.ensure_ready().remote.dismiss_dialog()
        return StepResult.passed(f"dialog '{text}' dismissed")

    def reply_ok(self, text: str) -> StepResult:
        """Type ``text`` into a prompt dialog and accept it."""

        if self._pending_text() is None:
            return StepResult.failed("No dialog found")
        self._controller.ensure_ready().remote.accept_dialog(text)
        return StepResult.passed(f"replied '{text}' to dialog")

    def assert_present(self) -> StepResult:
        if self._pending_text() is None:
            return StepResult.failed("EXPECTED dialog not found")
        return StepResult.passed("EXPECTED dialog found")

    def assert_text(self, text: str, match_by: str = MatchBy.EXACT.value) -> StepResult:
        try:
            mode = MatchBy(str(match_by).strip().lower())
        except ValueError:
            raise ValueError(
                f"invalid match_by: {match_by!r}; expected one of "
                + ", ".join(item.value for item in MatchBy)
            ) from None
        actual = self._pending_text()
        if actual is None:
            actual = self.last_text
        if actual is None:
            return StepResult.failed("No dialog text available")
        if _matches(actual, text, mode):
            return StepResult.passed(f"dialog text matched '{text}' ({mode.value})")
        return StepResult.failed(f"dialog text '{actual}' did not match '{text}' ({mode.value})")
