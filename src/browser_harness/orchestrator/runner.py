"""Runner that executes scripted steps against a browser session."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field

from ..commands.alert import AlertCommands
from ..commands.web import WebCommands
from ..errors import HarnessError
from ..models import ReportEvent, ReportLevel, StepResult, StepStatus
from ..notifications.base import Reporter
from ..session.registry import SessionRegistry
from .script import TestScript, TestStep

LOGGER = logging.getLogger(__name__)


class ExecutionSummary(BaseModel):
    """Results collected while running one script."""

    script: str
    results: list[StepResult] = Field(default_factory=list)
    aborted: bool = False

    def count(self, status: StepStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def passed(self) -> int:
        return self.count(StepStatus.PASS)

    @property
    def failed(self) -> int:
        return self.count(StepStatus.FAIL)

    @property
    def skipped(self) -> int:
        return self.count(StepStatus.SKIPPED)

    @property
    def success(self) -> bool:
        return not self.aborted and self.failed == 0


class ScriptRunner:
    """Dispatch script steps to the web and alert commands of one profile."""

    def __init__(self, registry: SessionRegistry, reporter: Reporter) -> None:
        self._registry = registry
        self._reporter = reporter

    def run(self, script: TestScript) -> ExecutionSummary:
        """Run ``script`` and shut every browser down afterwards."""

        summary = ExecutionSummary(script=script.name)
        LOGGER.info("Starting script '%s' with %s step(s)", script.name, len(script.steps))
        self._reporter.report(
            ReportEvent(
                type="script_started",
                message=f"Starting script: {script.name}",
                data={"profile": script.profile or self._registry.config.default_profile},
            )
        )
        try:
            controller = self._registry.controller(script.profile)
            targets: dict[str, Any] = {
                "web": WebCommands(controller),
                "alert": AlertCommands(controller),
            }
            for index, step in enumerate(script.steps, start=1):
                result = self._execute(targets, step)
                summary.results.append(result)
                self._report_step(index, step, result)
                if result.status == StepStatus.FAIL and script.stop_on_failure:
                    remaining = script.steps[index:]
                    for skipped in remaining:
                        summary.results.append(
                            StepResult(
                                status=StepStatus.SKIPPED,
                                message="skipped after earlier failure",
                                command=skipped.command,
                            )
                        )
                    if remaining:
                        LOGGER.info("Skipping %s step(s) after failure", len(remaining))
                    break
        except Exception as exc:  # pragma: no cover
            LOGGER.exception("Unhandled error while running script '%s'", script.name)
            summary.aborted = True
            self._reporter.report(
                ReportEvent(type="script_error", message=str(exc), level=ReportLevel.ERROR)
            )
        finally:
            self._registry.shutdown_all()

        self._reporter.report(
            ReportEvent(
                type="script_finished",
                message=(
                    f"Script '{script.name}' finished: {summary.passed} passed, "
                    f"{summary.failed} failed, {summary.skipped} skipped"
                ),
                level=ReportLevel.SUCCESS if summary.success else ReportLevel.ERROR,
            )
        )
        return summary

    def _execute(self, targets: dict[str, Any], step: TestStep) -> StepResult:
        method = self._resolve(targets, step)
        if method is None:
            return self._tag(StepResult.failed(f"unknown command '{step.command}'"), step)
        args = step.string_args()
        try:
            inspect.signature(method).bind(*args)
        except TypeError as exc:
            return self._tag(StepResult.failed(f"invalid arguments for '{step.command}': {exc}"), step)

        LOGGER.debug("Executing %s with %s", step.command, args)
        try:
            result = method(*args)
        except (HarnessError, ValueError) as exc:
            LOGGER.error("Step %s failed: %s", step.command, exc)
            result = StepResult.failed(f"{type(exc).__name__}: {exc}")
        return self._tag(result, step)

    @staticmethod
    def _resolve(targets: dict[str, Any], step: TestStep) -> Optional[Callable[..., StepResult]]:
        target = targets.get(step.target)
        if target is None or step.name.startswith("_"):
            return None
        method = getattr(target, step.name, None)
        if not callable(method) or isinstance(getattr(type(target), step.name, None), property):
            return None
        # only methods reporting a step result are commands
        if inspect.signature(method).return_annotation not in (StepResult, "StepResult"):
            return None
        return method

    @staticmethod
    def _tag(result: StepResult, step: TestStep) -> StepResult:
        return result.model_copy(update={"command": step.command})

    def _report_step(self, index: int, step: TestStep, result: StepResult) -> None:
        level = {
            StepStatus.PASS: ReportLevel.SUCCESS,
            StepStatus.FAIL: ReportLevel.ERROR,
            StepStatus.SKIPPED: ReportLevel.WARNING,
        }[result.status]
        label = step.description or step.command
        self._reporter.report(
            ReportEvent(
                type="step_result",
                message=f"#{index} {label}: {result.message}",
                level=level,
                data={"command": step.command, "status": result.status.value},
            )
        )
