from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from browser_harness.config import HarnessConfig, ProfileConfig
from browser_harness.factory import build_reporter
from browser_harness.models import ReportEvent, ReportLevel, StepStatus
from browser_harness.notifications.base import CompositeReporter, ConsoleReporter, Reporter
from browser_harness.orchestrator.runner import ScriptRunner
from browser_harness.orchestrator.script import TestScript, TestStep, load_script
from browser_harness.session.registry import SessionRegistry

from fakes import FakeElement, FakeEndpoint, FakeRemoteSession


class CollectingReporter(Reporter):
    def __init__(self) -> None:
        self.events: list[ReportEvent] = []

    def report(self, event: ReportEvent) -> None:
        self.events.append(event)


def _runner(remote: FakeRemoteSession, **settings) -> tuple[ScriptRunner, CollectingReporter]:
    config = HarnessConfig(profiles={"default": ProfileConfig(poll_wait_ms=0, **settings)})
    registry = SessionRegistry(config, lambda _: FakeEndpoint([remote]), shutdown_at_exit=False)
    reporter = CollectingReporter()
    return ScriptRunner(registry, reporter), reporter


def _script(*steps: dict, stop_on_failure: bool = True) -> TestScript:
    return TestScript.model_validate(
        {"name": "login", "stop_on_failure": stop_on_failure, "steps": list(steps)}
    )


def test_step_command_defaults_to_web() -> None:
    step = TestStep(command="click", args=["css=#go"])

    assert step.command == "web.click"
    assert step.target == "web"
    assert step.name == "click"


@pytest.mark.parametrize("command", ["", "db.query", "web._find", "web."])
def test_step_rejects_invalid_commands(command: str) -> None:
    with pytest.raises(ValidationError):
        TestStep(command=command)


def test_load_script_reads_yaml(tmp_path: Path) -> None:
    path = tmp_path / "smoke.yaml"
    path.write_text(
        "\n".join(
            [
                "profile: default",
                "stop_on_failure: false",
                "steps:",
                "  - command: open",
                "    args: [https://example.com]",
                "  - command: web.assert_element_count",
                "    args: ['css=li', 3]",
                "    description: three items",
            ]
        )
    )

    script = load_script(path)

    assert script.name == "smoke"
    assert script.stop_on_failure is False
    assert [step.command for step in script.steps] == ["web.open", "web.assert_element_count"]
    assert script.steps[1].string_args() == ["css=li", "3"]


def test_runner_executes_steps_and_shuts_down() -> None:
    remote = FakeRemoteSession()
    remote.elements["css=#go"] = [FakeElement()]
    remote.page_title = "Home"
    runner, reporter = _runner(remote)

    summary = runner.run(
        _script(
            {"command": "open", "args": ["https://example.com"]},
            {"command": "web.click", "args": ["css=#go"]},
            {"command": "assert_title", "args": ["Home"]},
        )
    )

    assert summary.success
    assert summary.passed == 3
    assert [result.command for result in summary.results] == [
        "web.open",
        "web.click",
        "web.assert_title",
    ]
    assert remote.quit_called
    assert reporter.events[0].type == "script_started"
    assert reporter.events[-1].type == "script_finished"
    assert reporter.events[-1].level == ReportLevel.SUCCESS


def test_runner_stops_on_failure() -> None:
    remote = FakeRemoteSession()
    runner, reporter = _runner(remote)

    summary = runner.run(
        _script(
            {"command": "assert_element_present", "args": ["css=#missing"]},
            {"command": "open", "args": ["https://example.com"]},
        )
    )

    assert not summary.success
    assert [result.status for result in summary.results] == [StepStatus.FAIL, StepStatus.SKIPPED]
    assert remote.navigated == []
    assert reporter.events[-1].level == ReportLevel.ERROR


def test_runner_converts_errors_to_failures() -> None:
    remote = FakeRemoteSession()
    runner, _ = _runner(remote)

    summary = runner.run(
        _script(
            {"command": "click", "args": ["css=#missing"]},
            {"command": "assert_element_count", "args": ["css=li", "lots"]},
            {"command": "alert.accept"},
            {"command": "web.no_such_command"},
            {"command": "web.find_elements", "args": ["css=li"]},
            {"command": "web.open"},
            stop_on_failure=False,
        )
    )

    assert summary.failed == 6
    messages = [result.message for result in summary.results]
    assert messages[0].startswith("NoSuchElementError")
    assert messages[1].startswith("ValueError")
    assert messages[2] == "No dialog found"
    assert messages[3] == "unknown command 'web.no_such_command'"
    assert messages[4] == "unknown command 'web.find_elements'"
    assert messages[5].startswith("invalid arguments for 'web.open'")


def test_composite_reporter_fans_out() -> None:
    first, second = CollectingReporter(), CollectingReporter()
    event = ReportEvent(type="step_result", message="ok")

    CompositeReporter([first, second]).report(event)

    assert first.events == [event]
    assert second.events == [event]


def test_build_reporter_fans_out_to_channels() -> None:
    assert isinstance(build_reporter(HarnessConfig()), ConsoleReporter)
    assert isinstance(build_reporter(HarnessConfig(reporter="console, console")), CompositeReporter)

    with pytest.raises(ValueError, match="Unsupported reporter: slack"):
        build_reporter(HarnessConfig(reporter="console,slack"))
