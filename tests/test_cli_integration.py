from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from browser_harness.cli import app
from browser_harness.config import HarnessConfig, ProfileConfig
from browser_harness.models import BrowserKind, StepResult
from browser_harness.orchestrator.runner import ExecutionSummary


def _write_script(tmp_path: Path) -> Path:
    script_path = tmp_path / "smoke.yaml"
    script_path.write_text(
        "\n".join(
            [
                "steps:",
                "  - command: open",
                "    args: [https://example.com]",
            ]
        )
    )
    return script_path


def _make_runner(state: dict[str, object], success: bool):
    class DummyRunner:
        def __init__(self, registry, reporter):  # type: ignore[no-untyped-def]
            state["registry"] = registry
            state["reporter"] = reporter
            state["run_calls"] = 0

        def run(self, script) -> ExecutionSummary:  # type: ignore[no-untyped-def]
            state["run_calls"] += 1
            state["script"] = script
            result = StepResult.passed("ok") if success else StepResult.failed("boom")
            return ExecutionSummary(script=script.name, results=[result])

    return DummyRunner


def test_run_command_success(monkeypatch, tmp_path):
    runner = CliRunner()
    script_path = _write_script(tmp_path)
    config_path = tmp_path / "harness.yaml"
    config_path.write_text("profiles: {}\n")
    env_file = tmp_path / "vars.env"
    env_file.write_text("TOKEN=test\n")

    load_calls: list[dict[str, object]] = []

    def fake_load_config(path, *, env_file=None, **overrides):  # type: ignore[no-untyped-def]
        load_calls.append({"path": path, "env_file": env_file, "overrides": overrides})
        profile = overrides.get("profiles", {}).get("ci", {})
        return HarnessConfig(profiles={"ci": ProfileConfig(**profile)})

    monkeypatch.setattr("browser_harness.cli.load_config", fake_load_config)
    monkeypatch.setattr("browser_harness.cli.build_registry", lambda config: ("registry", config))
    monkeypatch.setattr("browser_harness.cli.build_reporter", lambda config: "reporter-stub")
    state: dict[str, object] = {}
    monkeypatch.setattr("browser_harness.cli.ScriptRunner", _make_runner(state, success=True))

    result = runner.invoke(
        app,
        [
            "run",
            "--script",
            str(script_path),
            "--config",
            str(config_path),
            "--env-file",
            str(env_file),
            "--profile",
            "ci",
            "--browser",
            "firefoxheadless",
            "--endpoint",
            "playwright",
            "--strict-stability",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "Loaded script 'smoke' for profile 'ci'" in result.stdout
    assert "Script completed successfully." in result.stdout

    assert load_calls[0] == {"path": config_path, "env_file": env_file, "overrides": {}}
    assert load_calls[-1]["overrides"] == {
        "profiles": {
            "ci": {
                "browser": BrowserKind.FIREFOX_HEADLESS,
                "endpoint": "playwright",
                "enforce_page_source_stability": True,
            }
        }
    }
    registry_tag, config = state["registry"]
    assert registry_tag == "registry"
    assert config.profile("ci").endpoint == "playwright"
    assert state["reporter"] == "reporter-stub"
    assert state["script"].profile == "ci"
    assert state["run_calls"] == 1


def test_run_command_failure(monkeypatch, tmp_path):
    runner = CliRunner()
    script_path = _write_script(tmp_path)

    monkeypatch.setattr("browser_harness.cli.load_config", lambda *_, **__: HarnessConfig())
    monkeypatch.setattr("browser_harness.cli.build_registry", lambda _: "registry-stub")
    monkeypatch.setattr("browser_harness.cli.build_reporter", lambda _: "reporter-stub")
    state: dict[str, object] = {}
    monkeypatch.setattr("browser_harness.cli.ScriptRunner", _make_runner(state, success=False))

    result = runner.invoke(app, ["run", "-s", str(script_path)])

    assert result.exit_code == 1
    assert "Script completed successfully." not in result.stdout
    assert state["run_calls"] == 1


def test_run_command_unknown_profile(monkeypatch, tmp_path):
    runner = CliRunner()
    script_path = _write_script(tmp_path)

    monkeypatch.setattr("browser_harness.cli.load_config", lambda *_, **__: HarnessConfig())
    state: dict[str, object] = {}
    monkeypatch.setattr("browser_harness.cli.ScriptRunner", _make_runner(state, success=True))

    result = runner.invoke(app, ["run", "-s", str(script_path), "--profile", "missing"])

    assert result.exit_code == 2
    assert "run_calls" not in state


def test_parse_locator_command():
    runner = CliRunner()

    result = runner.invoke(app, ["parse-locator", ".//div[@id='x']"])
    assert result.exit_code == 0
    assert result.stdout.strip() == "xpath\t//div[@id='x']"

    result = runner.invoke(app, ["parse-locator", ".//div", "--relative"])
    assert result.stdout.strip() == "xpath\t.//div"

    result = runner.invoke(app, ["parse-locator", "button", "--strict"])
    assert result.exit_code == 2


def test_version_command():
    result = CliRunner().invoke(app, ["version"])

    assert result.exit_code == 0
    assert result.stdout.strip()
