"""Scripted test definitions."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

COMMAND_TARGETS = ("web", "alert")


class TestStep(BaseModel):
    """One command invocation, e.g. ``web.click`` with its arguments."""

    __test__ = False

    command: str
    args: list[Any] = Field(default_factory=list)
    description: Optional[str] = None

    @field_validator("command")
    @classmethod
    def _validate_command(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("command must not be blank")
        if "." not in value:
            value = f"web.{value}"
        target, _, name = value.partition(".")
        if target not in COMMAND_TARGETS:
            raise ValueError(
                f"unknown command target '{target}'; expected one of {', '.join(COMMAND_TARGETS)}"
            )
        if not name or name.startswith("_"):
            raise ValueError(f"invalid command name '{value}'")
        return value

    @property
    def target(self) -> str:
        return self.command.partition(".")[0]

    @property
    def name(self) -> str:
        return self.command.partition(".")[2]

    def string_args(self) -> list[Optional[str]]:
        return [None if arg is None else str(arg) for arg in self.args]


class TestScript(BaseModel):
    """An ordered list of steps executed against one profile."""

    __test__ = False

    name: str = "script"
    profile: Optional[str] = None
    stop_on_failure: bool = True
    steps: list[TestStep] = Field(default_factory=list)


def load_script(path: Path) -> TestScript:
    """Read a YAML test script."""

    data = yaml.safe_load(path.read_text()) or {}
    if isinstance(data, list):
        data = {"name": path.stem, "steps": data}
    data.setdefault("name", path.stem)
    return TestScript.model_validate(data)
