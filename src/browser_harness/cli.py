"""Command line interface for browser-harness."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer

from .config import load_config
from .errors import LocatorSyntaxError
from .factory import build_registry, build_reporter
from .locator import parse_locator
from .models import BrowserKind
from .orchestrator.runner import ScriptRunner
from .orchestrator.script import load_script

app = typer.Typer(help="Browser Harness entry point")


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("browser-harness"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command("parse-locator")
def parse_locator_command(
    locator: Annotated[str, typer.Argument(help="Locator to parse, e.g. css=#login.")],
    relative: Annotated[
        bool,
        typer.Option("--relative", help="Keep relative XPath untouched."),
    ] = False,
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Reject locators without a known prefix."),
    ] = False,
) -> None:
    """Show how a locator is interpreted."""

    try:
        spec = parse_locator(locator, allow_relative=relative, strict=strict)
    except LocatorSyntaxError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2) from exc
    typer.echo(f"{spec.strategy.value}\t{spec.value}")


@app.command()
def run(
    script_path: Annotated[
        Path,
        typer.Option("--script", "-s", help="Path to the YAML test script."),
    ],
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
    profile: Annotated[
        Optional[str],
        typer.Option("--profile", help="Profile to run the script against."),
    ] = None,
    browser: Annotated[
        Optional[BrowserKind],
        typer.Option("--browser", help="Override the browser of the profile."),
    ] = None,
    endpoint: Annotated[
        Optional[str],
        typer.Option("--endpoint", help="Automation backend: selenium or playwright."),
    ] = None,
    strict_stability: Annotated[
        Optional[bool],
        typer.Option(
            "--strict-stability/--fast-stability",
            help="Require identical page captures before a page counts as stable.",
        ),
    ] = None,
) -> None:
    """Run a scripted browser test."""

    script = load_script(script_path)
    if profile:
        script = script.model_copy(update={"profile": profile})

    config = load_config(config_path, env_file=env_file)
    target = script.profile or config.default_profile
    profile_overrides: dict[str, Any] = {}
    if browser is not None:
        profile_overrides["browser"] = browser
    if endpoint is not None:
        profile_overrides["endpoint"] = endpoint
    if strict_stability is not None:
        profile_overrides["enforce_page_source_stability"] = strict_stability
    if profile_overrides:
        config = load_config(
            config_path,
            env_file=env_file,
            profiles={target: profile_overrides},
        )

    try:
        config.profile(target)
    except KeyError as exc:
        typer.echo(exc.args[0], err=True)
        raise typer.Exit(code=2) from exc

    typer.echo(f"Loaded script '{script.name}' for profile '{target}'")
    runner = ScriptRunner(build_registry(config), build_reporter(config))
    summary = runner.run(script)
    if not summary.success:
        raise typer.Exit(code=1)
    typer.echo("Script completed successfully.")


if __name__ == "__main__":
    app()
