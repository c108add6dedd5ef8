"""Typer-based diagnostic command line interface for the Orchestrator client."""

import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.json import JSON
from rich.logging import RichHandler

from silverpeak_orchestrator import __version__
from silverpeak_orchestrator.commands.address_groups import addressgroup_app
from silverpeak_orchestrator.config import Settings
from silverpeak_orchestrator.connection import (
    ApiKeyOption,
    InsecureOption,
    PasswordOption,
    ServerOption,
    TimeoutOption,
    UserOption,
    connection_params,
)
from silverpeak_orchestrator.endpoints import is_modern_version
from silverpeak_orchestrator.errors import OrchestratorError
from silverpeak_orchestrator.factory import create_client

app = typer.Typer(
    no_args_is_help=True,
    help="Diagnostic CLI for the Silverpeak Orchestrator REST API client.",
)
app.add_typer(addressgroup_app, name="addressgroup")
console = Console()


def _render(payload: Any) -> None:
    """Render API payloads in a readable JSON format."""

    console.print(JSON.from_data(payload))


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def common_options(
    ctx: typer.Context,
    env_file: Path | None = typer.Option(
        None,
        "--env-file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        help="Optional .env file with SILVERPEAK_* variables.",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Logging level, e.g. DEBUG or INFO. Defaults to SILVERPEAK_LOG_LEVEL.",
    ),
) -> None:
    """Load shared configuration for all commands."""

    settings = Settings.from_env_file(env_file)
    _configure_logging(log_level or settings.log_level)
    ctx.obj = {"settings": settings}


@app.command("version")
def show_version() -> None:
    """Show the installed silverpeak-orchestrator version."""

    console.print(f"silverpeak-orchestrator {__version__}")


@app.command("test-connection")
def test_connection(
    ctx: typer.Context,
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    api_key: ApiKeyOption = None,
    timeout: TimeoutOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Validate authentication and report the Orchestrator version."""

    settings: Settings = ctx.obj["settings"]
    params = connection_params(settings, server, user, password, api_key, timeout, insecure)

    try:
        with create_client(params) as client:
            version = client.get_version()
            modern = is_modern_version(version)
    except OrchestratorError as exc:
        console.print(f"API request failed: {exc}", style="bold red")
        raise typer.Exit(code=1) from exc

    _render({"version": version, "endpointStyle": "modern" if modern else "legacy"})


@app.command("templategroup-appliances")
def templategroup_appliances(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Template group name.")],
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    api_key: ApiKeyOption = None,
    timeout: TimeoutOption = None,
    insecure: InsecureOption = False,
) -> None:
    """List the ids of the appliances a template group is assigned to."""

    settings: Settings = ctx.obj["settings"]
    params = connection_params(settings, server, user, password, api_key, timeout, insecure)

    try:
        with create_client(params) as client:
            appliance_ids = client.list_applianceids_by_templategroupname(name)
    except OrchestratorError as exc:
        console.print(f"API request failed: {exc}", style="bold red")
        raise typer.Exit(code=1) from exc

    _render(appliance_ids)
