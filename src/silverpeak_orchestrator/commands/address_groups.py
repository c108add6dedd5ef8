"""Address group command group implementation."""

from __future__ import annotations

from typing import Annotated, Any, Literal

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.table import Table

from silverpeak_orchestrator.client import OrchestratorClient
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
from silverpeak_orchestrator.errors import OrchestratorError
from silverpeak_orchestrator.factory import create_client
from silverpeak_orchestrator.models.ip_objects import AddressGroup, AddressGroupRule

addressgroup_app = typer.Typer(no_args_is_help=True, help="Manage address groups.")
console = Console()

OutputFormat = Literal["table", "json"]


def _build_client(
    ctx: typer.Context,
    server: str | None,
    user: str | None,
    password: str | None,
    api_key: str | None,
    timeout: float | None,
    insecure: bool,
) -> OrchestratorClient:
    settings: Settings = ctx.obj["settings"]
    params = connection_params(settings, server, user, password, api_key, timeout, insecure)
    return create_client(params)


def _join(values: object) -> str:
    if isinstance(values, list):
        return ", ".join(str(value) for value in values)
    return ""


def _render_groups(groups: list[dict[str, Any]], output: OutputFormat) -> None:
    if output == "json":
        console.print(JSON.from_data(groups))
        return

    table = Table(title="Address Groups")
    table.add_column("Name")
    table.add_column("Included IPs")
    table.add_column("Excluded IPs")
    table.add_column("Included Groups")
    table.add_column("Comment")

    for group in groups:
        rules = group.get("rules") or [{}]
        for index, rule in enumerate(rules):
            table.add_row(
                str(group.get("name", "")) if index == 0 else "",
                _join(rule.get("includedIPs")),
                _join(rule.get("excludedIPs")),
                _join(rule.get("includedGroups")),
                str(rule.get("comment") or ""),
            )

    console.print(table)


def _handle_api_exception(exc: Exception) -> None:
    console.print(f"API request failed: {exc}", style="bold red")
    raise typer.Exit(code=1) from exc


@addressgroup_app.command("list")
def addressgroup_list(
    ctx: typer.Context,
    output: Annotated[
        OutputFormat,
        typer.Option("--output", help="Response format: table or json."),
    ] = "table",
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    api_key: ApiKeyOption = None,
    timeout: TimeoutOption = None,
    insecure: InsecureOption = False,
) -> None:
    """List all address groups."""

    groups: list[dict[str, Any]] = []
    try:
        with _build_client(ctx, server, user, password, api_key, timeout, insecure) as client:
            groups = client.list_addressgroups() or []
    except OrchestratorError as exc:
        _handle_api_exception(exc)

    _render_groups(groups, output)


@addressgroup_app.command("get")
def addressgroup_get(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Address group name.")],
    output: Annotated[
        OutputFormat,
        typer.Option("--output", help="Response format: table or json."),
    ] = "table",
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    api_key: ApiKeyOption = None,
    timeout: TimeoutOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Get a specific address group."""

    group: dict[str, Any] = {}
    try:
        with _build_client(ctx, server, user, password, api_key, timeout, insecure) as client:
            group = client.get_addressgroup(name)
    except OrchestratorError as exc:
        _handle_api_exception(exc)

    _render_groups([group], output)


@addressgroup_app.command("set")
def addressgroup_set(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Address group name.")],
    include_ip: Annotated[
        list[str] | None,
        typer.Option("--include-ip", help="IP, subnet or range to include. Repeatable."),
    ] = None,
    exclude_ip: Annotated[
        list[str] | None,
        typer.Option("--exclude-ip", help="IP, subnet or range to exclude. Repeatable."),
    ] = None,
    include_group: Annotated[
        list[str] | None,
        typer.Option("--include-group", help="Address group to include. Repeatable."),
    ] = None,
    comment: Annotated[str | None, typer.Option("--comment", help="Rule comment.")] = None,
    replace: Annotated[
        bool,
        typer.Option(
            "--replace",
            help="Update an existing group instead of creating or overwriting it.",
        ),
    ] = False,
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    api_key: ApiKeyOption = None,
    timeout: TimeoutOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Create or update an address group with a single rule."""

    if not include_ip and not include_group:
        console.print("Provide at least one --include-ip or --include-group.", style="bold red")
        raise typer.Exit(code=1)

    try:
        group = AddressGroup(
            name=name,
            rules=[
                AddressGroupRule(
                    included_ips=include_ip or None,
                    excluded_ips=exclude_ip or None,
                    included_groups=include_group or None,
                    comment=comment,
                )
            ],
        )
    except ValidationError as exc:
        console.print(str(exc), style="bold red")
        raise typer.Exit(code=1) from exc

    try:
        with _build_client(ctx, server, user, password, api_key, timeout, insecure) as client:
            if replace:
                client.update_addressgroup(group.name, group)
            else:
                client.create_or_update_addressgroup(group.name, group)
    except OrchestratorError as exc:
        _handle_api_exception(exc)

    console.print(f"Address group '{group.name}' {'updated' if replace else 'saved'}")


@addressgroup_app.command("delete")
def addressgroup_delete(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Address group name.")],
    server: ServerOption = None,
    user: UserOption = None,
    password: PasswordOption = None,
    api_key: ApiKeyOption = None,
    timeout: TimeoutOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Delete an address group."""

    try:
        with _build_client(ctx, server, user, password, api_key, timeout, insecure) as client:
            client.delete_addressgroup(name)
    except OrchestratorError as exc:
        _handle_api_exception(exc)

    console.print(f"Address group '{name}' deleted")
