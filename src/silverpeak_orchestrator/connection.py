"""Shared connection option resolution for CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import typer

from silverpeak_orchestrator.config import Settings

ServerOption = Annotated[
    str | None,
    typer.Option(help="Orchestrator base URL, e.g. https://orchestrator.example.com."),
]
UserOption = Annotated[str | None, typer.Option(help="Orchestrator username.")]
PasswordOption = Annotated[str | None, typer.Option(help="Orchestrator password.")]
ApiKeyOption = Annotated[
    str | None,
    typer.Option("--api-key", help="Orchestrator API key, used instead of user/password."),
]
TimeoutOption = Annotated[
    float | None,
    typer.Option(min=1, help="Request timeout in seconds."),
]
InsecureOption = Annotated[
    bool,
    typer.Option(help="Disable TLS certificate verification."),
]


@dataclass(frozen=True, slots=True)
class ConnectionParams:
    """Resolved connection parameters for the Orchestrator client."""

    server: str
    user: str | None
    password: str | None
    api_key: str | None
    timeout: float
    verify_ssl: bool


def _env_name(option_name: str) -> str:
    return f"SILVERPEAK_{option_name.upper().replace('-', '_')}"


def _resolve(value: str | None, default: str | None, option_name: str) -> str:
    if value:
        return value
    if default:
        return default
    raise typer.BadParameter(f"Provide --{option_name} or set {_env_name(option_name)}.")


def _optional(value: str | None, default: str | None) -> str | None:
    return value or default or None


def connection_params(
    settings: Settings,
    server: str | None,
    user: str | None,
    password: str | None,
    api_key: str | None,
    timeout: float | None,
    insecure: bool,
) -> ConnectionParams:
    """Resolve command options and settings into client kwargs.

    An API key is enough on its own; without one both user and password are required.
    """

    resolved_api_key = _optional(api_key, settings.api_key)
    resolved_user = _optional(user, settings.user)
    resolved_password = _optional(password, settings.password)

    if resolved_api_key is None:
        resolved_user = _resolve(user, settings.user, "user")
        resolved_password = _resolve(password, settings.password, "password")

    return ConnectionParams(
        server=_resolve(server, settings.server, "server"),
        user=resolved_user,
        password=resolved_password,
        api_key=resolved_api_key,
        timeout=timeout if timeout is not None else settings.timeout,
        verify_ssl=False if insecure else settings.verify_ssl,
    )
