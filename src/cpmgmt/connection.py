"""Shared connection option resolution for CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import typer

from cpmgmt.config import Settings
from cpmgmt.models.enums import DetailLevelAction
from cpmgmt.session import SessionOptions

HostOption = Annotated[str | None, typer.Option(help="Management server hostname or IP.")]
UsernameOption = Annotated[str | None, typer.Option(help="Management API username.")]
PasswordOption = Annotated[str | None, typer.Option(help="Management API password.")]
PortOption = Annotated[
    int | None, typer.Option(min=1, max=65535, help="Management API port.")
]
InsecureOption = Annotated[
    bool,
    typer.Option(help="Skip TLS certificate verification of the management server."),
]


@dataclass(frozen=True, slots=True)
class ConnectionParams:
    """Everything needed to open a management API session."""

    host: str
    username: str
    password: str
    port: int = 443
    verify_ssl: bool = True
    timeout: float = 30
    read_only: bool = False
    domain: str | None = None


def _required(name: str, *candidates: str | None) -> str:
    for candidate in candidates:
        if candidate:
            return candidate
    raise typer.BadParameter(
        f"No {name} given; pass --{name} or set the CPMGMT_{name.upper()} environment variable."
    )


def connection_params(
    settings: Settings,
    host: str | None,
    username: str | None,
    password: str | None,
    port: int | None,
    insecure: bool,
) -> ConnectionParams:
    """Merge command line options over settings; options win when given."""

    return ConnectionParams(
        host=_required("host", host, settings.host),
        username=_required("username", username, settings.username),
        password=_required("password", password, settings.password),
        port=settings.port if port is None else port,
        verify_ssl=settings.verify_ssl and not insecure,
        timeout=settings.timeout,
        read_only=settings.read_only,
        domain=settings.domain,
    )


def session_options(
    settings: Settings,
    detail_level_action: DetailLevelAction | None = None,
) -> SessionOptions:
    return SessionOptions(
        detail_level_action=detail_level_action or settings.detail_level_action,
        identifier=settings.identifier,
    )
