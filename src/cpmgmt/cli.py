"""Typer-based command line interface for the management API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.json import JSON
from rich.logging import RichHandler

from cpmgmt import __version__
from cpmgmt.commands.common import (
    API_EXCEPTIONS,
    DetailLevelOption,
    OutputOption,
    console,
    detail_level,
    handle_api_exception,
    render_object,
    resolve_connection,
)
from cpmgmt.commands.groups import group_app
from cpmgmt.commands.hosts import host_app
from cpmgmt.config import Settings
from cpmgmt.connection import (
    HostOption,
    InsecureOption,
    PasswordOption,
    PortOption,
    UsernameOption,
)
from cpmgmt.models.catalog import OBJECT_TYPES, object_type
from cpmgmt.sdk import open_session

app = typer.Typer(
    no_args_is_help=True,
    help="Manage objects on a Check Point management server through its web API.",
)
app.add_typer(host_app, name="host")
app.add_typer(group_app, name="group")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
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
        help="Optional .env file with CPMGMT_* variables.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log API calls."),
) -> None:
    """Load shared configuration for all commands."""

    _configure_logging(verbose)
    ctx.obj = {"settings": Settings.from_env_file(env_file)}


@app.command("version")
def show_version() -> None:
    """Show the installed cpmgmt version."""

    console.print(f"cpmgmt {__version__}")


@app.command("test-connection")
def test_connection(
    ctx: typer.Context,
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Validate API authentication with a login/logout round trip."""

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            login = session.login_response
            payload = login.model_dump(by_alias=True, exclude={"sid"}) if login else {}
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)

    console.print("Authentication successful")
    console.print(JSON.from_data(payload))


@app.command("show")
def show_object(
    ctx: typer.Context,
    type_name: Annotated[
        str,
        typer.Argument(
            metavar="TYPE",
            help=f"Object type: {', '.join(sorted(OBJECT_TYPES))}.",
        ),
    ],
    value: Annotated[str, typer.Argument(help="Object name or uid.")],
    level: DetailLevelOption = "standard",
    output: OutputOption = "table",
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Show any supported object by type and name or uid."""

    try:
        cls = object_type(type_name)
    except KeyError as exc:
        raise typer.BadParameter(str(exc.args[0]), param_hint="TYPE") from exc

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            found = session.find(cls, value, detail_level=detail_level(level))
            render_object(found, output)
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)
