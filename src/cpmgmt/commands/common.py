"""Helpers shared by the command groups."""

from __future__ import annotations

from typing import Annotated, Literal, NoReturn

import typer
from rich.console import Console
from rich.json import JSON
from rich.markup import escape
from rich.table import Table

from cpmgmt.config import Settings
from cpmgmt.connection import ConnectionParams, connection_params, session_options
from cpmgmt.exceptions import ManagementError
from cpmgmt.models.enums import DetailLevel
from cpmgmt.models.objects import ObjectSummary
from cpmgmt.serialization import describe
from cpmgmt.session import Session, SessionOptions

console = Console()
API_EXCEPTIONS = (ManagementError,)

OutputFormat = Literal["table", "json"]
DetailLevelName = Literal["uid", "standard", "full"]

OutputOption = Annotated[
    OutputFormat,
    typer.Option("--output", help="Response format: table or json."),
]
DetailLevelOption = Annotated[
    DetailLevelName,
    typer.Option("--detail-level", help="Server detail level: uid, standard or full."),
]
PublishOption = Annotated[
    bool,
    typer.Option(
        "--publish/--no-publish",
        help="Publish the session after saving, or discard the changes again.",
    ),
]


def resolve_connection(
    ctx: typer.Context,
    host: str | None,
    username: str | None,
    password: str | None,
    port: int | None,
    insecure: bool,
) -> tuple[ConnectionParams, SessionOptions]:
    settings: Settings = ctx.obj["settings"]
    params = connection_params(settings, host, username, password, port, insecure)
    return params, session_options(settings)


def detail_level(name: DetailLevelName) -> DetailLevel:
    return DetailLevel.from_wire(name)


def render_object(obj: ObjectSummary, output: OutputFormat) -> None:
    data = describe(obj)
    if output == "json":
        console.print(JSON.from_data(data))
        return

    table = Table(title=escape(f"{obj.type} {obj}"))
    table.add_column("Field")
    table.add_column("Value")
    for key, value in data.items():
        if isinstance(value, list):
            value = ", ".join(str(item) for item in value)
        table.add_row(key, escape(str(value)))
    console.print(table)


def finish_changes(session: Session, publish: bool) -> None:
    """Publish saved changes, or discard them when publishing was not requested."""

    if publish:
        task_id = session.publish()
        console.print(f"Published (task {task_id})" if task_id else "Published")
        return
    discarded = session.discard()
    console.print(f"Not published; discarded {discarded} change(s)", style="yellow")


def handle_api_exception(exc: Exception) -> NoReturn:
    console.print(f"API request failed: {escape(str(exc))}", style="bold red")
    raise typer.Exit(code=1) from exc
