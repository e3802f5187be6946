"""Group command group implementation."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.markup import escape

from cpmgmt.commands.common import (
    API_EXCEPTIONS,
    DetailLevelOption,
    OutputOption,
    PublishOption,
    console,
    detail_level,
    finish_changes,
    handle_api_exception,
    render_object,
    resolve_connection,
)
from cpmgmt.connection import (
    HostOption,
    InsecureOption,
    PasswordOption,
    PortOption,
    UsernameOption,
)
from cpmgmt.io.bulk_input import BulkInputFormat, load_membership_changes
from cpmgmt.models.network import Group
from cpmgmt.sdk import open_session
from cpmgmt.services.membership_service import MembershipBulkResult, MembershipService

group_app = typer.Typer(no_args_is_help=True, help="Manage network groups and their members.")

GroupArgument = Annotated[str, typer.Argument(help="Group name or uid.")]
MemberArgument = Annotated[str, typer.Argument(help="Member object name or uid.")]


def _render_bulk_summary(result: MembershipBulkResult) -> None:
    console.print(
        f"apply summary: total={result.total} groups={result.groups} "
        f"added={result.added} removed={result.removed} failed={result.failed}"
    )
    for error in result.errors:
        console.print(f"- {escape(error)}", style="red")


@group_app.command("show")
def group_show(
    ctx: typer.Context,
    name: GroupArgument,
    level: DetailLevelOption = "standard",
    output: OutputOption = "table",
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Show a group and its members."""

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            group = session.find(Group, name, detail_level=detail_level(level))
            render_object(group, output)
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)


@group_app.command("add-member")
def group_add_member(
    ctx: typer.Context,
    name: GroupArgument,
    member: MemberArgument,
    publish: PublishOption = True,
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Add one member to a group."""

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            group = MembershipService(session).add_member(name, member)
            console.print(f"'{member}' added to group '{name}'")
            render_object(group, "table")
            finish_changes(session, publish)
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)


@group_app.command("remove-member")
def group_remove_member(
    ctx: typer.Context,
    name: GroupArgument,
    member: MemberArgument,
    publish: PublishOption = True,
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Remove one member from a group."""

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            group = MembershipService(session).remove_member(name, member)
            console.print(f"'{member}' removed from group '{name}'")
            render_object(group, "table")
            finish_changes(session, publish)
    except ValueError as exc:
        console.print(escape(str(exc)), style="bold red")
        raise typer.Exit(code=1) from exc
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)


@group_app.command("apply")
def group_apply(
    ctx: typer.Context,
    file_path: Annotated[
        str,
        typer.Option("--file", "-f", help="Path to JSON/CSV file, or '-' for stdin."),
    ],
    input_format: Annotated[
        BulkInputFormat,
        typer.Option("--format", help="Input format: auto, json, csv."),
    ] = "auto",
    continue_on_error: Annotated[
        bool,
        typer.Option("--continue-on-error", help="Continue with other groups after an error."),
    ] = False,
    publish: PublishOption = True,
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Apply membership changes from file/stdin, saving each group once.

    Input examples:

    JSON list:
    [
      {"group": "web-servers", "member": "web-3", "action": "add"},
      {"group": "web-servers", "member": "web-1", "action": "remove"},
      {"group": "db-servers", "member": "db-2"}
    ]

    CSV:
    group,member,action
    web-servers,web-3,add
    web-servers,web-1,remove
    """

    result = MembershipBulkResult(total=0)
    try:
        changes = load_membership_changes(file_path, input_format=input_format)
    except (ValueError, OSError) as exc:
        console.print(f"Invalid input: {escape(str(exc))}", style="bold red")
        raise typer.Exit(code=1) from exc

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            result = MembershipService(session).apply_many(
                changes, continue_on_error=continue_on_error
            )
            if result.added or result.removed:
                finish_changes(session, publish)
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)

    _render_bulk_summary(result)
    if result.failed > 0:
        raise typer.Exit(code=2)
