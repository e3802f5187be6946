"""Host command group implementation."""

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
from cpmgmt.models.enums import DetailLevel
from cpmgmt.models.network import Host
from cpmgmt.sdk import open_session

host_app = typer.Typer(no_args_is_help=True, help="Manage host objects.")

HostNameArgument = Annotated[str, typer.Argument(help="Host name or uid.")]
GroupsOption = Annotated[
    list[str] | None,
    typer.Option("--group", help="Group to put the host in (repeatable)."),
]


@host_app.command("show")
def host_show(
    ctx: typer.Context,
    name: HostNameArgument,
    level: DetailLevelOption = "standard",
    output: OutputOption = "table",
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Show a host."""

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            found = session.find(Host, name, detail_level=detail_level(level))
            render_object(found, output)
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)


@host_app.command("add")
def host_add(
    ctx: typer.Context,
    name: Annotated[str, typer.Argument(help="Name of the new host.")],
    ipv4_address: Annotated[
        str | None, typer.Option("--ipv4-address", help="IPv4 address.")
    ] = None,
    ipv6_address: Annotated[
        str | None, typer.Option("--ipv6-address", help="IPv6 address.")
    ] = None,
    comments: Annotated[str | None, typer.Option("--comments", help="Comments.")] = None,
    color: Annotated[str | None, typer.Option("--color", help="Display colour.")] = None,
    groups: GroupsOption = None,
    set_if_exists: Annotated[
        bool,
        typer.Option("--set-if-exists", help="Update the host if one with this name exists."),
    ] = False,
    publish: PublishOption = True,
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Add a host."""

    if ipv4_address is None and ipv6_address is None:
        console.print("Provide --ipv4-address and/or --ipv6-address.", style="bold red")
        raise typer.Exit(code=1)

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            new_host = Host(session, set_if_exists=set_if_exists, name=name)
            if ipv4_address is not None:
                new_host.ipv4_address = ipv4_address
            if ipv6_address is not None:
                new_host.ipv6_address = ipv6_address
            if comments is not None:
                new_host.comments = comments
            if color is not None:
                new_host.color = color
            new_host.groups.extend(groups or [])
            new_host.save()
            console.print(f"Host '{name}' created")
            render_object(new_host, "table")
            finish_changes(session, publish)
    except ValueError as exc:
        console.print(escape(str(exc)), style="bold red")
        raise typer.Exit(code=1) from exc
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)


@host_app.command("update")
def host_update(
    ctx: typer.Context,
    name: HostNameArgument,
    new_name: Annotated[str | None, typer.Option("--new-name", help="Rename the host.")] = None,
    ipv4_address: Annotated[
        str | None, typer.Option("--ipv4-address", help="New IPv4 address.")
    ] = None,
    ipv6_address: Annotated[
        str | None, typer.Option("--ipv6-address", help="New IPv6 address.")
    ] = None,
    comments: Annotated[str | None, typer.Option("--comments", help="New comments.")] = None,
    color: Annotated[str | None, typer.Option("--color", help="New display colour.")] = None,
    add_groups: Annotated[
        list[str] | None,
        typer.Option("--add-group", help="Group to add the host to (repeatable)."),
    ] = None,
    remove_groups: Annotated[
        list[str] | None,
        typer.Option("--remove-group", help="Group to take the host out of (repeatable)."),
    ] = None,
    clear_groups: Annotated[
        bool,
        typer.Option("--clear-groups", help="Remove the host from all groups first."),
    ] = False,
    publish: PublishOption = True,
    host: HostOption = None,
    username: UsernameOption = None,
    password: PasswordOption = None,
    port: PortOption = None,
    insecure: InsecureOption = False,
) -> None:
    """Update a host; only the given options are sent."""

    params, options = resolve_connection(ctx, host, username, password, port, insecure)
    try:
        with open_session(params, options) as session:
            existing = session.find(Host, name, detail_level=DetailLevel.FULL)
            if new_name is not None:
                existing.name = new_name
            if ipv4_address is not None:
                existing.ipv4_address = ipv4_address
            if ipv6_address is not None:
                existing.ipv6_address = ipv6_address
            if comments is not None:
                existing.comments = comments
            if color is not None:
                existing.color = color
            if clear_groups:
                existing.groups.clear()
            for group in remove_groups or []:
                existing.groups.remove(group)
            existing.groups.extend(add_groups or [])

            if not existing.save():
                console.print(f"Host '{name}' unchanged")
                return
            console.print(f"Host '{name}' updated")
            render_object(existing, "table")
            finish_changes(session, publish)
    except ValueError as exc:
        console.print(escape(str(exc)), style="bold red")
        raise typer.Exit(code=1) from exc
    except API_EXCEPTIONS as exc:
        handle_api_exception(exc)
