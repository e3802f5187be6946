"""Client and session factories used by the CLI."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from cpmgmt.client import ManagementClientProtocol
from cpmgmt.connection import ConnectionParams
from cpmgmt.session import Session, SessionOptions
from cpmgmt.transport import HttpManagementClient


def create_client(connection: ConnectionParams) -> ManagementClientProtocol:
    """Create a configured management API client."""

    return HttpManagementClient(
        connection.host,
        connection.port,
        verify_ssl=connection.verify_ssl,
        timeout=connection.timeout,
    )


@contextmanager
def open_session(
    connection: ConnectionParams,
    options: SessionOptions | None = None,
) -> Iterator[Session]:
    """Log in, yield the session, then log out and release the connection."""

    client = create_client(connection)
    try:
        session = Session.login(
            client,
            connection.username,
            connection.password,
            read_only=connection.read_only,
            domain=connection.domain,
            options=options,
        )
        try:
            yield session
        finally:
            session.logout()
    finally:
        client.close()
