"""Typed protocol for the management API transport used by the session and commands."""

from __future__ import annotations

from typing import Any, Protocol

from cpmgmt.models.api import LoginResponse

type ApiPayload = dict[str, Any]


class ManagementClientProtocol(Protocol):
    """What ``Session`` needs from a transport."""

    def login(
        self,
        username: str,
        password: str,
        *,
        read_only: bool = False,
        domain: str | None = None,
    ) -> LoginResponse: ...

    def post(self, command: str, payload: ApiPayload) -> ApiPayload: ...

    def logout(self) -> None: ...

    def close(self) -> None: ...
