"""HTTP transport for the management web API."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Self

import requests
from pydantic import ValidationError

from cpmgmt.exceptions import API_ERROR_CODES, ManagementAPIError, ObjectStateError
from cpmgmt.models.api import ApiErrorBody, LoginResponse

_LOGGER = logging.getLogger(__name__)

SID_HEADER = "X-chkp-sid"
_REDACTED_KEYS = frozenset({"password", "api-key"})


class HttpManagementClient:
    """Posts JSON commands to ``https://<host>:<port>/web_api/<command>``.

    The session id returned by ``login`` is sent in the ``X-chkp-sid`` header
    on every later request. One ``requests.Session`` is kept for the lifetime
    of the client; use it as a context manager or call ``close()``.
    """

    def __init__(
        self,
        host: str,
        port: int = 443,
        *,
        verify_ssl: bool = True,
        timeout: float = 30,
        http: requests.Session | None = None,
    ):
        self.base_url = f"https://{host}:{port}/web_api"
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.sid: str | None = None
        self._http = http or requests.Session()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def login(
        self,
        username: str,
        password: str,
        *,
        read_only: bool = False,
        domain: str | None = None,
    ) -> LoginResponse:
        payload: dict[str, Any] = {"user": username, "password": password}
        if read_only:
            payload["read-only"] = True
        if domain:
            payload["domain"] = domain
        data = self._send("login", payload)
        try:
            response = LoginResponse.model_validate(data)
        except ValidationError as exc:
            raise ManagementAPIError(f"Unexpected login response: {exc}") from exc
        self.sid = response.sid
        return response

    def post(self, command: str, payload: dict[str, Any]) -> dict[str, Any]:
        if self.sid is None:
            raise ObjectStateError(f"Cannot run '{command}' before logging in")
        return self._send(command, payload)

    def logout(self) -> None:
        if self.sid is None:
            return
        try:
            self._send("logout", {})
        finally:
            self.sid = None

    def close(self) -> None:
        self._http.close()

    def _send(self, command: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/{command}"
        headers = {"Content-Type": "application/json"}
        if self.sid is not None:
            headers[SID_HEADER] = self.sid

        _LOGGER.debug("POST %s %s", command, _redact(payload))
        try:
            response = self._http.post(
                url,
                json=payload,
                headers=headers,
                verify=self.verify_ssl,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ManagementAPIError(f"Request to '{command}' failed: {exc}") from exc

        if not response.ok:
            raise error_from_response(response)
        if not response.content:
            return {}
        data = response.json()
        return data if isinstance(data, dict) else {"result": data}


def error_from_response(response: requests.Response) -> ManagementAPIError:
    """Exception for a non-2xx response, typed by the server's error code."""

    status = response.status_code
    try:
        body = ApiErrorBody.model_validate(response.json())
    except ValueError:
        return ManagementAPIError(f"Server Error: {status}", status=status)

    error_cls = API_ERROR_CODES.get(body.code, ManagementAPIError)
    _LOGGER.debug("Server returned %s (%s): %s", status, body.code, body.message)
    return error_cls(
        body.message or f"Server Error: {status}",
        status=status,
        code=body.code,
        warnings=[item.message for item in body.warnings],
        errors=[item.message for item in body.errors],
        blocking_errors=[item.message for item in body.blocking_errors],
    )


def _redact(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: "***" if key in _REDACTED_KEYS else value for key, value in payload.items()}
