"""Wire models for login and error responses."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ApiMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str = ""


class ApiErrorBody(BaseModel):
    """Error document returned with a non-2xx status."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    code: str = Field(min_length=1)
    message: str = ""
    warnings: list[ApiMessage] = Field(default_factory=list)
    errors: list[ApiMessage] = Field(default_factory=list)
    blocking_errors: list[ApiMessage] = Field(default_factory=list, alias="blocking-errors")


class LoginResponse(BaseModel):
    """Subset of the ``login`` response the client relies on."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    sid: str = Field(min_length=1)
    uid: str | None = None
    url: str | None = None
    session_timeout: int | None = Field(default=None, alias="session-timeout")
    api_server_version: str | None = Field(default=None, alias="api-server-version")
    read_only: bool = Field(default=False, alias="read-only")
