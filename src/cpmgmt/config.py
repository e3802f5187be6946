"""Configuration loading for the cpmgmt CLI."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from cpmgmt.models.enums import DetailLevelAction, Identifier


class Settings(BaseSettings):
    """Connection and session settings loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(
        env_prefix="CPMGMT_",
        extra="ignore",
    )

    host: str | None = None
    username: str | None = None
    password: str | None = None
    domain: str | None = None
    port: int = Field(default=443, ge=1, le=65535)
    verify_ssl: bool = True
    read_only: bool = False
    detail_level_action: DetailLevelAction = DetailLevelAction.THROW
    identifier: Identifier = Identifier.NAME
    timeout: float = Field(default=30, gt=0)

    @classmethod
    def from_env_file(cls, env_file: Path | None = None) -> Settings:
        kwargs: dict[str, Path] = {}
        if env_file is not None:
            kwargs["_env_file"] = env_file
        return cls(**kwargs)
