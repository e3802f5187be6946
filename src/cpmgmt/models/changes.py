"""Request models for membership changes."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

MembershipAction = Literal["add", "remove"]


def _normalize_name(value: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError("value must not be empty")
    return normalized


class MembershipChange(BaseModel):
    """Add ``member`` to, or remove it from, ``group``."""

    group: str = Field(min_length=1)
    member: str = Field(min_length=1)
    action: MembershipAction = "add"

    @field_validator("group", "member")
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _normalize_name(value)

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value
