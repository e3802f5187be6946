"""Enumerations used across the object model."""

from __future__ import annotations

from enum import IntEnum, StrEnum


class DetailLevel(IntEnum):
    """How much of an object the server returned; ordered so levels compare."""

    MINIMAL = 0
    STANDARD = 1
    FULL = 2

    @property
    def wire(self) -> str:
        return _DETAIL_LEVEL_WIRE[self]

    @classmethod
    def from_wire(cls, value: str) -> DetailLevel:
        for level, text in _DETAIL_LEVEL_WIRE.items():
            if text == value.strip().lower():
                return level
        raise ValueError(f"Unknown detail level: {value}")


_DETAIL_LEVEL_WIRE = {
    DetailLevel.MINIMAL: "uid",
    DetailLevel.STANDARD: "standard",
    DetailLevel.FULL: "full",
}


class DetailLevelAction(StrEnum):
    """What a gated read does when the object holds too little detail."""

    THROW = "throw"
    RETURN_NULL = "return-null"
    AUTO_RELOAD = "auto-reload"
    SESSION_DEFAULT = "session-default"


class ChangeAction(StrEnum):
    NONE = "none"
    SET = "set"
    ADD = "add"
    REMOVE = "remove"


class Identifier(StrEnum):
    """Preferred identifier for set-* calls."""

    UID = "uid"
    NAME = "name"


class Ignore(StrEnum):
    NO = "no"
    WARNINGS = "warnings"
    ERRORS = "errors"

    def to_payload(self) -> dict[str, bool]:
        if self is Ignore.WARNINGS:
            return {"ignore-warnings": True}
        if self is Ignore.ERRORS:
            return {"ignore-errors": True}
        return {}
