"""References to other server objects and the cache used to resolve them."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cpmgmt.models.enums import DetailLevel

if TYPE_CHECKING:
    from cpmgmt.models.objects import ObjectSummary
    from cpmgmt.session import Session

_UID_RE = re.compile(r"^\w{8}-\w{4}-\w{4}-\w{4}-\w{12}$")


def is_uid(value: str) -> bool:
    return bool(_UID_RE.match(value))


@dataclass(frozen=True, slots=True)
class Resolved:
    """A reference whose target object is known locally."""

    obj: ObjectSummary

    @property
    def uid(self) -> str | None:
        return self.obj.uid

    def membership_id(self) -> str:
        return self.obj.membership_id()

    def __str__(self) -> str:
        return str(self.obj)


@dataclass(frozen=True, slots=True)
class Unresolved:
    """A reference known only by uid."""

    uid: str

    def membership_id(self) -> str:
        return self.uid

    def __str__(self) -> str:
        return self.uid


type Reference = Resolved | Unresolved


@dataclass(slots=True)
class ObjectCache:
    """Objects seen while applying one server response, keyed by uid."""

    _objects: dict[str, ObjectSummary] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._objects)

    def add(self, obj: ObjectSummary) -> None:
        uid = obj.uid
        if uid:
            self._objects[uid] = obj

    def get(self, uid: str) -> ObjectSummary | None:
        return self._objects.get(uid)

    def lookup(self, uid: str) -> Reference:
        obj = self._objects.get(uid)
        return Unresolved(uid) if obj is None else Resolved(obj)

    def resolve(self, reference: object) -> object:
        """Upgrade an ``Unresolved`` reference to ``Resolved`` when the cache knows it."""

        if isinstance(reference, Unresolved):
            return self.lookup(reference.uid)
        return reference


type ObjectBuilder = Callable[[Mapping[str, object], ServerStateContext], ObjectSummary | None]


@dataclass(slots=True)
class ServerStateContext:
    """State shared by every object built while applying one response."""

    session: Session | None
    child_detail_level: DetailLevel
    build: ObjectBuilder
    cache: ObjectCache = field(default_factory=ObjectCache)

    def reference(self, raw: object) -> object:
        """Turn a nested object or a bare uid from the wire into a reference."""

        if isinstance(raw, Mapping):
            obj = self.build(raw, self)
            if obj is None:
                return None
            self.cache.add(obj)
            return Resolved(obj)
        if isinstance(raw, str) and is_uid(raw):
            return self.cache.lookup(raw)
        return raw


def membership_id_of(item: object) -> str:
    """Identifier used to name ``item`` in membership add/remove/set payloads."""

    if isinstance(item, str):
        return item
    membership_id = getattr(item, "membership_id", None)
    if callable(membership_id):
        return str(membership_id())
    return str(item)


def identities_of(item: object) -> set[str]:
    """Every identifier ``item`` can be addressed by: its uid and its name."""

    if isinstance(item, str):
        return {item}
    if isinstance(item, Unresolved):
        return {item.uid}
    obj = item.obj if isinstance(item, Resolved) else item
    raw = getattr(obj, "raw", None)
    if not callable(raw):
        return {membership_id_of(item)}
    names = (raw("uid"), raw("name"), getattr(obj, "old_name", None))
    return {str(value) for value in names if value}
