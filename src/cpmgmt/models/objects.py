"""Base classes for management server objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Self

from cpmgmt.exceptions import (
    DetailLevelError,
    InvalidMembershipOperationError,
    ObjectStateError,
    StaleIdentifierError,
)
from cpmgmt.models.enums import DetailLevel, DetailLevelAction, Ignore
from cpmgmt.models.fields import TrackedField, decode_str
from cpmgmt.models.membership import MembershipTracker
from cpmgmt.models.tracking import ChangeTracking, ListChangeTracking

if TYPE_CHECKING:
    from cpmgmt.models.reference import Reference, ServerStateContext
    from cpmgmt.session import Session


@dataclass(frozen=True, slots=True)
class Domain:
    uid: str | None
    name: str | None
    domain_type: str | None = None

    def to_payload(self) -> str | None:
        return self.name or self.uid


def decode_domain(value: object, context: ServerStateContext | None) -> Domain | None:
    del context
    if isinstance(value, dict):
        return Domain(
            uid=value.get("uid"),
            name=value.get("name"),
            domain_type=value.get("domain-type"),
        )
    if isinstance(value, str):
        return Domain(uid=None, name=value)
    return None


class NameField(TrackedField[str]):
    """Object name; remembers the server-side name so renames can still be addressed."""

    def __set__(self, instance: Any, value: str | None) -> None:
        if instance.is_deserializing:
            instance._old_name = value
        super().__set__(instance, value)


class ObjectSummary(ChangeTracking):
    """Any object with a uid, a name and a type on the management server.

    Instances made with ``cls(session, ...)`` are new: they hold full detail,
    ``save()`` adds them and the server's answer turns them into existing
    objects. Instances built from server data start at whatever detail level
    was requested; reading a field above that level is decided by
    ``test_detail_level``.
    """

    type_name: ClassVar[str] = ""
    plural_name: ClassVar[str] = ""

    uid = TrackedField[str]("uid", minimum=DetailLevel.MINIMAL, read_only=True)
    name = NameField("name", set_key="new-name")
    domain = TrackedField[Domain]("domain", decode=decode_domain, read_only=True)

    def __init__(self, session: Session | None = None, **values: object):
        super().__init__()
        self._session = session
        self._detail_level = DetailLevel.FULL
        self._old_name: str | None = None
        self._server_type: str | None = None
        self._register_children()
        for name, value in values.items():
            self._assign(name, value)

    def _register_children(self) -> None:
        """Register child trackers; runs before constructor values are applied."""

    def _assign(self, name: str, value: object) -> None:
        tracker = self._children.get(name)
        if isinstance(tracker, MembershipTracker):
            values = value if isinstance(value, list | tuple | set) else [value]
            tracker.extend(values)
            return
        if isinstance(tracker, ListChangeTracking):
            tracker.extend(value if isinstance(value, list | tuple) else [value])
            return
        field = self._fields.get(name)
        if field is None or field.read_only:
            raise TypeError(f"{type(self).__name__} has no writable field '{name}'")
        setattr(self, name, value)

    @classmethod
    def for_server(cls, session: Session | None, detail_level: DetailLevel) -> Self:
        """Blank instance that is about to be populated from server data."""

        instance = cls(session)
        instance._detail_level = detail_level
        return instance

    def __str__(self) -> str:
        name = self.raw("name")
        return name if name else (self.raw("uid") or "")

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(uid={self.raw('uid')!r}, name={self.raw('name')!r}, "
            f"detail_level={self._detail_level.name}, is_new={self.is_new})"
        )

    @property
    def type(self) -> str:
        return self.type_name or self._server_type or ""

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def detail_level(self) -> DetailLevel:
        return self._detail_level

    @property
    def old_name(self) -> str | None:
        return self._old_name

    def raw(self, name: str) -> Any:
        """Stored field value without detail-level gating."""

        return self._fields[name].raw(self)

    def bind_session(self, session: Session) -> None:
        if self._session is None:
            self._session = session

    def raise_detail_level(self, level: DetailLevel) -> None:
        if level > self._detail_level:
            self._detail_level = level

    def set_server_type(self, value: str | None) -> None:
        self._server_type = value

    def memberships(self) -> dict[str, MembershipTracker[Any]]:
        return {
            name: child
            for name, child in self._children.items()
            if isinstance(child, MembershipTracker)
        }

    def value_lists(self) -> dict[str, ListChangeTracking[Any]]:
        return {
            name: child
            for name, child in self._children.items()
            if isinstance(child, ListChangeTracking)
        }

    def _membership(self, name: str, key: str | None = None) -> MembershipTracker[Any]:
        return self.register_child(name, MembershipTracker(self, key or name))

    def membership_id(self) -> str:
        """Identifier used when this object is added to or removed from a list."""

        if self.is_new:
            raise InvalidMembershipOperationError("Cannot add an unsaved object as a member")
        name = self.raw("name")
        uid = self.raw("uid")
        if self.is_property_changed("name") or not name or not str(name).strip():
            if not uid:
                raise StaleIdentifierError(f"{type(self).__name__} has neither a uid nor a name")
            return uid
        return name

    def test_detail_level(
        self,
        minimum: DetailLevel,
        action: DetailLevelAction = DetailLevelAction.SESSION_DEFAULT,
    ) -> bool:
        if self._detail_level >= minimum:
            return True

        if action is DetailLevelAction.SESSION_DEFAULT:
            action = (
                self._session.options.detail_level_action
                if self._session is not None
                else DetailLevelAction.THROW
            )

        if action is DetailLevelAction.RETURN_NULL:
            return False
        if action is DetailLevelAction.AUTO_RELOAD:
            self.reload(detail_level=DetailLevel.FULL)
            return self._detail_level == DetailLevel.FULL
        raise DetailLevelError(self._detail_level, minimum)

    def _require_session(self) -> Session:
        if self._session is None:
            raise ObjectStateError(f"{type(self).__name__} is not bound to a session")
        return self._session

    def save(self, ignore: Ignore = Ignore.NO) -> bool:
        """Post pending changes; returns ``False`` when there was nothing to send."""

        return self._require_session().save(self, ignore=ignore)

    def reload(
        self,
        only_if_partial: bool = False,
        detail_level: DetailLevel = DetailLevel.STANDARD,
    ) -> None:
        self._require_session().reload(
            self, only_if_partial=only_if_partial, detail_level=detail_level
        )

    def delete(self, ignore: Ignore = Ignore.NO) -> None:
        if self.is_new:
            raise ObjectStateError("Cannot delete a new object")
        self._require_session().delete(self.type, self.raw("uid"), ignore=ignore)

    def identifier_payload(self) -> dict[str, object]:
        """Extra keys a set-* call needs besides uid/name (e.g. the rule's layer)."""

        return {}


class GenericObject(ObjectSummary):
    """Object of a type this package has no class for; read-only."""

    def save(self, ignore: Ignore = Ignore.NO) -> bool:
        del ignore
        raise ObjectStateError(f"Object type '{self.type}' is not implemented")


class ObjectBase(ObjectSummary):
    """Objects with colour, comments and tags."""

    color = TrackedField[str]("color", minimum=DetailLevel.FULL, decode=decode_str)
    comments = TrackedField[str]("comments", minimum=DetailLevel.FULL, decode=decode_str)
    icon = TrackedField[str]("icon", minimum=DetailLevel.FULL, read_only=True)

    tags: MembershipTracker[Reference]

    def __init__(
        self,
        session: Session | None = None,
        set_if_exists: bool = False,
        **values: object,
    ):
        self.set_if_exists = set_if_exists
        super().__init__(session, **values)

    def _register_children(self) -> None:
        super()._register_children()
        self.tags = self._membership("tags")
