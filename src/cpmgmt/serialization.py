"""Translation between tracked objects and management API payloads.

Inbound, ``apply_server_state`` populates an object from a ``show-*``/``add-*``/
``set-*`` response. Outbound, ``build_save_payload`` turns the object's dirty
state into an ``add-*`` or ``set-*`` request body.
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from cpmgmt.exceptions import ObjectStateError, StaleIdentifierError
from cpmgmt.models.catalog import OBJECT_TYPES
from cpmgmt.models.enums import DetailLevel, Identifier, Ignore
from cpmgmt.models.fields import decode_reference
from cpmgmt.models.objects import GenericObject, ObjectBase, ObjectSummary
from cpmgmt.models.reference import Resolved, ServerStateContext, Unresolved
from cpmgmt.models.tracking import SimpleChangeTracking

if TYPE_CHECKING:
    from cpmgmt.session import Session

type Payload = dict[str, Any]


@dataclass(frozen=True, slots=True)
class SavePayload:
    """A ready-to-post save request."""

    operation: Literal["add", "set"]
    command: str
    identifier: Payload | None
    body: Payload


def resolve_identifier(obj: ObjectSummary, preference: Identifier = Identifier.NAME) -> Payload:
    """Keys that address an existing object in a ``set-*`` call."""

    uid = obj.raw("uid")
    old_name = obj.old_name
    if preference is Identifier.UID:
        if uid:
            return {"uid": uid}
        if old_name:
            return {"name": old_name}
    else:
        if old_name:
            return {"name": old_name}
        if uid:
            return {"uid": uid}
    raise StaleIdentifierError(
        f"Cannot address {type(obj).__name__}: it has neither a uid nor a server-side name"
    )


def build_save_payload(
    obj: ObjectSummary,
    *,
    identifier: Identifier = Identifier.NAME,
    ignore: Ignore = Ignore.NO,
) -> SavePayload:
    if isinstance(obj, GenericObject):
        raise ObjectStateError(f"Object type '{obj.type}' is not implemented")
    if not obj.type:
        raise ObjectStateError(f"{type(obj).__name__} has no server type")

    if obj.is_new:
        body = _add_body(obj)
        body.update(ignore.to_payload())
        return SavePayload("add", f"add-{obj.type}", None, body)

    ident = resolve_identifier(obj, identifier)
    body = {**ident, **obj.identifier_payload(), **_set_body(obj)}
    body.update(ignore.to_payload())
    return SavePayload("set", f"set-{obj.type}", ident, body)


def _add_body(obj: ObjectSummary) -> Payload:
    body: Payload = {}
    for field in obj.tracked_fields().values():
        if field.read_only:
            continue
        value = field.dump(obj)
        if value is not None:
            body[field.key] = value
    for tracker in obj.memberships().values():
        members = tracker.to_payload()
        if members is not None:
            body[tracker.key] = members
    for values in obj.value_lists().values():
        if len(values):
            body[values.key] = values.to_payload()
    if isinstance(obj, ObjectBase) and obj.set_if_exists:
        body["set-if-exists"] = True
    return body


def _set_body(obj: ObjectSummary) -> Payload:
    fields = obj.tracked_fields()
    body: Payload = {}
    for name in obj.changed_properties:
        field = fields[name]
        body[field.set_key] = field.dump(obj)
    for name, field in fields.items():
        if not field.nested or name in obj.changed_properties:
            continue
        value = field.raw(obj)
        if value is not None and value.is_changed:
            body[field.set_key] = field.dump(obj)
    for tracker in obj.memberships().values():
        members = tracker.to_payload()
        if members is not None:
            body[tracker.key] = members
    for values in obj.value_lists().values():
        if values.is_changed:
            body[values.key] = values.to_payload()
    return body


def new_context(
    session: Session | None,
    child_detail_level: DetailLevel = DetailLevel.STANDARD,
    dictionary: Iterable[object] = (),
) -> ServerStateContext:
    """Context for one response, pre-seeded with its ``objects-dictionary``."""

    context = ServerStateContext(
        session=session,
        child_detail_level=child_detail_level,
        build=object_from_server,
    )
    for raw in dictionary:
        if isinstance(raw, Mapping):
            context.reference(raw)
    return context


def apply_server_state(
    obj: ObjectSummary,
    data: Mapping[str, object],
    *,
    detail_level: DetailLevel,
    child_detail_level: DetailLevel = DetailLevel.STANDARD,
    session: Session | None = None,
    context: ServerStateContext | None = None,
) -> ObjectSummary:
    """Populate ``obj`` from server data and mark it clean and existing."""

    if context is None:
        dictionary = data.get("objects-dictionary")
        context = new_context(
            session if session is not None else obj.session,
            child_detail_level,
            dictionary if isinstance(dictionary, list) else (),
        )
    _apply(obj, data, detail_level, context)
    return obj


def _apply(
    obj: ObjectSummary,
    data: Mapping[str, object],
    detail_level: DetailLevel,
    context: ServerStateContext,
) -> None:
    with obj.applying_server_state():
        obj.load_fields(data, context)
        trackers = obj.memberships().values()
        for tracker in trackers:
            raw_items = data.get(tracker.key)
            if tracker.key in data:
                items = raw_items if isinstance(raw_items, list) else []
                tracker.load(context.reference(item) for item in items)
        for values in obj.value_lists().values():
            if values.key in data:
                values.load(data[values.key], context)

        # Nested objects later in the response may satisfy earlier bare uids.
        for tracker in trackers:
            tracker.load([context.cache.resolve(item) for item in tracker.items])
        for field in obj.tracked_fields().values():
            if field.decode is decode_reference:
                value = field.raw(obj)
                resolved = context.cache.resolve(value)
                if resolved is not value:
                    field.__set__(obj, resolved)
        obj.raise_detail_level(detail_level)


def object_from_server(
    data: Mapping[str, object],
    context: ServerStateContext,
) -> ObjectSummary | None:
    """Build a nested object at the context's child detail level."""

    type_name = data.get("type")
    if not isinstance(type_name, str) or not type_name:
        return None
    uid = data.get("uid")
    if isinstance(uid, str):
        cached = context.cache.get(uid)
        if cached is not None:
            return cached
    obj = _instantiate(type_name, context.session, context.child_detail_level)
    _apply(obj, data, context.child_detail_level, context)
    return obj


def load_object[T: ObjectSummary](
    cls: type[T] | None,
    data: Mapping[str, object],
    *,
    session: Session | None,
    detail_level: DetailLevel,
    context: ServerStateContext | None = None,
) -> T | ObjectSummary:
    """Build a top-level object from a response.

    ``cls`` is used when given and matching the response's type; otherwise the
    class is looked up from ``data["type"]``.
    """

    type_name = data.get("type")
    if cls is not None and (not isinstance(type_name, str) or type_name == cls.type_name):
        obj: ObjectSummary = cls.for_server(session, detail_level)
    else:
        obj = _instantiate(str(type_name or ""), session, detail_level)
    return apply_server_state(
        obj, data, detail_level=detail_level, session=session, context=context
    )


def _instantiate(
    type_name: str,
    session: Session | None,
    detail_level: DetailLevel,
) -> ObjectSummary:
    cls = OBJECT_TYPES.get(type_name)
    if cls is None:
        obj = GenericObject.for_server(session, detail_level)
        obj.set_server_type(type_name)
        return obj
    return cls.for_server(session, detail_level)


def describe(obj: ObjectSummary) -> dict[str, object]:
    """Plain dict of everything the object currently holds, for display."""

    result: dict[str, object] = {
        "type": obj.type,
        "detail-level": obj.detail_level.wire,
    }
    for field in obj.tracked_fields().values():
        value = field.raw(obj)
        if value is not None:
            result[field.key] = _display(value)
    for tracker in obj.memberships().values():
        result[tracker.key] = [str(item) for item in tracker]
    for values in obj.value_lists().values():
        if len(values):
            result[values.key] = values.to_payload()
    return result


def _display(value: object) -> object:
    if isinstance(value, ipaddress.IPv4Address | ipaddress.IPv6Address):
        return str(value)
    if isinstance(value, Resolved | Unresolved | ObjectSummary):
        return str(value)
    if isinstance(value, SimpleChangeTracking):
        return value.to_payload()
    to_payload = getattr(value, "to_payload", None)
    if callable(to_payload):
        return to_payload()
    return value
