"""Management API session: object lookup, persistence and change publishing."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, overload

from cpmgmt.exceptions import ObjectStateError
from cpmgmt.models.enums import DetailLevel, DetailLevelAction, Identifier, Ignore
from cpmgmt.models.objects import ObjectSummary
from cpmgmt.models.reference import is_uid
from cpmgmt.models.rules import AccessRule
from cpmgmt.serialization import apply_server_state, build_save_payload, load_object, new_context

if TYPE_CHECKING:
    from cpmgmt.client import ManagementClientProtocol
    from cpmgmt.models.api import LoginResponse

_LOGGER = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 50


@dataclass(frozen=True, slots=True)
class SessionOptions:
    """Per-session behaviour that would otherwise be process-wide state."""

    detail_level_action: DetailLevelAction = DetailLevelAction.THROW
    identifier: Identifier = Identifier.NAME

    def __post_init__(self) -> None:
        if self.detail_level_action is DetailLevelAction.SESSION_DEFAULT:
            raise ValueError("A session's detail level action cannot be session-default")


@dataclass(slots=True)
class ObjectsPage[T: ObjectSummary]:
    """One page of a ``show-<plural>`` listing, or of one access layer's rulebase."""

    session: Session
    object_type: type[T]
    objects: list[T]
    from_: int
    to: int
    total: int
    detail_level: DetailLevel = DetailLevel.STANDARD
    limit: int = DEFAULT_PAGE_LIMIT
    order: list[dict[str, str]] | None = field(default=None)
    layer: str | None = None

    def __iter__(self) -> Iterator[T]:
        return iter(self.objects)

    def __len__(self) -> int:
        return len(self.objects)

    def next_page(self) -> ObjectsPage[T] | None:
        if self.to >= self.total:
            return None
        if self.layer is not None:
            return self.session.find_rules(  # type: ignore[return-value]
                self.layer,
                detail_level=self.detail_level,
                limit=self.limit,
                offset=self.to,
            )
        return self.session.find_all(
            self.object_type,
            detail_level=self.detail_level,
            limit=self.limit,
            offset=self.to,
            order=self.order,
        )


class Session:
    """Logged-in connection to a management server.

    All object I/O goes through here. Objects created with ``Host(session)`` or
    returned by ``find``/``find_all`` hold a reference back to the session so
    ``obj.save()``, ``obj.reload()`` and automatic detail reloads work.
    """

    def __init__(
        self,
        client: ManagementClientProtocol,
        options: SessionOptions | None = None,
        login_response: LoginResponse | None = None,
    ):
        self._client = client
        self.options = options or SessionOptions()
        self.login_response = login_response

    @classmethod
    def login(
        cls,
        client: ManagementClientProtocol,
        username: str,
        password: str,
        *,
        read_only: bool = False,
        domain: str | None = None,
        options: SessionOptions | None = None,
    ) -> Session:
        response = client.login(username, password, read_only=read_only, domain=domain)
        _LOGGER.debug("Logged in as %s (read_only=%s)", username, read_only)
        return cls(client, options=options, login_response=response)

    @property
    def client(self) -> ManagementClientProtocol:
        return self._client

    def post(self, command: str, payload: Mapping[str, object] | None = None) -> dict[str, Any]:
        return self._client.post(command, dict(payload or {}))

    def publish(self) -> str | None:
        """Publish the session's changes; returns the server's task id."""

        response = self.post("publish")
        task_id = response.get("task-id")
        return str(task_id) if task_id is not None else None

    def discard(self) -> int:
        """Throw away unpublished changes; returns how many were discarded."""

        response = self.post("discard")
        return int(response.get("number-of-discarded-changes", 0))

    def keepalive(self) -> None:
        self.post("keepalive")

    def logout(self) -> None:
        self._client.logout()

    def find[T: ObjectSummary](
        self,
        cls: type[T],
        value: str,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        **params: object,
    ) -> T:
        """Fetch one object by uid or name.

        Extra ``params`` are passed through, e.g. ``layer`` for access rules.
        """

        key = "uid" if is_uid(value) else "name"
        payload: dict[str, object] = {key: value, "details-level": detail_level.wire, **params}
        data = self.post(f"show-{cls.type_name}", payload)
        obj = load_object(cls, data, session=self, detail_level=detail_level)
        return obj  # type: ignore[return-value]

    def find_all[T: ObjectSummary](
        self,
        cls: type[T],
        detail_level: DetailLevel = DetailLevel.STANDARD,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
        order: list[dict[str, str]] | None = None,
    ) -> ObjectsPage[T]:
        """One page of every object of ``cls``."""

        if not cls.plural_name:
            raise ObjectStateError(
                f"{cls.__name__} has no show-* listing; use find_rules for access rules"
            )
        payload: dict[str, object] = {
            "limit": limit,
            "offset": offset,
            "details-level": detail_level.wire,
        }
        if order:
            payload["order"] = order
        data = self.post(f"show-{cls.plural_name}", payload)

        dictionary = data.get("objects-dictionary")
        context = new_context(
            self, DetailLevel.STANDARD, dictionary if isinstance(dictionary, list) else ()
        )
        raw_objects = data.get("objects")
        objects = [
            load_object(cls, raw, session=self, detail_level=detail_level, context=context)
            for raw in (raw_objects if isinstance(raw_objects, list) else [])
            if isinstance(raw, Mapping)
        ]
        return ObjectsPage(
            session=self,
            object_type=cls,
            objects=objects,  # type: ignore[arg-type]
            from_=int(data.get("from", 0) or 0),
            to=int(data.get("to", 0) or 0),
            total=int(data.get("total", 0) or 0),
            detail_level=detail_level,
            limit=limit,
            order=order,
        )

    def find_rules(
        self,
        layer: str,
        detail_level: DetailLevel = DetailLevel.STANDARD,
        limit: int = DEFAULT_PAGE_LIMIT,
        offset: int = 0,
    ) -> ObjectsPage[AccessRule]:
        """One page of an access layer's rulebase, with sections flattened away."""

        key = "uid" if is_uid(layer) else "name"
        payload: dict[str, object] = {
            key: layer,
            "limit": limit,
            "offset": offset,
            "details-level": detail_level.wire,
            "use-object-dictionary": True,
        }
        data = self.post(f"show-{AccessRule.rulebase_name}", payload)

        dictionary = data.get("objects-dictionary")
        context = new_context(
            self, DetailLevel.STANDARD, dictionary if isinstance(dictionary, list) else ()
        )
        rules = [
            load_object(
                AccessRule,
                {"layer": layer, **raw},
                session=self,
                detail_level=detail_level,
                context=context,
            )
            for raw in _flatten_rulebase(data.get("rulebase"))
        ]
        _LOGGER.debug("Loaded %d rules from layer %s", len(rules), layer)
        return ObjectsPage(
            session=self,
            object_type=AccessRule,
            objects=rules,  # type: ignore[arg-type]
            from_=int(data.get("from", 0) or 0),
            to=int(data.get("to", 0) or 0),
            total=int(data.get("total", 0) or 0),
            detail_level=detail_level,
            limit=limit,
            layer=layer,
        )

    @overload
    def delete(self, target: type[ObjectSummary], value: str, ignore: Ignore = ...) -> None: ...

    @overload
    def delete(self, target: str, value: str, ignore: Ignore = ...) -> None: ...

    def delete(
        self,
        target: type[ObjectSummary] | str,
        value: str,
        ignore: Ignore = Ignore.NO,
    ) -> None:
        type_name = target if isinstance(target, str) else target.type_name
        key = "uid" if is_uid(value) else "name"
        payload: dict[str, object] = {key: value, **ignore.to_payload()}
        self.post(f"delete-{type_name}", payload)

    def save(self, obj: ObjectSummary, ignore: Ignore = Ignore.NO) -> bool:
        """Send ``obj``'s pending changes; returns ``False`` when it was clean.

        A rejected request leaves the object's dirty state untouched so the
        caller can fix it up and try again.
        """

        if not obj.is_changed:
            _LOGGER.debug("Skipping save of unchanged %r", obj)
            return False

        request = build_save_payload(obj, identifier=self.options.identifier, ignore=ignore)
        data = self.post(request.command, request.body)
        obj.bind_session(self)
        apply_server_state(
            obj,
            data,
            detail_level=DetailLevel.FULL,
            child_detail_level=DetailLevel.STANDARD,
            session=self,
        )
        return True

    def reload(
        self,
        obj: ObjectSummary,
        only_if_partial: bool = False,
        detail_level: DetailLevel = DetailLevel.STANDARD,
    ) -> None:
        if obj.is_new:
            raise ObjectStateError("Cannot reload a new object")
        if only_if_partial and obj.detail_level is DetailLevel.FULL:
            _LOGGER.debug("Skipping reload of fully loaded %r", obj)
            return

        payload: dict[str, object] = {
            "uid": obj.raw("uid"),
            "details-level": detail_level.wire,
            **obj.identifier_payload(),
        }
        data = self.post(f"show-{obj.type}", payload)
        apply_server_state(obj, data, detail_level=detail_level, session=self)


def _flatten_rulebase(entries: object) -> Iterator[Mapping[str, object]]:
    """Rules of a rulebase response in order, descending into access sections."""

    if not isinstance(entries, list):
        return
    for entry in entries:
        if not isinstance(entry, Mapping):
            continue
        if entry.get("type") == "access-section":
            yield from _flatten_rulebase(entry.get("rulebase"))
        else:
            yield entry
