"""Change tracking for objects whose edits are posted back as partial updates.

Three flavours exist:

* ``ChangeTracking`` records the name of every property set outside of
  deserialization, so a ``set-*`` call only carries what the caller touched.
  Child trackables (membership trackers, nested value objects) are registered
  explicitly and make the parent dirty when they are dirty.
* ``SimpleChangeTracking`` is for small value objects (e.g. NAT settings) that
  the server only accepts as a whole; it keeps a single changed flag.
* ``ListChangeTracking`` holds an ordered list of such value objects (e.g. a
  gateway's interfaces); it is dirty when edited or when any element is.

Server data is applied between ``begin_apply_server_state`` and
``end_apply_server_state``. Completing that pair marks the object as existing
on the server and clears its dirty state.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, ClassVar, Protocol, Self

from cpmgmt.models.enums import DetailLevel, DetailLevelAction
from cpmgmt.models.fields import TrackedField

if TYPE_CHECKING:
    from cpmgmt.models.reference import ServerStateContext


class Trackable(Protocol):
    """Child state that contributes to its parent's dirty flag."""

    @property
    def is_changed(self) -> bool: ...

    def begin_apply_server_state(self) -> None: ...

    def end_apply_server_state(self) -> None: ...

    def abort_apply_server_state(self) -> None: ...


class TrackedBase(ABC):
    """Field registry and server-state plumbing shared by both tracker flavours."""

    _fields: ClassVar[dict[str, TrackedField]] = {}

    def __init_subclass__(cls, **kwargs: object) -> None:
        super().__init_subclass__(**kwargs)
        fields: dict[str, TrackedField] = {}
        for base in reversed(cls.__mro__):
            for name, value in vars(base).items():
                if isinstance(value, TrackedField):
                    fields[name] = value
        cls._fields = fields

    @classmethod
    def tracked_fields(cls) -> dict[str, TrackedField]:
        return dict(cls._fields)

    @property
    @abstractmethod
    def is_deserializing(self) -> bool: ...

    @abstractmethod
    def begin_apply_server_state(self) -> None: ...

    @abstractmethod
    def end_apply_server_state(self) -> None: ...

    @abstractmethod
    def abort_apply_server_state(self) -> None: ...

    @abstractmethod
    def on_property_changed(self, name: str) -> None: ...

    def test_detail_level(
        self,
        minimum: DetailLevel,
        action: DetailLevelAction = DetailLevelAction.SESSION_DEFAULT,
    ) -> bool:
        del minimum, action
        return True

    @contextmanager
    def applying_server_state(self) -> Iterator[Self]:
        """Apply server data inside the block; commit only if the block succeeds."""

        self.begin_apply_server_state()
        try:
            yield self
        except Exception:
            self.abort_apply_server_state()
            raise
        self.end_apply_server_state()

    def load_fields(
        self,
        data: Mapping[str, object],
        context: ServerStateContext | None = None,
    ) -> None:
        """Populate every tracked field whose wire key is present in ``data``."""

        for field in self._fields.values():
            if field.key in data:
                field.load(self, data[field.key], context)


class ChangeTracking(TrackedBase):
    """Per-property dirty tracking with explicitly registered children."""

    def __init__(self) -> None:
        self._changed_properties: list[str] = []
        self._children: dict[str, Trackable] = {}
        self._is_new = True
        self._is_deserializing = False

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_deserializing(self) -> bool:
        return self._is_deserializing

    @property
    def changed_properties(self) -> tuple[str, ...]:
        return tuple(self._changed_properties)

    @property
    def is_changed(self) -> bool:
        if self._changed_properties:
            return True
        return any(child.is_changed for _, child in self.children())

    def is_property_changed(self, name: str) -> bool:
        return name in self._changed_properties

    def on_property_changed(self, name: str) -> None:
        if self._is_deserializing or name in self._changed_properties:
            return
        self._changed_properties.append(name)

    def register_child[C: Trackable](self, name: str, child: C) -> C:
        if name in self._children:
            raise ValueError(f"Child trackable '{name}' is already registered")
        self._children[name] = child
        return child

    def children(self) -> Iterator[tuple[str, Trackable]]:
        """Registered children, then nested value objects currently held by fields."""

        yield from self._children.items()
        for name, field in self._fields.items():
            if not field.nested:
                continue
            value = field.raw(self)
            if value is not None:
                yield name, value

    def begin_apply_server_state(self) -> None:
        self._is_deserializing = True
        for _, child in self.children():
            child.begin_apply_server_state()

    def end_apply_server_state(self) -> None:
        self._is_deserializing = False
        self._is_new = False
        self._changed_properties.clear()
        for _, child in self.children():
            child.end_apply_server_state()

    def abort_apply_server_state(self) -> None:
        self._is_deserializing = False
        for _, child in self.children():
            child.abort_apply_server_state()


class SimpleChangeTracking(TrackedBase):
    """Whole-value change tracking for nested settings objects."""

    def __init__(self, **values: object) -> None:
        self._is_changed = False
        self._is_new = True
        self._is_deserializing = False
        for name, value in values.items():
            if name not in self._fields:
                raise TypeError(f"{type(self).__name__} has no field '{name}'")
            setattr(self, name, value)

    @property
    def is_changed(self) -> bool:
        return self._is_changed

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def is_deserializing(self) -> bool:
        return self._is_deserializing

    def on_property_changed(self, name: str) -> None:
        del name
        if not self._is_deserializing:
            self._is_changed = True

    def begin_apply_server_state(self) -> None:
        self._is_deserializing = True

    def end_apply_server_state(self) -> None:
        self._is_deserializing = False
        self._is_new = False
        self._is_changed = False

    def abort_apply_server_state(self) -> None:
        self._is_deserializing = False

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for field in self._fields.values():
            if field.read_only:
                continue
            value = field.dump(self)
            if value is not None:
                payload[field.key] = value
        return payload

    @classmethod
    def from_server(
        cls,
        data: object,
        context: ServerStateContext | None = None,
    ) -> Self:
        instance = cls()
        if isinstance(data, Mapping):
            with instance.applying_server_state():
                instance.load_fields(data, context)
        return instance


class ListChangeTracking[T: SimpleChangeTracking]:
    """An ordered list of value objects that the server accepts only as a whole.

    The list is dirty when it was edited locally or when any element is dirty.
    Loading replaces the elements wholesale; completing a server-state apply
    marks the list and every element clean.
    """

    def __init__(self, key: str, item_type: type[T]):
        self.key = key
        self.item_type = item_type
        self._items: list[T] = []
        self._is_changed = False
        self._is_deserializing = False

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._items

    def __getitem__(self, index: int | str) -> T:
        if isinstance(index, str):
            for item in self._items:
                if str(item) == index:
                    return item
            raise KeyError(index)
        return self._items[index]

    def __setitem__(self, index: int, item: T) -> None:
        self._items[index] = item
        self._is_changed = True

    def __repr__(self) -> str:
        return f"ListChangeTracking(key={self.key!r}, items={[str(i) for i in self._items]!r})"

    @property
    def is_changed(self) -> bool:
        return self._is_changed or any(item.is_changed for item in self._items)

    def append(self, item: T) -> None:
        self._items.append(item)
        self._is_changed = True

    def extend(self, items: Iterable[T]) -> None:
        for item in items:
            self.append(item)

    def insert(self, index: int, item: T) -> None:
        self._items.insert(index, item)
        self._is_changed = True

    def remove(self, item: T) -> None:
        self._items.remove(item)
        self._is_changed = True

    def clear(self) -> None:
        self._items.clear()
        self._is_changed = True

    def to_payload(self) -> list[dict[str, object]]:
        return [item.to_payload() for item in self._items]

    def begin_apply_server_state(self) -> None:
        self._is_deserializing = True

    def load(self, data: object, context: ServerStateContext | None = None) -> None:
        """Replace the elements with ones built from the server's list."""

        if not self._is_deserializing:
            raise RuntimeError(f"'{self.key}' can only be loaded while applying server state")
        raw_items = data if isinstance(data, list) else []
        self._items = [self.item_type.from_server(raw, context) for raw in raw_items]

    def end_apply_server_state(self) -> None:
        self._is_deserializing = False
        self._is_changed = False
        for item in self._items:
            item.end_apply_server_state()

    def abort_apply_server_state(self) -> None:
        self._is_deserializing = False
