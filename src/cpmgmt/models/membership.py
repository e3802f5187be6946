"""Membership tracking for list relations updated through add/remove/set verbs.

The management API accepts three forms for a list relation such as a group's
members or an object's tags::

    "members": ["a", "b"]              # replace the whole list
    "members": {"add": ["c"]}          # add to the server-side list
    "members": {"remove": ["a"]}       # remove from the server-side list

``MembershipTracker`` queues local edits as one of those forms. Mixing kinds
(remove then add, or add then remove) cannot be expressed with a single verb,
so the tracker materialises the resulting list from the last loaded items and
falls back to a replace. Objects that do not exist on the server yet have
nothing to diff against, so every edit on them is part of a replace.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cpmgmt.exceptions import InvalidMembershipOperationError
from cpmgmt.models.enums import ChangeAction
from cpmgmt.models.reference import identities_of, membership_id_of

if TYPE_CHECKING:
    from cpmgmt.models.tracking import ChangeTracking


@dataclass(frozen=True, slots=True)
class MembershipDiff:
    action: ChangeAction
    members: tuple[str, ...]


class MembershipTracker[T]:
    """Queued membership edits for one list relation of one parent object."""

    def __init__(self, parent: ChangeTracking, key: str):
        self._parent = parent
        self.key = key
        self._items: list[T] = []
        self._pending_action = ChangeAction.NONE
        self._pending_members: list[str] | None = None
        self._had_members = False
        self._is_deserializing = False

    def __iter__(self) -> Iterator[T]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> T:
        return self._items[index]

    def __contains__(self, item: object) -> bool:
        if item is None:
            return False
        if item in self._items:
            return True
        wanted = identities_of(item)
        return any(wanted & identities_of(existing) for existing in self._items)

    def __repr__(self) -> str:
        return (
            f"MembershipTracker(key={self.key!r}, items={self.identifiers()!r}, "
            f"pending_action={self._pending_action.value!r}, "
            f"pending_members={self._pending_members!r})"
        )

    @property
    def items(self) -> tuple[T, ...]:
        return tuple(self._items)

    @property
    def pending_action(self) -> ChangeAction:
        return self._pending_action

    @property
    def pending_members(self) -> tuple[str, ...] | None:
        if self._pending_members is None:
            return None
        return tuple(self._pending_members)

    @property
    def had_members(self) -> bool:
        return self._had_members

    @property
    def is_changed(self) -> bool:
        return self._pending_action is not ChangeAction.NONE

    def identifiers(self) -> list[str]:
        return [membership_id_of(item) for item in self._items]

    def _aliases(self, member_id: str) -> set[str]:
        """``member_id`` plus the other identifiers of the loaded item it names."""

        aliases = {member_id}
        for item in self._items:
            identities = identities_of(item)
            if member_id in identities:
                aliases |= identities
        return aliases

    def add(self, item: T | str | None) -> bool:
        """Queue ``item`` for addition. Returns ``False`` for ``None``."""

        if item is None:
            return False
        member_id = membership_id_of(item)

        if self._pending_action in (ChangeAction.NONE, ChangeAction.ADD, ChangeAction.SET):
            if self._pending_action is ChangeAction.NONE or self._pending_members is None:
                self._pending_members = []
                self._pending_action = (
                    ChangeAction.SET if self._parent.is_new else ChangeAction.ADD
                )
            self._pending_members.append(member_id)
            return True

        if self._parent.is_new:
            raise InvalidMembershipOperationError(
                f"'{self.key}' has a queued remove on an object that is not saved yet"
            )

        to_remove: set[str] = set()
        for queued in self._pending_members or []:
            to_remove |= self._aliases(queued)
        members = [
            membership_id_of(existing)
            for existing in self._items
            if not identities_of(existing) & to_remove
        ]
        members.append(member_id)
        self._pending_members = members
        self._pending_action = ChangeAction.SET
        return True

    def remove(self, item: T | str | None) -> bool:
        """Queue ``item`` for removal. Returns whether it was removed from a pending list."""

        if item is None:
            return False
        member_id = membership_id_of(item)
        aliases = self._aliases(member_id) | identities_of(item)

        if (
            self._pending_action in (ChangeAction.NONE, ChangeAction.REMOVE)
            and not self._parent.is_new
        ):
            self._pending_action = ChangeAction.REMOVE
            if self._pending_members is None:
                self._pending_members = []
            self._pending_members.append(member_id)
            return True

        if self._pending_action is ChangeAction.SET:
            return _discard(self._pending_members, aliases)

        if self._parent.is_new:
            raise InvalidMembershipOperationError(
                f"Cannot remove from '{self.key}' of an object that is not saved yet"
            )

        members = [*self.identifiers(), *(self._pending_members or [])]
        self._pending_members = members
        self._pending_action = ChangeAction.SET
        return _discard(members, aliases)

    def clear(self) -> None:
        """Queue a replace with an empty list, discarding any queued edits."""

        self._pending_action = ChangeAction.SET
        self._pending_members = []

    def extend(self, items: Iterable[T | str]) -> None:
        for item in items:
            self.add(item)

    def diff(self) -> MembershipDiff | None:
        if self._pending_action is ChangeAction.NONE:
            return None
        return MembershipDiff(self._pending_action, tuple(self._pending_members or ()))

    def to_payload(self) -> list[str] | dict[str, list[str]] | None:
        diff = self.diff()
        if diff is None:
            return None
        if diff.action is ChangeAction.SET:
            return list(diff.members)
        return {diff.action.value: list(diff.members)}

    def begin_apply_server_state(self) -> None:
        self._is_deserializing = True

    def load(self, items: Iterable[T]) -> None:
        """Replace the known items wholesale with the server's list."""

        if not self._is_deserializing:
            raise InvalidMembershipOperationError(
                f"'{self.key}' items can only be replaced while applying server state"
            )
        self._items = [item for item in items if item is not None]

    def end_apply_server_state(self) -> None:
        self._is_deserializing = False
        self._had_members = bool(self._items)
        self._pending_action = ChangeAction.NONE
        self._pending_members = None

    def abort_apply_server_state(self) -> None:
        self._is_deserializing = False


def _discard(members: list[str] | None, aliases: set[str]) -> bool:
    """Drop every entry naming one of ``aliases``; returns whether any was dropped."""

    if not members:
        return False
    kept = [member for member in members if member not in aliases]
    removed = len(kept) != len(members)
    members[:] = kept
    return removed
