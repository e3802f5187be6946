"""Business logic for group membership commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from cpmgmt.exceptions import ManagementError
from cpmgmt.models.changes import MembershipChange
from cpmgmt.models.enums import DetailLevel
from cpmgmt.models.network import Group
from cpmgmt.session import Session

_LOGGER = logging.getLogger(__name__)


def _new_error_list() -> list[str]:
    return []


@dataclass(slots=True)
class MembershipBulkResult:
    """Summary of a bulk membership operation."""

    total: int
    groups: int = 0
    added: int = 0
    removed: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=_new_error_list)


class MembershipService:
    """Edits group membership through the session's change-tracked objects."""

    def __init__(self, session: Session):
        self._session = session

    def get_group(self, name: str) -> Group:
        return self._session.find(Group, name, detail_level=DetailLevel.STANDARD)

    def add_member(self, group_name: str, member: str) -> Group:
        group = self.get_group(group_name)
        group.members.add(member)
        group.save()
        return group

    def remove_member(self, group_name: str, member: str) -> Group:
        group = self.get_group(group_name)
        if member not in group.members:
            raise ValueError(f"'{member}' is not a member of group '{group_name}'")
        group.members.remove(member)
        group.save()
        return group

    def apply_many(
        self,
        changes: list[MembershipChange],
        *,
        continue_on_error: bool,
    ) -> MembershipBulkResult:
        """Apply changes grouped per group, saving each group once.

        Changes for one group are queued in input order, so a mix of adds and
        removes is sent as a single replace of the group's member list.
        """

        result = MembershipBulkResult(total=len(changes))
        by_group: dict[str, list[MembershipChange]] = {}
        for change in changes:
            by_group.setdefault(change.group, []).append(change)
        result.groups = len(by_group)

        for group_name, group_changes in by_group.items():
            try:
                group = self.get_group(group_name)
                for change in group_changes:
                    if change.action == "add":
                        group.members.add(change.member)
                    else:
                        group.members.remove(change.member)
                _LOGGER.debug("Saving %s with %r", group_name, group.members)
                group.save()
            except (ManagementError, ValueError) as exc:
                result.failed += len(group_changes)
                result.errors.append(f"{group_name}: {exc}")
                if not continue_on_error:
                    break
                continue

            for change in group_changes:
                if change.action == "add":
                    result.added += 1
                else:
                    result.removed += 1

        return result
