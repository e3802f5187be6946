"""TCP/UDP services and service groups."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cpmgmt.models.enums import DetailLevel
from cpmgmt.models.fields import TrackedField, decode_bool, decode_int, decode_str
from cpmgmt.models.objects import ObjectBase

if TYPE_CHECKING:
    from cpmgmt.models.membership import MembershipTracker
    from cpmgmt.models.reference import Reference


class _PortService(ObjectBase):
    port = TrackedField[str]("port", decode=decode_str)
    protocol = TrackedField[str]("protocol", minimum=DetailLevel.FULL, decode=decode_str)
    source_port = TrackedField[str]("source-port", minimum=DetailLevel.FULL, decode=decode_str)
    session_timeout = TrackedField[int](
        "session-timeout", minimum=DetailLevel.FULL, decode=decode_int
    )
    use_default_session_timeout = TrackedField[bool](
        "use-default-session-timeout", minimum=DetailLevel.FULL, decode=decode_bool
    )
    match_for_any = TrackedField[bool]("match-for-any", minimum=DetailLevel.FULL, decode=decode_bool)

    groups: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.groups = self._membership("groups")


class ServiceTcp(_PortService):
    type_name = "service-tcp"
    plural_name = "services-tcp"


class ServiceUdp(_PortService):
    type_name = "service-udp"
    plural_name = "services-udp"

    accept_replies = TrackedField[bool](
        "accept-replies", minimum=DetailLevel.FULL, decode=decode_bool
    )


class ServiceGroup(ObjectBase):
    type_name = "service-group"
    plural_name = "service-groups"

    members: MembershipTracker[Reference]
    groups: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.members = self._membership("members")
        self.groups = self._membership("groups")
