"""Access control rules."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from cpmgmt.models.enums import DetailLevel
from cpmgmt.models.fields import TrackedField, decode_bool, decode_reference, decode_str
from cpmgmt.models.objects import ObjectSummary

if TYPE_CHECKING:
    from cpmgmt.models.membership import MembershipTracker
    from cpmgmt.models.reference import Reference


class AccessRule(ObjectSummary):
    """A rule in an access layer.

    Rules are always addressed together with their layer, so ``layer`` is sent
    with every set-* call. ``position`` is only meaningful when adding or
    moving a rule; the server does not return it. Rules have no plain listing;
    they are read a layer at a time with ``Session.find_rules``.
    """

    type_name = "access-rule"
    rulebase_name: ClassVar[str] = "access-rulebase"

    layer = TrackedField[object]("layer", decode=decode_reference)
    position = TrackedField[object]("position", minimum=DetailLevel.MINIMAL, set_key="new-position")
    enabled = TrackedField[bool]("enabled", decode=decode_bool)
    action = TrackedField[object]("action", decode=decode_reference)
    comments = TrackedField[str]("comments", minimum=DetailLevel.FULL, decode=decode_str)
    source_negate = TrackedField[bool]("source-negate", minimum=DetailLevel.FULL, decode=decode_bool)
    destination_negate = TrackedField[bool](
        "destination-negate", minimum=DetailLevel.FULL, decode=decode_bool
    )
    service_negate = TrackedField[bool](
        "service-negate", minimum=DetailLevel.FULL, decode=decode_bool
    )

    source: MembershipTracker[Reference]
    destination: MembershipTracker[Reference]
    service: MembershipTracker[Reference]
    install_on: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.source = self._membership("source")
        self.destination = self._membership("destination")
        self.service = self._membership("service")
        self.install_on = self._membership("install_on", "install-on")

    def identifier_payload(self) -> dict[str, object]:
        layer = self._fields["layer"].dump(self)
        return {} if layer is None else {"layer": layer}
