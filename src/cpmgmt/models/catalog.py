"""Server type name to class lookup."""

from __future__ import annotations

from cpmgmt.models.network import AddressRange, Group, Host, Network, SimpleGateway, Tag
from cpmgmt.models.objects import ObjectSummary
from cpmgmt.models.rules import AccessRule
from cpmgmt.models.services import ServiceGroup, ServiceTcp, ServiceUdp

OBJECT_TYPES: dict[str, type[ObjectSummary]] = {
    cls.type_name: cls
    for cls in (
        Tag,
        Host,
        Network,
        AddressRange,
        Group,
        SimpleGateway,
        ServiceTcp,
        ServiceUdp,
        ServiceGroup,
        AccessRule,
    )
}


def object_type(type_name: str) -> type[ObjectSummary]:
    """Class registered for ``type_name``; raises ``KeyError`` for unknown types."""

    try:
        return OBJECT_TYPES[type_name]
    except KeyError:
        known = ", ".join(sorted(OBJECT_TYPES))
        raise KeyError(f"Unknown object type '{type_name}' (known: {known})") from None
