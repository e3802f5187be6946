"""Network objects: tags, hosts, networks, address ranges, groups and gateways."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cpmgmt.models.enums import DetailLevel
from cpmgmt.models.fields import IPAddressField, TrackedField, decode_bool, decode_int, decode_str
from cpmgmt.models.nat import NatSettings
from cpmgmt.models.objects import ObjectBase
from cpmgmt.models.tracking import ListChangeTracking, SimpleChangeTracking

if TYPE_CHECKING:
    from cpmgmt.models.membership import MembershipTracker
    from cpmgmt.models.reference import Reference


def _nat_settings_field() -> TrackedField[NatSettings]:
    return TrackedField[NatSettings](
        "nat-settings",
        minimum=DetailLevel.FULL,
        decode=NatSettings.from_server,
        nested=True,
    )


class Tag(ObjectBase):
    type_name = "tag"
    plural_name = "tags"


class Host(ObjectBase):
    type_name = "host"
    plural_name = "hosts"

    ipv4_address = IPAddressField("ipv4-address")
    ipv6_address = IPAddressField("ipv6-address")
    nat_settings = _nat_settings_field()

    groups: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.groups = self._membership("groups")


class Network(ObjectBase):
    type_name = "network"
    plural_name = "networks"

    subnet4 = IPAddressField("subnet4")
    mask_length4 = TrackedField[int]("mask-length4", decode=decode_int)
    subnet6 = IPAddressField("subnet6")
    mask_length6 = TrackedField[int]("mask-length6", decode=decode_int)
    subnet_mask = TrackedField[str]("subnet-mask", decode=decode_str)
    broadcast = TrackedField[str]("broadcast", minimum=DetailLevel.FULL, decode=decode_str)
    nat_settings = _nat_settings_field()

    groups: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.groups = self._membership("groups")


class AddressRange(ObjectBase):
    type_name = "address-range"
    plural_name = "address-ranges"

    ipv4_address_first = IPAddressField("ipv4-address-first")
    ipv4_address_last = IPAddressField("ipv4-address-last")
    ipv6_address_first = IPAddressField("ipv6-address-first")
    ipv6_address_last = IPAddressField("ipv6-address-last")
    nat_settings = _nat_settings_field()

    groups: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.groups = self._membership("groups")


class Group(ObjectBase):
    type_name = "group"
    plural_name = "groups"

    members: MembershipTracker[Reference]
    groups: MembershipTracker[Reference]

    def _register_children(self) -> None:
        super()._register_children()
        self.members = self._membership("members")
        self.groups = self._membership("groups")


class GatewayInterface(SimpleChangeTracking):
    """One interface of a simple gateway. The interface list is posted as a whole."""

    name = TrackedField[str]("name", decode=decode_str)
    ipv4_address = IPAddressField("ipv4-address")
    ipv4_mask_length = TrackedField[int]("ipv4-mask-length", decode=decode_int)
    ipv6_address = IPAddressField("ipv6-address")
    ipv6_mask_length = TrackedField[int]("ipv6-mask-length", decode=decode_int)
    anti_spoofing = TrackedField[bool]("anti-spoofing", decode=decode_bool)
    security_zone = TrackedField[bool]("security-zone", decode=decode_bool)
    topology = TrackedField[str]("topology", decode=decode_str)

    def __str__(self) -> str:
        return self.name or ""


class SimpleGateway(ObjectBase):
    type_name = "simple-gateway"
    plural_name = "simple-gateways"

    ipv4_address = IPAddressField("ipv4-address")
    ipv6_address = IPAddressField("ipv6-address")
    os_name = TrackedField[str]("os-name", minimum=DetailLevel.FULL, decode=decode_str)
    version = TrackedField[str]("version", minimum=DetailLevel.FULL, decode=decode_str)
    firewall = TrackedField[bool]("firewall", minimum=DetailLevel.FULL, decode=decode_bool)
    vpn = TrackedField[bool]("vpn", minimum=DetailLevel.FULL, decode=decode_bool)

    _interfaces: ListChangeTracking[GatewayInterface]

    def _register_children(self) -> None:
        super()._register_children()
        self._interfaces = self.register_child(
            "interfaces", ListChangeTracking("interfaces", GatewayInterface)
        )

    @property
    def interfaces(self) -> ListChangeTracking[GatewayInterface] | None:
        """Gateway interfaces; only returned by the server at full detail."""

        if not self.test_detail_level(DetailLevel.FULL):
            return None
        return self._interfaces
