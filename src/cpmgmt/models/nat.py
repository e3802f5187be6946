"""NAT settings carried by hosts, networks and address ranges."""

from __future__ import annotations

from typing import Literal

from cpmgmt.models.fields import IPAddressField, TrackedField, decode_bool, decode_str
from cpmgmt.models.tracking import SimpleChangeTracking

NatMethod = Literal["static", "hide"]
HideBehind = Literal["gateway", "ip-address"]


class NatSettings(SimpleChangeTracking):
    """Automatic NAT configuration; always posted as a whole."""

    auto_rule = TrackedField[bool]("auto-rule", decode=decode_bool)
    method = TrackedField[NatMethod]("method", decode=decode_str)
    hide_behind = TrackedField[HideBehind]("hide-behind", decode=decode_str)
    install_on = TrackedField[str]("install-on", decode=decode_str)
    ipv4_address = IPAddressField("ipv4-address")
    ipv6_address = IPAddressField("ipv6-address")
