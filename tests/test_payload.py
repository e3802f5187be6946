from __future__ import annotations

import pytest

from cpmgmt.exceptions import ObjectStateError, StaleIdentifierError
from cpmgmt.models.enums import DetailLevel, Identifier, Ignore
from cpmgmt.models.nat import NatSettings
from cpmgmt.models.network import GatewayInterface, Group, Host, SimpleGateway
from cpmgmt.models.objects import GenericObject
from cpmgmt.models.reference import Resolved, Unresolved
from cpmgmt.models.rules import AccessRule
from cpmgmt.serialization import (
    apply_server_state,
    build_save_payload,
    describe,
    load_object,
    resolve_identifier,
)

HOST_UID = "9a1b2c3d-4e5f-4a6b-8c7d-0e1f2a3b4c5d"
GROUP_UID = "f3f6e4a2-1c7d-4c0e-9d3c-2b1f0e6a7c11"
LAYER_UID = "0b9e4f2a-7c1d-4e8f-9a6b-3c2d1e0f4a5b"
GATEWAY_UID = "3e2d1c0b-9a8f-4e7d-8c6b-5a4f3e2d1c0b"


def _loaded_host(**extra: object) -> Host:
    host = Host.for_server(None, DetailLevel.FULL)
    apply_server_state(
        host,
        {
            "uid": HOST_UID,
            "name": "web-1",
            "type": "host",
            "ipv4-address": "192.0.2.10",
            "groups": ["web-servers", "dmz"],
            **extra,
        },
        detail_level=DetailLevel.FULL,
    )
    return host


def test_new_object_with_membership_is_added_with_full_list() -> None:
    host = Host(name="web-1", ipv4_address="192.0.2.10")
    host.groups.add("G1")

    payload = build_save_payload(host)

    assert payload.operation == "add"
    assert payload.command == "add-host"
    assert payload.identifier is None
    assert payload.body == {"name": "web-1", "ipv4-address": "192.0.2.10", "groups": ["G1"]}


def test_new_object_payload_includes_nested_values_and_set_if_exists() -> None:
    host = Host(
        set_if_exists=True,
        name="web-1",
        ipv4_address="192.0.2.10",
        nat_settings=NatSettings(auto_rule=True, method="static", ipv4_address="198.51.100.7"),
    )

    body = build_save_payload(host, ignore=Ignore.WARNINGS).body

    assert body["nat-settings"] == {
        "auto-rule": True,
        "method": "static",
        "ipv4-address": "198.51.100.7",
    }
    assert body["set-if-exists"] is True
    assert body["ignore-warnings"] is True


def test_existing_object_sends_only_changed_fields() -> None:
    host = _loaded_host()
    host.ipv4_address = "192.0.2.20"
    host.comments = "moved"

    payload = build_save_payload(host)

    assert payload.operation == "set"
    assert payload.command == "set-host"
    assert payload.identifier == {"name": "web-1"}
    assert payload.body == {"name": "web-1", "ipv4-address": "192.0.2.20", "comments": "moved"}


def test_existing_object_sends_membership_diff() -> None:
    host = _loaded_host()
    host.groups.remove("web-servers")

    body = build_save_payload(host).body

    assert body == {"name": "web-1", "groups": {"remove": ["web-servers"]}}


def test_rename_addresses_object_by_previous_name() -> None:
    host = _loaded_host()
    host.name = "web-1-new"
    host.groups.add("db")

    body = build_save_payload(host).body

    assert body == {"name": "web-1", "new-name": "web-1-new", "groups": {"add": ["db"]}}


def test_uid_preference_addresses_object_by_uid() -> None:
    host = _loaded_host()
    host.name = "web-1-new"

    payload = build_save_payload(host, identifier=Identifier.UID, ignore=Ignore.ERRORS)

    assert payload.identifier == {"uid": HOST_UID}
    assert payload.body == {"uid": HOST_UID, "new-name": "web-1-new", "ignore-errors": True}


def test_identifier_falls_back_when_preferred_key_is_missing() -> None:
    host = Host.for_server(None, DetailLevel.MINIMAL)
    apply_server_state(host, {"uid": HOST_UID, "type": "host"}, detail_level=DetailLevel.MINIMAL)

    assert resolve_identifier(host, Identifier.NAME) == {"uid": HOST_UID}


def test_object_without_uid_or_name_is_stale() -> None:
    host = Host.for_server(None, DetailLevel.MINIMAL)
    apply_server_state(host, {"type": "host"}, detail_level=DetailLevel.MINIMAL)
    host.comments = "orphan"

    with pytest.raises(StaleIdentifierError):
        build_save_payload(host)


def test_changed_nested_value_is_sent_whole() -> None:
    host = _loaded_host(**{"nat-settings": {"auto-rule": True, "method": "hide"}})
    nat = host.nat_settings
    assert nat is not None

    nat.hide_behind = "gateway"

    assert build_save_payload(host).body == {
        "name": "web-1",
        "nat-settings": {"auto-rule": True, "method": "hide", "hide-behind": "gateway"},
    }


def test_generic_objects_cannot_be_saved() -> None:
    obj = load_object(
        None,
        {"uid": HOST_UID, "name": "cp-mgmt", "type": "checkpoint-host"},
        session=None,
        detail_level=DetailLevel.STANDARD,
    )
    assert isinstance(obj, GenericObject)
    assert obj.type == "checkpoint-host"

    with pytest.raises(ObjectStateError):
        build_save_payload(obj)


def test_access_rule_set_call_includes_layer_and_new_position() -> None:
    rule = AccessRule.for_server(None, DetailLevel.STANDARD)
    apply_server_state(
        rule,
        {
            "uid": HOST_UID,
            "name": "allow-web",
            "type": "access-rule",
            "layer": LAYER_UID,
            "enabled": True,
            "source": [],
            "destination": [],
            "service": [],
        },
        detail_level=DetailLevel.STANDARD,
    )
    rule.position = 3
    rule.service.add("https")

    body = build_save_payload(rule).body

    assert body == {
        "name": "allow-web",
        "layer": LAYER_UID,
        "new-position": 3,
        "service": {"add": ["https"]},
    }


def test_nested_objects_are_built_and_cached_by_uid() -> None:
    group = Group.for_server(None, DetailLevel.STANDARD)
    apply_server_state(
        group,
        {
            "uid": GROUP_UID,
            "name": "web-servers",
            "type": "group",
            "members": [HOST_UID, {"uid": HOST_UID, "name": "web-1", "type": "host"}],
        },
        detail_level=DetailLevel.STANDARD,
    )

    first, second = group.members.items
    assert isinstance(first, Resolved)
    assert first.obj is second.obj
    assert isinstance(first.obj, Host)
    assert first.obj.detail_level is DetailLevel.STANDARD
    assert group.members.identifiers() == ["web-1", "web-1"]


def test_bare_uids_resolve_against_objects_dictionary() -> None:
    other_uid = "11111111-2222-3333-4444-555555555555"
    group = Group.for_server(None, DetailLevel.STANDARD)
    apply_server_state(
        group,
        {
            "uid": GROUP_UID,
            "name": "web-servers",
            "type": "group",
            "members": [HOST_UID, other_uid],
            "objects-dictionary": [{"uid": HOST_UID, "name": "web-1", "type": "host"}],
        },
        detail_level=DetailLevel.STANDARD,
    )

    resolved, unresolved = group.members.items
    assert isinstance(resolved, Resolved)
    assert str(resolved) == "web-1"
    assert unresolved == Unresolved(other_uid)


def test_describe_lists_fields_and_members() -> None:
    host = _loaded_host(comments="front end")

    data = describe(host)

    assert data["type"] == "host"
    assert data["detail-level"] == "full"
    assert data["ipv4-address"] == "192.0.2.10"
    assert data["comments"] == "front end"
    assert data["groups"] == ["web-servers", "dmz"]


def _loaded_gateway() -> SimpleGateway:
    gateway = SimpleGateway.for_server(None, DetailLevel.FULL)
    apply_server_state(
        gateway,
        {
            "uid": GATEWAY_UID,
            "name": "gw-1",
            "type": "simple-gateway",
            "interfaces": [
                {"name": "eth0", "ipv4-address": "192.0.2.1", "ipv4-mask-length": 24},
                {"name": "eth1", "ipv4-address": "10.0.0.1", "ipv4-mask-length": 8},
            ],
        },
        detail_level=DetailLevel.FULL,
    )
    return gateway


def test_new_gateway_is_added_with_its_interfaces() -> None:
    gateway = SimpleGateway(
        name="gw-1",
        ipv4_address="192.0.2.1",
        interfaces=[GatewayInterface(name="eth0", ipv4_address="192.0.2.1", ipv4_mask_length=24)],
    )

    payload = build_save_payload(gateway)

    assert payload.command == "add-simple-gateway"
    assert payload.body == {
        "name": "gw-1",
        "ipv4-address": "192.0.2.1",
        "interfaces": [{"name": "eth0", "ipv4-address": "192.0.2.1", "ipv4-mask-length": 24}],
    }


def test_edited_interface_sends_the_whole_interface_list() -> None:
    gateway = _loaded_gateway()
    assert gateway.interfaces is not None
    gateway.interfaces["eth1"].anti_spoofing = False

    body = build_save_payload(gateway).body

    assert body == {
        "name": "gw-1",
        "interfaces": [
            {"name": "eth0", "ipv4-address": "192.0.2.1", "ipv4-mask-length": 24},
            {
                "name": "eth1",
                "ipv4-address": "10.0.0.1",
                "ipv4-mask-length": 8,
                "anti-spoofing": False,
            },
        ],
    }


def test_unchanged_interfaces_are_not_sent() -> None:
    gateway = _loaded_gateway()
    gateway.comments = "edge"

    assert build_save_payload(gateway).body == {"name": "gw-1", "comments": "edge"}


def test_describe_lists_interfaces() -> None:
    data = describe(_loaded_gateway())

    assert data["interfaces"] == [
        {"name": "eth0", "ipv4-address": "192.0.2.1", "ipv4-mask-length": 24},
        {"name": "eth1", "ipv4-address": "10.0.0.1", "ipv4-mask-length": 8},
    ]
