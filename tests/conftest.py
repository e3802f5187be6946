from __future__ import annotations

import copy
import re
import uuid
from typing import Any

import pytest
from typer.testing import CliRunner

from cpmgmt.connection import ConnectionParams
from cpmgmt.exceptions import LoginFailedError, ManagementAPIError, ObjectNotFoundError
from cpmgmt.models.api import LoginResponse
from cpmgmt.models.catalog import OBJECT_TYPES
from cpmgmt.session import Session

MEMBERSHIP_KEYS = {"members", "groups", "tags", "source", "destination", "service", "install-on"}
FULL_ONLY_KEYS = {"comments", "color", "icon", "nat-settings", "broadcast", "os-name", "version", "interfaces"}
PLURALS = {cls.plural_name: cls.type_name for cls in OBJECT_TYPES.values() if cls.plural_name}
_UID_RE = re.compile(r"^\w{8}-\w{4}-\w{4}-\w{4}-\w{12}$")


class FakeManagementServer:
    """In-memory stand-in for the management API, speaking the client protocol."""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.failures: dict[str, ManagementAPIError] = {}
        self.sid: str | None = None
        self.pending_changes = 0
        self.published = 0
        self.closed = False

    def seed(self, type_name: str, name: str, **fields: Any) -> dict[str, Any]:
        record: dict[str, Any] = {
            "uid": str(uuid.uuid4()),
            "name": name,
            "type": type_name,
            "domain": {"uid": "41e821a0-3720-11e3-aa6e-0800200c9fde", "name": "SMC User"},
        }
        for key, value in fields.items():
            wire_key = key.replace("_", "-")
            if wire_key in MEMBERSHIP_KEYS:
                value = [self._uid_for(item) for item in value]
            record[wire_key] = value
        self.objects[record["uid"]] = record
        return record

    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]

    def last(self, command: str) -> dict[str, Any]:
        for name, payload in reversed(self.calls):
            if name == command:
                return payload
        raise AssertionError(f"'{command}' was never posted")

    def login(
        self,
        username: str,
        password: str,
        *,
        read_only: bool = False,
        domain: str | None = None,
    ) -> LoginResponse:
        self.calls.append(("login", {"user": username, "read-only": read_only, "domain": domain}))
        if password == "wrong":
            raise LoginFailedError(
                "Authentication to server failed.", status=400, code="err_login_failed"
            )
        self.sid = "fake-sid"
        return LoginResponse(
            sid="fake-sid",
            uid="7a13a360-9b24-40d7-acd3-5b50247be33e",
            session_timeout=600,
            api_server_version="1.9",
            read_only=read_only,
        )

    def logout(self) -> None:
        self.calls.append(("logout", {}))
        self.sid = None

    def close(self) -> None:
        self.closed = True

    def post(self, command: str, payload: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((command, copy.deepcopy(payload)))
        if command in self.failures:
            raise self.failures[command]

        if command == "publish":
            self.published += 1
            self.pending_changes = 0
            return {"task-id": "01234567-89ab-cdef-0123-456789abcdef"}
        if command == "discard":
            discarded, self.pending_changes = self.pending_changes, 0
            return {"number-of-discarded-changes": discarded}
        if command == "keepalive":
            return {}

        if command == "show-access-rulebase":
            return self._show_rulebase(payload)

        verb, _, type_name = command.partition("-")
        if verb == "show" and type_name in PLURALS:
            return self._show_many(PLURALS[type_name], payload)
        if verb == "show":
            record = self._lookup(type_name, payload)
            return self._render(record, payload.get("details-level", "standard"))
        if verb == "add":
            return self._add(type_name, payload)
        if verb == "set":
            return self._set(type_name, payload)
        if verb == "delete":
            record = self._lookup(type_name, payload)
            del self.objects[record["uid"]]
            self.pending_changes += 1
            return {"message": "OK"}
        raise ManagementAPIError(f"Unknown command {command}", status=404, code="not_implemented")

    def _show_many(self, type_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        records = sorted(
            (record for record in self.objects.values() if record["type"] == type_name),
            key=lambda record: record["name"],
        )
        offset = int(payload.get("offset", 0))
        limit = int(payload.get("limit", 50))
        page = records[offset : offset + limit]
        level = payload.get("details-level", "standard")
        return {
            "objects": [self._render(record, level) for record in page],
            "from": offset + 1 if page else 0,
            "to": offset + len(page),
            "total": len(records),
        }

    def _show_rulebase(self, payload: dict[str, Any]) -> dict[str, Any]:
        layer = payload.get("uid") or payload.get("name")
        rules = [
            record
            for record in self.objects.values()
            if record["type"] == "access-rule" and record.get("layer") == layer
        ]
        offset = int(payload.get("offset", 0))
        limit = int(payload.get("limit", 50))
        page = rules[offset : offset + limit]
        level = payload.get("details-level", "standard")
        referenced = {
            uid for record in page for key in MEMBERSHIP_KEYS for uid in record.get(key, [])
        }
        # Dictionary mode: references are bare uids resolved from objects-dictionary.
        rendered = [
            {
                **self._render(record, level),
                **{key: list(record[key]) for key in MEMBERSHIP_KEYS if key in record},
            }
            for record in page
        ]
        return {
            "name": layer,
            "rulebase": [
                {"type": "access-section", "name": "Section 1", "rulebase": rendered[:1]},
                *rendered[1:],
            ],
            "objects-dictionary": [
                {k: self.objects[uid][k] for k in ("uid", "name", "type")}
                for uid in sorted(referenced)
                if uid in self.objects
            ],
            "from": offset + 1 if page else 0,
            "to": offset + len(page),
            "total": len(rules),
        }

    def _add(self, type_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        name = payload.get("name")
        existing = self._find_by_name(type_name, name)
        if existing is not None:
            if not payload.get("set-if-exists"):
                raise ManagementAPIError(
                    "Validation failed with 1 error",
                    status=400,
                    code="err_validation_failed",
                    errors=[f"More than one object named '{name}' exists."],
                )
            return self._set(type_name, {"uid": existing["uid"], **payload})

        record: dict[str, Any] = {
            "uid": str(uuid.uuid4()),
            "type": type_name,
            "domain": {"uid": "41e821a0-3720-11e3-aa6e-0800200c9fde", "name": "SMC User"},
        }
        for key, value in payload.items():
            if key in {"set-if-exists", "ignore-warnings", "ignore-errors"}:
                continue
            if key in MEMBERSHIP_KEYS:
                record[key] = [self._uid_for(item) for item in value]
            else:
                record[key] = value
        self.objects[record["uid"]] = record
        self.pending_changes += 1
        return self._render(record, "full")

    def _set(self, type_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        record = self._lookup(type_name, payload)
        for key, value in payload.items():
            if key in {"uid", "name", "layer", "ignore-warnings", "ignore-errors", "set-if-exists"}:
                continue
            if key == "new-name":
                record["name"] = value
            elif key in MEMBERSHIP_KEYS:
                record[key] = self._apply_membership(record.get(key, []), value)
            else:
                record[key] = value
        self.pending_changes += 1
        return self._render(record, "full")

    def _apply_membership(self, current: list[str], value: Any) -> list[str]:
        if isinstance(value, list):
            return [self._uid_for(item) for item in value]
        result = list(current)
        for item in value.get("add", []):
            uid = self._uid_for(item)
            if uid not in result:
                result.append(uid)
        for item in value.get("remove", []):
            uid = self._uid_for(item)
            if uid in result:
                result.remove(uid)
        return result

    def _lookup(self, type_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        uid = payload.get("uid")
        record = self.objects.get(uid) if uid else self._find_by_name(type_name, payload.get("name"))
        if record is None or record["type"] != type_name:
            raise ObjectNotFoundError(
                f"Requested object [{uid or payload.get('name')}] not found",
                status=404,
                code="generic_err_object_not_found",
            )
        return record

    def _find_by_name(self, type_name: str, name: object) -> dict[str, Any] | None:
        for record in self.objects.values():
            if record["type"] == type_name and record["name"] == name:
                return record
        return None

    def _uid_for(self, item: str) -> str:
        if _UID_RE.match(item) and item in self.objects:
            return item
        for record in self.objects.values():
            if record["name"] == item:
                return record["uid"]
        raise ObjectNotFoundError(
            f"Requested object [{item}] not found",
            status=404,
            code="generic_err_object_not_found",
        )

    def _render(self, record: dict[str, Any], level: str) -> dict[str, Any]:
        if level == "uid":
            return {key: record[key] for key in ("uid", "name", "type")}
        rendered: dict[str, Any] = {}
        for key, value in record.items():
            if level != "full" and key in FULL_ONLY_KEYS:
                continue
            if key in MEMBERSHIP_KEYS:
                rendered[key] = [
                    {k: self.objects[uid][k] for k in ("uid", "name", "type")}
                    for uid in value
                    if uid in self.objects
                ]
            else:
                rendered[key] = copy.deepcopy(value)
        return rendered


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def connection_args() -> list[str]:
    return [
        "--host",
        "mgmt.example.com",
        "--username",
        "api-user",
        "--password",
        "super-secret",
    ]


@pytest.fixture
def fake_server() -> FakeManagementServer:
    return FakeManagementServer()


@pytest.fixture
def session(fake_server: FakeManagementServer) -> Session:
    return Session.login(fake_server, "api-user", "super-secret")


@pytest.fixture
def management_client(
    monkeypatch: pytest.MonkeyPatch,
    fake_server: FakeManagementServer,
) -> FakeManagementServer:
    def _create_client(_params: ConnectionParams) -> FakeManagementServer:
        return fake_server

    monkeypatch.setattr("cpmgmt.sdk.create_client", _create_client)
    return fake_server
