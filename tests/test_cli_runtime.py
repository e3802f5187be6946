from __future__ import annotations

from pathlib import Path
from typing import Any

from typer.testing import CliRunner

from cpmgmt.cli import app


def _seed(server: Any) -> None:
    server.seed("group", "G1")
    server.seed("group", "G2")
    server.seed("host", "web-1", ipv4_address="192.0.2.10", comments="front end", groups=["G1"])
    server.seed("host", "web-2", ipv4_address="192.0.2.20")
    server.seed("group", "web-servers", members=["web-1"])


def test_show_requires_connection_settings(runner: CliRunner) -> None:
    result = runner.invoke(
        app,
        ["show", "host", "web-1"],
        env={
            "CPMGMT_HOST": "",
            "CPMGMT_USERNAME": "",
            "CPMGMT_PASSWORD": "",
        },
    )

    assert result.exit_code == 2


def test_test_connection_success(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    result = runner.invoke(app, ["test-connection", *connection_args])

    assert result.exit_code == 0
    assert "Authentication successful" in result.stdout
    assert '"api-server-version": "1.9"' in result.stdout
    assert "fake-sid" not in result.stdout
    assert management_client.commands() == ["login", "logout"]
    assert management_client.closed is True


def test_test_connection_auth_failure(
    runner: CliRunner,
    management_client: Any,
) -> None:
    args = ["--host", "mgmt.example.com", "--username", "api-user", "--password", "wrong"]

    result = runner.invoke(app, ["test-connection", *args])

    assert result.exit_code == 1
    assert "API request failed: Authentication to server failed." in result.stdout
    assert management_client.closed is True


def test_show_object_as_json(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)

    result = runner.invoke(
        app,
        ["show", "host", "web-1", "--detail-level", "full", "--output", "json", *connection_args],
    )

    assert result.exit_code == 0
    assert '"ipv4-address": "192.0.2.10"' in result.stdout
    assert '"comments": "front end"' in result.stdout
    assert management_client.last("show-host") == {"name": "web-1", "details-level": "full"}


def test_show_unknown_type_is_a_usage_error(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    result = runner.invoke(app, ["show", "dns-domain", "example.com", *connection_args])

    assert result.exit_code == 2
    assert management_client.calls == []


def test_show_missing_object_fails(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    result = runner.invoke(app, ["host", "show", "nope", *connection_args])

    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_host_add_publishes(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)

    result = runner.invoke(
        app,
        ["host", "add", "web-9", "--ipv4-address", "192.0.2.90", "--group", "G2", *connection_args],
    )

    assert result.exit_code == 0
    assert "Host 'web-9' created" in result.stdout
    assert management_client.last("add-host") == {
        "name": "web-9",
        "ipv4-address": "192.0.2.90",
        "groups": ["G2"],
    }
    assert management_client.published == 1


def test_host_add_requires_an_address(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    result = runner.invoke(app, ["host", "add", "web-9", *connection_args])

    assert result.exit_code == 1
    assert management_client.calls == []


def test_host_add_rejects_invalid_address(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    result = runner.invoke(
        app, ["host", "add", "web-9", "--ipv4-address", "999.1.1.1", *connection_args]
    )

    assert result.exit_code == 1
    assert "add-host" not in management_client.commands()


def test_host_update_without_publish_discards(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)

    result = runner.invoke(
        app,
        [
            "host",
            "update",
            "web-1",
            "--comments",
            "retired",
            "--remove-group",
            "G1",
            "--add-group",
            "G2",
            "--no-publish",
            *connection_args,
        ],
    )

    assert result.exit_code == 0
    assert "Host 'web-1' updated" in result.stdout
    assert "Not published; discarded 1 change(s)" in result.stdout
    assert management_client.last("set-host") == {
        "name": "web-1",
        "comments": "retired",
        "groups": ["G2"],
    }
    assert management_client.published == 0


def test_host_update_without_changes_sends_nothing(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)

    result = runner.invoke(app, ["host", "update", "web-1", *connection_args])

    assert result.exit_code == 0
    assert "Host 'web-1' unchanged" in result.stdout
    assert "set-host" not in management_client.commands()
    assert "publish" not in management_client.commands()


def test_group_add_member(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)

    result = runner.invoke(app, ["group", "add-member", "web-servers", "web-2", *connection_args])

    assert result.exit_code == 0
    assert "'web-2' added to group 'web-servers'" in result.stdout
    assert management_client.last("set-group") == {
        "name": "web-servers",
        "members": {"add": ["web-2"]},
    }
    assert management_client.published == 1


def test_group_remove_member_that_is_not_a_member(
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)

    result = runner.invoke(
        app, ["group", "remove-member", "web-servers", "web-2", *connection_args]
    )

    assert result.exit_code == 1
    assert "is not a member" in result.stdout
    assert "set-group" not in management_client.commands()


def test_group_apply_reports_partial_failure(
    tmp_path: Path,
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    _seed(management_client)
    source = tmp_path / "changes.csv"
    source.write_text(
        "group,member,action\n"
        "web-servers,web-2,add\n"
        "web-servers,web-1,remove\n"
        "missing-group,web-2,add\n",
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        ["group", "apply", "--file", str(source), "--continue-on-error", *connection_args],
    )

    assert result.exit_code == 2
    assert "apply summary: total=3 groups=2 added=1 removed=1 failed=1" in result.stdout
    assert "missing-group:" in result.stdout
    assert management_client.last("set-group") == {
        "name": "web-servers",
        "members": ["web-2"],
    }
    assert management_client.published == 1


def test_group_apply_rejects_bad_input(
    tmp_path: Path,
    runner: CliRunner,
    connection_args: list[str],
    management_client: Any,
) -> None:
    source = tmp_path / "changes.json"
    source.write_text('[{"group": "web-servers", "member": "web-2", "action": "flip"}]', "utf-8")

    result = runner.invoke(app, ["group", "apply", "-f", str(source), *connection_args])

    assert result.exit_code == 1
    assert "Invalid input" in result.stdout
    assert management_client.calls == []
