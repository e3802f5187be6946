"""Bulk input parsing for membership commands."""

from __future__ import annotations

import csv
import io
import json
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Literal, cast

from cpmgmt.models.changes import MembershipChange

BulkInputFormat = Literal["auto", "json", "csv"]
Record = dict[str, object]

# Canonical key -> accepted spellings, first match wins.
_ALIASES: dict[str, tuple[str, ...]] = {
    "group": ("group", "group_name", "groupName", "Group"),
    "member": ("member", "member_name", "memberName", "Member", "object", "name"),
    "action": ("action", "Action", "op", "operation"),
}

_ACTIONS = {
    "add": "add",
    "added": "add",
    "insert": "add",
    "+": "add",
    "remove": "remove",
    "removed": "remove",
    "delete": "remove",
    "del": "remove",
    "-": "remove",
}


def load_membership_changes(
    source: str,
    input_format: BulkInputFormat = "auto",
) -> list[MembershipChange]:
    """Load membership change records from a JSON/CSV file or stdin.

    Blank CSV rows are skipped, a missing action means ``add``, and a
    record that does not validate raises ``ValueError``.
    """

    text = _read_source(source)
    if _detect_format(source, text, input_format) == "json":
        raw = _json_records(text)
    else:
        raw = _csv_records(text)

    changes = [MembershipChange.model_validate(_canonical(record)) for record in raw]
    if not changes:
        raise ValueError("Input data did not contain any records")
    return changes


def _read_source(source: str) -> str:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    if not text.strip():
        raise ValueError("Input is empty")
    return text


def _detect_format(source: str, text: str, requested: BulkInputFormat) -> Literal["json", "csv"]:
    if requested != "auto":
        return requested

    suffix = Path(source).suffix.lower() if source != "-" else ""
    if suffix in (".json", ".csv"):
        return cast(Literal["json", "csv"], suffix[1:])
    return "json" if text.lstrip()[:1] in ("[", "{") else "csv"


def _json_records(text: str) -> list[Record]:
    document: object = json.loads(text)
    if isinstance(document, Mapping):
        document = cast(Mapping[object, object], document).get("changes")
    if not isinstance(document, list):
        raise ValueError(
            "JSON input must be a list of records or an object with a 'changes' list"
        )

    records: list[Record] = []
    for item in cast(list[object], document):
        if not isinstance(item, Mapping) or not all(
            isinstance(key, str) for key in cast(Mapping[object, object], item)
        ):
            raise ValueError("All JSON records must be objects with string keys")
        records.append(dict(cast(Mapping[str, object], item)))
    return records


def _csv_records(text: str) -> list[Record]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValueError("CSV input must include a header row")
    return [
        {key: value for key, value in row.items() if key}
        for row in reader
        if not _is_blank(row.values())
    ]


def _is_blank(values: Iterable[object]) -> bool:
    return all(not str(value or "").strip() for value in values)


def _canonical(record: Record) -> Record:
    canonical: Record = {}
    for field, spellings in _ALIASES.items():
        value = next((record[key] for key in spellings if key in record), None)
        if value is None or not str(value).strip():
            continue
        text = str(value).strip()
        if field == "action":
            try:
                text = _ACTIONS[text.lower()]
            except KeyError:
                raise ValueError(f"Unsupported membership action: {value}") from None
        canonical[field] = text
    return canonical
