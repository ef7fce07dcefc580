"""Parsing of ClickUp exports (CSV or JSON) into note rows.

ClickUp's column names vary between export kinds, so every field lists
the headers it may appear under; the first non-empty one wins. Rows
without a title are skipped rather than reported.
"""

import csv
import io
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.utils.dates import utcnow

IMPORT_SOURCE = "clickup"
IMPORT_DOMAIN = "mlc"


@dataclass
class FieldDef:
    """One logical field and the export columns that may carry it."""
    db_field: str
    columns: tuple[str, ...]
    required: bool = False


@dataclass
class ParseResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    skipped: int = 0
    total_rows: int = 0


CLICKUP_CSV_FIELDS = [
    FieldDef("title", ("Task Name", "name", "Name", "title", "Title"), required=True),
    FieldDef("description", ("Task Content", "description", "Description", "content", "Content")),
    FieldDef("list_name", ("List Name", "list", "List")),
    FieldDef("folder_name", ("Folder Name", "folder", "Folder")),
]


class UnsupportedImportFile(ValueError):
    pass


def _first_value(row: dict[str, Any], columns: tuple[str, ...]) -> str:
    for column in columns:
        value = row.get(column)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _name_of(value: Any) -> str:
    """ClickUp nests list/folder as {"name": ...} in JSON, plain strings in CSV."""
    if isinstance(value, dict):
        return (value.get("name") or "").strip()
    if isinstance(value, str):
        return value.strip()
    return ""


def build_content(description: str, list_name: str, folder_name: str) -> str:
    context = " > ".join(part for part in (list_name, folder_name) if part)
    if context:
        return f"> Imported from ClickUp: {context}\n\n{description}"
    if description:
        return description
    return "> Imported from ClickUp"


def _note_row(title: str, description: str, list_name: str, folder_name: str,
              imported_at: datetime) -> dict[str, Any]:
    return {
        "title": title,
        "content": build_content(description, list_name, folder_name),
        "note_type": "general",
        "domain": IMPORT_DOMAIN,
        "imported_from": IMPORT_SOURCE,
        "imported_at": imported_at,
    }


def parse_clickup_csv(text: str, imported_at: datetime | None = None) -> ParseResult:
    imported_at = imported_at or utcnow()
    reader = csv.DictReader(io.StringIO(text))
    result = ParseResult()

    for raw_row in reader:
        result.total_rows += 1
        values = {fd.db_field: _first_value(raw_row, fd.columns) for fd in CLICKUP_CSV_FIELDS}
        if any(fd.required and not values[fd.db_field] for fd in CLICKUP_CSV_FIELDS):
            result.skipped += 1
            continue
        result.rows.append(_note_row(
            values["title"], values["description"],
            values["list_name"], values["folder_name"], imported_at,
        ))

    return result


def parse_clickup_json(text: str, imported_at: datetime | None = None) -> ParseResult:
    """Accepts a bare list or an object holding tasks/items/docs.

    Unparseable JSON yields an empty result.
    """
    imported_at = imported_at or utcnow()
    result = ParseResult()

    try:
        data = json.loads(text)
    except ValueError:
        return result

    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = data.get("tasks") or data.get("items") or data.get("docs") or []
    else:
        items = []

    for item in items:
        result.total_rows += 1
        if not isinstance(item, dict):
            result.skipped += 1
            continue
        title = _first_value(item, ("name", "title"))
        if not title:
            result.skipped += 1
            continue
        description = item.get("description") or item.get("content") or item.get("text_content") or ""
        result.rows.append(_note_row(
            title, description,
            _name_of(item.get("list")), _name_of(item.get("folder")), imported_at,
        ))

    return result


def parse_clickup_export(filename: str, content: bytes) -> ParseResult:
    """Dispatch on the file extension. Raises UnsupportedImportFile."""
    text = content.decode("utf-8-sig")  # handle BOM from Excel
    name = (filename or "").lower()
    if name.endswith(".json"):
        return parse_clickup_json(text)
    if name.endswith(".csv"):
        return parse_clickup_csv(text)
    raise UnsupportedImportFile("Unsupported file type. Please upload a CSV or JSON file.")
