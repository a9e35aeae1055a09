"""Whole-file commands: format conversion, re-formatting, statistics and validation."""

from __future__ import annotations

from typing import Any, TextIO

from jsl.errors import SourceError
from jsl.executor import dump_value
from jsl.source import JsonTable, read_records

FORMATS = ("json", "jsonl")


def format_name(table: JsonTable) -> str:
    return "JSONL" if table.jsonl else "JSON"


def write_records(records: list[Any], out: TextIO, to: str, pretty: bool = False) -> None:
    """Write records as one JSON array (``json``) or one document per record (``jsonl``)."""
    if to == "jsonl":
        for record in records:
            out.write(dump_value(record, pretty))
            out.write("\n")
    elif to == "json":
        out.write(dump_value(records, pretty))
        out.write("\n")
    else:
        raise ValueError(f"Unknown output format: {to} (expected json or jsonl)")


def convert(source: str, out: TextIO, to: str, pretty: bool = False) -> int:
    """Re-encode every record of a source in another format.

    Returns:
        The number of records written.

    Raises:
        SourceError: If the source cannot be read.
    """
    records = read_records(source)
    write_records(records, out, to, pretty)
    return len(records)


def reformat(source: str, out: TextIO, to: str | None = None) -> int:
    """Pretty-print a source, keeping its own format unless ``to`` is given."""
    if to is None:
        to = "jsonl" if JsonTable(source).jsonl else "json"
    return convert(source, out, to, pretty=True)


def type_name(value: Any) -> str:
    """JSON type name of a decoded value."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "unknown"


def gather_stats(records: list[Any]) -> dict[str, dict[str, int]]:
    """Count the JSON types seen for each top-level field, in first-seen order."""
    fields: dict[str, dict[str, int]] = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        for key, value in record.items():
            types = fields.setdefault(key, {})
            name = type_name(value)
            types[name] = types.get(name, 0) + 1
    return fields


def print_stats(source: str, out: TextIO) -> None:
    """Print the record count and per-field type histogram of a source."""
    table = JsonTable(source)
    records = read_records(source)
    total = len(records)

    out.write(f"File: {table.display_name}\n")
    out.write(f"Format: {format_name(table)}\n")
    out.write(f"Total records: {total}\n")

    fields = gather_stats(records)
    if fields:
        out.write("\nFields:\n")
        for field, types in fields.items():
            out.write(f"  {field}:\n")
            for name, count in types.items():
                out.write(f"    {name}: {count} ({count / total * 100:.1f}%)\n")


def validate(source: str, out: TextIO) -> bool:
    """Check that a source decodes, reporting the outcome on out."""
    table = JsonTable(source)
    try:
        records = read_records(source)
    except SourceError as e:
        out.write(f"Validation failed: {e}\n")
        return False
    out.write(f"Valid {format_name(table)} input with {len(records)} record(s)\n")
    return True


def select_fields(value: Any, fields: list[str]) -> Any:
    """Keep only the named top-level keys of a mapping; other values pass through."""
    if not isinstance(value, dict):
        return value
    return {name: value[name] for name in fields if name in value}
