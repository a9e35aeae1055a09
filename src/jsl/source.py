"""JSON and JSON Lines record sources.

A source is one of:

    path/to/data.json     a document holding an array of records, or
                          several JSON values one after another
    path/to/data.jsonl    one JSON value per line
    -                     standard input (also the empty string)
    {"a": 1}  /  [...]    an inline JSON literal
"""

from __future__ import annotations

import io
import json
import re
import sys
from collections.abc import Iterator
from typing import Any, TextIO

from jsl.database import JsonRow, RowIterator, Table
from jsl.errors import SourceError

_WHITESPACE = re.compile(r"\s*")


class JsonTable(Table):
    """A table that streams records from a JSON or JSON Lines source."""

    def __init__(self, source: str = "-", jsonl: bool | None = None) -> None:
        self.source = source
        if jsonl is None:
            jsonl = source.endswith(".jsonl")
        self.jsonl = jsonl

    @property
    def is_stdin(self) -> bool:
        return self.source in ("", "-")

    @property
    def is_inline(self) -> bool:
        return self.source[:1] in ("{", "[")

    @property
    def display_name(self) -> str:
        if self.is_stdin:
            return "<stdin>"
        if self.is_inline:
            return "<inline>"
        return self.source

    def _open(self) -> TextIO:
        if self.is_inline:
            return io.StringIO(self.source)
        if self.is_stdin:
            return sys.stdin
        try:
            return open(self.source, encoding="utf-8")
        except OSError as e:
            raise SourceError(f"Failed to open {self.source}: {e.strerror}") from e

    def iterate(self) -> RowIterator:
        """Open the source and return an iterator over its records.

        Standard input is read but never closed.

        Raises:
            SourceError: If the source cannot be opened. Decode failures are
                raised later, from iteration.
        """
        handle = self._open()
        if self.jsonl:
            rows = _read_jsonl(handle, self.display_name)
        else:
            rows = _read_json(handle, self.display_name)
        return RowIterator(rows, on_close=None if self.is_stdin else handle.close)

    def __repr__(self) -> str:
        return f"JsonTable({self.source!r}, jsonl={self.jsonl})"


def _read_jsonl(handle: TextIO, name: str) -> Iterator[JsonRow]:
    lineno = 0
    while True:
        try:
            line = handle.readline()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceError(f"{name}:{lineno + 1}: failed to read input: {e}") from e
        if not line:
            return
        lineno += 1
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise SourceError(f"{name}:{lineno}: failed to decode JSONL record: {e.msg}") from e
        yield JsonRow(record)


def _read_json(handle: TextIO, name: str) -> Iterator[JsonRow]:
    try:
        text = handle.read()
    except (OSError, UnicodeDecodeError) as e:
        raise SourceError(f"{name}: failed to read input: {e}") from e

    decoder = json.JSONDecoder()
    pos = 0
    while True:
        pos = _WHITESPACE.match(text, pos).end()  # type: ignore[union-attr]
        if pos >= len(text):
            return
        try:
            value, pos = decoder.raw_decode(text, pos)
        except json.JSONDecodeError as e:
            raise SourceError(
                f"{name}: failed to decode JSON record at line {e.lineno} column {e.colno}: {e.msg}"
            ) from e
        # Top-level arrays hold one record per element
        if isinstance(value, list):
            for item in value:
                yield JsonRow(item)
        else:
            yield JsonRow(value)


def read_records(source: str = "-", jsonl: bool | None = None) -> list[Any]:
    """Read every record from a source into a list."""
    with JsonTable(source, jsonl=jsonl).iterate() as rows:
        return [row.as_value() for row in rows]
