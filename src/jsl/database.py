"""Rows, tables and the catalog that planned queries read from."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from jsl.errors import PlanError
from jsl.path import extract


class Row(ABC):
    """One record flowing through a plan."""

    @abstractmethod
    def get(self, path: str) -> Any:
        """Extract a value by path.

        Raises:
            PathExtractionError: If the path does not resolve.
        """

    @abstractmethod
    def as_value(self) -> Any:
        """Return the raw record for serialization."""


class JsonRow(Row):
    """A row backed by a decoded JSON value."""

    __slots__ = ("_value",)

    def __init__(self, value: Any) -> None:
        self._value = value

    def get(self, path: str) -> Any:
        return extract(self._value, path)

    def as_value(self) -> Any:
        return self._value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JsonRow):
            return NotImplemented
        return self._value == other._value

    def __repr__(self) -> str:
        return f"JsonRow({self._value!r})"


class RowIterator:
    """Pull iterator over rows with an explicit, idempotent ``close()``.

    Closing stops the underlying generator and then runs ``on_close``, which
    plan nodes use to close their input iterator. Closing the outermost
    iterator therefore releases the whole chain down to the source.
    """

    def __init__(self, rows: Iterator[Row], on_close: Callable[[], None] | None = None) -> None:
        self._rows = rows
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> RowIterator:
        return self

    def __next__(self) -> Row:
        if self._closed:
            raise StopIteration
        return next(self._rows)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            close = getattr(self._rows, "close", None)
            if close is not None:
                close()
        finally:
            if self._on_close is not None:
                self._on_close()

    def __enter__(self) -> RowIterator:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class Table(ABC):
    """A source of rows. Every ``iterate()`` call returns an independent iterator."""

    @abstractmethod
    def iterate(self) -> RowIterator:
        """Open a fresh iterator over the table's rows.

        Raises:
            SourceError: If the underlying input cannot be opened.
        """


class ListTable(Table):
    """A table over records already held in memory."""

    def __init__(self, records: Iterable[Any]) -> None:
        self.records = list(records)

    def iterate(self) -> RowIterator:
        return RowIterator(JsonRow(record) for record in self.records)

    def __len__(self) -> int:
        return len(self.records)


class Catalog:
    """Named tables that ``FROM name`` resolves against."""

    def __init__(self, tables: dict[str, Table] | None = None) -> None:
        self._tables: dict[str, Table] = dict(tables or {})

    def register_table(self, name: str, table: Table) -> None:
        self._tables[name] = table

    def get_table(self, name: str) -> Table:
        """Look up a table by name.

        Raises:
            PlanError: If no table is registered under that name.
        """
        table = self._tables.get(name)
        if table is None:
            known = ", ".join(self.names()) or "none"
            raise PlanError(f"Unknown table: {name} (known tables: {known})")
        return table

    def names(self) -> list[str]:
        return sorted(self._tables)

    def __contains__(self, name: object) -> bool:
        return name in self._tables
