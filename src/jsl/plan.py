"""Execution plan nodes.

Every node builds a lazily pulled RowIterator from ``execute()``. Nodes own
their input node; closing a node's iterator closes its input's iterator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from jsl.aggregate import aggregate_rows
from jsl.database import JsonRow, Row, RowIterator, Table
from jsl.errors import PathExtractionError, PlanError, SourceError
from jsl.expression import Expression
from jsl.query import Field


class PlanNode(ABC):
    """A stage of physical execution."""

    @abstractmethod
    def execute(self) -> RowIterator:
        """Open the node's input and return an iterator over its output.

        Raises:
            PlanError: If the input cannot be opened.
        """

    @abstractmethod
    def children(self) -> list[PlanNode]:
        """Input nodes, for plan printing."""

    @abstractmethod
    def explain(self) -> str:
        """One-line description of this node."""


@dataclass
class ScanNode(PlanNode):
    """Read every row of a table."""

    table: Table
    name: str = "default"

    def execute(self) -> RowIterator:
        try:
            return self.table.iterate()
        except SourceError as e:
            raise PlanError(f"Cannot open table {self.name}: {e}") from e

    def children(self) -> list[PlanNode]:
        return []

    def explain(self) -> str:
        return f"Scan(table: {self.name})"


@dataclass
class FilterNode(PlanNode):
    """Keep rows whose record satisfies an expression."""

    input: PlanNode
    expression: Expression

    def execute(self) -> RowIterator:
        source = self.input.execute()
        return RowIterator(self._filter(source), on_close=source.close)

    def _filter(self, source: RowIterator) -> Iterator[Row]:
        for row in source:
            if self.expression.evaluate(row.as_value()):
                yield row

    def children(self) -> list[PlanNode]:
        return [self.input]

    def explain(self) -> str:
        return f"Filter(expression: {self.expression})"


@dataclass
class ProjectNode(PlanNode):
    """Evaluate SELECT fields per row, unwinding parallel sequences."""

    input: PlanNode
    fields: tuple[Field, ...]

    def execute(self) -> RowIterator:
        source = self.input.execute()
        return RowIterator(self._project(source), on_close=source.close)

    def _project(self, source: RowIterator) -> Iterator[Row]:
        for row in source:
            for record in project_row(row, self.fields):
                yield JsonRow(record)

    def children(self) -> list[PlanNode]:
        return [self.input]

    def explain(self) -> str:
        return f"Project({', '.join(str(f) for f in self.fields)})"


def project_row(row: Row, fields: tuple[Field, ...]) -> list[dict[str, Any]]:
    """Project one row into one or more output records.

    When every sequence-valued field has the same non-zero length, one record
    is produced per index with scalar fields repeated. Otherwise a single
    record holds every value as extracted. Failed extraction yields None.
    """
    values: list[Any] = []
    for f in fields:
        try:
            values.append(row.get(f.path))
        except PathExtractionError:
            values.append(None)

    lengths = {len(v) for v in values if isinstance(v, list)}
    if len(lengths) == 1:
        (length,) = lengths
        if length > 0:
            return [
                {
                    f.alias: value[i] if isinstance(value, list) else value
                    for f, value in zip(fields, values)
                }
                for i in range(length)
            ]

    return [{f.alias: value for f, value in zip(fields, values)}]


@dataclass
class AggregateNode(PlanNode):
    """Group rows and compute aggregate fields.

    The input is opened by ``execute()`` and fully drained on the first pull.
    """

    input: PlanNode
    fields: tuple[Field, ...]
    group_by: str | None = None

    def execute(self) -> RowIterator:
        source = self.input.execute()
        return RowIterator(self._aggregate(source), on_close=source.close)

    def _aggregate(self, source: RowIterator) -> Iterator[Row]:
        records = aggregate_rows(source, self.fields, self.group_by)
        source.close()
        for record in records:
            yield JsonRow(record)

    def children(self) -> list[PlanNode]:
        return [self.input]

    def explain(self) -> str:
        group = self.group_by if self.group_by is not None else "global"
        fields = ", ".join(str(f) for f in self.fields)
        return f"Aggregate(group: {group}, fields: [{fields}])"


def format_plan(node: PlanNode) -> str:
    """Render a plan as an indented tree, one node per line."""
    lines: list[str] = []
    _format_node(node, "", True, lines)
    return "\n".join(lines) + "\n"


def _format_node(node: PlanNode, prefix: str, last: bool, lines: list[str]) -> None:
    if last:
        lines.append(f"{prefix}└─ {node.explain()}")
        prefix += "   "
    else:
        lines.append(f"{prefix}├─ {node.explain()}")
        prefix += "│  "
    children = node.children()
    for i, child in enumerate(children):
        _format_node(child, prefix, i == len(children) - 1, lines)
