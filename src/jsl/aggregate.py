"""Grouped aggregation: accumulators and per-group state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from jsl.comparison import format_value, greater, less, to_number
from jsl.database import Row
from jsl.errors import PathExtractionError
from jsl.query import AggregateFunction, Field


class Accumulator(ABC):
    """Running state for one aggregated field within one group."""

    def add(self, value: Any) -> None:
        """Feed one extracted value, flattening one sequence level."""
        if isinstance(value, list):
            for item in value:
                if item is not None:
                    self.update(item)
        elif value is not None:
            self.update(value)

    @abstractmethod
    def update(self, value: Any) -> None:
        """Feed a single non-null contribution."""

    @abstractmethod
    def result(self) -> Any:
        """Return the aggregated value."""


class Count(Accumulator):
    def __init__(self) -> None:
        self.count = 0

    def add(self, value: Any) -> None:
        # Sequences count by element count
        if isinstance(value, list):
            self.count += len(value)
        elif value is not None:
            self.count += 1

    def update(self, value: Any) -> None:
        self.count += 1

    def result(self) -> int:
        return self.count


class Sum(Accumulator):
    def __init__(self) -> None:
        self.total = 0.0

    def update(self, value: Any) -> None:
        number = to_number(value)
        if number is not None:
            self.total += number

    def result(self) -> float:
        return self.total


class Avg(Accumulator):
    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0

    def update(self, value: Any) -> None:
        number = to_number(value)
        if number is not None:
            self.total += number
            self.count += 1

    def result(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total / self.count


class Max(Accumulator):
    def __init__(self) -> None:
        self.value: Any = None
        self.seen = False

    def update(self, value: Any) -> None:
        if not self.seen or greater(value, self.value):
            self.value = value
            self.seen = True

    def result(self) -> Any:
        return self.value


class Min(Accumulator):
    def __init__(self) -> None:
        self.value: Any = None
        self.seen = False

    def update(self, value: Any) -> None:
        if not self.seen or less(value, self.value):
            self.value = value
            self.seen = True

    def result(self) -> Any:
        return self.value


ACCUMULATORS: dict[AggregateFunction, type[Accumulator]] = {
    AggregateFunction.COUNT: Count,
    AggregateFunction.SUM: Sum,
    AggregateFunction.AVG: Avg,
    AggregateFunction.MAX: Max,
    AggregateFunction.MIN: Min,
}


def create_accumulator(function: AggregateFunction) -> Accumulator:
    return ACCUMULATORS[function]()


_UNSET = object()


class GroupState:
    """Accumulators for one group key, one slot per SELECT field.

    Non-aggregated fields remember the first value seen in the group.
    """

    def __init__(self, fields: tuple[Field, ...]) -> None:
        self.fields = fields
        self.slots: list[Any] = [
            create_accumulator(f.aggregate) if f.aggregate is not None else _UNSET
            for f in fields
        ]

    def update(self, row: Row) -> None:
        for i, f in enumerate(self.fields):
            slot = self.slots[i]
            if isinstance(slot, Accumulator):
                try:
                    slot.add(row.get(f.path))
                except PathExtractionError:
                    continue
            elif slot is _UNSET:
                try:
                    self.slots[i] = row.get(f.path)
                except PathExtractionError:
                    self.slots[i] = None

    def finalize(self, group_key: str, group_by: str | None) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f, slot in zip(self.fields, self.slots):
            if isinstance(slot, Accumulator):
                result[f.alias] = slot.result()
            elif group_by is not None and f.path == group_by:
                result[f.alias] = group_key
            else:
                result[f.alias] = None if slot is _UNSET else slot
        return result


def group_key(row: Row, group_by: str | None) -> str:
    """Stringified GROUP BY value; ``""`` for a global aggregate."""
    if group_by is None:
        return ""
    try:
        return format_value(row.get(group_by))
    except PathExtractionError:
        return "null"


def aggregate_rows(
    rows: Iterable[Row], fields: tuple[Field, ...], group_by: str | None
) -> list[dict[str, Any]]:
    """Drain rows into groups and return one output record per group.

    Groups come out sorted by key. With no input rows, no GROUP BY and at
    least one aggregate field, a single row of empty aggregates is returned.
    """
    groups: dict[str, GroupState] = {}
    for row in rows:
        key = group_key(row, group_by)
        state = groups.get(key)
        if state is None:
            state = groups[key] = GroupState(fields)
        state.update(row)

    if not groups:
        if group_by is None and any(f.aggregate is not None for f in fields):
            return [GroupState(fields).finalize("", None)]
        return []

    return [groups[key].finalize(key, group_by) for key in sorted(groups)]
