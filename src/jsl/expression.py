"""Boolean expression tree for WHERE clauses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from jsl.comparison import OPERATOR_SYMBOLS, matches
from jsl.errors import PathExtractionError
from jsl.path import extract


@dataclass(frozen=True)
class Condition:
    """A single comparison: ``field operator value``.

    When the extracted field is a sequence or mapping the condition holds if
    any contained value satisfies the comparison.
    """

    field: str
    operator: str  # eq, neq, gt, gte, lt, lte, contains
    value: Any

    def evaluate(self, record: Any) -> bool:
        try:
            field_value = extract(record, self.field)
        except PathExtractionError:
            return False
        return matches(field_value, self.operator, self.value)

    def __str__(self) -> str:
        value = f"'{self.value}'" if isinstance(self.value, str) else self.value
        if isinstance(self.value, bool):
            value = "TRUE" if self.value else "FALSE"
        return f"{self.field} {OPERATOR_SYMBOLS[self.operator]} {value}"


@dataclass(frozen=True)
class And:
    """Logical AND of two expressions."""

    left: Expression
    right: Expression

    def evaluate(self, record: Any) -> bool:
        return self.left.evaluate(record) and self.right.evaluate(record)

    def __str__(self) -> str:
        return f"({self.left} AND {self.right})"


@dataclass(frozen=True)
class Or:
    """Logical OR of two expressions."""

    left: Expression
    right: Expression

    def evaluate(self, record: Any) -> bool:
        return self.left.evaluate(record) or self.right.evaluate(record)

    def __str__(self) -> str:
        return f"({self.left} OR {self.right})"


Expression = Union[Condition, And, Or]
