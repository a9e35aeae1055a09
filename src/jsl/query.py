"""Query intermediate representation and lowering from the statement AST."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from jsl.comparison import format_value
from jsl.errors import ParseError
from jsl.expression import And, Condition, Expression, Or
from jsl.parsing.query_lexer import RESERVED_KEYWORDS
from jsl.parsing.query_parser import (
    Comparison,
    Conjunction,
    Disjunction,
    FunctionCall,
    Grouped,
    Literal,
    Operand,
    PathRef,
    QueryParser,
    SelectItem,
    SelectStatement,
    SubQuery,
)
from jsl.path import parse_path


class AggregateFunction(Enum):
    """Aggregate functions accepted in the SELECT list."""

    MAX = "MAX"
    MIN = "MIN"
    AVG = "AVG"
    COUNT = "COUNT"
    SUM = "SUM"

    @classmethod
    def lookup(cls, name: str) -> AggregateFunction | None:
        return cls.__members__.get(name.upper())


_PLAIN_PART = re.compile(r"^(?:[A-Za-z_][A-Za-z0-9_]*|\d+|\*|%)$")


def _quote(path: str) -> str:
    """Render a path so it reads back through the statement lexer."""
    parts = path.split(".")
    if all(_PLAIN_PART.match(p) and p.lower() not in RESERVED_KEYWORDS for p in parts):
        return path
    return f"`{path}`"


@dataclass(frozen=True)
class Field:
    """One output column: a path, its output key and an optional aggregate."""

    path: str
    alias: str
    aggregate: AggregateFunction | None = None

    def __str__(self) -> str:
        if self.aggregate is None:
            if self.alias == self.path:
                return _quote(self.path)
            return f"{_quote(self.path)} AS {self.alias}"

        # A default alias keeps the function name as written, so reuse that spelling
        suffix = "_" + self.path.replace(".", "_")
        name = self.alias[: -len(suffix)]
        if self.alias.endswith(suffix) and name.upper() == self.aggregate.value:
            return f"{name}({_quote(self.path)})"
        return f"{self.aggregate.value}({_quote(self.path)}) AS {self.alias}"


@dataclass(frozen=True)
class SelectQuery:
    """Lowered SELECT statement.

    At most one of ``from_table`` and ``from_query`` is set; when neither is,
    the query reads the default input.
    """

    fields: tuple[Field, ...] = ()
    from_table: str | None = None
    from_query: SelectQuery | None = None
    filter: Expression | None = None
    group_by: str | None = None

    @property
    def has_aggregates(self) -> bool:
        return any(f.aggregate is not None for f in self.fields)


_parser: QueryParser | None = None


def _get_parser() -> QueryParser:
    global _parser
    if _parser is None:
        _parser = QueryParser()
        _parser.build(debug=False, write_tables=False)
    return _parser


def parse_query(text: str) -> SelectQuery:
    """Parse statement text into a SelectQuery.

    Raises:
        ParseError: If the text is not a valid statement.
    """
    statement = _get_parser().parse(text)
    return to_select_query(statement, text)


def to_select_query(statement: SelectStatement, text: str = "") -> SelectQuery:
    """Lower a parsed statement into the query IR."""
    fields: list[Field] = []
    items = statement.items
    if not (len(items) == 1 and items[0].alias is None and _is_star(items[0])):
        for item in items:
            fields.append(_lower_field(item, text))

    from_table = None
    from_query = None
    if statement.source is not None:
        if statement.source.subquery is not None:
            from_query = to_select_query(statement.source.subquery, text)
        else:
            from_table = statement.source.table

    filter_expr = None
    if statement.where is not None:
        filter_expr = _lower_expression(statement.where, text)

    group_by = None
    if statement.group_by is not None:
        group_by = _checked_path(statement.group_by, text)

    return SelectQuery(
        fields=tuple(fields),
        from_table=from_table,
        from_query=from_query,
        filter=filter_expr,
        group_by=group_by,
    )


def _is_star(item: SelectItem) -> bool:
    try:
        operand = _select_operand(item.expression, "")
    except ParseError:
        return False
    return isinstance(operand, PathRef) and operand.parts in (["*"], ["%"])


def _select_operand(expression: Disjunction, text: str) -> Operand:
    """Unwrap a SELECT list entry down to its single operand."""
    if len(expression.terms) != 1:
        raise ParseError("OR is not allowed in the SELECT list", query=text)
    conjunction = expression.terms[0]
    if len(conjunction.terms) != 1:
        raise ParseError("AND is not allowed in the SELECT list", query=text)
    condition = conjunction.terms[0]
    if isinstance(condition, Grouped):
        return _select_operand(condition.expression, text)
    if condition.operator is not None:
        raise ParseError("Comparisons are not allowed in the SELECT list", query=text)
    return condition.operand


def _lower_field(item: SelectItem, text: str) -> Field:
    operand = _select_operand(item.expression, text)

    if isinstance(operand, PathRef):
        path = _checked_path(operand, text)
        return Field(path=path, alias=item.alias or path)

    elif isinstance(operand, FunctionCall):
        aggregate = AggregateFunction.lookup(operand.name)
        if aggregate is None:
            raise ParseError(f"Unknown function: {operand.name}", query=text)
        if len(operand.args) != 1:
            raise ParseError(
                f"{operand.name}() takes exactly one argument ({len(operand.args)} given)",
                query=text,
            )
        arg = operand.args[0]
        if not isinstance(arg, PathRef):
            raise ParseError(f"{operand.name}() argument must be a field path", query=text)
        path = _checked_path(arg, text)
        alias = item.alias or f"{operand.name}_{path.replace('.', '_')}"
        return Field(path=path, alias=alias, aggregate=aggregate)

    elif isinstance(operand, Literal):
        path = format_value(operand.value)
        return Field(path=path, alias=item.alias or path)

    elif isinstance(operand, SubQuery):
        raise ParseError("Subqueries are only allowed in FROM", query=text)

    raise TypeError(f"Unknown operand: {operand!r}")


def _lower_expression(expression: Disjunction, text: str) -> Expression:
    result = _lower_conjunction(expression.terms[0], text)
    for term in expression.terms[1:]:
        result = Or(result, _lower_conjunction(term, text))
    return result


def _lower_conjunction(conjunction: Conjunction, text: str) -> Expression:
    result = _lower_condition(conjunction.terms[0], text)
    for term in conjunction.terms[1:]:
        result = And(result, _lower_condition(term, text))
    return result


def _lower_condition(condition: Grouped | Comparison, text: str) -> Expression:
    if isinstance(condition, Grouped):
        return _lower_expression(condition.expression, text)

    if not isinstance(condition.operand, PathRef):
        raise ParseError("Left side of a condition must be a field path", query=text)
    field_path = _checked_path(condition.operand, text)

    # A bare field tests for truth
    if condition.operator is None:
        return Condition(field=field_path, operator="eq", value=True)

    value = condition.value
    if isinstance(value, Literal):
        return Condition(field=field_path, operator=condition.operator, value=value.value)
    elif isinstance(value, PathRef):
        # Unquoted words on the right are compared as text
        return Condition(field=field_path, operator=condition.operator, value=value.path)
    elif isinstance(value, FunctionCall):
        raise ParseError(f"Functions are not allowed in WHERE: {value.name}()", query=text)
    elif isinstance(value, SubQuery):
        raise ParseError("Subqueries are not allowed in WHERE", query=text)
    raise TypeError(f"Unknown operand: {value!r}")


def _checked_path(ref: PathRef, text: str) -> str:
    path = ref.path
    try:
        parse_path(path)
    except ParseError as e:
        raise ParseError(f"Invalid path '{path}': {e.msg}", query=text) from e
    return path
