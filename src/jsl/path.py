"""Path extraction over JSON-like records.

Paths are dotted segment sequences::

    address.city          nested key lookup
    tags.0                positional index into a sequence
    employees.*.name      wildcard over a sequence or mapping (``%`` works too)
    readings.*~=temp      wildcard whose mapping keys must satisfy a predicate
    sensors.*.type=temp   keep sequence elements whose ``type`` field matches
    sensors.*.type=temp.name
                          ...and continue down the matching element
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Union

from jsl.comparison import OPERATOR_SYMBOLS, OPERATORS, compare, matches
from jsl.errors import ParseError, PathExtractionError
from jsl.parsing.path_lexer import PathLexer

WILDCARDS = frozenset({"*", "%"})


@dataclass(frozen=True)
class Predicate:
    """An inline comparison ``<op><literal>``."""

    operator: str  # eq, neq, gt, gte, lt, lte, contains
    value: str

    def __str__(self) -> str:
        symbol = "~=" if self.operator == "contains" else OPERATOR_SYMBOLS[self.operator]
        return f"{symbol}{self.value}"


@dataclass(frozen=True)
class Key:
    """A literal key, or an index when applied to a sequence."""

    name: str


@dataclass(frozen=True)
class Wildcard:
    """Match every element of a sequence or every key of a mapping."""

    predicate: Predicate | None = None


@dataclass(frozen=True)
class FieldPredicate:
    """Test a sibling field of the current mapping, then continue on that mapping."""

    field: str
    predicate: Predicate


Segment = Union[Key, Wildcard, FieldPredicate]

_lexer: PathLexer | None = None


def _get_lexer() -> PathLexer:
    global _lexer
    if _lexer is None:
        _lexer = PathLexer()
        _lexer.build()
    return _lexer


@lru_cache(maxsize=1024)
def parse_path(path: str) -> tuple[Segment, ...]:
    """Split a path into segments.

    Raises:
        ParseError: If the path text is malformed.
    """
    if path.startswith("."):
        path = path[1:]
    if not path:
        return ()

    segments: list[Segment] = []
    tokens = _get_lexer().tokenize(path)
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == "DOT":
            i += 1
            continue
        if tok.type != "SEGMENT":
            raise ParseError(
                f"Unexpected '{tok.value}' in path at position {tok.lexpos}",
                query=path,
                position=tok.lexpos,
            )
        predicate = None
        if i + 1 < len(tokens) and tokens[i + 1].type == "OPERATOR":
            # The lexer guarantees a COMPARAND follows every OPERATOR
            predicate = Predicate(operator=OPERATORS[tokens[i + 1].value], value=tokens[i + 2].value)
            i += 3
        else:
            i += 1
        if i < len(tokens) and tokens[i].type != "DOT":
            raise ParseError(
                f"Expected '.' in path at position {tokens[i].lexpos}",
                query=path,
                position=tokens[i].lexpos,
            )

        if tok.value in WILDCARDS:
            segments.append(Wildcard(predicate))
        elif predicate is not None:
            segments.append(FieldPredicate(field=tok.value, predicate=predicate))
        else:
            segments.append(Key(tok.value))
    return tuple(segments)


def extract(value: Any, path: str | tuple[Segment, ...]) -> Any:
    """Extract the value at path from a record.

    Raises:
        PathExtractionError: If the path does not resolve.
    """
    segments = parse_path(path) if isinstance(path, str) else path
    return _extract(value, segments)


def _extract(value: Any, segments: tuple[Segment, ...]) -> Any:
    if not segments:
        return value

    segment, rest = segments[0], segments[1:]

    if isinstance(segment, Key):
        return _extract(_lookup(value, segment.name), rest)
    elif isinstance(segment, Wildcard):
        return _extract_wildcard(value, segment.predicate, rest)
    elif isinstance(segment, FieldPredicate):
        if not isinstance(value, dict):
            raise PathExtractionError(
                f"cannot test '{segment.field}' on {type(value).__name__}"
            )
        field_value = _lookup(value, segment.field)
        if not matches(field_value, segment.predicate.operator, segment.predicate.value):
            raise PathExtractionError(f"'{segment.field}' does not satisfy {segment.predicate}")
        return _extract(value, rest)
    raise TypeError(f"Unknown path segment: {segment!r}")


def _lookup(value: Any, name: str) -> Any:
    if isinstance(value, dict):
        if name in value:
            return value[name]
        raise PathExtractionError(f"key '{name}' not found")
    if isinstance(value, list):
        if not name.isdigit():
            raise PathExtractionError(f"invalid array index '{name}'")
        index = int(name)
        if index >= len(value):
            raise PathExtractionError(f"array index {index} out of bounds")
        return value[index]
    raise PathExtractionError(f"cannot access '{name}' on {type(value).__name__}")


def _extract_keys(
    mapping: dict[str, Any], predicate: Predicate | None, rest: tuple[Segment, ...]
) -> dict[str, Any]:
    result = {}
    for key, item in mapping.items():
        if predicate is not None and not compare(key, predicate.operator, predicate.value):
            continue
        try:
            result[key] = _extract(item, rest)
        except PathExtractionError:
            continue
    if predicate is not None and not result:
        raise PathExtractionError(f"no key satisfies {predicate}")
    return result


def _extract_wildcard(value: Any, predicate: Predicate | None, rest: tuple[Segment, ...]) -> Any:
    if isinstance(value, dict):
        return _extract_keys(value, predicate, rest)

    if isinstance(value, list):
        results = []
        for item in value:
            try:
                if predicate is None:
                    results.append(_extract(item, rest))
                elif isinstance(item, dict):
                    results.append(_extract_keys(item, predicate, rest))
                elif isinstance(item, list):
                    continue
                elif compare(item, predicate.operator, predicate.value):
                    results.append(_extract(item, rest))
            except PathExtractionError:
                continue
        return results

    raise PathExtractionError(f"cannot apply wildcard to {type(value).__name__}")
