"""Exception types raised by the jsl query engine."""

from __future__ import annotations


class ParseError(SyntaxError):
    """Malformed statement or path text."""

    def __init__(self, message: str, query: str | None = None, position: int | None = None) -> None:
        super().__init__(message)
        self.query = query
        self.position = position


class PathExtractionError(LookupError):
    """A path could not be followed through a record.

    Raised for missing keys, out-of-range indexes and type mismatches such
    as indexing into a scalar. Callers treat it as "no value here".
    """


class PlanError(ValueError):
    """A query could not be turned into an executable plan."""


class SourceError(Exception):
    """The record source failed to open, read or decode its input."""
