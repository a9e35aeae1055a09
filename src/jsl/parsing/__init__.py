"""Parsing module for the statement language and the path DSL."""

from jsl.parsing.path_lexer import PathLexer
from jsl.parsing.query_lexer import QueryLexer
from jsl.parsing.query_parser import (
    FromClause,
    QueryParser,
    SelectItem,
    SelectStatement,
)

__all__ = [
    "FromClause",
    "PathLexer",
    "QueryLexer",
    "QueryParser",
    "SelectItem",
    "SelectStatement",
]
