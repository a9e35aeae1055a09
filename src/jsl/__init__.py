"""jsl - SQL-like queries and path extraction over JSON records."""

from jsl.database import Catalog, JsonRow, ListTable, Row, RowIterator, Table
from jsl.errors import ParseError, PathExtractionError, PlanError, SourceError
from jsl.executor import Executor, execute_query
from jsl.expression import And, Condition, Or
from jsl.path import extract, parse_path
from jsl.plan import (
    AggregateNode,
    FilterNode,
    PlanNode,
    ProjectNode,
    ScanNode,
    format_plan,
)
from jsl.planner import create_plan
from jsl.query import AggregateFunction, Field, SelectQuery, parse_query
from jsl.source import JsonTable, read_records

__all__ = [
    # Main API
    "parse_query",
    "create_plan",
    "Executor",
    "execute_query",
    "extract",
    "parse_path",
    # Query IR
    "SelectQuery",
    "Field",
    "AggregateFunction",
    "Condition",
    "And",
    "Or",
    # Plan
    "PlanNode",
    "ScanNode",
    "FilterNode",
    "ProjectNode",
    "AggregateNode",
    "format_plan",
    # Data
    "Row",
    "JsonRow",
    "RowIterator",
    "Table",
    "ListTable",
    "JsonTable",
    "Catalog",
    "read_records",
    # Errors
    "ParseError",
    "PathExtractionError",
    "PlanError",
    "SourceError",
]

__version__ = "0.1.0"
