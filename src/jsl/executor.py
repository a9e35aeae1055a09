"""Run a plan to completion and write its rows as JSON."""

from __future__ import annotations

import json
from typing import Any, TextIO

from jsl.database import Catalog, Table
from jsl.plan import PlanNode
from jsl.planner import create_plan
from jsl.query import parse_query


def dump_value(value: Any, pretty: bool = False) -> str:
    """Encode one value as a JSON document."""
    if pretty:
        return json.dumps(value, indent=2, ensure_ascii=False)
    return json.dumps(value, ensure_ascii=False)


class Executor:
    """Pulls a plan's rows and writes one JSON document per line."""

    def __init__(self, pretty: bool = False) -> None:
        self.pretty = pretty

    def execute(self, node: PlanNode, sink: TextIO) -> int:
        """Write every row of the plan to sink and return the row count.

        Rows written before a source failure stay written; the failure is
        re-raised after the iterator is closed.
        """
        count = 0
        with node.execute() as rows:
            for row in rows:
                sink.write(dump_value(row.as_value(), self.pretty))
                sink.write("\n")
                count += 1
        return count


def execute_query(
    text: str,
    table: Table,
    sink: TextIO,
    pretty: bool = False,
    catalog: Catalog | None = None,
) -> int:
    """Parse, plan and run a statement against a table."""
    query = parse_query(text)
    node = create_plan(query, table, catalog)
    return Executor(pretty=pretty).execute(node, sink)
