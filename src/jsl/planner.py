"""Turn a SelectQuery into a plan node tree."""

from __future__ import annotations

from jsl.database import Catalog, Table
from jsl.plan import AggregateNode, FilterNode, PlanNode, ProjectNode, ScanNode
from jsl.query import SelectQuery


def create_plan(query: SelectQuery, root_table: Table, catalog: Catalog | None = None) -> PlanNode:
    """Build the plan for a query.

    The stages are fixed: source, then filter, then either aggregation or
    projection. Nested FROM queries are planned recursively against the same
    root table.

    Args:
        query: The lowered query.
        root_table: Table read when the query has no FROM clause.
        catalog: Named tables for ``FROM name``. Without a catalog a named
            table reads ``root_table``.

    Raises:
        PlanError: If a named table is not in the catalog.
    """
    node: PlanNode
    if query.from_query is not None:
        node = create_plan(query.from_query, root_table, catalog)
    elif query.from_table is not None:
        table = catalog.get_table(query.from_table) if catalog is not None else root_table
        node = ScanNode(table, query.from_table)
    else:
        node = ScanNode(root_table, "default")

    if query.filter is not None:
        node = FilterNode(node, query.filter)

    if query.group_by is not None or query.has_aggregates:
        node = AggregateNode(node, query.fields, query.group_by)
    elif query.fields:
        node = ProjectNode(node, query.fields)

    return node
