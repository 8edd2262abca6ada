"""Helper methods for the query builder.

This module provides convenient helper methods that extend the query builder
with common patterns and operations.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from cypher_forge.query_builder.clauses.return_clause import ReturnClauseBuilder

if TYPE_CHECKING:
    from cypher_forge.query_builder.builder import QueryBuilder


class QueryHelpers:
    """Mixin providing helper methods for common query patterns."""

    def match_node(self: "QueryBuilder", alias: str, *labels: str, **properties: Any) -> "QueryBuilder":
        """Match a single node.

        Args:
            alias: Variable alias for the node
            *labels: Node labels
            **properties: Properties to match on

        Returns:
            Self for method chaining

        Example:
            ```python
            QueryBuilder().match_node("n", "Person", name="Alice").return_("n")
            ```
        """
        return self.add_match(lambda p: p.set_node(alias, labels, properties))

    def count(self: "QueryBuilder", alias: str = "n", distinct: bool = True) -> "QueryBuilder":
        """Return count of matched nodes.

        Args:
            alias: Alias of the nodes to count
            distinct: Whether to count distinct nodes

        Returns:
            Self for method chaining
        """
        count_expr = f"COUNT(DISTINCT {alias})" if distinct else f"COUNT({alias})"
        return self.return_(count_expr, alias="count")

    def return_fields(self: "QueryBuilder", alias: str, fields: Iterable[str]) -> "QueryBuilder":
        """Return properties of one alias under their own names.

        Args:
            alias: Alias of the node or relationship
            fields: Property names to return

        Returns:
            Self for method chaining
        """
        clause = ReturnClauseBuilder()
        for field in fields:
            clause.add(f"{alias}.{field}", alias=field)
        return self.return_(clause)
