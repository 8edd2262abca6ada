"""ORDER BY clause builder."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Literal

from cypher_forge.core.errors import ClauseError
from cypher_forge.query_builder.clauses.base import DependentClauseBuilder, validate_statement_aliases
from cypher_forge.query_builder.interfaces import ParameterizedQuery, as_scope

SortDirection = Literal["ASC", "DESC"]

_DIRECTIONS: frozenset[str] = frozenset({"ASC", "DESC"})


@dataclass(frozen=True)
class OrderItem:
    expression: str
    direction: SortDirection = "ASC"


def normalize_direction(direction: str) -> SortDirection:
    """Upper-case a sort direction and check it is ``ASC`` or ``DESC``.

    Raises:
        ClauseError: For any other value
    """
    normalized = direction.upper() if isinstance(direction, str) else direction
    if normalized not in _DIRECTIONS:
        raise ClauseError(
            f"Invalid sort direction '{direction}'",
            details={
                "source": "OrderByClauseBuilder",
                "operation": "add",
                "field": "direction",
                "actual_value": direction,
                "constraint": "ASC or DESC",
            },
        )
    return normalized  # type: ignore[return-value]


class OrderByClauseBuilder(DependentClauseBuilder):
    """Builder for ``ORDER BY expr ASC, expr DESC``."""

    keyword = "ORDER BY"

    def __init__(self, aliases: Iterable[str] | None = None) -> None:
        super().__init__(aliases)
        self._items: list[OrderItem] = []

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def items(self) -> list[OrderItem]:
        return list(self._items)

    def add(self, expression: str, direction: str = "ASC") -> "OrderByClauseBuilder":
        """Append a sort key.

        Args:
            expression: Expression to sort on
            direction: ``ASC`` (default) or ``DESC``, case-insensitive

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ``direction`` is not ``ASC`` or ``DESC``
        """
        self._items.append(OrderItem(expression=expression, direction=normalize_direction(direction)))
        return self

    def finalize(self, scope: Iterable[str]) -> ParameterizedQuery:
        """Validate every sort key against ``scope`` and render the clause."""
        if not self._items:
            return ParameterizedQuery()

        scope = as_scope(scope)
        referenced: list[str] = []
        for item in self._items:
            referenced.extend(validate_statement_aliases(item.expression, scope, "OrderByClauseBuilder"))

        return ParameterizedQuery(
            query=f"{self.keyword} {', '.join(f'{item.expression} {item.direction}' for item in self._items)}",
            aliases=frozenset(referenced),
        )
