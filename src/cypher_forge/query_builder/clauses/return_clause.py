"""RETURN clause builder."""

from collections.abc import Iterable
from dataclasses import dataclass

from cypher_forge.query_builder.clauses.base import DependentClauseBuilder, validate_statement_aliases
from cypher_forge.query_builder.interfaces import ParameterizedQuery, as_scope

WILDCARD = "*"


@dataclass(frozen=True)
class ReturnItem:
    expression: str
    alias: str | None = None

    def render(self) -> str:
        return f"{self.expression} AS {self.alias}" if self.alias else self.expression


class ReturnClauseBuilder(DependentClauseBuilder):
    """Builder for ``RETURN [DISTINCT] expr [AS alias], ...``.

    The ``*`` wildcard references no alias and always passes validation.
    """

    keyword = "RETURN"

    def __init__(self, aliases: Iterable[str] | None = None) -> None:
        super().__init__(aliases)
        self._items: list[ReturnItem] = []
        self._distinct = False

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def items(self) -> list[ReturnItem]:
        return list(self._items)

    def add(self, expression: str, alias: str | None = None) -> "ReturnClauseBuilder":
        """Append a projection.

        Args:
            expression: Expression to return, e.g. ``n.name`` or ``count(n)``
            alias: Optional result name (``AS alias``)

        Returns:
            Self for method chaining
        """
        self._items.append(ReturnItem(expression=expression, alias=alias))
        return self

    def distinct(self, enabled: bool = True) -> "ReturnClauseBuilder":
        """Return only distinct rows."""
        self._distinct = enabled
        return self

    def finalize(self, scope: Iterable[str]) -> ParameterizedQuery:
        """Validate every projection against ``scope`` and render the clause.

        Raises:
            AliasError: If a projection references an alias outside ``scope``
        """
        if not self._items:
            return ParameterizedQuery()

        scope = as_scope(scope)
        referenced: list[str] = []
        for item in self._items:
            if item.expression.strip() == WILDCARD:
                continue
            referenced.extend(validate_statement_aliases(item.expression, scope, "ReturnClauseBuilder"))

        keyword = f"{self.keyword} DISTINCT" if self._distinct else self.keyword
        return ParameterizedQuery(
            query=f"{keyword} {', '.join(item.render() for item in self._items)}",
            aliases=frozenset(referenced),
        )
