"""Shared behaviour of dependent clause builders.

Dependent clauses (WHERE, SET, ORDER BY, RETURN) only reference aliases; they
compile in two phases. Building collects statements without any scope, and
``finalize(scope)`` checks every referenced alias against the aliases of the
selective clauses before rendering.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from cypher_forge.core.errors import AliasError
from cypher_forge.query_builder.aliases import extract_aliases_from_statement
from cypher_forge.query_builder.interfaces import AliasScope, ParameterizedQuery, as_scope
from cypher_forge.query_builder.parameters import replace_parameters


def validate_statement_aliases(statement: str, scope: AliasScope, clause: str) -> list[str]:
    """Check that every alias a statement references is in scope.

    Args:
        statement: Statement text
        scope: Aliases introduced by selective clauses
        clause: Name of the clause, used in error details

    Returns:
        The aliases the statement references

    Raises:
        AliasError: Naming the first alias that is out of scope
    """
    aliases = extract_aliases_from_statement(statement)
    for alias in aliases:
        if alias not in scope:
            raise AliasError(
                f"Alias '{alias}' in statement '{statement}' is not defined by any selective clause",
                details={
                    "source": clause,
                    "operation": "finalize",
                    "field": "alias",
                    "actual_value": alias,
                    "constraint": f"one of {sorted(scope)}",
                },
            )
    return aliases


class DependentClauseBuilder(ABC):
    """Base class for clauses that validate aliases against an injected scope."""

    keyword: str = ""

    def __init__(self, aliases: Iterable[str] | None = None) -> None:
        self._aliases: AliasScope = as_scope(aliases)

    @property
    def aliases(self) -> AliasScope:
        """The default scope used by ``to_parameterized_query``."""
        return self._aliases

    def set_alias_list(self, aliases: Iterable[str]) -> "DependentClauseBuilder":
        """Replace the default scope.

        Args:
            aliases: Aliases introduced by selective clauses

        Returns:
            Self for method chaining
        """
        self._aliases = as_scope(aliases)
        return self

    @abstractmethod
    def finalize(self, scope: Iterable[str]) -> ParameterizedQuery:
        """Validate the clause against ``scope`` and compile it."""

    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile against the scope stored with ``set_alias_list``."""
        return self.finalize(self._aliases)

    def to_raw_query(self) -> str:
        """Render the clause with literal values, for debugging only."""
        compiled = self.to_parameterized_query()
        return replace_parameters(compiled.query, compiled.parameters)

    def __str__(self) -> str:
        return self.to_raw_query()
