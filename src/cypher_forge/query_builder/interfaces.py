"""Query builder interfaces.

Every builder in this package compiles to a ``ParameterizedQuery``. Selective
builders (patterns, MATCH-like clauses) compile on their own; dependent
clauses need the alias scope of the enclosing query and expose a two-phase
``finalize(scope)`` instead.
"""

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

AliasScope = frozenset[str]


def as_scope(aliases: Iterable[str] | None) -> AliasScope:
    """Normalise an optional alias collection into an immutable scope."""
    return frozenset(aliases or ())


class ParameterizedQuery(BaseModel):
    """Compiled query text with its parameter map.

    ``query`` only ever contains ``$key`` placeholders for values, never the
    values themselves; ``parameters`` maps each key to its value.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    query: str = Field(default="", description="Query text with $key placeholders")
    parameters: dict[str, Any] = Field(default_factory=dict, description="Values keyed by placeholder")
    aliases: frozenset[str] = Field(default_factory=frozenset, description="Aliases bound or referenced")

    def __bool__(self) -> bool:
        return bool(self.query)


@runtime_checkable
class QueryFragmentBuilder(Protocol):
    """Protocol for builders that compile to a query fragment on their own."""

    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile the fragment to text with placeholders and its parameters."""
        ...

    def to_raw_query(self) -> str:
        """Compile the fragment with literal values, for debugging only."""
        ...


@runtime_checkable
class ScopedClauseBuilder(Protocol):
    """Protocol for dependent clauses that validate aliases against a scope."""

    def set_alias_list(self, aliases: Iterable[str]) -> Any:
        """Store the default scope used by ``to_parameterized_query``."""
        ...

    def finalize(self, scope: Iterable[str]) -> ParameterizedQuery:
        """Validate every referenced alias against ``scope`` and compile.

        Args:
            scope: Aliases introduced by the selective clauses of the query

        Raises:
            AliasError: If a statement references an alias outside ``scope``
        """
        ...
