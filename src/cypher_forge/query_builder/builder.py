"""Main query builder implementation.

This module provides the ``QueryBuilder`` assembler. It holds one slot per
clause type, emits the slots in a fixed order, and hands the aliases of the
selective clauses to every dependent clause before finalizing it.
"""

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

from structlog.typing import FilteringBoundLogger

from cypher_forge.core.config import Settings
from cypher_forge.core.config import settings as default_settings
from cypher_forge.core.decorators import error_context
from cypher_forge.core.errors import ClauseError
from cypher_forge.core.logging import get_logger
from cypher_forge.query_builder.clauses import (
    CreateClauseBuilder,
    MatchClauseBuilder,
    MergeClauseBuilder,
    OptionalMatchClauseBuilder,
    OrderByClauseBuilder,
    PathPatternClauseBuilder,
    ReturnClauseBuilder,
    SetClauseBuilder,
    WhereClauseBuilder,
)
from cypher_forge.query_builder.clauses.selective import PathInput
from cypher_forge.query_builder.clauses.where import WhereInput
from cypher_forge.query_builder.filters import compile_filters
from cypher_forge.query_builder.helpers import QueryHelpers
from cypher_forge.query_builder.interfaces import ParameterizedQuery, QueryFragmentBuilder, ScopedClauseBuilder
from cypher_forge.query_builder.pagination import PaginationMixin
from cypher_forge.query_builder.parameters import (
    ParameterKeyGenerator,
    Properties,
    PropertyValue,
    inline_raw_expressions,
    merge_properties,
    replace_parameters,
)
from cypher_forge.query_builder.state import (
    ASSEMBLY_ORDER,
    SELECTIVE_CLAUSES,
    BuilderState,
    ClauseType,
    QueryAssemblyState,
)

logger: FilteringBoundLogger = get_logger(name=__name__)

SetInput: TypeAlias = str | SetClauseBuilder | Callable[[SetClauseBuilder], Any]
OrderByInput: TypeAlias = str | OrderByClauseBuilder | Callable[[OrderByClauseBuilder], Any]
ReturnInput: TypeAlias = str | list[str] | ReturnClauseBuilder | Callable[[ReturnClauseBuilder], Any]

_SELECTIVE_BUILDERS: dict[ClauseType, type[PathPatternClauseBuilder]] = {
    ClauseType.MATCH: MatchClauseBuilder,
    ClauseType.OPTIONAL_MATCH: OptionalMatchClauseBuilder,
    ClauseType.MERGE: MergeClauseBuilder,
    ClauseType.CREATE: CreateClauseBuilder,
}


def _filled(builder: Any, result: Any, expected: type) -> Any:
    """Pick the builder a callback filled: its return value if it returned one."""
    return result if isinstance(result, expected) else builder


class QueryBuilder(PaginationMixin, QueryHelpers):
    """Fluent query builder compiling to a parameterized query.

    Clauses may be added in any order; they are always emitted as
    MATCH, OPTIONAL MATCH, MERGE, CREATE, WHERE, SET, ORDER BY, SKIP, LIMIT,
    OFFSET and finally RETURN or FINISH.

    Example:
        ```python
        query = (
            QueryBuilder()
            .match(lambda p: p.set_node("n", ["Person"]).to_relationship("r", "KNOWS").to_node("m"))
            .where("n.age > $age", {"age": 30})
            .return_(["n", "m"])
            .to_parameterized_query()
        )
        ```
    """

    def __init__(
        self,
        key_generator: ParameterKeyGenerator | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize a new query builder.

        Args:
            key_generator: Source of parameter key suffixes for every clause;
                pass a seeded generator for reproducible output
            settings: Settings to read the clause separator from
        """
        self._key_generator = key_generator
        self._settings = settings or default_settings
        self._state = QueryAssemblyState()
        self._slots: dict[ClauseType, QueryFragmentBuilder] = {}
        self._scalars: dict[ClauseType, int] = {}

    @classmethod
    def new(cls, key_generator: ParameterKeyGenerator | None = None) -> "QueryBuilder":
        return cls(key_generator=key_generator)

    @property
    def state(self) -> BuilderState:
        return self._state.state

    def _fill_slot(self, clause_type: ClauseType, builder: QueryFragmentBuilder) -> None:
        if self._state.state is BuilderState.FINALIZED:
            logger.warning("Modifying a query builder that was already compiled", clause=clause_type.keyword)
        self._slots[clause_type] = builder
        self._state.add_clause(clause_type)

    # Selective clauses

    def _new_selective(self, clause_type: ClauseType) -> PathPatternClauseBuilder:
        return _SELECTIVE_BUILDERS[clause_type](key_generator=self._key_generator)

    def _replace_selective(self, clause_type: ClauseType, patterns: tuple[PathInput, ...]) -> "QueryBuilder":
        builder = self._new_selective(clause_type)
        builder.add_path_pattern(*patterns)
        self._fill_slot(clause_type, builder)
        return self

    def _extend_selective(self, clause_type: ClauseType, patterns: tuple[PathInput, ...]) -> "QueryBuilder":
        builder = self._slots.get(clause_type)
        if not isinstance(builder, PathPatternClauseBuilder):
            builder = self._new_selective(clause_type)
        builder.add_path_pattern(*patterns)
        self._fill_slot(clause_type, builder)
        return self

    def match(self, *patterns: PathInput) -> "QueryBuilder":
        """Set the MATCH clause, replacing any previous one.

        Args:
            *patterns: Callables receiving a ``PathPatternBuilder``, built path
                builders, or raw pattern text

        Returns:
            Self for method chaining

        Example:
            ```python
            query.match(lambda p: p.set_node("n", ["Person"]), "(k:Tag)")
            ```
        """
        return self._replace_selective(ClauseType.MATCH, patterns)

    def add_match(self, *patterns: PathInput) -> "QueryBuilder":
        """Extend the MATCH clause with more patterns."""
        return self._extend_selective(ClauseType.MATCH, patterns)

    def optional_match(self, *patterns: PathInput) -> "QueryBuilder":
        """Set the OPTIONAL MATCH clause, replacing any previous one."""
        return self._replace_selective(ClauseType.OPTIONAL_MATCH, patterns)

    def add_optional_match(self, *patterns: PathInput) -> "QueryBuilder":
        """Extend the OPTIONAL MATCH clause with more patterns."""
        return self._extend_selective(ClauseType.OPTIONAL_MATCH, patterns)

    def create(self, *patterns: PathInput) -> "QueryBuilder":
        """Set the CREATE clause, replacing any previous one."""
        return self._replace_selective(ClauseType.CREATE, patterns)

    def add_create(self, *patterns: PathInput) -> "QueryBuilder":
        """Extend the CREATE clause with more patterns."""
        return self._extend_selective(ClauseType.CREATE, patterns)

    def merge(self, *patterns: PathInput) -> "QueryBuilder":
        """Set the MERGE clause, replacing any previous one."""
        return self._replace_selective(ClauseType.MERGE, patterns)

    def add_merge(self, *patterns: PathInput) -> "QueryBuilder":
        """Extend the MERGE clause with more patterns."""
        return self._extend_selective(ClauseType.MERGE, patterns)

    # Dependent clauses

    def where(self, item: WhereInput, parameters: Mapping[str, PropertyValue] | None = None) -> "QueryBuilder":
        """Set the WHERE clause.

        Args:
            item: A statement, a callable filling the clause's
                ``WhereClauseBuilder``, or a built ``WhereClauseBuilder``
            parameters: Values for the ``$placeholders`` of a statement

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If the WHERE clause was already set
            ParameterError: If a placeholder has no value in ``parameters``

        Example:
            ```python
            query.where(lambda w: w.add("n.age > $age", {"age": 30}).or_("n.admin = true"))
            ```
        """
        if isinstance(item, WhereClauseBuilder):
            builder = item
        elif callable(item):
            builder = WhereClauseBuilder(key_generator=self._key_generator)
            builder = _filled(builder, item(builder), WhereClauseBuilder)
        else:
            builder = WhereClauseBuilder(key_generator=self._key_generator).add(item, parameters)

        self._state.claim_singleton(ClauseType.WHERE)
        self._fill_slot(ClauseType.WHERE, builder)
        return self

    def where_filters(self, filters: dict[str, Any] | None, alias: str = "n") -> "QueryBuilder":
        """Set the WHERE clause from a filter dictionary; see ``compile_filters``."""
        builder = compile_filters(filters, alias=alias, key_generator=self._key_generator)
        self._state.claim_singleton(ClauseType.WHERE)
        self._fill_slot(ClauseType.WHERE, builder)
        return self

    def set(self, item: SetInput, properties: Mapping[str, PropertyValue] | None = None) -> "QueryBuilder":
        """Set the SET clause.

        Args:
            item: An assignment such as ``n.name = $name``, a callable filling
                the clause's ``SetClauseBuilder``, or a built one
            properties: Values for the ``$placeholders`` of the assignment

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If the SET clause was already set
        """
        if isinstance(item, SetClauseBuilder):
            builder = item
        elif callable(item):
            builder = SetClauseBuilder(key_generator=self._key_generator)
            builder = _filled(builder, item(builder), SetClauseBuilder)
        else:
            builder = SetClauseBuilder(key_generator=self._key_generator).set(item, properties)

        self._state.claim_singleton(ClauseType.SET)
        self._fill_slot(ClauseType.SET, builder)
        return self

    def add_set(self, statement: str, properties: Mapping[str, PropertyValue] | None = None) -> "QueryBuilder":
        """Append an assignment to the SET clause."""
        builder = self._slots.get(ClauseType.SET)
        if not isinstance(builder, SetClauseBuilder):
            builder = SetClauseBuilder(key_generator=self._key_generator)
        builder.add_set(statement, properties)
        self._fill_slot(ClauseType.SET, builder)
        return self

    def order_by(self, item: OrderByInput, direction: str = "ASC") -> "QueryBuilder":
        """Set the ORDER BY clause.

        Args:
            item: An expression, a callable filling the clause's
                ``OrderByClauseBuilder``, or a built one
            direction: ``ASC`` or ``DESC`` for an expression

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ORDER BY was already set or ``direction`` is invalid
        """
        if isinstance(item, OrderByClauseBuilder):
            builder = item
        elif callable(item):
            builder = OrderByClauseBuilder()
            builder = _filled(builder, item(builder), OrderByClauseBuilder)
        else:
            builder = OrderByClauseBuilder().add(item, direction)

        self._state.claim_singleton(ClauseType.ORDER_BY)
        self._fill_slot(ClauseType.ORDER_BY, builder)
        return self

    def add_order_by(self, expression: str, direction: str = "ASC") -> "QueryBuilder":
        """Append a sort key to the ORDER BY clause."""
        builder = self._slots.get(ClauseType.ORDER_BY)
        if not isinstance(builder, OrderByClauseBuilder):
            builder = OrderByClauseBuilder()
        builder.add(expression, direction)
        self._fill_slot(ClauseType.ORDER_BY, builder)
        return self

    def _return_builder(self, item: ReturnInput, alias: str | None) -> ReturnClauseBuilder:
        if isinstance(item, ReturnClauseBuilder):
            return item
        if isinstance(item, str):
            return ReturnClauseBuilder().add(item, alias)
        if isinstance(item, list):
            builder = ReturnClauseBuilder()
            for expression in item:
                builder.add(expression)
            return builder
        if callable(item):
            builder = ReturnClauseBuilder()
            return _filled(builder, item(builder), ReturnClauseBuilder)

        raise ClauseError(
            f"Unsupported RETURN item of type {type(item).__name__}",
            details={
                "source": "QueryBuilder",
                "operation": "return",
                "field": "item",
                "expected_type": "str | list[str] | ReturnClauseBuilder | Callable[[ReturnClauseBuilder], Any]",
            },
        )

    def return_(self, item: ReturnInput, alias: str | None = None) -> "QueryBuilder":
        """Set the RETURN clause.

        Args:
            item: An expression, a list of expressions, a callable filling the
                clause's ``ReturnClauseBuilder``, or a built one
            alias: Result name for a single expression

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If RETURN was already set
        """
        builder = self._return_builder(item, alias)
        self._state.claim_singleton(ClauseType.RETURN)
        self._fill_slot(ClauseType.RETURN, builder)
        return self

    def add_return(self, expression: str, alias: str | None = None) -> "QueryBuilder":
        """Append a projection to the RETURN clause."""
        builder = self._slots.get(ClauseType.RETURN)
        if not isinstance(builder, ReturnClauseBuilder):
            builder = ReturnClauseBuilder()
        builder.add(expression, alias)
        self._fill_slot(ClauseType.RETURN, builder)
        return self

    def finish(self) -> "QueryBuilder":
        """End the query without returning rows (``FINISH``)."""
        self._state.add_clause(ClauseType.FINISH)
        return self

    # Assembly

    def _compile_clause(self, clause_type: ClauseType, scope: frozenset[str]) -> ParameterizedQuery:
        if clause_type in self._scalars:
            return ParameterizedQuery(query=f"{clause_type.keyword} {self._scalars[clause_type]}")
        if clause_type is ClauseType.FINISH:
            return ParameterizedQuery(query=clause_type.keyword)

        builder = self._slots[clause_type]
        if isinstance(builder, ScopedClauseBuilder):
            return builder.finalize(scope)
        return builder.to_parameterized_query()

    @error_context()
    def to_parameterized_query(self) -> ParameterizedQuery:
        """Assemble the query.

        Returns:
            The query text with ``$key`` placeholders, the parameters a driver
            binds, and every alias the selective clauses introduced

        Raises:
            ClauseError: If RETURN and FINISH are both present
            AliasError: If a dependent clause references an alias that no
                selective clause introduced
            ParameterError: If a SET placeholder has no value
        """
        self._state.validate_exclusive()

        parts: list[str] = []
        parameters: Properties = {}
        scope: set[str] = set()
        for clause_type in ASSEMBLY_ORDER:
            if not self._state.has_clause(clause_type):
                continue

            compiled = self._compile_clause(clause_type, frozenset(scope))
            if clause_type in SELECTIVE_CLAUSES:
                scope.update(compiled.aliases)
            if compiled.query:
                parts.append(compiled.query)
                merge_properties(parameters, compiled.parameters)

        query, parameters = inline_raw_expressions(self._settings.clause_separator.join(parts), parameters)
        self._state.finalize()

        logger.debug("Assembled query", query=query, parameter_keys=sorted(parameters), aliases=sorted(scope))
        return ParameterizedQuery(query=query, parameters=parameters, aliases=frozenset(scope))

    def to_raw_query(self) -> str:
        """Assemble the query with literal values, for debugging only.

        The output must never be executed in place of ``to_parameterized_query``.
        """
        compiled = self.to_parameterized_query()
        return replace_parameters(compiled.query, compiled.parameters)

    def __str__(self) -> str:
        return self.to_raw_query()

