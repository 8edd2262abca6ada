"""WHERE clause builder.

Conditions form a flat, ordered list of nodes: statements and bracketed
sub-lists separated by AND / OR connectives. Nesting only happens through
brackets, so ``a AND ( b OR c )`` is the list ``[a, AND, Bracket([b, OR, c])]``.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from cypher_forge.core.errors import ClauseError, ParameterError
from cypher_forge.query_builder.clauses.base import DependentClauseBuilder, validate_statement_aliases
from cypher_forge.query_builder.interfaces import ParameterizedQuery, as_scope
from cypher_forge.query_builder.parameters import (
    ParameterKeyGenerator,
    Properties,
    PropertyValue,
    merge_properties,
    missing_parameters,
    randomize_parameter_keys,
)


@dataclass(frozen=True)
class Statement:
    """A condition whose placeholders already carry randomized keys."""

    text: str
    parameters: Properties = field(default_factory=dict)


@dataclass(frozen=True)
class And:
    token = "AND"


@dataclass(frozen=True)
class Or:
    token = "OR"


@dataclass(frozen=True)
class Bracket:
    """A parenthesized sub-list of nodes."""

    nodes: tuple["BooleanNode", ...]


BooleanNode: TypeAlias = Statement | And | Or | Bracket

# What `add`, `and_` and `or_` accept
WhereInput: TypeAlias = "str | WhereClauseBuilder | Callable[[WhereClauseBuilder], Any]"


def flatten(nodes: Iterable[BooleanNode]) -> str:
    """Render a node list depth-first, wrapping brackets in ``( ... )``."""
    tokens: list[str] = []
    for node in nodes:
        if isinstance(node, Statement):
            tokens.append(node.text)
        elif isinstance(node, Bracket):
            tokens.append(f"( {flatten(node.nodes)} )")
        else:
            tokens.append(node.token)
    return " ".join(tokens)


def iter_statements(nodes: Iterable[BooleanNode]) -> Iterable[Statement]:
    """Yield every statement of a node list, descending into brackets."""
    for node in nodes:
        if isinstance(node, Statement):
            yield node
        elif isinstance(node, Bracket):
            yield from iter_statements(node.nodes)


class WhereClauseBuilder(DependentClauseBuilder):
    """Builder for a WHERE clause made of statements, connectives and brackets.

    Example:
        ```python
        where = (
            WhereClauseBuilder()
            .add("n.name = $name", {"name": "Alice"})
            .and_(lambda w: w.add("m.age > 30").or_("m.age IS NULL"))
        )
        where.finalize({"n", "m"}).query
        # "WHERE n.name = $name_<key> AND ( m.age > 30 OR m.age IS NULL )"
        ```
    """

    keyword = "WHERE"

    def __init__(
        self,
        aliases: Iterable[str] | None = None,
        key_generator: ParameterKeyGenerator | None = None,
    ) -> None:
        super().__init__(aliases)
        self._key_generator = key_generator
        self._nodes: list[BooleanNode] = []

    @property
    def nodes(self) -> tuple[BooleanNode, ...]:
        return tuple(self._nodes)

    def __bool__(self) -> bool:
        return bool(self._nodes)

    def _statement(self, text: str, parameters: Mapping[str, PropertyValue] | None) -> Statement:
        if parameters is None:
            return Statement(text=text)

        missing = missing_parameters(text, parameters)
        if missing:
            raise ParameterError(
                f"Parameters {missing} of statement '{text}' have no value",
                details={
                    "source": "WhereClauseBuilder",
                    "operation": "add",
                    "field": "parameters",
                    "actual_value": sorted(parameters),
                    "constraint": f"must contain {missing}",
                },
            )
        randomized_text, randomized_parameters = randomize_parameter_keys(text, parameters, self._key_generator)
        return Statement(text=randomized_text, parameters=randomized_parameters)

    def _bracket(self, builder: "WhereClauseBuilder") -> Bracket:
        if not builder.nodes:
            raise ClauseError(
                "A bracketed condition needs at least one statement",
                details={"source": "WhereClauseBuilder", "operation": "bracket"},
            )
        return Bracket(nodes=builder.nodes)

    def _to_node(self, item: WhereInput, parameters: Mapping[str, PropertyValue] | None) -> BooleanNode:
        if isinstance(item, str):
            return self._statement(item, parameters)
        if isinstance(item, WhereClauseBuilder):
            return self._bracket(item)
        if callable(item):
            nested = WhereClauseBuilder(key_generator=self._key_generator)
            result = item(nested)
            return self._bracket(result if isinstance(result, WhereClauseBuilder) else nested)

        raise ClauseError(
            f"Unsupported condition of type {type(item).__name__}",
            details={
                "source": "WhereClauseBuilder",
                "operation": "add",
                "field": "item",
                "expected_type": "str | WhereClauseBuilder | Callable[[WhereClauseBuilder], Any]",
            },
        )

    def add(self, item: WhereInput, parameters: Mapping[str, PropertyValue] | None = None) -> "WhereClauseBuilder":
        """Set the first condition.

        Args:
            item: A statement, a callable filling a fresh builder, or a built
                builder. The last two become a bracketed sub-expression.
            parameters: Values for the ``$placeholders`` of a statement

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If a first condition already exists
            ParameterError: If a placeholder has no value in ``parameters``
        """
        if self._nodes:
            raise ClauseError(
                "add() can only be called once; use and_() or or_() to extend the condition",
                details={"source": "WhereClauseBuilder", "operation": "add"},
            )
        self._nodes.append(self._to_node(item, parameters))
        return self

    def _connect(
        self,
        connective: And | Or,
        item: WhereInput,
        parameters: Mapping[str, PropertyValue] | None,
    ) -> "WhereClauseBuilder":
        if not self._nodes:
            raise ClauseError(
                f"Cannot start a condition with {connective.token}; call add() first",
                details={"source": "WhereClauseBuilder", "operation": connective.token.lower()},
            )
        node = self._to_node(item, parameters)
        self._nodes.append(connective)
        self._nodes.append(node)
        return self

    def and_(self, item: WhereInput, parameters: Mapping[str, PropertyValue] | None = None) -> "WhereClauseBuilder":
        """Append ``AND <item>``; see ``add`` for the accepted items."""
        return self._connect(And(), item, parameters)

    def or_(self, item: WhereInput, parameters: Mapping[str, PropertyValue] | None = None) -> "WhereClauseBuilder":
        """Append ``OR <item>``; see ``add`` for the accepted items."""
        return self._connect(Or(), item, parameters)

    def finalize(self, scope: Iterable[str]) -> ParameterizedQuery:
        """Validate every statement against ``scope`` and render the clause.

        Returns:
            ``WHERE <expression>``, or an empty query if no condition was added

        Raises:
            AliasError: If a statement references an alias outside ``scope``
        """
        if not self._nodes:
            return ParameterizedQuery()

        scope = as_scope(scope)
        parameters: Properties = {}
        referenced: list[str] = []
        for statement in iter_statements(self._nodes):
            referenced.extend(validate_statement_aliases(statement.text, scope, "WhereClauseBuilder"))
            merge_properties(parameters, statement.parameters)

        return ParameterizedQuery(
            query=f"{self.keyword} {flatten(self._nodes)}",
            parameters=parameters,
            aliases=frozenset(referenced),
        )
