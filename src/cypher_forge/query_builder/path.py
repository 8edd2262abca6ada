"""Path pattern builder.

A path pattern is a chain of node and relationship patterns such as
``(n:Person)-[r:KNOWS]->(m)``. Elements live in an arena (a plain list) and
point at their neighbours by index. Each element also records the connector
kind towards its successor, which decides the token placed between the two
fragments.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum

from structlog.typing import FilteringBoundLogger

from cypher_forge.core.errors import AliasError, ClauseError, StructuralError
from cypher_forge.core.logging import get_logger
from cypher_forge.query_builder.interfaces import ParameterizedQuery
from cypher_forge.query_builder.parameters import (
    ParameterKeyGenerator,
    Properties,
    PropertyValue,
    merge_properties,
    replace_parameters,
)
from cypher_forge.query_builder.patterns import NodePattern, RelationshipPattern

logger: FilteringBoundLogger = get_logger(name=__name__)


class ElementKind(str, Enum):
    NODE = "node"
    RELATIONSHIP = "relationship"


class ConnectorKind(str, Enum):
    """How an element attaches to its successor."""

    TO_NODE = "to_node"
    FROM_NODE = "from_node"
    TO_RELATIONSHIP = "to_relationship"
    FROM_RELATIONSHIP = "from_relationship"
    UNDIRECTED_NODE = "undirected_node"


_CONNECTOR_TOKENS: dict[tuple[ElementKind, ConnectorKind], str] = {
    (ElementKind.NODE, ConnectorKind.TO_NODE): "-->",
    (ElementKind.NODE, ConnectorKind.FROM_NODE): "<--",
    (ElementKind.NODE, ConnectorKind.TO_RELATIONSHIP): "-",
    (ElementKind.NODE, ConnectorKind.FROM_RELATIONSHIP): "<-",
    (ElementKind.NODE, ConnectorKind.UNDIRECTED_NODE): "--",
    (ElementKind.RELATIONSHIP, ConnectorKind.TO_NODE): "->",
    (ElementKind.RELATIONSHIP, ConnectorKind.FROM_NODE): "-",
}

# A leading ghost node mirrors the outgoing side of the relationship it precedes
_LEADING_GHOST_CONNECTORS: dict[ConnectorKind | None, ConnectorKind] = {
    ConnectorKind.TO_NODE: ConnectorKind.TO_RELATIONSHIP,
    ConnectorKind.FROM_NODE: ConnectorKind.FROM_RELATIONSHIP,
    None: ConnectorKind.TO_RELATIONSHIP,
}

# A trailing ghost node follows the incoming side of the relationship it ends
_TRAILING_GHOST_CONNECTORS: dict[ConnectorKind | None, ConnectorKind] = {
    ConnectorKind.TO_RELATIONSHIP: ConnectorKind.TO_NODE,
    ConnectorKind.FROM_RELATIONSHIP: ConnectorKind.FROM_NODE,
}


@dataclass
class GraphElement:
    """One node or relationship in the path arena."""

    kind: ElementKind
    pattern: NodePattern | RelationshipPattern
    previous: int | None = None
    next: int | None = None
    connector: ConnectorKind | None = None

    def connector_token(self) -> str:
        if self.connector is None:
            return ""
        return _CONNECTOR_TOKENS[(self.kind, self.connector)]


@dataclass(frozen=True)
class ShortestPath:
    """Shortest-path annotation wrapping a whole pattern."""

    alias: str
    length: int | None = None
    all_paths: bool = False
    groups: bool = False

    def prefix(self) -> str:
        parts = [f"{self.alias} ="]
        if self.all_paths:
            parts.append("ALL")
        parts.append("SHORTEST")
        if self.length is not None:
            parts.append(str(self.length))
        if self.groups:
            parts.append("GROUPS")
        return " ".join(parts) + " "


class PathPatternBuilder:
    """Fluent builder for one connected path pattern.

    Example:
        ```python
        path = (
            PathPatternBuilder()
            .set_node(alias="n", labels=["Person"])
            .to_relationship(alias="r", type_="KNOWS")
            .to_node(alias="m")
        )
        path.to_parameterized_query().query  # "(n:Person)-[r:KNOWS]->(m)"
        ```
    """

    def __init__(self, key_generator: ParameterKeyGenerator | None = None) -> None:
        """Initialize a new path pattern builder.

        Args:
            key_generator: Source of parameter key suffixes for the elements
        """
        self._key_generator = key_generator
        self._elements: list[GraphElement] = []
        self._start: int | None = None
        self._end: int | None = None
        self._shortest_path: ShortestPath | None = None

    @property
    def elements(self) -> list[GraphElement]:
        """Elements in path order, from start to end."""
        ordered: list[GraphElement] = []
        index = self._start
        while index is not None:
            element = self._elements[index]
            ordered.append(element)
            index = element.next
        return ordered

    @property
    def aliases(self) -> list[str]:
        """Aliases of the elements in path order, without the shortest-path alias."""
        return [element.pattern.alias for element in self.elements if element.pattern.alias]

    def _node(
        self,
        alias: str | None,
        labels: Iterable[str] | None,
        properties: Mapping[str, PropertyValue] | None,
        pattern: NodePattern | None,
    ) -> NodePattern:
        if pattern is not None:
            return pattern
        return NodePattern(alias=alias, labels=labels, properties=properties, key_generator=self._key_generator)

    def _relationship(
        self,
        alias: str | None,
        type_: str | None,
        properties: Mapping[str, PropertyValue] | None,
        min_hops: int | None,
        max_hops: int | None,
        pattern: RelationshipPattern | None,
    ) -> RelationshipPattern:
        if pattern is not None:
            return pattern
        relationship = RelationshipPattern(
            alias=alias, type_=type_, properties=properties, key_generator=self._key_generator
        )
        if min_hops is not None or max_hops is not None:
            relationship.set_length(min_hops=min_hops, max_hops=max_hops)
        return relationship

    def _set_start(self, element: GraphElement) -> None:
        if self._start is not None:
            raise StructuralError(
                "Cannot add multiple start elements",
                details={"source": "PathPatternBuilder", "operation": "set_start", "field": element.kind.value},
            )
        self._elements.append(element)
        self._start = self._end = len(self._elements) - 1

    def _last(self, operation: str) -> GraphElement:
        if self._end is None:
            raise StructuralError(
                "Cannot connect to nothing. Add a start node or relationship first",
                details={"source": "PathPatternBuilder", "operation": operation},
            )
        return self._elements[self._end]

    def _append(self, element: GraphElement, connector: ConnectorKind) -> None:
        last = self._elements[self._end]  # type: ignore[index]
        self._elements.append(element)
        index = len(self._elements) - 1

        element.previous = self._end
        last.next = index
        last.connector = connector
        self._end = index

    def _prepend(self, element: GraphElement, connector: ConnectorKind) -> None:
        first = self._elements[self._start]  # type: ignore[index]
        self._elements.append(element)
        index = len(self._elements) - 1

        element.next = self._start
        element.connector = connector
        first.previous = index
        self._start = index

    def set_node(
        self,
        alias: str | None = None,
        labels: Iterable[str] | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        pattern: NodePattern | None = None,
    ) -> "PathPatternBuilder":
        """Start the path with a node.

        Args:
            alias: Variable name for the node
            labels: Node labels
            properties: Node properties
            pattern: An already configured node pattern, used instead of the other arguments

        Returns:
            Self for method chaining

        Raises:
            StructuralError: If the path already has a start element
        """
        node = self._node(alias, labels, properties, pattern)
        self._set_start(GraphElement(kind=ElementKind.NODE, pattern=node))
        return self

    def set_relationship(
        self,
        alias: str | None = None,
        type_: str | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        min_hops: int | None = None,
        max_hops: int | None = None,
        pattern: RelationshipPattern | None = None,
    ) -> "PathPatternBuilder":
        """Start the path with a relationship.

        The missing end nodes are added as anonymous nodes when the path is
        compiled.

        Raises:
            StructuralError: If the path already has a start element
        """
        relationship = self._relationship(alias, type_, properties, min_hops, max_hops, pattern)
        self._set_start(GraphElement(kind=ElementKind.RELATIONSHIP, pattern=relationship))
        return self

    def to_node(
        self,
        alias: str | None = None,
        labels: Iterable[str] | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        pattern: NodePattern | None = None,
    ) -> "PathPatternBuilder":
        """Connect a node in the outgoing direction: ``(n)-->(m)`` or ``-[r]->(m)``."""
        self._last("to_node")
        node = self._node(alias, labels, properties, pattern)
        self._append(GraphElement(kind=ElementKind.NODE, pattern=node), ConnectorKind.TO_NODE)
        return self

    def from_node(
        self,
        alias: str | None = None,
        labels: Iterable[str] | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        pattern: NodePattern | None = None,
    ) -> "PathPatternBuilder":
        """Connect a node in the incoming direction: ``(n)<--(m)`` or ``-[r]-(m)``."""
        self._last("from_node")
        node = self._node(alias, labels, properties, pattern)
        self._append(GraphElement(kind=ElementKind.NODE, pattern=node), ConnectorKind.FROM_NODE)
        return self

    def add_node(
        self,
        alias: str | None = None,
        labels: Iterable[str] | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        pattern: NodePattern | None = None,
    ) -> "PathPatternBuilder":
        """Connect a node without direction: ``(n)--(m)``.

        Raises:
            StructuralError: If the last element is a relationship
        """
        last = self._last("add_node")
        if last.kind is ElementKind.RELATIONSHIP:
            raise StructuralError(
                "Cannot connect a node to a relationship without a direction",
                details={"source": "PathPatternBuilder", "operation": "add_node", "field": "direction"},
            )
        node = self._node(alias, labels, properties, pattern)
        self._append(GraphElement(kind=ElementKind.NODE, pattern=node), ConnectorKind.UNDIRECTED_NODE)
        return self

    def _connect_relationship(
        self, operation: str, connector: ConnectorKind, relationship: RelationshipPattern
    ) -> None:
        last = self._last(operation)
        if last.kind is ElementKind.RELATIONSHIP:
            raise StructuralError(
                "Cannot connect a relationship to a relationship",
                details={"source": "PathPatternBuilder", "operation": operation},
            )
        self._append(GraphElement(kind=ElementKind.RELATIONSHIP, pattern=relationship), connector)

    def to_relationship(
        self,
        alias: str | None = None,
        type_: str | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        min_hops: int | None = None,
        max_hops: int | None = None,
        pattern: RelationshipPattern | None = None,
    ) -> "PathPatternBuilder":
        """Connect a relationship leaving the last node: ``(n)-[r]``.

        Raises:
            StructuralError: If there is no start element or the last element is a relationship
        """
        relationship = self._relationship(alias, type_, properties, min_hops, max_hops, pattern)
        self._connect_relationship("to_relationship", ConnectorKind.TO_RELATIONSHIP, relationship)
        return self

    def from_relationship(
        self,
        alias: str | None = None,
        type_: str | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        *,
        min_hops: int | None = None,
        max_hops: int | None = None,
        pattern: RelationshipPattern | None = None,
    ) -> "PathPatternBuilder":
        """Connect a relationship entering the last node: ``(n)<-[r]``.

        Raises:
            StructuralError: If there is no start element or the last element is a relationship
        """
        relationship = self._relationship(alias, type_, properties, min_hops, max_hops, pattern)
        self._connect_relationship("from_relationship", ConnectorKind.FROM_RELATIONSHIP, relationship)
        return self

    def shortest_path(
        self,
        alias: str,
        length: int | None = None,
        all_paths: bool = False,
        groups: bool = False,
    ) -> "PathPatternBuilder":
        """Request only the shortest paths matching the pattern.

        Args:
            alias: Variable name bound to the path
            length: Number of shortest paths to return
            all_paths: Return all shortest paths (``ALL SHORTEST``)
            groups: Group the paths by length (``SHORTEST n GROUPS``)

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ``length`` is not a positive integer
            AliasError: If ``alias`` is already bound by an element of the pattern
        """
        if length is not None and (isinstance(length, bool) or not isinstance(length, int) or length <= 0):
            raise ClauseError(
                "Shortest path length must be a positive integer",
                details={
                    "source": "PathPatternBuilder",
                    "operation": "shortest_path",
                    "field": "length",
                    "actual_value": length,
                    "constraint": "> 0",
                },
            )
        self._check_shortest_path_alias(alias)
        self._shortest_path = ShortestPath(alias=alias, length=length, all_paths=all_paths, groups=groups)
        return self

    def _check_shortest_path_alias(self, alias: str) -> None:
        if alias in self.aliases:
            raise AliasError(
                f"Shortest path alias '{alias}' is already bound in the pattern",
                details={
                    "source": "PathPatternBuilder",
                    "operation": "shortest_path",
                    "field": "alias",
                    "actual_value": alias,
                },
            )

    def repair(self) -> "PathPatternBuilder":
        """Complete relationships at either end of the path with anonymous nodes.

        Running it on an already repaired path changes nothing.

        Returns:
            Self for method chaining
        """
        if self._start is None:
            return self

        first = self._elements[self._start]
        if first.kind is ElementKind.RELATIONSHIP:
            connector = _LEADING_GHOST_CONNECTORS[first.connector]
            logger.warning(
                "Path starts with a relationship, adding an anonymous start node",
                relationship=first.pattern.alias,
                connector=connector.value,
            )
            self._prepend(GraphElement(kind=ElementKind.NODE, pattern=NodePattern()), connector)

        last = self._elements[self._end]  # type: ignore[index]
        if last.kind is ElementKind.RELATIONSHIP:
            predecessor = self._elements[last.previous]  # type: ignore[index]
            connector = _TRAILING_GHOST_CONNECTORS[predecessor.connector]
            logger.warning(
                "Path ends with a relationship, adding an anonymous end node",
                relationship=last.pattern.alias,
                connector=connector.value,
            )
            self._append(GraphElement(kind=ElementKind.NODE, pattern=NodePattern()), connector)

        return self

    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile the path pattern.

        Returns:
            The pattern text, its parameters, and every alias it binds

        Raises:
            StructuralError: If the path has no element
            AliasError: If an alias repeats, no element has an alias, or the
                shortest-path alias collides with an element alias
        """
        if self._start is None:
            raise StructuralError(
                "Cannot build an empty path pattern. Add at least one node or relationship",
                details={"source": "PathPatternBuilder", "operation": "to_parameterized_query"},
            )

        self.repair()

        parts: list[str] = []
        parameters: Properties = {}
        aliases: list[str] = []
        for element in self.elements:
            fragment = element.pattern.to_parameterized_query()
            alias = element.pattern.alias
            if alias:
                if alias in aliases:
                    raise AliasError(
                        f"Alias '{alias}' already exists in the pattern. Aliases must be unique",
                        details={
                            "source": "PathPatternBuilder",
                            "operation": "to_parameterized_query",
                            "field": "alias",
                            "actual_value": alias,
                        },
                    )
                aliases.append(alias)

            parts.append(fragment.query)
            parts.append(element.connector_token())
            merge_properties(parameters, fragment.parameters)

        if not aliases:
            raise AliasError(
                "At least one alias must be provided in a path pattern",
                details={"source": "PathPatternBuilder", "operation": "to_parameterized_query", "field": "alias"},
            )

        query = "".join(parts)
        if self._shortest_path is not None:
            self._check_shortest_path_alias(self._shortest_path.alias)
            query = self._shortest_path.prefix() + query
            aliases.append(self._shortest_path.alias)

        return ParameterizedQuery(query=query, parameters=parameters, aliases=frozenset(aliases))

    def to_raw_query(self) -> str:
        """Render the path with literal values, for debugging only."""
        compiled = self.to_parameterized_query()
        return replace_parameters(compiled.query, compiled.parameters)

    def __str__(self) -> str:
        return self.to_raw_query()
