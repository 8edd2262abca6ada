"""Pattern builders for single graph elements.

This module provides builders for one node pattern like
``(n:Person {name: $n_name_1f3a})`` or one relationship pattern like
``[r:KNOWS*1..3 {since: $r_since_9b2c}]``. Property values never appear in the
parameterized text; each one is bound to a randomized parameter key.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any

from structlog.typing import FilteringBoundLogger

from cypher_forge.core.errors import ClauseError
from cypher_forge.core.logging import get_logger
from cypher_forge.query_builder.interfaces import ParameterizedQuery
from cypher_forge.query_builder.parameters import (
    ParameterKeyGenerator,
    Properties,
    PropertyValue,
    randomize_key,
    replace_parameters,
)

logger: FilteringBoundLogger = get_logger(name=__name__)


class ElementPattern(ABC):
    """Alias and property handling shared by node and relationship patterns."""

    def __init__(
        self,
        alias: str | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        key_generator: ParameterKeyGenerator | None = None,
    ) -> None:
        self._alias: str | None = alias or None
        self._key_generator = key_generator
        self._properties: Properties = {}
        self._parameter_keys: dict[str, str] = {}
        if properties:
            self._accept_properties(properties)

    @property
    def alias(self) -> str | None:
        return self._alias

    @property
    def properties(self) -> Properties:
        return dict(self._properties)

    def _accept_property(self, key: str, value: PropertyValue) -> None:
        if key not in self._parameter_keys:
            self._parameter_keys[key] = randomize_key(f"{self._alias or 'p'}_{key}", self._key_generator)
        self._properties[key] = value

    def _accept_properties(self, properties: Mapping[str, PropertyValue]) -> None:
        for key, value in properties.items():
            self._accept_property(key, value)

    def set_alias(self, alias: str) -> "ElementPattern":
        """Set the alias of the element, replacing any previous one.

        Args:
            alias: Variable name bound to the element

        Returns:
            Self for method chaining
        """
        if self._alias:
            logger.warning("Overwriting pattern alias", previous=self._alias, alias=alias)
        self._alias = alias
        return self

    def set_properties(self, properties: Mapping[str, PropertyValue]) -> "ElementPattern":
        """Replace every property of the element.

        Args:
            properties: The new property map

        Returns:
            Self for method chaining
        """
        self._properties = {}
        self._parameter_keys = {}
        self._accept_properties(properties)
        return self

    def add_property(self, key: str, value: PropertyValue) -> "ElementPattern":
        """Add one property, replacing an existing value under the same key.

        Args:
            key: Property name
            value: Property value or raw expression

        Returns:
            Self for method chaining
        """
        if key in self._properties:
            logger.warning("Overwriting pattern property", alias=self._alias, key=key)
        self._accept_property(key, value)
        return self

    def add_properties(self, properties: Mapping[str, PropertyValue]) -> "ElementPattern":
        """Add several properties; see ``add_property``."""
        for key, value in properties.items():
            self.add_property(key, value)
        return self

    def _properties_fragment(self) -> tuple[str, Properties]:
        if not self._properties:
            return "", {}

        parts: list[str] = []
        parameters: Properties = {}
        for key, value in self._properties.items():
            parameter_key = self._parameter_keys[key]
            parts.append(f"{key}: ${parameter_key}")
            parameters[parameter_key] = value

        return f" {{{', '.join(parts)}}}", parameters

    def _aliases(self) -> frozenset[str]:
        return frozenset({self._alias}) if self._alias else frozenset()

    @abstractmethod
    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile the element to query text and its parameters."""

    def to_raw_query(self) -> str:
        """Render the pattern with literal values, for debugging only."""
        compiled = self.to_parameterized_query()
        return replace_parameters(compiled.query, compiled.parameters)

    def __str__(self) -> str:
        return self.to_raw_query()


class NodePattern(ElementPattern):
    """Builder for one node pattern like ``(n:Person {name: $key})``.

    Labels keep their insertion order; adding a label twice has no effect
    beyond a warning.
    """

    def __init__(
        self,
        alias: str | None = None,
        labels: Iterable[str] | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        key_generator: ParameterKeyGenerator | None = None,
    ) -> None:
        """Initialize a node pattern builder.

        Args:
            alias: Variable name for the node (can be empty)
            labels: Node labels
            properties: Node properties
            key_generator: Source of parameter key suffixes
        """
        super().__init__(alias=alias, properties=properties, key_generator=key_generator)
        self._labels: dict[str, None] = {}
        for label in labels or ():
            self.add_label(label)

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    def set_labels(self, labels: Iterable[str]) -> "NodePattern":
        """Replace every label of the node.

        Args:
            labels: At least one label

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ``labels`` is empty
        """
        new_labels = dict.fromkeys(labels)
        if not new_labels:
            raise ClauseError(
                "At least one label must be provided",
                details={"source": "NodePattern", "operation": "set_labels", "field": "labels"},
            )
        if self._labels:
            logger.warning("Overwriting node labels", previous=list(self._labels), labels=list(new_labels))
        self._labels = new_labels
        return self

    def add_label(self, label: str) -> "NodePattern":
        """Append a label to the node.

        Args:
            label: Label to add

        Returns:
            Self for method chaining
        """
        if label in self._labels:
            logger.warning("Label already present on node", alias=self._alias, label=label)
        self._labels[label] = None
        return self

    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile the node pattern.

        Returns:
            ``(alias:Label1:Label2 {key: $param})`` with its parameters
        """
        labels = "".join(f":{label}" for label in self._labels)
        properties, parameters = self._properties_fragment()
        return ParameterizedQuery(
            query=f"({self._alias or ''}{labels}{properties})",
            parameters=parameters,
            aliases=self._aliases(),
        )


class RelationshipPattern(ElementPattern):
    """Builder for one relationship pattern like ``[r:KNOWS {since: $key}]``.

    A relationship carries at most one type. Direction is not part of the
    fragment; the path builder chooses the connectors around it.
    """

    def __init__(
        self,
        alias: str | None = None,
        type_: str | None = None,
        properties: Mapping[str, PropertyValue] | None = None,
        key_generator: ParameterKeyGenerator | None = None,
    ) -> None:
        """Initialize a relationship pattern builder.

        Args:
            alias: Variable name for the relationship (can be empty)
            type_: Relationship type
            properties: Relationship properties
            key_generator: Source of parameter key suffixes
        """
        super().__init__(alias=alias, properties=properties, key_generator=key_generator)
        self._type: str | None = type_ or None
        self.min_hops: int | None = None
        self.max_hops: int | None = None

    @property
    def type(self) -> str | None:
        return self._type

    def set_type(self, type_: str) -> "RelationshipPattern":
        """Set the relationship type, replacing any previous one.

        Args:
            type_: Relationship type

        Returns:
            Self for method chaining
        """
        if self._type:
            logger.warning("Overwriting relationship type", previous=self._type, type=type_)
        self._type = type_
        return self

    def set_length(self, min_hops: int | None = None, max_hops: int | None = None) -> "RelationshipPattern":
        """Set the length for variable-length relationships.

        Args:
            min_hops: Minimum number of hops (None for no minimum)
            max_hops: Maximum number of hops (None for no maximum)

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If a bound is negative or the range is inverted
        """
        for name, value in (("min_hops", min_hops), ("max_hops", max_hops)):
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
                raise ClauseError(
                    f"{name} must be a non-negative integer",
                    details={
                        "source": "RelationshipPattern",
                        "operation": "set_length",
                        "field": name,
                        "actual_value": value,
                        "constraint": ">= 0",
                    },
                )
        if min_hops is not None and max_hops is not None and min_hops > max_hops:
            raise ClauseError(
                "min_hops cannot be greater than max_hops",
                details={
                    "source": "RelationshipPattern",
                    "operation": "set_length",
                    "field": "min_hops",
                    "actual_value": min_hops,
                    "constraint": f"<= {max_hops}",
                },
            )

        self.min_hops = min_hops
        self.max_hops = max_hops
        return self

    def _length_fragment(self) -> str:
        if self.min_hops is None and self.max_hops is None:
            return ""

        length_parts: list[str] = []
        if self.min_hops is not None:
            length_parts.append(str(self.min_hops))
        length_parts.append("..")
        if self.max_hops is not None:
            length_parts.append(str(self.max_hops))

        return f"*{''.join(length_parts)}"

    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile the relationship pattern.

        Returns:
            ``[alias:TYPE*min..max {key: $param}]`` with its parameters
        """
        type_ = f":{self._type}" if self._type else ""
        properties, parameters = self._properties_fragment()
        return ParameterizedQuery(
            query=f"[{self._alias or ''}{type_}{self._length_fragment()}{properties}]",
            parameters=parameters,
            aliases=self._aliases(),
        )
