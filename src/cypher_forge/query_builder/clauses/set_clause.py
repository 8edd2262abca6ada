"""SET clause builder.

A placeholder whose value comes with its statement gets a key of its own, so
``$v`` in two statements can bind two values. Placeholders without a value
share one key per name across the clause and take their value from a later
``set_properties``.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from cypher_forge.core.errors import ClauseError, ParameterError
from cypher_forge.query_builder.clauses.base import DependentClauseBuilder, validate_statement_aliases
from cypher_forge.query_builder.interfaces import ParameterizedQuery, as_scope
from cypher_forge.query_builder.parameters import (
    ParameterKeyGenerator,
    Properties,
    PropertyValue,
    find_placeholders,
    randomize_key,
    rename_placeholders,
)


class SetClauseBuilder(DependentClauseBuilder):
    """Builder for ``SET n.name = $name, m.age = 10``."""

    keyword = "SET"

    def __init__(
        self,
        aliases: Iterable[str] | None = None,
        key_generator: ParameterKeyGenerator | None = None,
    ) -> None:
        super().__init__(aliases)
        self._key_generator = key_generator
        self._primary: str | None = None
        self._statements: list[str] = []
        # Placeholder name of every randomized key
        self._names: dict[str, str] = {}
        # Keys of placeholders accepted without a value
        self._shared: dict[str, str] = {}
        self._values: Properties = {}
        self._late: Properties = {}

    def __bool__(self) -> bool:
        return self._primary is not None or bool(self._statements)

    def _accept(self, statement: str, properties: Mapping[str, PropertyValue] | None) -> str:
        properties = properties or {}
        mapping: dict[str, str] = {}
        for name in find_placeholders(statement):
            if name in properties:
                key = randomize_key(name, self._key_generator)
                self._values[key] = properties[name]
            else:
                if name not in self._shared:
                    self._shared[name] = randomize_key(name, self._key_generator)
                key = self._shared[name]
            self._names[key] = name
            mapping[name] = key

        for name, value in properties.items():
            if name not in mapping:
                self._late[name] = value
        return rename_placeholders(statement, mapping)

    def set(self, statement: str, properties: Mapping[str, PropertyValue] | None = None) -> "SetClauseBuilder":
        """Set the primary assignment.

        Args:
            statement: Assignment such as ``n.name = $name``
            properties: Values for the placeholders, may also be given later

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If a primary assignment already exists
        """
        if self._primary is not None:
            raise ClauseError(
                "set() can only be called once; use add_set() for further assignments",
                details={"source": "SetClauseBuilder", "operation": "set"},
            )
        self._primary = self._accept(statement, properties)
        return self

    def add_set(self, statement: str, properties: Mapping[str, PropertyValue] | None = None) -> "SetClauseBuilder":
        """Append an assignment; see ``set``."""
        self._statements.append(self._accept(statement, properties))
        return self

    def set_properties(self, properties: Mapping[str, PropertyValue]) -> "SetClauseBuilder":
        """Replace every placeholder value of the clause.

        Each placeholder, whether its value came with its statement or not,
        takes the value of its name in ``properties``.

        Args:
            properties: Values keyed by placeholder name (without ``$``)

        Returns:
            Self for method chaining
        """
        self._late = dict(properties)
        self._values = {key: properties[name] for key, name in self._names.items() if name in properties}
        return self

    @property
    def statements(self) -> list[str]:
        """Accepted assignments, primary first, with randomized placeholders."""
        primary = [self._primary] if self._primary is not None else []
        return primary + self._statements

    def _bound_values(self) -> tuple[dict[str, Any], list[str]]:
        values: dict[str, Any] = {}
        missing: list[str] = []
        for key, name in self._names.items():
            if key in self._values:
                values[key] = self._values[key]
            elif self._shared.get(name) == key and name in self._late:
                values[key] = self._late[name]
            elif name not in missing:
                missing.append(name)
        return values, missing

    def finalize(self, scope: Iterable[str]) -> ParameterizedQuery:
        """Validate every assignment against ``scope`` and render the clause.

        Raises:
            AliasError: If an assignment references an alias outside ``scope``
            ParameterError: If a placeholder has no value
        """
        statements = self.statements
        if not statements:
            return ParameterizedQuery()

        scope = as_scope(scope)
        referenced: list[str] = []
        for statement in statements:
            referenced.extend(validate_statement_aliases(statement, scope, "SetClauseBuilder"))

        parameters, missing = self._bound_values()
        if missing:
            raise ParameterError(
                f"Parameters {missing} of the SET clause have no value",
                details={
                    "source": "SetClauseBuilder",
                    "operation": "finalize",
                    "field": "properties",
                    "actual_value": sorted(self._late),
                    "constraint": f"must contain {missing}",
                },
            )

        return ParameterizedQuery(
            query=f"{self.keyword} {', '.join(statements)}",
            parameters=parameters,
            aliases=frozenset(referenced),
        )
