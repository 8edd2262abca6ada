"""Selective clause builders: MATCH, OPTIONAL MATCH, CREATE and MERGE.

Selective clauses introduce aliases. Each one holds a list of compiled path
patterns and renders them as ``KEYWORD p1, p2``.
"""

from collections.abc import Callable
from typing import Any, TypeAlias

from cypher_forge.core.errors import ClauseError
from cypher_forge.query_builder.aliases import extract_aliases_from_path
from cypher_forge.query_builder.interfaces import ParameterizedQuery
from cypher_forge.query_builder.parameters import (
    ParameterKeyGenerator,
    Properties,
    merge_properties,
    replace_parameters,
)
from cypher_forge.query_builder.path import PathPatternBuilder

# What `add_path_pattern` accepts
PathInput: TypeAlias = str | PathPatternBuilder | Callable[[PathPatternBuilder], Any]


class PathPatternClauseBuilder:
    """Builder for a clause made of comma-separated path patterns.

    Patterns are compiled as soon as they are added, so structural and alias
    errors surface at the call that introduced them.
    """

    keyword: str = ""

    def __init__(self, keyword: str | None = None, key_generator: ParameterKeyGenerator | None = None) -> None:
        """Initialize a selective clause builder.

        Args:
            keyword: Clause keyword, defaults to the subclass keyword
            key_generator: Source of parameter key suffixes for built patterns
        """
        self.keyword = keyword or self.keyword
        self._key_generator = key_generator
        self._patterns: list[ParameterizedQuery] = []

    def __bool__(self) -> bool:
        return bool(self._patterns)

    @property
    def aliases(self) -> frozenset[str]:
        """Union of the aliases bound by every pattern of the clause."""
        aliases: set[str] = set()
        for pattern in self._patterns:
            aliases.update(pattern.aliases)
        return frozenset(aliases)

    def _compile(self, pattern: PathInput) -> ParameterizedQuery:
        if isinstance(pattern, str):
            return ParameterizedQuery(query=pattern, aliases=frozenset(extract_aliases_from_path(pattern)))
        if isinstance(pattern, PathPatternBuilder):
            return pattern.to_parameterized_query()
        if callable(pattern):
            path = PathPatternBuilder(key_generator=self._key_generator)
            result = pattern(path)
            return (result if isinstance(result, PathPatternBuilder) else path).to_parameterized_query()

        raise ClauseError(
            f"Unsupported path pattern of type {type(pattern).__name__}",
            details={
                "source": type(self).__name__,
                "operation": "add_path_pattern",
                "field": "pattern",
                "expected_type": "str | PathPatternBuilder | Callable[[PathPatternBuilder], Any]",
            },
        )

    def add_path_pattern(self, *patterns: PathInput) -> "PathPatternClauseBuilder":
        """Add one or more path patterns to the clause.

        Args:
            *patterns: Raw pattern text, built path builders, or callables
                receiving a fresh ``PathPatternBuilder``

        Returns:
            Self for method chaining
        """
        for pattern in patterns:
            self._patterns.append(self._compile(pattern))
        return self

    def to_parameterized_query(self) -> ParameterizedQuery:
        """Compile the clause.

        Returns:
            ``KEYWORD p1, p2`` with merged parameters, or an empty query
            when no pattern was added
        """
        if not self._patterns:
            return ParameterizedQuery()

        parameters: Properties = {}
        for pattern in self._patterns:
            merge_properties(parameters, pattern.parameters)

        return ParameterizedQuery(
            query=f"{self.keyword} {', '.join(pattern.query for pattern in self._patterns)}",
            parameters=parameters,
            aliases=self.aliases,
        )

    def to_raw_query(self) -> str:
        """Render the clause with literal values, for debugging only."""
        compiled = self.to_parameterized_query()
        return replace_parameters(compiled.query, compiled.parameters)

    def __str__(self) -> str:
        return self.to_raw_query()


class MatchClauseBuilder(PathPatternClauseBuilder):
    keyword = "MATCH"


class OptionalMatchClauseBuilder(PathPatternClauseBuilder):
    keyword = "OPTIONAL MATCH"


class CreateClauseBuilder(PathPatternClauseBuilder):
    keyword = "CREATE"


class MergeClauseBuilder(PathPatternClauseBuilder):
    keyword = "MERGE"
