"""Compile fluent builder calls into parameterized Cypher queries."""

from cypher_forge.core import AliasError, ClauseError, ParameterError, QueryBuilderError, StructuralError
from cypher_forge.query_builder import (
    NodePattern,
    ParameterizedQuery,
    ParameterKeyGenerator,
    PathPatternBuilder,
    QueryBuilder,
    RelationshipPattern,
    WhereClauseBuilder,
)

__all__ = [
    "AliasError",
    "ClauseError",
    "NodePattern",
    "ParameterError",
    "ParameterKeyGenerator",
    "ParameterizedQuery",
    "PathPatternBuilder",
    "QueryBuilder",
    "QueryBuilderError",
    "RelationshipPattern",
    "StructuralError",
    "WhereClauseBuilder",
]
