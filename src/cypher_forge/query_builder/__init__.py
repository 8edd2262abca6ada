"""Query builder framework.

This package provides a fluent interface for building parameterized Cypher
queries with alias-scope validation.
"""

from .builder import QueryBuilder
from .clauses import (
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
from .filters import compile_filters
from .interfaces import ParameterizedQuery, QueryFragmentBuilder, ScopedClauseBuilder
from .parameters import ParameterKeyGenerator
from .path import ConnectorKind, ElementKind, GraphElement, PathPatternBuilder
from .patterns import NodePattern, RelationshipPattern
from .state import BuilderState, ClauseType, QueryAssemblyState

__all__ = [
    "BuilderState",
    "ClauseType",
    "ConnectorKind",
    "CreateClauseBuilder",
    "ElementKind",
    "GraphElement",
    "MatchClauseBuilder",
    "MergeClauseBuilder",
    # Patterns
    "NodePattern",
    "OptionalMatchClauseBuilder",
    "OrderByClauseBuilder",
    "ParameterKeyGenerator",
    "ParameterizedQuery",
    "PathPatternBuilder",
    "PathPatternClauseBuilder",
    "QueryAssemblyState",
    # Base query builder
    "QueryBuilder",
    "QueryFragmentBuilder",
    "RelationshipPattern",
    "ReturnClauseBuilder",
    "ScopedClauseBuilder",
    "SetClauseBuilder",
    "WhereClauseBuilder",
    "compile_filters",
]
