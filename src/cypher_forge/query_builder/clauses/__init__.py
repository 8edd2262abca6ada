"""Clause builders.

Selective clauses (MATCH, OPTIONAL MATCH, CREATE, MERGE) introduce aliases;
dependent clauses (WHERE, SET, ORDER BY, RETURN) reference them and are
validated against that scope when finalized.
"""

from .base import DependentClauseBuilder, validate_statement_aliases
from .order_by import OrderByClauseBuilder, OrderItem
from .return_clause import ReturnClauseBuilder, ReturnItem
from .selective import (
    CreateClauseBuilder,
    MatchClauseBuilder,
    MergeClauseBuilder,
    OptionalMatchClauseBuilder,
    PathPatternClauseBuilder,
)
from .set_clause import SetClauseBuilder
from .where import And, Bracket, BooleanNode, Or, Statement, WhereClauseBuilder

__all__ = [
    "And",
    "BooleanNode",
    "Bracket",
    "CreateClauseBuilder",
    "DependentClauseBuilder",
    "MatchClauseBuilder",
    "MergeClauseBuilder",
    "OptionalMatchClauseBuilder",
    "Or",
    "OrderByClauseBuilder",
    "OrderItem",
    "PathPatternClauseBuilder",
    "ReturnClauseBuilder",
    "ReturnItem",
    "SetClauseBuilder",
    "Statement",
    "WhereClauseBuilder",
    "validate_statement_aliases",
]
