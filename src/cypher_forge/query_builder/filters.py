"""Filter dictionary compilation.

This module turns a filter dictionary into a WHERE clause builder, so filters
coming from an API layer get the same parameterization and alias validation as
hand-written conditions.
"""

from __future__ import annotations

import re
from typing import Any, Literal, TypeAlias

from cypher_forge.core.errors import ClauseError
from cypher_forge.query_builder.clauses.where import WhereClauseBuilder
from cypher_forge.query_builder.parameters import ParameterKeyGenerator, Properties

_OPS = {
    "lt": "<",
    "lte": "<=",
    "gt": ">",
    "gte": ">=",
    "ne": "<>",
    "in": "IN",
    "contains": "CONTAINS",
    "startswith": "STARTS WITH",
    "endswith": "ENDS WITH",
    "overlap": "ANY",  # Special handling for list overlaps
}

# A statement with its parameters, or an already grouped sub-condition
_Condition: TypeAlias = "tuple[str, Properties | None] | WhereClauseBuilder"


def _param_name(field: str) -> str:
    """Turn a property name into a placeholder name."""
    return re.sub(r"[^A-Za-z0-9_]", "_", field)


def _field_condition(alias: str, field: str, op: str, value: Any) -> tuple[str, Properties | None]:
    param = _param_name(field)

    if op == "overlap":
        return f"ANY(x IN ${param} WHERE x IN {alias}.{field})", {param: value}
    if value is None and op == "ne":
        return f"{alias}.{field} IS NOT NULL", None
    if op in _OPS:
        return f"{alias}.{field} {_OPS[op]} ${param}", {param: value}

    raise ClauseError(
        f"Unknown filter operator '{op}'",
        details={
            "source": "compile_filters",
            "operation": "compile",
            "field": f"{field}__{op}",
            "actual_value": op,
            "constraint": f"one of {sorted(_OPS)}",
        },
    )


def _join(
    conditions: list[_Condition],
    connective: Literal["AND", "OR"],
    key_generator: ParameterKeyGenerator | None,
) -> WhereClauseBuilder:
    builder = WhereClauseBuilder(key_generator=key_generator)
    for condition in conditions:
        item, parameters = (condition, None) if isinstance(condition, WhereClauseBuilder) else condition
        if not builder:
            builder.add(item, parameters)
        elif connective == "OR":
            builder.or_(item, parameters)
        else:
            builder.and_(item, parameters)
    return builder


def _process_filters(
    filters: dict[str, Any],
    alias: str,
    key_generator: ParameterKeyGenerator | None,
) -> list[_Condition]:
    """Recursively compile a filter dictionary into AND-joined conditions."""
    conditions: list[_Condition] = []

    for key, value in filters.items():
        if key == "$or":
            alternatives: list[_Condition] = []
            for item in value or []:
                sub_conditions = _process_filters(item, alias, key_generator)
                if len(sub_conditions) > 1:
                    alternatives.append(_join(sub_conditions, "AND", key_generator))
                elif sub_conditions:
                    alternatives.append(sub_conditions[0])
            if len(alternatives) > 1:
                conditions.append(_join(alternatives, "OR", key_generator))
            elif alternatives:
                conditions.append(alternatives[0])

        elif key == "$and":
            # AND inside AND needs no brackets
            for item in value or []:
                conditions.extend(_process_filters(item, alias, key_generator))

        elif "__" in key:
            field, op = key.split("__", 1)
            conditions.append(_field_condition(alias, field, op, value))

        elif value is None:
            conditions.append((f"{alias}.{key} IS NULL", None))

        else:
            param = _param_name(key)
            conditions.append((f"{alias}.{key} = ${param}", {param: value}))

    return conditions


def compile_filters(
    filters: dict[str, Any] | None,
    alias: str = "n",
    key_generator: ParameterKeyGenerator | None = None,
) -> WhereClauseBuilder:
    """Compile a filter dictionary into a WHERE clause builder.

    Args:
        filters: Dictionary of filters supporting:
            - Simple equality: {"field": "value"}
            - Operators: {"field__gt": 5, "field__contains": "text"}
            - Logical groups: {"$or": [...], "$and": [...]}
            - Null checks: {"field": None}, {"field__ne": None}
        alias: Node alias to use in the conditions
        key_generator: Source of parameter key suffixes

    Returns:
        A WHERE clause builder; empty when there is nothing to filter on

    Raises:
        ClauseError: If a key uses an unknown operator

    Examples:
        >>> compile_filters({"name": "Alice", "age__gt": 18}).finalize({"n"}).query
        'WHERE n.name = $name_<key> AND n.age > $age_<key>'

        >>> compile_filters({"$or": [{"type": "A"}, {"type": "B"}]}).finalize({"n"}).query
        'WHERE ( n.type = $type_<key> OR n.type = $type_<key> )'
    """
    if not filters:
        return WhereClauseBuilder(key_generator=key_generator)

    return _join(_process_filters(filters, alias, key_generator), "AND", key_generator)
