"""Pagination mixin for the query builder.

This module provides a separate mixin for SKIP / LIMIT / OFFSET so the core
assembler only deals with clause slots and scope propagation.
"""

from typing import Self

from cypher_forge.core.errors import ClauseError
from cypher_forge.query_builder.state import ClauseType, QueryAssemblyState


def _check_count(clause_type: ClauseType, count: int, minimum: int = 0) -> None:
    if isinstance(count, bool) or not isinstance(count, int) or count < minimum:
        raise ClauseError(
            f"{clause_type.keyword} needs an integer of at least {minimum}, got {count!r}",
            details={
                "source": "QueryBuilder",
                "operation": clause_type.name.lower(),
                "field": "count",
                "actual_value": count,
                "constraint": f">= {minimum}",
            },
        )


class PaginationMixin:
    """Mixin adding SKIP, LIMIT and OFFSET clauses to the query builder.

    Counts are validated integers, so they are rendered inline rather than
    as parameters.
    """

    _state: QueryAssemblyState
    _scalars: dict[ClauseType, int]

    def _set_scalar(self, clause_type: ClauseType, count: int) -> Self:
        _check_count(clause_type, count)
        self._scalars[clause_type] = count
        self._state.add_clause(clause_type)
        return self

    def skip(self, count: int) -> Self:
        """Add a SKIP clause to the query.

        Args:
            count: Number of results to skip

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ``count`` is not a non-negative integer
        """
        return self._set_scalar(ClauseType.SKIP, count)

    def limit(self, count: int) -> Self:
        """Add a LIMIT clause to the query.

        Args:
            count: Maximum number of results to return

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ``count`` is not a non-negative integer
        """
        return self._set_scalar(ClauseType.LIMIT, count)

    def offset(self, count: int) -> Self:
        """Add an OFFSET clause to the query (a synonym of SKIP)."""
        return self._set_scalar(ClauseType.OFFSET, count)

    def paginate(self, page: int, page_size: int) -> Self:
        """Add pagination (SKIP and LIMIT) based on page number and size.

        This is a convenience method that combines skip and limit.

        Args:
            page: Page number (1-based)
            page_size: Number of items per page

        Returns:
            Self for method chaining

        Raises:
            ClauseError: If ``page`` or ``page_size`` is smaller than 1
        """
        _check_count(ClauseType.SKIP, page, minimum=1)
        _check_count(ClauseType.LIMIT, page_size, minimum=1)

        # Calculate skip value based on page number
        skip_count = (page - 1) * page_size

        return self.skip(skip_count).limit(page_size)
