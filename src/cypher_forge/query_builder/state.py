"""State management for the query assembler.

This module fixes the order in which clauses are emitted and tracks the
assembler lifecycle so that clause exclusivity rules hold for every query.
"""

from enum import Enum, auto
from typing import ClassVar

from cypher_forge.core.errors import ClauseError


class ClauseType(Enum):
    """Enum for clause types, one slot per type."""

    # Selective clauses
    MATCH = auto()
    OPTIONAL_MATCH = auto()
    MERGE = auto()
    CREATE = auto()

    # Dependent clauses
    WHERE = auto()
    SET = auto()
    ORDER_BY = auto()

    # Pagination
    SKIP = auto()
    LIMIT = auto()
    OFFSET = auto()

    # Terminal clauses
    RETURN = auto()
    FINISH = auto()

    @property
    def keyword(self) -> str:
        return self.name.replace("_", " ")


class BuilderState(Enum):
    """Lifecycle of a query assembler."""

    EMPTY = auto()
    ACCUMULATING = auto()
    FINALIZED = auto()


# Emission order of the assembled query
ASSEMBLY_ORDER: tuple[ClauseType, ...] = (
    ClauseType.MATCH,
    ClauseType.OPTIONAL_MATCH,
    ClauseType.MERGE,
    ClauseType.CREATE,
    ClauseType.WHERE,
    ClauseType.SET,
    ClauseType.ORDER_BY,
    ClauseType.SKIP,
    ClauseType.LIMIT,
    ClauseType.OFFSET,
    ClauseType.RETURN,
    ClauseType.FINISH,
)

SELECTIVE_CLAUSES: frozenset[ClauseType] = frozenset(
    {ClauseType.MATCH, ClauseType.OPTIONAL_MATCH, ClauseType.MERGE, ClauseType.CREATE}
)


class QueryAssemblyState:
    """State machine for the query assembler.

    Tracks which clause slots are filled, rejects a second call to a
    singleton clause method, and rejects RETURN together with FINISH.
    """

    # Clauses whose plain method may only be called once per query
    _SINGLETONS: ClassVar[frozenset[ClauseType]] = frozenset(
        {ClauseType.WHERE, ClauseType.SET, ClauseType.ORDER_BY, ClauseType.RETURN}
    )

    # Pairs of clauses that cannot both be present
    _EXCLUSIVE: ClassVar[tuple[tuple[ClauseType, ClauseType], ...]] = ((ClauseType.RETURN, ClauseType.FINISH),)

    def __init__(self) -> None:
        """Initialize the assembly state."""
        self._state = BuilderState.EMPTY
        self._clauses: set[ClauseType] = set()
        self._claimed: set[ClauseType] = set()

    @property
    def state(self) -> BuilderState:
        return self._state

    @property
    def clauses(self) -> frozenset[ClauseType]:
        return frozenset(self._clauses)

    def has_clause(self, clause_type: ClauseType) -> bool:
        return clause_type in self._clauses

    def add_clause(self, clause_type: ClauseType) -> None:
        """Record that a clause slot is filled.

        Args:
            clause_type: The type of clause being added
        """
        self._clauses.add(clause_type)
        if self._state is BuilderState.EMPTY:
            self._state = BuilderState.ACCUMULATING

    def claim_singleton(self, clause_type: ClauseType) -> None:
        """Record a call to the plain method of a singleton clause.

        Args:
            clause_type: The clause being set

        Raises:
            ClauseError: If the clause was already set through its plain method
        """
        if clause_type in self._SINGLETONS and clause_type in self._claimed:
            raise ClauseError(
                f"{clause_type.keyword} can only be set once; use the add_ variant to extend it",
                details={
                    "source": "QueryBuilder",
                    "operation": clause_type.name.lower(),
                    "field": "clause",
                    "actual_value": clause_type.keyword,
                },
            )
        self._claimed.add(clause_type)

    def validate_exclusive(self) -> None:
        """Check that no two mutually exclusive clauses are present.

        Raises:
            ClauseError: If, for example, both RETURN and FINISH are present
        """
        for first, second in self._EXCLUSIVE:
            if first in self._clauses and second in self._clauses:
                raise ClauseError(
                    f"{first.keyword} and {second.keyword} cannot be used together",
                    details={
                        "source": "QueryBuilder",
                        "operation": "to_parameterized_query",
                        "field": "clause",
                        "constraint": f"either {first.keyword} or {second.keyword}",
                    },
                )

    def finalize(self) -> None:
        """Move into the finalized state once the query has been assembled."""
        self._state = BuilderState.FINALIZED
