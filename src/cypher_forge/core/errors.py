"""Specific error types for the query compiler."""

from typing import Any

from .base import ApplicationError, ErrorCode, ErrorLevel, ValidationErrorDetails


class QueryBuilderError(ApplicationError):
    """Base class for every error raised while building a query."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(self, message: str, details: ValidationErrorDetails | dict[str, Any] | None = None):
        super().__init__(
            message=message,
            code=self.code,
            level=ErrorLevel.ERROR,
            details=details,
        )


class StructuralError(QueryBuilderError):
    """A path pattern was chained in a way that cannot produce a valid pattern."""

    code = ErrorCode.QUERY_STRUCTURE


class AliasError(QueryBuilderError):
    """An alias is duplicated, missing, or out of scope."""

    code = ErrorCode.QUERY_ALIAS


class ParameterError(QueryBuilderError):
    """A `$placeholder` has no matching parameter value."""

    code = ErrorCode.QUERY_PARAMETER


class ClauseError(QueryBuilderError):
    """A clause was used more often, or with other values, than the query allows."""

    code = ErrorCode.QUERY_CLAUSE
