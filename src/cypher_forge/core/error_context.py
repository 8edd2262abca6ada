"""Structured context for failed builder calls"""

from datetime import UTC, datetime
from types import TracebackType
from typing import Any
from uuid import uuid4

from .base import ApplicationError
from .logging import get_logger

logger = get_logger(__name__)


class ErrorContext:
    """One failure: the error, a trace id, and whatever the call site adds"""

    def __init__(self, error: Exception, trace_id: str | None = None, **context: Any):
        self.error = error
        self.trace_id = trace_id or str(uuid4())
        self.timestamp = datetime.now(UTC)
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Log fields for the failure.

        Package errors contribute their code, level and ``details.*`` fields;
        call-site context is prefixed with ``context.``.
        """
        result: dict[str, Any] = {
            "error_type": type(self.error).__name__,
            "error_message": str(self.error),
            "trace_id": self.trace_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if isinstance(self.error, ApplicationError):
            result.update(self.error.log_fields())

        result.update({f"context.{key}": value for key, value in self.context.items()})
        return result


class ErrorContextManager:
    """Scope in which one caught error is described and logged.

    Example:
        ```python
        except Exception as e:
            with ErrorContextManager(e, function="compile") as ctx:
                logger.error("Compilation failed", **ctx.to_dict())
            raise
        ```
    """

    def __init__(self, error: Exception | None = None, **context: Any) -> None:
        self._error = error
        self._context = context

    def __enter__(self) -> ErrorContext:
        if self._error is None:
            raise ValueError("No error provided for context")
        return ErrorContext(self._error, **self._context)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        # Only a new exception is logged here; the caller re-raises the original one
        if exc_type is not None and exc_val is not None and exc_val is not self._error:
            logger.error(
                "Exception during error context handling",
                error=exc_val,
                exc_info=(exc_type, exc_val, exc_tb),
            )
