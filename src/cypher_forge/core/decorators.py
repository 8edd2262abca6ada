"""Error handling decorators"""

import inspect
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from .base import ApplicationError, ErrorLevel
from .error_context import ErrorContextManager
from .logging import get_logger

logger = get_logger(__name__)
P = ParamSpec("P")
T = TypeVar("T")


def error_context(
    error_level: ErrorLevel = ErrorLevel.ERROR,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator that logs a failing call with its error context and re-raises.

    ApplicationError subclasses are logged at their own level; any other
    exception is logged at ``error_level``.

    Args:
        error_level: Severity used for exceptions that carry no level of their own

    Returns:
        Decorated function with error logging
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        # Capture the original signature to preserve it
        original_signature = inspect.signature(func)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                level = e.level if isinstance(e, ApplicationError) else error_level
                with ErrorContextManager(e, function=func.__qualname__) as ctx:
                    logger.log(
                        level.to_logging_level(),
                        f"Error in {func.__qualname__}: {e!s}",
                        **ctx.to_dict(),
                    )
                raise

        # Explicitly set the signature on the wrapper to match the original function
        sync_wrapper.__signature__ = original_signature  # type: ignore
        return sync_wrapper

    return decorator
