"""Base error classes and enums"""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from logfire.integrations.pydantic import PluginSettings
from pydantic import BaseModel, Field, field_serializer


class ErrorLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_logging_level(self) -> int:
        """Numeric stdlib level with the same name."""
        return logging.getLevelNamesMapping()[self.name]


class ErrorCode(str, Enum):
    """Error codes for the query compiler.

    ``UNKNOWN`` belongs to the generic ``QueryBuilderError``; 7xxx codes are
    raised while a query is being built or assembled.
    """

    UNKNOWN = "1000"

    # Query building Errors (7xxx)
    QUERY_STRUCTURE = "7001"
    QUERY_ALIAS = "7002"
    QUERY_PARAMETER = "7003"
    QUERY_CLAUSE = "7004"


class ErrorDetails(BaseModel, plugin_settings=PluginSettings(logfire={"record": "all"})):
    """Where a builder error happened"""

    source: str = Field(description="Builder class or function that raised the error")
    operation: str = Field(description="Builder method being called")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC), description="When the error occurred")

    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class ValidationErrorDetails(ErrorDetails):
    """Details for a rejected builder argument or query part"""

    field: str | None = Field(None, description="Argument or query part that was rejected")
    actual_value: Any = Field(None, description="Value that was rejected")
    expected_type: str | None = Field(None, description="Accepted types of the argument")
    constraint: str | None = Field(None, description="Rule the value broke")


class ApplicationError(Exception):
    """Base class for all errors raised by the package.

    ``details`` may be given as a model or as a plain dict; a dict is read as
    ``ValidationErrorDetails`` with ``source`` and ``operation`` defaulting to
    ``"unknown"``.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        level: ErrorLevel = ErrorLevel.ERROR,
        details: ErrorDetails | dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.level = level

        if details is None:
            self.details = ErrorDetails(source="unknown", operation="unknown")
        elif isinstance(details, dict):
            fields = dict(details)
            fields.setdefault("source", "unknown")
            fields.setdefault("operation", "unknown")
            self.details = ValidationErrorDetails(**fields)
        else:
            self.details = details

        super().__init__(message)

    def log_fields(self) -> dict[str, Any]:
        """Flatten code, level and details into structured log fields.

        Detail fields are prefixed with ``details.`` and unset ones are left out.
        """
        fields: dict[str, Any] = {"error_code": self.code.value, "error_level": self.level.value}
        for key, value in self.details.model_dump(exclude_none=True).items():
            fields[f"details.{key}"] = value
        return fields
