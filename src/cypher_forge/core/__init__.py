from .base import ApplicationError, ErrorCode, ErrorDetails, ErrorLevel, ValidationErrorDetails
from .errors import (
    AliasError,
    ClauseError,
    ParameterError,
    QueryBuilderError,
    StructuralError,
)
