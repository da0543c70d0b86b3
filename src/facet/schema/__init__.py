"""Schema validation and property error codes."""

from facet.schema.codes import ErrorCode, code_for, describe
from facet.schema.validator import (
    ValidationOutcome,
    Violation,
    check_schema,
    format_error_path,
    validate,
)

__all__ = [
    "ErrorCode",
    "ValidationOutcome",
    "Violation",
    "check_schema",
    "code_for",
    "describe",
    "format_error_path",
    "validate",
]
