"""Library-level exception types.

Construction-time validation failures are raised as ConfigurationError.
A denied admission is a normal outcome and never an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and callers.

    Fields are optional so each raise site only fills what it knows.
    """

    code: str
    message: str
    hint: str
    field: str
    min_value: int
    actual_value: Any
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for keyrate failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ConfigurationError(AppError, ValueError):
    """Raised when a limiter is constructed with invalid parameters."""


def require_positive(
    value: Any,
    *,
    field: str,
    code: str,
    integral: bool = False,
) -> None:
    """Validate that a numeric configuration value is strictly positive.

    Args:
        value: Value to validate.
        field: Parameter name used in the error message.
        code: Error code to raise with.
        integral: Whether the value must be an integer.

    Raises:
        ConfigurationError: If the value is not a positive number.
    """

    # bool is an int subclass but never a meaningful limit
    valid_types: tuple[type, ...] = (int,) if integral else (int, float)
    if isinstance(value, bool) or not isinstance(value, valid_types):
        kind = "an integer" if integral else "a number"
        raise ConfigurationError(
            code=code,
            message=f"{field} must be {kind} > 0",
            details={"field": field, "actual_value": value},
        )
    if not value > 0:
        raise ConfigurationError(
            code=code,
            message=f"{field} must be > 0",
            details={"field": field, "actual_value": value},
        )
