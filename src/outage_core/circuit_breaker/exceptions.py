"""Circuit breaker exceptions.

Callers can distinguish between:
  - A breaker (or its recovery watcher) built with unusable parameters.

Runtime operations on a constructed breaker never raise.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class InvalidBreakerConfigError(CircuitBreakerError, ValueError):
    """Raised when breaker configuration values are rejected.

    Attributes:
        field: Name of the offending configuration field.
        value: Rejected value.
    """

    def __init__(self, field: str, value: object, requirement: str) -> None:
        """Initialize an invalid-configuration exception payload.

        Args:
            field: Configuration field that failed validation.
            value: The rejected value.
            requirement: Human readable constraint, e.g. ``"must be > 0"``.
        """
        self.field = field
        self.value = value
        super().__init__(f"{field} {requirement} (got {value!r})")
