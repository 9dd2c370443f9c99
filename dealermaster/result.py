"""Result pattern for consistent return types in DealerMaster.

State machine transitions return a Result instead of raising, so callers can
decide whether an illegal move is an error or just a disabled UI option.
"""
from dataclasses import dataclass
from typing import Optional, TypeVar, Generic

T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """Represents the outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The return value on success, None on failure.
        error: Error message on failure, None on success.
        error_type: Category of error (see ErrorType).

    Usage:
        result = PROPOSAL_MACHINE.transition("sent", "approved")
        if result.success:
            proposal.status = result.value
        else:
            print(f"Error: {result.error}")
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, value: T = None) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, error_type: str = None) -> 'Result[T]':
        """Create a failure result.

        Args:
            error: Error message describing what went wrong.
            error_type: Optional error category for programmatic handling.

        Returns:
            A Result with success=False and error details.
        """
        return cls(success=False, error=error, error_type=error_type)

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """Get the value, raising an exception if the operation failed.

        Raises:
            ValueError: If the operation failed.
        """
        if not self.success:
            raise ValueError(f"Result unwrap failed: {self.error}")
        return self.value


class ErrorType:
    """Standard error type constants."""
    NOT_FOUND = "NOT_FOUND"
    VALIDATION = "VALIDATION"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    UNKNOWN_STATE = "UNKNOWN_STATE"
    CONFLICT = "CONFLICT"
