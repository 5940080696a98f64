"""
Result - tagged success/failure outcome.

Callers at the discovery boundary branch on ``result.success`` instead of
catching exceptions:

    result = discovery.discover_schema(options)
    if result.success:
        snapshot = result.value
    else:
        report(result.error)
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a success carrying ``value`` or a failure carrying ``error``."""
    success: bool
    value: Optional[T] = None
    error: Optional[BaseException] = None

    def __post_init__(self):
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("A failed result must carry an error")

    def unwrap(self) -> T:
        """Return the value, or raise the stored error."""
        if not self.success:
            raise self.error
        return self.value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        if self.success:
            value = self.value.to_dict() if hasattr(self.value, "to_dict") else self.value
            return {"success": True, "value": value}
        error = self.error.to_dict() if hasattr(self.error, "to_dict") else {"message": str(self.error)}
        return {"success": False, "error": error}


def success(value: T) -> Result[T]:
    """Create a successful result."""
    return Result(success=True, value=value)


def failure(error: BaseException) -> Result[Any]:
    """Create a failed result."""
    return Result(success=False, error=error)


def is_success(result: Result) -> bool:
    return result.success


def is_failure(result: Result) -> bool:
    return not result.success


def error_to_result(error: Any) -> Result[Any]:
    """Convert anything raised into a failed result."""
    if isinstance(error, BaseException):
        return failure(error)
    return failure(Exception(str(error)))


def try_sync(fn: Callable[[], T]) -> Result[T]:
    """Run ``fn`` and capture its return value or exception as a Result."""
    try:
        return success(fn())
    except Exception as e:
        return error_to_result(e)
