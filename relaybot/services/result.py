from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorCode:
    NOT_SUBSCRIBED = "not_subscribed"
    EMPTY_PROMPT = "empty_prompt"
    STORAGE_ERROR = "storage_error"
    COMPLETION_ERROR = "completion_error"
    IMAGE_SERVICE_ERROR = "image_service_error"
    UNKNOWN = "unknown"


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = ErrorCode.UNKNOWN) -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)

    def unwrap_or(self, default: T) -> T:
        return self.value if self.ok else default

    def failed_with(self, code: str) -> bool:
        return not self.ok and self.error_code == code
