from dataclasses import dataclass
from typing import Generic, TypeVar

from mp3gain_wrapper.mp3gain_error import Mp3GainError

T = TypeVar("T")


@dataclass(frozen=True)
class InvocationResult(Generic[T]):
    """
    Outcome of one mp3gain call: either a value or the error that prevented it.
    A failed result never carries a value.
    """

    value: T | None = None
    failure: Mp3GainError | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def unwrap(self) -> T:
        if self.failure is not None:
            raise self.failure
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, value: T) -> "InvocationResult[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, failure: Mp3GainError) -> "InvocationResult[T]":
        return cls(failure=failure)
