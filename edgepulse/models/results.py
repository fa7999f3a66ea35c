"""Outcome of a single pipeline stage."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from edgepulse.errors import AnalyticsError

T = TypeVar("T")


class StageStatus(str, Enum):
    """How a pipeline stage finished."""

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILURE = "failure"


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """
    Discriminated result of a pipeline stage.

    A PARTIAL result carries both a usable value and the error that
    degraded it. A FAILURE carries only the error.
    """

    status: StageStatus
    value: T | None = None
    error: AnalyticsError | None = None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(status=StageStatus.SUCCESS, value=value)

    @classmethod
    def partial(cls, value: T, error: AnalyticsError) -> "StageResult[T]":
        return cls(status=StageStatus.PARTIAL, value=value, error=error)

    @classmethod
    def failure(cls, error: AnalyticsError) -> "StageResult[T]":
        return cls(status=StageStatus.FAILURE, error=error)

    @property
    def ok(self) -> bool:
        return self.status != StageStatus.FAILURE
