from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    DELAYED = "delayed"


class BackoffType(str, Enum):
    FIXED = "fixed"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class Backoff:
    """Retry delay policy for a job."""

    type: BackoffType = BackoffType.EXPONENTIAL
    delay_ms: int = 1000

    def __post_init__(self) -> None:
        if self.delay_ms < 0:
            raise ValueError("backoff delay_ms must be >= 0")


@dataclass(frozen=True)
class JobOptions:
    """Per-job enqueue options. Unset fields fall back to queue defaults."""

    delay_ms: int = 0
    attempts: int | None = None
    backoff: Backoff | None = None
    priority: int | None = None

    def __post_init__(self) -> None:
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        if self.attempts is not None and self.attempts < 1:
            raise ValueError("attempts must be >= 1")


@dataclass(frozen=True)
class WorkerOptions:
    concurrency: int | None = None

    def __post_init__(self) -> None:
        if self.concurrency is not None and self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")


@dataclass(frozen=True)
class JobHandle:
    """What a producer gets back from enqueue."""

    id: str
    queue_name: str
    kind: str
    status: JobStatus


@dataclass(frozen=True)
class JobCounts:
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0


@dataclass(frozen=True)
class JobOutcome:
    """Result value returned by a job handler.

    The queue runtime inspects the outcome to decide between completing,
    retrying, or failing the job. A non-retryable failure skips any
    remaining attempts.
    """

    ok: bool
    result: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    retryable: bool = True

    @classmethod
    def success(cls, result: dict[str, Any] | None = None) -> "JobOutcome":
        return cls(ok=True, result=result or {})

    @classmethod
    def failure(cls, error: str, retryable: bool = True) -> "JobOutcome":
        return cls(ok=False, error=error, retryable=retryable)
