from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum

JobHandle = str


class JobKind(str, Enum):
    EXTRACT = "extract"
    RETRY_EXTRACT = "retry-extract"


class JobPriority(IntEnum):
    LOW = 1
    NORMAL = 5
    HIGH = 10
    CRITICAL = 15

    @classmethod
    def parse(cls, value: "str | int | JobPriority") -> "JobPriority":
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ValueError(
                    f"Invalid priority '{value}'. Choose from: {[p.name.lower() for p in cls]}"
                ) from None
        return cls(value)


class JobStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    STALLED = "stalled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Job:
    """A scheduled unit of extraction work as tracked by a queue."""

    id: JobHandle
    kind: JobKind
    document_id: str
    priority: JobPriority
    status: JobStatus = JobStatus.WAITING
    attempts: int = 0
    max_attempts: int = 3
    stalled_count: int = 0
    error_message: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    available_at: datetime = field(default_factory=utcnow)
    started_at: datetime | None = None
    heartbeat_at: datetime | None = None
    finished_at: datetime | None = None
    lock_token: str | None = None

    @property
    def attempts_left(self) -> bool:
        return self.attempts < self.max_attempts


@dataclass(frozen=True)
class QueueSnapshot:
    """Point-in-time job counts. `delayed` is the subset of `waiting` still in backoff."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    stalled: int = 0
    delayed: int = 0
    estimated_wait_seconds: float = 0.0
    generated_at: datetime = field(default_factory=utcnow)

    @property
    def total(self) -> int:
        return self.waiting + self.active + self.completed + self.failed + self.stalled

    def to_dict(self) -> dict[str, object]:
        return {
            "waiting": self.waiting,
            "active": self.active,
            "completed": self.completed,
            "failed": self.failed,
            "stalled": self.stalled,
            "delayed": self.delayed,
            "total": self.total,
            "estimated_wait_seconds": self.estimated_wait_seconds,
            "generated_at": self.generated_at.isoformat(),
        }
