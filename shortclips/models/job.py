"""Job record for tracking one pipeline invocation."""
import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


class JobStatus(str, enum.Enum):
    """Job status enumeration."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JobSnapshot:
    """Read-only copy of a job record, safe to hand to status readers."""
    id: str
    status: JobStatus
    created_at: datetime
    updated_at: Optional[datetime]
    error: Optional[str]

    def to_dict(self):
        """Convert to dictionary."""
        return {
            "id": self.id,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "error": self.error,
        }


class VideoProcessingJob:
    """
    Lifecycle of a single pipeline run.

    Valid transitions: pending -> processing -> completed | failed, and
    pending -> failed for runs that fail before processing starts. Every
    transition method is a silent no-op when called from any other state,
    so the pipeline can call them from each exit point without checking
    the current status first.
    """

    def __init__(self, job_id: Optional[str] = None):
        self.id = job_id or uuid.uuid4().hex
        self.status = JobStatus.PENDING
        self.created_at = _utcnow()
        self.updated_at: Optional[datetime] = None
        self.error: Optional[str] = None

    def __repr__(self):
        return f"<VideoProcessingJob(id={self.id}, status={self.status.value})>"

    @property
    def is_finished(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def mark_processing(self) -> bool:
        """Pending -> processing."""
        if self.status != JobStatus.PENDING:
            return False
        self._transition(JobStatus.PROCESSING, None)
        return True

    def mark_completed(self) -> bool:
        """Processing -> completed."""
        if self.status != JobStatus.PROCESSING:
            return False
        self._transition(JobStatus.COMPLETED, None)
        return True

    def mark_failed(self, message: Optional[str] = None) -> bool:
        """Pending or processing -> failed."""
        if self.status not in (JobStatus.PENDING, JobStatus.PROCESSING):
            return False
        self._transition(JobStatus.FAILED, message)
        return True

    def snapshot(self) -> JobSnapshot:
        return JobSnapshot(
            id=self.id,
            status=self.status,
            created_at=self.created_at,
            updated_at=self.updated_at,
            error=self.error,
        )

    def _transition(self, status: JobStatus, error: Optional[str]) -> None:
        self.status = status
        self.updated_at = _utcnow()
        self.error = error
