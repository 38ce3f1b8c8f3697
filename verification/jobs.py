# Verification job record and its concurrent progress accumulator
from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class Outcome(str, Enum):
    """What the sweep did with one license."""

    AUTO_VERIFIED = "auto_verified"
    TASK_CREATED = "task_created"
    SKIPPED = "skipped"


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ErrorDetail:
    license_id: str
    message: str
    timestamp: str = field(default_factory=utcnow)


@dataclass
class VerificationJob:
    id: str
    status: JobStatus = JobStatus.PENDING
    total_licenses: int = 0
    processed_licenses: int = 0
    auto_verified: int = 0
    tasks_created: int = 0
    skipped: int = 0
    errors: int = 0
    error_details: list[ErrorDetail] = field(default_factory=list)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    dry_run: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    def counters(self) -> dict:
        return {
            "processed_licenses": self.processed_licenses,
            "auto_verified": self.auto_verified,
            "tasks_created": self.tasks_created,
            "skipped": self.skipped,
            "errors": self.errors,
        }

    @classmethod
    def from_row(cls, row: dict) -> "VerificationJob":
        """Rebuild a job from its verification_jobs row."""
        return cls(
            id=row["id"],
            status=JobStatus(row["status"]),
            total_licenses=row.get("total_licenses") or 0,
            processed_licenses=row.get("processed_licenses") or 0,
            auto_verified=row.get("auto_verified") or 0,
            tasks_created=row.get("tasks_created") or 0,
            skipped=row.get("skipped") or 0,
            errors=row.get("errors") or 0,
            error_details=[
                ErrorDetail(
                    license_id=e.get("license_id", ""),
                    message=e.get("message", ""),
                    timestamp=e.get("timestamp", ""),
                )
                for e in row.get("error_details") or []
            ],
            started_at=row.get("started_at"),
            completed_at=row.get("completed_at"),
            dry_run=bool(row.get("dry_run")),
        )

    def snapshot(self) -> dict:
        """Progress columns, written periodically while the job runs."""
        row = self.counters()
        row["error_details"] = [asdict(e) for e in self.error_details] or None
        return row

    def to_row(self) -> dict:
        """Column values for the verification_jobs table."""
        row = self.snapshot()
        row.update(
            status=self.status.value,
            total_licenses=self.total_licenses,
            started_at=self.started_at,
            completed_at=self.completed_at,
        )
        return row


FlushFn = Callable[[dict], Awaitable[None]]  # receives VerificationJob.snapshot()


class JobProgress:
    """The only state shared between sweep workers.

    Every mutation happens under one lock. Periodic flushes run under the
    same lock, so persisted snapshots never go backwards.
    """

    def __init__(self, job: VerificationJob, flush: FlushFn, flush_every: int = 50):
        self._job = job
        self._flush = flush
        self._flush_every = max(1, flush_every)
        self._lock = asyncio.Lock()

    @property
    def job(self) -> VerificationJob:
        return self._job

    async def record(self, outcome: Outcome) -> None:
        async with self._lock:
            self._job.processed_licenses += 1
            if outcome is Outcome.AUTO_VERIFIED:
                self._job.auto_verified += 1
            elif outcome is Outcome.TASK_CREATED:
                self._job.tasks_created += 1
            else:
                self._job.skipped += 1
            await self._maybe_flush()

    async def record_error(self, license_id: str, message: str) -> None:
        async with self._lock:
            self._job.processed_licenses += 1
            self._job.errors += 1
            self._job.error_details.append(ErrorDetail(license_id, message))
            await self._maybe_flush()

    async def _maybe_flush(self) -> None:
        if self._job.processed_licenses % self._flush_every:
            return
        try:
            await self._flush(self._job.snapshot())
        except Exception as e:
            # A missed progress write is recovered by the next one or by finalize
            logger.warning(f"Job {self._job.id}: progress flush failed: {e}")

    async def finalize(self, status: JobStatus, abort_reason: Optional[str] = None) -> VerificationJob:
        """Move to a terminal state exactly once."""
        async with self._lock:
            if self._job.is_terminal:
                raise RuntimeError(f"Job {self._job.id} already {self._job.status.value}")
            if abort_reason:
                self._job.error_details.append(ErrorDetail("", abort_reason))
            self._job.status = status
            self._job.completed_at = utcnow()
            return self._job
