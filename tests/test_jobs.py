"""Job record and progress accumulator."""
from __future__ import annotations

import asyncio

import pytest

from verification.jobs import JobProgress, JobStatus, Outcome, VerificationJob


class TestJobProgress:
    async def test_counts_by_outcome(self) -> None:
        job = VerificationJob(id="j1", total_licenses=4)
        progress = JobProgress(job, flush=_noop, flush_every=100)

        await progress.record(Outcome.AUTO_VERIFIED)
        await progress.record(Outcome.TASK_CREATED)
        await progress.record(Outcome.SKIPPED)
        await progress.record_error("L9", "boom")

        assert job.counters() == {
            "processed_licenses": 4,
            "auto_verified": 1,
            "tasks_created": 1,
            "skipped": 1,
            "errors": 1,
        }
        assert job.error_details[0].license_id == "L9"
        assert job.error_details[0].timestamp

    async def test_flushes_every_n_and_never_goes_backwards(self) -> None:
        snapshots: list[dict] = []

        async def flush(counters: dict) -> None:
            await asyncio.sleep(0)
            snapshots.append(counters)

        job = VerificationJob(id="j1", total_licenses=20)
        progress = JobProgress(job, flush=flush, flush_every=5)
        await asyncio.gather(*(progress.record(Outcome.SKIPPED) for _ in range(20)))

        processed = [s["processed_licenses"] for s in snapshots]
        assert processed == [5, 10, 15, 20]

    async def test_failed_flush_is_not_fatal(self) -> None:
        async def broken(counters: dict) -> None:
            raise OSError("database is locked")

        job = VerificationJob(id="j1")
        progress = JobProgress(job, flush=broken, flush_every=1)
        await progress.record(Outcome.SKIPPED)
        assert job.processed_licenses == 1

    async def test_flush_carries_error_details(self) -> None:
        snapshots: list[dict] = []

        async def flush(snapshot: dict) -> None:
            snapshots.append(snapshot)

        job = VerificationJob(id="j1", total_licenses=2)
        progress = JobProgress(job, flush=flush, flush_every=1)
        await progress.record(Outcome.SKIPPED)
        await progress.record_error("L9", "boom")

        assert snapshots[0]["error_details"] is None
        assert snapshots[1]["errors"] == 1
        assert snapshots[1]["error_details"][0]["license_id"] == "L9"
        assert snapshots[1]["error_details"][0]["message"] == "boom"

    async def test_finalize_once(self) -> None:
        job = VerificationJob(id="j1", status=JobStatus.RUNNING)
        progress = JobProgress(job, flush=_noop)

        final = await progress.finalize(JobStatus.FAILED, "cancelled")
        assert final.status is JobStatus.FAILED
        assert final.completed_at
        assert final.error_details[-1].license_id == ""

        with pytest.raises(RuntimeError):
            await progress.finalize(JobStatus.COMPLETED)


def test_row_round_trip() -> None:
    job = VerificationJob(id="j1", status=JobStatus.COMPLETED, total_licenses=2,
                          processed_licenses=2, auto_verified=2, dry_run=True)
    row = job.to_row()
    row.update(id="j1", dry_run=1)
    assert VerificationJob.from_row(row) == job


async def _noop(counters: dict) -> None:
    return None
