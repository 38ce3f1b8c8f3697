# Batch verification — sweeps the license roster through the board scrapers
# and turns anything a human must look at into a manual review task.
from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Awaitable, Callable, Optional

from config import settings
from db import LicenseDB
from scrapers import (
    FailureKind,
    LicenseResult,
    LicenseStatus,
    LookupRequest,
    has_scraper_for_state,
    lookup_timeout,
    verify_license,
)
from verification.jobs import JobProgress, JobStatus, Outcome, VerificationJob, utcnow
from verification.outcomes import (
    describe_failure,
    is_clean,
    license_updates,
    map_license_status,
    map_verification_result,
)
from verification.priority import (
    calculate_due_date,
    calculate_priority,
    is_urgent,
    source_type_for,
)

logger = logging.getLogger(__name__)

ENROLLED_NOTE = "Awaiting Nursys e-Notify notification"
CANCELLED_NOTE = "cancelled"

Verifier = Callable[[LookupRequest], Awaitable[LicenseResult]]


class VerificationJobRunner:
    """Runs one verification sweep at a time.

    Each license is handled inside its own fault boundary: an exception
    while processing it is counted as an error and the sweep moves on.
    """

    def __init__(
        self,
        db: LicenseDB,
        verifier: Verifier = verify_license,
        *,
        batch_size: Optional[int] = None,
        max_concurrent: Optional[int] = None,
        flush_every: Optional[int] = None,
        auto_lookup: Optional[bool] = None,
        escalation_threshold: Optional[int] = None,
        timeout_grace: Optional[float] = None,
        due_days: Optional[int] = None,
    ):
        self._db = db
        self._verifier = verifier
        self.batch_size = batch_size or settings.VERIFICATION_BATCH_SIZE
        self.max_concurrent = max_concurrent or settings.MAX_CONCURRENT_LOOKUPS
        self.flush_every = flush_every or settings.PROGRESS_FLUSH_EVERY
        self.auto_lookup = settings.AUTO_LOOKUP_ENABLED if auto_lookup is None else auto_lookup
        self.escalation_threshold = escalation_threshold or settings.AUTOMATION_ESCALATION_THRESHOLD
        self.timeout_grace = (
            settings.LOOKUP_TIMEOUT_GRACE_SECONDS if timeout_grace is None else timeout_grace
        )
        self.due_days = due_days or settings.TASK_DUE_DAYS

        self._cancel = asyncio.Event()
        self._current: Optional[VerificationJob] = None

    @property
    def current_job(self) -> Optional[VerificationJob]:
        return self._current

    @property
    def is_running(self) -> bool:
        return self._current is not None and not self._current.is_terminal

    def cancel(self) -> bool:
        """Ask the running sweep to stop. Licenses already in flight finish."""
        if not self.is_running:
            return False
        logger.info(f"Job {self._current.id}: cancellation requested")
        self._cancel.set()
        return True

    # ------------------------------------------------------------------ #
    #  Job lifecycle                                                       #
    # ------------------------------------------------------------------ #

    async def run(self, dry_run: bool = False) -> VerificationJob:
        """Run a full sweep and return the finalized job.

        Only a failure to create the job record itself is raised. A cancelled
        task still finalizes the job before the cancellation propagates.
        """
        if self.is_running:
            raise RuntimeError(f"Job {self._current.id} is already running")

        job_id = await self._db.create_job(dry_run=dry_run)
        job = VerificationJob(id=job_id, dry_run=dry_run, started_at=utcnow())
        self._current = job
        self._cancel.clear()

        async def flush(snapshot: dict) -> None:
            await self._db.update_job(job_id, **snapshot)

        progress = JobProgress(job, flush, self.flush_every)
        mode = " (dry run)" if dry_run else ""

        try:
            job.total_licenses = await self._db.count_active_licenses()
            job.status = JobStatus.RUNNING
            await self._db.update_job(
                job_id, status=JobStatus.RUNNING.value, total_licenses=job.total_licenses
            )
            logger.info(f"Job {job_id}: verifying {job.total_licenses} license(s){mode}")
            await self._sweep(job, progress, dry_run)
        except asyncio.CancelledError:
            logger.warning(f"Job {job_id}: task cancelled")
            final = await progress.finalize(JobStatus.FAILED, CANCELLED_NOTE)
            await self._persist_final(final)
            raise
        except Exception as e:
            logger.exception(f"Job {job_id}: aborted")
            final = await progress.finalize(
                JobStatus.FAILED, f"Job aborted: {str(e) or type(e).__name__}"
            )
        else:
            if self._cancel.is_set():
                final = await progress.finalize(JobStatus.FAILED, CANCELLED_NOTE)
            else:
                final = await progress.finalize(JobStatus.COMPLETED)

        await self._persist_final(final)
        return final

    async def _persist_final(self, final: VerificationJob) -> None:
        try:
            await self._db.update_job(final.id, **final.to_row())
        except Exception:
            logger.exception(f"Job {final.id}: could not persist final state")

        logger.info(
            f"Job {final.id} {final.status.value}: {final.processed_licenses}/{final.total_licenses} "
            f"processed, {final.auto_verified} auto-verified, {final.tasks_created} task(s), "
            f"{final.skipped} skipped, {final.errors} error(s)"
        )

    async def _sweep(self, job: VerificationJob, progress: JobProgress, dry_run: bool) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrent)
        after_id: Optional[str] = None
        dispatched = 0

        while dispatched < job.total_licenses and not self._cancel.is_set():
            page = await self._db.get_license_page(after_id, self.batch_size)
            if not page:
                break
            # Licenses added after counting wait for the next sweep
            page = page[: job.total_licenses - dispatched]
            after_id = page[-1]["id"]
            dispatched += len(page)

            await asyncio.gather(
                *(self._guarded(lic, job.id, semaphore, progress, dry_run) for lic in page)
            )

    async def _guarded(
        self,
        lic: dict,
        job_id: str,
        semaphore: asyncio.Semaphore,
        progress: JobProgress,
        dry_run: bool,
    ) -> None:
        async with semaphore:
            if self._cancel.is_set():
                return
            try:
                outcome = await self.process_license(lic, job_id, dry_run)
            except Exception as e:
                logger.exception(f"Job {job_id}: license {lic.get('id')} failed")
                await progress.record_error(str(lic.get("id", "")), str(e) or type(e).__name__)
            else:
                await progress.record(outcome)

    # ------------------------------------------------------------------ #
    #  One license                                                         #
    # ------------------------------------------------------------------ #

    async def process_license(
        self, lic: dict, job_id: Optional[str] = None, dry_run: bool = False
    ) -> Outcome:
        license_id = lic["id"]
        state = (lic.get("state") or "").upper().strip()
        today = date.today()

        if lic.get("enrolled"):
            if not dry_run:
                await self._db.record_verification(
                    license_id, "automated", "pending", notes=ENROLLED_NOTE, job_id=job_id
                )
                await self._db.update_license(license_id, last_verified_at=utcnow())
            return Outcome.AUTO_VERIFIED

        source_type = source_type_for(lic.get("credential_type", ""))
        if await self._db.has_pending_task(license_id):
            return Outcome.SKIPPED

        source_id = await self._db.get_source_id(state, source_type)
        result: Optional[LicenseResult] = None

        if self.auto_lookup and has_scraper_for_state(state):
            result = await self._lookup(lic, state)
            if not dry_run:
                await self._db.record_verification(
                    license_id,
                    "automated",
                    map_verification_result(result),
                    status_found=result.status.value if result.success else None,
                    expiration_found=result.expiration_date,
                    unencumbered=result.unencumbered,
                    raw_response=result.to_dict(),
                    notes="" if result.success else describe_failure(result),
                    job_id=job_id,
                    source_id=source_id,
                )

            if is_clean(result, today):
                if not dry_run:
                    await self._db.update_license(license_id, **license_updates(result, state))
                    await self._db.reset_automation_failures(license_id)
                return Outcome.AUTO_VERIFIED

            if result.is_automation_failure:
                if dry_run:
                    streak = await self._db.get_automation_failures(license_id) + 1
                else:
                    streak = await self._db.record_automation_failure(
                        license_id, result.failure_kind.value
                    )
                if streak < self.escalation_threshold and not is_urgent(
                    lic.get("expiration_date"), today
                ):
                    logger.info(
                        f"{state}: {license_id} automation failure {streak}/"
                        f"{self.escalation_threshold}, retrying next sweep"
                    )
                    return Outcome.SKIPPED

        expiration = result.expiration_date if result and result.expiration_date else lic.get("expiration_date")
        status = (
            map_license_status(result.status)
            if result is not None and result.success
            else lic.get("status")
        )
        priority = calculate_priority(expiration, status, today)

        if dry_run:
            return Outcome.TASK_CREATED

        task_id = await self._db.create_task(
            license_id,
            source_id,
            priority,
            calculate_due_date(self.due_days, today),
            notes=task_notes(result, state, today),
            job_id=job_id,
        )
        # Another writer queued one since the pending check
        return Outcome.TASK_CREATED if task_id else Outcome.SKIPPED

    async def _lookup(self, lic: dict, state: str) -> LicenseResult:
        request = LookupRequest(
            license_number=lic.get("license_number") or "",
            state=state,
            credential_type=lic.get("credential_type") or "",
            last_name=lic.get("last_name"),
            first_name=lic.get("first_name"),
        )
        timeout = (lookup_timeout(state) or 0) + self.timeout_grace
        try:
            return await asyncio.wait_for(self._verifier(request), timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{state}: lookup for {request.license_number} timed out after {timeout:.0f}s")
            return LicenseResult.failure(
                FailureKind.SCRAPER_ERROR,
                f"Lookup timed out after {timeout:.0f}s",
                request.license_number,
            )


def task_notes(result: Optional[LicenseResult], state: str, today: Optional[date] = None) -> str:
    """Why a license landed in the manual review queue."""
    if result is None:
        return f"Automated lookup not available for {state or 'unknown state'}"
    if not result.success:
        return f"Automated lookup failed ({describe_failure(result)})"

    reasons = []
    if result.status is not LicenseStatus.ACTIVE:
        reasons.append(f"Board reports status {result.status.value}")
    if result.unencumbered is False:
        reasons.append("Discipline or restriction noted on board record")
    if result.expiration_date is None:
        reasons.append("Expiration date not found")
    elif result.expiration_date < (today or date.today()):
        reasons.append(f"Expiration {result.expiration_date.isoformat()} has passed")
    return "; ".join(reasons) or "Needs manual review"
