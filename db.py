# License Verification Bot — Database layer
# Connects to the SAME database as the compliance dashboard (shared schema).
# The dashboard owns licenses/people/tasks; this bot only creates them when
# running standalone, and owns the automation_failures table.
import json
import logging
import sqlite3
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

import aiosqlite

from config import settings

logger = logging.getLogger(__name__)

# Tables the dashboard normally creates; ensured so the bot can run alone
SHARED_SCHEMA = """
CREATE TABLE IF NOT EXISTS people (
    id              TEXT PRIMARY KEY,
    first_name      TEXT NOT NULL,
    last_name       TEXT NOT NULL,
    email           TEXT
);

CREATE TABLE IF NOT EXISTS licenses (
    id                  TEXT PRIMARY KEY,
    person_id           TEXT REFERENCES people(id),
    state               TEXT NOT NULL,
    license_number      TEXT NOT NULL,
    credential_type     TEXT NOT NULL,
    status              TEXT NOT NULL DEFAULT 'unknown',
    expiration_date     TEXT,
    archived            INTEGER NOT NULL DEFAULT 0,
    last_verified_at    TEXT,
    licensee_name       TEXT,
    synced_data         TEXT,
    synced_at           TEXT
);

CREATE TABLE IF NOT EXISTS nursys_enrollments (
    id              TEXT PRIMARY KEY,
    license_id      TEXT NOT NULL REFERENCES licenses(id),
    active          INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS verification_sources (
    id              TEXT PRIMARY KEY,
    state           TEXT,
    source_type     TEXT NOT NULL,
    display_name    TEXT NOT NULL,
    lookup_url      TEXT,
    active          INTEGER NOT NULL DEFAULT 1
);

CREATE TABLE IF NOT EXISTS verifications (
    id                  TEXT PRIMARY KEY,
    license_id          TEXT NOT NULL REFERENCES licenses(id),
    run_type            TEXT NOT NULL,
    source_id           TEXT,
    result              TEXT NOT NULL,
    status_found        TEXT,
    expiration_found    TEXT,
    unencumbered        INTEGER,
    raw_response        TEXT,
    notes               TEXT,
    job_id              TEXT,
    created_at          TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS verification_tasks (
    id              TEXT PRIMARY KEY,
    license_id      TEXT NOT NULL REFERENCES licenses(id),
    source_id       TEXT,
    status          TEXT NOT NULL DEFAULT 'pending',
    priority        INTEGER NOT NULL DEFAULT 0,
    due_date        TEXT,
    notes           TEXT,
    job_id          TEXT,
    created_at      TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS verification_jobs (
    id                  TEXT PRIMARY KEY,
    status              TEXT NOT NULL DEFAULT 'pending',
    total_licenses      INTEGER NOT NULL DEFAULT 0,
    processed_licenses  INTEGER NOT NULL DEFAULT 0,
    auto_verified       INTEGER NOT NULL DEFAULT 0,
    tasks_created       INTEGER NOT NULL DEFAULT 0,
    errors              INTEGER NOT NULL DEFAULT 0,
    error_details       TEXT,
    started_at          TEXT,
    completed_at        TEXT,
    created_at          TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_licenses_archived ON licenses(archived, id);
CREATE INDEX IF NOT EXISTS idx_tasks_license ON verification_tasks(license_id);
"""

# Owned by this bot
LICENSE_BOT_SCHEMA = """
CREATE TABLE IF NOT EXISTS automation_failures (
    license_id      TEXT PRIMARY KEY,
    consecutive     INTEGER NOT NULL DEFAULT 0,
    last_kind       TEXT,
    last_failed_at  TEXT
);
"""

# At most one pending manual task per license. Fails on a shared table that
# already holds duplicates; has_pending_task still guards inserts then.
PENDING_TASK_INDEX = """
CREATE UNIQUE INDEX IF NOT EXISTS idx_tasks_one_pending
    ON verification_tasks(license_id) WHERE status = 'pending'
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


class LicenseDB:
    """Database operations for the license verification bot."""

    def __init__(self, path: Optional[str] = None):
        self._db_path = path or settings.DATABASE_URL.replace("sqlite:///", "")

    def _path(self) -> str:
        return self._db_path

    async def init(self) -> None:
        """Create missing tables + run migrations on shared tables."""
        async with aiosqlite.connect(self._path()) as db:
            await db.executescript(SHARED_SCHEMA)

            # Columns this bot needs that older dashboard schemas lack
            migrations = [
                "ALTER TABLE verification_jobs ADD COLUMN skipped INTEGER NOT NULL DEFAULT 0",
                "ALTER TABLE verification_jobs ADD COLUMN dry_run INTEGER NOT NULL DEFAULT 0",
                "ALTER TABLE licenses ADD COLUMN licensee_name TEXT",
            ]
            for sql in migrations:
                try:
                    await db.execute(sql)
                except sqlite3.OperationalError:
                    pass  # Column already exists

            await db.executescript(LICENSE_BOT_SCHEMA)
            try:
                await db.execute(PENDING_TASK_INDEX)
            except sqlite3.IntegrityError:
                logger.warning(
                    "verification_tasks already has duplicate pending tasks; "
                    "skipping unique index idx_tasks_one_pending"
                )
            await db.commit()
        logger.info(f"License DB initialized (shared: {self._db_path})")

    # ------------------------------------------------------------------ #
    #  Roster (read-only)                                                  #
    # ------------------------------------------------------------------ #

    _LICENSE_SELECT = """
        SELECT l.*, p.first_name, p.last_name,
               EXISTS (
                   SELECT 1 FROM nursys_enrollments e
                   WHERE e.license_id = l.id AND e.active = 1
               ) AS enrolled
        FROM licenses l
        LEFT JOIN people p ON p.id = l.person_id
    """

    async def count_active_licenses(self) -> int:
        async with aiosqlite.connect(self._path()) as db:
            async with db.execute(
                "SELECT COUNT(*) FROM licenses WHERE archived = 0"
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def get_license_page(
        self, after_id: Optional[str], limit: int
    ) -> list[dict]:
        """Next page of non-archived licenses, keyed on id (keyset pagination)."""
        async with aiosqlite.connect(self._path()) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                self._LICENSE_SELECT
                + " WHERE l.archived = 0 AND l.id > ? ORDER BY l.id LIMIT ?",
                (after_id or "", limit),
            ) as cursor:
                return [dict(r) for r in await cursor.fetchall()]

    async def get_license(self, license_id: str) -> dict | None:
        async with aiosqlite.connect(self._path()) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                self._LICENSE_SELECT + " WHERE l.id = ?", (license_id,)
            ) as cursor:
                row = await cursor.fetchone()
                return dict(row) if row else None

    # ------------------------------------------------------------------ #
    #  Source catalog                                                      #
    # ------------------------------------------------------------------ #

    async def get_source_id(self, state: str, source_type: str) -> str | None:
        async with aiosqlite.connect(self._path()) as db:
            async with db.execute(
                """SELECT id FROM verification_sources
                   WHERE state = ? AND source_type = ? AND active = 1
                   LIMIT 1""",
                (state, source_type),
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else None

    # ------------------------------------------------------------------ #
    #  Verification / task sink                                            #
    # ------------------------------------------------------------------ #

    async def has_pending_task(self, license_id: str) -> bool:
        async with aiosqlite.connect(self._path()) as db:
            async with db.execute(
                """SELECT 1 FROM verification_tasks
                   WHERE license_id = ? AND status = 'pending' LIMIT 1""",
                (license_id,),
            ) as cursor:
                return await cursor.fetchone() is not None

    async def create_task(
        self,
        license_id: str,
        source_id: Optional[str],
        priority: int,
        due_date: date,
        notes: str = "",
        job_id: Optional[str] = None,
    ) -> Optional[str]:
        """Queue a manual review task. Returns None if one is already pending."""
        task_id = _new_id()
        async with aiosqlite.connect(self._path()) as db:
            try:
                await db.execute(
                    """INSERT INTO verification_tasks
                       (id, license_id, source_id, status, priority, due_date, notes, job_id)
                       VALUES (?, ?, ?, 'pending', ?, ?, ?, ?)""",
                    (task_id, license_id, source_id, priority,
                     due_date.isoformat(), notes, job_id),
                )
            except sqlite3.IntegrityError:
                logger.info(f"Task already pending for license {license_id}")
                return None
            await db.commit()
        return task_id

    async def record_verification(
        self,
        license_id: str,
        run_type: str,
        result: str,
        status_found: Optional[str] = None,
        expiration_found: Optional[date] = None,
        unencumbered: Optional[bool] = None,
        raw_response: Optional[dict] = None,
        notes: str = "",
        job_id: Optional[str] = None,
        source_id: Optional[str] = None,
    ) -> str:
        """Append a verification record (history is never rewritten)."""
        verification_id = _new_id()
        async with aiosqlite.connect(self._path()) as db:
            await db.execute(
                """INSERT INTO verifications
                   (id, license_id, run_type, source_id, result, status_found,
                    expiration_found, unencumbered, raw_response, notes, job_id, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    verification_id, license_id, run_type, source_id, result, status_found,
                    expiration_found.isoformat() if expiration_found else None,
                    None if unencumbered is None else int(unencumbered),
                    json.dumps(raw_response) if raw_response is not None else None,
                    notes, job_id, _now(),
                ),
            )
            await db.commit()
        return verification_id

    async def update_license(self, license_id: str, **kwargs: Any) -> None:
        """Update license fields in the shared table."""
        if not kwargs:
            return
        set_parts = [f"{k} = ?" for k in kwargs]
        vals = list(kwargs.values()) + [license_id]
        async with aiosqlite.connect(self._path()) as db:
            await db.execute(
                f"UPDATE licenses SET {', '.join(set_parts)} WHERE id = ?",
                vals,
            )
            await db.commit()

    async def get_verifications(self, license_id: str, limit: int = 10) -> list[dict]:
        """Recent verification history for a license."""
        async with aiosqlite.connect(self._path()) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                """SELECT * FROM verifications WHERE license_id = ?
                   ORDER BY created_at DESC LIMIT ?""",
                (license_id, limit),
            ) as cursor:
                return [dict(r) for r in await cursor.fetchall()]

    # ------------------------------------------------------------------ #
    #  Automation failure streaks (owned by this bot)                      #
    # ------------------------------------------------------------------ #

    async def record_automation_failure(self, license_id: str, kind: str) -> int:
        """Bump the license's consecutive automation failure count and return it."""
        async with aiosqlite.connect(self._path()) as db:
            await db.execute(
                """INSERT INTO automation_failures (license_id, consecutive, last_kind, last_failed_at)
                   VALUES (?, 1, ?, ?)
                   ON CONFLICT(license_id) DO UPDATE SET
                       consecutive = consecutive + 1,
                       last_kind = excluded.last_kind,
                       last_failed_at = excluded.last_failed_at""",
                (license_id, kind, _now()),
            )
            async with db.execute(
                "SELECT consecutive FROM automation_failures WHERE license_id = ?",
                (license_id,),
            ) as cursor:
                row = await cursor.fetchone()
            await db.commit()
            return row[0] if row else 1

    async def get_automation_failures(self, license_id: str) -> int:
        async with aiosqlite.connect(self._path()) as db:
            async with db.execute(
                "SELECT consecutive FROM automation_failures WHERE license_id = ?",
                (license_id,),
            ) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def reset_automation_failures(self, license_id: str) -> None:
        async with aiosqlite.connect(self._path()) as db:
            await db.execute(
                "DELETE FROM automation_failures WHERE license_id = ?", (license_id,)
            )
            await db.commit()

    # ------------------------------------------------------------------ #
    #  Job records                                                         #
    # ------------------------------------------------------------------ #

    async def create_job(self, dry_run: bool = False) -> str:
        job_id = _new_id()
        async with aiosqlite.connect(self._path()) as db:
            await db.execute(
                """INSERT INTO verification_jobs (id, status, started_at, dry_run)
                   VALUES (?, 'pending', ?, ?)""",
                (job_id, _now(), int(dry_run)),
            )
            await db.commit()
        return job_id

    async def update_job(self, job_id: str, **kwargs: Any) -> None:
        if not kwargs:
            return
        if "error_details" in kwargs and not isinstance(kwargs["error_details"], (str, type(None))):
            kwargs["error_details"] = json.dumps(kwargs["error_details"])
        set_parts = [f"{k} = ?" for k in kwargs]
        vals = list(kwargs.values()) + [job_id]
        async with aiosqlite.connect(self._path()) as db:
            await db.execute(
                f"UPDATE verification_jobs SET {', '.join(set_parts)} WHERE id = ?",
                vals,
            )
            await db.commit()

    async def get_job(self, job_id: str) -> dict | None:
        async with aiosqlite.connect(self._path()) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM verification_jobs WHERE id = ?", (job_id,)
            ) as cursor:
                row = await cursor.fetchone()
        return self._job_row(row)

    async def get_latest_job(self) -> dict | None:
        async with aiosqlite.connect(self._path()) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM verification_jobs ORDER BY started_at DESC LIMIT 1"
            ) as cursor:
                row = await cursor.fetchone()
        return self._job_row(row)

    @staticmethod
    def _job_row(row) -> dict | None:
        if row is None:
            return None
        job = dict(row)
        job["error_details"] = json.loads(job["error_details"]) if job.get("error_details") else []
        return job
