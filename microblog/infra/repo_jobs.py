import json
import sqlite3
from dataclasses import dataclass
from typing import Any

from microblog.domain.enums import JobStatus
from microblog.domain.models import utc_now_iso


@dataclass(frozen=True)
class Job:
    id: int
    type: str
    payload: dict[str, Any]
    status: JobStatus
    attempts: int
    scheduled_at: str
    locked_at: str | None
    last_error: str | None


def _row_to_job(row: sqlite3.Row) -> Job:
    return Job(
        id=int(row["id"]),
        type=str(row["type"]),
        payload=json.loads(row["payload_json"]),
        status=JobStatus(str(row["status"])),
        attempts=int(row["attempts"]),
        scheduled_at=str(row["scheduled_at"]),
        locked_at=row["locked_at"],
        last_error=row["last_error"],
    )


class JobRepo:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def enqueue(self, job_type: str, payload: dict[str, Any]) -> int:
        cur = self._conn.execute(
            """
            INSERT INTO jobs(type, payload_json, status, attempts, scheduled_at, locked_at, last_error)
            VALUES(?, ?, ?, 0, ?, NULL, NULL)
            """,
            (job_type, json.dumps(payload), JobStatus.queued.value, utc_now_iso()),
        )
        self._conn.commit()
        if cur.lastrowid is None:
            raise RuntimeError("Failed to enqueue job: missing lastrowid")
        return int(cur.lastrowid)

    def get(self, job_id: int) -> Job:
        row = self._conn.execute("SELECT * FROM jobs WHERE id = ?", (job_id,)).fetchone()
        if row is None:
            raise KeyError(f"Job not found: {job_id}")
        return _row_to_job(row)

    def fetch_next(self, stale_before: str | None = None) -> Job | None:
        """Oldest claimable job.

        A ``running`` job whose ``locked_at`` is older than ``stale_before`` was
        abandoned by a worker that died mid-run and may be claimed again.
        """
        row = self._conn.execute(
            """
            SELECT * FROM jobs
            WHERE (status = ? AND locked_at IS NULL)
               OR (status = ? AND locked_at < ?)
            ORDER BY scheduled_at ASC, id ASC
            LIMIT 1
            """,
            (JobStatus.queued.value, JobStatus.running.value, stale_before),
        ).fetchone()
        if row is None:
            return None
        return _row_to_job(row)

    def lock(self, job_id: int, stale_before: str | None = None) -> bool:
        """Claim a queued or abandoned job. Returns False when another worker got there first."""
        cur = self._conn.execute(
            """
            UPDATE jobs SET status = ?, locked_at = ?
            WHERE id = ?
              AND ((status = ? AND locked_at IS NULL) OR (status = ? AND locked_at < ?))
            """,
            (
                JobStatus.running.value,
                utc_now_iso(),
                job_id,
                JobStatus.queued.value,
                JobStatus.running.value,
                stale_before,
            ),
        )
        self._conn.commit()
        return cur.rowcount == 1

    def mark_succeeded(self, job_id: int) -> None:
        self._conn.execute(
            "UPDATE jobs SET status = ?, last_error = NULL WHERE id = ?",
            (JobStatus.succeeded.value, job_id),
        )
        self._conn.commit()

    def release(self, job_id: int) -> None:
        self._conn.execute(
            "UPDATE jobs SET status = ?, locked_at = NULL WHERE id = ?",
            (JobStatus.queued.value, job_id),
        )
        self._conn.commit()

    def mark_failed(self, job_id: int, error: str, retry: bool = False) -> None:
        status = JobStatus.queued if retry else JobStatus.failed
        self._conn.execute(
            """
            UPDATE jobs
            SET status = ?, attempts = attempts + 1, last_error = ?, locked_at = NULL
            WHERE id = ?
            """,
            (status.value, error, job_id),
        )
        self._conn.commit()

    def list_by_status(self, status: JobStatus) -> list[Job]:
        rows = self._conn.execute(
            "SELECT * FROM jobs WHERE status = ? ORDER BY id ASC", (status.value,)
        ).fetchall()
        return [_row_to_job(r) for r in rows]
