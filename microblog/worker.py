"""Background worker that drains the ``jobs`` table.

Run with ``python -m microblog.worker``. Retries happen here by re-queueing
the job; the handlers themselves never retry.
"""

import logging
import signal
import sqlite3
import threading
from datetime import datetime, timedelta, timezone

from microblog.config import AppConfig, configure_logging, load_config
from microblog.domain.enums import JobStatus, JobType
from microblog.features.posts.derive import DerivationCancelled, DerivationHandler
from microblog.features.posts.signals import PostCreatedSignal
from microblog.images.resizer import PillowResizer
from microblog.infra.db import DbConfig, connect, migrate
from microblog.infra.repo_jobs import Job, JobRepo
from microblog.infra.repo_posts import PostRepo
from microblog.infra.storage import LocalBlobStore

logger = logging.getLogger(__name__)


class Worker:
    def __init__(
        self,
        *,
        conn: sqlite3.Connection,
        derivation: DerivationHandler,
        max_attempts: int = 3,
        poll_interval: float = 1.0,
        lease_seconds: float = 300.0,
    ) -> None:
        self._jobs = JobRepo(conn)
        self._derivation = derivation
        self._max_attempts = max_attempts
        self._poll_interval = poll_interval
        self._lease = timedelta(seconds=lease_seconds)

    def run_once(self, cancel: threading.Event | None = None) -> bool:
        """Process at most one job. Returns False when the queue was empty."""
        stale_before = (datetime.now(timezone.utc) - self._lease).isoformat()
        job = self._jobs.fetch_next(stale_before=stale_before)
        if job is None:
            return False
        if not self._jobs.lock(job.id, stale_before=stale_before):
            return True
        if job.status == JobStatus.running:
            logger.warning("Reclaiming job %d, locked since %s by a worker that never finished", job.id, job.locked_at)

        try:
            self._dispatch(job, cancel)
        except DerivationCancelled:
            logger.info("Job %d cancelled; returning it to the queue", job.id)
            self._jobs.release(job.id)
            return True
        except Exception as e:
            retry = job.type == JobType.post_created.value and job.attempts + 1 < self._max_attempts
            logger.exception("Job %d (%s) failed on attempt %d", job.id, job.type, job.attempts + 1)
            self._jobs.mark_failed(job.id, f"{type(e).__name__}: {e}", retry=retry)
            return True
        except BaseException:
            logger.warning("Job %d interrupted; returning it to the queue", job.id)
            self._jobs.release(job.id)
            raise

        self._jobs.mark_succeeded(job.id)
        return True

    def _dispatch(self, job: Job, cancel: threading.Event | None) -> None:
        if job.type == JobType.post_created.value:
            self._derivation.handle(PostCreatedSignal.from_payload(job.payload), cancel=cancel)
            return
        raise ValueError(f"unknown_job_type:{job.type}")

    def run_forever(self, stop: threading.Event) -> None:
        logger.info("Worker started")
        while not stop.is_set():
            if not self.run_once(cancel=stop):
                stop.wait(self._poll_interval)
        logger.info("Worker stopped")


def build_worker(cfg: AppConfig) -> Worker:
    conn = connect(DbConfig(path=cfg.db_path))
    migrate(conn)
    derivation = DerivationHandler(
        posts=PostRepo(conn),
        blobs=LocalBlobStore(cfg.blobs_dir, cfg.public_base_url),
        resizer=PillowResizer(),
    )
    return Worker(
        conn=conn,
        derivation=derivation,
        max_attempts=cfg.job_max_attempts,
        poll_interval=cfg.worker_poll_interval,
        lease_seconds=cfg.job_lease_seconds,
    )


def stop_on_signals(stop: threading.Event) -> None:
    """SIGINT and SIGTERM cancel the running job at its next checkpoint and end ``run_forever``."""

    def _handle(signum: int, frame) -> None:
        logger.info("Received %s; stopping after the current job", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def main() -> None:
    cfg = load_config()
    configure_logging(cfg.log_level)
    stop = threading.Event()
    stop_on_signals(stop)
    build_worker(cfg).run_forever(stop)


if __name__ == "__main__":
    main()
