import logging
import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "MICROBLOG_"


@dataclass(frozen=True)
class AppConfig:
    data_dir: Path
    public_base_url: str = "http://localhost:8000"
    job_max_attempts: int = 3
    worker_poll_interval: float = 1.0
    job_lease_seconds: float = 300.0
    log_level: str = "INFO"

    @property
    def db_path(self) -> Path:
        return self.data_dir / "app.sqlite3"

    @property
    def blobs_dir(self) -> Path:
        return self.data_dir / "blobs"


def _env(name: str) -> str | None:
    value = os.environ.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def load_config() -> AppConfig:
    """Defaults suited to local runs, overridden by MICROBLOG_* variables."""

    defaults = AppConfig(data_dir=Path("data"))
    data_dir = _env("DATA_DIR")
    base_url = _env("PUBLIC_BASE_URL")
    attempts = _env("JOB_MAX_ATTEMPTS")
    poll = _env("WORKER_POLL_INTERVAL")
    lease = _env("JOB_LEASE_SECONDS")
    level = _env("LOG_LEVEL")
    try:
        return AppConfig(
            data_dir=Path(data_dir) if data_dir else defaults.data_dir,
            public_base_url=base_url or defaults.public_base_url,
            job_max_attempts=int(attempts) if attempts else defaults.job_max_attempts,
            worker_poll_interval=float(poll) if poll else defaults.worker_poll_interval,
            job_lease_seconds=float(lease) if lease else defaults.job_lease_seconds,
            log_level=(level or defaults.log_level).upper(),
        )
    except ValueError as e:
        raise ValueError(f"Invalid {ENV_PREFIX}* setting: {e}") from e


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
