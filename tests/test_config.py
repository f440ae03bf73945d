from pathlib import Path

import pytest

from microblog.config import load_config


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATA_DIR", "PUBLIC_BASE_URL", "JOB_MAX_ATTEMPTS", "WORKER_POLL_INTERVAL", "JOB_LEASE_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(f"MICROBLOG_{name}", raising=False)

    cfg = load_config()

    assert cfg.data_dir == Path("data")
    assert cfg.db_path == Path("data") / "app.sqlite3"
    assert cfg.blobs_dir == Path("data") / "blobs"
    assert cfg.job_max_attempts == 3
    assert cfg.job_lease_seconds == 300.0


def test_env_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MICROBLOG_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("MICROBLOG_PUBLIC_BASE_URL", "https://cdn.example.com")
    monkeypatch.setenv("MICROBLOG_JOB_MAX_ATTEMPTS", "5")
    monkeypatch.setenv("MICROBLOG_WORKER_POLL_INTERVAL", "0.25")
    monkeypatch.setenv("MICROBLOG_JOB_LEASE_SECONDS", "60")
    monkeypatch.setenv("MICROBLOG_LOG_LEVEL", "debug")

    cfg = load_config()

    assert cfg.data_dir == tmp_path
    assert cfg.public_base_url == "https://cdn.example.com"
    assert cfg.job_max_attempts == 5
    assert cfg.worker_poll_interval == 0.25
    assert cfg.job_lease_seconds == 60.0
    assert cfg.log_level == "DEBUG"


def test_malformed_number_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MICROBLOG_JOB_MAX_ATTEMPTS", "three")

    with pytest.raises(ValueError):
        load_config()
