import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DbConfig:
    path: Path


def connect(cfg: DbConfig) -> sqlite3.Connection:
    cfg.path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(cfg.path, timeout=10.0, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def session(cfg: DbConfig) -> Iterator[sqlite3.Connection]:
    """A connection owned by one unit of work; never share it across requests."""

    conn = connect(cfg)
    try:
        yield conn
    finally:
        conn.close()


def migrate(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS posts (
          id TEXT PRIMARY KEY,
          author_id TEXT NOT NULL,
          text TEXT NOT NULL,
          latitude REAL NOT NULL,
          longitude REAL NOT NULL,
          created_at TEXT NOT NULL,
          updated_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at);

        CREATE TABLE IF NOT EXISTS image_attachments (
          id TEXT PRIMARY KEY,
          post_id TEXT NOT NULL,
          position INTEGER NOT NULL,
          original_url TEXT NOT NULL,
          created_at TEXT NOT NULL,
          updated_at TEXT NOT NULL,
          FOREIGN KEY (post_id) REFERENCES posts(id),
          UNIQUE(post_id, position)
        );

        CREATE TABLE IF NOT EXISTS image_variants (
          id INTEGER PRIMARY KEY,
          attachment_id TEXT NOT NULL,
          position INTEGER NOT NULL,
          url TEXT NOT NULL,
          width INTEGER NOT NULL,
          height INTEGER NOT NULL,
          format TEXT NOT NULL,
          FOREIGN KEY (attachment_id) REFERENCES image_attachments(id),
          UNIQUE(attachment_id, position),
          UNIQUE(attachment_id, width, height)
        );

        CREATE TABLE IF NOT EXISTS jobs (
          id INTEGER PRIMARY KEY,
          type TEXT NOT NULL,
          payload_json TEXT NOT NULL,
          status TEXT NOT NULL,
          attempts INTEGER NOT NULL,
          scheduled_at TEXT NOT NULL,
          locked_at TEXT,
          last_error TEXT
        );
        """
    )
    conn.commit()
