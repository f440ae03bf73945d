from __future__ import annotations

import sqlite3
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from microblog.domain.enums import JobType
from microblog.domain.models import Post
from microblog.infra.repo_jobs import JobRepo


@dataclass(frozen=True)
class PostCreatedSignal:
    """Emitted once a new post is durably stored.

    ``post`` is the in-memory copy at publish time and is not serialized;
    consumers reload by ``post_id``.
    """

    post_id: uuid.UUID
    post: Post | None = field(default=None, compare=False)

    @classmethod
    def for_post(cls, post: Post) -> PostCreatedSignal:
        return cls(post_id=post.id, post=post)

    def to_payload(self) -> dict[str, Any]:
        return {"post_id": str(self.post_id)}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> PostCreatedSignal:
        return cls(post_id=uuid.UUID(str(payload["post_id"])))


class SignalPublisher(Protocol):
    def publish(self, signal: PostCreatedSignal) -> None: ...


class JobQueuePublisher:
    """Hands the signal to the worker through the ``jobs`` table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._jobs = JobRepo(conn)

    def publish(self, signal: PostCreatedSignal) -> None:
        self._jobs.enqueue(JobType.post_created.value, signal.to_payload())
