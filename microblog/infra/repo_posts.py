import sqlite3
import uuid
from typing import Protocol

from microblog.domain.errors import PersistenceError
from microblog.domain.models import GeoLocation, ImageAttachment, ImageVariant, Post


class PostStore(Protocol):
    def get(self, post_id: uuid.UUID) -> Post | None: ...

    def save(self, post: Post) -> None: ...


class PostRepo:
    """Loads and saves the whole Post aggregate.

    ``save`` is an upsert covering the post, its attachments and any variants
    not stored yet, committed as one transaction.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def get(self, post_id: uuid.UUID) -> Post | None:
        try:
            row = self._conn.execute("SELECT * FROM posts WHERE id = ?", (str(post_id),)).fetchone()
            if row is None:
                return None
            return Post.restore(
                author_id=uuid.UUID(row["author_id"]),
                text=str(row["text"]),
                location=GeoLocation(latitude=float(row["latitude"]), longitude=float(row["longitude"])),
                id=uuid.UUID(row["id"]),
                images=self._load_attachments(str(post_id)),
                created_at=str(row["created_at"]),
                updated_at=str(row["updated_at"]),
            )
        except (sqlite3.Error, ValueError) as e:
            raise PersistenceError(f"load_failed:{post_id}") from e

    def _load_attachments(self, post_id: str) -> list[ImageAttachment]:
        rows = self._conn.execute(
            "SELECT * FROM image_attachments WHERE post_id = ? ORDER BY position ASC", (post_id,)
        ).fetchall()
        attachments: list[ImageAttachment] = []
        for r in rows:
            variant_rows = self._conn.execute(
                "SELECT * FROM image_variants WHERE attachment_id = ? ORDER BY position ASC",
                (r["id"],),
            ).fetchall()
            attachments.append(
                ImageAttachment(
                    original_url=str(r["original_url"]),
                    id=uuid.UUID(r["id"]),
                    variants=[
                        ImageVariant(
                            url=str(v["url"]),
                            width=int(v["width"]),
                            height=int(v["height"]),
                            format=str(v["format"]),
                        )
                        for v in variant_rows
                    ],
                    created_at=str(r["created_at"]),
                    updated_at=str(r["updated_at"]),
                )
            )
        return attachments

    def save(self, post: Post) -> None:
        try:
            self._conn.execute(
                """
                INSERT INTO posts(id, author_id, text, latitude, longitude, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET updated_at = excluded.updated_at
                """,
                (
                    str(post.id),
                    str(post.author_id),
                    post.text,
                    post.location.latitude,
                    post.location.longitude,
                    post.created_at,
                    post.updated_at,
                ),
            )
            for position, attachment in enumerate(post.images):
                self._save_attachment(post.id, position, attachment)
            self._conn.commit()
        except sqlite3.Error as e:
            self._conn.rollback()
            raise PersistenceError(f"save_failed:{post.id}") from e

    def _save_attachment(self, post_id: uuid.UUID, position: int, attachment: ImageAttachment) -> None:
        self._conn.execute(
            """
            INSERT INTO image_attachments(id, post_id, position, original_url, created_at, updated_at)
            VALUES(?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET updated_at = excluded.updated_at
            """,
            (
                str(attachment.id),
                str(post_id),
                position,
                attachment.original_url,
                attachment.created_at,
                attachment.updated_at,
            ),
        )
        # Variants are append-only, so rows already stored are left alone.
        self._conn.executemany(
            """
            INSERT INTO image_variants(attachment_id, position, url, width, height, format)
            VALUES(?, ?, ?, ?, ?, ?)
            ON CONFLICT DO NOTHING
            """,
            [
                (str(attachment.id), i, v.url, v.width, v.height, v.format)
                for i, v in enumerate(attachment.variants)
            ],
        )

