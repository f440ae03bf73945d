from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from microblog.domain.rules import MAX_POST_LENGTH


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90 <= self.latitude <= 90:
            raise ValueError("Latitude must be between -90 and 90.")
        if not -180 <= self.longitude <= 180:
            raise ValueError("Longitude must be between -180 and 180.")


@dataclass(frozen=True)
class ImageVariant:
    url: str
    width: int
    height: int
    format: str = "webp"

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("Variant url cannot be empty.")


class ImageAttachment:
    """An uploaded original plus the variants derived from it.

    The original url is fixed at construction. Variants are append-only.
    """

    def __init__(
        self,
        original_url: str,
        *,
        id: uuid.UUID | None = None,
        post_id: uuid.UUID | None = None,
        variants: list[ImageVariant] | None = None,
        created_at: str | None = None,
        updated_at: str | None = None,
    ) -> None:
        if not original_url:
            raise ValueError("Original url cannot be empty.")
        now = utc_now_iso()
        self.id = id or uuid.uuid4()
        self.post_id = post_id
        self._original_url = original_url
        self._variants: list[ImageVariant] = list(variants or [])
        self.created_at = created_at or now
        self.updated_at = updated_at or now

    @property
    def original_url(self) -> str:
        return self._original_url

    @property
    def variants(self) -> tuple[ImageVariant, ...]:
        return tuple(self._variants)

    def add_variant(self, variant: ImageVariant) -> None:
        self._variants.append(variant)
        self.updated_at = utc_now_iso()

    def has_variant(self, width: int, height: int) -> bool:
        return any(v.width == width and v.height == height for v in self._variants)

    def __repr__(self) -> str:
        return f"ImageAttachment(id={self.id!s}, original_url={self._original_url!r}, variants={len(self._variants)})"


class Post:
    def __init__(
        self,
        author_id: uuid.UUID,
        text: str,
        location: GeoLocation,
        *,
        id: uuid.UUID | None = None,
        images: list[ImageAttachment] | None = None,
        created_at: str | None = None,
        updated_at: str | None = None,
    ) -> None:
        if not text or not text.strip():
            raise ValueError("Post text cannot be empty.")
        if len(text) > MAX_POST_LENGTH:
            raise ValueError(f"Post text cannot exceed {MAX_POST_LENGTH} characters.")
        now = utc_now_iso()
        self.id = id or uuid.uuid4()
        self.author_id = author_id
        self._text = text
        self._location = location
        self._images: list[ImageAttachment] = []
        self.created_at = created_at or now
        self.updated_at = updated_at or now
        for image in images or []:
            image.post_id = self.id
            self._images.append(image)

    @classmethod
    def restore(
        cls,
        author_id: uuid.UUID,
        text: str,
        location: GeoLocation,
        *,
        id: uuid.UUID,
        images: list[ImageAttachment],
        created_at: str,
        updated_at: str,
    ) -> Post:
        """Rebuilds a stored post without re-applying the rules for new text."""
        post = cls.__new__(cls)
        post.id = id
        post.author_id = author_id
        post._text = text
        post._location = location
        post._images = []
        post.created_at = created_at
        post.updated_at = updated_at
        for image in images:
            image.post_id = id
            post._images.append(image)
        return post

    @property
    def text(self) -> str:
        return self._text

    @property
    def location(self) -> GeoLocation:
        return self._location

    @property
    def images(self) -> tuple[ImageAttachment, ...]:
        return tuple(self._images)

    def add_image(self, image: ImageAttachment) -> None:
        image.post_id = self.id
        self._images.append(image)
        self.touch()

    def touch(self) -> None:
        self.updated_at = utc_now_iso()

    def __repr__(self) -> str:
        return f"Post(id={self.id!s}, author_id={self.author_id!s}, images={len(self._images)})"
