from __future__ import annotations

import os
import uuid
from dataclasses import dataclass
from typing import BinaryIO

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as SchemaError

from microblog.domain.errors import ValidationError, ValidationIssue
from microblog.domain.rules import (
    ALLOWED_CONTENT_TYPES,
    ALLOWED_IMAGE_FORMATS,
    MAX_IMAGE_SIZE_MB,
    MAX_IMAGES_PER_POST,
    MAX_POST_LENGTH,
)


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    content: BinaryIO


class CreatePostInput(BaseModel):
    author_id: uuid.UUID
    text: str = Field(min_length=1, max_length=MAX_POST_LENGTH)
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    image_count: int = Field(default=0, ge=0, le=MAX_IMAGES_PER_POST)

    @field_validator("author_id")
    @classmethod
    def _author_not_nil(cls, v: uuid.UUID) -> uuid.UUID:
        if v.int == 0:
            raise ValueError("author id cannot be empty")
        return v

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text cannot be blank")
        return v


def _to_issues(e: SchemaError) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    for err in e.errors():
        loc = err.get("loc") or []
        path = ".".join(str(p) for p in loc)
        issues.append(
            ValidationIssue(
                code=str(err.get("type") or "validation_error"),
                path=path,
                message=str(err.get("msg") or "invalid"),
            )
        )
    return issues


def _stream_length(content: BinaryIO) -> int | None:
    # Only seekable streams report a length cheaply; others skip the size check.
    try:
        if not content.seekable():
            return None
        pos = content.tell()
        end = content.seek(0, os.SEEK_END)
        content.seek(pos)
    except (OSError, AttributeError):
        return None
    return end


def image_extension(filename: str) -> str:
    return os.path.splitext(filename)[1]


def _image_issues(index: int, image: ImageUpload) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    path = f"images.{index}"

    size = _stream_length(image.content)
    if size is not None and size > MAX_IMAGE_SIZE_MB * 1024 * 1024:
        issues.append(
            ValidationIssue(
                code="image_too_large",
                path=path,
                message=f"Image {image.filename} exceeds {MAX_IMAGE_SIZE_MB}MB.",
            )
        )

    ext = image_extension(image.filename).lstrip(".").lower()
    if not image.filename:
        issues.append(
            ValidationIssue(
                code="image_filename_missing",
                path=path,
                message="Image upload has no filename.",
            )
        )
    elif ext not in ALLOWED_IMAGE_FORMATS:
        issues.append(
            ValidationIssue(
                code="image_format_not_allowed",
                path=path,
                message=f"Image format .{ext} is not allowed.",
            )
        )

    if (image.content_type or "").lower() not in ALLOWED_CONTENT_TYPES:
        issues.append(
            ValidationIssue(
                code="content_type_not_allowed",
                path=path,
                message=f"Content type {image.content_type} is not allowed.",
            )
        )
    return issues


def validate_create_post(
    *,
    author_id: uuid.UUID | str | None,
    text: str | None,
    latitude: float | None,
    longitude: float | None,
    images: list[ImageUpload],
) -> CreatePostInput:
    """Check a create-post request, collecting every issue before raising."""

    issues: list[ValidationIssue] = []
    parsed: CreatePostInput | None = None
    try:
        parsed = CreatePostInput.model_validate(
            {
                "author_id": author_id,
                "text": text,
                "latitude": latitude,
                "longitude": longitude,
                "image_count": len(images),
            }
        )
    except SchemaError as e:
        issues.extend(_to_issues(e))

    for i, image in enumerate(images):
        issues.extend(_image_issues(i, image))

    if issues or parsed is None:
        raise ValidationError(issues)
    return parsed
