"""Storage keys for post images.

Keys look like ``posts/<post_id>/<image_id>-<size_label><extension>`` and are
read back by clients straight from the public URL, so the format must not
drift.
"""

from __future__ import annotations

import uuid
from urllib.parse import urlsplit

POSTS_COLLECTION = "posts"
IMAGES_SEGMENT = "/images/"


def build_path(post_id: uuid.UUID | str, image_id: uuid.UUID | str, size_label: str, extension: str) -> str:
    return f"{POSTS_COLLECTION}/{post_id}/{image_id}-{size_label}{extension}"


def replace_size_segment(path: str, new_size_label: str, new_extension: str) -> str:
    """Swap the trailing ``<label><ext>`` part of a key.

    Paths without a ``-`` separator are returned unchanged.
    """

    parts = path.split("-")
    if len(parts) < 2:
        return path
    prefix = "-".join(parts[:-1])
    return f"{prefix}-{new_size_label}{new_extension}"


def blob_path_from_url(url: str) -> str:
    """Recover the storage key from a public blob url.

    Everything up to and including the first ``/images/`` segment is dropped.
    Without that segment the url path is used as-is.
    """

    path = urlsplit(url).path
    index = path.lower().find(IMAGES_SEGMENT)
    if index >= 0:
        path = path[index + len(IMAGES_SEGMENT) :]
    return path
