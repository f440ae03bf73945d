from __future__ import annotations

import io
import math
from dataclasses import dataclass
from fractions import Fraction
from typing import Protocol

from PIL import Image, UnidentifiedImageError

from microblog.domain.errors import DecodeError

WEBP_QUALITY = 80


class ImageResizer(Protocol):
    def resize(self, image_bytes: bytes, target_width: int, target_height: int) -> bytes: ...


@dataclass(frozen=True)
class FittedSize:
    width: int
    height: int


def fit_within(src_width: int, src_height: int, target_width: int, target_height: int) -> FittedSize:
    """Largest aspect-preserving size inside the target box, never above the source size."""

    ratio = min(Fraction(target_width, src_width), Fraction(target_height, src_height), Fraction(1))
    width = max(1, math.floor(src_width * ratio))
    height = max(1, math.floor(src_height * ratio))
    return FittedSize(width=width, height=height)


def _decode(image_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"undecodable_image:{type(e).__name__}") from e
    return img


def _webp_ready(img: Image.Image) -> Image.Image:
    if img.mode in ("RGB", "RGBA"):
        return img
    has_alpha = img.mode in ("LA", "PA") or (img.mode == "P" and "transparency" in img.info)
    return img.convert("RGBA" if has_alpha else "RGB")


class PillowResizer:
    """Downscale-only resize re-encoded as lossy WebP at a fixed quality."""

    def resize(self, image_bytes: bytes, target_width: int, target_height: int) -> bytes:
        if target_width <= 0 or target_height <= 0:
            raise ValueError("Target size must be positive.")

        img = _decode(image_bytes)
        size = fit_within(img.width, img.height, target_width, target_height)

        img = _webp_ready(img)
        if (size.width, size.height) != img.size:
            img = img.resize((size.width, size.height), Image.Resampling.LANCZOS)

        out = io.BytesIO()
        img.save(out, format="WEBP", quality=WEBP_QUALITY, lossless=False)
        return out.getvalue()
