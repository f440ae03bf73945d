from dataclasses import dataclass


@dataclass(frozen=True)
class VariantSize:
    width: int
    height: int
    label: str


# Changing this list only affects posts derived afterwards.
SIZES: tuple[VariantSize, ...] = (
    VariantSize(200, 200, "thumbnail"),
    VariantSize(800, 600, "medium"),
    VariantSize(1600, 1200, "large"),
)

ORIGINAL_LABEL = "original"

VARIANT_FORMAT = "webp"
VARIANT_EXTENSION = ".webp"
VARIANT_CONTENT_TYPE = "image/webp"
