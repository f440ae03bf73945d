import io

import pytest
from PIL import Image

from microblog.domain.errors import DecodeError
from microblog.images.resizer import PillowResizer, fit_within


def _size_of(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as img:
        return img.size


def _format_of(data: bytes) -> str | None:
    with Image.open(io.BytesIO(data)) as img:
        return img.format


@pytest.mark.parametrize(
    ("src", "box"),
    [
        ((1000, 500), (200, 200)),
        ((500, 1000), (800, 600)),
        ((1234, 567), (800, 600)),
        ((3000, 2000), (1600, 1200)),
        ((201, 199), (200, 200)),
    ],
)
def test_output_fits_box_and_keeps_aspect(make_image, src: tuple[int, int], box: tuple[int, int]) -> None:
    out = PillowResizer().resize(make_image(*src), *box)

    width, height = _size_of(out)
    assert width <= box[0]
    assert height <= box[1]
    # Within one pixel of the exact aspect ratio.
    assert abs(width * src[1] - height * src[0]) <= max(src)


def test_wide_image_hits_width_limit(make_image) -> None:
    out = PillowResizer().resize(make_image(1000, 500), 200, 200)
    assert _size_of(out) == (200, 100)


def test_exact_ratio_is_not_lost_to_float_rounding() -> None:
    assert fit_within(1234, 567, 800, 600).width == 800


def test_small_image_is_never_upscaled(make_image) -> None:
    out = PillowResizer().resize(make_image(100, 50), 1600, 1200)
    assert _size_of(out) == (100, 50)


def test_output_is_webp(make_image) -> None:
    out = PillowResizer().resize(make_image(640, 480, fmt="JPEG"), 200, 200)
    assert _format_of(out) == "WEBP"


@pytest.mark.parametrize("mode", ["L", "P", "RGBA"])
def test_non_rgb_modes_are_encoded(make_image, mode: str) -> None:
    out = PillowResizer().resize(make_image(300, 300, mode=mode), 200, 200)
    assert _size_of(out) == (200, 200)


def test_input_buffer_is_not_mutated(make_image) -> None:
    data = bytearray(make_image(400, 300))
    before = bytes(data)

    PillowResizer().resize(data, 200, 200)

    assert bytes(data) == before


@pytest.mark.parametrize("payload", [b"", b"not an image at all"])
def test_garbage_raises_decode_error(payload: bytes) -> None:
    with pytest.raises(DecodeError):
        PillowResizer().resize(payload, 200, 200)


def test_truncated_image_raises_decode_error(make_image) -> None:
    data = make_image(400, 300, fmt="JPEG")
    with pytest.raises(DecodeError):
        PillowResizer().resize(data[: len(data) // 3], 200, 200)
