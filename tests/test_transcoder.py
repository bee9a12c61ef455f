from __future__ import annotations

import io

import pytest
from PIL import Image, ImageStat

from tiffconvertx.exceptions import FormatError, ValidationError
from tiffconvertx.transcoder import (
    PageTranscoder,
    flatten_alpha,
    has_alpha,
    normalize_for_jpeg,
    rescale_to_gray,
)
from tiffconvertx.types import DecoderKind, PageRaster


def _raster(image: Image.Image, index: int = 0, dpi=None) -> PageRaster:
    return PageRaster(
        index,
        image.width,
        image.height,
        image.mode,
        DecoderKind.PRIMARY,
        lambda: image,
        dpi=dpi,
    )


def _noise(size=(200, 150)) -> Image.Image:
    return Image.effect_noise(size, 80).convert("RGB")


def test_transcode_produces_jpeg_and_stat() -> None:
    page = _raster(Image.new("RGB", (120, 80), (200, 10, 10)), index=4)
    result = PageTranscoder().transcode(page, 85)

    assert result.data.startswith(b"\xff\xd8")
    assert (result.index, result.width, result.height) == (4, 120, 80)
    assert result.stat.page_index == 4
    assert result.stat.uncompressed_bytes == 120 * 80 * 3
    assert result.stat.compressed_bytes == len(result.data)
    assert page.consumed

    with Image.open(io.BytesIO(result.data)) as decoded:
        assert decoded.format == "JPEG"
        assert decoded.size == (120, 80)


def test_transcode_consumes_page_once() -> None:
    page = _raster(Image.new("L", (10, 10)))
    transcoder = PageTranscoder()
    transcoder.transcode(page, 50)

    with pytest.raises(FormatError, match="already been consumed"):
        transcoder.transcode(page, 50)


def test_invalid_quality_leaves_page_untouched() -> None:
    page = _raster(Image.new("RGB", (10, 10)))
    with pytest.raises(ValidationError):
        PageTranscoder().transcode(page, 0)
    assert not page.consumed


def test_lower_quality_gives_smaller_output() -> None:
    image = _noise()
    transcoder = PageTranscoder()
    low = transcoder.transcode(_raster(image.copy()), 20)
    high = transcoder.transcode(_raster(image.copy()), 95)
    assert len(low.data) < len(high.data)


def test_resolution_is_preserved() -> None:
    page = _raster(Image.new("RGB", (30, 30)), dpi=(300.0, 300.0))
    result = PageTranscoder().transcode(page, 80)

    with Image.open(io.BytesIO(result.data)) as decoded:
        assert decoded.info["dpi"] == pytest.approx((300, 300), abs=1)


def test_optimized_progressive_output_is_valid_jpeg() -> None:
    transcoder = PageTranscoder(optimize=True, progressive=True)
    result = transcoder.transcode(_raster(_noise((64, 64))), 75)

    with Image.open(io.BytesIO(result.data)) as decoded:
        assert decoded.info.get("progressive") or decoded.info.get("progression")


@pytest.mark.parametrize("mode", ["RGBA", "LA", "CMYK", "1", "P", "I;16", "I", "F"])
def test_modes_are_normalized_for_jpeg(mode: str) -> None:
    page = _raster(Image.new(mode, (12, 12)))
    result = PageTranscoder().transcode(page, 70)

    with Image.open(io.BytesIO(result.data)) as decoded:
        assert decoded.mode in {"RGB", "L"}


def _decoded_gray(data: bytes) -> Image.Image:
    with Image.open(io.BytesIO(data)) as decoded:
        return decoded.convert("L")


@pytest.mark.parametrize(
    "mode, value, expected",
    [
        ("F", 0.8, 204),
        ("F", 0.0, 0),
        ("F", 180.0, 180),
        ("I", 120, 120),
        ("I;16", 0x8000, 128),
    ],
)
def test_wide_gray_keeps_its_intensity(mode: str, value, expected: int) -> None:
    page = _raster(Image.new(mode, (32, 32), value))
    result = PageTranscoder().transcode(page, 90)

    mean = ImageStat.Stat(_decoded_gray(result.data)).mean[0]
    assert mean == pytest.approx(expected, abs=3)


def test_wide_integer_range_is_stretched() -> None:
    image = Image.linear_gradient("L").convert("I").point(lambda value: value * 200)
    assert image.getextrema() == (0, 51000)

    gray = rescale_to_gray(image)
    assert gray.mode == "L"
    low, high = gray.getextrema()
    assert low == 0
    assert high >= 254
    assert gray.getpixel((0, 128)) == pytest.approx(128, abs=1)


def test_rescale_keeps_gradient_of_unit_floats() -> None:
    image = Image.new("F", (3, 1))
    for x, value in enumerate((0.0, 0.5, 1.0)):
        image.putpixel((x, 0), value)

    gray = rescale_to_gray(image)
    assert gray.getpixel((0, 0)) == 0
    assert gray.getpixel((1, 0)) == pytest.approx(127, abs=1)
    assert gray.getpixel((2, 0)) == 255


def test_bilevel_pages_are_encoded_as_gray() -> None:
    page = _raster(Image.new("1", (24, 24), 1))
    result = PageTranscoder().transcode(page, 80)

    with Image.open(io.BytesIO(result.data)) as decoded:
        assert decoded.mode == "L"
        assert decoded.getpixel((12, 12)) == pytest.approx(255, abs=2)


def test_flatten_alpha_uses_white_background() -> None:
    transparent = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
    flattened = flatten_alpha(transparent)

    assert flattened.mode == "RGB"
    assert flattened.getpixel((0, 0)) == (255, 255, 255)


def test_has_alpha_detects_palette_transparency() -> None:
    palette = Image.new("P", (4, 4))
    assert not has_alpha(palette)
    palette.info["transparency"] = 0
    assert has_alpha(palette)


def test_normalize_keeps_native_modes() -> None:
    gray = Image.new("L", (3, 3))
    assert normalize_for_jpeg(gray) is gray
