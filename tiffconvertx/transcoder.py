"""Per-page JPEG transcoding for :mod:`tiffconvertx`."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from PIL import Image

from .exceptions import FormatError
from .types import CompressionStat, PageRaster, validate_quality

_LOGGER = logging.getLogger("tiffconvertx.transcoder")

FLATTEN_BACKGROUND = (255, 255, 255)
_JPEG_NATIVE_MODES = {"RGB", "L"}
_ALPHA_MODES = {"RGBA", "LA", "PA", "RGBa", "La"}


@dataclass(frozen=True)
class TranscodedPage:
    """Encoded JPEG bytes for one page together with its size record."""

    index: int
    data: bytes
    width: int
    height: int
    stat: CompressionStat


def has_alpha(image: Image.Image) -> bool:
    return image.mode in _ALPHA_MODES or (image.mode == "P" and "transparency" in image.info)


def flatten_alpha(image: Image.Image, background: Tuple[int, int, int] = FLATTEN_BACKGROUND) -> Image.Image:
    """Composite an alpha-bearing image onto an opaque background."""

    rgba = image.convert("RGBA")
    flattened = Image.new("RGB", rgba.size, background)
    flattened.paste(rgba, mask=rgba.getchannel("A"))
    if rgba is not image:
        rgba.close()
    return flattened


def rescale_to_gray(image: Image.Image) -> Image.Image:
    """
    Map 32-bit integer or float samples onto 8-bit grey.

    Samples already in 0-255 are kept, floats in [0, 1] are treated as
    intensities and anything wider is stretched from its extrema.
    """

    low, high = image.getextrema()
    if image.mode == "F" and low >= 0 and high <= 1:
        scale, offset = 255.0, 0.0
    elif low >= 0 and high <= 255:
        scale, offset = 1.0, 0.0
    elif high > low:
        scale = 255.0 / (high - low)
        offset = -low * scale
    else:
        scale, offset = 0.0, (255.0 if low > 255 else 0.0)
    return image.convert("F").point(lambda value: value * scale + offset).convert("L")


def normalize_for_jpeg(image: Image.Image) -> Image.Image:
    """Return an ``RGB`` or ``L`` image the JPEG encoder accepts."""

    if image.mode in _JPEG_NATIVE_MODES:
        return image
    if has_alpha(image):
        return flatten_alpha(image)
    if image.mode.startswith("I;16"):
        return image.convert("I").point(lambda value: value * (1 / 256)).convert("L")
    if image.mode in {"I", "F"}:
        return rescale_to_gray(image)
    if image.mode == "1":
        return image.convert("L")
    return image.convert("RGB")


class PageTranscoder:
    """Recompress page rasters to JPEG at a caller-supplied quality."""

    def __init__(self, *, optimize: bool = False, progressive: bool = False) -> None:
        self.optimize = optimize
        self.progressive = progressive

    def transcode(self, page: PageRaster, quality: int) -> TranscodedPage:
        """Take ownership of *page* pixels and encode them as JPEG."""

        validate_quality(quality)
        image = page.take()
        try:
            try:
                normalized = normalize_for_jpeg(image)
            except (OSError, ValueError) as exc:
                raise FormatError(
                    f"Page {page.index + 1} could not be normalized from mode {image.mode}: {exc}",
                    page_index=page.index,
                ) from exc
            try:
                data = self._encode(normalized, quality, page.dpi)
            except (OSError, ValueError) as exc:
                raise FormatError(
                    f"Page {page.index + 1} could not be encoded as JPEG: {exc}",
                    page_index=page.index,
                ) from exc
            finally:
                if normalized is not image:
                    normalized.close()
        finally:
            image.close()

        _LOGGER.debug(
            "Transcoded page %d (%dx%d) to %d JPEG bytes at quality %d",
            page.index + 1,
            page.width,
            page.height,
            len(data),
            quality,
        )
        return TranscodedPage(
            index=page.index,
            data=data,
            width=page.width,
            height=page.height,
            stat=CompressionStat(
                page_index=page.index,
                uncompressed_bytes=page.uncompressed_size,
                compressed_bytes=len(data),
            ),
        )

    def _encode(self, image: Image.Image, quality: int, dpi: Optional[Tuple[float, float]]) -> bytes:
        options: Dict[str, Any] = {"quality": quality}
        if self.optimize:
            options["optimize"] = True
        if self.progressive:
            options["progressive"] = True
        if dpi:
            options["dpi"] = dpi
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG", **options)
        return buffer.getvalue()


__all__ = [
    "PageTranscoder",
    "TranscodedPage",
    "flatten_alpha",
    "has_alpha",
    "normalize_for_jpeg",
    "rescale_to_gray",
]
