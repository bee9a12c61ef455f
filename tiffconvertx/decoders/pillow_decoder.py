"""Primary decoder backed by Pillow."""

from __future__ import annotations

import io
import logging
from functools import partial
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..exceptions import DecodeError, FormatError
from ..types import DecoderKind, PageRaster, SourceDocument
from ..utils import coerce_dpi
from .base import DecodeErrorKind, RasterDecoder

_LOGGER = logging.getLogger("tiffconvertx.decoders.pillow")

# Pillow reports codec gaps as free text; the wording is only inspected here.
_SCHEME_MARKERS = ("not available", "not supported", "unsupported", "unknown compression")
_TRUNCATION_MARKERS = ("truncated", "end of file", "premature end")


def classify_pillow_error(exc: BaseException) -> DecodeErrorKind:
    """Map an exception raised by Pillow onto a :class:`DecodeErrorKind`."""

    if isinstance(exc, UnidentifiedImageError):
        return DecodeErrorKind.UNRECOGNIZED
    if isinstance(exc, EOFError):
        return DecodeErrorKind.TRUNCATED
    if isinstance(exc, KeyError):
        # raised from Pillow's compression/layout lookup tables
        return DecodeErrorKind.UNSUPPORTED_SCHEME
    text = str(exc).lower()
    if any(marker in text for marker in _TRUNCATION_MARKERS):
        return DecodeErrorKind.TRUNCATED
    if any(marker in text for marker in _SCHEME_MARKERS):
        return DecodeErrorKind.UNSUPPORTED_SCHEME
    return DecodeErrorKind.MALFORMED


class PillowDecoder(RasterDecoder):
    """
    Decode a raster container as a uniform stack of frames.

    All frames must share the first frame's pixel size; mixed geometry is
    reported as :attr:`DecodeErrorKind.MIXED_GEOMETRY` so the loader can hand
    the bytes to a page-collection decoder instead. Frame pixels are decoded
    lazily, one page at a time, from the open container.
    """

    name = "pillow"

    def decode(self, data: bytes) -> SourceDocument:
        try:
            container = Image.open(io.BytesIO(data))
        except Exception as exc:
            raise self._error(exc, "Unable to open raster container") from exc

        try:
            pages = self._enumerate(container)
            self._probe(container)
        except DecodeError:
            container.close()
            raise
        except Exception as exc:
            container.close()
            raise self._error(exc, "Unable to read raster container") from exc

        _LOGGER.debug(
            "Decoded %s container with %d page(s) of %dx%d",
            container.format,
            len(pages),
            pages[0].width,
            pages[0].height,
        )
        return SourceDocument(
            pages,
            decoder=DecoderKind.PRIMARY,
            decoder_name=self.name,
            input_size=len(data),
            closer=container.close,
        )

    def _enumerate(self, container: Image.Image) -> List[PageRaster]:
        frame_count = getattr(container, "n_frames", 1) or 1
        first_size: Optional[Tuple[int, int]] = None
        pages: List[PageRaster] = []
        for index in range(frame_count):
            container.seek(index)
            size = container.size
            if first_size is None:
                first_size = size
            elif size != first_size:
                raise DecodeError(
                    DecodeErrorKind.MIXED_GEOMETRY,
                    "Pages of different sizes: page 1 is {0}x{1}, page {2} is {3}x{4}".format(
                        first_size[0], first_size[1], index + 1, size[0], size[1]
                    ),
                    decoder=self.name,
                    page_index=index,
                )
            pages.append(
                PageRaster(
                    index,
                    size[0],
                    size[1],
                    container.mode,
                    DecoderKind.PRIMARY,
                    partial(self._load_frame, container, index),
                    dpi=coerce_dpi(container.info.get("dpi")),
                )
            )
        return pages

    def _probe(self, container: Image.Image) -> None:
        """Decode the first frame so codec gaps surface before any page is handed out."""

        container.seek(0)
        container.load()

    @staticmethod
    def _load_frame(container: Image.Image, index: int) -> Image.Image:
        try:
            container.seek(index)
            return container.copy()
        except Exception as exc:
            raise FormatError(
                f"Page {index + 1} could not be decoded: {exc}", page_index=index
            ) from exc

    def _error(self, exc: BaseException, context: str) -> DecodeError:
        kind = classify_pillow_error(exc)
        detail = str(exc) or exc.__class__.__name__
        return DecodeError(kind, f"{context}: {detail}", decoder=self.name)


__all__ = ["PillowDecoder", "classify_pillow_error"]
