"""Secondary, page-collection decoder backed by PyMuPDF."""

from __future__ import annotations

import io
import logging
from functools import partial
from typing import List

import pymupdf
from PIL import Image

from ..exceptions import DecodeError, FormatError
from ..types import DecoderKind, PageRaster, SourceDocument
from ..utils import coerce_dpi
from .base import DecodeErrorKind, RasterDecoder

_LOGGER = logging.getLogger("tiffconvertx.decoders.pymupdf")

_COLORSPACE_MODES = {
    "DeviceGray": "L",
    "DeviceRGB": "RGB",
    "DeviceCMYK": "CMYK",
}


class PyMuPDFDecoder(RasterDecoder):
    """
    Decode a raster container as a collection of independent pages.

    MuPDF opens the container as a document, converts it to an
    image-per-page PDF and each embedded image is read back at its native
    resolution, so every page keeps its own geometry.
    """

    name = "pymupdf"

    def __init__(self, filetype: str = "tiff") -> None:
        self.filetype = filetype

    def decode(self, data: bytes) -> SourceDocument:
        try:
            source = pymupdf.open(stream=data, filetype=self.filetype)
        except Exception as exc:
            raise DecodeError(
                DecodeErrorKind.UNRECOGNIZED,
                f"Unable to open page collection: {exc}",
                decoder=self.name,
            ) from exc

        try:
            if source.page_count == 0:
                raise DecodeError(
                    DecodeErrorKind.MALFORMED,
                    "Page collection contains no pages",
                    decoder=self.name,
                )
            collection = pymupdf.open("pdf", source.convert_to_pdf())
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(
                DecodeErrorKind.MALFORMED,
                f"Unable to read page collection: {exc}",
                decoder=self.name,
            ) from exc
        finally:
            source.close()

        try:
            pages = self._enumerate(collection)
        except Exception:
            collection.close()
            raise

        _LOGGER.debug("Decoded page collection with %d page(s)", len(pages))
        return SourceDocument(
            pages,
            decoder=DecoderKind.SECONDARY,
            decoder_name=self.name,
            input_size=len(data),
            closer=collection.close,
        )

    def _enumerate(self, collection: "pymupdf.Document") -> List[PageRaster]:
        pages: List[PageRaster] = []
        for index in range(collection.page_count):
            page = collection.load_page(index)
            images = page.get_images(full=True)
            if not images:
                raise DecodeError(
                    DecodeErrorKind.MALFORMED,
                    f"Page {index + 1} carries no raster image",
                    decoder=self.name,
                    page_index=index,
                )
            xref, _smask, width, height, _bpc, colorspace = images[0][:6]
            rect = page.rect
            dpi = None
            if rect.width > 0 and rect.height > 0:
                dpi = coerce_dpi((width * 72.0 / rect.width, height * 72.0 / rect.height))
            pages.append(
                PageRaster(
                    index,
                    int(width),
                    int(height),
                    _COLORSPACE_MODES.get(colorspace, "RGB"),
                    DecoderKind.SECONDARY,
                    partial(self._load_page, collection, xref, index),
                    dpi=dpi,
                )
            )
        return pages

    @staticmethod
    def _load_page(collection: "pymupdf.Document", xref: int, index: int) -> Image.Image:
        try:
            pix = pymupdf.Pixmap(collection, xref)
            if pix.alpha:
                pix = pymupdf.Pixmap(pix, 0)
            if pix.colorspace is None or pix.colorspace.n not in (1, 3):
                pix = pymupdf.Pixmap(pymupdf.csRGB, pix)
            image = Image.open(io.BytesIO(pix.tobytes("png")))
            image.load()
            return image
        except Exception as exc:
            raise FormatError(
                f"Page {index + 1} could not be decoded: {exc}", page_index=index
            ) from exc


__all__ = ["PyMuPDFDecoder"]
