"""Decoder strategies for tiffconvertx."""

from .base import DecodeErrorKind, RasterDecoder
from .pillow_decoder import PillowDecoder
from .pymupdf_decoder import PyMuPDFDecoder

__all__ = [
    "DecodeErrorKind",
    "RasterDecoder",
    "PillowDecoder",
    "PyMuPDFDecoder",
]
