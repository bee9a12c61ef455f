"""Document loading with a single structural decoder fallback."""

from __future__ import annotations

import logging
from typing import Optional

from .decoders import PillowDecoder, PyMuPDFDecoder
from .decoders.base import RasterDecoder
from .exceptions import DecodeError, FormatError, ValidationError
from .types import SourceDocument

_LOGGER = logging.getLogger("tiffconvertx.loader")


class DocumentLoader:
    """
    Decode raw bytes into a :class:`SourceDocument`.

    The primary decoder handles the common case. When it fails with a
    structural kind (mixed page geometry, unsupported compression scheme)
    the same bytes are handed once to the secondary decoder. Any other
    failure is reported as a :class:`FormatError` straight away.
    """

    def __init__(
        self,
        primary: Optional[RasterDecoder] = None,
        secondary: Optional[RasterDecoder] = None,
        *,
        enable_fallback: bool = True,
    ) -> None:
        self.primary: RasterDecoder = primary or PillowDecoder()
        self.secondary: RasterDecoder = secondary or PyMuPDFDecoder()
        self.enable_fallback = enable_fallback

    def load(self, data: Optional[bytes]) -> SourceDocument:
        payload = self._check_input(data)

        try:
            return self.primary.decode(payload)
        except DecodeError as primary_error:
            if not (self.enable_fallback and primary_error.kind.allows_fallback):
                raise FormatError(
                    f"Invalid image format: {primary_error.message}",
                    page_index=primary_error.page_index,
                ) from primary_error
            _LOGGER.warning(
                "Primary decoder %s rejected input (%s); retrying with %s",
                self.primary.name,
                primary_error.kind.value,
                self.secondary.name,
            )
            return self._decode_secondary(payload, primary_error)

    def _decode_secondary(self, payload: bytes, primary_error: DecodeError) -> SourceDocument:
        try:
            document = self.secondary.decode(payload)
        except DecodeError as secondary_error:
            raise FormatError(
                "Invalid image format: {0} ({1}); fallback decoder {2} also failed: {3}".format(
                    primary_error.message,
                    primary_error.kind.value,
                    self.secondary.name,
                    secondary_error.message,
                ),
                page_index=secondary_error.page_index,
            ) from secondary_error
        document.fallback_reason = primary_error.kind
        return document

    @staticmethod
    def _check_input(data: object) -> bytes:
        if data is None:
            raise ValidationError("Input data cannot be null or empty")
        if isinstance(data, (bytearray, memoryview)):
            data = bytes(data)
        if not isinstance(data, bytes):
            raise ValidationError(
                f"Input data must be bytes, got {type(data).__name__}"
            )
        if not data:
            raise ValidationError("Input data cannot be null or empty")
        return data


__all__ = ["DocumentLoader"]
