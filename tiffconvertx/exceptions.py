"""
Custom exceptions for tiffconvertx.

This module defines the error taxonomy shared by the loader, transcoder,
assembler and router. Library code raises these; only the router turns
them into failed :class:`~tiffconvertx.types.ConversionOutcome` values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .decoders.base import DecodeErrorKind


class TiffConvertXError(Exception):
    """Base exception for all tiffconvertx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown conversion error occurred."


class ValidationError(TiffConvertXError):
    """Raised when request parameters are malformed, before any decoding."""

    @property
    def default_message(self) -> str:
        return "Invalid conversion request."


class FormatError(TiffConvertXError):
    """Raised when input bytes or a single page cannot be decoded."""

    def __init__(self, message: str = "", *, page_index: Optional[int] = None) -> None:
        super().__init__(message)
        self.page_index = page_index

    @property
    def default_message(self) -> str:
        return "Input is not a decodable raster document."


class DecodeError(FormatError):
    """Raised by a raster decoder, tagged with a structured failure kind."""

    def __init__(
        self,
        kind: "DecodeErrorKind",
        message: str = "",
        *,
        decoder: str = "",
        page_index: Optional[int] = None,
    ) -> None:
        super().__init__(message, page_index=page_index)
        self.kind = kind
        self.decoder = decoder

    @property
    def default_message(self) -> str:
        return "Raster decoder failed."


class AssemblyError(TiffConvertXError):
    """Raised when the output container is empty or inconsistent."""

    @property
    def default_message(self) -> str:
        return "Output container could not be assembled."


class CollaboratorError(TiffConvertXError):
    """Raised when the object-storage collaborator fails a fetch or store."""

    def __init__(self, message: str = "", *, kind: str = "unknown") -> None:
        super().__init__(message)
        self.kind = kind

    @property
    def default_message(self) -> str:
        return "Object storage request failed."


__all__ = [
    "TiffConvertXError",
    "ValidationError",
    "FormatError",
    "DecodeError",
    "AssemblyError",
    "CollaboratorError",
]
