"""Decoder protocol and failure classification for tiffconvertx."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from ..types import SourceDocument


class DecodeErrorKind(str, Enum):
    """Structured reason a decoder rejected a byte stream."""

    UNRECOGNIZED = "unrecognized"
    TRUNCATED = "truncated"
    MALFORMED = "malformed"
    MIXED_GEOMETRY = "mixed_geometry"
    UNSUPPORTED_SCHEME = "unsupported_scheme"

    @property
    def allows_fallback(self) -> bool:
        """Whether a more permissive decoder may succeed on the same bytes."""

        return self in _FALLBACK_KINDS


_FALLBACK_KINDS = frozenset({DecodeErrorKind.MIXED_GEOMETRY, DecodeErrorKind.UNSUPPORTED_SCHEME})


class RasterDecoder(Protocol):
    """Protocol implemented by every decoder strategy."""

    name: str

    def decode(self, data: bytes) -> SourceDocument:
        """Parse *data* into a :class:`SourceDocument` or raise ``DecodeError``."""
