"""
Type definitions and dataclasses for tiffconvertx.

This module defines the data structures passed between the loader,
transcoder, assembler, statistics builder and router.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, Optional, Sequence, Tuple

from PIL import Image

from .exceptions import FormatError, ValidationError

if TYPE_CHECKING:  # pragma: no cover
    from .decoders.base import DecodeErrorKind

MIN_QUALITY = 1
MAX_QUALITY = 100


class OutputFormat(str, Enum):
    """Output targets understood by the router."""

    RASTER_SINGLE = "RasterSingle"
    DOCUMENT_MULTI = "DocumentMulti"

    @property
    def content_type(self) -> str:
        return "image/jpeg" if self is OutputFormat.RASTER_SINGLE else "application/pdf"

    @property
    def extension(self) -> str:
        return ".jpg" if self is OutputFormat.RASTER_SINGLE else ".pdf"

    @property
    def label(self) -> str:
        return "JPEG" if self is OutputFormat.RASTER_SINGLE else "PDF"

    @classmethod
    def parse(cls, token: "str | OutputFormat | None") -> "OutputFormat":
        """Resolve a case-insensitive format token."""

        if isinstance(token, OutputFormat):
            return token
        if token is None or not str(token).strip():
            raise ValidationError("Output format cannot be empty")
        key = str(token).strip().lower()
        resolved = _FORMAT_TOKENS.get(key)
        if resolved is None:
            accepted = ", ".join(sorted(_FORMAT_TOKENS))
            raise ValidationError(
                f"Unrecognized output format '{token}'. Expected one of: {accepted}"
            )
        return resolved


_FORMAT_TOKENS = {
    "jpeg": OutputFormat.RASTER_SINGLE,
    "jpg": OutputFormat.RASTER_SINGLE,
    "rastersingle": OutputFormat.RASTER_SINGLE,
    "pdf": OutputFormat.DOCUMENT_MULTI,
    "documentmulti": OutputFormat.DOCUMENT_MULTI,
}


class DecoderKind(str, Enum):
    """Which decoder strategy produced a document."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


def validate_quality(quality: object) -> int:
    """Return *quality* as an int in ``[1, 100]`` or raise :class:`ValidationError`."""

    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValidationError(f"Quality must be an integer, got {quality!r}")
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise ValidationError(
            f"Quality must be between {MIN_QUALITY} and {MAX_QUALITY}, got {quality}"
        )
    return quality


@dataclass(frozen=True)
class ConversionRequest:
    """
    Validated caller configuration.

    Attributes:
        output_format: Requested output container
        quality: JPEG quality in ``[1, 100]``
        compress: Re-encode pages as JPEG before building a PDF
    """
    output_format: OutputFormat
    quality: int
    compress: bool = True

    @classmethod
    def build(
        cls,
        output_format: "str | OutputFormat | None",
        quality: object,
        compress: bool = True,
    ) -> "ConversionRequest":
        return cls(
            output_format=OutputFormat.parse(output_format),
            quality=validate_quality(quality),
            compress=bool(compress),
        )


class PageRaster:
    """
    One decoded frame of a source document.

    The pixel data is produced lazily by the decoder and handed out once
    through :meth:`take`. After that the raster is consumed and keeps no
    reference to the pixels.
    """

    __slots__ = ("_index", "_width", "_height", "_mode", "_decoder", "_dpi", "_loader")

    def __init__(
        self,
        index: int,
        width: int,
        height: int,
        mode: str,
        decoder: DecoderKind,
        loader: Callable[[], Image.Image],
        *,
        dpi: Optional[Tuple[float, float]] = None,
    ) -> None:
        self._index = index
        self._width = width
        self._height = height
        self._mode = mode
        self._decoder = decoder
        self._dpi = dpi
        self._loader: Optional[Callable[[], Image.Image]] = loader

    @property
    def index(self) -> int:
        return self._index

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> Tuple[int, int]:
        return self._width, self._height

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def decoder(self) -> DecoderKind:
        return self._decoder

    @property
    def dpi(self) -> Optional[Tuple[float, float]]:
        return self._dpi

    @property
    def uncompressed_size(self) -> int:
        try:
            bands = Image.getmodebands(self._mode)
        except (KeyError, ValueError):
            bands = 3
        return self._width * self._height * bands

    @property
    def consumed(self) -> bool:
        return self._loader is None

    def take(self) -> Image.Image:
        """Decode and hand over the page pixels; the raster is consumed afterwards."""

        loader = self._loader
        if loader is None:
            raise FormatError(
                f"Page {self._index + 1} has already been consumed", page_index=self._index
            )
        self._loader = None
        return loader()

    def release(self) -> None:
        self._loader = None

    def __repr__(self) -> str:
        return (
            f"PageRaster(index={self._index}, size={self._width}x{self._height}, "
            f"mode={self._mode!r}, decoder={self._decoder.value}, consumed={self.consumed})"
        )


class SourceDocument:
    """Ordered, non-empty sequence of :class:`PageRaster` decoded from input bytes."""

    def __init__(
        self,
        pages: Sequence[PageRaster],
        *,
        decoder: DecoderKind,
        decoder_name: str,
        input_size: int,
        closer: Optional[Callable[[], None]] = None,
        fallback_reason: Optional["DecodeErrorKind"] = None,
    ) -> None:
        if not pages:
            raise FormatError("Document contains no pages")
        self._pages: Tuple[PageRaster, ...] = tuple(pages)
        self.decoder = decoder
        self.decoder_name = decoder_name
        self.input_size = input_size
        self.fallback_reason = fallback_reason
        self._closer = closer
        self._closed = False

    @property
    def pages(self) -> Tuple[PageRaster, ...]:
        return self._pages

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def uncompressed_size(self) -> int:
        return sum(page.uncompressed_size for page in self._pages)

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[PageRaster]:
        return iter(self._pages)

    def __getitem__(self, index: int) -> PageRaster:
        return self._pages[index]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for page in self._pages:
            page.release()
        if self._closer is not None:
            closer, self._closer = self._closer, None
            closer()

    def __enter__(self) -> "SourceDocument":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class CompressionStat:
    """Per-page size record, folded into the aggregate and then dropped."""

    page_index: int
    uncompressed_bytes: int
    compressed_bytes: int


@dataclass(frozen=True)
class CompressionSummary:
    """
    Aggregate size metrics for one conversion.

    Attributes:
        page_count: Pages folded into the aggregate
        total_uncompressed: Sum of raw raster size estimates
        total_compressed: Sum of encoded page sizes
        input_bytes: Size of the source byte stream
        output_bytes: Size of the produced container
        elapsed_seconds: Wall time from start to finish
        detailed: Whether per-page stats were retained
        pages: Retained per-page stats (empty in summary mode)
    """
    page_count: int
    total_uncompressed: int
    total_compressed: int
    input_bytes: int = 0
    output_bytes: int = 0
    elapsed_seconds: float = 0.0
    detailed: bool = True
    pages: Tuple[CompressionStat, ...] = ()

    @property
    def bytes_saved(self) -> int:
        return max(self.total_uncompressed - self.total_compressed, 0)

    @property
    def compression_ratio(self) -> float:
        if self.total_uncompressed == 0:
            return 1.0
        return self.total_compressed / self.total_uncompressed

    @property
    def reduction_percent(self) -> float:
        return (1.0 - self.compression_ratio) * 100.0


@dataclass(frozen=True)
class ConversionOutcome:
    """
    Result of a conversion invocation.

    Attributes:
        success: Whether the conversion succeeded
        message: Human-readable explanation
        pages_converted: Number of pages written to the output
        output_bytes: Encoded JPEG or PDF bytes (empty on failure)
        report: Short summary on success, full diagnostics on failure
        output_format: Requested output format when it could be resolved
        content_type: MIME type of ``output_bytes``
        error_type: Exception class name on failure
        stage: Router state in which the failure happened
        summary: Aggregate compression metrics on success
        output_location: Where the output was written, if anywhere
    """
    success: bool
    message: str
    pages_converted: int = 0
    output_bytes: bytes = b""
    report: str = ""
    output_format: Optional[OutputFormat] = None
    content_type: Optional[str] = None
    error_type: Optional[str] = None
    stage: Optional[str] = None
    summary: Optional[CompressionSummary] = None
    output_location: Optional[str] = None

    def __str__(self) -> str:
        if self.success:
            return f"ConversionOutcome(success=True, pages={self.pages_converted}, bytes={len(self.output_bytes)})"
        return f"ConversionOutcome(success=False, error='{self.message}')"


@dataclass(frozen=True)
class PageInfo:
    index: int
    width: int
    height: int
    mode: str
    dpi: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class DocumentInfo:
    """Page geometry and decoder information for a source document."""

    page_count: int
    input_size: int
    decoder: DecoderKind
    decoder_name: str
    pages: Tuple[PageInfo, ...] = field(default_factory=tuple)

    @property
    def uniform(self) -> bool:
        return len({(page.width, page.height) for page in self.pages}) <= 1


__all__ = [
    "MIN_QUALITY",
    "MAX_QUALITY",
    "OutputFormat",
    "DecoderKind",
    "validate_quality",
    "ConversionRequest",
    "PageRaster",
    "SourceDocument",
    "CompressionStat",
    "CompressionSummary",
    "ConversionOutcome",
    "PageInfo",
    "DocumentInfo",
]
