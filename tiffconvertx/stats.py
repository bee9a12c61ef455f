"""Compression statistics and report construction for :mod:`tiffconvertx`."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .exceptions import TiffConvertXError
from .types import CompressionStat, CompressionSummary, ConversionRequest, DecoderKind, OutputFormat
from .utils import Stopwatch, format_file_size

DEFAULT_DETAIL_THRESHOLD = 10


class StatisticsBuilder:
    """
    Fold per-page :class:`CompressionStat` records into one aggregate.

    The builder starts in *detailed* mode and keeps every record. As soon
    as the page count exceeds ``detail_threshold`` it drops the retained
    records and switches to *summary* mode for good, so memory and report
    size stay bounded however many pages are added.
    """

    DETAILED = "detailed"
    SUMMARY = "summary"

    def __init__(self, detail_threshold: int = DEFAULT_DETAIL_THRESHOLD) -> None:
        if detail_threshold < 0:
            raise ValueError("detail_threshold must be >= 0")
        self.detail_threshold = detail_threshold
        self.mode = self.DETAILED
        self.page_count = 0
        self.total_uncompressed = 0
        self.total_compressed = 0
        self._pages: List[CompressionStat] = []
        self._clock = Stopwatch()

    def start(self) -> "StatisticsBuilder":
        self._clock = Stopwatch()
        return self

    def add(self, stat: CompressionStat) -> None:
        self.page_count += 1
        self.total_uncompressed += stat.uncompressed_bytes
        self.total_compressed += stat.compressed_bytes
        if self.mode == self.DETAILED:
            if self.page_count > self.detail_threshold:
                self.mode = self.SUMMARY
                self._pages = []
            else:
                self._pages.append(stat)

    @property
    def retained(self) -> Sequence[CompressionStat]:
        return tuple(self._pages)

    def finish(self, *, input_bytes: int = 0, output_bytes: int = 0) -> CompressionSummary:
        detailed = self.mode == self.DETAILED
        return CompressionSummary(
            page_count=self.page_count,
            total_uncompressed=self.total_uncompressed,
            total_compressed=self.total_compressed,
            input_bytes=input_bytes,
            output_bytes=output_bytes,
            elapsed_seconds=self._clock.elapsed(),
            detailed=detailed,
            pages=tuple(self._pages) if detailed else (),
        )


class ConversionTrace:
    """Timestamped step log kept for failure diagnostics."""

    def __init__(self) -> None:
        self._clock = Stopwatch()
        self._lines: List[str] = []

    def record(self, stage: str, message: str) -> None:
        self._lines.append(f"[+{self._clock.elapsed():.3f}s] {stage}: {message}")

    def elapsed(self) -> float:
        return self._clock.elapsed()

    @property
    def lines(self) -> Sequence[str]:
        return tuple(self._lines)


class SuccessReportBuilder:
    """Fixed-shape summary emitted for successful conversions."""

    def __init__(
        self,
        summary: CompressionSummary,
        request: ConversionRequest,
        *,
        decoder: DecoderKind,
        decoder_name: str,
        source_pages: int,
    ) -> None:
        self.summary = summary
        self.request = request
        self.decoder = decoder
        self.decoder_name = decoder_name
        self.source_pages = source_pages

    def build(self) -> str:
        summary = self.summary
        request = self.request
        if request.output_format is OutputFormat.DOCUMENT_MULTI:
            mode = "compressed" if request.compress else "uncompressed"
        else:
            mode = "single page"
        lines = [
            "Status: SUCCESS",
            f"Output: {request.output_format.label} ({mode}, quality {request.quality})",
            f"Pages: {summary.page_count} of {self.source_pages}",
            f"Decoder: {self.decoder.value} ({self.decoder_name})",
            f"Input size: {format_file_size(summary.input_bytes)}",
            f"Raster size: {format_file_size(summary.total_uncompressed)}",
            f"Encoded pages: {format_file_size(summary.total_compressed)}",
            f"Output size: {format_file_size(summary.output_bytes)}",
            f"Size reduction: {summary.reduction_percent:.1f}%",
            f"Elapsed: {summary.elapsed_seconds:.3f}s",
        ]
        if summary.detailed:
            for stat in summary.pages:
                lines.append(
                    "  page {0}: {1} -> {2}".format(
                        stat.page_index + 1,
                        format_file_size(stat.uncompressed_bytes),
                        format_file_size(stat.compressed_bytes),
                    )
                )
        return "\n".join(lines)


class FailureReportBuilder:
    """Full diagnostic report emitted for failed conversions."""

    def __init__(
        self,
        trace: ConversionTrace,
        stage: str,
        error: BaseException,
    ) -> None:
        self.trace = trace
        self.stage = stage
        self.error = error

    def build(self) -> str:
        error = self.error
        message = error.message if isinstance(error, TiffConvertXError) else str(error)
        lines = [
            "Status: FAILED",
            f"Stage: {self.stage}",
            f"Error type: {type(error).__name__}",
            f"Error: {message}",
        ]
        page_index: Optional[int] = getattr(error, "page_index", None)
        if page_index is not None:
            lines.append(f"Page: {page_index + 1}")
        kind = getattr(error, "kind", None)
        if kind is not None:
            lines.append(f"Kind: {getattr(kind, 'value', kind)}")
        cause = error.__cause__
        if cause is not None:
            lines.append(f"Cause: {type(cause).__name__}: {cause}")
        lines.append(f"Elapsed: {self.trace.elapsed():.3f}s")
        lines.append("Trace:")
        lines.extend(f"  {line}" for line in self.trace.lines)
        return "\n".join(lines)


__all__ = [
    "DEFAULT_DETAIL_THRESHOLD",
    "StatisticsBuilder",
    "ConversionTrace",
    "SuccessReportBuilder",
    "FailureReportBuilder",
]
