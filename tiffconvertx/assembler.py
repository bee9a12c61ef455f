"""Output container assembly for :mod:`tiffconvertx`."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import img2pdf
from pypdf import PdfReader

from .exceptions import AssemblyError, FormatError
from .stats import StatisticsBuilder
from .transcoder import PageTranscoder, flatten_alpha, has_alpha, normalize_for_jpeg
from .types import CompressionStat, OutputFormat, PageRaster, SourceDocument

_LOGGER = logging.getLogger("tiffconvertx.assembler")

JPEG_MAGIC = b"\xff\xd8"
PRODUCER = "tiffconvertx"
_LOSSLESS_MODES = {"1", "L", "P", "RGB"}


@dataclass(frozen=True)
class AssembledOutput:
    """Bytes of a finished container and how many pages went into it."""

    data: bytes
    output_format: OutputFormat
    pages_written: int
    source_pages: int

    @property
    def truncated(self) -> bool:
        return self.pages_written < self.source_pages


def encode_lossless(page: PageRaster) -> bytes:
    """Take ownership of *page* pixels and encode them as PNG without loss."""

    image = page.take()
    prepared = image
    try:
        try:
            if has_alpha(image):
                prepared = flatten_alpha(image)
            elif image.mode not in _LOSSLESS_MODES:
                prepared = normalize_for_jpeg(image)
        except (OSError, ValueError) as exc:
            raise FormatError(
                f"Page {page.index + 1} could not be normalized from mode {image.mode}: {exc}",
                page_index=page.index,
            ) from exc
        options: Dict[str, Any] = {}
        if page.dpi:
            options["dpi"] = page.dpi
        buffer = io.BytesIO()
        prepared.save(buffer, format="PNG", **options)
        return buffer.getvalue()
    finally:
        if prepared is not image:
            prepared.close()
        image.close()


class DocumentAssembler:
    """
    Combine page rasters into a JPEG or a PDF.

    Page order in every container follows the :class:`SourceDocument`
    order and each page produced is pushed into the statistics builder as
    soon as it exists.
    """

    def __init__(
        self,
        transcoder: Optional[PageTranscoder] = None,
        *,
        pdf_dpi: Optional[float] = None,
        producer: str = PRODUCER,
    ) -> None:
        self.transcoder = transcoder or PageTranscoder()
        self.pdf_dpi = pdf_dpi
        self.producer = producer

    def single_raster(
        self,
        document: SourceDocument,
        quality: int,
        stats: StatisticsBuilder,
    ) -> AssembledOutput:
        """Write page 0 of *document* as a JPEG; further pages are ignored."""

        if document.page_count > 1:
            _LOGGER.info(
                "Document has %d pages; only the first is written to JPEG", document.page_count
            )
        transcoded = self.transcoder.transcode(document[0], quality)
        stats.add(transcoded.stat)

        data = transcoded.data
        if not data:
            raise AssemblyError("JPEG encoder produced no output bytes")
        if not data.startswith(JPEG_MAGIC):
            raise AssemblyError("JPEG encoder produced an invalid stream")
        return AssembledOutput(
            data=data,
            output_format=OutputFormat.RASTER_SINGLE,
            pages_written=1,
            source_pages=document.page_count,
        )

    def paginated(
        self,
        document: SourceDocument,
        stats: StatisticsBuilder,
        *,
        compress: bool,
        quality: int,
    ) -> AssembledOutput:
        """Write every page of *document*, in order, into one PDF."""

        buffers: List[bytes] = []
        for page in document:
            if compress:
                transcoded = self.transcoder.transcode(page, quality)
                buffers.append(transcoded.data)
                stats.add(transcoded.stat)
            else:
                uncompressed = page.uncompressed_size
                data = encode_lossless(page)
                buffers.append(data)
                stats.add(
                    CompressionStat(
                        page_index=page.index,
                        uncompressed_bytes=uncompressed,
                        compressed_bytes=len(data),
                    )
                )

        pdf_bytes = self._write_pdf(buffers)
        if not pdf_bytes:
            raise AssemblyError("PDF writer produced no output bytes")
        self._verify_page_count(pdf_bytes, len(buffers))
        _LOGGER.debug("Assembled %d-page PDF of %d bytes", len(buffers), len(pdf_bytes))
        return AssembledOutput(
            data=pdf_bytes,
            output_format=OutputFormat.DOCUMENT_MULTI,
            pages_written=len(buffers),
            source_pages=document.page_count,
        )

    def _write_pdf(self, buffers: List[bytes]) -> bytes:
        options: Dict[str, Any] = {"producer": self.producer}
        if self.pdf_dpi:
            options["layout_fun"] = img2pdf.get_fixed_dpi_layout_fun((self.pdf_dpi, self.pdf_dpi))
        try:
            return img2pdf.convert(buffers, **options) or b""
        except Exception as exc:
            raise AssemblyError(f"PDF writer rejected a page: {exc}") from exc

    @staticmethod
    def _verify_page_count(pdf_bytes: bytes, expected: int) -> None:
        try:
            written = len(PdfReader(io.BytesIO(pdf_bytes)).pages)
        except Exception as exc:
            raise AssemblyError(f"Assembled PDF could not be parsed: {exc}") from exc
        if written != expected:
            raise AssemblyError(
                f"Assembled PDF has {written} page(s) but {expected} were processed"
            )


__all__ = ["AssembledOutput", "DocumentAssembler", "encode_lossless"]
