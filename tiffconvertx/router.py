"""Request validation and pipeline orchestration for :mod:`tiffconvertx`."""

from __future__ import annotations

import dataclasses
import logging
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .assembler import AssembledOutput, DocumentAssembler
from .config import ConverterSettings
from .exceptions import CollaboratorError, TiffConvertXError
from .loader import DocumentLoader
from .stats import (
    ConversionTrace,
    FailureReportBuilder,
    StatisticsBuilder,
    SuccessReportBuilder,
)
from .storage import ObjectLocation, ObjectStorage
from .transcoder import PageTranscoder
from .types import (
    ConversionOutcome,
    ConversionRequest,
    DocumentInfo,
    OutputFormat,
    PageInfo,
)

_LOGGER = logging.getLogger("tiffconvertx.router")


class RouterState(str, Enum):
    VALIDATING = "VALIDATING"
    FETCHING = "FETCHING"
    DECODING = "DECODING"
    SINGLE_PAGE = "SINGLE_PAGE"
    MULTI_PAGE_RAW = "MULTI_PAGE_RAW"
    MULTI_PAGE_COMPRESSED = "MULTI_PAGE_COMPRESSED"
    ASSEMBLING = "ASSEMBLING"
    REPORTING = "REPORTING"
    STORING = "STORING"
    DONE = "DONE"
    FAILED = "FAILED"


_TRANSITIONS: Dict[RouterState, FrozenSet[RouterState]] = {
    RouterState.VALIDATING: frozenset({RouterState.DECODING, RouterState.FETCHING}),
    RouterState.FETCHING: frozenset({RouterState.DECODING}),
    RouterState.DECODING: frozenset(
        {RouterState.SINGLE_PAGE, RouterState.MULTI_PAGE_RAW, RouterState.MULTI_PAGE_COMPRESSED}
    ),
    RouterState.SINGLE_PAGE: frozenset({RouterState.ASSEMBLING}),
    RouterState.MULTI_PAGE_RAW: frozenset({RouterState.ASSEMBLING}),
    RouterState.MULTI_PAGE_COMPRESSED: frozenset({RouterState.ASSEMBLING}),
    RouterState.ASSEMBLING: frozenset({RouterState.REPORTING}),
    RouterState.REPORTING: frozenset({RouterState.DONE, RouterState.STORING}),
    RouterState.STORING: frozenset({RouterState.DONE}),
    RouterState.DONE: frozenset(),
    RouterState.FAILED: frozenset(),
}


class ConversionStateMachine:
    """Tracks one invocation's progress and records every step in a trace."""

    def __init__(self) -> None:
        self.state = RouterState.VALIDATING
        self.trace = ConversionTrace()
        self.trace.record(self.state.value, "request received")

    @property
    def terminal(self) -> bool:
        return self.state in (RouterState.DONE, RouterState.FAILED)

    def advance(self, target: RouterState, message: str = "") -> None:
        allowed = _TRANSITIONS[self.state]
        if target is RouterState.FAILED:
            if self.terminal:
                raise RuntimeError(f"Cannot fail from terminal state {self.state.value}")
        elif target not in allowed:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {target.value}")
        self.state = target
        self.trace.record(target.value, message or "entered")

    def note(self, message: str) -> None:
        self.trace.record(self.state.value, message)


_BRANCHES = {
    (OutputFormat.RASTER_SINGLE, True): RouterState.SINGLE_PAGE,
    (OutputFormat.RASTER_SINGLE, False): RouterState.SINGLE_PAGE,
    (OutputFormat.DOCUMENT_MULTI, True): RouterState.MULTI_PAGE_COMPRESSED,
    (OutputFormat.DOCUMENT_MULTI, False): RouterState.MULTI_PAGE_RAW,
}


class FormatRouter:
    """
    Drive one conversion from raw bytes to a :class:`ConversionOutcome`.

    Parameters are validated before the loader is called. Every failure,
    expected or not, comes back as an unsuccessful outcome carrying a full
    diagnostic report; successful outcomes carry a short summary.
    """

    def __init__(
        self,
        settings: Optional[ConverterSettings] = None,
        *,
        loader: Optional[DocumentLoader] = None,
        transcoder: Optional[PageTranscoder] = None,
        assembler: Optional[DocumentAssembler] = None,
    ) -> None:
        self.settings = settings or ConverterSettings()
        self.loader = loader or DocumentLoader(enable_fallback=self.settings.enable_fallback)
        self.transcoder = transcoder or PageTranscoder(
            optimize=self.settings.optimize_jpeg,
            progressive=self.settings.progressive_jpeg,
        )
        self.assembler = assembler or DocumentAssembler(
            self.transcoder, pdf_dpi=self.settings.pdf_dpi
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def validate(
        self,
        output_format: "str | OutputFormat | None",
        quality: Optional[int] = None,
        compress: bool = True,
    ) -> ConversionRequest:
        if quality is None:
            quality = self.settings.default_quality
        return ConversionRequest.build(output_format, quality, compress)

    def convert(
        self,
        source_bytes: Optional[bytes],
        output_format: "str | OutputFormat | None",
        quality: Optional[int] = None,
        compress: bool = True,
    ) -> ConversionOutcome:
        """Convert *source_bytes* into a JPEG or PDF."""

        machine = ConversionStateMachine()
        request: Optional[ConversionRequest] = None
        try:
            request = self.validate(output_format, quality, compress)
            outcome = self._run(machine, request, source_bytes)
            machine.advance(RouterState.DONE)
            return outcome
        except Exception as exc:
            return self._failure(machine, exc, request)

    def convert_object(
        self,
        storage: ObjectStorage,
        bucket: str,
        source_key: str,
        output_key: str,
        output_format: "str | OutputFormat | None",
        quality: Optional[int] = None,
        compress: bool = True,
    ) -> ConversionOutcome:
        """Fetch *source_key*, convert it and store the result at *output_key*."""

        machine = ConversionStateMachine()
        request: Optional[ConversionRequest] = None
        try:
            source = ObjectLocation(bucket, source_key).validate()
            target = ObjectLocation(bucket, output_key).validate()
            request = self.validate(output_format, quality, compress)

            machine.advance(RouterState.FETCHING, f"fetching {source}")
            data = _call_collaborator(storage.fetch, source)

            outcome = self._run(machine, request, data)

            machine.advance(
                RouterState.STORING, f"storing {len(outcome.output_bytes)} bytes at {target}"
            )
            written = _call_collaborator(
                storage.store, target, outcome.output_bytes, request.output_format.content_type
            )
            machine.advance(RouterState.DONE)
            return dataclasses.replace(outcome, output_location=str(written))
        except Exception as exc:
            return self._failure(machine, exc, request)

    def describe(self, source_bytes: Optional[bytes]) -> DocumentInfo:
        """Decode *source_bytes* and report page geometry without converting."""

        with self.loader.load(source_bytes) as document:
            return DocumentInfo(
                page_count=document.page_count,
                input_size=document.input_size,
                decoder=document.decoder,
                decoder_name=document.decoder_name,
                pages=tuple(
                    PageInfo(
                        index=page.index,
                        width=page.width,
                        height=page.height,
                        mode=page.mode,
                        dpi=page.dpi,
                    )
                    for page in document
                ),
            )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------
    def _run(
        self,
        machine: ConversionStateMachine,
        request: ConversionRequest,
        source_bytes: Optional[bytes],
    ) -> ConversionOutcome:
        size = len(source_bytes) if isinstance(source_bytes, (bytes, bytearray, memoryview)) else 0
        machine.advance(RouterState.DECODING, f"{size} input bytes")
        stats = StatisticsBuilder(self.settings.detail_threshold).start()

        with self.loader.load(source_bytes) as document:
            machine.note(
                f"decoded {document.page_count} page(s) with {document.decoder_name}"
                + (
                    f" after {document.fallback_reason.value} fallback"
                    if document.fallback_reason is not None
                    else ""
                )
            )
            branch = _BRANCHES[(request.output_format, request.compress)]
            machine.advance(branch, f"quality {request.quality}")

            machine.advance(RouterState.ASSEMBLING, f"{request.output_format.label} container")
            if branch is RouterState.SINGLE_PAGE:
                output = self.assembler.single_raster(document, request.quality, stats)
            else:
                output = self.assembler.paginated(
                    document,
                    stats,
                    compress=request.compress,
                    quality=request.quality,
                )

            machine.advance(RouterState.REPORTING, f"{len(output.data)} output bytes")
            summary = stats.finish(input_bytes=document.input_size, output_bytes=len(output.data))
            report = SuccessReportBuilder(
                summary,
                request,
                decoder=document.decoder,
                decoder_name=document.decoder_name,
                source_pages=document.page_count,
            ).build()

        _LOGGER.info(
            "Converted %d of %d page(s) to %s (%d bytes)",
            output.pages_written,
            output.source_pages,
            request.output_format.label,
            len(output.data),
        )
        return ConversionOutcome(
            success=True,
            message=_success_message(request, output),
            pages_converted=output.pages_written,
            output_bytes=output.data,
            report=report,
            output_format=request.output_format,
            content_type=request.output_format.content_type,
            summary=summary,
        )

    def _failure(
        self,
        machine: ConversionStateMachine,
        exc: Exception,
        request: Optional[ConversionRequest],
    ) -> ConversionOutcome:
        stage = machine.state
        if isinstance(exc, TiffConvertXError):
            message = exc.message
            _LOGGER.warning("Conversion failed during %s: %s", stage.value, message)
        else:
            message = f"Conversion error: {exc}"
            _LOGGER.exception("Unexpected failure during %s", stage.value)
        if not machine.terminal:
            machine.advance(RouterState.FAILED, f"{type(exc).__name__}: {exc}")
        report = FailureReportBuilder(machine.trace, stage.value, exc).build()
        return ConversionOutcome(
            success=False,
            message=message,
            report=report,
            output_format=request.output_format if request else None,
            error_type=type(exc).__name__,
            stage=stage.value,
        )


def _call_collaborator(operation, *args):
    try:
        return operation(*args)
    except CollaboratorError:
        raise
    except Exception as exc:
        raise CollaboratorError(str(exc) or type(exc).__name__, kind=type(exc).__name__) from exc


def _success_message(request: ConversionRequest, output: AssembledOutput) -> str:
    size = len(output.data)
    if request.output_format is OutputFormat.RASTER_SINGLE:
        if output.truncated:
            return (
                f"Converted first page of {output.source_pages}-page document to JPEG "
                f"(quality: {request.quality}, size: {size} bytes). "
                f"Only the first of {output.source_pages} pages was converted."
            )
        return (
            f"Converted single-page document to JPEG "
            f"(quality: {request.quality}, size: {size} bytes)"
        )
    if request.compress:
        detail = f"compressed, quality: {request.quality}"
    else:
        detail = "uncompressed"
    return (
        f"Converted {output.pages_written}-page document to PDF "
        f"({detail}, size: {size} bytes)"
    )


def convert(
    source_bytes: Optional[bytes],
    output_format: "str | OutputFormat | None",
    quality: Optional[int] = None,
    compress: bool = True,
    *,
    settings: Optional[ConverterSettings] = None,
) -> ConversionOutcome:
    """Convert *source_bytes* with a router built from *settings*."""

    return FormatRouter(settings).convert(source_bytes, output_format, quality, compress)


__all__ = ["RouterState", "ConversionStateMachine", "FormatRouter", "convert"]
