"""Path-based helpers built on :class:`~tiffconvertx.router.FormatRouter`."""

from __future__ import annotations

import dataclasses
import logging
import os
from pathlib import Path
from typing import Callable, List, Optional

from .exceptions import CollaboratorError, FormatError, ValidationError
from .router import FormatRouter
from .storage import FileSystemStorage, ObjectLocation
from .types import ConversionOutcome, OutputFormat, validate_quality

_LOGGER = logging.getLogger("tiffconvertx.files")

_SUFFIX_FORMATS = {
    ".jpg": OutputFormat.RASTER_SINGLE,
    ".jpeg": OutputFormat.RASTER_SINGLE,
    ".pdf": OutputFormat.DOCUMENT_MULTI,
}


def infer_output_format(path: "str | os.PathLike[str]") -> OutputFormat:
    """Pick the output format from the suffix of *path*."""

    suffix = Path(path).suffix.lower()
    try:
        return _SUFFIX_FORMATS[suffix]
    except KeyError:
        raise ValidationError(
            f"Cannot infer output format from '{suffix or path}'. Use .jpg, .jpeg or .pdf"
        ) from None


def convert_file(
    input_path: "str | os.PathLike[str]",
    output_path: "str | os.PathLike[str]",
    *,
    output_format: "str | OutputFormat | None" = None,
    quality: Optional[int] = None,
    compress: bool = True,
    router: Optional[FormatRouter] = None,
) -> ConversionOutcome:
    """
    Convert the file at *input_path* and write the result to *output_path*.

    The output format defaults to the one implied by the output suffix.
    Failures, including a missing input file, come back as unsuccessful
    outcomes rather than exceptions.
    """

    router = router or FormatRouter()
    if not str(input_path).strip():
        return _failed("Input path cannot be empty")
    if not str(output_path).strip():
        return _failed("Output path cannot be empty")

    source = Path(input_path).expanduser().resolve()
    destination = Path(output_path).expanduser().resolve()
    if not source.is_file():
        return _failed(f"Input file not found: {source}")

    if output_format is None:
        try:
            output_format = infer_output_format(destination)
        except ValidationError as exc:
            return _failed(exc.message)

    outcome = router.convert(source.read_bytes(), output_format, quality, compress)
    if not outcome.success:
        return outcome

    # the output directory acts as the bucket of a local object store
    storage = FileSystemStorage(destination.parent)
    try:
        storage.store(ObjectLocation(".", destination.name), outcome.output_bytes, outcome.content_type or "")
    except CollaboratorError as exc:
        return _failed(exc.message, error_type="CollaboratorError", stage="STORING")
    _LOGGER.debug("Wrote %s from %s", destination, source)
    return dataclasses.replace(outcome, output_location=str(destination))


def export_pages(
    input_path: "str | os.PathLike[str]",
    output_dir: "str | os.PathLike[str]",
    *,
    quality: Optional[int] = None,
    prefix: Optional[str] = None,
    router: Optional[FormatRouter] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> List[Path]:
    """
    Write every page of *input_path* as its own JPEG.

    Files are named ``<prefix>_page<N>.jpg`` (``prefix`` defaults to the
    input stem) and returned in page order.

    Raises:
        ValidationError: If the quality is out of range.
        FormatError: If the input cannot be decoded.
    """

    router = router or FormatRouter()
    source = Path(input_path).expanduser().resolve()
    if not source.is_file():
        raise FormatError(f"Input file not found: {source}")
    quality = validate_quality(router.settings.default_quality if quality is None else quality)
    stem = prefix or source.stem

    output_root = Path(output_dir).expanduser().resolve()
    output_root.mkdir(parents=True, exist_ok=True)
    storage = FileSystemStorage(output_root)

    created: List[Path] = []
    with router.loader.load(source.read_bytes()) as document:
        total = document.page_count
        for page in document:
            transcoded = router.transcoder.transcode(page, quality)
            name = f"{stem}_page{page.index + 1}.jpg"
            storage.store(ObjectLocation(".", name), transcoded.data, "image/jpeg")
            created.append(output_root / name)
            if progress_callback:
                progress_callback(page.index + 1, total)
    _LOGGER.info("Exported %d page(s) from %s to %s", len(created), source, output_root)
    return created


def _failed(
    message: str,
    *,
    error_type: str = "ValidationError",
    stage: str = "VALIDATING",
) -> ConversionOutcome:
    return ConversionOutcome(
        success=False,
        message=message,
        report=f"Status: FAILED\nStage: {stage}\nError type: {error_type}\nError: {message}",
        error_type=error_type,
        stage=stage,
    )


__all__ = ["convert_file", "export_pages", "infer_output_format"]
