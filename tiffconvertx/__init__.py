"""
tiffconvertx - Convert multi-page TIFF documents to JPEG or PDF.

The library decodes a multi-page raster document, optionally re-encodes
every page as JPEG at a chosen quality, and assembles either a single JPEG
(first page) or a PDF holding every page in order. Size statistics and a
short report accompany every successful conversion; failures come back as
structured outcomes with a full diagnostic trace.

Quick Start:
    >>> from tiffconvertx import convert
    >>> outcome = convert(tiff_bytes, "pdf", quality=85, compress=True)
    >>> outcome.success, outcome.pages_converted

Main Classes:
    - FormatRouter: Validates requests and drives the pipeline
    - DocumentLoader: Primary decoder with one structural fallback
    - PageTranscoder: Per-page JPEG encoding
    - DocumentAssembler: JPEG and PDF output containers
    - StatisticsBuilder: Bounded compression statistics

Exceptions:
    - TiffConvertXError: Base exception
    - ValidationError: Malformed request or empty input
    - FormatError: Undecodable container or page
    - AssemblyError: Empty or inconsistent output container
    - CollaboratorError: Object storage failure

For CLI usage, use the 'tiffconvertx' command after installation.
"""

# Core classes
from tiffconvertx.assembler import AssembledOutput, DocumentAssembler
from tiffconvertx.config import ConverterSettings
from tiffconvertx.decoders import DecodeErrorKind, PillowDecoder, PyMuPDFDecoder
from tiffconvertx.loader import DocumentLoader
from tiffconvertx.router import FormatRouter, RouterState, convert
from tiffconvertx.stats import StatisticsBuilder
from tiffconvertx.storage import FileSystemStorage, ObjectLocation, ObjectStorage
from tiffconvertx.transcoder import PageTranscoder, TranscodedPage

# Data types
from tiffconvertx.types import (
    CompressionStat,
    CompressionSummary,
    ConversionOutcome,
    ConversionRequest,
    DecoderKind,
    DocumentInfo,
    OutputFormat,
    PageRaster,
    SourceDocument,
)

# Exceptions
from tiffconvertx.exceptions import (
    TiffConvertXError,
    ValidationError,
    FormatError,
    DecodeError,
    AssemblyError,
    CollaboratorError,
)

# Path helpers
from tiffconvertx.files import convert_file, export_pages

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Main classes
    "FormatRouter",
    "RouterState",
    "DocumentLoader",
    "PillowDecoder",
    "PyMuPDFDecoder",
    "DecodeErrorKind",
    "PageTranscoder",
    "TranscodedPage",
    "DocumentAssembler",
    "AssembledOutput",
    "StatisticsBuilder",
    "ConverterSettings",
    "ObjectStorage",
    "ObjectLocation",
    "FileSystemStorage",
    # Data types
    "CompressionStat",
    "CompressionSummary",
    "ConversionOutcome",
    "ConversionRequest",
    "DecoderKind",
    "DocumentInfo",
    "OutputFormat",
    "PageRaster",
    "SourceDocument",
    # Exceptions
    "TiffConvertXError",
    "ValidationError",
    "FormatError",
    "DecodeError",
    "AssemblyError",
    "CollaboratorError",
    # Functions
    "convert",
    "convert_file",
    "export_pages",
    # Version info
    "__version__",
]
