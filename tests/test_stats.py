from __future__ import annotations

import pytest

from tiffconvertx.exceptions import CollaboratorError, DecodeError, FormatError
from tiffconvertx.decoders import DecodeErrorKind
from tiffconvertx.stats import (
    ConversionTrace,
    FailureReportBuilder,
    StatisticsBuilder,
    SuccessReportBuilder,
)
from tiffconvertx.types import CompressionStat, ConversionRequest, DecoderKind


def _feed(builder: StatisticsBuilder, pages: int) -> StatisticsBuilder:
    for index in range(pages):
        builder.add(CompressionStat(index, uncompressed_bytes=30_000, compressed_bytes=3_000))
    return builder


def _report(pages: int, output_format: str = "pdf") -> str:
    builder = _feed(StatisticsBuilder().start(), pages)
    summary = builder.finish(input_bytes=pages * 30_000, output_bytes=pages * 3_100)
    return SuccessReportBuilder(
        summary,
        ConversionRequest.build(output_format, 85),
        decoder=DecoderKind.PRIMARY,
        decoder_name="pillow",
        source_pages=pages,
    ).build()


def test_builder_keeps_details_up_to_threshold() -> None:
    builder = _feed(StatisticsBuilder(detail_threshold=3), 3)

    assert builder.mode == StatisticsBuilder.DETAILED
    assert [stat.page_index for stat in builder.retained] == [0, 1, 2]
    summary = builder.finish()
    assert summary.detailed
    assert len(summary.pages) == 3


def test_builder_switches_to_summary_past_threshold() -> None:
    builder = _feed(StatisticsBuilder(detail_threshold=3), 4)

    assert builder.mode == StatisticsBuilder.SUMMARY
    assert builder.retained == ()
    _feed(builder, 2)
    assert builder.mode == StatisticsBuilder.SUMMARY

    summary = builder.finish(input_bytes=10, output_bytes=20)
    assert not summary.detailed
    assert summary.pages == ()
    assert summary.page_count == 6
    assert summary.total_uncompressed == 6 * 30_000
    assert summary.total_compressed == 6 * 3_000
    assert (summary.input_bytes, summary.output_bytes) == (10, 20)


def test_builder_rejects_negative_threshold() -> None:
    with pytest.raises(ValueError):
        StatisticsBuilder(detail_threshold=-1)


def test_zero_threshold_never_keeps_details() -> None:
    summary = _feed(StatisticsBuilder(detail_threshold=0), 1).finish()
    assert not summary.detailed


def test_success_report_lists_pages_when_detailed() -> None:
    report = _report(3)

    assert report.startswith("Status: SUCCESS")
    assert "Output: PDF (compressed, quality 85)" in report
    assert "Pages: 3 of 3" in report
    assert "Decoder: primary (pillow)" in report
    assert "Size reduction: 90.0%" in report
    assert "  page 3: 29.3 KB -> 2.9 KB" in report


def test_single_page_report_mode() -> None:
    assert "Output: JPEG (single page, quality 85)" in _report(1, "jpeg")


@pytest.mark.parametrize("pages", [5, 50, 500])
def test_success_report_stays_small(pages: int) -> None:
    report = _report(pages)

    assert len(report.encode("utf-8")) < 2048
    assert len(report.splitlines()) <= 10 + StatisticsBuilder().detail_threshold


def test_summary_report_has_no_page_lines() -> None:
    report = _report(50)
    assert "page 1:" not in report
    assert "Pages: 50 of 50" in report


def test_trace_lines_are_timestamped() -> None:
    trace = ConversionTrace()
    trace.record("VALIDATING", "request received")
    trace.record("DECODING", "12 input bytes")

    assert len(trace.lines) == 2
    assert trace.lines[0].startswith("[+")
    assert trace.lines[1].endswith("DECODING: 12 input bytes")
    assert trace.elapsed() >= 0


def test_failure_report_includes_cause_and_trace() -> None:
    trace = ConversionTrace()
    trace.record("DECODING", "entered")
    cause = DecodeError(DecodeErrorKind.TRUNCATED, "short read", decoder="pillow")
    try:
        raise FormatError("Invalid image format: short read", page_index=1) from cause
    except FormatError as exc:
        report = FailureReportBuilder(trace, "DECODING", exc).build()

    assert report.startswith("Status: FAILED")
    assert "Stage: DECODING" in report
    assert "Error type: FormatError" in report
    assert "Page: 2" in report
    assert "Cause: DecodeError: short read" in report
    assert "Trace:" in report
    assert "DECODING: entered" in report


def test_failure_report_shows_error_kind() -> None:
    report = FailureReportBuilder(
        ConversionTrace(), "FETCHING", CollaboratorError("missing", kind="not_found")
    ).build()
    assert "Kind: not_found" in report
