from __future__ import annotations

import pytest

from tiffconvertx.config import ConverterSettings
from tiffconvertx.exceptions import ValidationError


def test_defaults() -> None:
    settings = ConverterSettings()

    assert settings.default_quality == 85
    assert settings.detail_threshold == 10
    assert settings.enable_fallback is True
    assert settings.optimize_jpeg is False
    assert settings.progressive_jpeg is False
    assert settings.pdf_dpi is None
    assert settings.log_level == "WARNING"


def test_from_empty_environment_matches_defaults() -> None:
    assert ConverterSettings.from_env({}) == ConverterSettings()


def test_from_env_reads_every_setting() -> None:
    settings = ConverterSettings.from_env(
        {
            "TIFFCONVERTX_DEFAULT_QUALITY": "60",
            "TIFFCONVERTX_DETAIL_THRESHOLD": "25",
            "TIFFCONVERTX_ENABLE_FALLBACK": "off",
            "TIFFCONVERTX_OPTIMIZE_JPEG": "yes",
            "TIFFCONVERTX_PROGRESSIVE_JPEG": "1",
            "TIFFCONVERTX_PDF_DPI": "150",
            "TIFFCONVERTX_LOG_LEVEL": "debug",
        }
    )

    assert settings == ConverterSettings(
        default_quality=60,
        detail_threshold=25,
        enable_fallback=False,
        optimize_jpeg=True,
        progressive_jpeg=True,
        pdf_dpi=150.0,
        log_level="DEBUG",
    )


def test_blank_values_fall_back_to_defaults() -> None:
    settings = ConverterSettings.from_env({"TIFFCONVERTX_DEFAULT_QUALITY": "  "})
    assert settings.default_quality == 85


@pytest.mark.parametrize(
    "name, value",
    [
        ("TIFFCONVERTX_DEFAULT_QUALITY", "high"),
        ("TIFFCONVERTX_DEFAULT_QUALITY", "0"),
        ("TIFFCONVERTX_ENABLE_FALLBACK", "maybe"),
        ("TIFFCONVERTX_PDF_DPI", "-72"),
        ("TIFFCONVERTX_DETAIL_THRESHOLD", "-1"),
    ],
)
def test_invalid_environment_values(name: str, value: str) -> None:
    with pytest.raises(ValidationError):
        ConverterSettings.from_env({name: value})
