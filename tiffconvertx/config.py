"""Runtime settings for :mod:`tiffconvertx`."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ValidationError
from .types import validate_quality

_ENV_PREFIX = "TIFFCONVERTX_"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ConverterSettings:
    """
    Behavioural toggles shared by every conversion.

    Attributes:
        default_quality: JPEG quality used when the caller passes none
        detail_threshold: Largest page count whose per-page stats are reported
        enable_fallback: Retry structural decode failures with the secondary decoder
        optimize_jpeg: Ask Pillow for an extra optimisation pass on JPEG output
        progressive_jpeg: Write progressive JPEG streams
        pdf_dpi: Fixed resolution for PDF pages; page DPI is used when unset
        log_level: Level applied by the CLI logging setup
    """
    default_quality: int = 85
    detail_threshold: int = 10
    enable_fallback: bool = True
    optimize_jpeg: bool = False
    progressive_jpeg: bool = False
    pdf_dpi: Optional[float] = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        validate_quality(self.default_quality)
        if self.detail_threshold < 0:
            raise ValidationError("detail_threshold must be >= 0")
        if self.pdf_dpi is not None and self.pdf_dpi <= 0:
            raise ValidationError("pdf_dpi must be a positive number")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConverterSettings":
        """Build settings from ``TIFFCONVERTX_*`` environment variables."""

        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            default_quality=_int_value(env, "DEFAULT_QUALITY", defaults.default_quality),
            detail_threshold=_int_value(env, "DETAIL_THRESHOLD", defaults.detail_threshold),
            enable_fallback=_bool_value(env, "ENABLE_FALLBACK", defaults.enable_fallback),
            optimize_jpeg=_bool_value(env, "OPTIMIZE_JPEG", defaults.optimize_jpeg),
            progressive_jpeg=_bool_value(env, "PROGRESSIVE_JPEG", defaults.progressive_jpeg),
            pdf_dpi=_float_value(env, "PDF_DPI", defaults.pdf_dpi),
            log_level=(env.get(_ENV_PREFIX + "LOG_LEVEL") or defaults.log_level).strip().upper(),
        )


def _raw(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(_ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _bool_value(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = _raw(env, name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValidationError(f"{_ENV_PREFIX}{name} must be a boolean, got '{value}'")


def _int_value(env: Mapping[str, str], name: str, default: int) -> int:
    value = _raw(env, name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValidationError(f"{_ENV_PREFIX}{name} must be an integer, got '{value}'") from exc


def _float_value(env: Mapping[str, str], name: str, default: Optional[float]) -> Optional[float]:
    value = _raw(env, name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValidationError(f"{_ENV_PREFIX}{name} must be a number, got '{value}'") from exc


__all__ = ["ConverterSettings"]
