"""
Service settings read from environment variables.
"""
import logging
import math
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: '{raw}', using {default}")
        return default


def _get_positive_float(name: str, default: float) -> float:
    value = _get_float(name, default)
    if not math.isfinite(value) or value <= 0:
        logger.warning(f"{name} must be a positive number, got {value}, using {default}")
        return default
    return value


@dataclass(frozen=True)
class Settings:
    # OCR
    ocr_engine: str  # tesseract | easyocr
    tesseract_cmd: Optional[str]
    recognition_timeout: float  # seconds, 0 = no limit
    min_confidence: float  # below this the reading is flagged, not dropped

    # Preprocessing
    default_profile: str  # lcd | generic
    upscale_factor: float

    # General
    log_level: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            ocr_engine=(os.getenv("OCR_ENGINE") or "tesseract").strip().lower(),
            tesseract_cmd=(os.getenv("TESSERACT_CMD") or "").strip() or None,
            recognition_timeout=max(0.0, _get_float("RECOGNITION_TIMEOUT", 0.0)),
            min_confidence=_get_float("MIN_CONFIDENCE", 0.0),
            default_profile=(os.getenv("DEFAULT_PROFILE") or "lcd").strip().lower(),
            upscale_factor=_get_positive_float("UPSCALE_FACTOR", 2.5),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        )
