"""Data models package."""

from .binarization import BinarizationConfig, GENERIC, LCD, PRESETS
from .capture_profile import CaptureProfile, get_profile, DEFAULT_PROFILES
from .outcome import ReadingOutcome, ReadingStatus, STATUS_MESSAGES
from .raster import RasterImage, Rect
from .reading import (
    ExtractedReading,
    ExtractionMode,
    NoReading,
    Reading,
    RecognitionResult,
)

__all__ = [
    "BinarizationConfig",
    "GENERIC",
    "LCD",
    "PRESETS",
    "CaptureProfile",
    "get_profile",
    "DEFAULT_PROFILES",
    "ReadingOutcome",
    "ReadingStatus",
    "STATUS_MESSAGES",
    "RasterImage",
    "Rect",
    "ExtractedReading",
    "ExtractionMode",
    "NoReading",
    "Reading",
    "RecognitionResult",
]
