"""
Values produced by recognition and extraction.
"""
import enum
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class RecognitionResult:
    """Raw text and confidence (0-100) returned by the OCR engine."""

    raw_text: str
    confidence: float
    engine: str = "unknown"


@dataclass(frozen=True)
class Reading:
    """A meter reading split into integer and optional fractional digits."""

    integer_part: str
    fractional_part: Optional[str] = None

    @property
    def value(self) -> str:
        if self.fractional_part:
            return f"{self.integer_part}.{self.fractional_part}"
        return self.integer_part

    def as_float(self) -> float:
        return float(self.value)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class NoReading:
    """Recognition succeeded but the text held nothing that looks like a reading."""

    cleaned_text: str = ""

    def __str__(self) -> str:
        return "No reading detected"


ExtractedReading = Union[Reading, NoReading]


class ExtractionMode(str, enum.Enum):
    """Strategy used to pull a reading out of recognized text."""

    LCD = "lcd"  # exactly 7 integer digits, optional single decimal
    LENIENT = "lenient"  # longest decimal token anywhere in the text
