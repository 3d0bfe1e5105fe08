"""
Terminal states of one pipeline run and the message shown for each.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from meter_reader.models.reading import ExtractedReading, Reading, RecognitionResult


class ReadingStatus(str, enum.Enum):
    OK = "ok"
    NO_READING = "no_reading"
    RECOGNITION_FAILED = "recognition_failed"
    INVALID_GEOMETRY = "invalid_geometry"
    INVALID_IMAGE = "invalid_image"
    CONFIGURATION_ERROR = "configuration_error"
    SUPERSEDED = "superseded"


STATUS_MESSAGES = {
    ReadingStatus.OK: "Meter reading recognized",
    ReadingStatus.NO_READING: (
        "No meter reading found in the photo. Try better lighting and keep the "
        "digits inside the frame"
    ),
    ReadingStatus.RECOGNITION_FAILED: "Text recognition failed due to a system error. Please try again",
    ReadingStatus.INVALID_GEOMETRY: "The photo is too small to process. Please retake the photo",
    ReadingStatus.INVALID_IMAGE: "The file could not be read as an image. Please upload a photo",
    ReadingStatus.CONFIGURATION_ERROR: (
        "The service is misconfigured and cannot process photos. Please contact the administrator"
    ),
    ReadingStatus.SUPERSEDED: "A newer photo was submitted, this result was discarded",
}


@dataclass(frozen=True)
class ReadingOutcome:
    """Result of one pipeline run, whatever way it ended."""

    status: ReadingStatus
    reading: Optional[ExtractedReading] = None
    recognition: Optional[RecognitionResult] = None
    detail: Optional[str] = None
    sequence: int = 0

    @property
    def message(self) -> str:
        return STATUS_MESSAGES[self.status]

    @property
    def ok(self) -> bool:
        return self.status is ReadingStatus.OK and isinstance(self.reading, Reading)
