"""
Capture profiles for different meter displays.
Each profile ties together the binarization preset, the OCR character
whitelist and the extraction strategy used for that kind of meter.
"""
from dataclasses import dataclass

from meter_reader.models.binarization import BinarizationConfig, GENERIC, LCD
from meter_reader.models.reading import ExtractionMode


@dataclass(frozen=True)
class CaptureProfile:
    """Processing settings for one kind of meter display."""

    name: str
    description: str
    binarization: BinarizationConfig
    extraction_mode: ExtractionMode
    whitelist: str  # characters the OCR engine may return

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "extraction_mode": self.extraction_mode.value,
            "whitelist": self.whitelist,
            "binarization": {
                "luma_weights": list(self.binarization.luma_weights),
                "contrast": self.binarization.contrast,
                "threshold": self.binarization.threshold,
            },
        }


DEFAULT_PROFILES = {
    "lcd": CaptureProfile(
        name="lcd",
        description="LCD segment display, 7 integer digits and one decimal",
        binarization=LCD,
        extraction_mode=ExtractionMode.LCD,
        whitelist="0123456789.,",
    ),
    "generic": CaptureProfile(
        name="generic",
        description="Printed or mechanical counter, any decimal reading",
        binarization=GENERIC,
        extraction_mode=ExtractionMode.LENIENT,
        whitelist="0123456789.",
    ),
}


def get_profile(name: str) -> CaptureProfile:
    """
    Get capture profile by name (case-insensitive).

    Raises:
        ValueError: if no profile has that name
    """
    key = (name or "").strip().lower()
    try:
        return DEFAULT_PROFILES[key]
    except KeyError:
        raise ValueError(
            f"Unknown profile '{name}'. Must be one of: {', '.join(DEFAULT_PROFILES)}"
        ) from None
