"""
OCR output normalizer.
Turns raw recognized text into a structured meter reading.

Two strategies are available:

* LCD: exactly seven integer digits and an optional single decimal. Rules are
  tried from the most to the least structured, because engines read digit
  glyphs reliably but often drop or invent the tiny separator glyph.
* Lenient: any decimal token in the text; the longest one wins.
"""
import logging
import re
from typing import Optional

from meter_reader.models.reading import (
    ExtractedReading,
    ExtractionMode,
    NoReading,
    Reading,
    RecognitionResult,
)

logger = logging.getLogger(__name__)

_NOISE = re.compile(r"[^0-9.,]")

# Rule A: 7 digits, explicit separator, 1 digit
_EXACT_SEPARATOR = re.compile(r"(\d{7})[.,](\d)")
# Rule B: 8 digits, separator dropped by the engine; longer runs use the first 8
_IMPLIED_SEPARATOR = re.compile(r"(\d{7})(\d)")
# Rule C: exactly 7 digits, decimal optional
_INTEGER_ONLY = re.compile(r"(?<!\d)(\d{7})(?:[.,](\d))?(?!\d)")

# Lenient mode: counter style "1234.567" first, then any decimal token
_PREFERRED_DECIMAL = re.compile(r"(?<!\d)\d{1,4}\.\d{3}(?!\d)")
_ANY_DECIMAL = re.compile(r"\d+\.\d+")


def clean_text(raw_text: Optional[str]) -> str:
    """Drop every character that is not a digit, comma or period."""
    return _NOISE.sub("", raw_text or "")


def _strip_leading_zeros(digits: str) -> str:
    return digits.lstrip("0") or "0"


def extract_lcd(cleaned: str) -> ExtractedReading:
    """Apply Rules A, B and C in order to already-cleaned text."""
    for rule, pattern in (
        ("exact_separator", _EXACT_SEPARATOR),
        ("implied_separator", _IMPLIED_SEPARATOR),
        ("integer_only", _INTEGER_ONLY),
    ):
        match = pattern.search(cleaned)
        if match:
            integer_part, fractional_part = match.group(1), match.group(2)
            reading = Reading(
                integer_part=_strip_leading_zeros(integer_part),
                fractional_part=fractional_part,
            )
            logger.info(f"LCD rule '{rule}' matched '{match.group(0)}' -> {reading.value}")
            return reading

    logger.warning(f"No 7-digit reading found in cleaned text: '{cleaned}'")
    return NoReading(cleaned_text=cleaned)


def extract_lenient(raw_text: str) -> ExtractedReading:
    """
    Pick the most plausible decimal token from raw text.

    Works on the raw text rather than the cleaned one so that whitespace still
    separates neighbouring numbers.
    """
    text = (raw_text or "").replace(",", ".")

    match = _PREFERRED_DECIMAL.search(text)
    if match:
        token = match.group(0)
    else:
        tokens = _ANY_DECIMAL.findall(text)
        if not tokens:
            logger.warning(f"No decimal token found in text: '{text[:50]}'")
            return NoReading(cleaned_text=clean_text(raw_text))
        # max() keeps the first of equally long tokens
        token = max(tokens, key=len)

    integer_part, fractional_part = token.split(".", 1)
    logger.info(f"Lenient extraction selected token '{token}'")
    return Reading(integer_part=integer_part, fractional_part=fractional_part)


def extract(result: RecognitionResult, mode: ExtractionMode = ExtractionMode.LCD) -> ExtractedReading:
    """
    Extract a meter reading from recognized text.

    Args:
        result: Raw text and confidence from the OCR engine
        mode: Extraction strategy for the kind of meter photographed

    Returns:
        Reading, or NoReading if nothing in the text looks like a reading
    """
    cleaned = clean_text(result.raw_text)
    logger.info(f"Cleaned OCR text: '{cleaned}' (from raw: '{(result.raw_text or '')[:50]}')")

    if not cleaned:
        return NoReading(cleaned_text=cleaned)

    mode = ExtractionMode(mode)
    if mode is ExtractionMode.LENIENT:
        return extract_lenient(result.raw_text)
    return extract_lcd(cleaned)
