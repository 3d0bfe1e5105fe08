"""
OCR processing pipeline for utility meter reading recognition.

raw image -> region crop -> binarization -> upscaling -> recognition -> extraction

Preprocessing is deterministic and synchronous. Recognition is the single
awaitable step; it is called exactly once per image and never retried here.
"""
import logging
from typing import Optional

from meter_reader.config import Settings
from meter_reader.errors import InvalidGeometry, InvalidImage, InvalidScaleFactor, RecognitionFailure
from meter_reader.models.capture_profile import CaptureProfile
from meter_reader.models.outcome import ReadingOutcome, ReadingStatus
from meter_reader.models.raster import RasterImage
from meter_reader.models.reading import NoReading, RecognitionResult
from meter_reader.ocr.binarizer import binarize
from meter_reader.ocr.engines import RecognitionEngine, RecognitionEngineConfig, create_engine
from meter_reader.ocr.normalizer import extract
from meter_reader.ocr.region import select_region
from meter_reader.ocr.upscaler import UPSCALE_FACTOR, upscale

logger = logging.getLogger(__name__)


class OCRProcessor:
    """Runs the full preprocessing and recognition pipeline for one engine."""

    def __init__(
        self,
        engine: RecognitionEngine,
        upscale_factor: float = UPSCALE_FACTOR,
        recognition_timeout: float = 0,
    ):
        self.engine = engine
        self.upscale_factor = upscale_factor
        self.recognition_timeout = recognition_timeout
        logger.info(
            f"OCR Processor initialized (engine: {engine.name}, upscale: {upscale_factor}x)"
        )

    def preprocess(self, image: RasterImage, profile: CaptureProfile) -> RasterImage:
        """
        Crop, binarize and upscale a captured image.

        Raises:
            InvalidDimensions: if the image is too small to crop
            InvalidScaleFactor: if the configured factor is not usable
        """
        region = select_region(image)
        bw = binarize(image, region, profile.binarization)
        processed = upscale(bw, self.upscale_factor)
        logger.info(
            f"Image preprocessed ({profile.name}): {image.width}x{image.height} -> "
            f"region {region.width}x{region.height} -> {processed.width}x{processed.height}"
        )
        return processed

    def engine_config(self, profile: CaptureProfile) -> RecognitionEngineConfig:
        return RecognitionEngineConfig(
            whitelist=profile.whitelist,
            timeout=self.recognition_timeout,
        )

    async def recognize(self, image: RasterImage, profile: CaptureProfile) -> RecognitionResult:
        """Send the processed raster to the engine (one call, no retry)."""
        return await self.engine.recognize(image, self.engine_config(profile))

    async def read_meter(self, image: RasterImage, profile: CaptureProfile) -> ReadingOutcome:
        """
        Read the meter in a captured image.

        Every failure mode is returned as a distinct ReadingStatus rather than
        raised, so callers can tell the user what to do next.
        """
        try:
            processed = self.preprocess(image, profile)
        except InvalidScaleFactor as e:
            logger.error(f"Upscaling is misconfigured: {e}")
            return ReadingOutcome(status=ReadingStatus.CONFIGURATION_ERROR, detail=str(e))
        except InvalidGeometry as e:
            logger.warning(f"Preprocessing rejected image: {e}")
            return ReadingOutcome(status=ReadingStatus.INVALID_GEOMETRY, detail=str(e))

        try:
            recognition = await self.recognize(processed, profile)
        except RecognitionFailure as e:
            logger.error(f"Recognition failed ({e.engine}): {e}")
            return ReadingOutcome(status=ReadingStatus.RECOGNITION_FAILED, detail=str(e))

        reading = extract(recognition, profile.extraction_mode)
        if isinstance(reading, NoReading):
            logger.warning(
                f"No reading in OCR text: '{recognition.raw_text[:100]}' "
                f"(confidence: {recognition.confidence}%)"
            )
            return ReadingOutcome(
                status=ReadingStatus.NO_READING,
                reading=reading,
                recognition=recognition,
            )

        logger.info(
            f"OCR successful: reading_value={reading.value}, confidence={recognition.confidence}%"
        )
        return ReadingOutcome(status=ReadingStatus.OK, reading=reading, recognition=recognition)

    async def read_meter_bytes(self, data: bytes, profile: CaptureProfile) -> ReadingOutcome:
        """Decode an uploaded image file and read the meter in it."""
        try:
            image = RasterImage.from_encoded(data)
        except InvalidImage as e:
            logger.warning(f"Could not decode upload: {e}")
            return ReadingOutcome(status=ReadingStatus.INVALID_IMAGE, detail=str(e))
        return await self.read_meter(image, profile)


def create_processor(settings: Settings, engine: Optional[RecognitionEngine] = None) -> OCRProcessor:
    """Build a processor from service settings."""
    if engine is None:
        engine = create_engine(settings.ocr_engine, tesseract_cmd=settings.tesseract_cmd)
    return OCRProcessor(
        engine,
        upscale_factor=settings.upscale_factor,
        recognition_timeout=settings.recognition_timeout,
    )
