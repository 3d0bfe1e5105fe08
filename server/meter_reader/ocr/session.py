"""
Single output slot for repeated captures.

When the user retakes a photo while the previous one is still being
recognized, only the most recently submitted photo may update the result.
Every submission gets a sequence number; a result is committed only if its
number is still the latest when it resolves.
"""
import asyncio
import logging
from dataclasses import replace
from typing import Dict, Optional

from meter_reader.errors import InvalidImage
from meter_reader.models.capture_profile import CaptureProfile
from meter_reader.models.outcome import ReadingOutcome, ReadingStatus
from meter_reader.models.raster import RasterImage
from meter_reader.ocr.processor import OCRProcessor

logger = logging.getLogger(__name__)


class RecognitionSession:
    """Last-submitted-wins wrapper around an OCRProcessor."""

    def __init__(self, processor: OCRProcessor):
        self.processor = processor
        self.latest: Optional[ReadingOutcome] = None
        self._sequence = 0
        self._in_flight: Dict[int, asyncio.Task] = {}

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def pending(self) -> int:
        return len(self._in_flight)

    def _superseded(self, sequence: int) -> ReadingOutcome:
        logger.info(f"Discarding result #{sequence}, latest submission is #{self._sequence}")
        return ReadingOutcome(status=ReadingStatus.SUPERSEDED, sequence=sequence)

    async def submit(self, image: RasterImage, profile: CaptureProfile) -> ReadingOutcome:
        """
        Run the pipeline for ``image`` and commit the outcome if still current.

        Returns:
            The pipeline outcome, or a SUPERSEDED outcome if a newer image was
            submitted (or the session was cancelled) before this one resolved
        """
        self._sequence += 1
        sequence = self._sequence
        logger.info(f"Recognition request #{sequence} submitted")

        task = asyncio.ensure_future(self.processor.read_meter(image, profile))
        self._in_flight[sequence] = task
        try:
            outcome = await task
        except asyncio.CancelledError:
            if task.cancelled() and sequence != self._sequence:
                return self._superseded(sequence)
            raise
        finally:
            self._in_flight.pop(sequence, None)

        if sequence != self._sequence:
            return self._superseded(sequence)

        self.latest = replace(outcome, sequence=sequence)
        return self.latest

    async def submit_bytes(self, data: bytes, profile: CaptureProfile) -> ReadingOutcome:
        """Decode an uploaded file and submit it."""
        try:
            image = RasterImage.from_encoded(data)
        except InvalidImage as e:
            # Counts as a submission: it replaces whatever was on screen.
            self._sequence += 1
            self.latest = ReadingOutcome(
                status=ReadingStatus.INVALID_IMAGE, detail=str(e), sequence=self._sequence
            )
            return self.latest
        return await self.submit(image, profile)

    def cancel(self) -> None:
        """Cancel every in-flight recognition; nothing they return is committed."""
        self._sequence += 1
        for sequence, task in list(self._in_flight.items()):
            if not task.done():
                logger.info(f"Cancelling recognition request #{sequence}")
                task.cancel()
