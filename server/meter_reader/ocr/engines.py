"""
Recognition engines.

The OCR engine is treated as a black box: it receives the processed raster and
an engine configuration and returns raw text plus a confidence score. Tesseract
is the primary engine; EasyOCR can be selected instead. Engine calls are
blocking, so they run in a worker thread and are exposed as one awaitable.
"""
import asyncio
import logging
import shutil
from dataclasses import dataclass
from typing import List, Optional

import easyocr
import numpy as np
import pytesseract

from meter_reader.errors import RecognitionFailure
from meter_reader.models.raster import RasterImage
from meter_reader.models.reading import RecognitionResult

logger = logging.getLogger(__name__)

PSM_SINGLE_LINE = 7
OEM_LSTM_ONLY = 1


@dataclass(frozen=True)
class RecognitionEngineConfig:
    """Settings passed to the OCR engine for a single call."""

    whitelist: str = "0123456789.,"
    page_segmentation_mode: int = PSM_SINGLE_LINE
    engine_mode: int = OEM_LSTM_ONLY
    timeout: float = 0  # seconds, 0 = no limit

    def tesseract_args(self) -> str:
        return (
            f"--oem {self.engine_mode} --psm {self.page_segmentation_mode} "
            f"-c tessedit_char_whitelist={self.whitelist} "
            "-c load_system_dawg=0 -c load_freq_dawg=0"
        )


def _clamp_confidence(value: float) -> float:
    return round(min(100.0, max(0.0, float(value))), 2)


class RecognitionEngine:
    """Base class for OCR engines."""

    name = "base"

    def recognize_sync(self, image: RasterImage, config: RecognitionEngineConfig) -> RecognitionResult:  # pragma: no cover
        raise NotImplementedError

    async def recognize(self, image: RasterImage, config: RecognitionEngineConfig) -> RecognitionResult:
        """
        Run recognition without blocking the event loop.

        Cancelling the awaiting task, or hitting ``config.timeout``, discards the
        result; the worker thread is left to finish on its own.

        Raises:
            RecognitionFailure: if the engine could not produce text in time
        """
        call = asyncio.to_thread(self.recognize_sync, image, config)
        if config.timeout <= 0:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=config.timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{self.name} did not answer within {config.timeout}s")
            raise RecognitionFailure(
                f"Recognition timed out after {config.timeout}s", engine=self.name
            ) from e


class TesseractEngine(RecognitionEngine):
    """Tesseract via pytesseract, single-line digit recognition."""

    name = "tesseract"

    def __init__(self, tesseract_cmd: Optional[str] = None):
        tesseract_path = tesseract_cmd or shutil.which("tesseract")
        if tesseract_path:
            pytesseract.pytesseract.tesseract_cmd = tesseract_path
            logger.info(f"Tesseract found at: {tesseract_path}")
        else:
            logger.warning("Tesseract not found in PATH, using default")

    def recognize_sync(self, image: RasterImage, config: RecognitionEngineConfig) -> RecognitionResult:
        try:
            data = pytesseract.image_to_data(
                image.to_pil().convert("RGB"),
                config=config.tesseract_args(),
                output_type=pytesseract.Output.DICT,
                timeout=config.timeout,
            )
        except pytesseract.TesseractNotFoundError as e:
            raise RecognitionFailure(f"Tesseract is not installed: {e}", engine=self.name) from e
        except pytesseract.TesseractError as e:
            raise RecognitionFailure(f"Tesseract failed: {e}", engine=self.name) from e
        except RuntimeError as e:
            # pytesseract signals a timeout with a bare RuntimeError
            raise RecognitionFailure(f"Tesseract timed out: {e}", engine=self.name) from e

        words: List[str] = []
        confidences: List[float] = []
        for text, conf in zip(data.get("text", []), data.get("conf", [])):
            text = (text or "").strip()
            if not text:
                continue
            words.append(text)
            try:
                conf_value = float(conf)
            except (TypeError, ValueError):
                continue
            if conf_value >= 0:
                confidences.append(conf_value)

        raw_text = " ".join(words)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0
        logger.info(f"Tesseract raw text: '{raw_text}' (confidence: {confidence:.1f}%)")
        return RecognitionResult(raw_text=raw_text, confidence=_clamp_confidence(confidence), engine=self.name)


class EasyOCREngine(RecognitionEngine):
    """EasyOCR reader restricted to the whitelist characters."""

    name = "easyocr"

    def __init__(self, gpu: bool = False):
        self.gpu = gpu
        self._reader = None

    def _get_reader(self):
        # Model loading is slow, so the reader is created on first use.
        if self._reader is None:
            logger.info("Initializing EasyOCR reader...")
            try:
                self._reader = easyocr.Reader(["en"], gpu=self.gpu, verbose=False)
            except Exception as e:
                raise RecognitionFailure(f"EasyOCR could not be initialized: {e}", engine=self.name) from e
            logger.info("EasyOCR reader initialized successfully")
        return self._reader

    def recognize_sync(self, image: RasterImage, config: RecognitionEngineConfig) -> RecognitionResult:
        reader = self._get_reader()
        rgb = np.ascontiguousarray(image.pixels[..., :3])
        try:
            results = reader.readtext(rgb, allowlist=config.whitelist, detail=1, paragraph=False)
        except Exception as e:
            raise RecognitionFailure(f"EasyOCR failed: {e}", engine=self.name) from e

        # Left-to-right so multi-box lines read in order
        results = sorted(results, key=lambda r: min(point[0] for point in r[0]))
        texts = [text for _, text, _ in results if text]
        scores = [score for _, text, score in results if text]

        raw_text = " ".join(texts)
        confidence = (sum(scores) / len(scores)) * 100 if scores else 0.0
        logger.info(f"EasyOCR raw text: '{raw_text}' (confidence: {confidence:.1f}%)")
        return RecognitionResult(raw_text=raw_text, confidence=_clamp_confidence(confidence), engine=self.name)


def create_engine(name: str, tesseract_cmd: Optional[str] = None) -> RecognitionEngine:
    """
    Engine factory. Supported names:
      - 'tesseract' (default)
      - 'easyocr'
    """
    key = (name or "tesseract").strip().lower()
    if key in {"tesseract", "tess", "default"}:
        return TesseractEngine(tesseract_cmd=tesseract_cmd)
    if key in {"easyocr", "easy"}:
        return EasyOCREngine()
    raise ValueError("Unknown OCR engine. Use one of: 'tesseract', 'easyocr'")
