from __future__ import annotations

import asyncio
import io
from typing import List, Optional

import numpy as np
import pytest
from PIL import Image

from meter_reader.errors import RecognitionFailure
from meter_reader.models import RasterImage, RecognitionResult
from meter_reader.ocr.engines import RecognitionEngine, RecognitionEngineConfig


class FakeEngine(RecognitionEngine):
    """Engine returning canned text, recording every image it was sent."""

    name = "fake"

    def __init__(self, text: str = "", confidence: float = 90.0, error: Optional[str] = None):
        self.text = text
        self.confidence = confidence
        self.error = error
        self.calls: List[tuple[RasterImage, RecognitionEngineConfig]] = []

    def recognize_sync(self, image: RasterImage, config: RecognitionEngineConfig) -> RecognitionResult:
        self.calls.append((image, config))
        if self.error:
            raise RecognitionFailure(self.error, engine=self.name)
        return RecognitionResult(raw_text=self.text, confidence=self.confidence, engine=self.name)


class GatedEngine(RecognitionEngine):
    """Engine whose calls resolve only when the test releases them, in any order."""

    name = "gated"

    def __init__(self):
        self.gates: List[asyncio.Event] = []
        self.texts: List[str] = []

    def queue(self, text: str) -> None:
        self.texts.append(text)

    async def recognize(self, image: RasterImage, config: RecognitionEngineConfig) -> RecognitionResult:
        index = len(self.gates)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return RecognitionResult(raw_text=self.texts[index], confidence=80.0, engine=self.name)


def solid_raster(width: int, height: int, rgba=(200, 200, 200, 255)) -> RasterImage:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[...] = rgba
    return RasterImage.from_array(pixels)


def gradient_raster(width: int, height: int) -> RasterImage:
    """Deterministic pseudo-photo with varying colours and alpha."""
    ys, xs = np.mgrid[0:height, 0:width]
    pixels = np.stack(
        [
            (xs * 7 + ys * 3) % 256,
            (xs * 5 + ys * 11) % 256,
            (xs * 13 + ys * 2) % 256,
            (xs + ys * 17) % 256,
        ],
        axis=-1,
    ).astype(np.uint8)
    return RasterImage.from_array(pixels)


def png_bytes(width: int, height: int, color=(30, 30, 30)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def fake_engine() -> FakeEngine:
    return FakeEngine(text="1234567,8", confidence=91.5)
