"""OCR processing module for utility meter reading recognition."""
from .binarizer import binarize
from .engines import (
    EasyOCREngine,
    RecognitionEngine,
    RecognitionEngineConfig,
    TesseractEngine,
    create_engine,
)
from .normalizer import clean_text, extract
from .processor import OCRProcessor, create_processor
from .region import select_region
from .session import RecognitionSession
from .upscaler import upscale

__all__ = [
    "binarize",
    "EasyOCREngine",
    "RecognitionEngine",
    "RecognitionEngineConfig",
    "TesseractEngine",
    "create_engine",
    "clean_text",
    "extract",
    "OCRProcessor",
    "create_processor",
    "select_region",
    "RecognitionSession",
    "upscale",
]
