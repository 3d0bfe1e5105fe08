"""
Error types raised by the meter reading pipeline.

Geometry errors are programmer/configuration errors and end the pipeline run
immediately. RecognitionFailure means the OCR engine itself could not produce
text. An image that was read successfully but holds no plausible reading is
not an error: see ``meter_reader.models.reading.NoReading``.
"""


class MeterReaderError(Exception):
    """Base class for all pipeline errors."""


class InvalidGeometry(MeterReaderError):
    """A geometry stage received parameters it cannot work with."""


class InvalidDimensions(InvalidGeometry):
    """Image or region dimensions are empty, inconsistent or out of bounds."""


class InvalidScaleFactor(InvalidGeometry):
    """Upscaling factor is not a positive finite number."""

    def __init__(self, factor):
        super().__init__(f"Scale factor must be a positive finite number, got {factor!r}")
        self.factor = factor


class InvalidImage(MeterReaderError):
    """Uploaded bytes could not be decoded as an image."""


class RecognitionFailure(MeterReaderError):
    """The recognition engine could not produce text (timeout, engine error)."""

    def __init__(self, message: str, engine: str = "unknown"):
        super().__init__(message)
        self.engine = engine
