"""
RGBA raster buffer shared by all image preprocessing stages.
"""
import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from meter_reader.errors import InvalidDimensions, InvalidImage

logger = logging.getLogger(__name__)

CHANNELS = 4  # RGBA


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in pixel coordinates."""

    x: int
    y: int
    width: int
    height: int

    def contained_in(self, width: int, height: int) -> bool:
        """Check that the rectangle lies fully inside a width x height image."""
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= width
            and self.y + self.height <= height
        )


class RasterImage:
    """
    Owned RGBA pixel buffer.

    Pixels are stored as a ``uint8`` numpy array of shape (height, width, 4).
    Each pipeline stage receives a raster and returns a new one; none of them
    write into the raster they were given.
    """

    def __init__(self, width: int, height: int, pixels: np.ndarray):
        if width <= 0 or height <= 0:
            raise InvalidDimensions(f"Image must have positive size, got {width}x{height}")
        pixels = np.asarray(pixels, dtype=np.uint8)
        if pixels.size != width * height * CHANNELS:
            raise InvalidDimensions(
                f"Pixel buffer holds {pixels.size} values, "
                f"expected {width}*{height}*{CHANNELS} = {width * height * CHANNELS}"
            )
        self.width = width
        self.height = height
        self.pixels = pixels.reshape((height, width, CHANNELS))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Build a raster from an (H, W, 4) array."""
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise InvalidDimensions(f"Expected an (H, W, 4) array, got shape {array.shape}")
        height, width = array.shape[:2]
        return cls(width, height, np.ascontiguousarray(array, dtype=np.uint8))

    @classmethod
    def from_rgba_bytes(cls, width: int, height: int, data: bytes) -> "RasterImage":
        """Build a raster from a flat RGBA byte sequence."""
        return cls(width, height, np.frombuffer(data, dtype=np.uint8).copy())

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        rgba = image.convert("RGBA")
        return cls.from_array(np.array(rgba, dtype=np.uint8))

    @classmethod
    def from_encoded(cls, data: bytes) -> "RasterImage":
        """
        Decode an image file (PNG, JPEG, ...) into a raster.

        EXIF orientation is applied so phone photos come out upright.

        Raises:
            InvalidImage: if the bytes are not a readable image
        """
        if not data:
            raise InvalidImage("Image data is empty")
        try:
            with Image.open(io.BytesIO(data)) as img:
                img = ImageOps.exif_transpose(img)
                raster = cls.from_pil(img)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise InvalidImage(f"Could not decode image: {e}") from e
        logger.info(f"Decoded image: {raster.width}x{raster.height}")
        return raster

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.pixels)

    def to_png_bytes(self) -> bytes:
        buffer = io.BytesIO()
        self.to_pil().save(buffer, format="PNG")
        return buffer.getvalue()

    def crop(self, region: Rect) -> "RasterImage":
        """Return a copy of the pixels inside ``region``."""
        if not region.contained_in(self.width, self.height):
            raise InvalidDimensions(
                f"Region {region} is not inside image bounds {self.width}x{self.height}"
            )
        view = self.pixels[region.y:region.y + region.height, region.x:region.x + region.width]
        return RasterImage.from_array(view.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return (
            self.width == other.width
            and self.height == other.height
            and np.array_equal(self.pixels, other.pixels)
        )

    def __repr__(self) -> str:
        return f"RasterImage({self.width}x{self.height})"
