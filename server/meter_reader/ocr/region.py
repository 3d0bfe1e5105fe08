"""
Region of interest selection.

The crop mirrors the framing guide shown during capture: the digits are
expected to sit in a horizontal band in the middle of the photo.
"""
import logging

from meter_reader.errors import InvalidDimensions
from meter_reader.models.raster import RasterImage, Rect

logger = logging.getLogger(__name__)

WIDTH_RATIO = 0.75
HEIGHT_RATIO = 0.25


def select_region(
    image: RasterImage,
    width_ratio: float = WIDTH_RATIO,
    height_ratio: float = HEIGHT_RATIO,
) -> Rect:
    """
    Compute a centered crop proportional to the image size.

    Args:
        image: Source raster
        width_ratio: Crop width as a fraction of image width
        height_ratio: Crop height as a fraction of image height

    Returns:
        Rect fully inside the image bounds

    Raises:
        InvalidDimensions: if the crop would be empty (image too small)
    """
    for ratio in (width_ratio, height_ratio):
        if not 0 < ratio <= 1:
            raise InvalidDimensions(f"Crop ratio must be in (0, 1], got {ratio}")

    crop_width = int(image.width * width_ratio)
    crop_height = int(image.height * height_ratio)
    if crop_width <= 0 or crop_height <= 0:
        raise InvalidDimensions(
            f"Image {image.width}x{image.height} is too small for a "
            f"{width_ratio:.0%} x {height_ratio:.0%} crop"
        )

    x = (image.width - crop_width) // 2
    y = (image.height - crop_height) // 2
    region = Rect(x=x, y=y, width=crop_width, height=crop_height)
    logger.debug(f"Selected region {crop_width}x{crop_height} at ({x}, {y})")
    return region
