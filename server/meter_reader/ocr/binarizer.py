"""
Black/white conversion of the digit region.
"""
import numpy as np

from meter_reader.models.binarization import BinarizationConfig
from meter_reader.models.raster import RasterImage, Rect

MIDPOINT = 128.0


def binarize(image: RasterImage, region: Rect, config: BinarizationConfig) -> RasterImage:
    """
    Convert ``region`` of ``image`` to pure black and white.

    Each pixel's luma-weighted brightness is stretched around mid-grey by
    ``config.contrast`` and compared against ``config.threshold``: above it the
    pixel becomes white, otherwise black. Alpha is copied unchanged.

    Re-applying with the same config returns an identical image, since every
    channel is already 0 or 255.

    Raises:
        InvalidDimensions: if ``region`` is not inside the image
    """
    cropped = image.crop(region)
    rgb = cropped.pixels[..., :3].astype(np.float64)

    w_r, w_g, w_b = config.luma_weights
    brightness = w_r * rgb[..., 0] + w_g * rgb[..., 1] + w_b * rgb[..., 2]
    adjusted = config.contrast * (brightness - MIDPOINT) + MIDPOINT

    value = np.where(adjusted > config.threshold, 255, 0).astype(np.uint8)

    out = np.empty_like(cropped.pixels)
    out[..., 0] = value
    out[..., 1] = value
    out[..., 2] = value
    out[..., 3] = cropped.pixels[..., 3]
    return RasterImage.from_array(out)
