"""
Binarization settings and the named presets for each kind of meter display.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class BinarizationConfig:
    """Luma weights, contrast multiplier and cutoff for black/white conversion."""

    luma_weights: Tuple[float, float, float]  # (r, g, b)
    contrast: float
    threshold: int  # 0-255

    def __post_init__(self):
        if len(self.luma_weights) != 3:
            raise ValueError(f"luma_weights needs 3 values, got {self.luma_weights!r}")
        if abs(sum(self.luma_weights) - 1.0) > 0.01:
            raise ValueError(f"luma_weights should sum to ~1.0, got {sum(self.luma_weights):.3f}")
        if self.contrast <= 0:
            raise ValueError(f"contrast must be > 0, got {self.contrast}")
        if not 0 <= self.threshold <= 255:
            raise ValueError(f"threshold must be in [0, 255], got {self.threshold}")


# Printed / mechanical counters: plain brightness cut.
GENERIC = BinarizationConfig(
    luma_weights=(0.34, 0.5, 0.16),
    contrast=1.0,
    threshold=127,
)

# LCD segment displays: ITU-R BT.601 luma, strong contrast so thin segments
# survive while the grey background is pushed to one side.
LCD = BinarizationConfig(
    luma_weights=(0.299, 0.587, 0.114),
    contrast=3.0,
    threshold=160,
)

PRESETS = {
    "generic": GENERIC,
    "lcd": LCD,
}
