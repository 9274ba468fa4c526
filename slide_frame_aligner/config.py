from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class PipelineDefaults:
    mask_threshold: float = 20.0
    mask_threshold_max: float = 255.0
    pixel_warning_threshold: float = 1e8
    default_pixel_size: float = 1.0
    bytes_per_pixel: float = 4.0


@dataclass(frozen=True)
class BorderStyle:
    label: str
    color: Tuple[int, int, int]
    width: int = 3
    dash: Tuple[int, int] = (12, 8)


MASK_BORDER = BorderStyle(label="Mask image border", color=(255, 255, 0))
SOURCE_BORDER = BorderStyle(label="Source image border", color=(0, 255, 255))

DEFAULTS = PipelineDefaults()
