from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from .config import DEFAULTS
from .geometry import Rect, Size, SRTTransform

logger = logging.getLogger(__name__)

MICRONS_PER_INCH = 25400.0
MICRONS_PER_CM = 10000.0

# TIFF baseline tags
X_RESOLUTION = 282
Y_RESOLUTION = 283
RESOLUTION_UNIT = 296

COLOR_MODELS = {
    "1": "Binary",
    "L": "Grayscale",
    "LA": "Grayscale + Alpha",
    "P": "Palette",
    "RGB": "RGB",
    "RGBA": "RGBA",
    "CMYK": "CMYK",
    "YCbCr": "YCbCr",
    "HSV": "HSV",
    "I": "Grayscale",
    "I;16": "Grayscale",
    "F": "Grayscale",
}

PIXEL_TYPES = {
    "1": "bool",
    "I": "int32",
    "I;16": "uint16",
    "F": "float32",
}


class ImageOpenError(OSError):
    pass


@dataclass(frozen=True)
class ImageProperties:
    location: str
    placement: SRTTransform = SRTTransform()
    override_pixel_spacing: Size = Size(1.0, 1.0)
    color_model: str = "Grayscale"
    pixel_type: str = "uint8"
    opacity: float = 1.0
    visible: bool = True
    level_count: int = 1
    intrinsic_pixel_size: Size = Size(1.0, 1.0)
    pixel_dimensions: Tuple[int, int] = (0, 0)

    def __post_init__(self) -> None:
        for label, size in (("Pixel size", self.intrinsic_pixel_size), ("Pixel spacing", self.override_pixel_spacing)):
            if size.width <= 0 or size.height <= 0:
                raise ValueError(f"{label} must be positive: {size}")

    @property
    def width(self) -> int:
        return self.pixel_dimensions[0]

    @property
    def height(self) -> int:
        return self.pixel_dimensions[1]

    @property
    def footprint(self) -> Rect:
        """Full-resolution bounding rectangle in the image's own pixel space."""
        return Rect(0.0, 0.0, float(self.width), float(self.height))

    @property
    def physical_extent(self) -> Size:
        return Size(self.intrinsic_pixel_size.width * self.width, self.intrinsic_pixel_size.height * self.height)

    @property
    def color_description(self) -> str:
        return f"{self.color_model} {self.pixel_type}"


def read_image_properties(
    location: str,
    placement: Optional[SRTTransform] = None,
    override_spacing: Optional[Size] = None,
    opacity: float = 1.0,
    visible: bool = True,
) -> ImageProperties:
    try:
        image = Image.open(location)
    except OSError as exc:
        raise ImageOpenError(f"Could not open the image: {os.path.basename(location)}") from exc

    with image:
        props = ImageProperties(
            location=location,
            placement=placement or SRTTransform(),
            override_pixel_spacing=override_spacing or Size(1.0, 1.0),
            color_model=COLOR_MODELS.get(image.mode, image.mode),
            pixel_type=PIXEL_TYPES.get(image.mode, "uint8"),
            opacity=opacity,
            visible=visible,
            level_count=getattr(image, "n_frames", 1),
            intrinsic_pixel_size=_extract_pixel_size(image),
            pixel_dimensions=image.size,
        )
    logger.debug("Read %s: %dx%d px, pixel size %s", location, props.width, props.height, props.intrinsic_pixel_size)
    return props


def _extract_pixel_size(image: Image.Image) -> Size:
    default = DEFAULTS.default_pixel_size
    tag_v2 = getattr(image, "tag_v2", None)
    if tag_v2:
        unit = tag_v2.get(RESOLUTION_UNIT, 2)
        scale = MICRONS_PER_CM if unit == 3 else MICRONS_PER_INCH
        if unit in (2, 3):
            return Size(
                _microns_per_pixel(tag_v2.get(X_RESOLUTION), scale, default),
                _microns_per_pixel(tag_v2.get(Y_RESOLUTION), scale, default),
            )
        return Size(default, default)

    dpi = (getattr(image, "info", {}) or {}).get("dpi")
    if dpi:
        return Size(
            _microns_per_pixel(dpi[0], MICRONS_PER_INCH, default),
            _microns_per_pixel(dpi[1], MICRONS_PER_INCH, default),
        )
    return Size(default, default)


def _microns_per_pixel(resolution, scale: float, default: float) -> float:
    if resolution is None:
        return default
    value = float(resolution)
    if not value > 0:
        return default
    return scale / value
