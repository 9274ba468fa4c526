from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from PIL import Image

from .core import reframe_polygon, transform_polygon
from .geometry import Polygon, Rect, bounding_rect, rect_to_polygon
from .properties import ImageOpenError, ImageProperties

logger = logging.getLogger(__name__)


class SourceFactory:
    """Full-resolution pixels of an image file, read per rectangle."""

    def __init__(self, location: str) -> None:
        self.location = location

    def get_image(self, rect: Optional[Rect] = None) -> Image.Image:
        try:
            image = Image.open(self.location)
        except OSError as exc:
            raise ImageOpenError(f"Could not open the image: {self.location}") from exc
        with image:
            if rect is None:
                return image.copy()
            return image.crop(rect.to_box())

    def __repr__(self) -> str:
        return f"SourceFactory({self.location!r})"


class RegionFactory:
    """Constrains a parent factory to a fixed region."""

    def __init__(self, parent: "Factory", region: Rect) -> None:
        self.parent = parent
        self.region = region

    def get_image(self, rect: Optional[Rect] = None) -> Image.Image:
        target = self.region if rect is None else self.region.intersection(rect)
        return self.parent.get_image(target)

    def __repr__(self) -> str:
        return f"RegionFactory({self.parent!r}, {self.region})"


Factory = Union[SourceFactory, RegionFactory]


@dataclass(frozen=True)
class FootprintResult:
    source_polygon: Polygon
    mask_polygon: Polygon
    intersection: Rect
    factory: Factory

    @property
    def overlaps(self) -> bool:
        return not self.intersection.is_empty()


def mask_border_in_source(mask: ImageProperties, source: ImageProperties) -> Polygon:
    """The mask's footprint carried into the source's displayed pixel space."""
    reframed = reframe_polygon(rect_to_polygon(mask.footprint), mask, source)
    return transform_polygon(reframed, mask, source)


def intersect_footprints(
    source: ImageProperties,
    mask: ImageProperties,
    source_factory: Factory,
) -> FootprintResult:
    source_polygon = rect_to_polygon(source.footprint)
    mask_polygon = mask_border_in_source(mask, source)
    intersection = bounding_rect(mask_polygon).intersection(source.footprint)

    if intersection.is_empty():
        logger.info("No spatial overlap between %s and %s; using the unmasked source", source.location, mask.location)
        return FootprintResult(source_polygon, mask_polygon, Rect(), source_factory)

    logger.debug("Footprint intersection: %s", intersection)
    return FootprintResult(source_polygon, mask_polygon, intersection, RegionFactory(source_factory, intersection))
