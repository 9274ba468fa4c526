from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Point:
    x: float = 0.0
    y: float = 0.0

    def __iter__(self) -> Iterator[float]:
        return iter((self.x, self.y))


@dataclass(frozen=True)
class Size:
    width: float = 1.0
    height: float = 1.0

    def __iter__(self) -> Iterator[float]:
        return iter((self.width, self.height))


@dataclass(frozen=True)
class Rect:
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0

    @property
    def x_max(self) -> float:
        return self.x + self.width

    @property
    def y_max(self) -> float:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersection(self, other: "Rect") -> "Rect":
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.x_max, other.x_max)
        y1 = min(self.y_max, other.y_max)
        if x1 <= x0 or y1 <= y0:
            return Rect()
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def to_box(self) -> Tuple[int, int, int, int]:
        """Integer (left, upper, right, lower) box covering the rectangle, as Pillow expects."""
        return (
            int(math.floor(self.x)),
            int(math.floor(self.y)),
            int(math.ceil(self.x_max)),
            int(math.ceil(self.y_max)),
        )


Polygon = Tuple[Point, ...]


def polygon(points: Sequence[Tuple[float, float]]) -> Polygon:
    return tuple(Point(float(x), float(y)) for x, y in points)


def rect_to_polygon(rect: Rect) -> Polygon:
    """Vertices (minX, maxY), (maxX, maxY), (maxX, minY), (minX, minY)."""
    if rect.is_empty():
        return ()
    return (
        Point(rect.x, rect.y_max),
        Point(rect.x_max, rect.y_max),
        Point(rect.x_max, rect.y),
        Point(rect.x, rect.y),
    )


def bounding_rect(poly: Polygon) -> Rect:
    if not poly:
        return Rect()
    xs = [p.x for p in poly]
    ys = [p.y for p in poly]
    return Rect(min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys))


@dataclass(frozen=True)
class SRTTransform:
    """Scale, rotation and translation about a pivot.

    Forward maps a raw point ``p`` to ``R(S(p - c)) + c + t``, where ``c`` is
    the center (origin when unset) and the rotation is in degrees.
    """

    translation: Point = Point()
    scale: Size = Size(1.0, 1.0)
    rotation: float = 0.0
    center: Optional[Point] = None

    def __post_init__(self) -> None:
        if self.scale.width <= 0 or self.scale.height <= 0:
            raise ValueError(f"Scale must be positive: {self.scale}")

    @property
    def pivot(self) -> Point:
        return self.center if self.center is not None else Point()

    def forward(self, p: Point) -> Point:
        cx, cy = self.pivot
        qx = (p.x - cx) * self.scale.width
        qy = (p.y - cy) * self.scale.height
        ca, sa = _cos_sin(self.rotation)
        return Point(
            ca * qx - sa * qy + cx + self.translation.x,
            sa * qx + ca * qy + cy + self.translation.y,
        )

    def inverse(self, p: Point) -> Point:
        cx, cy = self.pivot
        qx = p.x - self.translation.x - cx
        qy = p.y - self.translation.y - cy
        ca, sa = _cos_sin(self.rotation)
        rx = ca * qx + sa * qy
        ry = -sa * qx + ca * qy
        return Point(rx / self.scale.width + cx, ry / self.scale.height + cy)

    def transform_point(self, p: Point, inverse: bool = False) -> Point:
        return self.inverse(p) if inverse else self.forward(p)

    def transform_polygon(self, poly: Polygon, inverse: bool = False) -> Polygon:
        return tuple(self.transform_point(p, inverse=inverse) for p in poly)


def _cos_sin(angle_deg: float) -> Tuple[float, float]:
    angle = math.radians(angle_deg)
    return math.cos(angle), math.sin(angle)
