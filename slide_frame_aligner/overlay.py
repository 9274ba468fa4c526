from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageOps

from .config import MASK_BORDER, SOURCE_BORDER, BorderStyle
from .footprint import FootprintResult
from .geometry import Point, Polygon


def dash_segments(start: Point, end: Point, dash: Tuple[int, int]) -> List[Tuple[Point, Point]]:
    on, off = dash
    length = math.hypot(end.x - start.x, end.y - start.y)
    if length == 0 or on <= 0:
        return []
    ux = (end.x - start.x) / length
    uy = (end.y - start.y) / length
    segments = []
    pos = 0.0
    while pos < length:
        stop = min(pos + on, length)
        segments.append(
            (Point(start.x + ux * pos, start.y + uy * pos), Point(start.x + ux * stop, start.y + uy * stop))
        )
        pos = stop + max(off, 0)
    return segments


def closed_edges(poly: Polygon) -> Iterable[Tuple[Point, Point]]:
    for idx, vertex in enumerate(poly):
        yield vertex, poly[(idx + 1) % len(poly)]


def draw_polygon(draw: ImageDraw.ImageDraw, poly: Polygon, style: BorderStyle) -> None:
    if len(poly) < 2:
        return
    for start, end in closed_edges(poly):
        for a, b in dash_segments(start, end, style.dash):
            draw.line([(a.x, a.y), (b.x, b.y)], fill=style.color, width=style.width)


def draw_borders(
    base: Image.Image,
    borders: Sequence[Tuple[Polygon, BorderStyle]],
) -> Image.Image:
    out = base.convert("RGB") if base.mode != "RGB" else base.copy()
    draw = ImageDraw.Draw(out)
    for poly, style in borders:
        draw_polygon(draw, poly, style)
    return out


def render_footprint_overlay(
    source: Image.Image,
    footprint: FootprintResult,
    max_dim: Optional[int] = None,
) -> Image.Image:
    """Source image with the mask and source borders drawn over it."""
    base = ImageOps.autocontrast(source.convert("L")) if source.mode not in ("RGB", "L") else source
    scale = 1.0
    if max_dim and max(base.size) > max_dim:
        scale = max_dim / float(max(base.size))
        base = base.resize(
            (max(int(base.width * scale), 1), max(int(base.height * scale), 1)), resample=Image.BILINEAR
        )
    borders = [
        (_scaled(footprint.mask_polygon, scale), MASK_BORDER),
        (_scaled(footprint.source_polygon, scale), SOURCE_BORDER),
    ]
    return draw_borders(base, borders)


def _scaled(poly: Polygon, scale: float) -> Polygon:
    if scale == 1.0:
        return poly
    return tuple(Point(p.x * scale, p.y * scale) for p in poly)
