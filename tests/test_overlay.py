from PIL import Image

from slide_frame_aligner.config import MASK_BORDER, BorderStyle
from slide_frame_aligner.footprint import SourceFactory, intersect_footprints
from slide_frame_aligner.geometry import Point, Rect, rect_to_polygon
from slide_frame_aligner.overlay import dash_segments, draw_borders, render_footprint_overlay
from slide_frame_aligner.properties import ImageProperties

SOLID_RED = BorderStyle(label="test", color=(255, 0, 0), width=1, dash=(100, 0))


def test_dash_segments_alternate():
    segments = dash_segments(Point(0.0, 0.0), Point(20.0, 0.0), (5, 5))
    assert segments == [(Point(0.0, 0.0), Point(5.0, 0.0)), (Point(10.0, 0.0), Point(15.0, 0.0))]


def test_dash_segments_zero_length():
    assert dash_segments(Point(3.0, 3.0), Point(3.0, 3.0), (5, 5)) == []


def test_draw_borders_closes_polygon():
    base = Image.new("L", (20, 20), 0)
    poly = rect_to_polygon(Rect(2.0, 2.0, 15.0, 15.0))

    out = draw_borders(base, [(poly, SOLID_RED)])
    assert out.mode == "RGB"
    assert out.getpixel((2, 10)) == (255, 0, 0)
    assert out.getpixel((10, 17)) == (255, 0, 0)
    assert out.getpixel((10, 10)) == (0, 0, 0)
    assert base.getpixel((2, 10)) == 0


def test_draw_borders_empty_polygon_draws_nothing():
    base = Image.new("RGB", (10, 10), (0, 0, 0))
    out = draw_borders(base, [((), MASK_BORDER)])
    assert out.getbbox() is None


def test_render_footprint_overlay_downscales():
    source = ImageProperties(location="source.tif", pixel_dimensions=(400, 200))
    mask = ImageProperties(location="mask.tif", pixel_dimensions=(100, 100))
    footprint = intersect_footprints(source, mask, SourceFactory("source.tif"))

    out = render_footprint_overlay(Image.new("L", (400, 200), 0), footprint, max_dim=100)
    assert out.size == (100, 50)
    assert out.mode == "RGB"
    # mask border left edge lands at x = 150 * 0.25
    assert out.getpixel((37, 18)) == MASK_BORDER.color or out.getpixel((38, 18)) == MASK_BORDER.color
