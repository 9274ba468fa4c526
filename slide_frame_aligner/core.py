from __future__ import annotations

from typing import Callable, Tuple

from .geometry import Point, Polygon, SRTTransform
from .properties import ImageProperties


def resolve_center(props: ImageProperties) -> Point:
    """Image center in physical units.

    A missing center, or a zero on either axis of a recorded one, falls back
    to half the physical extent on that axis. A center legitimately placed at
    zero is indistinguishable from an unset one.
    """
    extent = props.physical_extent
    half_x = extent.width / 2.0
    half_y = extent.height / 2.0
    center = props.placement.center
    if center is None:
        return Point(half_x, half_y)
    x = half_x if center.x == 0.0 else center.x
    y = half_y if center.y == 0.0 else center.y
    return Point(x, y)


def center_offset(initial: ImageProperties, final: ImageProperties) -> Point:
    """Center of ``final`` minus center of ``initial``, in ``final`` pixels."""
    initial_center = resolve_center(initial)
    final_center = resolve_center(final)
    pixel_size = final.intrinsic_pixel_size
    return Point(
        (final_center.x - initial_center.x) / pixel_size.width,
        (final_center.y - initial_center.y) / pixel_size.height,
    )


def _reframer(initial: ImageProperties, final: ImageProperties) -> Callable[[Point], Point]:
    offset = center_offset(initial, final)
    x_ratio = initial.intrinsic_pixel_size.width / final.intrinsic_pixel_size.width
    y_ratio = initial.intrinsic_pixel_size.height / final.intrinsic_pixel_size.height

    def reframe(p: Point) -> Point:
        return Point(p.x * x_ratio + offset.x, p.y * y_ratio + offset.y)

    return reframe


def reframe_point(p: Point, initial: ImageProperties, final: ImageProperties) -> Point:
    return _reframer(initial, final)(p)


def reframe_polygon(poly: Polygon, initial: ImageProperties, final: ImageProperties) -> Polygon:
    if not poly:
        return ()
    reframe = _reframer(initial, final)
    return tuple(reframe(p) for p in poly)


def compose_transforms(
    initial: ImageProperties, final: ImageProperties
) -> Tuple[SRTTransform, SRTTransform]:
    """Build the (final-space, initial-space) transform pair.

    Both copy scale and rotation from their image's placement and keep the
    pivot at the origin. Translations are rescaled into ``final`` pixel
    units; the initial-space one also pre-subtracts ``(scale - 1) * center``
    since its placement scales about ``center``.
    """
    final_size = final.intrinsic_pixel_size

    f_place = final.placement
    final_space = SRTTransform(
        translation=Point(
            f_place.translation.x / final_size.width,
            f_place.translation.y / final_size.height,
        ),
        scale=f_place.scale,
        rotation=f_place.rotation,
    )

    i_place = initial.placement
    pivot = i_place.pivot
    initial_space = SRTTransform(
        translation=Point(
            i_place.translation.x / final_size.width - (i_place.scale.width - 1.0) * pivot.x,
            i_place.translation.y / final_size.height - (i_place.scale.height - 1.0) * pivot.y,
        ),
        scale=i_place.scale,
        rotation=i_place.rotation,
    )
    return final_space, initial_space


def transform_polygon(poly: Polygon, initial: ImageProperties, final: ImageProperties) -> Polygon:
    """Undo ``final``'s placement, then apply ``initial``'s, in ``final`` pixels."""
    if not poly:
        return ()
    final_space, initial_space = compose_transforms(initial, final)
    undisplayed = final_space.transform_polygon(poly, inverse=True)
    return initial_space.transform_polygon(undisplayed)


def untransform_polygon(poly: Polygon, initial: ImageProperties, final: ImageProperties) -> Polygon:
    if not poly:
        return ()
    final_space, initial_space = compose_transforms(initial, final)
    return final_space.transform_polygon(initial_space.transform_polygon(poly, inverse=True))
