from __future__ import annotations

import math
from typing import List

from .config import DEFAULTS
from .geometry import Rect
from .pipeline import PipelineState
from .properties import ImageProperties

STORAGE_UNITS = ["bytes", "kB", "MB", "GB", "TB"]


def image_properties_report(props: ImageProperties) -> str:
    placement = props.placement
    center = placement.pivot
    lines = [
        f"Image location: {props.location}",
        f"Number of levels: {props.level_count}",
        "---Image Size---",
        f"    Width: {props.width}",
        f"    Height: {props.height}",
        "---Image Pixel Size---",
        f"    Pixel Width: {props.intrinsic_pixel_size.width:g} um",
        f"    Pixel Height: {props.intrinsic_pixel_size.height:g} um",
        "---Placement Transform---",
        f"    Pixel Spacing (um): ({props.override_pixel_spacing.width:g}, {props.override_pixel_spacing.height:g})",
        f"    Center: ({center.x:g}, {center.y:g}){'' if placement.center is not None else ' (unset)'}",
        f"    Translation: ({placement.translation.x:g}, {placement.translation.y:g})",
        f"    Scale: ({placement.scale.width:g}, {placement.scale.height:g})",
        f"    Rotation: {placement.rotation:g}",
        f"Opacity: {props.opacity:g}",
        f"Visibility: {props.visible}",
        f"Color model and pixel type: {props.color_description}",
    ]
    return "\n".join(lines) + "\n"


def estimate_output_pixels(rect: Rect) -> float:
    if rect.is_empty():
        return 0.0
    return float(rect.width) * float(rect.height)


def estimate_storage_size(pixels: float, bytes_per_pixel: float = DEFAULTS.bytes_per_pixel) -> str:
    size = bytes_per_pixel * pixels
    if size < 1.0:
        return "0 bytes"
    power = min(int(math.log(size) / math.log(1024.0)), len(STORAGE_UNITS) - 1)
    value = size / math.pow(1024.0, power)
    return f"{value:.3g} {STORAGE_UNITS[power]}"


def pipeline_report(state: PipelineState) -> str:
    parts: List[str] = [
        "Mask image properties:",
        image_properties_report(state.mask),
        "Source image properties:",
        image_properties_report(state.source),
    ]
    rect = state.footprint.intersection
    if rect.is_empty():
        parts.append("The source and mask images do not overlap; the source is used unmasked.")
    else:
        pixels = estimate_output_pixels(rect)
        parts.append(
            f"Intersection: x={rect.x:g}, y={rect.y:g}, width={rect.width:g}, height={rect.height:g} "
            f"({pixels:.0f} pixels, ~{estimate_storage_size(pixels)})"
        )
        if pixels > DEFAULTS.pixel_warning_threshold:
            parts.append("Warning: the cropped output is very large and may take a long time to save.")
    return "\n".join(parts)
