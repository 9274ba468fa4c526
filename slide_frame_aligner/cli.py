from __future__ import annotations

import argparse
import logging
import re
import sys
from typing import List, Optional

from .config import DEFAULTS
from .footprint import SourceFactory
from .geometry import Point, Size, SRTTransform
from .logging_config import setup_logging
from .overlay import render_footprint_overlay
from .pipeline import ImageEntry, PipelineController, PipelineInputs, RunResult
from .properties import ImageOpenError
from .report import pipeline_report

logger = logging.getLogger(__name__)

NUMBER = r"-?\d+(?:\.\d*)?(?:[eE][-+]?\d+)?"
SPACING_RE = re.compile(rf"^({NUMBER})x({NUMBER})$")


def parse_spacing(value: str) -> Size:
    match = SPACING_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid pixel spacing: {value}")
    width, height = (float(v) for v in match.groups())
    if width <= 0 or height <= 0:
        raise ValueError("Pixel spacing must be positive.")
    return Size(width, height)


def parse_placement(value: str) -> SRTTransform:
    """Parse ``tx,ty[,sx,sy[,rotation[,cx,cy]]]``."""
    fields = [v.strip() for v in value.split(",")]
    if len(fields) not in (2, 4, 5, 7) or not all(re.fullmatch(NUMBER, v) for v in fields):
        raise ValueError(f"Invalid placement: {value}")
    numbers = [float(v) for v in fields]
    translation = Point(numbers[0], numbers[1])
    scale = Size(numbers[2], numbers[3]) if len(numbers) >= 4 else Size(1.0, 1.0)
    rotation = numbers[4] if len(numbers) >= 5 else 0.0
    center = Point(numbers[5], numbers[6]) if len(numbers) == 7 else None
    return SRTTransform(translation=translation, scale=scale, rotation=rotation, center=center)


def _argument(parser_fn):
    def convert(value: str):
        try:
            return parser_fn(value)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(str(exc)) from exc

    return convert


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Locate a mask image's footprint inside a source image.")
    parser.add_argument("source", help="Source image")
    parser.add_argument("mask", help="Mask image")
    parser.add_argument("--source-placement", type=_argument(parse_placement), default=SRTTransform(),
                        help="tx,ty[,sx,sy[,rotation[,cx,cy]]] in micrometres and degrees")
    parser.add_argument("--mask-placement", type=_argument(parse_placement), default=SRTTransform(),
                        help="tx,ty[,sx,sy[,rotation[,cx,cy]]] in micrometres and degrees")
    parser.add_argument("--source-spacing", type=_argument(parse_spacing), default=Size(1.0, 1.0),
                        help="User pixel spacing WxH in micrometres")
    parser.add_argument("--mask-spacing", type=_argument(parse_spacing), default=Size(1.0, 1.0),
                        help="User pixel spacing WxH in micrometres")
    parser.add_argument("--threshold", type=float, default=DEFAULTS.mask_threshold,
                        help="Mask threshold value (0-255)")
    parser.add_argument("--cropped-output", help="Save the source cropped to the overlap with the mask here")
    parser.add_argument("--masked-output", help="Save the source masked to the overlap with the mask here")
    parser.add_argument("--overlay", help="Write the source image with both borders drawn to this path")
    parser.add_argument("--overlay-max-dim", type=int, default=2048, help="Longest side of the overlay image")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)
    if not 0.0 <= args.threshold <= DEFAULTS.mask_threshold_max:
        parser.error(f"--threshold must be between 0 and {DEFAULTS.mask_threshold_max:g}")
    return args


def _save_output(result: RunResult, path: str, kind: str) -> None:
    # Both outputs come from the overlap-constrained factory
    if not result.changed:
        print(f"Nothing to crop; the {kind} image was not saved.")
        return
    result.state.factory.get_image().save(path)
    print(f"{kind.capitalize()} image saved as {path}")


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    inputs = PipelineInputs(
        images=(
            ImageEntry(args.source, placement=args.source_placement, pixel_spacing=args.source_spacing),
            ImageEntry(args.mask, placement=args.mask_placement, pixel_spacing=args.mask_spacing),
        ),
        source_location=args.source,
        mask_threshold=args.threshold,
        cropped_output=args.cropped_output or "",
        masked_output=args.masked_output or "",
    )

    controller = PipelineController()
    try:
        result = controller.run(inputs)
        if result.state is None:
            print(result.message)
            return 1
        print(pipeline_report(result.state))
        print(f"Pipeline changed: {result.changed}")

        for kind, path in (("cropped", args.cropped_output), ("masked", args.masked_output)):
            if path:
                _save_output(result, path, kind)

        if args.overlay:
            source = SourceFactory(args.source).get_image()
            overlay = render_footprint_overlay(source, result.state.footprint, max_dim=args.overlay_max_dim)
            overlay.save(args.overlay)
            logger.info("Overlay written to %s", args.overlay)
            print(f"Overlay saved as {args.overlay}")
    except ImageOpenError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
