from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Callable, Dict, Mapping, Optional, Tuple

from .config import DEFAULTS
from .footprint import Factory, FootprintResult, SourceFactory, intersect_footprints
from .geometry import Rect, Size, SRTTransform
from .properties import ImageOpenError, ImageProperties, read_image_properties

logger = logging.getLogger(__name__)

REQUIRES_TWO_IMAGES = (
    "This tool requires exactly two images to be loaded. "
    "Please load a source image and a mask image, "
    "and select which of the two is the SOURCE image."
)


class PipelineStatus(enum.Enum):
    IDLE = "idle"
    BUILT = "built"
    STOPPED = "stopped"


class ImageRole(enum.Enum):
    SOURCE = "source"
    MASK = "mask"


@dataclass(frozen=True)
class ImageEntry:
    """An image as loaded by the host: its file plus user-entered placement and spacing."""

    location: str
    placement: SRTTransform = SRTTransform()
    pixel_spacing: Size = Size(1.0, 1.0)
    opacity: float = 1.0
    visible: bool = True


@dataclass(frozen=True)
class PipelineInputs:
    images: Tuple[ImageEntry, ...]
    source_location: str
    display_region: Optional[Rect] = None
    mask_threshold: float = DEFAULTS.mask_threshold
    cropped_output: str = ""
    masked_output: str = ""

    def roles(self) -> Optional[Dict[ImageRole, ImageEntry]]:
        """Source and mask entries, or None unless exactly two images hold one source."""
        if len(self.images) != 2:
            return None
        sources = [entry for entry in self.images if entry.location == self.source_location]
        masks = [entry for entry in self.images if entry.location != self.source_location]
        if len(sources) != 1 or len(masks) != 1:
            return None
        return {ImageRole.SOURCE: sources[0], ImageRole.MASK: masks[0]}


@dataclass(frozen=True)
class PipelineState:
    inputs: PipelineInputs
    properties: Mapping[ImageRole, ImageProperties]
    footprint: FootprintResult
    changed: bool

    @property
    def source(self) -> ImageProperties:
        return self.properties[ImageRole.SOURCE]

    @property
    def mask(self) -> ImageProperties:
        return self.properties[ImageRole.MASK]

    @property
    def factory(self) -> Factory:
        return self.footprint.factory


@dataclass(frozen=True)
class RunResult:
    status: PipelineStatus
    state: Optional[PipelineState] = None
    message: str = ""

    @property
    def changed(self) -> bool:
        return self.state is not None and self.state.changed


PropertiesLoader = Callable[[ImageEntry], ImageProperties]
FactoryBuilder = Callable[[ImageProperties], Factory]


def native_factory(props: ImageProperties) -> Factory:
    return SourceFactory(props.location)


def load_entry(entry: ImageEntry) -> ImageProperties:
    return read_image_properties(
        entry.location,
        placement=entry.placement,
        override_spacing=entry.pixel_spacing,
        opacity=entry.opacity,
        visible=entry.visible,
    )


def build_state(
    inputs: PipelineInputs,
    loader: PropertiesLoader = load_entry,
    factory_builder: FactoryBuilder = native_factory,
) -> Optional[PipelineState]:
    roles = inputs.roles()
    if roles is None:
        return None
    properties = MappingProxyType({role: loader(entry) for role, entry in roles.items()})
    source = properties[ImageRole.SOURCE]
    mask = properties[ImageRole.MASK]
    footprint = intersect_footprints(source, mask, factory_builder(source))
    return PipelineState(inputs=inputs, properties=properties, footprint=footprint, changed=footprint.overlaps)


class PipelineController:
    """Rebuilds the pipeline state only when its input snapshot changes.

    An empty overlap still rebuilds but reports the pipeline as unchanged.
    A stop request drops the built state so the next run starts from scratch,
    and the stopped run never reports a change. A failed image read leaves
    the controller idle with no state.
    """

    def __init__(
        self,
        loader: PropertiesLoader = load_entry,
        factory_builder: FactoryBuilder = native_factory,
    ) -> None:
        self.loader = loader
        self.factory_builder = factory_builder
        self.status = PipelineStatus.IDLE
        self._state: Optional[PipelineState] = None

    @property
    def state(self) -> Optional[PipelineState]:
        return self._state

    def run(self, inputs: PipelineInputs, asked_to_stop: Callable[[], bool] = lambda: False) -> RunResult:
        if self.status is PipelineStatus.STOPPED:
            self.status = PipelineStatus.IDLE

        if inputs.roles() is None:
            logger.warning("Expected one source and one mask image, got %d image(s)", len(inputs.images))
            return RunResult(status=self.status, message=REQUIRES_TWO_IMAGES)

        if self._state is None or self._state.inputs != inputs:
            logger.info("Rebuilding pipeline for source %s", inputs.source_location)
            try:
                state = build_state(inputs, self.loader, self.factory_builder)
            except ImageOpenError:
                self._state = None
                self.status = PipelineStatus.IDLE
                raise
            self.status = PipelineStatus.BUILT if state.changed else PipelineStatus.IDLE
        else:
            logger.debug("Inputs unchanged; reusing pipeline")
            state = replace(self._state, changed=False)
        self._state = state

        if asked_to_stop():
            logger.info("Stop requested; discarding the built pipeline")
            self._state = None
            self.status = PipelineStatus.STOPPED
            return RunResult(status=self.status, state=replace(state, changed=False))
        return RunResult(status=self.status, state=state)
