from dataclasses import replace

import pytest
from PIL import Image

from slide_frame_aligner.footprint import RegionFactory, SourceFactory
from slide_frame_aligner.geometry import Point, Rect, Size, SRTTransform
from slide_frame_aligner.pipeline import (
    REQUIRES_TWO_IMAGES,
    ImageEntry,
    ImageRole,
    PipelineController,
    PipelineInputs,
    PipelineStatus,
)
from slide_frame_aligner.properties import ImageOpenError, ImageProperties

DIMENSIONS = {"source.tif": (100, 80), "mask.tif": (50, 40)}


class CountingLoader:
    def __init__(self):
        self.calls = 0

    def __call__(self, entry):
        self.calls += 1
        return ImageProperties(
            location=entry.location,
            placement=entry.placement,
            override_pixel_spacing=entry.pixel_spacing,
            intrinsic_pixel_size=Size(1.0, 1.0),
            pixel_dimensions=DIMENSIONS[entry.location],
        )


def make_inputs(mask_placement=None, **kwargs):
    images = (
        ImageEntry("mask.tif", placement=mask_placement or SRTTransform()),
        ImageEntry("source.tif"),
    )
    return PipelineInputs(images=images, source_location="source.tif", **kwargs)


def make_controller():
    loader = CountingLoader()
    return PipelineController(loader=loader, factory_builder=lambda props: SourceFactory(props.location)), loader


def test_requires_exactly_two_images():
    controller, loader = make_controller()
    inputs = PipelineInputs(images=(ImageEntry("source.tif"),), source_location="source.tif")

    result = controller.run(inputs)
    assert result.message == REQUIRES_TWO_IMAGES
    assert result.state is None
    assert not result.changed
    assert result.status is PipelineStatus.IDLE
    assert loader.calls == 0


def test_source_must_be_one_of_the_images():
    controller, loader = make_controller()
    result = controller.run(replace(make_inputs(), source_location="other.tif"))
    assert result.message == REQUIRES_TWO_IMAGES
    assert loader.calls == 0


def test_roles_follow_source_selection_not_position():
    controller, _ = make_controller()
    state = controller.run(make_inputs()).state
    assert state.source.location == "source.tif"
    assert state.mask.location == "mask.tif"
    assert set(state.properties) == {ImageRole.SOURCE, ImageRole.MASK}


def test_first_run_builds_pipeline():
    controller, loader = make_controller()
    result = controller.run(make_inputs())

    assert result.status is PipelineStatus.BUILT
    assert result.changed
    assert loader.calls == 2
    assert result.state.footprint.intersection == Rect(25.0, 20.0, 50.0, 40.0)
    assert isinstance(result.state.factory, RegionFactory)


def test_unchanged_inputs_are_memoized():
    controller, loader = make_controller()
    first = controller.run(make_inputs())
    second = controller.run(make_inputs())

    assert loader.calls == 2
    assert not second.changed
    assert second.status is PipelineStatus.BUILT
    assert second.state.factory is first.state.factory


@pytest.mark.parametrize(
    "change",
    [
        {"display_region": Rect(0.0, 0.0, 10.0, 10.0)},
        {"mask_threshold": 42.0},
        {"cropped_output": "cropped.tif"},
        {"masked_output": "masked.tif"},
    ],
)
def test_any_input_change_rebuilds(change):
    controller, loader = make_controller()
    controller.run(make_inputs())
    result = controller.run(make_inputs(**change))

    assert loader.calls == 4
    assert result.changed


def test_image_placement_change_rebuilds():
    controller, loader = make_controller()
    controller.run(make_inputs())
    result = controller.run(make_inputs(mask_placement=SRTTransform(translation=Point(10.0, 0.0))))

    assert loader.calls == 4
    assert result.state.footprint.intersection == Rect(35.0, 20.0, 50.0, 40.0)


def test_no_overlap_reports_unchanged_and_uses_native_factory():
    controller, _ = make_controller()
    result = controller.run(make_inputs(mask_placement=SRTTransform(translation=Point(1000.0, 0.0))))

    assert result.status is PipelineStatus.IDLE
    assert not result.changed
    assert result.state.footprint.intersection.is_empty()
    assert isinstance(result.state.factory, SourceFactory)
    assert result.state.factory.location == "source.tif"


def test_stop_discards_pipeline_and_forces_rebuild():
    controller, loader = make_controller()
    stopped = controller.run(make_inputs(), asked_to_stop=lambda: True)

    assert stopped.status is PipelineStatus.STOPPED
    assert not stopped.changed
    assert controller.status is PipelineStatus.STOPPED
    assert controller.state is None

    resumed = controller.run(make_inputs())
    assert loader.calls == 4
    assert resumed.changed
    assert resumed.status is PipelineStatus.BUILT
    assert resumed.state.factory is not stopped.state.factory


def test_unopenable_image_aborts_rebuild(tmp_path):
    source = tmp_path / "source.png"
    Image.new("L", (10, 10)).save(source)
    inputs = PipelineInputs(
        images=(ImageEntry(str(source)), ImageEntry(str(tmp_path / "missing.png"))),
        source_location=str(source),
    )

    controller = PipelineController()
    with pytest.raises(ImageOpenError):
        controller.run(inputs)
    assert controller.state is None


def test_default_loader_reads_files(tmp_path):
    source = tmp_path / "source.png"
    mask = tmp_path / "mask.png"
    Image.new("L", (20, 20)).save(source)
    Image.new("L", (10, 10)).save(mask)
    inputs = PipelineInputs(
        images=(ImageEntry(str(source)), ImageEntry(str(mask), pixel_spacing=Size(0.5, 0.5))),
        source_location=str(source),
    )

    result = PipelineController().run(inputs)
    assert result.changed
    assert result.state.mask.override_pixel_spacing == Size(0.5, 0.5)
    assert result.state.footprint.intersection == Rect(5.0, 5.0, 10.0, 10.0)
    assert result.state.factory.get_image().size == (10, 10)


def test_stop_on_memoized_run_reports_no_change():
    controller, loader = make_controller()
    controller.run(make_inputs())
    stopped = controller.run(make_inputs(), asked_to_stop=lambda: True)

    assert not stopped.changed
    assert controller.state is None
    assert loader.calls == 2


def test_failed_rebuild_drops_previous_pipeline():
    controller, _ = make_controller()
    controller.run(make_inputs())
    assert controller.status is PipelineStatus.BUILT

    def failing_loader(entry):
        raise ImageOpenError(f"Could not open the image: {entry.location}")

    controller.loader = failing_loader
    with pytest.raises(ImageOpenError):
        controller.run(make_inputs(mask_placement=SRTTransform(translation=Point(5.0, 0.0))))

    assert controller.state is None
    assert controller.status is PipelineStatus.IDLE


def test_state_properties_are_read_only():
    controller, _ = make_controller()
    state = controller.run(make_inputs()).state

    with pytest.raises(TypeError):
        state.properties[ImageRole.SOURCE] = state.mask
