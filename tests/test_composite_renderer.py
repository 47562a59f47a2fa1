import numpy as np
import pytest

from models.errors import DimensionMismatch
from models.image_adjustments import ImageAdjustments
from pipeline.composite_renderer import render_composite
from services.filter_service import FilterService


def test_transparent_cutout_shows_only_filtered_original(scenario_original, solid_image):
    cutout = solid_image(2, 2, (123, 45, 67, 0))
    defaults = ImageAdjustments()

    composite = render_composite(scenario_original, cutout, defaults)
    filtered = FilterService().apply(scenario_original, defaults)
    np.testing.assert_array_equal(composite.pixels, filtered.pixels)


@pytest.mark.parametrize("adjustments", [
    ImageAdjustments(),
    ImageAdjustments.identity(),
    ImageAdjustments(grayscale=0.0, brightness=2.0, contrast=0.0, blur=10.0),
])
def test_opaque_cutout_masks_everything(scenario_original, solid_image, adjustments):
    cutout = solid_image(2, 2, (10, 20, 30, 255))
    composite = render_composite(scenario_original, cutout, adjustments)
    assert (composite.pixels == np.array([10, 20, 30, 255], dtype=np.uint8)).all()


def test_cutout_must_match_original_size(scenario_original, solid_image):
    with pytest.raises(DimensionMismatch):
        render_composite(scenario_original, solid_image(3, 2, (0, 0, 0, 255)), ImageAdjustments())


def test_sources_are_left_untouched(random_image):
    original = random_image(seed=20)
    cutout = random_image(seed=21)
    snapshot = original.pixels.copy(), cutout.pixels.copy()

    render_composite(original, cutout, ImageAdjustments(blur=1.0))
    np.testing.assert_array_equal(original.pixels, snapshot[0])
    np.testing.assert_array_equal(cutout.pixels, snapshot[1])
