import dataclasses

import pytest

from models.errors import OutOfRangeAdjustment
from models.image_adjustments import ADJUSTMENT_RANGES, ImageAdjustments


def test_defaults_match_fresh_upload_settings():
    adj = ImageAdjustments()
    assert adj.to_dict() == {"grayscale": 1.0, "brightness": 0.6, "contrast": 1.2, "blur": 0.0}


def test_compared_by_value_and_immutable():
    a = ImageAdjustments(blur=2.0)
    b = ImageAdjustments(blur=2.0)
    assert a == b
    assert hash(a) == hash(b)
    with pytest.raises(dataclasses.FrozenInstanceError):
        a.blur = 3.0


def test_ranges_cover_every_field():
    names = {f.name for f in dataclasses.fields(ImageAdjustments)}
    assert set(ADJUSTMENT_RANGES) == names
    assert ADJUSTMENT_RANGES["blur"].maximum == 10.0
    assert ADJUSTMENT_RANGES["blur"].step == 0.5


@pytest.mark.parametrize("field, value", [
    ("grayscale", -0.1),
    ("grayscale", 1.01),
    ("brightness", 2.5),
    ("contrast", -1.0),
    ("blur", 10.5),
    ("blur", float("nan")),
])
def test_validate_rejects_out_of_range(field, value):
    with pytest.raises(OutOfRangeAdjustment):
        ImageAdjustments(**{field: value}).validate()


def test_range_bounds_are_inclusive():
    ImageAdjustments(grayscale=0.0, brightness=2.0, contrast=0.0, blur=10.0).validate()


def test_from_mapping_overlays_partial_changes():
    base = ImageAdjustments(contrast=1.5)
    adj = ImageAdjustments.from_mapping({"blur": "2.5"}, base=base)
    assert adj == ImageAdjustments(contrast=1.5, blur=2.5)


def test_from_mapping_refuses_unknown_and_non_numeric():
    with pytest.raises(OutOfRangeAdjustment):
        ImageAdjustments.from_mapping({"saturation": 1.0})
    with pytest.raises(OutOfRangeAdjustment):
        ImageAdjustments.from_mapping({"blur": "lots"})
    with pytest.raises(OutOfRangeAdjustment):
        ImageAdjustments.from_mapping({"blur": None})


@pytest.mark.parametrize("value", [True, False])
def test_booleans_are_refused_like_validate_does(value):
    with pytest.raises(OutOfRangeAdjustment, match="boolean"):
        ImageAdjustments.from_mapping({"blur": value})
    with pytest.raises(OutOfRangeAdjustment):
        ImageAdjustments(blur=value).validate()


def test_with_value_validates():
    adj = ImageAdjustments()
    assert adj.with_value("brightness", 1.0).brightness == 1.0
    with pytest.raises(OutOfRangeAdjustment):
        adj.with_value("brightness", 3.0)
    # original untouched
    assert adj.brightness == 0.6


def test_clamped_snaps_slider_values():
    adj = ImageAdjustments.clamped(grayscale=-1, brightness=0.63, contrast=5, blur=2.3)
    assert adj == ImageAdjustments(grayscale=0.0, brightness=0.6, contrast=2.0, blur=2.5)
    assert ImageAdjustments.clamped(blur=12).blur == 10.0


def test_identity_parameters():
    assert ImageAdjustments.identity() == ImageAdjustments(
        grayscale=0.0, brightness=1.0, contrast=1.0, blur=0.0
    )
