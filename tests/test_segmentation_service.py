import numpy as np
import pytest

from repositories.segmentation_repository import SegmentationRepository
from services.segmentation_service import SegmentationService


class HalfFrameEngine:
    """Pretends the person fills the left half of the frame."""

    def __init__(self):
        self.calls = 0

    def predict(self, rgb):
        self.calls += 1
        mask = np.zeros(rgb.shape[:2], dtype=np.float32)
        mask[:, : rgb.shape[1] // 2] = 1.0
        return mask


class WrongSizeEngine:
    def predict(self, rgb):
        return np.ones((rgb.shape[0] + 1, rgb.shape[1]), dtype=np.float32)


@pytest.fixture
def service(image_service):
    return SegmentationService(repo=SegmentationRepository(engine=HalfFrameEngine()),
                               image_service=image_service)


def test_cutout_uses_mask_as_alpha(service, random_image):
    original = random_image(width=40, height=30, seed=40, opaque=True)
    cutout = service.cutout(original)

    assert cutout.pixels.shape == original.pixels.shape
    np.testing.assert_array_equal(cutout.pixels[..., :3], original.pixels[..., :3])
    assert (cutout.pixels[:, :10, 3] == 255).all()
    assert (cutout.pixels[:, 30:, 3] == 0).all()


def test_segment_round_trips_bytes(service, image_service, random_image):
    original = random_image(width=40, height=30, seed=41, opaque=True)
    cutout = image_service.decode(service.segment(image_service.encode_png(original)))
    assert cutout.size == original.size
    assert set(np.unique(cutout.pixels[..., 3])) <= {0, 255}


def test_mask_size_must_match_image(random_image):
    repo = SegmentationRepository(engine=WrongSizeEngine())
    with pytest.raises(ValueError):
        repo.retrieve_mask(random_image(width=8, height=8).pixels[..., :3])


def test_engine_is_created_lazily():
    repo = SegmentationRepository()
    assert repo._engine is None
