from __future__ import annotations

from typing import Callable, Optional, Tuple

import numpy as np
import pytest

from models.image import Image
from services.image_service import ImageService


@pytest.fixture
def image_service() -> ImageService:
    return ImageService()


@pytest.fixture
def scenario_original(image_service: ImageService) -> Image:
    """2x2: red, green / blue, white, all opaque."""
    return image_service.from_rgba([
        [(255, 0, 0, 255), (0, 255, 0, 255)],
        [(0, 0, 255, 255), (255, 255, 255, 255)],
    ])


@pytest.fixture
def random_image(image_service: ImageService) -> Callable[..., Image]:
    """Factory for seeded random RGBA bitmaps."""

    def make(width: int = 17, height: int = 11, seed: int = 0, opaque: bool = False) -> Image:
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
        if opaque:
            pixels[..., 3] = 255
        return image_service.create_image(pixels)

    return make


@pytest.fixture
def solid_image(image_service: ImageService) -> Callable[..., Image]:
    def make(width: int, height: int, rgba: Tuple[int, int, int, int]) -> Image:
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[...] = rgba
        return image_service.create_image(pixels)

    return make


@pytest.fixture
def fake_segmenter(image_service: ImageService) -> Callable[..., Callable[[bytes], bytes]]:
    """
    Builds a stand-in for the background-removal collaborator: it keeps the
    upload's size and sets a fixed alpha (and optionally a fixed colour).
    """

    def make(alpha: int = 0, color: Optional[Tuple[int, int, int]] = None) -> Callable[[bytes], bytes]:
        def segment(data: bytes) -> bytes:
            pixels = image_service.decode(data).pixels.copy()
            if color is not None:
                pixels[..., :3] = color
            pixels[..., 3] = alpha
            return image_service.encode_png(Image(pixels))

        return segment

    return make
