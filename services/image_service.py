from pathlib import Path
from typing import Union
import base64

import numpy as np

from models.image import Image
from models.errors import DimensionMismatch
from repositories.image_repository import ImageRepository


class ImageService:
    """Codec / I/O helpers.  No filter or compositing math here."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, path)

    def from_rgba(self, pixels) -> Image:
        """Wrap any (H, W, 4) array-like of 0-255 ints as a validated Image."""
        arr = np.asarray(pixels)
        if arr.ndim != 3 or arr.shape[-1] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA pixels, got shape {arr.shape}")
        img = self.create_image(np.ascontiguousarray(np.clip(arr, 0, 255).astype(np.uint8)))
        self.validate(img)
        return img

    def decode(self, data: bytes) -> Image:
        """Decode an uploaded / collaborator-produced image into RGBA."""
        return self.image_repository.decode(data)

    def encode_png(self, image: Image) -> bytes:
        return self.image_repository.encode_png(image)

    def to_data_url(self, image: Image) -> str:
        """PNG data URL for JSON responses (never JPEG: it would alter the pixels)."""
        b64 = base64.b64encode(self.encode_png(image)).decode("utf-8")
        return f"data:image/png;base64,{b64}"

    def is_allowed_filename(self, filename: str) -> bool:
        return self.image_repository.is_allowed(filename)

    def get_image_dimensions(self, img: Image):
        return self.image_repository.retrieve_image_dimensions(img)

    def validate(self, img: Image) -> None:
        """Raise InvalidDimensions for 0-width / 0-height bitmaps."""
        self.image_repository.check_dimensions(img)

    def ensure_same_dimensions(self, base: Image, overlay: Image) -> None:
        if self.get_image_dimensions(base) != self.get_image_dimensions(overlay):
            raise DimensionMismatch(
                f"Bitmaps differ in size: base {base.width}x{base.height}, "
                f"overlay {overlay.width}x{overlay.height}"
            )
