from pathlib import Path
from typing import Union
from io import BytesIO
import os

import numpy as np
from PIL import Image as PILImage, UnidentifiedImageError
from dotenv import load_dotenv

from models.image import Image
from models.errors import InvalidDimensions

# Load environment variables
load_dotenv()


class ImageRepository:
    """
    Handles decoding / encoding for Image entities.
    Everything in memory is RGBA uint8; everything encoded is PNG so
    channel values survive the round trip unchanged.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower().lstrip(".")
            for ext in os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg").split(",")
            if ext.strip()
        }

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def retrieve_image_dimensions(img: Image):
        return img.pixels.shape[:2]

    @staticmethod
    def check_dimensions(img: Image) -> None:
        pixels = img.pixels
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA pixels, got shape {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidDimensions(
                f"Bitmap must be non-empty, got {pixels.shape[1]}x{pixels.shape[0]}"
            )

    def is_allowed(self, filename: str) -> bool:
        return "." in filename and filename.rsplit(".", 1)[1].lower() in self.VALID_EXTS

    # ─── codec ───────────────────────────────────────────────────────
    @staticmethod
    def _from_pil(pil_obj: PILImage.Image) -> np.ndarray:
        pil_obj.load()
        if pil_obj.width == 0 or pil_obj.height == 0:
            raise InvalidDimensions(f"Decoded image is {pil_obj.width}x{pil_obj.height}")
        return np.ascontiguousarray(np.asarray(pil_obj.convert("RGBA"), dtype=np.uint8))

    def decode(self, data: bytes) -> Image:
        """Encoded bytes (any format Pillow reads) → RGBA Image."""
        if not data:
            raise ValueError("Empty image payload")
        try:
            with PILImage.open(BytesIO(data)) as pil_obj:
                pixels = self._from_pil(pil_obj)
        except (UnidentifiedImageError, OSError) as exc:
            raise ValueError("Unable to decode image. Ensure it's a valid PNG/JPG.") from exc
        return Image(pixels=pixels)

    def encode_png(self, image: Image) -> bytes:
        """RGBA Image → PNG bytes (lossless, 8 bits per channel)."""
        self.check_dimensions(image)
        buffer = BytesIO()
        PILImage.fromarray(np.ascontiguousarray(image.pixels)).save(buffer, format="PNG")
        return buffer.getvalue()
