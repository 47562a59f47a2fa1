from __future__ import annotations

import logging

import cv2
import numpy as np

from models.image import Image
from models.image_adjustments import ImageAdjustments
from services.image_service import ImageService

logger = logging.getLogger(__name__)

# ITU-R BT.601 luma weights
_LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float64)


def _to_u8(values: np.ndarray) -> np.ndarray:
    """Round half-up and clamp to [0, 255]."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


class FilterService:
    """
    Stylises the full original photo: grayscale mix → brightness →
    contrast → blur, in that order.

    *   Works only with Image objects (RGBA numpy arrays); no I/O.
    *   Every stage takes and returns (H, W, 3) uint8, so each one
        re-quantises to [0, 255] before the next and can be tested alone.
    *   Output alpha is always 255, whatever the input alpha was.
    """

    def __init__(self, image_service: ImageService | None = None):
        self.image_service = image_service or ImageService()

    # ─── Public API ────────────────────────────────────────────────
    def apply(self, original: Image, adj: ImageAdjustments) -> Image:
        """
        Args:
            original: RGBA source bitmap (not modified).
            adj: pre-validated adjustments.

        Returns:
            Image: new bitmap, same size, fully opaque.
        """
        self.image_service.validate(original)

        rgb = np.ascontiguousarray(original.pixels[..., :3])
        rgb = self.grayscale_mix(rgb, adj.grayscale)
        rgb = self.brightness(rgb, adj.brightness)
        rgb = self.contrast(rgb, adj.contrast)
        rgb = self.blur(rgb, adj.blur)

        out = np.empty(original.pixels.shape, dtype=np.uint8)
        out[..., :3] = rgb
        out[..., 3] = 255
        logger.debug(f"Filtered {original.width}x{original.height} with {adj}")
        return self.image_service.create_image(out)

    # ─── Stages ────────────────────────────────────────────────────
    @staticmethod
    def luminance(rgb: np.ndarray) -> np.ndarray:
        """(H, W) uint8 rounded luma."""
        return _to_u8(rgb.astype(np.float64) @ _LUMA)

    @classmethod
    def grayscale_mix(cls, rgb: np.ndarray, amount: float) -> np.ndarray:
        if amount == 0:
            return rgb.copy()
        lum = cls.luminance(rgb).astype(np.float64)[..., None]
        mixed = rgb.astype(np.float64) * (1.0 - amount) + lum * amount
        return _to_u8(mixed)

    @staticmethod
    def brightness(rgb: np.ndarray, factor: float) -> np.ndarray:
        if factor == 1:
            return rgb.copy()
        return _to_u8(rgb.astype(np.float64) * factor)

    @staticmethod
    def contrast(rgb: np.ndarray, factor: float) -> np.ndarray:
        if factor == 1:
            return rgb.copy()
        return _to_u8((rgb.astype(np.float64) - 128.0) * factor + 128.0)

    @staticmethod
    def blur(rgb: np.ndarray, radius: float) -> np.ndarray:
        """
        Separable gaussian, sigma = radius px (same convention as CSS
        blur()). Borders replicate the edge pixel so edges don't darken.
        """
        if radius <= 0:
            return rgb.copy()
        return cv2.GaussianBlur(
            np.ascontiguousarray(rgb), (0, 0),
            sigmaX=float(radius), sigmaY=float(radius),
            borderType=cv2.BORDER_REPLICATE,
        )
