import numpy as np

from models.image import Image
from services.image_service import ImageService


class CompositingService:
    """
    Layers the background-free cutout over the filtered photo.

    • Standard "overlay over base" alpha blend, pixel for pixel.
    • Both bitmaps must already have identical dimensions; nothing is
      resized or cropped here.
    • Returns a **new** Image (no path yet), always fully opaque.
    """

    def __init__(self, image_service: ImageService = None):
        self.image_service = image_service or ImageService()

    @staticmethod
    def _compose(fg: np.ndarray, alpha_u8: np.ndarray, bg: np.ndarray) -> np.ndarray:
        alpha = alpha_u8.astype("float64")[..., None] / 255.0   # (H,W,1)
        out = fg.astype("float64") * alpha + bg.astype("float64") * (1.0 - alpha)
        return np.clip(np.floor(out + 0.5), 0, 255).astype("uint8")

    def blend(self, base: Image, overlay: Image) -> Image:
        """
        Args:
            base: filtered original (its alpha is ignored).
            overlay: cutout; its alpha channel drives the mix.

        Raises:
            InvalidDimensions: either bitmap is empty.
            DimensionMismatch: width or height differ.
        """
        self.image_service.validate(base)
        self.image_service.validate(overlay)
        self.image_service.ensure_same_dimensions(base, overlay)

        out = np.empty(base.pixels.shape, dtype=np.uint8)
        out[..., :3] = self._compose(overlay.pixels[..., :3], overlay.pixels[..., 3], base.pixels[..., :3])
        out[..., 3] = 255
        return self.image_service.create_image(out)
