# services/segmentation_service.py
import logging
import os

from dotenv import load_dotenv

from models.image import Image
from repositories.segmentation_repository import SegmentationRepository
from services.image_service import ImageService

load_dotenv()

logger = logging.getLogger(__name__)


class SegmentationService:
    """
    Default background-removal collaborator: encoded image in, encoded
    RGBA cutout (same pixel size, person opaque, background transparent) out.
    """

    def __init__(self, repo: SegmentationRepository = None,
                 image_service: ImageService = None) -> None:
        self.repo = repo or SegmentationRepository()
        self.image_service = image_service or ImageService()
        self.threshold = float(os.getenv("SEGMENTATION_THRESHOLD", "0.5"))

    def cutout(self, img: Image, thr: float = None) -> Image:
        thr = self.threshold if thr is None else thr
        pixels = self.repo.retrieve_cutout(img.pixels, thr)
        return self.image_service.create_image(pixels)

    def segment(self, image_bytes: bytes) -> bytes:
        img = self.image_service.decode(image_bytes)
        logger.info(f"Segmenting {img.width}x{img.height} image")
        return self.image_service.encode_png(self.cutout(img))
