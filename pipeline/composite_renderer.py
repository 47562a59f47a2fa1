"""
Composite Renderer Pipeline
Stylises the whole original photo and layers the background-free cutout
on top, producing the single flattened image the user exports.
"""

from models.image import Image
from models.image_adjustments import ImageAdjustments
from services.filter_service import FilterService
from services.compositing_service import CompositingService


def render_composite(
    original: Image,
    cutout: Image,
    adjustments: ImageAdjustments,
    *,
    filter_service: FilterService = FilterService(),
    compositing_service: CompositingService = CompositingService(),
) -> Image:
    """
    composite = blend(apply(original, adjustments), cutout)

    Always a full recomputation from the two source bitmaps; nothing is
    patched incrementally.

    Args:
        original: uploaded photo (RGBA, not modified)
        cutout: segmentation result, same size as *original*
        adjustments: validated filter parameters
        filter_service: Filter stage
        compositing_service: Alpha compositor

    Returns:
        Image: fully opaque composite, same size as *original*
    """
    filtered = filter_service.apply(original, adjustments)
    return compositing_service.blend(filtered, cutout)
