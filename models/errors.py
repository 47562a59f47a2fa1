# models/errors.py
"""
Domain errors raised by the filter / compositing pipeline and the editor
session that drives it.
"""


class CompositorError(Exception):
    """Base class for every error the pipeline raises on purpose."""


class InvalidDimensions(CompositorError, ValueError):
    """A bitmap has zero width or zero height."""


class DimensionMismatch(CompositorError, ValueError):
    """Base and overlay bitmaps differ in width or height."""


class OutOfRangeAdjustment(CompositorError, ValueError):
    """An adjustment value is outside its declared range (or unknown)."""


class SegmentationFailure(CompositorError, RuntimeError):
    """The background-removal collaborator failed, hung or returned garbage."""
