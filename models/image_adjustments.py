from __future__ import annotations
from dataclasses import dataclass, asdict, fields, replace
import math
from typing import Any, Dict, Mapping

from models.errors import OutOfRangeAdjustment


@dataclass(frozen=True)
class AdjustmentRange:
    """Valid interval and slider step for one adjustment."""
    minimum: float
    maximum: float
    step: float

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum

    def clamp(self, value: float) -> float:
        """Clamp into range, then snap to the step grid."""
        value = min(max(float(value), self.minimum), self.maximum)
        steps = math.floor((value - self.minimum) / self.step + 0.5)
        # round() strips float noise such as 0.30000000000000004
        return round(min(self.minimum + steps * self.step, self.maximum), 6)


ADJUSTMENT_RANGES: Dict[str, AdjustmentRange] = {
    "grayscale":  AdjustmentRange(0.0, 1.0, 0.1),
    "brightness": AdjustmentRange(0.0, 2.0, 0.1),
    "contrast":   AdjustmentRange(0.0, 2.0, 0.1),
    "blur":       AdjustmentRange(0.0, 10.0, 0.5),
}


@dataclass(frozen=True)
class ImageAdjustments:
    """
    Value-object holding the four filter parameters.
    Freely copied and compared by value; edits produce a new object.
    """
    grayscale:  float = 1.0      # [0 , 1]   mix toward luminance
    brightness: float = 0.6      # [0 , 2]   1.0 = unchanged
    contrast:   float = 1.2      # [0 , 2]   1.0 = unchanged
    blur:       float = 0.0      # [0 , 10]  gaussian sigma in px

    # ── Validation ───────────────────────────────────────────────────
    def validate(self) -> "ImageAdjustments":
        """Raise OutOfRangeAdjustment unless every field is inside its range."""
        for name, rng in ADJUSTMENT_RANGES.items():
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise OutOfRangeAdjustment(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or not rng.contains(value):
                raise OutOfRangeAdjustment(
                    f"{name}={value} is outside [{rng.minimum}, {rng.maximum}]"
                )
        return self

    @classmethod
    def identity(cls) -> "ImageAdjustments":
        """Parameters under which the filter only forces alpha to 255."""
        return cls(grayscale=0.0, brightness=1.0, contrast=1.0, blur=0.0)

    @classmethod
    def clamped(cls, **values: float) -> "ImageAdjustments":
        """Build from slider values, clamping and snapping each one."""
        _check_names(values)
        return cls(**{k: ADJUSTMENT_RANGES[k].clamp(v) for k, v in values.items()})

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any],
                     base: "ImageAdjustments" | None = None) -> "ImageAdjustments":
        """
        Overlay *data* on *base* (defaults when omitted) and validate.
        Partial mappings are allowed: a slider only sends its own field.
        """
        _check_names(data)
        flags = sorted(k for k, v in data.items() if isinstance(v, bool))
        if flags:
            raise OutOfRangeAdjustment(f"{', '.join(flags)} must be a number, not a boolean")
        base = base or cls()
        try:
            merged = replace(base, **{k: float(v) for k, v in data.items()})
        except (TypeError, ValueError) as exc:
            raise OutOfRangeAdjustment(f"Adjustment values must be numeric: {exc}") from exc
        return merged.validate()

    def with_value(self, name: str, value: float) -> "ImageAdjustments":
        return self.from_mapping({name: value}, base=self)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def _check_names(data: Mapping[str, Any]) -> None:
    known = {f.name for f in fields(ImageAdjustments)}
    unknown = set(data) - known
    if unknown:
        raise OutOfRangeAdjustment(f"Unknown adjustment(s): {', '.join(sorted(unknown))}")
