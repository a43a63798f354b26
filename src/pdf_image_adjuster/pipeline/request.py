from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Tuple

from pdf_image_adjuster.config import (
    CONFIG_FORMAT_VERSION,
    CURVE_CHANNEL_ALIASES,
    CURVE_CHANNELS,
    HUE_RANGE,
    IDENTITY_CURVE,
    LIGHTNESS_RANGE,
    SATURATION_RANGE,
)


def _clamp(value: float, bounds: Tuple[float, float]) -> float:
    return max(bounds[0], min(bounds[1], value))


@dataclass(frozen=True)
class HslAdjustment:
    """Hue delta in degrees, saturation/lightness deltas in percent."""
    hue: float = 0.0
    saturation: float = 0.0
    lightness: float = 0.0

    def is_identity(self) -> bool:
        return self.hue == 0.0 and self.saturation == 0.0 and self.lightness == 0.0

    def clamped(self) -> "HslAdjustment":
        """Clamp every delta to the slider ranges"""
        return HslAdjustment(
            hue=_clamp(self.hue, HUE_RANGE),
            saturation=_clamp(self.saturation, SATURATION_RANGE),
            lightness=_clamp(self.lightness, LIGHTNESS_RANGE),
        )


@dataclass(frozen=True)
class CurvePoint:
    x: float  # 0-1
    y: float  # 0-1


def _identity_points() -> Tuple[CurvePoint, ...]:
    return tuple(CurvePoint(x, y) for x, y in IDENTITY_CURVE)


def _as_points(points: Iterable[Any]) -> Tuple[CurvePoint, ...]:
    result = []
    for p in points:
        if isinstance(p, CurvePoint):
            result.append(p)
        elif isinstance(p, dict):
            result.append(CurvePoint(float(p['x']), float(p['y'])))
        else:
            x, y = p
            result.append(CurvePoint(float(x), float(y)))
    return tuple(result)


@dataclass(frozen=True)
class CurveConfig:
    """
    Master curve plus one curve per color channel.
    The master curve is applied first, then the channel curve.
    Point lists are stored as tuples so configs are hashable (LUT cache key).
    """
    rgb: Tuple[CurvePoint, ...] = field(default_factory=_identity_points)
    r: Tuple[CurvePoint, ...] = field(default_factory=_identity_points)
    g: Tuple[CurvePoint, ...] = field(default_factory=_identity_points)
    b: Tuple[CurvePoint, ...] = field(default_factory=_identity_points)

    def __post_init__(self):
        # Accept lists of CurvePoint / (x, y) / {'x':..,'y':..}
        for name in CURVE_CHANNELS:
            object.__setattr__(self, name, _as_points(getattr(self, name)))

    @property
    def master(self) -> Tuple[CurvePoint, ...]:
        return self.rgb

    def channel(self, name: str) -> Tuple[CurvePoint, ...]:
        key = CURVE_CHANNEL_ALIASES.get(name.lower())
        if key is None:
            raise KeyError(f"Unknown curve channel: {name}")
        return getattr(self, key)

    def is_identity(self) -> bool:
        identity = _identity_points()
        return all(getattr(self, name) == identity for name in CURVE_CHANNELS)


@dataclass(frozen=True)
class AdjustmentConfig:
    hsl: HslAdjustment = field(default_factory=HslAdjustment)
    curves: CurveConfig = field(default_factory=CurveConfig)

    @classmethod
    def identity(cls) -> "AdjustmentConfig":
        return cls()

    def is_identity(self) -> bool:
        return self.hsl.is_identity() and self.curves.is_identity()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible representation"""
        return {
            'version': CONFIG_FORMAT_VERSION,
            'hsl': {
                'hue': self.hsl.hue,
                'saturation': self.hsl.saturation,
                'lightness': self.hsl.lightness,
            },
            'curves': {
                name: [{'x': p.x, 'y': p.y} for p in getattr(self.curves, name)]
                for name in CURVE_CHANNELS
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdjustmentConfig":
        """Inverse of to_dict. Missing sections fall back to identity."""
        hsl_data = data.get('hsl') or {}
        curves_data = data.get('curves') or {}
        hsl = HslAdjustment(
            hue=float(hsl_data.get('hue', 0.0)),
            saturation=float(hsl_data.get('saturation', 0.0)),
            lightness=float(hsl_data.get('lightness', 0.0)),
        )
        curves = CurveConfig(**{
            name: curves_data[name]
            for name in CURVE_CHANNELS
            if curves_data.get(name)
        })
        return cls(hsl=hsl, curves=curves)


@dataclass(frozen=True)
class ProcessRequest:
    """Immutable preview request. Eliminates race conditions."""
    request_id: int
    config: Optional[AdjustmentConfig] = None
    # Load request payload
    pixels: Optional[bytes] = None
    width: int = 0
    height: int = 0

    def __post_init__(self):
        # Defensive copy of caller-owned buffer
        if self.pixels is not None:
            object.__setattr__(self, 'pixels', bytes(self.pixels))

    @property
    def is_load(self) -> bool:
        return self.pixels is not None
