"""
Overlay pack models.

An OverlayPack is the cached bundle of visual and geometric data for one
(vehicle family, workspace) combination. All geometry is expressed in
normalized coordinates relative to the baseline canvas.

from_dict() is used both for provider output and for rows read back from the
store. It converts types but does not range-check coordinates; that is the
validator's job.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from overlay_packs.models.enums import Accessibility

DEFAULT_GLOW_COLOR = "#00FFFF"
DEFAULT_DASH_PATTERN = "15,10"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class NormalizedCoordinate:
    """A point in [0, 1] x [0, 1] relative to the baseline canvas."""
    x: float
    y: float

    @property
    def in_bounds(self) -> bool:
        return 0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> "NormalizedCoordinate":
        """
        Create from ``{"x": .., "y": ..}`` or an ``[x, y]`` pair.

        Raises:
            ValueError: If the point is not numeric
        """
        if isinstance(data, dict):
            x, y = data.get("x"), data.get("y")
        elif isinstance(data, (list, tuple)) and len(data) == 2:
            x, y = data
        else:
            raise ValueError(f"Unrecognized coordinate: {data!r}")
        if isinstance(x, bool) or isinstance(y, bool):
            raise ValueError(f"Non-numeric coordinate: {data!r}")
        try:
            return cls(x=float(x), y=float(y))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Non-numeric coordinate: {data!r}") from e


def _points_to_dicts(points: List[NormalizedCoordinate]) -> List[Dict[str, float]]:
    return [point.to_dict() for point in points]


def _points_from_dicts(data: Any) -> List[NormalizedCoordinate]:
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of points, got {type(data).__name__}")
    return [NormalizedCoordinate.from_dict(point) for point in data]


@dataclass
class OverlayPart:
    """Highlightable part: polygon, glow color, type tag and accessibility."""
    polygon: List[NormalizedCoordinate]
    glow_color: str = DEFAULT_GLOW_COLOR
    part_type: str = ""
    accessibility: Accessibility = Accessibility.EASY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polygon": _points_to_dicts(self.polygon),
            "glow_color": self.glow_color,
            "part_type": self.part_type,
            "accessibility": self.accessibility.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverlayPart":
        return cls(
            polygon=_points_from_dicts(data.get("polygon")),
            glow_color=data.get("glow_color") or DEFAULT_GLOW_COLOR,
            part_type=data.get("part_type") or "",
            accessibility=Accessibility.parse(data.get("accessibility")),
        )


@dataclass
class AccessPath:
    """Animated route guiding the user to a hard-to-reach part."""
    polyline: List[NormalizedCoordinate]
    animation_duration: int = 3000
    stroke_width: float = 3
    dash_pattern: str = DEFAULT_DASH_PATTERN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polyline": _points_to_dicts(self.polyline),
            "animation_duration": self.animation_duration,
            "stroke_width": self.stroke_width,
            "dash_pattern": self.dash_pattern,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessPath":
        return cls(
            polyline=_points_from_dicts(data.get("polyline")),
            animation_duration=int(data.get("animation_duration", 3000)),
            stroke_width=float(data.get("stroke_width", 3)),
            dash_pattern=str(data.get("dash_pattern") or DEFAULT_DASH_PATTERN),
        )


@dataclass
class OverlayLayer:
    """Semi-transparent cutaway panel for a removable obstruction."""
    polygon: List[NormalizedCoordinate]
    color_tint: str = "#333333"
    opacity_cutaway: float = 0.3
    layer_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polygon": _points_to_dicts(self.polygon),
            "color_tint": self.color_tint,
            "opacity_cutaway": self.opacity_cutaway,
            "layer_name": self.layer_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverlayLayer":
        return cls(
            polygon=_points_from_dicts(data.get("polygon")),
            color_tint=data.get("color_tint") or "#333333",
            opacity_cutaway=float(data.get("opacity_cutaway", 0.3)),
            layer_name=data.get("layer_name") or "",
        )


@dataclass
class OverlayPack:
    """
    Cached overlay bundle for one (vehicle family, workspace) combination.

    ``id`` is derived from vehicle_family and workspace_type by the cache key
    resolver. Exactly one of image_url / workspace_svg is normally set: the
    full tier carries an image, the vector-only and static tiers carry an SVG.
    """
    id: str
    vehicle_family: str
    workspace_type: str
    parts: Dict[str, OverlayPart]
    gpt_model: str
    image_url: Optional[str] = None
    workspace_svg: Optional[str] = None
    baseline_dimensions: Dict[str, int] = field(
        default_factory=lambda: {"width": 1000, "height": 600}
    )
    access_paths: Optional[Dict[str, AccessPath]] = None
    layers: Optional[Dict[str, OverlayLayer]] = None
    generated_at: str = field(default_factory=utc_now_iso)
    usage_count: int = 0

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization and storage."""
        return {
            "id": self.id,
            "vehicle_family": self.vehicle_family,
            "workspace_type": self.workspace_type,
            "image_url": self.image_url,
            "workspace_svg": self.workspace_svg,
            "baseline_dimensions": dict(self.baseline_dimensions),
            "parts": {name: part.to_dict() for name, part in self.parts.items()},
            "access_paths": (
                {name: path.to_dict() for name, path in self.access_paths.items()}
                if self.access_paths else None
            ),
            "layers": (
                {name: layer.to_dict() for name, layer in self.layers.items()}
                if self.layers else None
            ),
            "generated_at": self.generated_at,
            "gpt_model": self.gpt_model,
            "usage_count": self.usage_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverlayPack":
        """Create from dictionary."""
        access_paths = data.get("access_paths")
        layers = data.get("layers")
        generated_at = data.get("generated_at") or utc_now_iso()
        if isinstance(generated_at, datetime):
            generated_at = generated_at.isoformat()
        return cls(
            id=data["id"],
            vehicle_family=data.get("vehicle_family", ""),
            workspace_type=data.get("workspace_type", ""),
            image_url=data.get("image_url") or None,
            workspace_svg=data.get("workspace_svg") or None,
            baseline_dimensions=data.get("baseline_dimensions") or {"width": 1000, "height": 600},
            parts={
                name: OverlayPart.from_dict(part)
                for name, part in (data.get("parts") or {}).items()
            },
            access_paths=(
                {name: AccessPath.from_dict(path) for name, path in access_paths.items()}
                if access_paths else None
            ),
            layers=(
                {name: OverlayLayer.from_dict(layer) for name, layer in layers.items()}
                if layers else None
            ),
            generated_at=generated_at,
            gpt_model=data.get("gpt_model", ""),
            usage_count=int(data.get("usage_count") or 0),
        )
