"""
Technical plan models.

The planning phase asks the reasoning provider for a technical plan of the
workspace. These dataclasses hold the parsed plan; unknown keys returned by
the provider are ignored.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _text(value: Any) -> str:
    """Coerce a provider value to a string ("" for missing)."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


@dataclass
class VisualBrief:
    """How the workspace should look and where the target part sits."""
    viewpoint: str = ""
    style: str = ""
    contrast_requirements: str = ""
    color_scheme: str = ""
    target_part: str = ""
    part_location: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "viewpoint": self.viewpoint,
            "style": self.style,
            "contrast_requirements": self.contrast_requirements,
            "color_scheme": self.color_scheme,
            "target_part": self.target_part,
            "part_location": self.part_location,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VisualBrief":
        """Create from dictionary."""
        return cls(
            viewpoint=_text(data.get("viewpoint")),
            style=_text(data.get("style")),
            contrast_requirements=_text(data.get("contrast_requirements")),
            color_scheme=_text(data.get("color_scheme")),
            target_part=_text(data.get("target_part")),
            part_location=_text(data.get("part_location")),
        )


@dataclass
class LayoutSpec:
    """
    Qualitative layout of one component.

    ``position`` and ``size`` are labels such as "top-left" and "medium";
    the geometry synthesizer turns them into polygons.
    """
    position: str = "center"
    size: str = "small"
    color: str = "#00FFFF"
    stroke: str = ""
    shape: str = ""
    highlight_method: Optional[str] = None
    location_details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {
            "position": self.position,
            "size": self.size,
            "color": self.color,
        }
        if self.stroke:
            result["stroke"] = self.stroke
        if self.shape:
            result["shape"] = self.shape
        if self.highlight_method:
            result["highlight_method"] = self.highlight_method
        if self.location_details:
            result["location_details"] = self.location_details
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayoutSpec":
        """Create from dictionary."""
        return cls(
            position=_text(data.get("position")) or "center",
            size=_text(data.get("size")) or "small",
            color=_text(data.get("color")) or "#00FFFF",
            stroke=_text(data.get("stroke")),
            shape=_text(data.get("shape")),
            highlight_method=data.get("highlight_method"),
            location_details=data.get("location_details"),
        )


@dataclass
class VehicleNotes:
    """Vehicle-specific details from the plan."""
    engine_layout: str = ""
    part_accessibility: str = ""
    surrounding_obstacles: str = ""
    best_viewing_angle: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "engine_layout": self.engine_layout,
            "part_accessibility": self.part_accessibility,
            "surrounding_obstacles": self.surrounding_obstacles,
            "best_viewing_angle": self.best_viewing_angle,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VehicleNotes":
        """Create from dictionary."""
        return cls(
            engine_layout=_text(data.get("engine_layout")),
            part_accessibility=_text(data.get("part_accessibility")),
            surrounding_obstacles=_text(data.get("surrounding_obstacles")),
            best_viewing_angle=_text(data.get("best_viewing_angle")),
        )


@dataclass
class TechnicalPlan:
    """
    Parsed output of the planning phase.

    Required provider fields: visual_brief and layout_specifications.
    """
    visual_brief: VisualBrief
    layout_specifications: Dict[str, LayoutSpec] = field(default_factory=dict)
    ar_optimization: Dict[str, Any] = field(default_factory=dict)
    vehicle_specific_details: VehicleNotes = field(default_factory=VehicleNotes)

    @property
    def part_location(self) -> str:
        """
        Best free-text description of where the target part sits.

        Falls back through the target part's location details and the
        engine layout notes.
        """
        target = self.layout_specifications.get("target_part")
        return (
            self.visual_brief.part_location
            or (target.location_details if target else None)
            or self.vehicle_specific_details.engine_layout
            or "center of the workspace"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "visual_brief": self.visual_brief.to_dict(),
            "layout_specifications": {
                name: spec.to_dict()
                for name, spec in self.layout_specifications.items()
            },
            "ar_optimization": self.ar_optimization,
            "vehicle_specific_details": self.vehicle_specific_details.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TechnicalPlan":
        """Create from dictionary."""
        layout = data.get("layout_specifications") or {}
        return cls(
            visual_brief=VisualBrief.from_dict(data.get("visual_brief") or {}),
            layout_specifications={
                name: LayoutSpec.from_dict(spec)
                for name, spec in layout.items()
                if isinstance(spec, dict)
            },
            ar_optimization=data.get("ar_optimization") or {},
            vehicle_specific_details=VehicleNotes.from_dict(
                data.get("vehicle_specific_details") or {}
            ),
        )
