"""
Overlay pack models.

Data classes and enums shared by the services, the orchestrator and the
HTTP layer.
"""

# Enums
from .enums import (
    WorkspaceType,
    Accessibility,
    GenerationState,
)

# Inputs
from .vehicle import (
    VehicleDescriptor,
    RepairIntent,
)

# Planning
from .planning import (
    TechnicalPlan,
    VisualBrief,
    LayoutSpec,
    VehicleNotes,
)

# Overlay pack
from .overlay import (
    NormalizedCoordinate,
    OverlayPart,
    AccessPath,
    OverlayLayer,
    OverlayPack,
    utc_now_iso,
)

__all__ = [
    "WorkspaceType",
    "Accessibility",
    "GenerationState",
    "VehicleDescriptor",
    "RepairIntent",
    "TechnicalPlan",
    "VisualBrief",
    "LayoutSpec",
    "VehicleNotes",
    "NormalizedCoordinate",
    "OverlayPart",
    "AccessPath",
    "OverlayLayer",
    "OverlayPack",
    "utc_now_iso",
]
