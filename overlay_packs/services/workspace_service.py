"""
Workspace and vehicle family resolution.

Upstream collaborators of the pipeline: the workspace resolver maps a
repair to the physical area it happens in, and the vehicle classifier maps
a vehicle to the family bucket packs are shared across. The default
classifier is deliberately coarse; deployments can inject a better one.
"""

from abc import ABC, abstractmethod
from typing import Tuple, Union

from overlay_packs.models.enums import WorkspaceType
from overlay_packs.models.vehicle import RepairIntent, VehicleDescriptor
from overlay_packs.services.cache_keys import normalize_component

# Checked in order; the first keyword found in the repair identifier wins.
WORKSPACE_KEYWORDS: Tuple[Tuple[WorkspaceType, Tuple[str, ...]], ...] = (
    (WorkspaceType.ENGINE_FRONT, (
        "battery", "alternator", "starter", "radiator", "belt", "hose",
        "spark", "ignition", "air_filter", "engine",
    )),
    (WorkspaceType.UNDERCARRIAGE, (
        "oil", "transmission", "exhaust", "suspension", "undercarriage",
        "differential",
    )),
    (WorkspaceType.WHEEL_ASSEMBLY, (
        "brake", "wheel", "tire", "rotor", "caliper",
    )),
    (WorkspaceType.INTERIOR, (
        "dashboard", "interior", "seat", "console", "radio", "hvac",
    )),
    (WorkspaceType.TRUNK_REAR, (
        "trunk", "taillight", "rear", "hatch",
    )),
)

DEFAULT_WORKSPACE = WorkspaceType.ENGINE_FRONT


def determine_workspace_for_repair(repair: Union[RepairIntent, str]) -> WorkspaceType:
    """
    Resolve the workspace a repair takes place in.

    Keyword match on the repair identifier; engine_front when nothing
    matches.
    """
    identifier = repair.identifier if isinstance(repair, RepairIntent) else str(repair)
    text = identifier.strip().lower().replace(" ", "_").replace("-", "_")
    for workspace, keywords in WORKSPACE_KEYWORDS:
        if any(keyword in text for keyword in keywords):
            return workspace
    return DEFAULT_WORKSPACE


class VehicleClassifier(ABC):
    """Maps a vehicle to the family its overlay packs are shared within."""

    @abstractmethod
    def classify(self, vehicle: VehicleDescriptor) -> str:
        ...


class MakeFamilyClassifier(VehicleClassifier):
    """Groups every vehicle of a make into ``{make}_generic_family``."""

    def classify(self, vehicle: VehicleDescriptor) -> str:
        return f"{normalize_component(vehicle.make or 'unknown')}_generic_family"
