"""
Auxiliary Phases

Best-effort enrichments of an overlay pack:

- Access-path synthesis: an animated 2-4 waypoint route for every part
  whose accessibility is "difficult".
- Cutaway-layer synthesis: named semi-transparent obstruction layers.

Both run concurrently. Any failure in a phase, including coordinates
outside [0, 1] in its own output, yields an empty map for that phase; the
pack stays valid without them.
"""

import asyncio
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar

from overlay_packs.core.config import (
    ACCESS_PATHS_PHASE,
    CUTAWAY_LAYERS_PHASE,
    PhaseProfile,
    get_phase_profile,
)
from overlay_packs.core.exceptions import ParseError
from overlay_packs.core.json_extraction import extract_json_object
from overlay_packs.core.llm_client import ReasoningProvider, complete_with_profile
from overlay_packs.models.enums import Accessibility, WorkspaceType
from overlay_packs.models.overlay import AccessPath, OverlayLayer, OverlayPart
from overlay_packs.services.planning_service import workspace_label
from overlay_packs.services.validation_service import (
    access_path_violations,
    layer_violations,
)
from src.utils.logger import get_logger

logger = get_logger(__name__)

MAX_WAYPOINTS = 4

T = TypeVar("T")


def build_access_paths_prompt(
    vehicle_family: str,
    workspace: WorkspaceType,
    difficult_parts: list,
) -> str:
    return f"""Generate access paths for difficult-to-reach automotive parts.

Vehicle Family: {vehicle_family}
Workspace Type: {workspace_label(workspace)}
Difficult Parts: {", ".join(difficult_parts)}

For each difficult part, create an animated path showing how to access it.
Use normalized coordinates (0.000 to 1.000) for a 1000x600 workspace.

Return ONLY a JSON object keyed by part name:
{{
  "part_name": {{
    "polyline": [
      {{"x": 0.100, "y": 0.200}},
      {{"x": 0.300, "y": 0.400}},
      {{"x": 0.500, "y": 0.600}}
    ],
    "animation_duration": 3000,
    "stroke_width": 3,
    "dash_pattern": "15,10"
  }}
}}

Each path shows the entry point to the workspace, the way around obstacles and the final approach to the part, using 2-4 waypoints."""


def build_cutaway_layers_prompt(vehicle_family: str, workspace: WorkspaceType) -> str:
    return f"""Generate cutaway layers for hidden automotive components.

Vehicle Family: {vehicle_family}
Workspace Type: {workspace_label(workspace)}

Create semi-transparent layers that can be shown or hidden to reveal parts behind covers.
Use normalized coordinates (0.000 to 1.000) for a 1000x600 workspace.

Return ONLY a JSON object keyed by layer id:
{{
  "engine_cover": {{
    "polygon": [
      {{"x": 0.123, "y": 0.456}},
      {{"x": 0.234, "y": 0.567}},
      {{"x": 0.345, "y": 0.678}}
    ],
    "color_tint": "#333333",
    "opacity_cutaway": 0.3,
    "layer_name": "Engine Cover"
  }}
}}

Include common obstructing components such as engine covers, air intake assemblies, battery covers and protective panels.
Use 0.2-0.4 opacity for cutaway mode."""


def _parse_entries(
    data: Dict[str, Any],
    factory: Callable[[Dict[str, Any]], T],
    kind: str,
) -> Dict[str, T]:
    entries: Dict[str, T] = {}
    for name, raw in data.items():
        if not isinstance(raw, dict):
            raise ParseError(f"{kind} {name!r} is not an object")
        try:
            entries[name] = factory(raw)
        except (TypeError, ValueError) as e:
            raise ParseError(f"Invalid {kind} {name!r}: {e}") from e
    return entries


def parse_access_paths(content: str) -> Dict[str, AccessPath]:
    """
    Parse and validate an access-path response.

    Raises:
        ParseError: Malformed response, out-of-range coordinates, or a path
            with fewer than 2 or more than 4 waypoints.
    """
    paths = _parse_entries(extract_json_object(content), AccessPath.from_dict, "access path")
    violations = access_path_violations(paths)
    violations.extend(
        f"access_paths.{name}.polyline has {len(path.polyline)} waypoints, max {MAX_WAYPOINTS}"
        for name, path in paths.items()
        if len(path.polyline) > MAX_WAYPOINTS
    )
    if violations:
        raise ParseError("Access paths failed validation", details={"violations": violations})
    return paths


def parse_cutaway_layers(content: str) -> Dict[str, OverlayLayer]:
    """
    Parse and validate a cutaway-layer response.

    Raises:
        ParseError: Malformed response or out-of-range geometry/opacity.
    """
    layers = _parse_entries(extract_json_object(content), OverlayLayer.from_dict, "layer")
    violations = layer_violations(layers)
    if violations:
        raise ParseError("Cutaway layers failed validation", details={"violations": violations})
    return layers


class AuxiliaryService:
    """Access-path and cutaway-layer synthesis against a ReasoningProvider."""

    def __init__(
        self,
        reasoning: ReasoningProvider,
        access_paths_profile: Optional[PhaseProfile] = None,
        cutaway_layers_profile: Optional[PhaseProfile] = None,
    ):
        self.reasoning = reasoning
        self.access_paths_profile = access_paths_profile or get_phase_profile(ACCESS_PATHS_PHASE)
        self.cutaway_layers_profile = (
            cutaway_layers_profile or get_phase_profile(CUTAWAY_LAYERS_PHASE)
        )

    async def generate_access_paths(
        self,
        vehicle_family: str,
        workspace: WorkspaceType,
        parts: Mapping[str, OverlayPart],
    ) -> Dict[str, AccessPath]:
        """Access paths for difficult parts, or {} on any failure."""
        difficult = [
            name for name, part in parts.items()
            if part.accessibility is Accessibility.DIFFICULT
        ]
        if not difficult:
            return {}

        prompt = build_access_paths_prompt(vehicle_family, workspace, difficult)
        try:
            content = await complete_with_profile(
                self.reasoning, prompt, self.access_paths_profile
            )
            paths = parse_access_paths(content)
        except Exception as e:
            logger.warning(
                "overlay.access_paths.failed",
                error=str(e),
                error_code=getattr(e, "error_code", type(e).__name__),
            )
            return {}

        logger.info("overlay.access_paths.completed", paths=len(paths))
        return paths

    async def generate_cutaway_layers(
        self,
        vehicle_family: str,
        workspace: WorkspaceType,
    ) -> Dict[str, OverlayLayer]:
        """Cutaway layers for the workspace, or {} on any failure."""
        prompt = build_cutaway_layers_prompt(vehicle_family, workspace)
        try:
            content = await complete_with_profile(
                self.reasoning, prompt, self.cutaway_layers_profile
            )
            layers = parse_cutaway_layers(content)
        except Exception as e:
            logger.warning(
                "overlay.cutaway_layers.failed",
                error=str(e),
                error_code=getattr(e, "error_code", type(e).__name__),
            )
            return {}

        logger.info("overlay.cutaway_layers.completed", layers=len(layers))
        return layers

    async def run(
        self,
        vehicle_family: str,
        workspace: WorkspaceType,
        parts: Mapping[str, OverlayPart],
    ) -> Tuple[Dict[str, AccessPath], Dict[str, OverlayLayer]]:
        """Run both phases concurrently; both settle before returning."""
        paths, layers = await asyncio.gather(
            self.generate_access_paths(vehicle_family, workspace, parts),
            self.generate_cutaway_layers(vehicle_family, workspace),
        )
        return paths, layers
