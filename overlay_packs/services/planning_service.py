"""
Planning Service

Asks the reasoning provider for a technical plan of the repair workspace:
visual brief, per-component layout labels, AR rendering hints and
vehicle-specific notes. Also provides define_parts(), which requests
explicit part polygons and is used when no plan could be produced.
"""

from typing import Dict, Optional

from overlay_packs.core.config import (
    PART_DEFINITIONS_PHASE,
    PLANNING_PHASE,
    PhaseProfile,
    get_phase_profile,
)
from overlay_packs.core.exceptions import ParseError
from overlay_packs.core.json_extraction import extract_json_object, require_fields
from overlay_packs.core.llm_client import ReasoningProvider, complete_with_profile
from overlay_packs.models.enums import WorkspaceType
from overlay_packs.models.overlay import OverlayPart
from overlay_packs.models.planning import TechnicalPlan
from overlay_packs.models.vehicle import RepairIntent, VehicleDescriptor
from overlay_packs.services.geometry_service import normalize_part_name
from overlay_packs.services.validation_service import parts_violations
from src.utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_PLAN_FIELDS = ("visual_brief", "layout_specifications")


def describe_vehicle(vehicle: VehicleDescriptor) -> str:
    """e.g. "2020 Toyota Camry with 2.5L I4 engine"."""
    text = vehicle.display_name
    if vehicle.engine:
        text += f" with {vehicle.engine} engine"
    return text


def workspace_label(workspace: WorkspaceType) -> str:
    """e.g. "engine front"."""
    return workspace.value.replace("_", " ")


def build_planning_prompt(
    vehicle: VehicleDescriptor,
    workspace: WorkspaceType,
    repair: RepairIntent,
    canvas_width: int = 1000,
    canvas_height: int = 600,
) -> str:
    """Build the technical planning prompt."""
    vehicle_context = describe_vehicle(vehicle)
    return f"""You are an automotive technical architect with expert knowledge of vehicle-specific part locations. Create detailed visual specifications for a {vehicle_context} {workspace_label(workspace)} workspace overlay for {repair.label} repair.

VEHICLE-SPECIFIC REQUIREMENTS:
- Use exact knowledge of the {vehicle_context} layout and part locations
- Account for vehicle-specific access points and component placement

OVERLAY REQUIREMENTS:
- Canvas: {canvas_width}x{canvas_height} baseline dimensions
- AR camera overlay: high contrast colors
- Colors: bright cyan (#00FFFF) primary, white (#FFFFFF) strokes, yellow (#FFFF00) secondary

LAYOUT LABELS:
- position must be one of: top-left, top-center, top-right, center-left, center, center-right, bottom-left, bottom-center, bottom-right
- size must be one of: small, medium, large

Return ONLY a JSON object with this structure:
{{
  "visual_brief": {{
    "viewpoint": "engine_bay_front_view",
    "style": "technical_illustration",
    "contrast_requirements": "high_contrast_ar_optimized",
    "color_scheme": "cyan_white_yellow",
    "target_part": "specific_part_name",
    "part_location": "exact description of the location in this vehicle"
  }},
  "layout_specifications": {{
    "target_part": {{
      "position": "top-left",
      "size": "medium",
      "color": "#FFFF00",
      "stroke": "#FFFFFF",
      "highlight_method": "bright_outline_with_glow",
      "location_details": "specific location in this vehicle"
    }},
    "surrounding_component_name": {{
      "position": "center",
      "size": "large",
      "color": "#00FFFF",
      "stroke": "#FFFFFF"
    }}
  }},
  "ar_optimization": {{
    "stroke_width": "4px minimum for visibility",
    "glow_effects": "bright yellow glow on target part",
    "background": "semi-transparent white",
    "highlighting": "pulsing animation on target part"
  }},
  "vehicle_specific_details": {{
    "engine_layout": "specific to this vehicle",
    "part_accessibility": "easy, moderate or difficult",
    "surrounding_obstacles": "list of nearby components",
    "best_viewing_angle": "optimal camera position"
  }}
}}"""


def build_part_definitions_prompt(
    vehicle_family: str,
    workspace: WorkspaceType,
    repair: RepairIntent,
    canvas_width: int = 1000,
    canvas_height: int = 600,
) -> str:
    """Build the explicit part definitions prompt."""
    return f"""You are a JSON generator for automotive repair overlays. Generate ONLY JSON with no explanations.

Vehicle Family: {vehicle_family}
Workspace Type: {workspace_label(workspace)}
Repair Type: {repair.label}

For a {canvas_width}x{canvas_height} workspace, define parts with normalized coordinates (0.000 to 1.000).

Return ONLY a flat JSON object where each key is a part name and each value contains polygon, glow_color, part_type, and accessibility:

{{
  "battery": {{
    "polygon": [
      {{"x": 0.100, "y": 0.100}},
      {{"x": 0.250, "y": 0.100}},
      {{"x": 0.250, "y": 0.200}},
      {{"x": 0.100, "y": 0.200}}
    ],
    "glow_color": "#FF6B35",
    "part_type": "electrical",
    "accessibility": "moderate"
  }}
}}

Include the primary target part for {repair.label}, related components that might need access, and safety-critical nearby parts.
Use precise 3-decimal coordinates. Every coordinate must lie between 0 and 1.
Use glow colors #00FFFF, #00FF00, #FF6B35 or #FF0080.
Return ONLY the flat object with part names as keys."""


class PlanningService:
    """
    Technical planning against a ReasoningProvider.

    Each call is wrapped in retry_with_backoff using the phase's profile.
    """

    def __init__(
        self,
        reasoning: ReasoningProvider,
        profile: Optional[PhaseProfile] = None,
        part_definitions_profile: Optional[PhaseProfile] = None,
    ):
        self.reasoning = reasoning
        self.profile = profile or get_phase_profile(PLANNING_PHASE)
        self.part_definitions_profile = (
            part_definitions_profile or get_phase_profile(PART_DEFINITIONS_PHASE)
        )

    async def plan(
        self,
        vehicle: VehicleDescriptor,
        workspace: WorkspaceType,
        repair: RepairIntent,
    ) -> TechnicalPlan:
        """
        Produce the technical plan for a vehicle, workspace and repair.

        Raises:
            ProviderError: Provider non-2xx or transport failure
            ParseError: No JSON object, or visual_brief/layout_specifications
                missing
        """
        prompt = build_planning_prompt(vehicle, workspace, repair)
        logger.info(
            "overlay.planning.started",
            vehicle=vehicle.display_name,
            workspace=workspace.value,
            repair=repair.identifier,
        )

        content = await complete_with_profile(self.reasoning, prompt, self.profile)
        data = extract_json_object(content)
        require_fields(data, REQUIRED_PLAN_FIELDS)
        if not isinstance(data["layout_specifications"], dict):
            raise ParseError("layout_specifications is not an object")

        plan = TechnicalPlan.from_dict(data)
        logger.info(
            "overlay.planning.completed",
            target_part=plan.visual_brief.target_part,
            components=len(plan.layout_specifications),
        )
        return plan

    async def define_parts(
        self,
        vehicle_family: str,
        workspace: WorkspaceType,
        repair: RepairIntent,
    ) -> Dict[str, OverlayPart]:
        """
        Ask the provider for explicit part polygons.

        Raises:
            ProviderError: Provider non-2xx or transport failure
            ParseError: Response is not a usable parts map, including any
                polygon outside [0, 1]
        """
        prompt = build_part_definitions_prompt(vehicle_family, workspace, repair)
        content = await complete_with_profile(
            self.reasoning, prompt, self.part_definitions_profile
        )
        data = extract_json_object(content)

        parts: Dict[str, OverlayPart] = {}
        for raw_name, raw_part in data.items():
            if not isinstance(raw_part, dict):
                continue
            name = normalize_part_name(raw_name)
            if not name:
                continue
            try:
                parts[name] = OverlayPart.from_dict(raw_part)
            except (TypeError, ValueError) as e:
                raise ParseError(f"Invalid part definition for {raw_name}: {e}") from e

        if not parts:
            raise ParseError("Part definitions response contained no parts")

        violations = parts_violations(parts)
        if violations:
            raise ParseError(
                "Part definitions contain invalid geometry",
                details={"violations": violations},
            )

        logger.info("overlay.part_definitions.completed", parts=len(parts))
        return parts
