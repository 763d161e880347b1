"""
Visual Generation Service

Builds a deterministic image prompt from the vehicle, repair, workspace and
technical plan, requests one image from the ImageProvider and re-hosts the
short-lived result through an ImageHost so the pack never embeds an
expiring URL.
"""

import re
from typing import Dict, List, Optional

from config import settings
from overlay_packs.core.config import (
    VISUAL_GENERATION_PHASE,
    PhaseProfile,
    get_phase_profile,
)
from overlay_packs.core.exceptions import GenerationError
from overlay_packs.core.image_client import ImageProvider, ImageRequest
from overlay_packs.core.retry import retry_with_backoff
from overlay_packs.models.enums import WorkspaceType
from overlay_packs.models.planning import TechnicalPlan
from overlay_packs.models.vehicle import RepairIntent, VehicleDescriptor
from overlay_packs.services.image_storage_service import ImageHost
from src.utils.logger import get_logger
from src.utils.metrics import provider_call_count

logger = get_logger(__name__)

DEFAULT_SIDE_HINT = "center"
NO_VARIANT_NOTES = "no notable variant differences"

# Subject wording and camera framing per workspace.
WORKSPACE_SUBJECTS: Dict[WorkspaceType, str] = {
    WorkspaceType.ENGINE_FRONT: "engine bay",
    WorkspaceType.UNDERCARRIAGE: "undercarriage",
    WorkspaceType.WHEEL_ASSEMBLY: "wheel hub assembly",
    WorkspaceType.INTERIOR: "cabin interior",
    WorkspaceType.TRUNK_REAR: "trunk",
}

WORKSPACE_VIEWS: Dict[WorkspaceType, str] = {
    WorkspaceType.ENGINE_FRONT: (
        "front-facing view from a person standing at the bumper, "
        "looking straight into the bay"
    ),
    WorkspaceType.WHEEL_ASSEMBLY: (
        "orthographic front view of the exposed wheel hub/brake assembly at standing height"
    ),
    WorkspaceType.TRUNK_REAR: (
        "orthographic front view from directly behind the vehicle "
        "looking straight into the open trunk"
    ),
    WorkspaceType.INTERIOR: (
        "orthographic front view at arm's length, looking straight onto the panel"
    ),
}
DEFAULT_VIEW = "orthographic front view looking straight at the workspace"

_FRONT_RE = re.compile(r"\bfront\b")
_REAR_RE = re.compile(r"\b(rear|back)\b")
_LEFT_RE = re.compile(r"\bleft\b")
_RIGHT_RE = re.compile(r"\bright\b")


def extract_side_hint(text: Optional[str]) -> str:
    """
    Derive a short side hint from a free-text part location.

    Returns values such as "front driver side", "passenger side",
    "rear left", "right", or "center" when nothing matches.
    """
    t = (text or "").lower()
    front = bool(_FRONT_RE.search(t))
    rear = bool(_REAR_RE.search(t))
    left = bool(_LEFT_RE.search(t))
    right = bool(_RIGHT_RE.search(t))
    driver = "driver" in t
    passenger = "passenger" in t

    if driver:
        if front:
            return "front driver side"
        if rear:
            return "rear driver side"
        return "driver side"
    if passenger:
        if front:
            return "front passenger side"
        if rear:
            return "rear passenger side"
        return "passenger side"
    if front and left:
        return "front left"
    if front and right:
        return "front right"
    if rear and left:
        return "rear left"
    if rear and right:
        return "rear right"
    if left:
        return "left"
    if right:
        return "right"
    if front:
        return "front"
    if rear:
        return "rear"
    return DEFAULT_SIDE_HINT


def build_variant_notes(vehicle: VehicleDescriptor, plan: Optional[TechnicalPlan]) -> str:
    """
    Summarize variant details that disambiguate part placement.

    Combines vehicle trim-level details with the plan's accessibility,
    obstacle and viewing-angle notes, joined with "; ".
    """
    notes: List[str] = []
    if vehicle.engine:
        notes.append(f"engine: {vehicle.engine}")
    if vehicle.trim:
        notes.append(f"trim: {vehicle.trim}")
    if vehicle.drivetrain:
        notes.append(f"drivetrain: {vehicle.drivetrain}")
    if vehicle.market:
        notes.append(f"market: {vehicle.market}")
    if vehicle.steering:
        notes.append(f"steering: {vehicle.steering}")

    if plan is not None:
        details = plan.vehicle_specific_details
        if details.part_accessibility:
            notes.append(f"access: {details.part_accessibility}")
        if details.surrounding_obstacles:
            notes.append(f"obstacles: {details.surrounding_obstacles}")
        if details.best_viewing_angle:
            notes.append(f"view: {details.best_viewing_angle}")

    return "; ".join(notes)


def build_image_prompt(
    vehicle: VehicleDescriptor,
    repair: RepairIntent,
    workspace: WorkspaceType,
    part_name: str,
    side_hint: str,
    part_location: str,
    variant_notes: str,
) -> str:
    """
    Build the image prompt for an AR ghost overlay.

    Short, imperative wording with explicit negatives keeps the image model
    from drifting to full-vehicle or angled renders.
    """
    subject = WORKSPACE_SUBJECTS.get(workspace, workspace.value.replace("_", " "))
    view = WORKSPACE_VIEWS.get(workspace, DEFAULT_VIEW)

    vehicle_details = vehicle.display_name
    if vehicle.engine:
        vehicle_details += f" ({vehicle.engine})"
    if vehicle.body_style:
        vehicle_details += f", {vehicle.body_style}"
    if vehicle.trim:
        vehicle_details += f", {vehicle.trim} trim"
    if vehicle.drivetrain:
        vehicle_details += f", {vehicle.drivetrain}"
    if vehicle.market:
        vehicle_details += f" [market: {vehicle.market}]"
    if vehicle.steering:
        vehicle_details += f" [steering: {vehicle.steering}]"

    return "\n".join([
        f"Transparent PNG AR ghost-overlay for step-by-step {repair.label}.",
        f"Show ONLY the {subject} of a {vehicle_details}.",
        (
            f"Highlight the {part_name}. Location: {side_hint}."
            f" Exact location in this vehicle: {part_location}."
            f" Variant notes: {variant_notes or NO_VARIANT_NOTES}."
        ),
        f"Crop tightly to the {subject}; {view}.",
        "Do NOT show exterior body, hood skin, bumper, doors, roof, wheels, tires, "
        "windows, logos, floor, studio.",
        "Flat technical overlay style:",
        "- All surrounding components: cyan wireframe",
        "- Strokes: white, ~4px",
        f"- Active part ({part_name}): bright cyan fill with precise outline "
        "+ strong yellow (#FFFF00) glow",
        "- No photorealism, no textures, no gradients, no shadows",
        "Background must be fully transparent (alpha).",
        f"Fixed orthographic perspective optimized for 16:9 overlay; "
        f"tight framing on the {subject}.",
        "Left/Right is relative to the VEHICLE (not viewer).",
        "Avoid angled, top-down, or side views. Avoid full-vehicle renders. "
        "Return ONLY the overlay graphics.",
    ])


class VisualGenerationService:
    """
    Single-image generation plus durable re-hosting.
    """

    def __init__(
        self,
        image_provider: ImageProvider,
        image_host: ImageHost,
        profile: Optional[PhaseProfile] = None,
        model: Optional[str] = None,
        size: Optional[str] = None,
        quality: Optional[str] = None,
    ):
        self.image_provider = image_provider
        self.image_host = image_host
        self.profile = profile or get_phase_profile(VISUAL_GENERATION_PHASE)
        self.model = model or self.profile.model or settings.image_model
        self.size = size or settings.image_size
        self.quality = quality or settings.image_quality

    def build_request(
        self,
        vehicle: VehicleDescriptor,
        workspace: WorkspaceType,
        repair: RepairIntent,
        plan: TechnicalPlan,
    ) -> ImageRequest:
        """Build the deterministic image request for a plan."""
        part_name = plan.visual_brief.target_part.replace("_", " ") or repair.label
        part_location = plan.part_location
        prompt = build_image_prompt(
            vehicle=vehicle,
            repair=repair,
            workspace=workspace,
            part_name=part_name,
            side_hint=extract_side_hint(part_location),
            part_location=part_location,
            variant_notes=build_variant_notes(vehicle, plan),
        )
        return ImageRequest(
            prompt=prompt,
            model=self.model,
            size=self.size,
            quality=self.quality,
            n=1,
        )

    async def generate(
        self,
        vehicle: VehicleDescriptor,
        workspace: WorkspaceType,
        repair: RepairIntent,
        plan: TechnicalPlan,
        vehicle_family: str,
    ) -> str:
        """
        Generate the workspace image and return its durable URL.

        Raises:
            ProviderError: Image provider non-2xx or transport failure
            GenerationError: Empty or missing image URL
            StorageError: Re-hosting failed
        """
        request = self.build_request(vehicle, workspace, repair, plan)
        logger.info(
            "overlay.image.started",
            model=request.model,
            size=request.size,
            prompt_length=len(request.prompt),
        )

        try:
            temporary_url = await retry_with_backoff(
                lambda: self.image_provider.generate(request),
                max_attempts=self.profile.max_attempts,
                base_delay=self.profile.base_delay,
                backoff_factor=self.profile.backoff_factor,
                max_delay=self.profile.max_delay,
                attempt_timeout=self.profile.timeout,
            )
        except Exception:
            provider_call_count.labels(provider="image", phase=self.profile.name, status="error").inc()
            raise
        provider_call_count.labels(provider="image", phase=self.profile.name, status="success").inc()

        if not temporary_url or not temporary_url.strip():
            raise GenerationError("Image provider returned an empty URL")

        durable_url = await self.image_host.rehost(
            temporary_url, vehicle_family, workspace.value
        )
        if not durable_url:
            raise GenerationError("Image host returned an empty URL")

        logger.info("overlay.image.completed", image_url=durable_url)
        return durable_url
