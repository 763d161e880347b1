"""
Overlay pack API routes.
"""
from fastapi import APIRouter, HTTPException, Path, Request

from overlay_packs import OverlayPackOrchestrator
from overlay_packs.models import OverlayPack, WorkspaceType
from src.models.schemas import VEHICLE_FAMILY_PATTERN, OverlayPackRequest, OverlayPackResponse
from src.utils import get_logger

logger = get_logger(__name__)
router = APIRouter()


def get_orchestrator(request: Request) -> OverlayPackOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Overlay service is not ready")
    return orchestrator


def pack_response(request: Request, pack: OverlayPack) -> OverlayPackResponse:
    """Serialize a pack and record it for the logging middleware."""
    request.state.cache_key = pack.id
    request.state.gpt_model = pack.gpt_model
    return OverlayPackResponse.from_pack(pack)


@router.post("/overlay-packs", response_model=OverlayPackResponse)
async def resolve_overlay_pack(body: OverlayPackRequest, request: Request) -> OverlayPackResponse:
    """
    Return the overlay pack for a vehicle and repair, generating it on a miss.

    Args:
        body: Vehicle, repair and optional workspace / vehicle family

    Returns:
        The cached or freshly generated pack
    """
    orchestrator = get_orchestrator(request)
    logger.info(
        "api.overlay_pack.requested",
        make=body.vehicle.make,
        model=body.vehicle.model,
        year=body.vehicle.year,
        repair=body.repair_type,
    )

    pack = await orchestrator.get_or_generate(
        vehicle=body.vehicle.to_descriptor(),
        repair=body.to_repair(),
        workspace=body.workspace_type,
        vehicle_family=body.vehicle_family,
    )
    return pack_response(request, pack)


@router.get("/overlay-packs/{vehicle_family}/{workspace_type}", response_model=OverlayPackResponse)
async def get_overlay_pack(
    workspace_type: WorkspaceType,
    request: Request,
    vehicle_family: str = Path(..., pattern=VEHICLE_FAMILY_PATTERN),
) -> OverlayPackResponse:
    """Cache-only lookup; 404 when no pack exists yet."""
    orchestrator = get_orchestrator(request)
    pack = await orchestrator.get_cached(vehicle_family, workspace_type)
    if pack is None:
        raise HTTPException(
            status_code=404,
            detail=f"No overlay pack for {vehicle_family}/{workspace_type.value}",
        )
    return pack_response(request, pack)
