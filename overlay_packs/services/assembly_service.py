"""
Assembly Service

Composes phase outputs into an OverlayPack, validates its geometry and
persists it through the cache store. Store failures never block delivery:
the validated in-memory pack is returned regardless.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from overlay_packs.core.config import CanvasConfig, get_config
from overlay_packs.core.exceptions import CacheError
from overlay_packs.models.overlay import AccessPath, OverlayLayer, OverlayPack, OverlayPart
from overlay_packs.services.cache_keys import cache_key
from overlay_packs.services.cache_store import OverlayPackStore
from overlay_packs.services.validation_service import validate_pack
from src.utils.logger import get_logger
from src.utils.metrics import cache_write_count

logger = get_logger(__name__)

# Provider/model tags recorded on each tier's packs.
MODEL_TAG_FULL = "hybrid-deepseek-dalle3"
MODEL_TAG_VECTOR_ONLY = "deepseek"
MODEL_TAG_STATIC = "fallback"


@dataclass
class AssemblyResult:
    """Assembled pack plus whether it reached the durable store."""
    pack: OverlayPack
    persisted: bool

    def to_dict(self) -> Dict[str, object]:
        return {"pack": self.pack.to_dict(), "persisted": self.persisted}


class AssemblyService:
    """Builds, validates and stores overlay packs."""

    def __init__(
        self,
        store: OverlayPackStore,
        canvas: Optional[CanvasConfig] = None,
    ):
        self.store = store
        self.canvas = canvas or get_config().canvas

    def build(
        self,
        vehicle_family: str,
        workspace_type: str,
        parts: Dict[str, OverlayPart],
        gpt_model: str,
        image_url: Optional[str] = None,
        workspace_svg: Optional[str] = None,
        access_paths: Optional[Dict[str, AccessPath]] = None,
        layers: Optional[Dict[str, OverlayLayer]] = None,
    ) -> OverlayPack:
        """
        Compose a pack. Empty auxiliary maps are stored as absent.

        Raises:
            ValidationError: Any coordinate outside [0, 1]
        """
        pack = OverlayPack(
            id=cache_key(vehicle_family, workspace_type),
            vehicle_family=vehicle_family,
            workspace_type=workspace_type,
            parts=parts,
            gpt_model=gpt_model,
            image_url=image_url or None,
            workspace_svg=workspace_svg or None,
            baseline_dimensions={"width": self.canvas.width, "height": self.canvas.height},
            access_paths=access_paths or None,
            layers=layers or None,
            usage_count=0,
        )
        return validate_pack(pack)

    async def persist(self, pack: OverlayPack) -> bool:
        """
        Upsert a validated pack. Returns False (and logs) on store failure.
        """
        try:
            await self.store.put(pack)
        except CacheError as e:
            cache_write_count.labels(status="error").inc()
            logger.error(
                "overlay.cache.write_failed",
                cache_key=pack.id,
                error=str(e),
            )
            return False

        cache_write_count.labels(status="success").inc()
        logger.info(
            "overlay.cache.stored",
            cache_key=pack.id,
            parts=len(pack.parts),
            gpt_model=pack.gpt_model,
        )
        return True

    async def assemble(self, **kwargs) -> AssemblyResult:
        """
        Build, validate and persist a pack.

        Accepts the keyword arguments of build(). A ValidationError
        propagates and nothing is written.
        """
        pack = self.build(**kwargs)
        persisted = await self.persist(pack)
        return AssemblyResult(pack=pack, persisted=persisted)
