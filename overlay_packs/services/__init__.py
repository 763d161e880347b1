"""
Services layer for overlay pack generation.

This layer sits between the orchestrator and the provider clients, handling:
- Cache keys, the generation lock and the durable pack store
- Technical planning and image generation
- Geometry synthesis and validation
- Best-effort access paths and cutaway layers
- Assembly of the final pack
"""
from overlay_packs.services.cache_keys import (
    KEY_SEPARATOR,
    cache_key,
    normalize_component,
    parse_cache_key,
)
from overlay_packs.services.lock_manager import (
    GenerationLockManager,
    LeaderHandle,
    FollowerHandle,
)
from overlay_packs.services.cache_store import (
    OverlayPackStore,
    InMemoryOverlayPackStore,
    PostgresOverlayPackStore,
    OVERLAY_PACKS_DDL,
)
from overlay_packs.services.geometry_service import (
    normalize_position,
    normalize_size,
    synthesize_polygon,
    synthesize_parts,
)
from overlay_packs.services.validation_service import validate_pack, validate_parts
from overlay_packs.services.planning_service import PlanningService
from overlay_packs.services.visual_generation_service import (
    VisualGenerationService,
    extract_side_hint,
    build_variant_notes,
)
from overlay_packs.services.image_storage_service import ImageHost, StorageImageHost
from overlay_packs.services.auxiliary_service import AuxiliaryService
from overlay_packs.services.vector_scene_service import render_workspace_svg
from overlay_packs.services.workspace_service import (
    VehicleClassifier,
    MakeFamilyClassifier,
    determine_workspace_for_repair,
)
from overlay_packs.services.assembly_service import AssemblyService, AssemblyResult

__all__ = [
    # Cache keys
    "KEY_SEPARATOR",
    "cache_key",
    "normalize_component",
    "parse_cache_key",
    # Lock
    "GenerationLockManager",
    "LeaderHandle",
    "FollowerHandle",
    # Store
    "OverlayPackStore",
    "InMemoryOverlayPackStore",
    "PostgresOverlayPackStore",
    "OVERLAY_PACKS_DDL",
    # Geometry
    "normalize_position",
    "normalize_size",
    "synthesize_polygon",
    "synthesize_parts",
    "validate_pack",
    "validate_parts",
    # Phases
    "PlanningService",
    "VisualGenerationService",
    "extract_side_hint",
    "build_variant_notes",
    "ImageHost",
    "StorageImageHost",
    "AuxiliaryService",
    "render_workspace_svg",
    # Resolution
    "VehicleClassifier",
    "MakeFamilyClassifier",
    "determine_workspace_for_repair",
    # Assembly
    "AssemblyService",
    "AssemblyResult",
]
