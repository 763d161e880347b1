"""
Overlay pack generation and caching.

Resolves AR repair overlays for a (vehicle family, workspace) pair from a
durable cache, generating them on a miss through a reasoning provider and an
image provider with a vector-only and static fallback.
"""

from overlay_packs.orchestrator import GenerationRun, OverlayPackOrchestrator

__version__ = "0.1.0"

__all__ = [
    "GenerationRun",
    "OverlayPackOrchestrator",
]
