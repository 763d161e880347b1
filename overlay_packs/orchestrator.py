"""
Overlay Pack Orchestrator - resolves or generates overlay packs.

Pipeline for a cache miss (leader only):
    PLANNING_IN_FLIGHT -> IMAGE_IN_FLIGHT -> GEOMETRY_IN_FLIGHT -> ASSEMBLING -> CACHED

Fallback chain:
    1. Full: plan + durable image + plan geometry + auxiliary phases
    2. Vector-only: no image; parts from the plan, or from define_parts()
       when planning failed; rendered SVG scene
    3. Static: one generic part and a placeholder scene, not persisted

Once leadership is granted only LockTimeoutError (deadline exceeded) and
ValidationError (out-of-range geometry in the final pack) reach the caller.
Store failures are logged: a failed read is a miss, a failed write still
returns the pack.
"""

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set, Tuple, Union

from config import settings
from overlay_packs.core.exceptions import CacheError, LockTimeoutError
from overlay_packs.core.image_client import ImageProvider
from overlay_packs.core.llm_client import ReasoningProvider
from overlay_packs.models.enums import Accessibility, GenerationState, WorkspaceType
from overlay_packs.models.overlay import NormalizedCoordinate, OverlayPack, OverlayPart
from overlay_packs.models.planning import TechnicalPlan
from overlay_packs.models.vehicle import RepairIntent, VehicleDescriptor
from overlay_packs.services.assembly_service import (
    MODEL_TAG_FULL,
    MODEL_TAG_STATIC,
    MODEL_TAG_VECTOR_ONLY,
    AssemblyService,
)
from overlay_packs.services.auxiliary_service import AuxiliaryService
from overlay_packs.services.cache_keys import cache_key
from overlay_packs.services.cache_store import OverlayPackStore
from overlay_packs.services.geometry_service import normalize_part_name, synthesize_parts
from overlay_packs.services.image_storage_service import ImageHost
from overlay_packs.services.lock_manager import GenerationLockManager
from overlay_packs.services.planning_service import PlanningService
from overlay_packs.services.vector_scene_service import render_workspace_svg
from overlay_packs.services.visual_generation_service import VisualGenerationService
from overlay_packs.services.workspace_service import (
    MakeFamilyClassifier,
    VehicleClassifier,
    determine_workspace_for_repair,
)
from src.utils.logger import get_logger, set_correlation_context
from src.utils.metrics import (
    cache_lookup_count,
    generation_count,
    generation_duration,
    singleflight_join_count,
)

logger = get_logger(__name__)

STATIC_PART_NAME = "generic_part"
RECENT_RUNS = 100


@dataclass
class GenerationRun:
    """State history of one pipeline run for a cache key."""
    cache_key: str
    states: List[GenerationState] = field(
        default_factory=lambda: [GenerationState.NOT_STARTED]
    )
    errors: Dict[str, str] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)
    finished_at: Optional[float] = None

    @property
    def state(self) -> GenerationState:
        return self.states[-1]

    @property
    def duration_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def transition(self, state: GenerationState) -> None:
        logger.info(
            "overlay.generation.state",
            from_state=self.state.value,
            to_state=state.value,
        )
        self.states.append(state)
        if state.is_terminal:
            self.finished_at = time.monotonic()

    def record_error(self, phase: str, error: BaseException) -> None:
        self.errors[phase] = str(error)

    def to_dict(self) -> Dict[str, object]:
        return {
            "cache_key": self.cache_key,
            "states": [state.value for state in self.states],
            "errors": dict(self.errors),
            "duration_seconds": round(self.duration_seconds, 3),
        }


class OverlayPackOrchestrator:
    """
    Entry point for overlay pack resolution.

    Owns the generation lock manager and the background usage-increment
    tasks. Providers, image host and store are injected and owned by the
    caller.
    """

    def __init__(
        self,
        reasoning: ReasoningProvider,
        image_provider: ImageProvider,
        image_host: ImageHost,
        store: OverlayPackStore,
        lock_manager: Optional[GenerationLockManager] = None,
        classifier: Optional[VehicleClassifier] = None,
        deadline_seconds: Optional[float] = None,
    ):
        self.store = store
        self.lock_manager = lock_manager or GenerationLockManager()
        self.classifier = classifier or MakeFamilyClassifier()
        self.deadline_seconds = (
            deadline_seconds if deadline_seconds is not None
            else settings.generation_deadline_seconds
        )

        self.planning = PlanningService(reasoning)
        self.visual = VisualGenerationService(image_provider, image_host)
        self.auxiliary = AuxiliaryService(reasoning)
        self.assembly = AssemblyService(store)

        self.recent_runs: Deque[GenerationRun] = deque(maxlen=RECENT_RUNS)
        self._background: Set["asyncio.Task[None]"] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve_key(
        self,
        vehicle: VehicleDescriptor,
        repair: RepairIntent,
        workspace: Optional[Union[WorkspaceType, str]] = None,
        vehicle_family: Optional[str] = None,
    ) -> Tuple[str, WorkspaceType, str]:
        """Resolve (vehicle_family, workspace, cache key) for a request."""
        resolved_workspace = (
            WorkspaceType.parse(workspace) if workspace
            else determine_workspace_for_repair(repair)
        )
        family = vehicle_family or self.classifier.classify(vehicle)
        return family, resolved_workspace, cache_key(family, resolved_workspace)

    async def get_or_generate(
        self,
        vehicle: VehicleDescriptor,
        repair: RepairIntent,
        workspace: Optional[Union[WorkspaceType, str]] = None,
        vehicle_family: Optional[str] = None,
    ) -> OverlayPack:
        """
        Return the cached pack for the request, generating it on a miss.

        Concurrent callers for the same key share one generation.

        Raises:
            LockTimeoutError: The generation exceeded the deadline
            ValidationError: The assembled pack has out-of-range geometry
        """
        family, resolved_workspace, key = self.resolve_key(
            vehicle, repair, workspace, vehicle_family
        )
        set_correlation_context(cache_key=key)

        handle = await self.lock_manager.acquire_or_join(key)
        if not handle.is_leader:
            singleflight_join_count.inc()
            return await handle.wait(timeout=self.deadline_seconds)

        try:
            pack = await asyncio.wait_for(
                self._resolve(key, vehicle, resolved_workspace, repair, family),
                timeout=self.deadline_seconds,
            )
            await handle.publish(pack)
            return pack
        except asyncio.TimeoutError as e:
            error = LockTimeoutError(
                f"Generation of {key} exceeded {self.deadline_seconds}s",
                cache_key=key,
                deadline_seconds=self.deadline_seconds,
            )
            logger.error("overlay.generation.timeout", deadline_seconds=self.deadline_seconds)
            await handle.fail(error)
            raise error from e
        except Exception as e:
            await handle.fail(e)
            raise
        finally:
            if not handle.settled:
                await handle.fail(
                    LockTimeoutError(
                        f"Generation of {key} was cancelled",
                        cache_key=key,
                        deadline_seconds=self.deadline_seconds,
                    )
                )

    async def get_cached(
        self,
        vehicle_family: str,
        workspace: Union[WorkspaceType, str],
    ) -> Optional[OverlayPack]:
        """
        Cache-only lookup. Counts as a hit when found.

        Raises:
            CacheError: The store could not be read
        """
        key = cache_key(vehicle_family, workspace)
        set_correlation_context(cache_key=key)
        pack = await self.store.get(key)
        if pack is None:
            cache_lookup_count.labels(result="miss").inc()
            return None
        return self._record_hit(pack)

    async def drain(self) -> None:
        """Wait for pending background usage increments."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def close(self) -> None:
        await self.drain()

    async def __aenter__(self) -> "OverlayPackOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    async def _lookup(self, key: str) -> Optional[OverlayPack]:
        """Store read where any failure counts as a miss."""
        try:
            pack = await self.store.get(key)
        except CacheError as e:
            cache_lookup_count.labels(result="error").inc()
            logger.warning("overlay.cache.read_failed", error=str(e))
            return None

        if pack is None:
            cache_lookup_count.labels(result="miss").inc()
            logger.info("overlay.cache.miss")
            return None
        return self._record_hit(pack)

    def _record_hit(self, pack: OverlayPack) -> OverlayPack:
        cache_lookup_count.labels(result="hit").inc()
        pack.usage_count += 1
        logger.info("overlay.cache.hit", usage_count=pack.usage_count, gpt_model=pack.gpt_model)
        self._schedule_usage_increment(pack.id)
        return pack

    def _schedule_usage_increment(self, key: str) -> None:
        task = asyncio.get_running_loop().create_task(self._increment_usage(key))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _increment_usage(self, key: str) -> None:
        try:
            await self.store.increment_usage(key)
        except CacheError as e:
            logger.warning("overlay.cache.increment_failed", cache_key=key, error=str(e))

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def _resolve(
        self,
        key: str,
        vehicle: VehicleDescriptor,
        workspace: WorkspaceType,
        repair: RepairIntent,
        family: str,
    ) -> OverlayPack:
        cached = await self._lookup(key)
        if cached is not None:
            return cached

        run = GenerationRun(cache_key=key)
        self.recent_runs.append(run)
        logger.info(
            "overlay.generation.started",
            vehicle=vehicle.display_name,
            workspace=workspace.value,
            repair=repair.identifier,
            vehicle_family=family,
        )
        try:
            pack = await self._generate(run, vehicle, workspace, repair, family)
        finally:
            generation_count.labels(state=run.state.value).inc()
            generation_duration.labels(state=run.state.value).observe(run.duration_seconds)

        logger.info(
            "overlay.generation.completed",
            state=run.state.value,
            gpt_model=pack.gpt_model,
            parts=len(pack.parts),
            has_image=pack.has_image,
            duration_seconds=round(run.duration_seconds, 3),
        )
        return pack

    def _phase_failed(self, run: GenerationRun, phase: str, error: Exception) -> None:
        run.record_error(phase, error)
        logger.warning(
            f"overlay.{phase}.failed",
            error=str(error),
            error_code=getattr(error, "error_code", type(error).__name__),
        )

    async def _generate(
        self,
        run: GenerationRun,
        vehicle: VehicleDescriptor,
        workspace: WorkspaceType,
        repair: RepairIntent,
        family: str,
    ) -> OverlayPack:
        plan: Optional[TechnicalPlan] = None
        plan_parts: Dict[str, OverlayPart] = {}

        run.transition(GenerationState.PLANNING_IN_FLIGHT)
        try:
            plan = await self.planning.plan(vehicle, workspace, repair)
            plan_parts = synthesize_parts(plan)
            if not plan_parts:
                raise ValueError("Plan produced no parts")
        except Exception as e:
            self._phase_failed(run, "planning", e)
            return await self._vector_only(run, workspace, repair, family, None, {})

        run.transition(GenerationState.IMAGE_IN_FLIGHT)
        try:
            image_url = await self.visual.generate(vehicle, workspace, repair, plan, family)
        except Exception as e:
            self._phase_failed(run, "image", e)
            return await self._vector_only(run, workspace, repair, family, plan, plan_parts)

        run.transition(GenerationState.GEOMETRY_IN_FLIGHT)
        paths, layers = await self.auxiliary.run(family, workspace, plan_parts)

        run.transition(GenerationState.ASSEMBLING)
        result = await self.assembly.assemble(
            vehicle_family=family,
            workspace_type=workspace.value,
            parts=plan_parts,
            gpt_model=MODEL_TAG_FULL,
            image_url=image_url,
            access_paths=paths,
            layers=layers,
        )
        run.transition(GenerationState.CACHED)
        return result.pack

    async def _vector_only(
        self,
        run: GenerationRun,
        workspace: WorkspaceType,
        repair: RepairIntent,
        family: str,
        plan: Optional[TechnicalPlan],
        parts: Dict[str, OverlayPart],
    ) -> OverlayPack:
        run.transition(GenerationState.FAILED_FALLBACK_TO_VECTOR_ONLY)
        if not parts:
            try:
                parts = await self.planning.define_parts(family, workspace, repair)
            except Exception as e:
                self._phase_failed(run, "part_definitions", e)
                return self._static(run, workspace, repair, family)

        paths, layers = await self.auxiliary.run(family, workspace, parts)

        highlight = normalize_part_name(plan.visual_brief.target_part) if plan else None
        canvas = self.assembly.canvas
        svg = render_workspace_svg(
            parts,
            width=canvas.width,
            height=canvas.height,
            highlight=highlight or None,
            title=f"{family} {workspace.value} - {repair.label}",
        )
        result = await self.assembly.assemble(
            vehicle_family=family,
            workspace_type=workspace.value,
            parts=parts,
            gpt_model=MODEL_TAG_VECTOR_ONLY,
            workspace_svg=svg,
            access_paths=paths,
            layers=layers,
        )
        return result.pack

    def _static(
        self,
        run: GenerationRun,
        workspace: WorkspaceType,
        repair: RepairIntent,
        family: str,
    ) -> OverlayPack:
        """Generic placeholder pack. Not written to the store."""
        run.transition(GenerationState.FAILED_FALLBACK_TO_STATIC)
        parts = {STATIC_PART_NAME: static_part()}
        canvas = self.assembly.canvas
        svg = render_workspace_svg(
            parts,
            width=canvas.width,
            height=canvas.height,
            highlight=STATIC_PART_NAME,
            title=f"Generic workspace - {repair.label}",
        )
        return self.assembly.build(
            vehicle_family=family,
            workspace_type=workspace.value,
            parts=parts,
            gpt_model=MODEL_TAG_STATIC,
            workspace_svg=svg,
        )


def static_part() -> OverlayPart:
    """Centered 0.4-0.6 square used by the static tier."""
    return OverlayPart(
        polygon=[
            NormalizedCoordinate(0.4, 0.4),
            NormalizedCoordinate(0.6, 0.4),
            NormalizedCoordinate(0.6, 0.6),
            NormalizedCoordinate(0.4, 0.6),
        ],
        glow_color="#00FFFF",
        part_type="generic",
        accessibility=Accessibility.MODERATE,
    )
