"""
Cache Store Client

Durable keyed storage for overlay packs. Two implementations share the
OverlayPackStore interface:

- PostgresOverlayPackStore: asyncpg against the ``overlay_packs`` table,
  JSONB geometry columns, upsert on (vehicle_family, workspace_type).
- InMemoryOverlayPackStore: process-local dict for development and tests.

Every store failure is raised as CacheError. Callers treat it as non-fatal.
"""

import asyncio
import copy
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional

from overlay_packs.core.exceptions import CacheError
from overlay_packs.models.overlay import OverlayPack
from src.utils.logger import get_logger

logger = get_logger(__name__)


OVERLAY_PACKS_DDL = """
CREATE TABLE IF NOT EXISTS overlay_packs (
    id TEXT PRIMARY KEY,
    vehicle_family TEXT NOT NULL,
    workspace_type TEXT NOT NULL,
    workspace_svg TEXT,
    image_url TEXT,
    baseline_dimensions JSONB NOT NULL DEFAULT '{"width": 1000, "height": 600}',
    parts JSONB NOT NULL,
    access_paths JSONB,
    layers JSONB,
    generated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    gpt_model TEXT NOT NULL,
    usage_count INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
CREATE UNIQUE INDEX IF NOT EXISTS overlay_packs_vehicle_family_workspace_type_key
    ON overlay_packs (vehicle_family, workspace_type);
CREATE INDEX IF NOT EXISTS idx_overlay_packs_usage_count
    ON overlay_packs (usage_count DESC);
"""


class OverlayPackStore(ABC):
    """Interface for durable overlay pack storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[OverlayPack]:
        """
        Point lookup by pack id.

        Raises:
            CacheError: On any store failure
        """
        ...

    @abstractmethod
    async def put(self, pack: OverlayPack) -> None:
        """
        Insert or replace the pack for its (vehicle_family, workspace_type).

        Raises:
            CacheError: On any store failure
        """
        ...

    @abstractmethod
    async def increment_usage(self, key: str) -> None:
        """
        Add one to the pack's usage_count.

        Not atomic with respect to get(); concurrent hits may under-count.

        Raises:
            CacheError: On any store failure
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        return None


class InMemoryOverlayPackStore(OverlayPackStore):
    """
    Dict-backed store.

    Stores serialized copies so callers can never mutate cached state
    through a returned object.
    """

    def __init__(self):
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[OverlayPack]:
        async with self._lock:
            row = self._rows.get(key)
            if row is None:
                return None
            return OverlayPack.from_dict(copy.deepcopy(row))

    async def put(self, pack: OverlayPack) -> None:
        async with self._lock:
            row = pack.to_dict()
            # Upsert on (vehicle_family, workspace_type) even if ids differ.
            # The usage counter never goes down on replace.
            for existing_id, existing in list(self._rows.items()):
                if existing_id == pack.id or (
                    existing["vehicle_family"] == pack.vehicle_family
                    and existing["workspace_type"] == pack.workspace_type
                ):
                    row["usage_count"] = max(row["usage_count"], int(existing.get("usage_count") or 0))
                    del self._rows[existing_id]
            self._rows[pack.id] = row

    async def increment_usage(self, key: str) -> None:
        async with self._lock:
            row = self._rows.get(key)
            if row is not None:
                row["usage_count"] = int(row.get("usage_count") or 0) + 1

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, key: str) -> bool:
        return key in self._rows


def _dump_json(value: Any) -> Optional[str]:
    return json.dumps(value) if value is not None else None


def _load_json(value: Any) -> Any:
    if value is None or isinstance(value, (dict, list)):
        return value
    return json.loads(value)


class PostgresOverlayPackStore(OverlayPackStore):
    """
    asyncpg-backed store for the ``overlay_packs`` table.

    Accepts an existing pool (owned by the application) or a DSN, in which
    case the pool is created lazily and closed by close().
    """

    _SELECT_SQL = """
        SELECT id, vehicle_family, workspace_type, workspace_svg, image_url,
               baseline_dimensions, parts, access_paths, layers,
               generated_at, gpt_model, usage_count
        FROM overlay_packs
        WHERE id = $1
    """

    _UPSERT_SQL = """
        INSERT INTO overlay_packs (
            id, vehicle_family, workspace_type, workspace_svg, image_url,
            baseline_dimensions, parts, access_paths, layers,
            generated_at, gpt_model, usage_count
        )
        VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7::jsonb, $8::jsonb, $9::jsonb,
                $10, $11, $12)
        ON CONFLICT (vehicle_family, workspace_type) DO UPDATE SET
            id = EXCLUDED.id,
            workspace_svg = EXCLUDED.workspace_svg,
            image_url = EXCLUDED.image_url,
            baseline_dimensions = EXCLUDED.baseline_dimensions,
            parts = EXCLUDED.parts,
            access_paths = EXCLUDED.access_paths,
            layers = EXCLUDED.layers,
            generated_at = EXCLUDED.generated_at,
            gpt_model = EXCLUDED.gpt_model,
            usage_count = GREATEST(overlay_packs.usage_count, EXCLUDED.usage_count),
            updated_at = NOW()
    """

    _INCREMENT_SQL = """
        UPDATE overlay_packs
        SET usage_count = usage_count + 1, updated_at = NOW()
        WHERE id = $1
    """

    def __init__(self, pool: Any = None, dsn: Optional[str] = None):
        if pool is None and not dsn:
            raise ValueError("PostgresOverlayPackStore needs a pool or a DSN")
        self._pool = pool
        self._dsn = dsn
        self._owns_pool = pool is None

    async def _get_pool(self) -> Any:
        """Get or create connection pool (lazy initialization)."""
        if self._pool is None:
            import asyncpg

            try:
                self._pool = await asyncpg.create_pool(self._dsn)
            except (OSError, asyncpg.PostgresError) as e:
                raise CacheError(f"Failed to create database pool: {e}") from e
        return self._pool

    async def ensure_schema(self) -> None:
        """Create the overlay_packs table and indexes if missing."""
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            await conn.execute(OVERLAY_PACKS_DDL)

    async def close(self) -> None:
        if self._pool is not None and self._owns_pool:
            await self._pool.close()
            self._pool = None

    @staticmethod
    def _row_to_pack(row: Any) -> OverlayPack:
        data = dict(row)
        for column in ("baseline_dimensions", "parts", "access_paths", "layers"):
            data[column] = _load_json(data.get(column))
        if isinstance(data.get("generated_at"), datetime):
            data["generated_at"] = data["generated_at"].isoformat()
        return OverlayPack.from_dict(data)

    async def get(self, key: str) -> Optional[OverlayPack]:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(self._SELECT_SQL, key)
        except CacheError:
            raise
        except Exception as e:
            raise CacheError(f"Cache read failed for {key}: {e}", details={"cache_key": key}) from e

        if row is None:
            return None
        try:
            return self._row_to_pack(row)
        except (KeyError, TypeError, ValueError) as e:
            raise CacheError(f"Corrupt cache row for {key}: {e}", details={"cache_key": key}) from e

    async def put(self, pack: OverlayPack) -> None:
        data = pack.to_dict()
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                await conn.execute(
                    self._UPSERT_SQL,
                    data["id"],
                    data["vehicle_family"],
                    data["workspace_type"],
                    data["workspace_svg"],
                    data["image_url"],
                    _dump_json(data["baseline_dimensions"]),
                    _dump_json(data["parts"]),
                    _dump_json(data["access_paths"]),
                    _dump_json(data["layers"]),
                    datetime.fromisoformat(data["generated_at"]),
                    data["gpt_model"],
                    data["usage_count"],
                )
        except CacheError:
            raise
        except Exception as e:
            raise CacheError(f"Cache write failed for {pack.id}: {e}", details={"cache_key": pack.id}) from e

    async def increment_usage(self, key: str) -> None:
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                await conn.execute(self._INCREMENT_SQL, key)
        except CacheError:
            raise
        except Exception as e:
            raise CacheError(f"Usage increment failed for {key}: {e}", details={"cache_key": key}) from e
