"""Tests for overlay_packs.services.cache_store module."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from overlay_packs.core.exceptions import CacheError
from overlay_packs.models import AccessPath, NormalizedCoordinate, OverlayPack, OverlayPart
from overlay_packs.services.cache_store import InMemoryOverlayPackStore, PostgresOverlayPackStore

KEY = "toyota_generic_family__engine_front"


def make_pack(key=KEY, image_url="https://storage.test/a.png", **overrides) -> OverlayPack:
    family, workspace = key.split("__")
    polygon = [NormalizedCoordinate(0.1, 0.1), NormalizedCoordinate(0.2, 0.1), NormalizedCoordinate(0.2, 0.2)]
    data = dict(
        id=key,
        vehicle_family=family,
        workspace_type=workspace,
        parts={"battery": OverlayPart(polygon=polygon)},
        gpt_model="hybrid-deepseek-dalle3",
        image_url=image_url,
        generated_at="2026-01-05T10:00:00+00:00",
    )
    data.update(overrides)
    return OverlayPack(**data)


def mock_pool(conn):
    pool = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    pool.acquire.return_value.__aexit__.return_value = False
    return pool


class TestInMemoryOverlayPackStore:
    """Tests for InMemoryOverlayPackStore."""

    @pytest.mark.asyncio
    async def test_miss(self):
        """Test an unknown key returns None."""
        assert await InMemoryOverlayPackStore().get(KEY) is None

    @pytest.mark.asyncio
    async def test_put_get(self):
        """Test a stored pack is returned."""
        store = InMemoryOverlayPackStore()
        pack = make_pack()

        await store.put(pack)

        assert KEY in store
        assert await store.get(KEY) == pack

    @pytest.mark.asyncio
    async def test_returned_copy_isolated(self):
        """Test callers cannot mutate cached state."""
        store = InMemoryOverlayPackStore()
        await store.put(make_pack())

        fetched = await store.get(KEY)
        fetched.parts.clear()
        fetched.usage_count = 99

        again = await store.get(KEY)
        assert "battery" in again.parts
        assert again.usage_count == 0

    @pytest.mark.asyncio
    async def test_upsert_replaces(self):
        """Test a second put for the same family and workspace replaces the first."""
        store = InMemoryOverlayPackStore()
        await store.put(make_pack(image_url="https://storage.test/old.png"))
        await store.put(make_pack(image_url="https://storage.test/new.png"))

        assert len(store) == 1
        assert (await store.get(KEY)).image_url == "https://storage.test/new.png"

    @pytest.mark.asyncio
    async def test_upsert_keeps_usage_count(self):
        """Test replacing a pack keeps the higher usage count."""
        store = InMemoryOverlayPackStore()
        await store.put(make_pack())
        for _ in range(3):
            await store.increment_usage(KEY)

        await store.put(make_pack(image_url="https://storage.test/new.png"))

        stored = await store.get(KEY)
        assert stored.usage_count == 3
        assert stored.image_url == "https://storage.test/new.png"

    @pytest.mark.asyncio
    async def test_upsert_takes_higher_incoming_count(self):
        """Test an incoming pack with a higher count wins."""
        store = InMemoryOverlayPackStore()
        await store.put(make_pack())
        await store.put(make_pack(usage_count=7))

        assert (await store.get(KEY)).usage_count == 7

    @pytest.mark.asyncio
    async def test_increment_usage(self):
        """Test usage increments."""
        store = InMemoryOverlayPackStore()
        await store.put(make_pack())

        await store.increment_usage(KEY)
        await store.increment_usage(KEY)

        assert (await store.get(KEY)).usage_count == 2

    @pytest.mark.asyncio
    async def test_increment_missing_key(self):
        """Test incrementing an unknown key is a no-op."""
        store = InMemoryOverlayPackStore()
        await store.increment_usage(KEY)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_auxiliary_round_trip(self):
        """Test access paths survive storage."""
        store = InMemoryOverlayPackStore()
        path = AccessPath(polyline=[NormalizedCoordinate(0.5, 0.9), NormalizedCoordinate(0.2, 0.2)])
        await store.put(make_pack(access_paths={"battery": path}))

        assert (await store.get(KEY)).access_paths == {"battery": path}


class TestPostgresOverlayPackStore:
    """Tests for PostgresOverlayPackStore with a mocked asyncpg pool."""

    def test_requires_pool_or_dsn(self):
        """Test construction without a pool or DSN."""
        with pytest.raises(ValueError):
            PostgresOverlayPackStore()

    @pytest.mark.asyncio
    async def test_get_decodes_row(self):
        """Test JSONB text columns and timestamps are decoded."""
        pack = make_pack()
        data = pack.to_dict()
        row = dict(data)
        row["parts"] = json.dumps(data["parts"])
        row["baseline_dimensions"] = json.dumps(data["baseline_dimensions"])
        row["generated_at"] = datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=row)
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        result = await store.get(KEY)

        assert result == pack
        conn.fetchrow.assert_awaited_once()
        assert conn.fetchrow.call_args.args[1] == KEY

    @pytest.mark.asyncio
    async def test_get_miss(self):
        """Test a missing row returns None."""
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value=None)
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        assert await store.get(KEY) is None

    @pytest.mark.asyncio
    async def test_get_failure_wrapped(self):
        """Test driver errors become CacheError."""
        conn = MagicMock()
        conn.fetchrow = AsyncMock(side_effect=ConnectionError("connection reset"))
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        with pytest.raises(CacheError) as exc_info:
            await store.get(KEY)

        assert exc_info.value.details["cache_key"] == KEY

    @pytest.mark.asyncio
    async def test_corrupt_row(self):
        """Test an undecodable row becomes CacheError."""
        conn = MagicMock()
        conn.fetchrow = AsyncMock(return_value={"id": KEY, "parts": "{not json"})
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        with pytest.raises(CacheError):
            await store.get(KEY)

    @pytest.mark.asyncio
    async def test_put_serializes_jsonb(self):
        """Test put sends JSON text for geometry columns."""
        conn = MagicMock()
        conn.execute = AsyncMock()
        store = PostgresOverlayPackStore(pool=mock_pool(conn))
        pack = make_pack()

        await store.put(pack)

        args = conn.execute.call_args.args
        assert "ON CONFLICT (vehicle_family, workspace_type)" in args[0]
        assert args[1] == KEY
        assert json.loads(args[7]) == pack.to_dict()["parts"]
        assert args[8] is None
        assert isinstance(args[10], datetime)

    @pytest.mark.asyncio
    async def test_put_never_lowers_usage_count(self):
        """Test the upsert keeps the stored usage count when it is higher."""
        conn = MagicMock()
        conn.execute = AsyncMock()
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        await store.put(make_pack())

        sql = conn.execute.call_args.args[0]
        assert "usage_count = GREATEST(overlay_packs.usage_count, EXCLUDED.usage_count)" in sql
        assert "usage_count = EXCLUDED.usage_count" not in sql

    @pytest.mark.asyncio
    async def test_put_failure_wrapped(self):
        """Test write errors become CacheError."""
        conn = MagicMock()
        conn.execute = AsyncMock(side_effect=OSError("disk full"))
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        with pytest.raises(CacheError):
            await store.put(make_pack())

    @pytest.mark.asyncio
    async def test_increment_usage(self):
        """Test the increment statement."""
        conn = MagicMock()
        conn.execute = AsyncMock()
        store = PostgresOverlayPackStore(pool=mock_pool(conn))

        await store.increment_usage(KEY)

        sql, key = conn.execute.call_args.args
        assert "usage_count = usage_count + 1" in sql
        assert key == KEY

    @pytest.mark.asyncio
    async def test_close_leaves_shared_pool(self):
        """Test an injected pool is not closed by the store."""
        pool = mock_pool(MagicMock())
        pool.close = AsyncMock()
        store = PostgresOverlayPackStore(pool=pool)

        await store.close()

        pool.close.assert_not_awaited()
