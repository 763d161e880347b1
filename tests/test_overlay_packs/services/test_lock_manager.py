"""Tests for overlay_packs.services.lock_manager module."""

import asyncio

import pytest

from overlay_packs.core.exceptions import GenerationError, LockTimeoutError
from overlay_packs.models import NormalizedCoordinate, OverlayPack, OverlayPart
from overlay_packs.services.lock_manager import GenerationLockManager

KEY = "toyota_generic_family__engine_front"


def make_pack() -> OverlayPack:
    polygon = [NormalizedCoordinate(0.1, 0.1), NormalizedCoordinate(0.2, 0.1), NormalizedCoordinate(0.2, 0.2)]
    return OverlayPack(
        id=KEY,
        vehicle_family="toyota_generic_family",
        workspace_type="engine_front",
        parts={"battery": OverlayPart(polygon=polygon)},
        gpt_model="hybrid-deepseek-dalle3",
    )


class TestGenerationLockManager:
    """Tests for GenerationLockManager."""

    @pytest.mark.asyncio
    async def test_single_caller_is_leader(self):
        """Test the first caller leads."""
        manager = GenerationLockManager()

        handle = await manager.acquire_or_join(KEY)

        assert handle.is_leader
        assert manager.in_flight(KEY)
        assert len(manager) == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_single_leader(self):
        """Test ten concurrent callers produce exactly one leader."""
        manager = GenerationLockManager()

        handles = await asyncio.gather(*(manager.acquire_or_join(KEY) for _ in range(10)))

        leaders = [h for h in handles if h.is_leader]
        assert len(leaders) == 1
        assert leaders[0].follower_count == 9

    @pytest.mark.asyncio
    async def test_followers_receive_published_pack(self):
        """Test followers get the leader's pack and the entry is released."""
        manager = GenerationLockManager()
        leader = await manager.acquire_or_join(KEY)
        followers = [await manager.acquire_or_join(KEY) for _ in range(3)]
        pack = make_pack()

        waits = [asyncio.create_task(f.wait(timeout=1.0)) for f in followers]
        await leader.publish(pack)
        results = await asyncio.gather(*waits)

        assert all(result is pack for result in results)
        assert leader.settled
        assert not manager.in_flight(KEY)
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_followers_receive_leader_error(self):
        """Test followers re-raise the leader's failure."""
        manager = GenerationLockManager()
        leader = await manager.acquire_or_join(KEY)
        follower = await manager.acquire_or_join(KEY)

        await leader.fail(GenerationError("pipeline exploded"))

        with pytest.raises(GenerationError, match="pipeline exploded"):
            await follower.wait(timeout=1.0)
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_leader_fail_without_followers(self):
        """Test failing with no followers releases cleanly."""
        manager = GenerationLockManager()
        leader = await manager.acquire_or_join(KEY)

        await leader.fail(GenerationError("boom"))

        assert leader.settled
        assert not manager.in_flight(KEY)

    @pytest.mark.asyncio
    async def test_follower_timeout(self):
        """Test a follower wait that exceeds its timeout."""
        manager = GenerationLockManager()
        leader = await manager.acquire_or_join(KEY)
        follower = await manager.acquire_or_join(KEY)

        with pytest.raises(LockTimeoutError) as exc_info:
            await follower.wait(timeout=0.01)

        assert exc_info.value.details["cache_key"] == KEY
        # The leader's future is shielded from the follower's timeout
        assert not leader.settled
        await leader.publish(make_pack())

    @pytest.mark.asyncio
    async def test_new_leader_after_release(self):
        """Test a settled key starts a fresh generation."""
        manager = GenerationLockManager()
        first = await manager.acquire_or_join(KEY)
        await first.publish(make_pack())

        second = await manager.acquire_or_join(KEY)

        assert second.is_leader
        assert second is not first

    @pytest.mark.asyncio
    async def test_keys_independent(self):
        """Test different keys get independent leaders."""
        manager = GenerationLockManager()

        a = await manager.acquire_or_join(KEY)
        b = await manager.acquire_or_join("ford_generic_family__undercarriage")

        assert a.is_leader and b.is_leader
        assert len(manager) == 2
