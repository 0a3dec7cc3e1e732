"""
Unit tests for the in-memory cache store.
"""

import pytest

from service_registry_auth.app.cache.memory_store import MemoryStore


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMemoryStore:
    """Test cases for MemoryStore."""

    @pytest.fixture
    def clock(self):
        """Create FakeClock instance."""
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        """Create MemoryStore instance with an hourly sweep."""
        return MemoryStore(cleanup_interval=3600, clock=clock)

    @pytest.mark.asyncio
    async def test_get_set_delete(self, store):
        """Test basic key-value operations."""
        await store.set("a", "1", 60)
        assert await store.get("a") == "1"

        await store.delete("a")
        assert await store.get("a") is None

        # Deleting a missing key is a no-op
        await store.delete("a")

    @pytest.mark.asyncio
    async def test_expired_key_dropped_on_read(self, store, clock):
        """Test reading an expired key removes it."""
        await store.set("a", "1", 10)
        clock.now = 10

        assert await store.get("a") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired(self, store, clock):
        """Test sweep evicts expired keys and keeps live ones."""
        await store.set("old", "1", 10)
        await store.set("live", "2", 1000)
        clock.now = 500

        removed = store.sweep()

        assert removed == 1
        assert len(store) == 1
        assert await store.get("live") == "2"

    @pytest.mark.asyncio
    async def test_maybe_sweep_respects_interval(self, store, clock):
        """Test the sweep only runs once the cleanup interval elapsed."""
        await store.set("old", "1", 10)
        clock.now = 100

        assert store.maybe_sweep() == 0
        assert len(store) == 1

        clock.now = 3600
        assert store.maybe_sweep() == 1
        assert len(store) == 0

        # Next sweep is an interval away again
        await store.set("old", "1", 10)
        clock.now = 3700
        assert store.maybe_sweep() == 0
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_sweep_keeps_rewritten_keys(self, store, clock):
        """Test a key rewritten with a later expiry survives the sweep."""
        await store.set("a", "1", 10)
        clock.now = 5
        await store.set("a", "2", 10_000)
        clock.now = 20

        assert store.sweep() == 0
        assert await store.get("a") == "2"

    @pytest.mark.asyncio
    async def test_sweep_resets_cleanup_clock(self, store, clock):
        """Test a sweep postpones the next scheduled one."""
        clock.now = 5000
        store.sweep()

        clock.now = 5000 + 3599
        assert store.maybe_sweep() == 0

    @pytest.mark.asyncio
    async def test_clear(self, store):
        """Test clear drops everything."""
        await store.set("a", "1", 60)
        await store.set("b", "2", 60)

        await store.clear()

        assert len(store) == 0

