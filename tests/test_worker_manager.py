"""Tests for the worker registry and manager."""

from __future__ import annotations

import asyncio

import pytest
from worker_fakes import FakePlatform

from services.search.errors import ResourceCreationError
from services.workers.base import WorkerHandle
from services.workers.context import OrchestratorContext, ProcessRegistry
from services.workers.manager import WorkerManager

URL = "https://www.vinted.fr/catalog?search_text=veste"


class TestProcessRegistry:
    """Tests for ProcessRegistry."""

    def test_add_and_discard(self) -> None:
        """Handles are tracked until discarded."""
        registry = ProcessRegistry()
        handle = WorkerHandle("w1", owner="vinted:0:national", site="vinted", url=URL)

        registry.add(handle)

        assert "w1" in registry
        assert registry.get("w1") is handle
        assert list(registry) == [handle]
        assert registry.discard("w1") is handle
        assert registry.discard("w1") is None
        assert len(registry) == 0

    def test_duplicate_registration_rejected(self) -> None:
        """A handle id can have only one owner."""
        registry = ProcessRegistry()
        registry.add(WorkerHandle("w1", owner="a", site="vinted", url=URL))

        with pytest.raises(ValueError, match="already registered"):
            registry.add(WorkerHandle("w1", owner="b", site="vinted", url=URL))


class TestOrchestratorContext:
    """Tests for OrchestratorContext."""

    def test_resolvers(self) -> None:
        """One resolver per handle; unregistering is idempotent."""
        context = OrchestratorContext()

        async def resolver(message: object) -> bool:
            return True

        context.register_resolver("w1", resolver)

        with pytest.raises(ValueError, match="already pending"):
            context.register_resolver("w1", resolver)

        context.unregister_resolver("w1")
        context.unregister_resolver("w1")
        assert context.is_idle


class TestAcquireRelease:
    """Tests for acquire and release."""

    @pytest.mark.asyncio
    async def test_acquire_registers_handle(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """An acquired worker is live and registered."""
        handle = await manager.acquire(URL, owner="vinted:0:national", site="vinted")

        assert handle.handle_id in context.registry
        assert platform.resources[handle.handle_id] == URL
        assert handle.owner == "vinted:0:national"
        assert manager.live_count == 1

    @pytest.mark.asyncio
    async def test_acquire_failure(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """Platform errors surface as ResourceCreationError."""
        platform.fail_create.add("vinted.fr")

        with pytest.raises(ResourceCreationError) as exc_info:
            await manager.acquire(URL, owner="vinted:0:national", site="vinted")

        assert exc_info.value.site == "vinted"
        assert "cannot open" in (exc_info.value.details or "")
        assert len(context.registry) == 0

    @pytest.mark.asyncio
    async def test_registration_failure_destroys_resource(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """A resource that cannot be registered is destroyed, not leaked."""
        stale = WorkerHandle(handle_id="w1", owner="ebay:0:national", site="ebay", url=URL)
        context.registry.add(stale)

        with pytest.raises(ResourceCreationError, match="registered"):
            await manager.acquire(URL, owner="vinted:0:national", site="vinted")

        assert platform.created == ["w1"]
        assert platform.destroyed == ["w1"]
        assert context.registry.get("w1") is stale

    @pytest.mark.asyncio
    async def test_release_is_idempotent(
        self,
        manager: WorkerManager,
        platform: FakePlatform,
    ) -> None:
        """Only the first release destroys the resource."""
        handle = await manager.acquire(URL, owner="o", site="vinted")

        assert await manager.release(handle) is True
        assert await manager.release(handle) is False
        assert platform.destroyed == [handle.handle_id]

    @pytest.mark.asyncio
    async def test_release_survives_destroy_error(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """A failing destroy still removes the handle."""
        handle = await manager.acquire(URL, owner="o", site="vinted")
        platform.fail_destroy = True

        assert await manager.release(handle) is True
        assert handle.handle_id not in context.registry


class TestSweep:
    """Tests for the orphan sweep."""

    @pytest.mark.asyncio
    async def test_sweep_removes_orphans_only(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """Handles whose resource vanished are removed; live ones are kept."""
        live = await manager.acquire(URL, owner="a", site="vinted")
        orphan = await manager.acquire(URL, owner="b", site="vinted")
        platform.resources.pop(orphan.handle_id)

        removed = await manager.sweep()

        assert removed == 1
        assert live.handle_id in context.registry
        assert orphan.handle_id not in context.registry
        assert platform.destroyed == []

    @pytest.mark.asyncio
    async def test_sweep_skips_failed_probes(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """A resource that cannot be probed is left alone."""
        handle = await manager.acquire(URL, owner="a", site="vinted")
        platform.fail_exists.add(handle.handle_id)

        assert await manager.sweep() == 0
        assert handle.handle_id in context.registry

    @pytest.mark.asyncio
    async def test_periodic_sweep(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """The background task sweeps until stopped."""
        handle = await manager.acquire(URL, owner="a", site="vinted")
        platform.resources.clear()

        manager.start_sweep()
        manager.start_sweep()
        assert manager.is_sweeping

        for _ in range(50):
            if handle.handle_id not in context.registry:
                break
            await asyncio.sleep(0.01)

        await manager.stop_sweep()

        assert handle.handle_id not in context.registry
        assert manager.is_sweeping is False


class TestCleanupAll:
    """Tests for cleanup_all."""

    @pytest.mark.asyncio
    async def test_destroys_everything(
        self,
        manager: WorkerManager,
        context: OrchestratorContext,
        platform: FakePlatform,
    ) -> None:
        """Every registered worker is destroyed and its resolver dropped."""
        handles = [await manager.acquire(URL, owner=str(n), site="vinted") for n in range(3)]

        async def resolver(message: object) -> bool:
            return True

        context.register_resolver(handles[0].handle_id, resolver)

        destroyed = await manager.cleanup_all()

        assert destroyed == 3
        assert sorted(platform.destroyed) == sorted(h.handle_id for h in handles)
        assert context.is_idle
        assert await manager.cleanup_all() == 0
