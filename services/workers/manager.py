"""Lifecycle of ephemeral worker resources."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from core.logging import get_logger
from services.search.errors import ResourceCreationError
from services.workers.base import WorkerHandle

if TYPE_CHECKING:
    from services.workers.base import WorkerPlatform
    from services.workers.context import OrchestratorContext

logger = get_logger(__name__)

DEFAULT_SWEEP_INTERVAL = 120.0


class WorkerManager:
    """
    Creates, registers and tears down worker resources.

    Every acquired worker is recorded in the context's registry until it is
    released, swept as an orphan, or force-destroyed on shutdown.
    """

    def __init__(
        self,
        platform: WorkerPlatform,
        context: OrchestratorContext,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        """
        Initialize the manager.

        Args:
            platform: Platform hosting the workers.
            context: Engine state holding the registry.
            sweep_interval: Seconds between two orphan sweeps.
        """
        self._platform = platform
        self._context = context
        self._sweep_interval = sweep_interval
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def platform(self) -> WorkerPlatform:
        """Return the worker platform."""
        return self._platform

    @property
    def live_count(self) -> int:
        """Number of registered workers."""
        return len(self._context.registry)

    @property
    def is_sweeping(self) -> bool:
        """True while the periodic sweep task runs."""
        return self._sweep_task is not None and not self._sweep_task.done()

    async def acquire(self, url: str, *, owner: str, site: str) -> WorkerHandle:
        """
        Create a background worker navigated to ``url`` and register it.

        Args:
            url: Target search page.
            owner: Job id owning the worker.
            site: Site code, for logging and push routing.

        Returns:
            The registered handle.

        Raises:
            ResourceCreationError: If the platform cannot create the worker or
                its id is already registered.
        """
        try:
            resource_id = await self._platform.create(url)
        except ResourceCreationError:
            raise
        except Exception as e:
            raise ResourceCreationError(
                "Worker could not be created", site=site, details=str(e)
            ) from e

        handle = WorkerHandle(handle_id=resource_id, owner=owner, site=site, url=url)
        try:
            self._context.registry.add(handle)
        except ValueError as e:
            with contextlib.suppress(Exception):
                await self._platform.destroy(resource_id)
            raise ResourceCreationError(
                "Worker could not be registered", site=site, details=str(e)
            ) from e
        logger.debug("Worker acquired", handle_id=resource_id, owner=owner, site=site)
        return handle

    async def release(self, handle: WorkerHandle) -> bool:
        """
        Destroy a worker and remove it from the registry.

        Idempotent: only the first call for a registered handle destroys the
        resource.

        Returns:
            True if this call released the worker, False if it was already gone.
        """
        if self._context.registry.discard(handle.handle_id) is None:
            return False

        try:
            await self._platform.destroy(handle.handle_id)
        except Exception as e:
            logger.warning(
                "Worker destroy failed",
                handle_id=handle.handle_id,
                site=handle.site,
                error=str(e),
            )
        logger.debug("Worker released", handle_id=handle.handle_id, owner=handle.owner)
        return True

    async def sweep(self) -> int:
        """
        Drop registered handles whose resource no longer exists.

        A resource that cannot be probed is left alone; live resources are
        never destroyed here.

        Returns:
            Number of orphaned handles removed.
        """
        removed = 0
        for handle in self._context.registry.snapshot():
            try:
                alive = await self._platform.exists(handle.handle_id)
            except Exception as e:
                logger.debug("Worker probe failed", handle_id=handle.handle_id, error=str(e))
                continue
            if not alive and self._context.registry.discard(handle.handle_id) is not None:
                removed += 1
                logger.info(
                    "Orphan worker removed",
                    handle_id=handle.handle_id,
                    site=handle.site,
                    age_seconds=round(handle.age_seconds, 1),
                )
        return removed

    def start_sweep(self) -> None:
        """Start the periodic orphan sweep. Calling it twice has no effect."""
        if self.is_sweeping:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="worker-sweep")

    async def stop_sweep(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error("Worker sweep failed", error=str(e))

    async def cleanup_all(self) -> int:
        """
        Force-destroy every registered worker, whatever its job state.

        Returns:
            Number of workers destroyed.
        """
        handles = self._context.registry.snapshot()
        released = 0
        for handle in handles:
            self._context.unregister_resolver(handle.handle_id)
            if await self.release(handle):
                released += 1
        if released:
            logger.info("Remaining workers destroyed", count=released)
        return released
