"""Search engine: wires the orchestration components around one worker platform."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self

from core.config import Settings, get_settings
from core.logging import get_logger
from services.marketplaces.factory import SiteRegistry
from services.marketplaces.sites import REFERENCE_SITE_CODE
from services.search.aggregator import Aggregator
from services.search.coordinator import SearchCoordinator
from services.search.errors import CorrelationError
from services.search.planner import VariantPlanner
from services.workers.context import OrchestratorContext
from services.workers.manager import WorkerManager

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

    from core.result import Result
    from services.search.errors import SearchCoordinatorError
    from services.search.types import AggregatedResponse, SearchRequest
    from services.workers.base import WorkerPlatform

logger = get_logger(__name__)

ENGINE_VERSION = "0.1.0"


class SearchEngine:
    """
    One orchestration engine instance.

    Owns the engine-wide state (worker registry and pending resolvers) and
    the periodic orphan sweep. Use as an async context manager, or call
    ``start()`` and ``close()``.

    Example:
        >>> async with SearchEngine(PlaywrightPlatform()) as engine:
        ...     result = await engine.search(SearchRequest("drill"))
    """

    def __init__(
        self,
        platform: WorkerPlatform,
        settings: Settings | None = None,
        registry: SiteRegistry | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            platform: Platform hosting the rendering workers.
            settings: Engine settings (defaults to get_settings()).
            registry: Searchable sites (defaults to every supported site).
        """
        self.settings = settings or get_settings()
        self.registry = registry or SiteRegistry.with_defaults()
        self.context = OrchestratorContext()
        self.manager = WorkerManager(
            platform,
            self.context,
            sweep_interval=self.settings.worker.sweep_interval,
        )
        self.coordinator = SearchCoordinator(
            planner=VariantPlanner(self.registry),
            aggregator=Aggregator(reference_site=REFERENCE_SITE_CODE),
            manager=self.manager,
            context=self.context,
            correlator_settings=self.settings.correlator,
        )
        self._platform = platform
        self._started = False
        platform.set_push_handler(self.deliver_push)

    @property
    def is_started(self) -> bool:
        """True between start() and close()."""
        return self._started

    async def start(self) -> None:
        """Start the periodic orphan sweep."""
        if self._started:
            return
        self.manager.start_sweep()
        self._started = True
        logger.info("Search engine started", sites=self.registry.registered_codes)

    async def close(self) -> None:
        """Stop the sweep, destroy every remaining worker and close the platform."""
        await self.manager.stop_sweep()
        destroyed = await self.manager.cleanup_all()
        self.context.pending.clear()
        self._platform.set_push_handler(None)
        await self._platform.close()
        self._started = False
        logger.info("Search engine closed", destroyed_workers=destroyed)

    async def __aenter__(self) -> Self:
        """Start the engine."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the engine."""
        await self.close()

    async def search(
        self,
        request: SearchRequest,
    ) -> Result[AggregatedResponse, SearchCoordinatorError]:
        """Run one search. See SearchCoordinator.search."""
        return await self.coordinator.search(request)

    async def deliver_push(self, handle_id: str, message: Mapping[str, Any]) -> bool:
        """
        Route a pushed result to the correlator of the sending worker.

        Pushes that match no pending resolver (the job already settled, or
        the worker was cleaned up) or that carry another site's message type
        are logged and discarded.

        Returns:
            True if the push settled a job.
        """
        resolver = self.context.pending.get(handle_id)
        handle = self.context.registry.get(handle_id)
        if resolver is None or handle is None:
            self._discard(
                CorrelationError("No pending resolver for push", details=handle_id),
                message,
            )
            return False

        site = self.registry.by_message_type(message.get("type"))
        if site is None or site.code != handle.site:
            self._discard(
                CorrelationError(
                    "Push type does not match the worker's site",
                    site=handle.site,
                    details=handle_id,
                ),
                message,
            )
            return False

        return await resolver(message)

    def healthcheck(self) -> dict[str, Any]:
        """
        Report engine state.

        The engine is healthy while started with its sweep running; at rest
        between searches no worker and no resolver should be left.
        """
        sweeping = self.manager.is_sweeping
        checks: dict[str, dict[str, Any]] = {
            "sweep": {"status": "healthy" if sweeping else "stopped"},
            "workers": {
                "status": "healthy",
                "live": self.manager.live_count,
                "pending": len(self.context.pending),
            },
        }
        return {
            "status": "healthy" if self._started and sweeping else "degraded",
            "version": ENGINE_VERSION,
            "checks": checks,
        }

    @staticmethod
    def _discard(error: CorrelationError, message: Mapping[str, Any]) -> None:
        logger.warning(
            "Push discarded",
            error_code=error.code.value,
            error=error.message,
            site=error.site,
            handle_id=error.details,
            message_type=message.get("type"),
        )
