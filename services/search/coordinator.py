"""Search coordinator: plans, fans out and aggregates a multi-site search."""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING
from uuid import uuid4

from core.logging import get_logger, search_context
from core.result import Result, failure, success
from services.search.errors import ErrorCode, SearchCoordinatorError
from services.search.job import SiteSearchJob

if TYPE_CHECKING:
    from core.config import CorrelatorSettings
    from services.search.aggregator import Aggregator
    from services.search.planner import VariantPlanner
    from services.search.types import AggregatedResponse, JobOutcome, SearchRequest
    from services.workers.context import OrchestratorContext
    from services.workers.manager import WorkerManager

logger = get_logger(__name__)


class SearchCoordinator:
    """
    Orchestrates one search across every planned site job.

    Jobs run concurrently and resolve in any order; aggregation starts once
    all of them reached a terminal state. Site failures only remove that
    site's items. The search itself fails only when planning or aggregation
    fails.
    """

    def __init__(
        self,
        planner: VariantPlanner,
        aggregator: Aggregator,
        manager: WorkerManager,
        context: OrchestratorContext,
        correlator_settings: CorrelatorSettings | None = None,
    ) -> None:
        """
        Initialize the coordinator.

        Args:
            planner: Expands requests into job specs.
            aggregator: Merges job outcomes.
            manager: Creates and releases the jobs' workers.
            context: Engine state shared by every job.
            correlator_settings: Timing policy passed to each job.
        """
        self._planner = planner
        self._aggregator = aggregator
        self._manager = manager
        self._context = context
        self._correlator_settings = correlator_settings

    async def search(
        self,
        request: SearchRequest,
    ) -> Result[AggregatedResponse, SearchCoordinatorError]:
        """
        Execute a search across the planned sites.

        Args:
            request: The search request.

        Returns:
            Result containing the aggregated response or the error.
        """
        with search_context(search_id=uuid4().hex[:12]):
            return await self._search(request)

    async def _search(
        self,
        request: SearchRequest,
    ) -> Result[AggregatedResponse, SearchCoordinatorError]:
        started = time.monotonic()

        try:
            specs = self._planner.plan(request)
        except Exception as e:
            logger.exception("Search planning failed", query=request.query)
            return failure(SearchCoordinatorError("Search planning failed", details=str(e)))

        jobs = [
            SiteSearchJob(spec, self._manager, self._context, self._correlator_settings)
            for spec in specs
        ]
        outcomes = await self._run_all(jobs)

        try:
            aggregated = self._aggregator.aggregate(outcomes)
        except Exception as e:
            logger.exception("Search aggregation failed", query=request.query)
            return failure(
                SearchCoordinatorError(
                    "Search aggregation failed",
                    code=ErrorCode.AGGREGATION,
                    details=str(e),
                )
            )

        logger.info(
            "Search completed",
            query=request.query,
            jobs=len(jobs),
            total_results=aggregated.total_count,
            completed_sites=aggregated.completed_sites,
            failed_jobs=aggregated.failed_jobs,
            elapsed=round(time.monotonic() - started, 2),
        )
        return success(aggregated)

    async def _run_all(self, jobs: list[SiteSearchJob]) -> list[JobOutcome]:
        """Run every job concurrently and wait for all of them."""
        # SiteSearchJob.run() converts every failure into an outcome
        outcomes = await asyncio.gather(*(job.run() for job in jobs))
        return list(outcomes)
