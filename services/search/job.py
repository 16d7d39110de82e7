"""Site search job: one site, one keyword variant, one geo mode."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from core.config import CorrelatorSettings
from core.logging import get_logger
from core.result import Failure, Success
from services.search.errors import ExtractionError, JobTimeoutError, ResourceCreationError
from services.search.types import JobOutcome
from services.workers.correlator import ResultCorrelator

if TYPE_CHECKING:
    from services.search.types import JobSpec
    from services.workers.base import WorkerHandle
    from services.workers.context import OrchestratorContext
    from services.workers.correlator import JobResult
    from services.workers.manager import WorkerManager

logger = get_logger(__name__)


class SiteSearchJob:
    """
    The unit of work of a search.

    Owns one worker handle and one correlator. ``run()`` never raises: any
    failure is converted to a failed outcome with no items.
    """

    def __init__(
        self,
        spec: JobSpec,
        manager: WorkerManager,
        context: OrchestratorContext,
        settings: CorrelatorSettings | None = None,
    ) -> None:
        """
        Initialize the job.

        Args:
            spec: What to search.
            manager: Manager creating the job's worker.
            context: Engine state shared with the correlator.
            settings: Correlator timing policy.
        """
        self.spec = spec
        self._manager = manager
        self._context = context
        self._settings = settings or CorrelatorSettings()
        self._handle: WorkerHandle | None = None
        self._correlator: ResultCorrelator | None = None
        self._outcome: JobOutcome | None = None

    @property
    def handle(self) -> WorkerHandle | None:
        """The job's worker, once acquired."""
        return self._handle

    @property
    def correlator(self) -> ResultCorrelator | None:
        """The job's correlator, once dispatched."""
        return self._correlator

    @property
    def outcome(self) -> JobOutcome | None:
        """Terminal outcome, once the job has run."""
        return self._outcome

    async def run(self) -> JobOutcome:
        """
        Dispatch the worker and wait for its result.

        Returns:
            The job outcome. Running a finished job returns the same outcome.
        """
        if self._outcome is not None:
            return self._outcome

        result = await self._execute()
        self._outcome = JobOutcome(spec=self.spec, result=result)

        if isinstance(result, Failure):
            logger.info(
                "Site job failed",
                job=self.spec.job_id,
                error_code=result.error.code.value,
                error=result.error.message,
            )
        else:
            logger.info("Site job resolved", job=self.spec.job_id, count=len(result.value))
        return self._outcome

    async def _execute(self) -> JobResult:
        if self.spec.skipped or self.spec.url is None:
            return Success([])

        timeout = self._settings.timeout
        try:
            # Worker creation, first browser launch included, is bounded by the job timeout
            self._handle = await asyncio.wait_for(
                self._manager.acquire(
                    self.spec.url,
                    owner=self.spec.job_id,
                    site=self.spec.site,
                ),
                timeout=timeout,
            )
        except ResourceCreationError as e:
            return Failure(e)
        except TimeoutError:
            return Failure(
                JobTimeoutError(f"No worker after {timeout:g}s", site=self.spec.site)
            )

        self._correlator = ResultCorrelator(
            self._handle,
            self._manager,
            self._context,
            self._settings,
        )
        try:
            return await self._correlator.run()
        except Exception as e:
            logger.error("Site job crashed", job=self.spec.job_id, error=str(e))
            return Failure(
                ExtractionError("Site job crashed", site=self.spec.site, details=str(e))
            )
        finally:
            # No-op when the correlator already released the worker
            await self._manager.release(self._handle)
