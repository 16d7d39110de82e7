"""Per-job correlation of asynchronously delivered extraction results."""

from __future__ import annotations

import asyncio
import contextlib
from enum import Enum
from typing import TYPE_CHECKING, Any

from core.config import CorrelatorSettings
from core.logging import get_logger
from core.result import Failure, Success
from services.search.errors import ExtractionError, JobTimeoutError
from services.workers.base import LoadStatus
from services.workers.payloads import EXTRACT_REQUEST, parse_extract_reply, parse_results

if TYPE_CHECKING:
    from collections.abc import Mapping

    from core.result import Result
    from services.search.errors import SearchEngineError
    from services.search.types import ResultItem
    from services.workers.base import WorkerHandle
    from services.workers.context import OrchestratorContext
    from services.workers.manager import WorkerManager

logger = get_logger(__name__)

type JobResult = Result[list[ResultItem], SearchEngineError]


class CorrelatorState(str, Enum):
    """States of a result correlator."""

    DISPATCHED = "dispatched"
    AWAITING_LOAD = "awaiting_load"
    PARSE_ATTEMPTED = "parse_attempted"
    RETRYING = "retrying"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Return True for resolved, timed out and failed."""
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {CorrelatorState.RESOLVED, CorrelatorState.TIMED_OUT, CorrelatorState.FAILED}
)


class Channel(str, Enum):
    """Path that settled a correlator."""

    PUSH = "push"
    PULL = "pull"
    TIMEOUT = "timeout"
    CANCEL = "cancel"


class ResultCorrelator:
    """
    Waits for the extraction result of one worker.

    Two channels race to deliver the result: a push notification from the
    worker's collaborator, and an active pull that polls the load status,
    waits for client-side rendering to settle, then requests an extraction.
    A deadline runs alongside both. The first channel to settle wins; any
    later attempt is a no-op. Settling always releases the worker before
    ``run()`` returns.
    """

    def __init__(
        self,
        handle: WorkerHandle,
        manager: WorkerManager,
        context: OrchestratorContext,
        settings: CorrelatorSettings | None = None,
    ) -> None:
        """
        Initialize the correlator.

        Args:
            handle: The worker to correlate results for.
            manager: Manager used to talk to and release the worker.
            context: Engine state holding the pending resolvers.
            settings: Timing policy (defaults to CorrelatorSettings()).
        """
        self._handle = handle
        self._manager = manager
        self._context = context
        self._settings = settings or CorrelatorSettings()
        self._state = CorrelatorState.DISPATCHED
        self._outcome: JobResult | None = None
        self._channel: Channel | None = None
        self._settled = asyncio.Event()

    @property
    def state(self) -> CorrelatorState:
        """Current state."""
        return self._state

    @property
    def resolved_by(self) -> Channel | None:
        """Channel that settled the correlator, if any."""
        return self._channel

    @property
    def is_resolved(self) -> bool:
        """True once a channel has claimed the resolution."""
        return self._outcome is not None

    @property
    def outcome(self) -> JobResult | None:
        """Settled outcome, if any."""
        return self._outcome

    def _transition(self, state: CorrelatorState) -> None:
        if self._outcome is None:
            self._state = state

    async def run(self) -> JobResult:
        """
        Race the push and pull channels against the deadline.

        Returns:
            Success with the items, or Failure with the job error.
        """
        handle_id = self._handle.handle_id
        self._context.register_resolver(handle_id, self.on_push)
        pull = asyncio.create_task(self._pull(), name=f"pull-{handle_id}")

        try:
            try:
                await asyncio.wait_for(self._settled.wait(), timeout=self._settings.timeout)
            except TimeoutError:
                logger.info(
                    "Job timed out",
                    site=self._handle.site,
                    handle_id=handle_id,
                    timeout=self._settings.timeout,
                    state=self._state.value,
                )
                await self._settle(
                    Failure(
                        JobTimeoutError(
                            f"No result after {self._settings.timeout:g}s",
                            site=self._handle.site,
                        )
                    ),
                    Channel.TIMEOUT,
                    CorrelatorState.TIMED_OUT,
                )
            # Another channel may have claimed the result and still be releasing
            await self._settled.wait()
        finally:
            pull.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await pull
            if self._outcome is None:
                await asyncio.shield(
                    self._settle(
                        Failure(JobTimeoutError("Job cancelled", site=self._handle.site)),
                        Channel.CANCEL,
                        CorrelatorState.FAILED,
                    )
                )

        outcome = self._outcome
        if outcome is None:
            msg = f"Correlator for {handle_id} finished without an outcome"
            raise RuntimeError(msg)
        return outcome

    async def on_push(self, message: Mapping[str, Any]) -> bool:
        """
        Apply a result pushed by the worker's collaborator.

        Returns:
            True if the push settled the job, False if it was ignored.
        """
        try:
            items = parse_results(message.get("results"), self._handle.site)
        except ExtractionError as e:
            logger.warning(
                "Malformed push ignored",
                site=self._handle.site,
                handle_id=self._handle.handle_id,
                details=e.details,
            )
            return False
        return await self._settle(Success(items), Channel.PUSH, CorrelatorState.RESOLVED)

    async def _settle(
        self,
        outcome: JobResult,
        channel: Channel,
        state: CorrelatorState,
    ) -> bool:
        # The claim happens before the first await: the first caller wins
        if self._outcome is not None:
            logger.debug(
                "Duplicate resolution ignored",
                handle_id=self._handle.handle_id,
                channel=channel.value,
                resolved_by=self._channel.value if self._channel else None,
            )
            return False

        self._outcome = outcome
        self._channel = channel
        self._state = state
        self._context.unregister_resolver(self._handle.handle_id)
        try:
            await self._manager.release(self._handle)
        finally:
            self._settled.set()

        logger.debug(
            "Job settled",
            site=self._handle.site,
            handle_id=self._handle.handle_id,
            channel=channel.value,
            state=state.value,
            count=len(outcome.unwrap_or([])),
        )
        return True

    async def _pull(self) -> None:
        try:
            await asyncio.sleep(self._settings.initial_delay)
            self._transition(CorrelatorState.AWAITING_LOAD)

            # A page that never loads leaves the push channel and the deadline in charge
            if not await self._await_load():
                return

            # Client-side rendering keeps filling the page after load
            await asyncio.sleep(self._settings.settle_delay)
            await self._extract_with_retries()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                "Pull channel crashed",
                site=self._handle.site,
                handle_id=self._handle.handle_id,
                error=str(e),
            )
            await self._settle(
                Failure(ExtractionError("Pull channel failed", site=self._handle.site, details=str(e))),
                Channel.PULL,
                CorrelatorState.FAILED,
            )

    async def _await_load(self) -> bool:
        platform = self._manager.platform
        for attempt in range(1, self._settings.max_status_attempts + 1):
            if self.is_resolved:
                return False
            try:
                status = await platform.load_status(self._handle.handle_id)
            except Exception as e:
                logger.debug(
                    "Load status probe failed",
                    handle_id=self._handle.handle_id,
                    attempt=attempt,
                    error=str(e),
                )
            else:
                if status is LoadStatus.COMPLETE:
                    return True
            await asyncio.sleep(self._settings.status_poll_interval)
        logger.info(
            "Load status attempts exhausted",
            site=self._handle.site,
            handle_id=self._handle.handle_id,
            attempts=self._settings.max_status_attempts,
        )
        return False

    async def _extract_with_retries(self) -> None:
        platform = self._manager.platform
        max_attempts = self._settings.max_extract_attempts
        last_error: ExtractionError | None = None

        for attempt in range(1, max_attempts + 1):
            if self.is_resolved:
                return
            self._transition(CorrelatorState.PARSE_ATTEMPTED)
            try:
                reply = await platform.send(self._handle.handle_id, EXTRACT_REQUEST)
                items = parse_extract_reply(reply, self._handle.site)
            except ExtractionError as e:
                last_error = e
            except Exception as e:
                last_error = ExtractionError(
                    "Extraction request failed", site=self._handle.site, details=str(e)
                )
            else:
                await self._settle(Success(items), Channel.PULL, CorrelatorState.RESOLVED)
                return

            logger.debug(
                "Extraction attempt failed",
                site=self._handle.site,
                handle_id=self._handle.handle_id,
                attempt=attempt,
                error=last_error.details or last_error.message,
            )
            if attempt < max_attempts:
                self._transition(CorrelatorState.RETRYING)
                await asyncio.sleep(self._settings.extract_retry_interval)

        await self._settle(
            Failure(
                ExtractionError(
                    f"Extraction failed after {max_attempts} attempts",
                    site=self._handle.site,
                    details=last_error.details if last_error else None,
                )
            ),
            Channel.PULL,
            CorrelatorState.FAILED,
        )
