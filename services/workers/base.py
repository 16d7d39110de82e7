"""Base types and protocols for ephemeral rendering workers."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping

# Called by a platform when a worker's collaborator pushes a message unprompted
type PushHandler = Callable[[str, Mapping[str, Any]], Awaitable[bool]]


class LoadStatus(str, Enum):
    """Load status of a worker's page."""

    LOADING = "loading"
    COMPLETE = "complete"


@dataclass(frozen=True, slots=True)
class WorkerHandle:
    """
    Opaque reference to a live worker resource.

    Attributes:
        handle_id: Platform-issued identifier of the resource.
        owner: Job id of the single job that owns the worker.
        site: Site code the worker was opened for.
        url: Target URL the worker was navigated to.
        created_at: Creation timestamp (UTC).
    """

    handle_id: str
    owner: str
    site: str
    url: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def age_seconds(self) -> float:
        """Seconds elapsed since the worker was created."""
        return (datetime.now(UTC) - self.created_at).total_seconds()


@runtime_checkable
class WorkerPlatform(Protocol):
    """
    Protocol for the platform that hosts rendering workers.

    A worker is a background rendering context pointed at one URL, with the
    site's extraction collaborator loaded into it.
    """

    async def create(self, url: str) -> str:
        """
        Create a background worker navigated to ``url``.

        Returns:
            Identifier of the new resource.

        Raises:
            ResourceCreationError: If the resource cannot be created.
        """
        ...

    async def exists(self, resource_id: str) -> bool:
        """Return True if the resource is still alive."""
        ...

    async def load_status(self, resource_id: str) -> LoadStatus:
        """Return the load status of the resource's page."""
        ...

    async def send(self, resource_id: str, message: Mapping[str, Any]) -> Any:
        """
        Send a request to the worker's extraction collaborator.

        Returns:
            The collaborator's reply.
        """
        ...

    async def destroy(self, resource_id: str) -> None:
        """Destroy the resource. Unknown or destroyed resources are ignored."""
        ...

    def set_push_handler(self, handler: PushHandler | None) -> None:
        """Install the callback receiving push notifications."""
        ...

    async def close(self) -> None:
        """Release every platform resource."""
        ...
