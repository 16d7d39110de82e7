"""Engine-wide mutable state: the worker registry and pending resolvers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterator, Mapping

    from services.workers.base import WorkerHandle

type Resolver = Callable[[Mapping[str, Any]], Awaitable[bool]]


class ProcessRegistry:
    """
    Set of every live worker handle, keyed by handle id.

    Each handle has exactly one owner; registering an id twice is an error.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._handles: dict[str, WorkerHandle] = {}

    def add(self, handle: WorkerHandle) -> None:
        """
        Register a live handle.

        Raises:
            ValueError: If the handle id is already registered.
        """
        if handle.handle_id in self._handles:
            msg = f"Worker handle already registered: {handle.handle_id}"
            raise ValueError(msg)
        self._handles[handle.handle_id] = handle

    def discard(self, handle_id: str) -> WorkerHandle | None:
        """Remove a handle; return it, or None if it was not registered."""
        return self._handles.pop(handle_id, None)

    def get(self, handle_id: str) -> WorkerHandle | None:
        """Return the handle registered under ``handle_id``."""
        return self._handles.get(handle_id)

    def snapshot(self) -> list[WorkerHandle]:
        """Return a copy of the live handles, safe to iterate while mutating."""
        return list(self._handles.values())

    def __contains__(self, handle_id: object) -> bool:
        """Check if a handle id is registered."""
        return handle_id in self._handles

    def __iter__(self) -> Iterator[WorkerHandle]:
        """Iterate over a snapshot of the live handles."""
        return iter(self.snapshot())

    def __len__(self) -> int:
        """Return the number of live handles."""
        return len(self._handles)


class OrchestratorContext:
    """
    State shared by the coordinator, worker manager and correlators.

    One instance is built per engine. Both collections are mutated from the
    event loop thread only, through the worker manager and the correlators.

    Attributes:
        registry: Live worker handles.
        pending: Push resolvers keyed by worker handle id.
    """

    def __init__(self) -> None:
        """Initialize empty state."""
        self.registry = ProcessRegistry()
        self.pending: dict[str, Resolver] = {}

    def register_resolver(self, handle_id: str, resolver: Resolver) -> None:
        """
        Register the push resolver of a worker.

        Raises:
            ValueError: If a resolver is already pending for the handle.
        """
        if handle_id in self.pending:
            msg = f"Resolver already pending for handle: {handle_id}"
            raise ValueError(msg)
        self.pending[handle_id] = resolver

    def unregister_resolver(self, handle_id: str) -> None:
        """Drop the push resolver of a worker, if any."""
        self.pending.pop(handle_id, None)

    @property
    def is_idle(self) -> bool:
        """True when no worker is live and no resolver is pending."""
        return not self.pending and len(self.registry) == 0
