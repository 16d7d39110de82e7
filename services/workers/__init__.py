"""Ephemeral rendering workers: lifecycle, registry and result correlation."""

from services.workers.base import LoadStatus, PushHandler, WorkerHandle, WorkerPlatform
from services.workers.context import OrchestratorContext, ProcessRegistry
from services.workers.correlator import Channel, CorrelatorState, ResultCorrelator
from services.workers.manager import WorkerManager

__all__ = [
    "Channel",
    "CorrelatorState",
    "LoadStatus",
    "OrchestratorContext",
    "ProcessRegistry",
    "PushHandler",
    "ResultCorrelator",
    "WorkerHandle",
    "WorkerManager",
    "WorkerPlatform",
]
