"""Search orchestration service package."""

from services.search.aggregator import Aggregator
from services.search.errors import (
    CorrelationError,
    ErrorCode,
    ExtractionError,
    JobTimeoutError,
    ResourceCreationError,
    SearchCoordinatorError,
    SearchEngineError,
)
from services.search.planner import VariantPlanner
from services.search.types import (
    AggregatedResponse,
    JobOutcome,
    JobSpec,
    ResultItem,
    SearchCriteria,
    SearchRequest,
    UserLocation,
)

__all__ = [
    "AggregatedResponse",
    "Aggregator",
    "CorrelationError",
    "ErrorCode",
    "ExtractionError",
    "JobOutcome",
    "JobSpec",
    "JobTimeoutError",
    "ResourceCreationError",
    "ResultItem",
    "SearchCoordinatorError",
    "SearchCriteria",
    "SearchEngineError",
    "SearchRequest",
    "UserLocation",
    "VariantPlanner",
]
