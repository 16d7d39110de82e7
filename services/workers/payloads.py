"""Messages exchanged with the per-site extraction collaborators."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from core.logging import get_logger
from services.search.errors import ExtractionError
from services.search.types import ResultItem

logger = get_logger(__name__)

EXTRACT_REQUEST: Mapping[str, str] = {"type": "EXTRACT"}


def parse_results(raw: Any, site: str) -> list[ResultItem]:
    """
    Convert the ``results`` array of a collaborator message into items.

    Entries that are not objects or carry no URL are dropped; all other
    values are passed through unchanged.

    Args:
        raw: The ``results`` value; None counts as an empty list.
        site: Site code stamped on every item.

    Returns:
        Parsed items, in collaborator order.

    Raises:
        ExtractionError: If ``raw`` is not a list.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ExtractionError(
            "Malformed results payload",
            site=site,
            details=f"expected a list, got {type(raw).__name__}",
        )

    items: list[ResultItem] = []
    dropped = 0
    for entry in raw:
        if not isinstance(entry, Mapping):
            dropped += 1
            continue
        try:
            items.append(ResultItem.from_payload(entry, site))
        except ValueError:
            dropped += 1

    if dropped:
        logger.debug("Result entries dropped", site=site, dropped=dropped, kept=len(items))
    return items


def parse_extract_reply(reply: Any, site: str) -> list[ResultItem]:
    """
    Parse the direct reply to an EXTRACT request.

    Raises:
        ExtractionError: If the reply reports a failure or is malformed.
    """
    if not isinstance(reply, Mapping):
        raise ExtractionError("Malformed extraction reply", site=site)
    if not reply.get("success"):
        raise ExtractionError(
            "Extraction failed",
            site=site,
            details=str(reply.get("error") or "no error message"),
        )
    return parse_results(reply.get("results"), site)
