"""Messaging boundary: dispatches calling-layer and collaborator messages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from core.logging import get_logger
from services.engine import ENGINE_VERSION
from services.search.types import SearchRequest

if TYPE_CHECKING:
    from collections.abc import Mapping

    from services.engine import SearchEngine

logger = get_logger(__name__)

RESULTS_SUFFIX = "_RESULTS"


def error_response(message: str) -> dict[str, Any]:
    """Build a ``{success: false, error}`` response."""
    return {"success": False, "error": message}


class MessageRouter:
    """
    Dispatches messages by their ``type`` field.

    - ``PING`` answers with the engine version.
    - ``SEARCH`` runs a search and answers with the aggregated response.
    - ``<SITE>_RESULTS`` is a push from the collaborator of the sender worker.

    Every message gets a response; nothing raises out of ``handle``.
    """

    def __init__(self, engine: SearchEngine) -> None:
        """
        Initialize the router.

        Args:
            engine: Engine serving the messages.
        """
        self._engine = engine

    async def handle(
        self,
        message: Mapping[str, Any],
        sender: str | None = None,
    ) -> dict[str, Any]:
        """
        Handle one message.

        Args:
            message: The message, with a ``type`` field.
            sender: Handle id of the sending worker, for push messages.

        Returns:
            The response to send back.
        """
        message_type = message.get("type") if isinstance(message, dict) else None

        if message_type == "PING":
            return {"success": True, "version": ENGINE_VERSION}
        if message_type == "SEARCH":
            return await self._search(message)
        if isinstance(message_type, str) and message_type.endswith(RESULTS_SUFFIX):
            return await self._push(message, sender)

        logger.debug("Unknown message type", message_type=message_type)
        return error_response("Unknown message type")

    async def _search(self, message: Mapping[str, Any]) -> dict[str, Any]:
        try:
            request = SearchRequest.from_message(message)
        except (TypeError, ValueError) as e:
            logger.info("Search request rejected", error=str(e))
            return error_response(f"Invalid search request: {e}")

        result = await self._engine.search(request)
        if result.is_failure():
            return error_response(result.error.message)
        return result.unwrap().to_dict()

    async def _push(self, message: Mapping[str, Any], sender: str | None) -> dict[str, Any]:
        if sender is None:
            logger.warning("Push without sender ignored", message_type=message.get("type"))
            return {"success": True, "accepted": False}
        accepted = await self._engine.deliver_push(sender, message)
        return {"success": True, "accepted": accepted}
