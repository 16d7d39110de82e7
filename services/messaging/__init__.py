"""Messaging boundary of the search engine."""

from services.messaging.router import MessageRouter, error_response

__all__ = ["MessageRouter", "error_response"]
