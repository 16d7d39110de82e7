"""Base types for marketplace site definitions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from decimal import Decimal

    from services.search.types import SearchCriteria


class GeoMode(str, Enum):
    """Geographic scope of a site search job."""

    LOCAL = "local"
    NATIONAL = "national"


class UrlBuilder(Protocol):
    """Builds the search page URL a worker is pointed at."""

    def __call__(
        self,
        keyword: str,
        criteria: SearchCriteria,
        geo_mode: GeoMode,
    ) -> str:
        """
        Build a search URL.

        Args:
            keyword: The keyword variant to search.
            criteria: Structured criteria of the request.
            geo_mode: Local or national scope of the job.

        Returns:
            Absolute URL of the marketplace search page.
        """
        ...


@dataclass(frozen=True, slots=True)
class SiteDefinition:
    """
    A marketplace the engine can drive workers on.

    Attributes:
        code: Unique site code (e.g. 'leboncoin').
        name: Display name.
        build_url: Search URL builder.
        supports_geo: Whether the site accepts a local geo filter.
        supports_variants: Whether every keyword variant gets its own job;
            otherwise only the first variant is searched.
    """

    code: str
    name: str
    build_url: UrlBuilder
    supports_geo: bool = False
    supports_variants: bool = True

    def __post_init__(self) -> None:
        """Validate the definition."""
        if not self.code or self.code != self.code.lower():
            msg = "code must be a non-empty lower-case string"
            raise ValueError(msg)

    @property
    def results_message_type(self) -> str:
        """Type of the push notification sent by this site's collaborator."""
        return f"{self.code.upper()}_RESULTS"


def format_price(value: Decimal) -> str:
    """Render a price filter without exponent or trailing zeros."""
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
