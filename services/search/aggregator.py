"""Merging, deduplication and ranking of job results."""

from __future__ import annotations

from typing import TYPE_CHECKING

from services.marketplaces.base import GeoMode
from services.marketplaces.sites import REFERENCE_SITE_CODE
from services.search.types import AggregatedResponse

if TYPE_CHECKING:
    from collections.abc import Iterable

    from services.search.types import JobOutcome, ResultItem

REFERENCE_PRICE_LIMIT = 5


def dedupe(items: Iterable[ResultItem]) -> list[ResultItem]:
    """Keep the first item of every canonical URL, in order."""
    seen: set[str] = set()
    unique: list[ResultItem] = []
    for item in items:
        key = item.canonical_url
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def merge_geo(local: list[ResultItem], national: list[ResultItem]) -> list[ResultItem]:
    """
    Merge the local and national results of one keyword variant.

    Local results are all kept and flagged local. A national result is
    dropped when its canonical URL is already among the local ones.
    """
    flagged = [item.as_local() for item in local]
    local_urls = {item.canonical_url for item in flagged}
    return flagged + [item for item in national if item.canonical_url not in local_urls]


class Aggregator:
    """
    Builds the aggregated response of a search.

    Results are merged per variant (local over national), deduplicated across
    variants, concatenated and deduplicated across sites, then ranked by
    descending score. Ties keep site, then variant order.
    """

    def __init__(
        self,
        reference_site: str = REFERENCE_SITE_CODE,
        reference_limit: int = REFERENCE_PRICE_LIMIT,
    ) -> None:
        """
        Initialize the aggregator.

        Args:
            reference_site: Site whose results feed the price anchor.
            reference_limit: Size of the price anchor subset.
        """
        self._reference_site = reference_site
        self._reference_limit = reference_limit

    def aggregate(self, outcomes: list[JobOutcome]) -> AggregatedResponse:
        """
        Aggregate the outcomes of every job of a search.

        Args:
            outcomes: Job outcomes in plan order.

        Returns:
            The ranked, deduplicated response.
        """
        by_site: dict[str, list[JobOutcome]] = {}
        for outcome in outcomes:
            by_site.setdefault(outcome.spec.site, []).append(outcome)

        merged = {site: self.merge_site(site_outcomes) for site, site_outcomes in by_site.items()}

        combined = dedupe(item for items in merged.values() for item in items)
        # sorted() is stable, also with reverse=True
        ranked = sorted(combined, key=lambda item: item.score, reverse=True)

        return AggregatedResponse(
            results=ranked,
            completed_sites=[site for site, items in merged.items() if len(items) > 0],
            reference_price_items=self.reference_prices(merged.get(self._reference_site, [])),
            failed_jobs=[o.spec.job_id for o in outcomes if not o.is_success],
        )

    def merge_site(self, outcomes: list[JobOutcome]) -> list[ResultItem]:
        """Merge the outcomes of one site across geo modes and variants."""
        variants: dict[int, dict[GeoMode, list[ResultItem]]] = {}
        for outcome in outcomes:
            modes = variants.setdefault(outcome.spec.variant_index, {})
            modes.setdefault(outcome.spec.geo_mode, []).extend(outcome.items)

        per_variant = [
            merge_geo(modes.get(GeoMode.LOCAL, []), modes.get(GeoMode.NATIONAL, []))
            for _, modes in sorted(variants.items())
        ]
        return dedupe(item for items in per_variant for item in items)

    def reference_prices(self, items: list[ResultItem]) -> list[ResultItem]:
        """Cheapest strictly positive prices of the reference site, ascending."""
        priced = sorted((item for item in items if item.price > 0), key=lambda item: item.price)
        return priced[: self._reference_limit]
