"""Expansion of a user query into concrete site search jobs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.logging import get_logger
from services.marketplaces.base import GeoMode
from services.marketplaces.sites import REFERENCE_SITE_CODE
from services.search.types import JobSpec

if TYPE_CHECKING:
    from services.marketplaces.base import SiteDefinition
    from services.marketplaces.factory import SiteRegistry
    from services.search.types import SearchRequest

logger = get_logger(__name__)

# Each variant opens its own workers; more would mean too many concurrent pages
MAX_VARIANTS = 2


def split_variants(raw_keywords: str, limit: int = MAX_VARIANTS) -> list[str]:
    """
    Split comma-separated keywords into at most ``limit`` variants.

    Example:
        >>> split_variants("iPhone 13, iPhone 14, iPhone 15")
        ['iPhone 13', 'iPhone 14']
    """
    if "," not in raw_keywords:
        stripped = raw_keywords.strip()
        return [stripped] if stripped else []
    variants = [v.strip() for v in raw_keywords.split(",")]
    return [v for v in variants if v][:limit]


class VariantPlanner:
    """
    Plans the jobs of one search.

    Every registered site appears in the plan, in registry order. Sites the
    request did not ask for get a single skipped job that resolves to no
    items. The reference site is always searched.
    """

    def __init__(self, registry: SiteRegistry) -> None:
        """
        Initialize the planner.

        Args:
            registry: Sites to plan jobs for.
        """
        self._registry = registry

    def variants_for(self, request: SearchRequest) -> list[str]:
        """Keyword variants of a request; falls back to the raw query."""
        variants = split_variants(request.raw_keywords)
        return variants or [request.query.strip()]

    def requested_sites(self, request: SearchRequest) -> set[str]:
        """Site codes to search: the requested ones plus the reference site."""
        sites = request.criteria.sites
        if sites is None:
            requested = set(self._registry.registered_codes)
        else:
            requested = {code for code in sites if self._registry.is_registered(code)}
            unknown = sorted(set(sites) - requested)
            if unknown:
                logger.warning("Unknown sites ignored", sites=unknown)
        requested.add(REFERENCE_SITE_CODE)
        return requested

    def plan(self, request: SearchRequest) -> list[JobSpec]:
        """
        Expand a request into job specs.

        Returns:
            Specs ordered by site, then variant, then local before national.
        """
        variants = self.variants_for(request)
        requested = self.requested_sites(request)
        specs: list[JobSpec] = []

        for site in self._registry.sites:
            site_variants = variants if site.supports_variants else variants[:1]
            if site.code not in requested:
                specs.append(JobSpec(site=site.code, variant=site_variants[0], skipped=True))
                continue
            specs.extend(self._site_jobs(site, site_variants, request))

        logger.debug(
            "Search planned",
            variants=variants,
            jobs=sum(1 for s in specs if not s.skipped),
            skipped=[s.site for s in specs if s.skipped],
        )
        return specs

    def _site_jobs(
        self,
        site: SiteDefinition,
        variants: list[str],
        request: SearchRequest,
    ) -> list[JobSpec]:
        criteria = request.criteria
        if site.supports_geo and criteria.user_location is not None:
            modes = (GeoMode.LOCAL, GeoMode.NATIONAL)
        else:
            modes = (GeoMode.NATIONAL,)

        return [
            JobSpec(
                site=site.code,
                variant=variant,
                variant_index=index,
                geo_mode=mode,
                url=site.build_url(variant, criteria, mode),
            )
            for index, variant in enumerate(variants)
            for mode in modes
        ]
