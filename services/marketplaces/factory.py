"""Registry of the marketplace sites the engine can search."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.result import Failure, Success
from services.marketplaces.sites import DEFAULT_SITES

if TYPE_CHECKING:
    from collections.abc import Iterable

    from core.result import Result
    from services.marketplaces.base import SiteDefinition


class SiteNotFoundError(Exception):
    """Raised when a site code is not registered."""

    def __init__(self, site_code: str) -> None:
        """Initialize with the site code."""
        self.site_code = site_code
        super().__init__(f"No site registered with code: {site_code}")


class SiteRegistry:
    """
    Registry of site definitions keyed by site code.

    Registration order is kept: it is the default order in which sites are
    planned, merged and reported.

    Example:
        >>> registry = SiteRegistry.with_defaults()
        >>> registry.get_site("vinted").unwrap().name
        'Vinted'
    """

    def __init__(self, sites: Iterable[SiteDefinition] = ()) -> None:
        """
        Initialize the registry.

        Args:
            sites: Definitions to register, in order.
        """
        self._sites: dict[str, SiteDefinition] = {}
        for site in sites:
            self.register(site)

    @classmethod
    def with_defaults(cls) -> SiteRegistry:
        """Return a registry holding every supported marketplace."""
        return cls(DEFAULT_SITES)

    def register(self, site: SiteDefinition) -> None:
        """
        Register a site definition, replacing any with the same code.

        Args:
            site: The definition to register.
        """
        self._sites[site.code] = site

    def unregister(self, site_code: str) -> bool:
        """
        Unregister a site.

        Returns:
            True if a site was removed, False if it was unknown.
        """
        return self._sites.pop(site_code, None) is not None

    def get_site(self, site_code: str) -> Result[SiteDefinition, SiteNotFoundError]:
        """
        Look up a site by code.

        Returns:
            Result containing the definition or SiteNotFoundError.
        """
        site = self._sites.get(site_code)
        if site is None:
            return Failure(SiteNotFoundError(site_code))
        return Success(site)

    def by_message_type(self, message_type: str) -> SiteDefinition | None:
        """Return the site whose collaborator pushes ``message_type``."""
        for site in self._sites.values():
            if site.results_message_type == message_type:
                return site
        return None

    def is_registered(self, site_code: str) -> bool:
        """Check if a site code is registered."""
        return site_code in self._sites

    @property
    def sites(self) -> list[SiteDefinition]:
        """Return all definitions in registration order."""
        return list(self._sites.values())

    @property
    def registered_codes(self) -> list[str]:
        """Return all site codes in registration order."""
        return list(self._sites.keys())

    def __len__(self) -> int:
        """Return the number of registered sites."""
        return len(self._sites)
