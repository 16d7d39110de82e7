"""Marketplace site catalog package."""

from services.marketplaces.base import GeoMode, SiteDefinition, UrlBuilder
from services.marketplaces.factory import SiteNotFoundError, SiteRegistry
from services.marketplaces.sites import (
    DEFAULT_SITES,
    LOCAL_RADIUS_METERS,
    REFERENCE_SITE_CODE,
)

__all__ = [
    "DEFAULT_SITES",
    "LOCAL_RADIUS_METERS",
    "REFERENCE_SITE_CODE",
    "GeoMode",
    "SiteDefinition",
    "SiteNotFoundError",
    "SiteRegistry",
    "UrlBuilder",
]
