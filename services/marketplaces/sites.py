"""Search URL builders for the supported marketplaces."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urlencode

from services.marketplaces.base import GeoMode, SiteDefinition, format_price

if TYPE_CHECKING:
    from services.search.types import SearchCriteria

# New-price catalog searched on every request for the price anchor
REFERENCE_SITE_CODE = "amazon"

# Local searches cover a 30 km radius around the user
LOCAL_RADIUS_METERS = 30_000


def build_leboncoin_url(keyword: str, criteria: SearchCriteria, geo_mode: GeoMode) -> str:
    """
    Build a LeBonCoin search URL.

    Local jobs add the ``locations`` filter and never the shipping-only
    filter; national jobs honor ``shippable``.
    """
    params: dict[str, str] = {"text": keyword}
    if criteria.price_min:
        params["price_min"] = format_price(criteria.price_min)
    if criteria.price_max:
        params["price_max"] = format_price(criteria.price_max)
    if criteria.shippable and geo_mode is GeoMode.NATIONAL:
        params["shippable"] = "1"
    if criteria.owner_type != "all":
        params["owner_type"] = criteria.owner_type

    location = criteria.user_location
    if geo_mode is GeoMode.LOCAL and location is not None:
        city = location.city_name or "Localisation"
        place = f"{city}_{location.postal_code}" if location.postal_code else city
        params["locations"] = (
            f"{place}__{location.lat:.5f}_{location.lng:.5f}_5000_{LOCAL_RADIUS_METERS}"
        )

    return f"https://www.leboncoin.fr/recherche?{urlencode(params)}"


def build_vinted_url(keyword: str, criteria: SearchCriteria, geo_mode: GeoMode) -> str:
    """Build a Vinted catalog search URL sorted by relevance."""
    params: dict[str, str] = {"search_text": keyword}
    if criteria.price_min:
        params["price_from"] = format_price(criteria.price_min)
    if criteria.price_max:
        params["price_to"] = format_price(criteria.price_max)
    params["order"] = "relevance"
    return f"https://www.vinted.fr/catalog?{urlencode(params)}"


def build_backmarket_url(keyword: str, criteria: SearchCriteria, geo_mode: GeoMode) -> str:
    """Build a Back Market search URL, preferring catalog-tuned keywords."""
    params = {"q": criteria.catalog_keywords or keyword}
    return f"https://www.backmarket.fr/fr-fr/search?{urlencode(params)}"


def build_amazon_url(keyword: str, criteria: SearchCriteria, geo_mode: GeoMode) -> str:
    """Build an Amazon.fr search URL."""
    return f"https://www.amazon.fr/s?{urlencode({'k': keyword})}"


def build_ebay_url(keyword: str, criteria: SearchCriteria, geo_mode: GeoMode) -> str:
    """Build an eBay.fr search URL."""
    params: dict[str, str] = {"_nkw": keyword}
    if criteria.price_min:
        params["_udlo"] = format_price(criteria.price_min)
    if criteria.price_max:
        params["_udhi"] = format_price(criteria.price_max)
    return f"https://www.ebay.fr/sch/i.html?{urlencode(params)}"


LEBONCOIN = SiteDefinition(
    code="leboncoin",
    name="LeBonCoin",
    build_url=build_leboncoin_url,
    supports_geo=True,
)

VINTED = SiteDefinition(code="vinted", name="Vinted", build_url=build_vinted_url)

BACKMARKET = SiteDefinition(
    code="backmarket",
    name="Back Market",
    build_url=build_backmarket_url,
    supports_variants=False,
)

AMAZON = SiteDefinition(
    code=REFERENCE_SITE_CODE,
    name="Amazon",
    build_url=build_amazon_url,
    supports_variants=False,
)

EBAY = SiteDefinition(code="ebay", name="eBay", build_url=build_ebay_url)

DEFAULT_SITES: tuple[SiteDefinition, ...] = (LEBONCOIN, VINTED, BACKMARKET, AMAZON, EBAY)
