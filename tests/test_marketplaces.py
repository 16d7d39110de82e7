"""Tests for site definitions, URL builders and the site registry."""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import parse_qs, urlsplit

import pytest

from core.result import Failure, Success
from services.marketplaces import (
    DEFAULT_SITES,
    REFERENCE_SITE_CODE,
    GeoMode,
    SiteDefinition,
    SiteNotFoundError,
    SiteRegistry,
)
from services.marketplaces.base import format_price
from services.marketplaces.sites import (
    build_amazon_url,
    build_backmarket_url,
    build_ebay_url,
    build_leboncoin_url,
    build_vinted_url,
)
from services.search.types import SearchCriteria, UserLocation


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(url).query)


class TestFormatPrice:
    """Tests for format_price."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("20", "20"), ("20.50", "20.5"), ("1E+2", "100"), ("0.00", "0")],
    )
    def test_format(self, value: str, expected: str) -> None:
        """Prices are rendered without exponent or trailing zeros."""
        assert format_price(Decimal(value)) == expected


class TestSiteDefinition:
    """Tests for SiteDefinition."""

    def test_results_message_type(self) -> None:
        """Push type is the upper-cased code with a _RESULTS suffix."""
        site = SiteDefinition(code="leboncoin", name="LeBonCoin", build_url=build_leboncoin_url)

        assert site.results_message_type == "LEBONCOIN_RESULTS"

    @pytest.mark.parametrize("code", ["", "Vinted"])
    def test_code_must_be_lower_case(self, code: str) -> None:
        """Codes are non-empty and lower-case."""
        with pytest.raises(ValueError, match="code"):
            SiteDefinition(code=code, name="X", build_url=build_vinted_url)


class TestLeboncoinUrl:
    """Tests for the LeBonCoin URL builder."""

    @pytest.fixture()
    def criteria(self) -> SearchCriteria:
        """Criteria with every LeBonCoin filter set."""
        return SearchCriteria(
            price_min=Decimal("20"),
            price_max=Decimal("150"),
            shippable=True,
            owner_type="private",
            user_location=UserLocation(45.764043, 4.835659, "Lyon", "69001"),
        )

    def test_national(self, criteria: SearchCriteria) -> None:
        """National jobs honor the shipping filter and carry no location."""
        params = _query(build_leboncoin_url("perceuse", criteria, GeoMode.NATIONAL))

        assert params["text"] == ["perceuse"]
        assert params["price_min"] == ["20"]
        assert params["price_max"] == ["150"]
        assert params["shippable"] == ["1"]
        assert params["owner_type"] == ["private"]
        assert "locations" not in params

    def test_local(self, criteria: SearchCriteria) -> None:
        """Local jobs add a 30 km location and drop the shipping filter."""
        params = _query(build_leboncoin_url("perceuse", criteria, GeoMode.LOCAL))

        assert "shippable" not in params
        assert params["locations"] == ["Lyon_69001__45.76404_4.83566_5000_30000"]

    def test_owner_type_all_omitted(self) -> None:
        """The default owner type adds no filter."""
        params = _query(build_leboncoin_url("perceuse", SearchCriteria(), GeoMode.NATIONAL))

        assert params == {"text": ["perceuse"]}


class TestOtherSiteUrls:
    """Tests for the other URL builders."""

    def test_vinted(self) -> None:
        """Vinted sorts by relevance and maps the price range."""
        criteria = SearchCriteria(price_min=Decimal("5"), price_max=Decimal("40"))
        url = build_vinted_url("veste", criteria, GeoMode.NATIONAL)

        assert url.startswith("https://www.vinted.fr/catalog?")
        assert _query(url) == {
            "search_text": ["veste"],
            "price_from": ["5"],
            "price_to": ["40"],
            "order": ["relevance"],
        }

    def test_backmarket_prefers_catalog_keywords(self) -> None:
        """Back Market searches the catalog-tuned keywords when given."""
        criteria = SearchCriteria(catalog_keywords="iphone 13 128go")

        assert _query(build_backmarket_url("iphone", criteria, GeoMode.NATIONAL)) == {
            "q": ["iphone 13 128go"]
        }
        assert _query(build_backmarket_url("iphone", SearchCriteria(), GeoMode.NATIONAL)) == {
            "q": ["iphone"]
        }

    def test_amazon(self) -> None:
        """Amazon only takes the keyword."""
        url = build_amazon_url("perceuse", SearchCriteria(price_max=Decimal("10")), GeoMode.NATIONAL)

        assert url == "https://www.amazon.fr/s?k=perceuse"

    def test_ebay(self) -> None:
        """eBay maps the price range to _udlo/_udhi."""
        criteria = SearchCriteria(price_min=Decimal("10"), price_max=Decimal("99.90"))

        assert _query(build_ebay_url("drill", criteria, GeoMode.NATIONAL)) == {
            "_nkw": ["drill"],
            "_udlo": ["10"],
            "_udhi": ["99.9"],
        }


class TestSiteRegistry:
    """Tests for SiteRegistry."""

    def test_with_defaults(self) -> None:
        """Default registry holds every supported site, in order."""
        registry = SiteRegistry.with_defaults()

        assert registry.registered_codes == ["leboncoin", "vinted", "backmarket", "amazon", "ebay"]
        assert len(registry) == len(DEFAULT_SITES)
        assert registry.is_registered(REFERENCE_SITE_CODE)

    def test_get_site(self) -> None:
        """Lookup returns a Result."""
        registry = SiteRegistry.with_defaults()

        found = registry.get_site("vinted")
        missing = registry.get_site("etsy")

        assert isinstance(found, Success)
        assert found.value.name == "Vinted"
        assert isinstance(missing, Failure)
        assert isinstance(missing.error, SiteNotFoundError)
        assert missing.error.site_code == "etsy"

    def test_register_and_unregister(self) -> None:
        """Sites can be added and removed."""
        registry = SiteRegistry()
        site = SiteDefinition(code="etsy", name="Etsy", build_url=build_amazon_url)

        registry.register(site)

        assert registry.sites == [site]
        assert registry.unregister("etsy") is True
        assert registry.unregister("etsy") is False
        assert len(registry) == 0

    def test_by_message_type(self) -> None:
        """Push types map back to their site."""
        registry = SiteRegistry.with_defaults()

        site = registry.by_message_type("EBAY_RESULTS")

        assert site is not None
        assert site.code == "ebay"
        assert registry.by_message_type("ETSY_RESULTS") is None

    def test_capabilities(self) -> None:
        """Only LeBonCoin filters by location; catalog sites take one query."""
        registry = SiteRegistry.with_defaults()
        capabilities = {s.code: (s.supports_geo, s.supports_variants) for s in registry.sites}

        assert capabilities == {
            "leboncoin": (True, True),
            "vinted": (False, True),
            "backmarket": (False, False),
            "amazon": (False, False),
            "ebay": (False, True),
        }
