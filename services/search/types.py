"""Types for search orchestration."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TYPE_CHECKING, Any

from services.marketplaces.base import GeoMode
from services.search.urls import canonical_url

if TYPE_CHECKING:
    from collections.abc import Mapping

    from core.result import Result
    from services.search.errors import SearchEngineError

OWNER_TYPES = frozenset({"all", "private", "pro"})


class DeliveryMode(str, Enum):
    """How a listed item can be obtained."""

    HAND_DELIVERY = "hand_delivery"
    SHIPPING = "shipping"
    BOTH = "both"
    UNKNOWN = "unknown"

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> DeliveryMode:
        """Read ``deliveryMode``, falling back to the handDelivery/hasShipping flags."""
        raw = data.get("deliveryMode")
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                return cls.UNKNOWN

        hand = bool(data.get("handDelivery"))
        ship = bool(data.get("hasShipping"))
        if hand and ship:
            return cls.BOTH
        if hand:
            return cls.HAND_DELIVERY
        if ship:
            return cls.SHIPPING
        return cls.UNKNOWN


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool) or value == "":
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


@dataclass(frozen=True, slots=True)
class UserLocation:
    """
    User geolocation used for local searches.

    Attributes:
        lat: Latitude in degrees.
        lng: Longitude in degrees.
        city_name: Named-place label shown by geo-aware sites.
        postal_code: Postal code of the place (optional).
    """

    lat: float
    lng: float
    city_name: str | None = None
    postal_code: str | None = None

    def __post_init__(self) -> None:
        """Validate coordinates."""
        if not -90.0 <= self.lat <= 90.0:
            msg = "lat must be between -90 and 90"
            raise ValueError(msg)
        if not -180.0 <= self.lng <= 180.0:
            msg = "lng must be between -180 and 180"
            raise ValueError(msg)

    @classmethod
    def from_payload(
        cls,
        data: Mapping[str, Any] | None,
        city_name: str | None = None,
        postal_code: str | None = None,
    ) -> UserLocation | None:
        """
        Build a location from ``{lat, lng}``; None when either is missing.

        Raises:
            ValueError: If the payload is not an object or a coordinate is invalid.
        """
        if not data:
            return None
        if not isinstance(data, dict):
            msg = "userLocation must be an object"
            raise ValueError(msg)
        lat, lng = data.get("lat"), data.get("lng")
        if lat is None or lng is None:
            return None
        return cls(
            lat=float(lat),
            lng=float(lng),
            city_name=city_name or data.get("cityName"),
            postal_code=postal_code or data.get("postalCode"),
        )


@dataclass(frozen=True, slots=True)
class SearchCriteria:
    """
    Optional structured criteria attached to a query.

    Attributes:
        keywords: Optimized keywords; a comma separates keyword variants.
        catalog_keywords: Keywords tuned for catalog sites (``keywordsBM``).
        price_min: Minimum price filter.
        price_max: Maximum price filter.
        shippable: Only listings that can be shipped (national searches).
        owner_type: Seller type filter: all, private or pro.
        sites: Site codes to query; None means every known site.
        user_location: Enables local searches on geo-aware sites.
    """

    keywords: str | None = None
    catalog_keywords: str | None = None
    price_min: Decimal | None = None
    price_max: Decimal | None = None
    shippable: bool = False
    owner_type: str = "all"
    sites: tuple[str, ...] | None = None
    user_location: UserLocation | None = None

    def __post_init__(self) -> None:
        """Validate criteria."""
        if self.price_min is not None and self.price_min < 0:
            msg = "priceMin cannot be negative"
            raise ValueError(msg)
        if self.price_max is not None and self.price_max < 0:
            msg = "priceMax cannot be negative"
            raise ValueError(msg)
        if (
            self.price_min is not None
            and self.price_max is not None
            and self.price_min > self.price_max
        ):
            msg = "priceMin cannot be greater than priceMax"
            raise ValueError(msg)
        if self.owner_type not in OWNER_TYPES:
            msg = f"ownerType must be one of {sorted(OWNER_TYPES)}"
            raise ValueError(msg)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any] | None) -> SearchCriteria:
        """
        Parse the ``criteria`` object of a SEARCH message.

        Raises:
            ValueError: If a field has an invalid value.
        """
        if not data:
            return cls()

        sites = data.get("sites")
        if sites is not None:
            if isinstance(sites, str) or not all(isinstance(s, str) for s in sites):
                msg = "sites must be a list of site codes"
                raise ValueError(msg)
            sites = tuple(s.strip().lower() for s in sites if s.strip())

        return cls(
            keywords=data.get("keywords") or None,
            catalog_keywords=data.get("keywordsBM") or None,
            price_min=_to_decimal(data.get("priceMin")),
            price_max=_to_decimal(data.get("priceMax")),
            shippable=bool(data.get("shippable", False)),
            owner_type=data.get("ownerType") or "all",
            sites=sites,
            user_location=UserLocation.from_payload(
                data.get("userLocation"),
                city_name=data.get("userCityName"),
                postal_code=data.get("userPostalCode"),
            ),
        )


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """
    A user search. Immutable once dispatched.

    Attributes:
        query: The originating query string.
        criteria: Structured criteria (optional).
    """

    query: str
    criteria: SearchCriteria = field(default_factory=SearchCriteria)

    def __post_init__(self) -> None:
        """Validate the query."""
        if not self.query or not self.query.strip():
            msg = "query cannot be empty"
            raise ValueError(msg)

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> SearchRequest:
        """
        Parse a ``SEARCH`` message: ``{type, query, criteria?}``.

        Raises:
            ValueError: If the query is missing or a criterion is invalid.
        """
        query = message.get("query")
        if not isinstance(query, str):
            msg = "query must be a string"
            raise ValueError(msg)
        criteria = message.get("criteria")
        if criteria is not None and not isinstance(criteria, dict):
            msg = "criteria must be an object"
            raise ValueError(msg)
        return cls(query=query.strip(), criteria=SearchCriteria.from_payload(criteria))

    @property
    def raw_keywords(self) -> str:
        """Keywords to plan variants from: criteria keywords, else the query."""
        return self.criteria.keywords or self.query


@dataclass(frozen=True, slots=True)
class ResultItem:
    """
    A normalized listing extracted from a marketplace page.

    Attributes:
        id: Identifier assigned by the extraction collaborator.
        title: Listing title.
        price: Listing price (0 when the page showed none).
        currency: Currency code.
        site: Site code of the listing.
        url: Listing URL.
        image: Image URL (optional).
        location: Seller location label (optional).
        delivery_mode: How the item can be obtained.
        score: Relevance score; higher ranks first.
        flags: Warnings attached by the collaborator.
        is_local: Whether the listing came from a local (geo-scoped) search.
    """

    id: str
    title: str
    price: Decimal
    currency: str
    site: str
    url: str
    image: str | None = None
    location: str | None = None
    delivery_mode: DeliveryMode = DeliveryMode.UNKNOWN
    score: float = 0.0
    flags: tuple[str, ...] = ()
    is_local: bool = False

    @property
    def canonical_url(self) -> str:
        """Identity of the listing for deduplication."""
        return canonical_url(self.url)

    def as_local(self) -> ResultItem:
        """Return a copy flagged as a local result."""
        return self if self.is_local else replace(self, is_local=True)

    @classmethod
    def from_payload(cls, data: Mapping[str, Any], site: str) -> ResultItem:
        """
        Build an item from a collaborator payload entry.

        Values are passed through as-is; only the URL is required.

        Raises:
            ValueError: If the entry has no URL.
        """
        url = data.get("url")
        if not isinstance(url, str) or not url.strip():
            msg = "result item has no url"
            raise ValueError(msg)

        flags = data.get("flags", data.get("redFlags")) or ()
        try:
            score = float(data.get("score") or 0)
        except (TypeError, ValueError):
            score = 0.0
        if not math.isfinite(score):
            score = 0.0

        return cls(
            id=str(data.get("id") or url),
            title=str(data.get("title") or ""),
            price=_to_decimal(data.get("price")) or Decimal("0"),
            currency=str(data.get("currency") or "EUR"),
            site=site,
            url=url.strip(),
            image=data.get("image") or None,
            location=data.get("location") or None,
            delivery_mode=DeliveryMode.from_payload(data),
            score=score,
            flags=tuple(str(f) for f in flags),
            is_local=bool(data.get("isLocal", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the camelCase keys of the messaging boundary."""
        return {
            "id": self.id,
            "title": self.title,
            "price": float(self.price),
            "currency": self.currency,
            "site": self.site,
            "image": self.image,
            "url": self.url,
            "location": self.location,
            "deliveryMode": self.delivery_mode.value,
            "score": self.score,
            "flags": list(self.flags),
            "isLocal": self.is_local,
        }


@dataclass(frozen=True, slots=True)
class JobSpec:
    """
    Identity of a site search job.

    Attributes:
        site: Site code.
        variant: Keyword variant searched.
        variant_index: Position of the variant in the plan.
        geo_mode: Local or national scope.
        url: Search page URL the worker is pointed at.
        skipped: Pre-resolved to empty because the site was not requested.
    """

    site: str
    variant: str
    variant_index: int = 0
    geo_mode: GeoMode = GeoMode.NATIONAL
    url: str | None = None
    skipped: bool = False

    @property
    def job_id(self) -> str:
        """Readable identifier used in logs."""
        return f"{self.site}:{self.variant_index}:{self.geo_mode.value}"


@dataclass(slots=True)
class JobOutcome:
    """
    Terminal state of a site search job: results or an error, never both.

    Attributes:
        spec: The job that produced this outcome.
        result: Success with the items, or Failure with the job error.
    """

    spec: JobSpec
    result: Result[list[ResultItem], SearchEngineError]

    @property
    def is_success(self) -> bool:
        """Return True if the job resolved with results."""
        return self.result.is_success()

    @property
    def items(self) -> list[ResultItem]:
        """Items of the job; empty for a failed job."""
        return self.result.unwrap_or([])


@dataclass(slots=True)
class AggregatedResponse:
    """
    Merged results of every job of one search.

    Attributes:
        results: Deduplicated items ranked by descending score.
        completed_sites: Sites that produced at least one item.
        reference_price_items: Cheapest priced items of the reference site.
        failed_jobs: Jobs that ended in failure (not exposed to the caller).
    """

    results: list[ResultItem] = field(default_factory=list)
    completed_sites: list[str] = field(default_factory=list)
    reference_price_items: list[ResultItem] = field(default_factory=list)
    failed_jobs: list[str] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        """Number of ranked items."""
        return len(self.results)

    def to_dict(self) -> dict[str, Any]:
        """Serialize as a successful SEARCH response."""
        return {
            "success": True,
            "results": [item.to_dict() for item in self.results],
            "referencePriceItems": [item.to_dict() for item in self.reference_price_items],
            "completedSites": list(self.completed_sites),
        }
