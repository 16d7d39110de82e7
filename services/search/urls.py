"""Canonical listing URLs used as the identity of a result item."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    {
        "fbclid",
        "gclid",
        "msclkid",
        "dclid",
        "ref",
        "ref_",
        "referrer",
        "tag",
        "spm",
        "xtor",
        "from",
        "source",
        "campaign",
        "_trkparms",
        "_trksid",
        "hash",
        "sr",
        "qid",
        "crid",
        "sprefix",
        "keywords",
        "search_id",
        "referrer_page",
        "time",
    }
)

TRACKING_PREFIXES = ("utm_", "mc_", "pd_rd_", "pf_rd_", "_hs")


def _is_tracking(key: str) -> bool:
    lowered = key.lower()
    return lowered in TRACKING_PARAMS or lowered.startswith(TRACKING_PREFIXES)


def canonical_url(url: str) -> str:
    """
    Normalize a listing URL for deduplication.

    Scheme and host are lower-cased, the fragment is dropped, tracking query
    parameters are removed and the remaining ones are sorted. Amazon-style
    ``/ref=...`` path suffixes are cut as well.

    Args:
        url: Raw listing URL as extracted from the page.

    Returns:
        The canonical form; the stripped input if it is not an absolute URL.

    Example:
        >>> canonical_url("https://WWW.Site.fr/ad/42/?utm_source=x&color=red#top")
        'https://www.site.fr/ad/42?color=red'
    """
    raw = url.strip()
    parts = urlsplit(raw)
    if not parts.scheme or not parts.netloc:
        return raw

    segments = [s for s in parts.path.split("/") if s and not s.startswith("ref=")]
    path = "/" + "/".join(segments) if segments else ""

    query = sorted(
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if not _is_tracking(key)
    )

    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, urlencode(query), "")
    )
