from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from immo_trakt.errors import DecodeError, TransportError

logger = logging.getLogger(__name__)

EXPOSE_URL = "https://www.immobilienscout24.de/expose/{id}"
PAGE_PARAM = "pagenumber"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class Listing:
    id: str
    title: str
    warm_rent: float
    cold_rent: float
    living_space: float
    number_of_rooms: float
    currency: str = "EUR"
    publish_date: Optional[str] = None

    @property
    def link(self) -> str:
        return EXPOSE_URL.format(id=self.id)


@dataclass
class PageResult:
    page_number: int
    number_of_pages: int
    number_of_hits: int = 0
    listings: List[Listing] = field(default_factory=list)


class PageSource(Protocol):
    def fetch_page(self, page_number: int) -> PageResult:
        ...


def build_page_url(search_url: str, page_number: int) -> str:
    """Return the search URL with its ``pagenumber`` query parameter set."""
    parts = urlsplit(search_url)
    params = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != PAGE_PARAM]
    params.append((PAGE_PARAM, str(page_number)))
    return urlunsplit(parts._replace(query=urlencode(params)))


def _number(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ValueError(f"Expected a number, got {value!r}")
    return float(value)


def _amount(data: Any) -> tuple[float, Optional[str]]:
    """Read a ``{"value": ..., "currency": ...}`` object."""
    if not isinstance(data, dict):
        return 0.0, None
    return _number(data.get("value")), data.get("currency")


def _parse_listing(entry: Any) -> Optional[Listing]:
    """Normalize one ``resultlistEntry`` item into a Listing."""
    try:
        listing_id = str(entry.get("@id") or "")
        if not listing_id:
            logger.warning("Skipping result entry without @id")
            return None

        estate = entry.get("resultlist.realEstate") or {}

        cold_rent, cold_currency = _amount(estate.get("price"))
        total = (estate.get("calculatedTotalRent") or {}).get("totalRent")
        warm_rent, warm_currency = _amount(total)
        if total is None:
            warm_rent = cold_rent

        return Listing(
            id=listing_id,
            title=str(estate.get("title") or ""),
            warm_rent=warm_rent,
            cold_rent=cold_rent,
            living_space=_number(estate.get("livingSpace")),
            number_of_rooms=_number(estate.get("numberOfRooms")),
            currency=warm_currency or cold_currency or "EUR",
            publish_date=entry.get("@publishDate"),
        )
    except (AttributeError, TypeError, ValueError) as e:
        logger.warning("Skipping malformed result entry: %s", e)
        return None


def parse_page(data: Any, page_number: int = 1) -> PageResult:
    """Decode a search response body into a PageResult.

    Raises DecodeError when the nested ``searchResponseModel`` shape is
    missing. An empty ``resultlistEntries`` array is an empty page.
    """
    try:
        resultlist = data["searchResponseModel"]["resultlist.resultlist"]
        paging = resultlist.get("paging") or {}
        number_of_pages = int(_number(paging.get("numberOfPages")))
        number_of_hits = int(_number(paging.get("numberOfHits")))
        entries = resultlist["resultlistEntries"]
    except (KeyError, TypeError, AttributeError, ValueError, OverflowError) as e:
        raise DecodeError(f"Unexpected response shape on page {page_number}: {e!r}") from e

    if not isinstance(entries, list):
        raise DecodeError(f"resultlistEntries is not an array on page {page_number}")

    if not entries:
        return PageResult(page_number, number_of_pages, number_of_hits)

    first = entries[0]
    if not isinstance(first, dict):
        raise DecodeError(f"resultlistEntries[0] is not an object on page {page_number}")

    raw_entries = first.get("resultlistEntry") or []
    # A page with a single hit carries the entry as an object, not an array
    if isinstance(raw_entries, dict):
        raw_entries = [raw_entries]
    if not isinstance(raw_entries, list):
        raise DecodeError(f"resultlistEntry is neither an array nor an object on page {page_number}")

    listings = []
    for entry in raw_entries:
        listing = _parse_listing(entry)
        if listing:
            listings.append(listing)

    return PageResult(page_number, number_of_pages, number_of_hits, listings)


def _get_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({
        "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "de-DE,de;q=0.9,en;q=0.8",
        # requests cannot decode brotli without optional dependencies
        "Accept-Encoding": "gzip, deflate",
    })
    return session


class ImmoScoutSource:
    """Fetches single result pages of one ImmobilienScout24 search."""

    def __init__(
        self,
        search_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.search_url = search_url
        self.timeout = timeout
        self.session = session or _get_session()

    def fetch_page(self, page_number: int) -> PageResult:
        url = build_page_url(self.search_url, page_number)
        logger.info("Making request to %s", url)

        try:
            response = self.session.post(
                url,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise TransportError(f"Request for page {page_number} failed: {e}") from e

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            body_preview = response.text.replace("\n", " ")[:200]
            content_type = response.headers.get("Content-Type", "unknown")
            raise DecodeError(
                f"Page {page_number} is not JSON (status {response.status_code}, "
                f"content-type {content_type}): {body_preview}"
            ) from e

        page = parse_page(data, page_number)
        logger.debug(
            "Page %d/%d: %d listings (%d hits)",
            page_number,
            page.number_of_pages,
            len(page.listings),
            page.number_of_hits,
        )
        return page


def fetch_all_listings(source: PageSource) -> List[Listing]:
    """Fetch every result page of a search.

    Page 1 is requested first to learn the total page count, the remaining
    pages follow sequentially. Any failing page aborts the whole walk.
    """
    first = source.fetch_page(1)
    listings: List[Listing] = list(first.listings)

    for page_number in range(2, first.number_of_pages + 1):
        page = source.fetch_page(page_number)
        listings.extend(page.listings)

    logger.info("Fetched %d listings across %d page(s)", len(listings), max(first.number_of_pages, 1))
    return listings
