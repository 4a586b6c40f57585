"""Listing filters and ordering for a polling cycle."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from immo_trakt.config import FilterConfig
from immo_trakt.fetcher.immoscout import Listing

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    """Result of filtering a listing."""

    passed: bool
    reason: Optional[str] = None


def matching_keywords(text: str, keywords: Iterable[str]) -> List[str]:
    """Return the keywords contained in text, case-insensitively."""
    text_lower = text.lower()
    return [kw for kw in keywords if kw and kw.lower() in text_lower]


def filter_by_keywords(listing: Listing, banned_terms: Sequence[str]) -> FilterResult:
    """Reject listings whose title contains a banned term."""
    matched = matching_keywords(listing.title, banned_terms)
    if matched:
        return FilterResult(False, f"Title contains excluded keyword(s): {', '.join(matched)}")
    return FilterResult(True)


def filter_by_rent(listing: Listing, rent_max: Optional[float]) -> FilterResult:
    """Reject listings whose warm rent exceeds the ceiling."""
    if rent_max is not None and listing.warm_rent > rent_max:
        return FilterResult(False, f"Rent {listing.warm_rent:g} above maximum {rent_max:g}")
    return FilterResult(True)


def apply_filters(listing: Listing, config: FilterConfig) -> FilterResult:
    """Apply all exclusion rules to a listing.

    Returns the reason of the first rule that failed. Both rules are plain
    predicates, so the outcome does not depend on their order.
    """
    result = filter_by_keywords(listing, config.banned_terms)
    if not result.passed:
        return result

    return filter_by_rent(listing, config.rent_max)


def order_by_rent(listings: Iterable[Listing]) -> List[Listing]:
    """Sort ascending by warm rent, keeping fetch order among equal rents."""
    return sorted(listings, key=lambda listing: listing.warm_rent)


def filter_listings(
    listings: Iterable[Listing],
    config: FilterConfig,
) -> tuple[List[Listing], List[tuple[Listing, str]]]:
    """Filter and order listings.

    Returns:
        Tuple of (passed_listings ordered by rent, skipped_listings_with_reasons)
    """
    passed: List[Listing] = []
    skipped: List[tuple[Listing, str]] = []

    for listing in listings:
        result = apply_filters(listing, config)
        if result.passed:
            passed.append(listing)
        else:
            skipped.append((listing, result.reason or "Unknown"))
            logger.debug(
                "Filtered out '%s' (%g %s): %s",
                listing.title,
                listing.warm_rent,
                listing.currency,
                result.reason,
            )

    return order_by_rent(passed), skipped


def select_and_order(listings: Iterable[Listing], config: FilterConfig) -> List[Listing]:
    """Keep the listings that pass every rule, cheapest first."""
    passed, _ = filter_listings(listings, config)
    return passed
