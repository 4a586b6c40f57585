"""In-memory duplicate suppression for the lifetime of the process."""
from __future__ import annotations

import enum
import logging
from typing import Dict, Iterator, Optional

from immo_trakt.fetcher.immoscout import Listing

logger = logging.getLogger(__name__)


class Classification(enum.Enum):
    NEW = "new"
    SEEN = "seen"


class SeenSet:
    """Listings observed so far, keyed by listing id.

    Grows monotonically and is never persisted; a restart starts empty.
    """

    def __init__(self) -> None:
        self._listings: Dict[str, Listing] = {}

    def __contains__(self, listing_id: object) -> bool:
        return listing_id in self._listings

    def __len__(self) -> int:
        return len(self._listings)

    def __iter__(self) -> Iterator[str]:
        return iter(self._listings)

    def get(self, listing_id: str) -> Optional[Listing]:
        return self._listings.get(listing_id)

    def classify(self, listing: Listing) -> Classification:
        """Check whether a listing id has been observed before."""
        if listing.id in self._listings:
            return Classification.SEEN
        return Classification.NEW

    def record(self, listing: Listing) -> None:
        """Remember a listing. Recording a known id keeps the first value."""
        self._listings.setdefault(listing.id, listing)

    def observe(self, listing: Listing) -> Classification:
        """Classify a listing, then record it."""
        classification = self.classify(listing)
        if classification is Classification.NEW:
            self.record(listing)
            logger.debug("Recorded new listing %s", listing.id)
        return classification
