from __future__ import annotations

import logging
from typing import Protocol

from immo_trakt.fetcher.immoscout import Listing

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    name: str

    def send(self, text: str) -> None:
        """Deliver text, raising SinkError on failure."""
        ...


def format_listing_message(listing: Listing) -> str:
    return (
        f"{listing.title}\n"
        f"{listing.living_space:g} m²  -  {listing.number_of_rooms:g} rooms  -  {listing.warm_rent:g} € warm\n"
        f"{listing.link}"
    )


class LogNotifier:
    """Writes notifications to the log instead of delivering them."""

    name = "log"

    def send(self, text: str) -> None:
        logger.info("[dry run] Would notify:\n%s", text)
