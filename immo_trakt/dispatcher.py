"""One polling tick: fetch, filter, deduplicate, notify."""
from __future__ import annotations

import enum
import logging
from typing import Optional, Sequence

from immo_trakt.config import FilterConfig
from immo_trakt.errors import DecodeError, SinkError, TransportError
from immo_trakt.fetcher.immoscout import Listing, PageSource, fetch_all_listings
from immo_trakt.filters import filter_listings
from immo_trakt.metrics import RunMetrics, TickMetrics
from immo_trakt.notifiers.base import Notifier, format_listing_message
from immo_trakt.state import Classification, SeenSet

logger = logging.getLogger(__name__)


class Phase(enum.Enum):
    WARMUP = "warmup"
    STEADY = "steady"


class Dispatcher:
    """Owns the Seen-Set and runs polling ticks against it.

    The first tick only records what is already online unless
    ``include_existing_offers`` is set. Ticks must not run concurrently.
    """

    def __init__(
        self,
        source: PageSource,
        notifiers: Sequence[Notifier],
        filters: FilterConfig,
        include_existing_offers: bool = False,
        seen: Optional[SeenSet] = None,
        run_metrics: Optional[RunMetrics] = None,
    ):
        self.source = source
        self.notifiers = list(notifiers)
        self.filters = filters
        self.include_existing_offers = include_existing_offers
        self.seen = seen if seen is not None else SeenSet()
        self.run_metrics = run_metrics if run_metrics is not None else RunMetrics()
        self.phase = Phase.WARMUP
        self.ticks = 0

    @property
    def should_notify(self) -> bool:
        return self.phase is Phase.STEADY or self.include_existing_offers

    def run_tick(self) -> TickMetrics:
        self.ticks += 1
        metrics = TickMetrics(tick=self.ticks, warmup=self.phase is Phase.WARMUP)
        try:
            self._process(metrics)
        finally:
            self.phase = Phase.STEADY
            metrics.log_summary()
            self.run_metrics.add_tick_metrics(metrics)
        return metrics

    def _process(self, metrics: TickMetrics) -> None:
        try:
            listings = fetch_all_listings(self.source)
        except (TransportError, DecodeError) as e:
            logger.error("Failed to fetch listings, skipping tick %d: %s", metrics.tick, e)
            metrics.errors += 1
            return

        metrics.found = len(listings)
        if not listings:
            logger.info("No listings found")
            return

        passed, skipped = filter_listings(listings, self.filters)
        metrics.filtered_out = len(skipped)

        for listing in passed:
            if self.seen.observe(listing) is Classification.SEEN:
                metrics.skipped_duplicate += 1
                continue

            metrics.new += 1
            if not self.should_notify:
                metrics.skipped_warmup += 1
                continue

            logger.info("Found new offer %s", listing.link)
            self._notify(listing, metrics)

        if metrics.skipped_warmup:
            logger.info(
                "First run: recorded %d existing listings without notifying",
                metrics.skipped_warmup,
            )

    def _notify(self, listing: Listing, metrics: TickMetrics) -> None:
        if not self.notifiers:
            logger.warning("No notifier configured for new listing %s", listing.id)
            return

        message = format_listing_message(listing)
        sent = False
        for notifier in self.notifiers:
            try:
                notifier.send(message)
                sent = True
            except SinkError as e:
                logger.error("[%s] %s", notifier.name, e)
                metrics.send_failures += 1
            except Exception as e:
                logger.exception("[%s] Unexpected error while sending: %s", notifier.name, e)
                metrics.send_failures += 1

        if sent:
            metrics.notified += 1
