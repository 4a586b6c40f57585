"""Metrics tracking for polling ticks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)


@dataclass
class TickMetrics:
    """Metrics for a single polling tick."""

    tick: int
    warmup: bool = False
    found: int = 0
    filtered_out: int = 0
    new: int = 0
    skipped_duplicate: int = 0
    skipped_warmup: int = 0
    notified: int = 0
    send_failures: int = 0
    errors: int = 0

    def log_summary(self) -> None:
        """Log a summary of metrics for this tick."""
        logger.info(
            "[tick %d%s] Found: %d, Filtered: %d, New: %d, Skipped (dup): %d, "
            "Skipped (warmup): %d, Notified: %d, Send failures: %d",
            self.tick,
            " warmup" if self.warmup else "",
            self.found,
            self.filtered_out,
            self.new,
            self.skipped_duplicate,
            self.skipped_warmup,
            self.notified,
            self.send_failures,
        )


@dataclass
class RunMetrics:
    """Aggregated metrics over all ticks of a run."""

    tick_metrics: List[TickMetrics] = field(default_factory=list)

    @property
    def total_found(self) -> int:
        return sum(m.found for m in self.tick_metrics)

    @property
    def total_new(self) -> int:
        return sum(m.new for m in self.tick_metrics)

    @property
    def total_notified(self) -> int:
        return sum(m.notified for m in self.tick_metrics)

    @property
    def total_send_failures(self) -> int:
        return sum(m.send_failures for m in self.tick_metrics)

    @property
    def total_errors(self) -> int:
        return sum(m.errors for m in self.tick_metrics)

    def add_tick_metrics(self, metrics: TickMetrics) -> None:
        self.tick_metrics.append(metrics)

    def log_summary(self) -> None:
        """Log a summary of the entire run."""
        logger.info("=" * 60)
        logger.info("RUN SUMMARY")
        logger.info("=" * 60)
        logger.info("Ticks executed: %d", len(self.tick_metrics))
        logger.info("Total listings found: %d", self.total_found)
        logger.info("New listings: %d", self.total_new)
        logger.info("Notifications sent: %d", self.total_notified)
        if self.total_send_failures > 0:
            logger.warning("Failed notifications: %d", self.total_send_failures)
        if self.total_errors > 0:
            logger.warning("Errors: %d", self.total_errors)
        logger.info("=" * 60)
