"""Fixed-interval scheduling of polling ticks."""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def run_forever(
    tick: Callable[[], object],
    interval_seconds: float,
    max_ticks: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Run tick now and then every interval_seconds.

    The interval is measured from the start of the previous tick. A tick
    that overruns it delays the next one instead of overlapping with it,
    and missed slots are not made up. Errors escaping a tick are logged
    and the schedule continues.

    Returns the number of ticks run, which only matters with max_ticks.
    """
    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be positive")

    count = 0
    while max_ticks is None or count < max_ticks:
        started = clock()
        try:
            tick()
        except Exception as e:
            logger.exception("Tick failed: %s", e)
        count += 1

        if max_ticks is not None and count >= max_ticks:
            break

        elapsed = clock() - started
        remaining = interval_seconds - elapsed
        if remaining > 0:
            logger.debug("Next tick in %.1f seconds", remaining)
            sleep(remaining)
        else:
            logger.warning(
                "Tick took %.1f seconds, longer than the %.1f second interval",
                elapsed,
                interval_seconds,
            )

    return count
