"""Average cycle length and bleed duration over a trailing lookback window.

Only observations in ``[as_of - lookback_months, as_of]`` are used.  The
period detector runs on that slice; start-to-start distances give the cycle
length samples and period durations give the bleed samples.  Means are
rounded half-up.  With no samples the defaults (28 / 5 days) apply.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable

from dateutil.relativedelta import relativedelta

from src.cycles.base import CycleStats, Observation
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.errors import InvalidLookbackError
from src.cycles.period_detector import detect_menstruation_periods

logger = logging.getLogger("cyclewise.cycles.cycle_stats")


def round_half_up(total: int, count: int) -> int:
    """Round ``total / count`` to the nearest integer, halves rounding up.

    Uses integer arithmetic so 28.5 always becomes 29 (``round()`` would give 28).
    """
    return (2 * total + count) // (2 * count)


def lookback_start(as_of: date, lookback_months: int) -> date:
    """First day of the lookback window, clamped to month end (Mar 31 - 1mo = Feb 28)."""
    return as_of - relativedelta(months=lookback_months)


def compute_cycle_stats(
    observations: Iterable[Observation],
    lookback_months: int,
    as_of: date | None = None,
    config: CycleConfig | None = None,
) -> CycleStats:
    """Compute cycle statistics from the recent observation history.

    Args:
        observations:    Observation snapshot (any order).
        lookback_months: Size of the trailing window in calendar months.
        as_of:           Reference date the window ends on (defaults to today).
        config:          Engine config; the global config is used when omitted.

    Returns:
        CycleStats with averages, samples and the periods in the window.

    Raises:
        InvalidLookbackError: If ``lookback_months`` is not a positive integer.
    """
    if isinstance(lookback_months, bool) or not isinstance(lookback_months, int):
        raise InvalidLookbackError(
            f"lookback_months must be an integer, got {lookback_months!r}"
        )
    if lookback_months <= 0:
        raise InvalidLookbackError(
            f"lookback_months must be positive, got {lookback_months}"
        )

    cfg = config or get_cycle_config()
    today = as_of or date.today()
    window_start = lookback_start(today, lookback_months)

    recent = [o for o in observations if window_start <= o.date <= today]
    periods = detect_menstruation_periods(recent, config=cfg)

    cycle_lengths = [
        (following.start - current.start).days
        for current, following in zip(periods, periods[1:])
    ]
    bleed_durations = [p.duration_days for p in periods]

    avg_cycle = (
        round_half_up(sum(cycle_lengths), len(cycle_lengths))
        if cycle_lengths
        else cfg.statistics.default_cycle_length
    )
    avg_bleed = (
        round_half_up(sum(bleed_durations), len(bleed_durations))
        if bleed_durations
        else cfg.statistics.default_bleed_duration
    )

    logger.info(
        "Cycle stats as of %s (%d mo): %d period(s), avg cycle=%d, avg bleed=%d",
        today, lookback_months, len(periods), avg_cycle, avg_bleed,
    )

    return CycleStats(
        average_cycle_length=avg_cycle,
        average_bleed_duration=avg_bleed,
        periods=periods,
        cycle_lengths=cycle_lengths,
        bleed_durations=bleed_durations,
        lookback_start=window_start,
        as_of=today,
    )
