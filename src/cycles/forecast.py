"""Project future menstruation, ovulation and fertile windows.

Menstruation window ``i`` (0-indexed) starts ``average_cycle_length * (i+1)``
days after the last known period start and spans the average bleed
duration.  Each forecast cycle also gets:

- an end-of-period marker on the last menstruation day
- an ovulation day at ``period_start + average_cycle_length // 2``
- a fertile window of three days either side of ovulation, reported as two
  windows so the ovulation day itself is not repeated

Confidence values are fixed heuristics per kind from cycle_config.yaml.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

from dateutil.relativedelta import relativedelta

from src.cycles.base import CycleStats, ForecastKind, ForecastWindow
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.errors import InvalidForecastError

logger = logging.getLogger("cyclewise.cycles.forecast")

_KIND_ORDER = {
    ForecastKind.menstruation: 0,
    ForecastKind.end_menstruation: 1,
    ForecastKind.fertile: 2,
    ForecastKind.ovulation: 3,
}


def _check_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidForecastError(f"{name} must be a positive integer, got {value!r}")


def _check_count(value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidForecastError(f"count must be a non-negative integer, got {value!r}")


def forecast_cycles(
    last_period_start: date,
    average_cycle_length: int,
    average_bleed_duration: int,
    count: int,
    config: CycleConfig | None = None,
) -> list[ForecastWindow]:
    """Forecast ``count`` menstruation windows after the last known period.

    Args:
        last_period_start:      Start of the most recent detected period.
        average_cycle_length:   Days between consecutive period starts.
        average_bleed_duration: Days each forecast window spans.
        count:                  Number of windows to produce (0 gives none).
        config:                 Engine config; the global config is used when omitted.

    Returns:
        Menstruation windows in chronological order, exactly one cycle apart.

    Raises:
        InvalidForecastError: If ``count`` is negative or either average is not
                              a positive integer.
    """
    _check_count(count)
    _check_positive("average_cycle_length", average_cycle_length)
    _check_positive("average_bleed_duration", average_bleed_duration)

    cfg = config or get_cycle_config()
    span = average_bleed_duration
    if span > average_cycle_length:
        logger.warning(
            "Bleed duration %d exceeds cycle length %d; clamping forecast windows",
            average_bleed_duration, average_cycle_length,
        )
        span = average_cycle_length

    confidence = cfg.forecast.confidence_for(ForecastKind.menstruation)
    windows = []
    for i in range(count):
        start = last_period_start + timedelta(days=average_cycle_length * (i + 1))
        windows.append(
            ForecastWindow(
                start=start,
                end=start + timedelta(days=span - 1),
                kind=ForecastKind.menstruation,
                confidence=confidence,
            )
        )
    return windows


def ovulation_window(
    period_start: date,
    average_cycle_length: int,
    config: CycleConfig | None = None,
) -> ForecastWindow:
    """Single-day ovulation forecast at mid-cycle (floor of half the length)."""
    cfg = config or get_cycle_config()
    day = period_start + timedelta(days=average_cycle_length // 2)
    return ForecastWindow(
        start=day,
        end=day,
        kind=ForecastKind.ovulation,
        confidence=cfg.forecast.confidence_for(ForecastKind.ovulation),
    )


def fertile_windows(
    ovulation_day: date,
    config: CycleConfig | None = None,
) -> list[ForecastWindow]:
    """Fertile days before and after ``ovulation_day``, excluding the day itself."""
    cfg = config or get_cycle_config()
    half = cfg.forecast.fertile_half_width_days
    if half <= 0:
        return []
    confidence = cfg.forecast.confidence_for(ForecastKind.fertile)
    return [
        ForecastWindow(
            start=ovulation_day - timedelta(days=half),
            end=ovulation_day - timedelta(days=1),
            kind=ForecastKind.fertile,
            confidence=confidence,
        ),
        ForecastWindow(
            start=ovulation_day + timedelta(days=1),
            end=ovulation_day + timedelta(days=half),
            kind=ForecastKind.fertile,
            confidence=confidence,
        ),
    ]


def end_of_period_marker(
    window: ForecastWindow,
    config: CycleConfig | None = None,
) -> ForecastWindow:
    """Single-day marker on the last day of a menstruation window."""
    cfg = config or get_cycle_config()
    return ForecastWindow(
        start=window.end,
        end=window.end,
        kind=ForecastKind.end_menstruation,
        confidence=cfg.forecast.confidence_for(ForecastKind.end_menstruation),
    )


def expand_cycle_windows(
    menstruation_windows: list[ForecastWindow],
    average_cycle_length: int,
    config: CycleConfig | None = None,
) -> list[ForecastWindow]:
    """Add end-of-period, ovulation and fertile windows to each forecast cycle.

    Returns:
        All windows sorted by start date, then by kind.
    """
    cfg = config or get_cycle_config()
    windows: list[ForecastWindow] = []
    for window in menstruation_windows:
        ovulation = ovulation_window(window.start, average_cycle_length, cfg)
        windows.append(window)
        windows.append(end_of_period_marker(window, cfg))
        windows.append(ovulation)
        windows.extend(fertile_windows(ovulation.start, cfg))
    return sorted(windows, key=lambda w: (w.start, _KIND_ORDER[w.kind]))


def forecast_from_stats(
    stats: CycleStats,
    count: int,
    config: CycleConfig | None = None,
) -> list[ForecastWindow]:
    """Forecast ``count`` complete cycles from computed statistics.

    Returns an empty list when no period was detected in the lookback window.
    """
    _check_count(count)
    if stats.last_period is None:
        logger.info("No period in lookback window; nothing to forecast")
        return []

    menstruation = forecast_cycles(
        stats.last_period.start,
        stats.average_cycle_length,
        stats.average_bleed_duration,
        count,
        config=config,
    )
    windows = expand_cycle_windows(menstruation, stats.average_cycle_length, config)
    logger.info(
        "Forecast %d cycle(s) from %s (cycle=%d, bleed=%d)",
        count, stats.last_period.start,
        stats.average_cycle_length, stats.average_bleed_duration,
    )
    return windows


def forecast_horizon(
    stats: CycleStats,
    months: int,
    as_of: date | None = None,
    config: CycleConfig | None = None,
) -> list[ForecastWindow]:
    """Forecast every cycle starting on or before ``as_of + months``.

    Args:
        stats:  Cycle statistics (the last period anchors the forecast).
        months: Horizon length in calendar months.
        as_of:  Reference date (defaults to today).
        config: Engine config; the global config is used when omitted.

    Raises:
        InvalidForecastError: If ``months`` is negative.
    """
    if isinstance(months, bool) or not isinstance(months, int) or months < 0:
        raise InvalidForecastError(f"months must be a non-negative integer, got {months!r}")
    last = stats.last_period
    if last is None:
        return []

    today = as_of or date.today()
    horizon_end = today + relativedelta(months=months)
    _check_positive("average_cycle_length", stats.average_cycle_length)
    days_ahead = (horizon_end - last.start).days
    count = max(days_ahead // stats.average_cycle_length, 0)
    return forecast_from_stats(stats, count, config)
