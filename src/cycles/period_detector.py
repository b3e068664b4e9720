"""Group daily observations into menstruation periods and ovulation episodes.

Algorithm (both detectors):
1. Filter the observations to the qualifying days (bleeding for periods,
   slippery sensation + stretchy/clear mucus for ovulation episodes)
2. Sort and de-duplicate the dates
3. Greedily extend the current run while the gap to the previous qualifying
   day is within the merge gap (2 days for periods, 3 for ovulation);
   otherwise start a new run

Input order does not matter and inputs are never mutated.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable

from src.cycles.base import Observation, OvulationEpisode, Period
from src.cycles.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("cyclewise.cycles.period_detector")


def group_dates(dates: Iterable[date], max_gap_days: int) -> list[list[date]]:
    """Split dates into runs whose neighbours are at most ``max_gap_days`` apart.

    Args:
        dates:        Dates in any order; duplicates are collapsed.
        max_gap_days: Largest day difference that still continues a run.
                      1 means strictly consecutive days.

    Returns:
        Runs of dates, each sorted, in chronological order.
    """
    ordered = sorted(set(dates))
    if not ordered:
        return []

    runs: list[list[date]] = [[ordered[0]]]
    for day in ordered[1:]:
        if (day - runs[-1][-1]).days <= max_gap_days:
            runs[-1].append(day)
        else:
            runs.append([day])
    return runs


def detect_menstruation_periods(
    observations: Iterable[Observation],
    max_gap_days: int | None = None,
    config: CycleConfig | None = None,
) -> list[Period]:
    """Detect menstruation periods from bleeding days.

    Spotting and heavy days both count.  Two bleeding days exactly
    ``max_gap_days`` apart share a period; one day further apart they do not.

    Args:
        observations: Observation snapshot (any order).
        max_gap_days: Override for the configured merge gap (default 2).
        config:       Engine config; the global config is used when omitted.

    Returns:
        Disjoint periods in chronological order.
    """
    cfg = config or get_cycle_config()
    gap = cfg.detection.period_merge_gap_days if max_gap_days is None else max_gap_days

    bleeding_days = [o.date for o in observations if o.is_bleeding_day]
    periods = [Period(start=run[0], end=run[-1]) for run in group_dates(bleeding_days, gap)]

    logger.debug(
        "Detected %d period(s) from %d bleeding day(s) (gap=%d)",
        len(periods), len(bleeding_days), gap,
    )
    return periods


def detect_ovulation_episodes(
    observations: Iterable[Observation],
    max_gap_days: int | None = None,
    config: CycleConfig | None = None,
) -> list[OvulationEpisode]:
    """Detect ovulation episodes from fertile-sign days.

    A day qualifies when its sensation includes every configured fertile
    sensation (slippery) and its mucus includes any configured fertile mucus
    (stretchy or clear).

    Returns:
        Non-empty episodes in chronological order; empty when no day qualifies.
    """
    cfg = config or get_cycle_config()
    det = cfg.detection
    gap = det.ovulation_merge_gap_days if max_gap_days is None else max_gap_days

    fertile_days = [
        o.date
        for o in observations
        if o.has_fertile_signs(det.fertile_sensations, det.fertile_mucus)
    ]
    episodes = [OvulationEpisode(days=tuple(run)) for run in group_dates(fertile_days, gap)]

    logger.debug(
        "Detected %d ovulation episode(s) from %d fertile day(s) (gap=%d)",
        len(episodes), len(fertile_days), gap,
    )
    return episodes


def cycle_day(
    target_date: date,
    observations: Iterable[Observation],
    max_cycle_days: int | None = None,
    config: CycleConfig | None = None,
) -> int | None:
    """Return the 1-indexed cycle day of ``target_date``.

    The cycle is opened by the latest period starting on or before the target
    and closed by the next period start.  After the last known period the
    count stops ``max_cycle_days`` days after its start (default 60) so stale
    history does not produce runaway numbers.

    Returns:
        Day number, or None when the date is before all history or past the cap.
    """
    cfg = config or get_cycle_config()
    cap = cfg.detection.max_cycle_days if max_cycle_days is None else max_cycle_days
    periods = detect_menstruation_periods(observations, config=cfg)

    for current, following in zip(periods, periods[1:] + [None]):
        if target_date < current.start:
            return None
        if following is not None:
            if target_date < following.start:
                return (target_date - current.start).days + 1
        elif target_date <= current.start + timedelta(days=cap):
            return (target_date - current.start).days + 1
    return None
