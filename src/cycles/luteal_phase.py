"""Luteal-phase day numbering for calendar display.

For each ovulation episode the luteal phase begins four days after the
episode's last day and ends the day before the next menstruation period
that starts after the episode.  When no such period exists yet, the phase
is open and ends on the reference date; it is never projected into the
future.

Episodes are evaluated in chronological order and the first interval that
contains the target date wins.  Intervals from distinct episodes are not
expected to overlap; if the source data makes them overlap, the earliest
episode takes precedence and nothing is merged or re-ordered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from src.cycles.base import Observation, OvulationEpisode, Period
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.period_detector import detect_menstruation_periods, detect_ovulation_episodes

logger = logging.getLogger("cyclewise.cycles.luteal_phase")


@dataclass(frozen=True)
class LutealInterval:
    """Inclusive luteal-phase interval following one ovulation episode."""

    start: date
    end: date
    ovulation_last_day: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def day_number(self, day: date) -> int | None:
        """1-indexed position of ``day`` inside the interval, or None."""
        if not self.contains(day):
            return None
        return (day - self.start).days + 1


def luteal_interval_for(
    episode: OvulationEpisode,
    periods: list[Period],
    as_of: date,
    offset_days: int = 4,
) -> LutealInterval | None:
    """Build the luteal interval that follows ``episode``.

    Args:
        episode:     Ovulation episode.
        periods:     All detected periods, chronologically ordered.
        as_of:       Reference date; the interval is truncated to it.
        offset_days: Days from the last ovulation day to the first luteal day.

    Returns:
        The interval, or None when it is empty (start after end).
    """
    start = episode.last_day + timedelta(days=offset_days)
    next_period = next((p for p in periods if p.start > episode.last_day), None)
    end = next_period.start - timedelta(days=1) if next_period else as_of
    end = min(end, as_of)

    if start > end:
        return None
    return LutealInterval(start=start, end=end, ovulation_last_day=episode.last_day)


def all_luteal_phase_intervals(
    observations: Iterable[Observation],
    as_of: date | None = None,
    config: CycleConfig | None = None,
) -> list[LutealInterval]:
    """Return every non-empty, non-future luteal interval, oldest first."""
    cfg = config or get_cycle_config()
    today = as_of or date.today()
    snapshot = list(observations)

    periods = detect_menstruation_periods(snapshot, config=cfg)
    episodes = detect_ovulation_episodes(snapshot, config=cfg)

    intervals = []
    for episode in episodes:
        interval = luteal_interval_for(
            episode, periods, today, cfg.detection.luteal_offset_days
        )
        if interval is not None:
            intervals.append(interval)

    for earlier, later in zip(intervals, intervals[1:]):
        if later.start <= earlier.end:
            logger.debug(
                "Luteal intervals overlap: %s..%s and %s..%s (earlier wins)",
                earlier.start, earlier.end, later.start, later.end,
            )
    return intervals


def luteal_phase_day(
    target_date: date,
    observations: Iterable[Observation],
    as_of: date | None = None,
    config: CycleConfig | None = None,
) -> int | None:
    """Return the 1-indexed luteal-phase day of ``target_date``.

    Args:
        target_date:  Calendar day to number.
        observations: Full observation history (any order).
        as_of:        Reference date (defaults to today).
        config:       Engine config; the global config is used when omitted.

    Returns:
        Luteal day number, or None if the date is in no luteal interval.
    """
    for interval in all_luteal_phase_intervals(observations, as_of=as_of, config=config):
        number = interval.day_number(target_date)
        if number is not None:
            return number
    return None
