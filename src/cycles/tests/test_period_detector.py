"""Tests for period / ovulation grouping and cycle-day numbering."""

from __future__ import annotations

from datetime import date, timedelta

from src.cycles.base import BleedingLevel, Mucus, Observation, Period, Sensation
from src.cycles.config_loader import CycleConfig
from src.cycles.period_detector import (
    cycle_day,
    detect_menstruation_periods,
    detect_ovulation_episodes,
    group_dates,
)
from src.cycles.tests.conftest import bleed, bleeding_run, dry, fertile, fertile_run


class TestGroupDates:
    def test_empty(self) -> None:
        assert group_dates([], 2) == []

    def test_strictly_consecutive(self) -> None:
        days = [date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 4)]
        assert group_dates(days, 1) == [
            [date(2025, 1, 1), date(2025, 1, 2)],
            [date(2025, 1, 4)],
        ]

    def test_duplicates_and_order_ignored(self) -> None:
        days = [date(2025, 1, 3), date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 2)]
        assert group_dates(days, 1) == [[date(2025, 1, 1), date(2025, 1, 2), date(2025, 1, 3)]]


class TestMenstruationPeriods:
    def test_no_observations(self, cycle_config: CycleConfig) -> None:
        assert detect_menstruation_periods([], config=cycle_config) == []

    def test_no_bleeding(self, cycle_config: CycleConfig) -> None:
        obs = [dry(date(2025, 1, d)) for d in range(1, 10)]
        assert detect_menstruation_periods(obs, config=cycle_config) == []

    def test_single_day_period(self, cycle_config: CycleConfig) -> None:
        periods = detect_menstruation_periods([bleed(date(2025, 1, 7))], config=cycle_config)
        assert periods == [Period(date(2025, 1, 7), date(2025, 1, 7))]
        assert periods[0].duration_days == 1

    def test_gap_of_two_days_merges(self, cycle_config: CycleConfig) -> None:
        obs = [bleed(date(2025, 1, 1)), bleed(date(2025, 1, 3))]
        periods = detect_menstruation_periods(obs, config=cycle_config)
        assert periods == [Period(date(2025, 1, 1), date(2025, 1, 3))]

    def test_gap_of_three_days_splits(self, cycle_config: CycleConfig) -> None:
        obs = [bleed(date(2025, 1, 1)), bleed(date(2025, 1, 4))]
        periods = detect_menstruation_periods(obs, config=cycle_config)
        assert periods == [
            Period(date(2025, 1, 1), date(2025, 1, 1)),
            Period(date(2025, 1, 4), date(2025, 1, 4)),
        ]

    def test_spotting_counts_as_bleeding(self, cycle_config: CycleConfig) -> None:
        obs = [
            bleed(date(2025, 1, 1), BleedingLevel.spotting),
            bleed(date(2025, 1, 2)),
            bleed(date(2025, 1, 3), BleedingLevel.spotting),
        ]
        periods = detect_menstruation_periods(obs, config=cycle_config)
        assert periods == [Period(date(2025, 1, 1), date(2025, 1, 3))]

    def test_unsorted_input_with_duplicates(
        self, cycle_config: CycleConfig, two_periods: list[Observation]
    ) -> None:
        shuffled = list(reversed(two_periods)) + two_periods[:2]
        periods = detect_menstruation_periods(shuffled, config=cycle_config)
        assert periods == [
            Period(date(2025, 1, 1), date(2025, 1, 5)),
            Period(date(2025, 1, 29), date(2025, 2, 2)),
        ]

    def test_every_bleeding_day_in_exactly_one_period(
        self, cycle_config: CycleConfig, full_cycle: list[Observation]
    ) -> None:
        periods = detect_menstruation_periods(full_cycle, config=cycle_config)
        for obs in full_cycle:
            owners = [p for p in periods if p.contains(obs.date)]
            if obs.is_bleeding_day:
                assert len(owners) == 1
        assert all(a.end < b.start for a, b in zip(periods, periods[1:]))

    def test_gap_override(self, cycle_config: CycleConfig) -> None:
        obs = [bleed(date(2025, 1, 1)), bleed(date(2025, 1, 3))]
        assert len(detect_menstruation_periods(obs, max_gap_days=1, config=cycle_config)) == 2

    def test_idempotent(self, cycle_config: CycleConfig, two_periods: list[Observation]) -> None:
        first = detect_menstruation_periods(two_periods, config=cycle_config)
        second = detect_menstruation_periods(two_periods, config=cycle_config)
        assert first == second


class TestOvulationEpisodes:
    def test_consecutive_fertile_days(self, cycle_config: CycleConfig) -> None:
        episodes = detect_ovulation_episodes(fertile_run(date(2025, 1, 13), 3), config=cycle_config)
        assert len(episodes) == 1
        assert episodes[0].first_day == date(2025, 1, 13)
        assert episodes[0].last_day == date(2025, 1, 15)

    def test_gap_of_three_days_merges(self, cycle_config: CycleConfig) -> None:
        obs = [fertile(date(2025, 1, 10)), fertile(date(2025, 1, 13))]
        episodes = detect_ovulation_episodes(obs, config=cycle_config)
        assert len(episodes) == 1
        assert episodes[0].days == (date(2025, 1, 10), date(2025, 1, 13))

    def test_gap_of_four_days_splits(self, cycle_config: CycleConfig) -> None:
        obs = [fertile(date(2025, 1, 10)), fertile(date(2025, 1, 14))]
        assert len(detect_ovulation_episodes(obs, config=cycle_config)) == 2

    def test_egg_white_without_stretchy_or_clear_does_not_qualify(
        self, cycle_config: CycleConfig
    ) -> None:
        obs = Observation(
            date=date(2025, 1, 10),
            sensation=frozenset({Sensation.slippery}),
            mucus=frozenset({Mucus.egg_white}),
        )
        assert detect_ovulation_episodes([obs], config=cycle_config) == []

    def test_clear_mucus_qualifies(self, cycle_config: CycleConfig) -> None:
        obs = Observation(
            date=date(2025, 1, 10),
            sensation=frozenset({Sensation.slippery}),
            mucus=frozenset({Mucus.clear, Mucus.white}),
        )
        assert len(detect_ovulation_episodes([obs], config=cycle_config)) == 1

    def test_bleeding_days_ignored(self, cycle_config: CycleConfig) -> None:
        assert detect_ovulation_episodes(bleeding_run(date(2025, 1, 1), 5), config=cycle_config) == []


class TestCycleDay:
    def test_first_day_of_period(self, cycle_config: CycleConfig, two_periods) -> None:
        assert cycle_day(date(2025, 1, 1), two_periods, config=cycle_config) == 1

    def test_last_day_before_next_period(self, cycle_config: CycleConfig, two_periods) -> None:
        assert cycle_day(date(2025, 1, 28), two_periods, config=cycle_config) == 28

    def test_next_period_restarts_count(self, cycle_config: CycleConfig, two_periods) -> None:
        assert cycle_day(date(2025, 1, 29), two_periods, config=cycle_config) == 1

    def test_before_history(self, cycle_config: CycleConfig, two_periods) -> None:
        assert cycle_day(date(2024, 12, 31), two_periods, config=cycle_config) is None

    def test_no_periods(self, cycle_config: CycleConfig) -> None:
        assert cycle_day(date(2025, 1, 1), [], config=cycle_config) is None

    def test_capped_after_last_period(self, cycle_config: CycleConfig, two_periods) -> None:
        last_start = date(2025, 1, 29)
        assert cycle_day(last_start + timedelta(days=60), two_periods, config=cycle_config) == 61
        assert cycle_day(last_start + timedelta(days=61), two_periods, config=cycle_config) is None
