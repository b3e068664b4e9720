"""Tests for menstruation, ovulation and fertile-window forecasting."""

from __future__ import annotations

from datetime import date

import pytest

from src.cycles.base import CycleStats, ForecastKind, ForecastWindow, Period
from src.cycles.config_loader import CycleConfig
from src.cycles.errors import InvalidForecastError
from src.cycles.forecast import (
    end_of_period_marker,
    expand_cycle_windows,
    fertile_windows,
    forecast_cycles,
    forecast_from_stats,
    forecast_horizon,
    ovulation_window,
)


def stats_from(last_start: date, cycle: int = 28, bleed: int = 5) -> CycleStats:
    return CycleStats(
        average_cycle_length=cycle,
        average_bleed_duration=bleed,
        periods=[Period(last_start, last_start)],
    )


class TestForecastCycles:
    def test_six_regular_cycles(self, cycle_config: CycleConfig) -> None:
        windows = forecast_cycles(date(2025, 1, 1), 28, 5, 6, config=cycle_config)
        assert len(windows) == 6
        assert windows[0].start == date(2025, 1, 29)
        assert windows[0].end == date(2025, 2, 2)
        assert windows[1].start == date(2025, 2, 26)
        for window in windows:
            assert window.kind is ForecastKind.menstruation
            assert window.confidence == 0.8
            assert window.length_days == 5
        assert all((b.start - a.start).days == 28 for a, b in zip(windows, windows[1:]))

    def test_zero_count(self, cycle_config: CycleConfig) -> None:
        assert forecast_cycles(date(2025, 1, 1), 28, 5, 0, config=cycle_config) == []

    @pytest.mark.parametrize(
        ("cycle", "bleed", "count"),
        [(0, 5, 1), (28, 0, 1), (-28, 5, 1), (28, 5, -1)],
    )
    def test_invalid_parameters(self, cycle_config: CycleConfig, cycle, bleed, count) -> None:
        with pytest.raises(InvalidForecastError):
            forecast_cycles(date(2025, 1, 1), cycle, bleed, count, config=cycle_config)

    def test_bleed_longer_than_cycle_is_clamped(self, cycle_config: CycleConfig) -> None:
        windows = forecast_cycles(date(2025, 1, 1), 3, 5, 2, config=cycle_config)
        assert [w.length_days for w in windows] == [3, 3]
        assert windows[0].end < windows[1].start


class TestCycleWindows:
    def test_ovulation_at_mid_cycle(self, cycle_config: CycleConfig) -> None:
        window = ovulation_window(date(2025, 1, 29), 28, cycle_config)
        assert window.start == window.end == date(2025, 2, 12)
        assert window.kind is ForecastKind.ovulation
        assert window.confidence == 0.7

    def test_odd_cycle_length_floors(self, cycle_config: CycleConfig) -> None:
        assert ovulation_window(date(2025, 1, 1), 29, cycle_config).start == date(2025, 1, 15)

    def test_fertile_windows_surround_ovulation(self, cycle_config: CycleConfig) -> None:
        before, after = fertile_windows(date(2025, 2, 12), cycle_config)
        assert (before.start, before.end) == (date(2025, 2, 9), date(2025, 2, 11))
        assert (after.start, after.end) == (date(2025, 2, 13), date(2025, 2, 15))
        assert before.confidence == after.confidence == 0.6

    def test_end_marker_on_last_day(self, cycle_config: CycleConfig) -> None:
        window = ForecastWindow(date(2025, 1, 29), date(2025, 2, 2), ForecastKind.menstruation, 0.8)
        marker = end_of_period_marker(window, cycle_config)
        assert marker.start == marker.end == date(2025, 2, 2)
        assert marker.kind is ForecastKind.end_menstruation

    def test_expand_adds_four_windows_per_cycle(self, cycle_config: CycleConfig) -> None:
        menstruation = forecast_cycles(date(2025, 1, 1), 28, 5, 2, config=cycle_config)
        windows = expand_cycle_windows(menstruation, 28, cycle_config)
        assert len(windows) == 10
        assert windows == sorted(windows, key=lambda w: w.start)
        kinds = [w.kind for w in windows[:5]]
        assert kinds == [
            ForecastKind.menstruation,
            ForecastKind.end_menstruation,
            ForecastKind.fertile,
            ForecastKind.ovulation,
            ForecastKind.fertile,
        ]


class TestForecastFromStats:
    def test_full_forecast(self, cycle_config: CycleConfig) -> None:
        windows = forecast_from_stats(stats_from(date(2025, 1, 29)), 6, cycle_config)
        assert len(windows) == 30
        menstruation = [w for w in windows if w.kind is ForecastKind.menstruation]
        assert menstruation[0].start == date(2025, 2, 26)

    def test_no_period_means_no_forecast(self, cycle_config: CycleConfig) -> None:
        assert forecast_from_stats(CycleStats(), 6, cycle_config) == []

    def test_negative_count_rejected(self, cycle_config: CycleConfig) -> None:
        with pytest.raises(InvalidForecastError):
            forecast_from_stats(CycleStats(), -1, cycle_config)


class TestForecastHorizon:
    def test_cycles_within_two_months(self, cycle_config: CycleConfig) -> None:
        windows = forecast_horizon(
            stats_from(date(2025, 1, 1)), 2, as_of=date(2025, 1, 15), config=cycle_config
        )
        starts = [w.start for w in windows if w.kind is ForecastKind.menstruation]
        assert starts == [date(2025, 1, 29), date(2025, 2, 26)]

    def test_zero_months_still_covers_overdue_cycle(self, cycle_config: CycleConfig) -> None:
        windows = forecast_horizon(
            stats_from(date(2025, 1, 1)), 0, as_of=date(2025, 2, 1), config=cycle_config
        )
        starts = [w.start for w in windows if w.kind is ForecastKind.menstruation]
        assert starts == [date(2025, 1, 29)]

    def test_negative_months_rejected(self, cycle_config: CycleConfig) -> None:
        with pytest.raises(InvalidForecastError):
            forecast_horizon(stats_from(date(2025, 1, 1)), -1, config=cycle_config)

    def test_no_period(self, cycle_config: CycleConfig) -> None:
        assert forecast_horizon(CycleStats(), 3, as_of=date(2025, 1, 1), config=cycle_config) == []
