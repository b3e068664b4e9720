"""Cycle engine facade.

Bundles the detectors, statistics, forecasts and accuracy tracking behind one
object that carries the config and an injectable clock, so that every
date-relative computation (lookback filtering, luteal truncation, forecast
horizons) is reproducible in tests.

Usage::

    engine = CycleEngine(clock=lambda: date(2025, 6, 1))
    stats = engine.stats(observations, lookback_months=6)
    windows = engine.forecast(observations)
    evaluation = engine.evaluate(windows, observations, date(2025, 1, 1), date(2025, 5, 31))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable

from src.cycles.accuracy import (
    CycleAnalysis,
    MonthInsights,
    OffsetReport,
    analyze_corrections,
    build_corrections,
    compare_forecast_to_actual,
    compute_accuracy,
    compute_delays_and_anticipations,
    month_insights,
)
from src.cycles.base import (
    AccuracyReport,
    Correction,
    CycleStats,
    DayComparison,
    ForecastKind,
    ForecastWindow,
    Observation,
    OvulationEpisode,
    Period,
)
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.cycle_stats import compute_cycle_stats
from src.cycles.errors import InvalidLookbackError
from src.cycles.forecast import forecast_from_stats, forecast_horizon
from src.cycles.luteal_phase import LutealInterval, all_luteal_phase_intervals, luteal_phase_day
from src.cycles.period_detector import cycle_day, detect_menstruation_periods, detect_ovulation_episodes
from src.cycles.store import ForecastStore, ObservationStore

logger = logging.getLogger("cyclewise.cycles.engine")


@dataclass
class Evaluation:
    """Result of comparing forecasts with observed bleeding.

    Attributes:
        comparisons: Retained day classifications (predicted or observed days).
        offsets:     Window-level delays and anticipations.
        corrections: Correction records derived from the offsets.
        report:      Aggregate accuracy report.
    """

    comparisons: list[DayComparison] = field(default_factory=list)
    offsets: OffsetReport = field(default_factory=OffsetReport)
    corrections: list[Correction] = field(default_factory=list)
    report: AccuracyReport = field(default_factory=AccuracyReport)


@dataclass
class RefreshResult:
    """What ``CycleEngine.refresh`` recomputed and persisted."""

    stats: CycleStats
    forecasts_written: int = 0
    corrections_written: int = 0
    evaluation: Evaluation | None = None


class CycleEngine:
    """Stateless cycle inference and forecasting with an injected clock.

    Args:
        config: Engine config; the global config is used when omitted.
        clock:  Zero-argument callable returning today's date.
    """

    def __init__(
        self,
        config: CycleConfig | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self._config = config or get_cycle_config()
        self._clock = clock or date.today

    @property
    def config(self) -> CycleConfig:
        return self._config

    def today(self) -> date:
        return self._clock()

    def _lookback(self, lookback_months: int | None) -> int:
        st = self._config.statistics
        months = st.default_lookback_months if lookback_months is None else lookback_months
        if isinstance(months, int) and not isinstance(months, bool) and months > st.max_lookback_months:
            raise InvalidLookbackError(
                f"lookback_months must be at most {st.max_lookback_months}, got {months}"
            )
        return months

    # ------------------------------------------------------------------
    # Detection and statistics
    # ------------------------------------------------------------------

    def periods(self, observations: Iterable[Observation]) -> list[Period]:
        return detect_menstruation_periods(observations, config=self._config)

    def ovulation_episodes(self, observations: Iterable[Observation]) -> list[OvulationEpisode]:
        return detect_ovulation_episodes(observations, config=self._config)

    def stats(
        self,
        observations: Iterable[Observation],
        lookback_months: int | None = None,
    ) -> CycleStats:
        return compute_cycle_stats(
            observations,
            self._lookback(lookback_months),
            as_of=self.today(),
            config=self._config,
        )

    def cycle_day(self, target_date: date, observations: Iterable[Observation]) -> int | None:
        return cycle_day(target_date, observations, config=self._config)

    # ------------------------------------------------------------------
    # Luteal phase
    # ------------------------------------------------------------------

    def luteal_day(self, target_date: date, observations: Iterable[Observation]) -> int | None:
        return luteal_phase_day(target_date, observations, as_of=self.today(), config=self._config)

    def luteal_intervals(self, observations: Iterable[Observation]) -> list[LutealInterval]:
        return all_luteal_phase_intervals(observations, as_of=self.today(), config=self._config)

    # ------------------------------------------------------------------
    # Forecasting
    # ------------------------------------------------------------------

    def forecast(
        self,
        observations: Iterable[Observation],
        count: int | None = None,
        lookback_months: int | None = None,
    ) -> list[ForecastWindow]:
        """Forecast ``count`` cycles (default from config) from recent history."""
        stats = self.stats(observations, lookback_months)
        cycles = self._config.forecast.default_cycles if count is None else count
        return forecast_from_stats(stats, cycles, config=self._config)

    def forecast_months(
        self,
        observations: Iterable[Observation],
        months: int,
        lookback_months: int | None = None,
    ) -> list[ForecastWindow]:
        """Forecast every cycle starting within ``months`` of today."""
        stats = self.stats(observations, lookback_months)
        return forecast_horizon(stats, months, as_of=self.today(), config=self._config)

    # ------------------------------------------------------------------
    # Accuracy
    # ------------------------------------------------------------------

    def evaluate(
        self,
        forecast_windows: Iterable[ForecastWindow],
        observations: Iterable[Observation],
        range_start: date,
        range_end: date,
    ) -> Evaluation:
        """Compare forecasts with observations over ``[range_start, range_end]``.

        Only menstruation windows overlapping the range take part, so offsets
        and the day report describe the same span.
        """
        windows = [
            w for w in forecast_windows
            if w.kind is ForecastKind.menstruation and w.end >= range_start and w.start <= range_end
        ]
        snapshot = list(observations)

        comparisons = compare_forecast_to_actual(windows, snapshot, range_start, range_end)
        offsets = compute_delays_and_anticipations(windows, snapshot, config=self._config)
        report = compute_accuracy(comparisons, offsets.delays, offsets.anticipations)

        logger.info(
            "Evaluated %s..%s: accuracy=%.1f%% over %d day(s)",
            range_start, range_end, report.accuracy_percent, report.total_days,
        )
        return Evaluation(
            comparisons=comparisons,
            offsets=offsets,
            corrections=build_corrections(offsets),
            report=report,
        )

    def month_insights(
        self,
        year: int,
        month: int,
        forecast_windows: Iterable[ForecastWindow],
        observations: Iterable[Observation],
    ) -> MonthInsights:
        return month_insights(year, month, forecast_windows, observations, config=self._config)

    def analyze(self, forecast_store: ForecastStore) -> CycleAnalysis:
        """Score stored forecasts due by today against the stored corrections.

        Forecasts starting after today cannot have been corrected yet and
        are left out.
        """
        return analyze_corrections(
            forecast_store.list_forecasts(end=self.today()),
            forecast_store.list_corrections(),
        )

    # ------------------------------------------------------------------
    # Recompute and persist
    # ------------------------------------------------------------------

    def refresh(
        self,
        observation_store: ObservationStore,
        forecast_store: ForecastStore,
        history_start: date,
        count: int | None = None,
        lookback_months: int | None = None,
    ) -> RefreshResult:
        """Recompute forecasts and corrections and upsert them.

        Previously stored forecasts that started on or before today are
        evaluated against the observations first, so corrections capture how
        the old forecast fared before it is superseded.  Stored corrections
        keyed inside ``[history_start, today]`` are replaced by the
        recomputed ones, and stored windows starting after today are replaced
        by the fresh forecast.  Safe to repeat: the store keys rows by
        (date, kind).

        Args:
            observation_store: Source of observations.
            forecast_store:    Destination for forecasts and corrections.
            history_start:     Earliest observation date to read.
            count:             Cycles to forecast (default from config).
            lookback_months:   Statistics window (default from config).
        """
        today = self.today()
        observations = observation_store.list_range(history_start, today)

        result = RefreshResult(stats=self.stats(observations, lookback_months))

        past_forecasts = forecast_store.list_forecasts(end=today)
        if past_forecasts:
            evaluation = self.evaluate(past_forecasts, observations, history_start, today)
            result.evaluation = evaluation
            forecast_store.discard_corrections(history_start, today)
            result.corrections_written = forecast_store.upsert_corrections(evaluation.corrections)

        cycles = self._config.forecast.default_cycles if count is None else count
        windows = forecast_from_stats(result.stats, cycles, config=self._config)
        forecast_store.discard_forecasts(after=today)
        result.forecasts_written = forecast_store.upsert_forecasts(windows)

        logger.info(
            "Refresh as of %s: %d forecast(s), %d correction(s) written",
            today, result.forecasts_written, result.corrections_written,
        )
        return result
