"""Compare menstruation forecasts against observed bleeding.

Views of the same comparison:

1. Day-by-day classification over a date range (correct / false positive /
   false negative / true negative); only days that were predicted or
   observed are returned
2. Window-level delays and anticipations: each forecast window is matched to
   the observed bleeding window whose start is nearest (within 10 days).
   Starts within ±1 day count as a correct match
3. An aggregate accuracy report over the day classifications
4. A running score of stored forecasts against the corrections recorded
   for them (``analyze_corrections``)

Only ``menstruation`` forecast windows take part; ovulation, fertile and
end-of-period windows are ignored.
"""

from __future__ import annotations

import calendar
import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable

from src.cycles.base import (
    AccuracyReport,
    Correction,
    CorrectionKind,
    DateOffset,
    DayClassification,
    DayComparison,
    ForecastKind,
    ForecastWindow,
    Observation,
)
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.period_detector import group_dates

logger = logging.getLogger("cyclewise.cycles.accuracy")


@dataclass
class OffsetReport:
    """Delays (keyed by forecast start) and anticipations (keyed by actual start)."""

    delays: list[DateOffset] = field(default_factory=list)
    anticipations: list[DateOffset] = field(default_factory=list)


@dataclass
class MonthInsights:
    """Per-month summary for the comparison calendar.

    Attributes:
        year, month:        Calendar month summarised.
        menstruation_days:  Observed bleeding days in the month.
        predicted_days:     Forecast menstruation days in the month.
        delays:             Delays whose key date falls in the month.
        anticipations:      Anticipations whose key date falls in the month.
        accuracy:           Day-level accuracy report restricted to the month.
    """

    year: int
    month: int
    menstruation_days: int = 0
    predicted_days: int = 0
    delays: int = 0
    anticipations: int = 0
    accuracy: AccuracyReport = field(default_factory=AccuracyReport)


@dataclass
class CycleAnalysis:
    """Summary of stored menstruation forecasts against stored corrections.

    Attributes:
        total_predictions:  Menstruation forecasts considered.
        correct:            Forecasts with no correction recorded.
        delays:             Forecasts corrected as late.
        anticipations:      Forecasts corrected as early.
        delay_days:         Sum of delay sizes in days.
        anticipation_days:  Sum of anticipation sizes in days.
        accuracy_percent:   ``100 * correct / total_predictions`` to one decimal
                            place; 0 when there is nothing to score.
    """

    total_predictions: int = 0
    correct: int = 0
    delays: int = 0
    anticipations: int = 0
    delay_days: int = 0
    anticipation_days: int = 0
    accuracy_percent: float = 0.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _predicted_days(windows: Iterable[ForecastWindow]) -> set[date]:
    days: set[date] = set()
    for window in windows:
        if window.kind is ForecastKind.menstruation:
            days.update(window.days())
    return days


def _bleeding_days(observations: Iterable[Observation]) -> set[date]:
    return {o.date for o in observations if o.is_bleeding_day}


def _classify(predicted: bool, actual: bool) -> DayClassification:
    if predicted and actual:
        return DayClassification.correct
    if predicted:
        return DayClassification.false_positive
    if actual:
        return DayClassification.false_negative
    return DayClassification.true_negative


# ---------------------------------------------------------------------------
# Day-level comparison
# ---------------------------------------------------------------------------


def compare_forecast_to_actual(
    forecast_windows: Iterable[ForecastWindow],
    observations: Iterable[Observation],
    range_start: date,
    range_end: date,
) -> list[DayComparison]:
    """Classify each day in ``[range_start, range_end]``.

    True-negative days are classified but left out of the result.

    Returns:
        Chronological comparisons for days that were predicted or observed.
        Empty when the range is empty.
    """
    predicted_days = _predicted_days(forecast_windows)
    actual_days = _bleeding_days(observations)

    comparisons = []
    current = range_start
    while current <= range_end:
        predicted = current in predicted_days
        actual = current in actual_days
        classification = _classify(predicted, actual)
        if classification is not DayClassification.true_negative:
            comparisons.append(
                DayComparison(
                    date=current,
                    predicted=predicted,
                    actual=actual,
                    classification=classification,
                )
            )
        current += timedelta(days=1)
    return comparisons


# ---------------------------------------------------------------------------
# Window-level delays / anticipations
# ---------------------------------------------------------------------------


def compute_delays_and_anticipations(
    forecast_windows: Iterable[ForecastWindow],
    observations: Iterable[Observation],
    config: CycleConfig | None = None,
) -> OffsetReport:
    """Match forecast windows to observed windows and measure the offsets.

    Forecast days and bleeding days are each grouped into strictly
    consecutive runs.  For every forecast run the observed run with the
    smallest absolute start difference (ties to the earlier observed start)
    within the search radius is chosen.  A forecast with no candidate is
    simply unmet and produces nothing.

    Returns:
        OffsetReport with delays and anticipations in forecast order.
    """
    cfg = config or get_cycle_config()
    tolerance = cfg.accuracy.match_tolerance_days
    radius = cfg.accuracy.max_match_distance_days

    forecast_starts = [run[0] for run in group_dates(_predicted_days(forecast_windows), 1)]
    actual_starts = [run[0] for run in group_dates(_bleeding_days(observations), 1)]

    report = OffsetReport()
    for forecast_start in forecast_starts:
        candidates = [
            a for a in actual_starts if abs((a - forecast_start).days) <= radius
        ]
        if not candidates:
            logger.debug("Forecast %s unmet (no bleeding within %d days)", forecast_start, radius)
            continue

        nearest = min(candidates, key=lambda a: (abs((a - forecast_start).days), a))
        diff = (nearest - forecast_start).days
        if diff > tolerance:
            report.delays.append(DateOffset(date=forecast_start, days=diff))
        elif diff < -tolerance:
            report.anticipations.append(DateOffset(date=nearest, days=-diff))

    logger.info(
        "Matched %d forecast window(s): %d delay(s), %d anticipation(s)",
        len(forecast_starts), len(report.delays), len(report.anticipations),
    )
    return report


def build_corrections(report: OffsetReport) -> list[Correction]:
    """Turn offsets into Correction records, ordered by key date."""
    corrections = [
        Correction(
            original_predicted_date=d.date,
            actual_date=d.date + timedelta(days=d.days),
            kind=CorrectionKind.delay,
        )
        for d in report.delays
    ]
    corrections.extend(
        Correction(
            original_predicted_date=a.date + timedelta(days=a.days),
            actual_date=a.date,
            kind=CorrectionKind.anticipation,
        )
        for a in report.anticipations
    )
    return sorted(corrections, key=lambda c: (c.date, c.kind.value))


# ---------------------------------------------------------------------------
# Aggregate accuracy
# ---------------------------------------------------------------------------


def compute_accuracy(
    day_comparisons: Iterable[DayComparison],
    delays: Iterable[DateOffset],
    anticipations: Iterable[DateOffset],
) -> AccuracyReport:
    """Aggregate day classifications and offsets into an accuracy report.

    True-negative entries, if present, are not counted.  With no retained
    days the accuracy is 100.
    """
    retained = [c for c in day_comparisons if c.predicted or c.actual]
    correct = sum(1 for c in retained if c.classification is DayClassification.correct)
    total = len(retained)

    return AccuracyReport(
        accuracy_percent=100.0 * correct / total if total else 100.0,
        total_days=total,
        correct=correct,
        false_positives=sum(
            1 for c in retained if c.classification is DayClassification.false_positive
        ),
        false_negatives=sum(
            1 for c in retained if c.classification is DayClassification.false_negative
        ),
        delay_days_total=sum(d.days for d in delays),
        anticipation_days_total=sum(a.days for a in anticipations),
    )


def month_insights(
    year: int,
    month: int,
    forecast_windows: Iterable[ForecastWindow],
    observations: Iterable[Observation],
    config: CycleConfig | None = None,
) -> MonthInsights:
    """Summarise one calendar month of forecasts against observations."""
    windows = list(forecast_windows)
    snapshot = list(observations)
    month_start = date(year, month, 1)
    month_end = date(year, month, calendar.monthrange(year, month)[1])

    comparisons = compare_forecast_to_actual(windows, snapshot, month_start, month_end)
    offsets = compute_delays_and_anticipations(windows, snapshot, config)
    delays = [d for d in offsets.delays if month_start <= d.date <= month_end]
    anticipations = [a for a in offsets.anticipations if month_start <= a.date <= month_end]

    return MonthInsights(
        year=year,
        month=month,
        menstruation_days=sum(1 for c in comparisons if c.actual),
        predicted_days=sum(1 for c in comparisons if c.predicted),
        delays=len(delays),
        anticipations=len(anticipations),
        accuracy=compute_accuracy(comparisons, delays, anticipations),
    )


def analyze_corrections(
    forecast_windows: Iterable[ForecastWindow],
    corrections: Iterable[Correction],
) -> CycleAnalysis:
    """Score stored menstruation forecasts using the corrections recorded for them.

    Each correction is looked up by the forecast start it corrects.  A
    menstruation forecast without a correction counts as correct; other
    forecast kinds are ignored.
    """
    by_forecast_start = {c.original_predicted_date: c for c in corrections}

    analysis = CycleAnalysis()
    for window in forecast_windows:
        if window.kind is not ForecastKind.menstruation:
            continue
        correction = by_forecast_start.get(window.start)
        if correction is None:
            analysis.correct += 1
        elif correction.kind is CorrectionKind.delay:
            analysis.delays += 1
            analysis.delay_days += correction.days
        else:
            analysis.anticipations += 1
            analysis.anticipation_days += correction.days

    analysis.total_predictions = analysis.correct + analysis.delays + analysis.anticipations
    if analysis.total_predictions:
        percent = 100.0 * analysis.correct / analysis.total_predictions
        analysis.accuracy_percent = math.floor(percent * 10 + 0.5) / 10
    logger.debug(
        "Analyzed %d forecast(s): %d correct, %d delay(s), %d anticipation(s)",
        analysis.total_predictions, analysis.correct, analysis.delays, analysis.anticipations,
    )
    return analysis
