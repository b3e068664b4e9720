"""Pydantic request/response models for the cycle engine endpoints.

Observation payloads use the record store's camelCase keys
(``bleedingLevel``, ``hadIntercourse``); snake_case is accepted too.
Unknown tags are rejected here with a 422 before reaching the engine.
"""

from __future__ import annotations

from datetime import date

from pydantic import Field

from src.cycles.base import (
    BleedingLevel,
    CorrectionKind,
    DayClassification,
    ForecastKind,
    ForecastWindow,
    Mucus,
    Observation,
    Sensation,
)
from src.models.base import CyclewiseBase


# ---------- Observations ----------

class ObservationIn(CyclewiseBase):
    date: date
    bleeding_level: BleedingLevel = Field(default=BleedingLevel.none, alias="bleedingLevel")
    sensation: list[Sensation] = Field(default_factory=list)
    mucus: list[Mucus] = Field(default_factory=list)
    had_intercourse: bool = Field(default=False, alias="hadIntercourse")
    note: str | None = None

    def to_domain(self) -> Observation:
        return Observation(
            date=self.date,
            bleeding_level=self.bleeding_level,
            sensation=frozenset(self.sensation),
            mucus=frozenset(self.mucus),
            had_intercourse=self.had_intercourse,
            note=self.note,
        )


class ObservationBatch(CyclewiseBase):
    observations: list[ObservationIn] = Field(default_factory=list)
    as_of: date | None = None

    def to_domain(self) -> list[Observation]:
        return [o.to_domain() for o in self.observations]


# ---------- Forecast windows ----------

class ForecastWindowSchema(CyclewiseBase):
    start: date
    end: date
    kind: ForecastKind
    confidence: float = Field(ge=0.0, le=1.0)

    def to_domain(self) -> ForecastWindow:
        return ForecastWindow(
            start=self.start, end=self.end, kind=self.kind, confidence=self.confidence
        )


# ---------- Requests ----------

class StatsRequest(ObservationBatch):
    lookback_months: int | None = Field(default=None, ge=1, le=24)


class ForecastRequest(StatsRequest):
    count: int | None = Field(default=None, ge=0, le=24)
    months: int | None = Field(default=None, ge=0, le=24)


class TargetDateRequest(ObservationBatch):
    target_date: date | None = None


class AccuracyRequest(ObservationBatch):
    forecasts: list[ForecastWindowSchema] = Field(default_factory=list)
    range_start: date
    range_end: date


class InsightsRequest(ObservationBatch):
    forecasts: list[ForecastWindowSchema] = Field(default_factory=list)
    year: int = Field(ge=1900, le=2200)
    month: int = Field(ge=1, le=12)


# ---------- Responses ----------

class PeriodRead(CyclewiseBase):
    start: date
    end: date
    duration_days: int


class OvulationEpisodeRead(CyclewiseBase):
    days: list[date]


class DetectionRead(CyclewiseBase):
    periods: list[PeriodRead]
    ovulation_episodes: list[OvulationEpisodeRead]


class StatsRead(CyclewiseBase):
    average_cycle_length: int
    average_bleed_duration: int
    periods: list[PeriodRead]
    cycle_lengths: list[int]
    bleed_durations: list[int]
    lookback_start: date | None = None
    as_of: date | None = None


class LutealIntervalRead(CyclewiseBase):
    start: date
    end: date
    ovulation_last_day: date


class LutealRead(CyclewiseBase):
    target_date: date
    luteal_day: int | None = None
    intervals: list[LutealIntervalRead]


class CycleDayRead(CyclewiseBase):
    target_date: date
    cycle_day: int | None = None


class DayComparisonRead(CyclewiseBase):
    date: date
    predicted: bool
    actual: bool
    classification: DayClassification


class DateOffsetRead(CyclewiseBase):
    date: date
    days: int


class CorrectionRead(CyclewiseBase):
    original_predicted_date: date
    actual_date: date
    kind: CorrectionKind
    days: int


class AccuracyReportRead(CyclewiseBase):
    accuracy_percent: float
    total_days: int
    correct: int
    false_positives: int
    false_negatives: int
    delay_days_total: int
    anticipation_days_total: int


class AccuracyRead(CyclewiseBase):
    report: AccuracyReportRead
    comparisons: list[DayComparisonRead]
    delays: list[DateOffsetRead]
    anticipations: list[DateOffsetRead]
    corrections: list[CorrectionRead]


class MonthInsightsRead(CyclewiseBase):
    year: int
    month: int
    menstruation_days: int
    predicted_days: int
    delays: int
    anticipations: int
    accuracy: AccuracyReportRead
