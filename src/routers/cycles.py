"""Stateless cycle engine endpoints.

Every request carries the observation snapshot it should be computed from,
plus an optional ``as_of`` reference date (defaults to today).  Nothing is
read from or written to storage here.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter

from src.cycles.engine import CycleEngine
from src.dependencies import AppSettings, Today
from src.models.cycles import (
    AccuracyRead,
    AccuracyReportRead,
    AccuracyRequest,
    CorrectionRead,
    CycleDayRead,
    DateOffsetRead,
    DayComparisonRead,
    DetectionRead,
    ForecastRequest,
    ForecastWindowSchema,
    InsightsRequest,
    LutealIntervalRead,
    LutealRead,
    MonthInsightsRead,
    ObservationBatch,
    OvulationEpisodeRead,
    PeriodRead,
    StatsRead,
    StatsRequest,
    TargetDateRequest,
)

router = APIRouter(prefix="/cycles", tags=["cycles"])
logger = logging.getLogger("cyclewise.routers.cycles")


def _engine(body: ObservationBatch, today: Today) -> CycleEngine:
    reference = body.as_of or today
    return CycleEngine(clock=lambda: reference)


@router.post("/periods", response_model=DetectionRead)
async def detect_periods(body: ObservationBatch, today: Today) -> DetectionRead:
    engine = _engine(body, today)
    observations = body.to_domain()
    return DetectionRead(
        periods=[PeriodRead.model_validate(p) for p in engine.periods(observations)],
        ovulation_episodes=[
            OvulationEpisodeRead(days=list(e.days))
            for e in engine.ovulation_episodes(observations)
        ],
    )


@router.post("/stats", response_model=StatsRead)
async def cycle_stats(body: StatsRequest, settings: AppSettings, today: Today) -> StatsRead:
    engine = _engine(body, today)
    stats = engine.stats(body.to_domain(), body.lookback_months or settings.lookback_months)
    return StatsRead(
        average_cycle_length=stats.average_cycle_length,
        average_bleed_duration=stats.average_bleed_duration,
        periods=[PeriodRead.model_validate(p) for p in stats.periods],
        cycle_lengths=stats.cycle_lengths,
        bleed_durations=stats.bleed_durations,
        lookback_start=stats.lookback_start,
        as_of=stats.as_of,
    )


@router.post("/forecast", response_model=list[ForecastWindowSchema])
async def forecast(
    body: ForecastRequest, settings: AppSettings, today: Today
) -> list[ForecastWindowSchema]:
    engine = _engine(body, today)
    lookback = body.lookback_months or settings.lookback_months
    if body.months is not None:
        windows = engine.forecast_months(body.to_domain(), body.months, lookback)
    else:
        count = settings.forecast_cycles if body.count is None else body.count
        windows = engine.forecast(body.to_domain(), count, lookback)
    return [ForecastWindowSchema.model_validate(w) for w in windows]


@router.post("/luteal", response_model=LutealRead)
async def luteal_phase(body: TargetDateRequest, today: Today) -> LutealRead:
    engine = _engine(body, today)
    observations = body.to_domain()
    target = body.target_date or engine.today()
    return LutealRead(
        target_date=target,
        luteal_day=engine.luteal_day(target, observations),
        intervals=[
            LutealIntervalRead.model_validate(i) for i in engine.luteal_intervals(observations)
        ],
    )


@router.post("/cycle-day", response_model=CycleDayRead)
async def cycle_day(body: TargetDateRequest, today: Today) -> CycleDayRead:
    engine = _engine(body, today)
    target = body.target_date or engine.today()
    return CycleDayRead(target_date=target, cycle_day=engine.cycle_day(target, body.to_domain()))


@router.post("/accuracy", response_model=AccuracyRead)
async def accuracy(body: AccuracyRequest, today: Today) -> AccuracyRead:
    engine = _engine(body, today)
    evaluation = engine.evaluate(
        [w.to_domain() for w in body.forecasts],
        body.to_domain(),
        body.range_start,
        body.range_end,
    )
    logger.debug("Accuracy request produced %d correction(s)", len(evaluation.corrections))
    return AccuracyRead(
        report=AccuracyReportRead.model_validate(evaluation.report),
        comparisons=[DayComparisonRead.model_validate(c) for c in evaluation.comparisons],
        delays=[DateOffsetRead.model_validate(d) for d in evaluation.offsets.delays],
        anticipations=[
            DateOffsetRead.model_validate(a) for a in evaluation.offsets.anticipations
        ],
        corrections=[CorrectionRead.model_validate(c) for c in evaluation.corrections],
    )


@router.post("/insights", response_model=MonthInsightsRead)
async def insights(body: InsightsRequest, today: Today) -> MonthInsightsRead:
    engine = _engine(body, today)
    result = engine.month_insights(
        body.year, body.month, [w.to_domain() for w in body.forecasts], body.to_domain()
    )
    return MonthInsightsRead(
        year=result.year,
        month=result.month,
        menstruation_days=result.menstruation_days,
        predicted_days=result.predicted_days,
        delays=result.delays,
        anticipations=result.anticipations,
        accuracy=AccuracyReportRead.model_validate(result.accuracy),
    )
