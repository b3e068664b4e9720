"""Cyclewise cycle inference and forecasting engine.

Pure, stateless computation over daily fertility observations.  Nothing in
this package performs I/O; "today" is always passed in (``as_of``) or
injected through ``CycleEngine(clock=...)``.

Modules:
    base            — Canonical observation / period / forecast models
    config_loader   — Load/validate/hot-reload cycle_config.yaml
    period_detector — Menstruation periods, ovulation episodes, cycle day
    cycle_stats     — Average cycle length and bleed duration
    luteal_phase    — Luteal-phase intervals and day numbering
    forecast        — Future menstruation / ovulation / fertile windows
    accuracy        — Forecast vs. observed comparison and accuracy
    store           — Record-store interfaces and in-memory stores
    engine          — CycleEngine facade with injectable clock
"""

from src.cycles.accuracy import CycleAnalysis
from src.cycles.base import (
    AccuracyReport,
    BleedingLevel,
    Correction,
    CycleStats,
    DayComparison,
    ForecastKind,
    ForecastWindow,
    Mucus,
    Observation,
    OvulationEpisode,
    Period,
    Sensation,
    parse_observation,
)
from src.cycles.config_loader import CycleConfig, get_cycle_config
from src.cycles.engine import CycleEngine, Evaluation
from src.cycles.errors import CycleEngineError

__all__ = [
    "AccuracyReport",
    "BleedingLevel",
    "Correction",
    "CycleAnalysis",
    "CycleConfig",
    "CycleEngine",
    "CycleEngineError",
    "CycleStats",
    "DayComparison",
    "Evaluation",
    "ForecastKind",
    "ForecastWindow",
    "Mucus",
    "Observation",
    "OvulationEpisode",
    "Period",
    "Sensation",
    "get_cycle_config",
    "parse_observation",
]
