"""Canonical data models for the Cyclewise cycle engine.

Observations arrive from the external record store keyed by date.  Every
other type here (periods, ovulation episodes, statistics, forecast windows,
corrections, day comparisons) is derived on demand from an observation
snapshot and holds no state across calls.

``parse_observation`` is the input boundary: store records are converted to
``Observation`` instances here, and unrecognised enum tags or malformed dates
are rejected before they reach the detectors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterator, Mapping

from dateutil.parser import isoparse

from src.cycles.errors import InvalidObservationError

logger = logging.getLogger("cyclewise.cycles")


# ---------------------------------------------------------------------------
# Observation tags
# ---------------------------------------------------------------------------


class BleedingLevel(str, Enum):
    none = "none"
    spotting = "spotting"
    heavy = "heavy"


class Sensation(str, Enum):
    dry = "dry"
    moist = "moist"
    sticky = "sticky"
    slippery = "slippery"


class Mucus(str, Enum):
    egg_white = "eggWhite"
    clear = "clear"
    stretchy = "stretchy"
    thick = "thick"
    sticky = "sticky"
    white = "white"


BLEEDING_LEVELS = frozenset({BleedingLevel.spotting, BleedingLevel.heavy})


# ---------------------------------------------------------------------------
# Observation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Observation:
    """One day of user-entered fertility observations.

    Attributes:
        date:            Calendar date (unique key in the record store).
        bleeding_level:  none / spotting / heavy.
        sensation:       Vulvar sensations felt during the day.
        mucus:           Cervical mucus characteristics seen during the day.
        had_intercourse: Whether intercourse was recorded.
        note:            Free-text note.
    """

    date: date
    bleeding_level: BleedingLevel = BleedingLevel.none
    sensation: frozenset[Sensation] = frozenset()
    mucus: frozenset[Mucus] = frozenset()
    had_intercourse: bool = False
    note: str | None = None

    @property
    def is_bleeding_day(self) -> bool:
        return self.bleeding_level in BLEEDING_LEVELS

    def has_fertile_signs(
        self,
        sensations: frozenset[Sensation] = frozenset({Sensation.slippery}),
        mucus: frozenset[Mucus] = frozenset({Mucus.stretchy, Mucus.clear}),
    ) -> bool:
        """True when every required sensation is present and any fertile mucus is."""
        return sensations <= self.sensation and bool(self.mucus & mucus)


# ---------------------------------------------------------------------------
# Derived cycle structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Period:
    """A detected menstruation period (inclusive on both ends)."""

    start: date
    end: date

    @property
    def duration_days(self) -> int:
        return (self.end - self.start).days + 1

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class OvulationEpisode:
    """A run of days bearing fertile biomarkers, oldest first."""

    days: tuple[date, ...]

    @property
    def first_day(self) -> date:
        return self.days[0]

    @property
    def last_day(self) -> date:
        return self.days[-1]


@dataclass
class CycleStats:
    """Cycle statistics over a lookback window.

    Attributes:
        average_cycle_length:   Mean start-to-start distance, rounded half-up.
        average_bleed_duration: Mean period duration, rounded half-up.
        periods:                Periods detected inside the lookback window.
        cycle_lengths:          Individual start-to-start samples.
        bleed_durations:        Individual duration samples.
        lookback_start:         First date of the lookback window.
        as_of:                  Reference date the window ends on.
    """

    average_cycle_length: int = 28
    average_bleed_duration: int = 5
    periods: list[Period] = field(default_factory=list)
    cycle_lengths: list[int] = field(default_factory=list)
    bleed_durations: list[int] = field(default_factory=list)
    lookback_start: date | None = None
    as_of: date | None = None

    @property
    def last_period(self) -> Period | None:
        return self.periods[-1] if self.periods else None


# ---------------------------------------------------------------------------
# Forecasts and corrections
# ---------------------------------------------------------------------------


class ForecastKind(str, Enum):
    menstruation = "menstruation"
    end_menstruation = "end_menstruation"
    ovulation = "ovulation"
    fertile = "fertile"


@dataclass(frozen=True)
class ForecastWindow:
    """A predicted date range for one kind of cycle event."""

    start: date
    end: date
    kind: ForecastKind
    confidence: float

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days + 1

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class CorrectionKind(str, Enum):
    delay = "delay"
    anticipation = "anticipation"


@dataclass(frozen=True)
class DateOffset:
    """A delay or anticipation: the key date and its size in days."""

    date: date
    days: int


@dataclass(frozen=True)
class Correction:
    """A forecast that diverged from the observed period start.

    Attributes:
        original_predicted_date: Forecast window start.
        actual_date:             Observed bleeding window start.
        kind:                    delay (came later) or anticipation (came earlier).
    """

    original_predicted_date: date
    actual_date: date
    kind: CorrectionKind

    @property
    def days(self) -> int:
        return abs((self.actual_date - self.original_predicted_date).days)

    @property
    def date(self) -> date:
        if self.kind is CorrectionKind.delay:
            return self.original_predicted_date
        return self.actual_date


class DayClassification(str, Enum):
    correct = "correct"
    false_positive = "false_positive"
    false_negative = "false_negative"
    true_negative = "true_negative"


@dataclass(frozen=True)
class DayComparison:
    date: date
    predicted: bool
    actual: bool
    classification: DayClassification


@dataclass
class AccuracyReport:
    """Aggregate forecast accuracy.

    ``accuracy_percent`` is ``100 * correct / total_days`` where
    ``total_days`` counts only days that were predicted or observed.  With
    nothing to compare it is 100.
    """

    accuracy_percent: float = 100.0
    total_days: int = 0
    correct: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    delay_days_total: int = 0
    anticipation_days_total: int = 0


# ---------------------------------------------------------------------------
# Input boundary
# ---------------------------------------------------------------------------


def coerce_date(value: Any) -> date:
    """Convert a date, datetime or ISO 8601 string to a date.

    The whole string must parse; a timestamp is truncated to its date.

    Raises:
        InvalidObservationError: If the value cannot be read as a date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError) as exc:
            raise InvalidObservationError(f"Malformed date: {value!r}") from exc
    raise InvalidObservationError(f"Malformed date: {value!r}")


def _pick(record: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return default


def _parse_tags(raw: Any, enum_cls: type[Enum], field_name: str) -> frozenset:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        raw = [raw]
    tags = set()
    for item in raw:
        try:
            tags.add(enum_cls(item))
        except ValueError as exc:
            raise InvalidObservationError(
                f"Unknown {field_name} tag: {item!r}"
            ) from exc
    return frozenset(tags)


def parse_observation(record: Mapping[str, Any]) -> Observation:
    """Build an Observation from a record-store row.

    Accepts the store's camelCase keys (``bleedingLevel``, ``hadIntercourse``)
    as well as snake_case.  A missing bleeding level means no bleeding.

    Args:
        record: One stored observation row.

    Returns:
        Validated Observation.

    Raises:
        InvalidObservationError: On a missing/malformed date, an unknown tag or a
                                 non-boolean intercourse flag.
    """
    if "date" not in record:
        raise InvalidObservationError("Observation record has no date")
    day = coerce_date(record["date"])

    level_raw = _pick(record, "bleedingLevel", "bleeding_level")
    try:
        level = BleedingLevel(level_raw) if level_raw else BleedingLevel.none
    except ValueError as exc:
        raise InvalidObservationError(
            f"Unknown bleeding level on {day}: {level_raw!r}"
        ) from exc

    had_intercourse = _pick(record, "hadIntercourse", "had_intercourse")
    if had_intercourse is None:
        had_intercourse = False
    elif not isinstance(had_intercourse, bool):
        raise InvalidObservationError(
            f"hadIntercourse on {day} must be a boolean, got {had_intercourse!r}"
        )

    return Observation(
        date=day,
        bleeding_level=level,
        sensation=_parse_tags(record.get("sensation"), Sensation, "sensation"),
        mucus=_parse_tags(record.get("mucus"), Mucus, "mucus"),
        had_intercourse=had_intercourse,
        note=record.get("note"),
    )


def parse_observations(records: list[Mapping[str, Any]]) -> list[Observation]:
    return [parse_observation(r) for r in records]
