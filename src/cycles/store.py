"""Record-store interfaces consumed by the cycle engine, plus in-memory versions.

The engine itself never performs I/O.  Callers (and ``CycleEngine.refresh``)
read observations through an ``ObservationStore`` and persist derived
forecasts and corrections through a ``ForecastStore``.

Dedup keys (recomputation overwrites the row with the same key):
    - observations: date, one record per calendar day
    - forecasts:    (window start, kind)
    - corrections:  (key date, kind)

The in-memory stores back the tests and short-lived sessions; a database
adapter implements the same ABCs with UNIQUE constraints on the same keys.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Iterable, Mapping

from src.cycles.base import (
    Correction,
    CorrectionKind,
    ForecastKind,
    ForecastWindow,
    Observation,
    parse_observation,
)

logger = logging.getLogger("cyclewise.cycles.store")


def forecast_key(window: ForecastWindow) -> tuple[date, ForecastKind]:
    """Upsert key for a forecast window: (start, kind)."""
    return (window.start, window.kind)


def correction_key(correction: Correction) -> tuple[date, CorrectionKind]:
    """Upsert key for a correction: (key date, kind)."""
    return (correction.date, correction.kind)


# ---------------------------------------------------------------------------
# Abstract interfaces
# ---------------------------------------------------------------------------


class ObservationStore(ABC):
    """Read/write access to daily observations keyed by date."""

    @abstractmethod
    def get(self, day: date) -> Observation | None:
        """Return the observation for ``day`` or None."""

    @abstractmethod
    def list_range(self, start: date, end: date) -> list[Observation]:
        """Return observations in ``[start, end]``, oldest first."""

    @abstractmethod
    def upsert(self, observation: Observation) -> None:
        """Insert or replace the observation for its date."""


class ForecastStore(ABC):
    """Durable storage for generated forecasts and corrections."""

    @abstractmethod
    def upsert_forecasts(self, windows: Iterable[ForecastWindow]) -> int:
        """Insert or replace forecast windows keyed by (start, kind).

        Returns:
            Number of windows written.
        """

    @abstractmethod
    def upsert_corrections(self, corrections: Iterable[Correction]) -> int:
        """Insert or replace corrections keyed by (key date, kind).

        Returns:
            Number of corrections written.
        """

    @abstractmethod
    def list_forecasts(
        self, start: date | None = None, end: date | None = None
    ) -> list[ForecastWindow]:
        """Return stored forecast windows starting in ``[start, end]``."""

    @abstractmethod
    def discard_forecasts(self, after: date) -> int:
        """Delete forecast windows starting after ``after``.

        Called before writing a fresh forecast so superseded future windows
        do not linger.  Past windows are kept for accuracy tracking.

        Returns:
            Number of windows removed.
        """

    @abstractmethod
    def discard_corrections(self, start: date, end: date) -> int:
        """Delete corrections whose key date lies in ``[start, end]``.

        Called before writing recomputed corrections for that span so a
        forecast that is no longer off does not keep a stale record.

        Returns:
            Number of corrections removed.
        """

    @abstractmethod
    def list_corrections(self) -> list[Correction]:
        """Return all stored corrections ordered by key date."""


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class InMemoryObservationStore(ObservationStore):
    """Dict-backed observation store.

    Usage::

        store = InMemoryObservationStore.from_records(rows)
        history = store.list_range(date(2025, 1, 1), date(2025, 6, 30))
    """

    def __init__(self, observations: Iterable[Observation] = ()) -> None:
        self._rows: dict[date, Observation] = {}
        for observation in observations:
            self.upsert(observation)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "InMemoryObservationStore":
        """Build a store from raw records, validating each one."""
        return cls(parse_observation(r) for r in records)

    def get(self, day: date) -> Observation | None:
        return self._rows.get(day)

    def list_range(self, start: date, end: date) -> list[Observation]:
        return [self._rows[d] for d in sorted(self._rows) if start <= d <= end]

    def upsert(self, observation: Observation) -> None:
        self._rows[observation.date] = observation

    def __len__(self) -> int:
        return len(self._rows)


class InMemoryForecastStore(ForecastStore):
    """Dict-backed forecast/correction store with upsert semantics."""

    def __init__(self) -> None:
        self._forecasts: dict[tuple[date, ForecastKind], ForecastWindow] = {}
        self._corrections: dict[tuple[date, CorrectionKind], Correction] = {}

    def upsert_forecasts(self, windows: Iterable[ForecastWindow]) -> int:
        written = 0
        for window in windows:
            self._forecasts[forecast_key(window)] = window
            written += 1
        logger.debug("Upserted %d forecast window(s); %d stored", written, len(self._forecasts))
        return written

    def upsert_corrections(self, corrections: Iterable[Correction]) -> int:
        written = 0
        for correction in corrections:
            self._corrections[correction_key(correction)] = correction
            written += 1
        logger.debug("Upserted %d correction(s); %d stored", written, len(self._corrections))
        return written

    def list_forecasts(
        self, start: date | None = None, end: date | None = None
    ) -> list[ForecastWindow]:
        return [
            self._forecasts[key]
            for key in sorted(self._forecasts, key=lambda k: (k[0], k[1].value))
            if (start is None or key[0] >= start) and (end is None or key[0] <= end)
        ]

    def discard_forecasts(self, after: date) -> int:
        stale = [key for key in self._forecasts if key[0] > after]
        for key in stale:
            del self._forecasts[key]
        return len(stale)

    def discard_corrections(self, start: date, end: date) -> int:
        stale = [key for key in self._corrections if start <= key[0] <= end]
        for key in stale:
            del self._corrections[key]
        return len(stale)

    def list_corrections(self) -> list[Correction]:
        return [
            self._corrections[key]
            for key in sorted(self._corrections, key=lambda k: (k[0], k[1].value))
        ]
