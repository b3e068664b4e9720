"""Tests for the in-memory observation and forecast stores."""

from __future__ import annotations

from datetime import date

import pytest

from src.cycles.base import (
    BleedingLevel,
    Correction,
    CorrectionKind,
    ForecastKind,
    ForecastWindow,
)
from src.cycles.errors import InvalidObservationError
from src.cycles.store import InMemoryForecastStore, InMemoryObservationStore
from src.cycles.tests.conftest import bleed, bleeding_run, dry


def window(start: date, kind: ForecastKind = ForecastKind.menstruation, confidence: float = 0.8) -> ForecastWindow:
    return ForecastWindow(start, start, kind, confidence)


class TestObservationStore:
    def test_upsert_replaces_same_day(self) -> None:
        store = InMemoryObservationStore([dry(date(2025, 1, 1))])
        store.upsert(bleed(date(2025, 1, 1), BleedingLevel.spotting))
        assert len(store) == 1
        assert store.get(date(2025, 1, 1)).bleeding_level is BleedingLevel.spotting

    def test_list_range_inclusive_and_sorted(self) -> None:
        store = InMemoryObservationStore(reversed(bleeding_run(date(2025, 1, 1), 10)))
        rows = store.list_range(date(2025, 1, 3), date(2025, 1, 5))
        assert [o.date for o in rows] == [date(2025, 1, 3), date(2025, 1, 4), date(2025, 1, 5)]

    def test_missing_day(self) -> None:
        assert InMemoryObservationStore().get(date(2025, 1, 1)) is None

    def test_from_records(self) -> None:
        store = InMemoryObservationStore.from_records(
            [
                {"date": "2025-01-01", "bleedingLevel": "heavy"},
                {"date": "2025-01-02", "bleedingLevel": "spotting"},
            ]
        )
        assert len(store) == 2
        assert store.get(date(2025, 1, 2)).is_bleeding_day

    def test_from_records_rejects_bad_rows(self) -> None:
        with pytest.raises(InvalidObservationError):
            InMemoryObservationStore.from_records([{"date": "2025-01-01", "sensation": ["wet"]}])


class TestForecastStore:
    def test_upsert_is_keyed_by_start_and_kind(self) -> None:
        store = InMemoryForecastStore()
        store.upsert_forecasts([window(date(2025, 3, 1)), window(date(2025, 3, 1), ForecastKind.ovulation)])
        store.upsert_forecasts([window(date(2025, 3, 1), confidence=0.5)])
        stored = store.list_forecasts()
        assert len(stored) == 2
        menstruation = [w for w in stored if w.kind is ForecastKind.menstruation]
        assert menstruation[0].confidence == 0.5

    def test_list_forecasts_filters_by_start(self) -> None:
        store = InMemoryForecastStore()
        store.upsert_forecasts(window(date(2025, m, 1)) for m in (1, 2, 3, 4))
        starts = [w.start for w in store.list_forecasts(start=date(2025, 2, 1), end=date(2025, 3, 1))]
        assert starts == [date(2025, 2, 1), date(2025, 3, 1)]

    def test_discard_future_forecasts(self) -> None:
        store = InMemoryForecastStore()
        store.upsert_forecasts(window(date(2025, m, 1)) for m in (1, 2, 3))
        removed = store.discard_forecasts(after=date(2025, 2, 1))
        assert removed == 1
        assert [w.start for w in store.list_forecasts()] == [date(2025, 1, 1), date(2025, 2, 1)]

    def test_corrections_deduplicated(self) -> None:
        store = InMemoryForecastStore()
        delay = Correction(date(2025, 3, 1), date(2025, 3, 4), CorrectionKind.delay)
        anticipation = Correction(date(2025, 3, 1), date(2025, 2, 27), CorrectionKind.anticipation)
        assert store.upsert_corrections([delay, anticipation]) == 2
        store.upsert_corrections([delay])
        assert store.list_corrections() == [anticipation, delay]

    def test_discard_corrections_in_range(self) -> None:
        store = InMemoryForecastStore()
        early = Correction(date(2025, 1, 29), date(2025, 2, 2), CorrectionKind.delay)
        delay = Correction(date(2025, 3, 1), date(2025, 3, 4), CorrectionKind.delay)
        anticipation = Correction(date(2025, 4, 1), date(2025, 3, 29), CorrectionKind.anticipation)
        store.upsert_corrections([early, delay, anticipation])

        removed = store.discard_corrections(date(2025, 2, 1), date(2025, 3, 29))
        assert removed == 2
        assert store.list_corrections() == [early]
