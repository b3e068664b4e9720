"""Shared fixtures and observation builders for cycle engine tests."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from src.cycles.base import BleedingLevel, Mucus, Observation, Sensation
from src.cycles.config_loader import CycleConfig, load_cycle_config

# Reference "today" used throughout the suite
AS_OF = date(2025, 2, 15)


# ---------------------------------------------------------------------------
# Observation builders
# ---------------------------------------------------------------------------


def bleed(day: date, level: BleedingLevel = BleedingLevel.heavy) -> Observation:
    return Observation(date=day, bleeding_level=level)


def bleeding_run(start: date, days: int, level: BleedingLevel = BleedingLevel.heavy) -> list[Observation]:
    """``days`` consecutive bleeding observations starting at ``start``."""
    return [bleed(start + timedelta(days=i), level) for i in range(days)]


def fertile(day: date) -> Observation:
    """A day with slippery sensation and stretchy mucus."""
    return Observation(
        date=day,
        sensation=frozenset({Sensation.slippery}),
        mucus=frozenset({Mucus.stretchy}),
    )


def fertile_run(start: date, days: int) -> list[Observation]:
    return [fertile(start + timedelta(days=i)) for i in range(days)]


def dry(day: date) -> Observation:
    return Observation(date=day, sensation=frozenset({Sensation.dry}))


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cycle_config() -> CycleConfig:
    """Load the real cycle config for tests."""
    return load_cycle_config()


# ---------------------------------------------------------------------------
# Observation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def two_periods() -> list[Observation]:
    """Jan 1-5 and Jan 29-Feb 2, 2025: one 28-day cycle, 5-day bleeds."""
    return bleeding_run(date(2025, 1, 1), 5) + bleeding_run(date(2025, 1, 29), 5)


@pytest.fixture
def full_cycle() -> list[Observation]:
    """Two periods with an ovulation episode (Jan 13-15) between them."""
    return (
        bleeding_run(date(2025, 1, 1), 5)
        + [dry(date(2025, 1, 8))]
        + fertile_run(date(2025, 1, 13), 3)
        + bleeding_run(date(2025, 1, 29), 5)
    )
