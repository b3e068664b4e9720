"""Exception hierarchy for the cycle engine.

Only genuinely invalid input raises.  Missing data degrades to documented
defaults (28-day cycle, 5-day bleed, empty lists, ``None``) instead.
"""

from __future__ import annotations


class CycleEngineError(ValueError):
    """Base class for all cycle engine input errors."""

    code: str = "CYCLE_ENGINE_ERROR"


class InvalidObservationError(CycleEngineError):
    """Raised when an observation record has a malformed date or unknown tag."""

    code = "INVALID_OBSERVATION"


class InvalidForecastError(CycleEngineError):
    """Raised for a negative forecast count or non-positive cycle parameters."""

    code = "INVALID_FORECAST"


class InvalidLookbackError(CycleEngineError):
    """Raised when the lookback window is not a positive number of months."""

    code = "INVALID_LOOKBACK"
