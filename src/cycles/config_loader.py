"""Load, validate, and hot-reload the cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  It is loaded
once and cached; call ``reload_cycle_config()`` to re-read it from disk.

Usage::

    from src.cycles.config_loader import get_cycle_config

    config = get_cycle_config()
    config.detection.period_merge_gap_days           # 2
    config.forecast.confidence_for("menstruation")   # 0.8
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from src.cycles.base import ForecastKind, Mucus, Sensation

logger = logging.getLogger("cyclewise.cycles.config")

_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class DetectionConfig:
    """Period / ovulation grouping and luteal-phase settings."""

    period_merge_gap_days: int = 2
    ovulation_merge_gap_days: int = 3
    fertile_sensations: frozenset[Sensation] = frozenset({Sensation.slippery})
    fertile_mucus: frozenset[Mucus] = frozenset({Mucus.stretchy, Mucus.clear})
    luteal_offset_days: int = 4
    max_cycle_days: int = 60


@dataclass
class StatisticsConfig:
    """Defaults used when history is too thin to average."""

    default_cycle_length: int = 28
    default_bleed_duration: int = 5
    default_lookback_months: int = 6
    min_lookback_months: int = 1
    max_lookback_months: int = 24


@dataclass
class ForecastConfig:
    """Forecast horizon and per-kind confidence heuristics."""

    default_cycles: int = 6
    fertile_half_width_days: int = 3
    confidence: dict[ForecastKind, float] = field(
        default_factory=lambda: {
            ForecastKind.menstruation: 0.8,
            ForecastKind.end_menstruation: 0.7,
            ForecastKind.ovulation: 0.7,
            ForecastKind.fertile: 0.6,
        }
    )

    def confidence_for(self, kind: ForecastKind | str) -> float:
        return self.confidence.get(ForecastKind(kind), 0.0)


@dataclass
class AccuracyConfig:
    """Forecast-to-actual matching tolerances."""

    match_tolerance_days: int = 1
    max_match_distance_days: int = 10


@dataclass
class CycleConfig:
    """Complete, validated cycle engine configuration.

    Attributes:
        version:    Config schema version string.
        detection:  Period / ovulation grouping settings.
        statistics: Averaging defaults and lookback bounds.
        forecast:   Forecast horizon and confidence constants.
        accuracy:   Forecast matching tolerances.
    """

    version: str = "1.0"
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    statistics: StatisticsConfig = field(default_factory=StatisticsConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)
    accuracy: AccuracyConfig = field(default_factory=AccuracyConfig)
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Missing sections fall back to defaults.  All problems are collected and
    reported together.

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, name: str, minimum: int = 0) -> int:
        value = section.get(key, default)
        try:
            number = int(value)
        except (TypeError, ValueError):
            errors.append(f"{name}.{key} must be an integer, got {value!r}")
            return default
        if number < minimum:
            errors.append(f"{name}.{key} = {number} is below the minimum of {minimum}")
        return number

    def _tags(section: dict, key: str, enum_cls: type, default: frozenset, name: str) -> frozenset:
        values = section.get(key)
        if values is None:
            return default
        tags = set()
        for item in values:
            try:
                tags.add(enum_cls(item))
            except ValueError:
                errors.append(f"{name}.{key} has unknown tag {item!r}")
        if not tags:
            errors.append(f"{name}.{key} must list at least one tag")
        return frozenset(tags)

    version = str(raw.get("version", "1.0"))

    # ── Detection ──
    det_raw = raw.get("detection") or {}
    det_default = DetectionConfig()
    detection = DetectionConfig(
        period_merge_gap_days=_int(det_raw, "period_merge_gap_days", 2, "detection", 1),
        ovulation_merge_gap_days=_int(det_raw, "ovulation_merge_gap_days", 3, "detection", 1),
        fertile_sensations=_tags(
            det_raw, "fertile_sensations", Sensation, det_default.fertile_sensations, "detection"
        ),
        fertile_mucus=_tags(det_raw, "fertile_mucus", Mucus, det_default.fertile_mucus, "detection"),
        luteal_offset_days=_int(det_raw, "luteal_offset_days", 4, "detection", 1),
        max_cycle_days=_int(det_raw, "max_cycle_days", 60, "detection", 1),
    )

    # ── Statistics ──
    st_raw = raw.get("statistics") or {}
    statistics = StatisticsConfig(
        default_cycle_length=_int(st_raw, "default_cycle_length", 28, "statistics", 1),
        default_bleed_duration=_int(st_raw, "default_bleed_duration", 5, "statistics", 1),
        default_lookback_months=_int(st_raw, "default_lookback_months", 6, "statistics", 1),
        min_lookback_months=_int(st_raw, "min_lookback_months", 1, "statistics", 1),
        max_lookback_months=_int(st_raw, "max_lookback_months", 24, "statistics", 1),
    )
    if not (
        statistics.min_lookback_months
        <= statistics.default_lookback_months
        <= statistics.max_lookback_months
    ):
        errors.append(
            "statistics.default_lookback_months must lie between "
            "min_lookback_months and max_lookback_months"
        )

    # ── Forecast ──
    fc_raw = raw.get("forecast") or {}
    confidence = ForecastConfig().confidence
    for kind, value in (fc_raw.get("confidence") or {}).items():
        try:
            forecast_kind = ForecastKind(kind)
        except ValueError:
            errors.append(f"forecast.confidence has unknown kind {kind!r}")
            continue
        try:
            score = float(value)
        except (TypeError, ValueError):
            errors.append(f"forecast.confidence.{kind} must be a number, got {value!r}")
            continue
        if not (0.0 <= score <= 1.0):
            errors.append(f"forecast.confidence.{kind} = {score} is out of range [0.0, 1.0]")
        confidence[forecast_kind] = score
    forecast = ForecastConfig(
        default_cycles=_int(fc_raw, "default_cycles", 6, "forecast"),
        fertile_half_width_days=_int(fc_raw, "fertile_half_width_days", 3, "forecast"),
        confidence=confidence,
    )

    # ── Accuracy ──
    ac_raw = raw.get("accuracy") or {}
    accuracy = AccuracyConfig(
        match_tolerance_days=_int(ac_raw, "match_tolerance_days", 1, "accuracy"),
        max_match_distance_days=_int(ac_raw, "max_match_distance_days", 10, "accuracy"),
    )
    if accuracy.match_tolerance_days > accuracy.max_match_distance_days:
        errors.append(
            "accuracy.match_tolerance_days must not exceed accuracy.max_match_distance_days"
        )

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        detection=detection,
        statistics=statistics,
        forecast=forecast,
        accuracy=accuracy,
        _raw=raw,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Reload the config from disk and replace the global singleton.

    If validation fails the old config is retained and the error re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config

