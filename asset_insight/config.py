"""
Settings for every engine, read from TOML with environment overrides.

Sources, lowest precedence first:

  config/default.toml   thresholds and unit costs committed with the repo
  config/local.toml     per-machine overrides beside the chosen file (not committed)
  .env                  loaded into the environment without replacing set vars
  ASSET_INSIGHT_*       individual overrides, see ``_ENV_OVERRIDES``

``load_config()`` returns one frozen ``AppConfig``.  Each engine is handed its
own section (``AnomalyConfig``, ``RecommendationConfig``, ``DemandConfig``,
``WorkflowConfig``) when it is constructed and never looks at the environment.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any, Callable, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

logger = logging.getLogger(__name__)

# ── Sub-config models ─────────────────────────────────────────────────────────


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AnomalyConfig(BaseModel):
    """Thresholds for the statistical anomaly detectors.

    Ratios are fractions (0.8 = 80%).  ``*_high`` values are the boundary
    above which a finding is escalated from ``medium`` to ``high`` severity.
    """

    model_config = ConfigDict(frozen=True)

    # Maintenance frequency (z-score of the latest interval)
    min_maintenance_events: int = 3
    maintenance_z_threshold: float = 0.7
    maintenance_z_high: float = 2.0
    maintenance_z_scale: float = 3.0     # confidence = min(|z| / scale, 1)

    # Maintenance cost pattern
    min_cost_samples: int = 3
    cost_recent_window: int = 3
    cost_increase_threshold: float = 0.8
    cost_increase_high: float = 0.5

    # Performance degradation
    performance_lifespan_years: float = 7.0
    performance_floor: float = 0.1
    performance_gap_threshold: float = 0.3
    performance_gap_high: float = 0.6
    status_scores: dict[str, float] = {
        "Good": 1.0, "Fair": 0.6, "Poor": 0.2, "InRepair": 0.1,
    }
    unknown_status_score: float = 0.5

    # Usage
    usage_window: int = 10
    usage_min_events: int = 2
    usage_confidence: float = 0.7

    # Software licenses
    license_under_ratio: float = 0.3
    license_under_min_stock: int = 5
    license_under_confidence: float = 0.8
    license_over_ratio: float = 0.9
    license_over_confidence: float = 0.9
    expiry_warning_days: int = 30
    expiry_critical_days: int = 7

    # Company-level costs
    trend_window_months: int = 3
    cost_trend_threshold: float = 0.2
    cost_trend_high: float = 0.5
    budget_variance_threshold: float = 0.1
    budget_variance_high: float = 0.2

    @field_validator("status_scores")
    @classmethod
    def validate_status_scores(cls, v: dict[str, float]) -> dict[str, float]:
        for status, score in v.items():
            if not 0.0 <= score <= 1.0:
                raise ValueError(f"status score for '{status}' must be in [0, 1], got {score}.")
        return v


class RecommendationConfig(BaseModel):
    """Thresholds and confidences for the heuristic recommendation generators."""

    model_config = ConfigDict(frozen=True)

    # Equipment
    maintenance_min_age_years: float = 2.0
    maintenance_overdue_days: int = 180
    never_maintained_days: int = 999
    replacement_age_years: float = 5.0
    replacement_urgent_age_years: float = 7.0
    maintenance_cost_ratio: float = 0.5
    replacement_cost_factor: float = 0.8
    optimization_window: int = 10
    optimization_min_events: int = 3
    upgrade_min_age_years: float = 3.0
    upgrade_max_age_years: float = 5.0

    # Software
    license_optimization_ratio: float = 0.5
    license_optimization_min_stock: int = 3
    license_annual_unit_cost: float = 100.0
    renewal_window_days: int = 90
    renewal_urgent_days: int = 30

    # Company-level
    budget_alert_utilization: float = 0.9
    trend_window_months: int = 3
    cost_trend_threshold: float = 0.15
    cost_trend_high: float = 0.3
    forecast_months_ahead: int = 6
    roi_target: float = 0.10
    roi_portfolio_target: float = 0.15

    # Per-generator confidence (keyed by RecommendationType value)
    confidences: dict[str, float] = {
        "maintenance":          0.8,
        "replacement":          0.9,
        "optimization":         0.6,
        "upgrade":              0.7,
        "license_optimization": 0.8,
        "software_update":      1.0,
        "consolidation":        0.6,
        "budget_alert":         0.9,
        "cost_trend":           0.8,
        "roi_optimization":     0.7,
    }

    # Learning log
    max_learning_records_per_user: int = 500

    @field_validator("confidences")
    @classmethod
    def validate_confidences(cls, v: dict[str, float]) -> dict[str, float]:
        for key, conf in v.items():
            if not 0.0 <= conf <= 1.0:
                raise ValueError(f"confidence for '{key}' must be in [0, 1], got {conf}.")
        return v


class DemandConfig(BaseModel):
    """Forecast horizon, age buckets and fixed unit-cost assumptions.

    Unit costs are stated planning assumptions, not values derived from data.
    """

    model_config = ConfigDict(frozen=True)

    horizon_months: int = 12

    # Replacement pressure by age bucket (annualised share replaced)
    replacement_rate_6_8: float = 0.2
    replacement_rate_8_plus: float = 0.4

    # Equipment
    maintenance_interval_days: int = 180
    equipment_unit_cost: float = 1000.0
    maintenance_unit_cost: float = 200.0
    high_equipment_needed: int = 10
    high_maintenance_required: int = 20
    medium_equipment_needed: int = 5
    medium_maintenance_required: int = 10

    # Software
    license_new_cost: float = 100.0
    license_renewal_cost: float = 50.0
    license_high_usage: float = 0.8
    license_growth_share: float = 0.2

    # Maintenance demand
    preventive_age_years: float = 3.0
    preventive_cost: float = 150.0
    corrective_cost: float = 300.0
    urgent_cost: float = 500.0
    preventive_hours: float = 2.0
    corrective_hours: float = 4.0
    urgent_hours: float = 8.0

    # Confidence
    min_history_points: int = 3
    rich_history_points: int = 6
    sparse_history_consistency: float = 0.3
    usage_data_present_quality: float = 0.8
    usage_data_absent_quality: float = 0.4

    # Planning pass
    planning_avg_cost_threshold: float = 5000.0
    workload_hours_threshold: float = 40.0
    urgent_repairs_threshold: int = 5
    budget_buffer: float = 1.2

    @field_validator("horizon_months")
    @classmethod
    def validate_horizon(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"horizon_months must be >= 1, got {v}.")
        return v


class WorkflowConfig(BaseModel):
    """Workflow execution registry and preset settings."""

    model_config = ConfigDict(frozen=True)

    max_executions: int = 1000
    execution_max_age_hours: float = 24.0
    register_presets: bool = True
    activate_presets: bool = False

    @model_validator(mode="after")
    def validate_limits(self) -> "WorkflowConfig":
        if self.max_executions < 1:
            raise ValueError(f"max_executions must be >= 1, got {self.max_executions}.")
        if self.execution_max_age_hours <= 0:
            raise ValueError(
                f"execution_max_age_hours must be > 0, got {self.execution_max_age_hours}."
            )
        return self


class AppConfig(BaseModel):
    """All config sections together.

    Engines and CLI commands receive an ``AppConfig`` (or one of its
    sections).  It is constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    logging: LoggingConfig = LoggingConfig()
    anomaly: AnomalyConfig = AnomalyConfig()
    recommendations: RecommendationConfig = RecommendationConfig()
    demand: DemandConfig = DemandConfig()
    workflow: WorkflowConfig = WorkflowConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PACKAGE_DIR = Path(__file__).resolve().parent

# env var -> (section or None for top level, key, parser)
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str, Callable[[str], Any]]] = {
    "ASSET_INSIGHT_LOG_LEVEL":      ("logging", "level", str),
    "ASSET_INSIGHT_LOG_FILE":       ("logging", "log_file", str),
    "ASSET_INSIGHT_MAX_EXECUTIONS": ("workflow", "max_executions", int),
    "ASSET_INSIGHT_DEBUG":          (None, "debug", lambda v: v.lower() in ("1", "true", "yes")),
}

_SECTIONS: dict[str, type[BaseModel]] = {
    "logging":         LoggingConfig,
    "anomaly":         AnomalyConfig,
    "recommendations": RecommendationConfig,
    "demand":          DemandConfig,
    "workflow":        WorkflowConfig,
}


def _project_root() -> Path:
    """First ancestor of the package directory holding a ``pyproject.toml``."""
    for candidate in (_PACKAGE_DIR, *_PACKAGE_DIR.parents):
        if (candidate / "pyproject.toml").is_file():
            return candidate
    return _PACKAGE_DIR.parent


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the ``AppConfig`` for this process.

    Args:
        config_path: TOML file to read.  When omitted, the repository's
            ``config/default.toml`` is used if it exists; an installed package
            without that file falls back to the model defaults.

    Returns:
        Validated ``AppConfig``.

    Raises:
        FileNotFoundError: ``config_path`` was given but does not exist.
        pydantic.ValidationError: A merged value is out of range.
    """
    root = _project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    elif (root / "config" / "default.toml").is_file():
        config_path = root / "config" / "default.toml"

    raw: dict[str, Any] = {}
    if config_path is None:
        logger.debug("No config/default.toml under %s; using model defaults.", root)
    else:
        raw = _read_toml(config_path)
        local_path = config_path.with_name("local.toml")
        if local_path.is_file():
            raw = _merge_sections(raw, _read_toml(local_path))

    _apply_env_overrides(raw, os.environ)
    return _build_app_config(raw)


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _merge_sections(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """``override`` wins key by key; nested tables merge instead of replacing."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _merge_sections(current, value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(raw: dict[str, Any], environ: Mapping[str, str]) -> None:
    """Write any set ``ASSET_INSIGHT_*`` variable into ``raw`` in place.

    Empty values are ignored, so ``ASSET_INSIGHT_LOG_FILE=`` in a ``.env``
    does not blank out a path set in TOML.
    """
    for var, (section, key, parse) in _ENV_OVERRIDES.items():
        value = environ.get(var)
        if not value:
            continue
        target = raw if section is None else raw.setdefault(section, {})
        target[key] = parse(value)


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    # ``debug`` may sit at top level (env override) or under [project].
    project = raw.get("project", {})
    sections = {name: model(**raw.get(name, {})) for name, model in _SECTIONS.items()}
    return AppConfig(**sections, debug=raw.get("debug", project.get("debug", False)))
