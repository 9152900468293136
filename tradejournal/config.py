"""
Configuration loading and validation for the trade journal.

This module uses standard library dataclasses for configuration objects,
built from a YAML file and checked by explicit validation functions before
construction.
"""

import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Type, cast

__all__ = ["load_config", "Config"]


# §1. Nested Configuration Dataclasses
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageConfig:
    data_dir: Path
    user: str


@dataclass(frozen=True)
class EvaluationConfig:
    phase_1_target_pct: float
    phase_2_target_pct: float


@dataclass(frozen=True)
class ExpensesConfig:
    days_per_month: float


@dataclass(frozen=True)
class CoachConfig:
    model: str
    api_key_env: str
    timeout_seconds: float


@dataclass(frozen=True)
class ReportingConfig:
    output_dir: Path
    output_formats: List[Literal["json", "markdown", "csv"]]


# §2. Top-Level Configuration
# --------------------------------------------------------------------------------------


@dataclass(frozen=True)
class Config:
    """The root configuration object, composing all nested sections."""
    storage: StorageConfig
    evaluation: EvaluationConfig
    expenses: ExpensesConfig
    coach: CoachConfig
    reporting: ReportingConfig


# §3. Validation and Loading
# --------------------------------------------------------------------------------------

VALID_OUTPUT_FORMATS = {"json", "markdown", "csv"}


def _from_dict(data_class: Type[Any], data: Any) -> Any:
    """Recursively creates nested dataclasses from a dictionary."""
    if isinstance(data, dict):
        field_types = {f.name: f.type for f in data_class.__dataclass_fields__.values()}

        kwargs = {}
        for k, v in data.items():
            field_type = field_types.get(k)
            # Unknown keys pass through so the dataclass constructor rejects them.
            kwargs[k] = _from_dict(field_type, v) if field_type else v
        return data_class(**kwargs)

    if isinstance(data, str) and data_class is Path:
        return Path(data)
    return data


def _validate_config(cfg: Dict[str, Any]) -> None:
    """
    Performs simple, explicit validation checks on the raw config dictionary.
    Fail fast on any logical inconsistencies.
    """
    if not isinstance(cfg, dict):
        raise ValueError("Configuration must be a YAML object.")

    evaluation = cfg["evaluation"]
    for key in ("phase_1_target_pct", "phase_2_target_pct"):
        if not 0 < evaluation[key] <= 1:
            raise ValueError(f"evaluation.{key} must be a fraction in (0, 1]")

    if cfg["expenses"]["days_per_month"] <= 0:
        raise ValueError("expenses.days_per_month must be positive")

    if cfg["coach"]["timeout_seconds"] <= 0:
        raise ValueError("coach.timeout_seconds must be positive")

    unknown = set(cfg["reporting"]["output_formats"]) - VALID_OUTPUT_FORMATS
    if unknown:
        raise ValueError(f"reporting.output_formats has unsupported entries: {sorted(unknown)}")

    if not str(cfg["storage"]["user"]).strip():
        raise ValueError("storage.user must not be empty")


# impure
def load_config(config_path: Path) -> Config:
    """
    Loads and validates a YAML configuration file into a Config object.
    #impure: Reads from the filesystem.
    """
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {config_path}: {e}") from e

    try:
        _validate_config(raw_config)
        # _from_dict is too dynamic for mypy to track types.
        return cast(Config, _from_dict(Config, raw_config))
    except (TypeError, KeyError) as e:
        raise ValueError(f"Configuration validation failed: missing or invalid key. Details: {e}") from e
