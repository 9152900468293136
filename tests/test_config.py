"""Tests for configuration loading and validation."""
import copy
from pathlib import Path
from typing import Any, Dict

import pytest
import yaml

from tradejournal.config import Config, StorageConfig, _from_dict, load_config

# A complete and valid dictionary that can be used to construct a Config object.
FULL_CONFIG_DICT: Dict[str, Any] = {
    "storage": {"data_dir": "test_data", "user": "tester"},
    "evaluation": {"phase_1_target_pct": 0.10, "phase_2_target_pct": 0.05},
    "expenses": {"days_per_month": 30.44},
    "coach": {"model": "gemini-2.5-flash", "api_key_env": "GEMINI_API_KEY", "timeout_seconds": 30},
    "reporting": {"output_dir": "test_output", "output_formats": ["json"]},
}


def write_config(tmp_path: Path, config_dict: Dict[str, Any]) -> Path:
    config_path = tmp_path / "config.yaml"
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(config_dict, f)
    return config_path


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Pytest fixture to create a temporary, valid config file."""
    config_dict = copy.deepcopy(FULL_CONFIG_DICT)
    config_dict["storage"]["data_dir"] = str(tmp_path)
    return write_config(tmp_path, config_dict)


def test_load_valid_config(temp_config_file: Path, tmp_path: Path) -> None:
    """Test loading a valid configuration file returns a Config object."""
    config = load_config(temp_config_file)
    assert isinstance(config, Config)
    assert config.storage.user == "tester"
    assert config.storage.data_dir == tmp_path
    assert config.evaluation.phase_1_target_pct == 0.10
    assert config.reporting.output_formats == ["json"]


def test_load_example_config_file() -> None:
    """Test that the main example config file is valid."""
    config = load_config(Path("config/example.yaml"))
    assert isinstance(config, Config)
    assert config.expenses.days_per_month == 30.44


def test_missing_config_file() -> None:
    """Test error handling for missing config file."""
    with pytest.raises(FileNotFoundError):
        load_config(Path("nonexistent.yaml"))


def test_invalid_yaml_syntax(tmp_path: Path) -> None:
    """Test error handling for invalid YAML syntax."""
    config_path = tmp_path / "invalid.yaml"
    config_path.write_text("storage: { user: test")
    with pytest.raises(ValueError, match="Invalid YAML syntax"):
        load_config(config_path)


def test_non_mapping_config_fails(tmp_path: Path) -> None:
    config_path = tmp_path / "list.yaml"
    config_path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError, match="must be a YAML object"):
        load_config(config_path)


@pytest.mark.parametrize(
    "section, key, value, message",
    [
        ("evaluation", "phase_1_target_pct", 0.0, "evaluation.phase_1_target_pct"),
        ("evaluation", "phase_2_target_pct", 1.5, "evaluation.phase_2_target_pct"),
        ("expenses", "days_per_month", 0, "expenses.days_per_month must be positive"),
        ("coach", "timeout_seconds", -1, "coach.timeout_seconds must be positive"),
        ("reporting", "output_formats", ["json", "pdf"], "unsupported entries"),
        ("storage", "user", "  ", "storage.user must not be empty"),
    ],
)
def test_validation_failures(tmp_path: Path, section: str, key: str, value: Any, message: str) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config[section][key] = value
    config_path = write_config(tmp_path, invalid_config)

    with pytest.raises(ValueError, match=message):
        load_config(config_path)


def test_missing_section_fails(tmp_path: Path) -> None:
    """Test that a missing section is reported as a validation failure."""
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    del invalid_config["coach"]
    config_path = write_config(tmp_path, invalid_config)

    with pytest.raises(ValueError, match="Configuration validation failed"):
        load_config(config_path)


def test_unknown_key_fails(tmp_path: Path) -> None:
    invalid_config = copy.deepcopy(FULL_CONFIG_DICT)
    invalid_config["storage"]["colour"] = "blue"
    config_path = write_config(tmp_path, invalid_config)

    with pytest.raises(ValueError, match="Configuration validation failed"):
        load_config(config_path)


def test_from_dict_converts_paths() -> None:
    storage = _from_dict(StorageConfig, {"data_dir": "some/dir", "user": "u"})
    assert storage.data_dir == Path("some/dir")
