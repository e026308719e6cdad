"""
config.py

Typed configuration loading and validation for ChartStats.

Design goals
- Load exactly one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If CHARTSTATS_CONFIG_PATH is set, that file is used.
- Otherwise ChartStats searches these paths in order and uses the first one that exists:
  1) ./chartstats_config.json (current working directory)
  2) <user config dir>/ChartStats/chartstats_config.json

Example config file (chartstats_config.json)
{
  "input": {
    "directory": "C:/Games/StepMania 5/Songs",
    "file_name_pattern": "\\\\.sm$",
    "directory_pattern": null,
    "chart_type": "dance-double",
    "difficulties": ["Hard", "Challenge"]
  },
  "output": {
    "stats_csv": "chart_stats.csv",
    "steps_per_side_csv": "steps_per_side.csv"
  },
  "analysis": {
    "valid_denominators": [4, 8, 12, 16, 24, 32, 48],
    "workers": 4
  },
  "log_level": "INFO"
}
"""

from __future__ import annotations

import json
import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

import paths
import sm_store


_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class InputConfig(BaseModel):
    directory: str = Field(default=".", description="Root directory searched recursively for simfiles.")
    file_name_pattern: str = Field(default=r"\.sm$", description="Regex matched against file names.")
    directory_pattern: Optional[str] = Field(default=None, description="Optional regex matched against directories.")
    chart_type: str = Field(default="dance-double", description="StepMania step type to analyse.")
    difficulties: List[str] = Field(default_factory=list, description="Difficulties to analyse. Empty means all.")

    @field_validator("file_name_pattern", "directory_pattern")
    @classmethod
    def validate_regex(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        try:
            re.compile(value)
        except re.error as exception:
            raise ValueError(f"Invalid regular expression {value!r}: {exception}") from exception
        return value

    @field_validator("chart_type")
    @classmethod
    def validate_chart_type(cls, value: str) -> str:
        normalized = (value or "").strip().lower()
        if sm_store.lane_count_for_step_type(normalized) is None:
            raise ValueError(f"Unsupported chart_type: {value!r}")
        return normalized

    @field_validator("difficulties")
    @classmethod
    def normalize_difficulties(cls, value: List[str]) -> List[str]:
        return [sm_store.difficulty_label(item) for item in value if str(item).strip()]


class OutputConfig(BaseModel):
    stats_csv: str = Field(default="chart_stats.csv", description="Per chart summary CSV.")
    steps_per_side_csv: str = Field(default="steps_per_side.csv", description="Per side run CSV.")


class AnalysisConfig(BaseModel):
    valid_denominators: List[int] = Field(
        default_factory=lambda: [4, 8, 12, 16, 24, 32, 48],
        description="Note types that get their own column. Others fall into the largest one.",
    )
    workers: int = Field(default=1, ge=1, le=64, description="Number of files analysed in parallel.")

    @field_validator("valid_denominators")
    @classmethod
    def validate_denominators(cls, value: List[int]) -> List[int]:
        cleaned = sorted(set(int(item) for item in value))
        if not cleaned:
            raise ValueError("valid_denominators must not be empty")
        if cleaned[0] <= 0:
            raise ValueError("valid_denominators must be positive")
        return cleaned


class AppConfig(BaseModel):
    input: InputConfig = Field(default_factory=InputConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    log_level: str = Field(default="INFO", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        if normalized not in _LOG_LEVELS:
            raise ValueError("log_level must be one of: " + ", ".join(sorted(_LOG_LEVELS)))
        return normalized


def _resolve_config_path() -> Path:
    explicit_path_text = os.environ.get("CHARTSTATS_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in paths.default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    candidates_text = "\n".join("  - " + str(path) for path in paths.default_config_candidates())
    raise FileNotFoundError(
        "No ChartStats config file found. Create chartstats_config.json in one of these locations:\n" + candidates_text
    )


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional. The config file is the primary source of truth.

    Override variables:
    - CHARTSTATS_INPUT_DIRECTORY
    - CHARTSTATS_CHART_TYPE
    - CHARTSTATS_DIFFICULTIES (comma separated)
    - CHARTSTATS_STATS_CSV
    - CHARTSTATS_STEPS_PER_SIDE_CSV
    - CHARTSTATS_WORKERS
    - CHARTSTATS_LOG_LEVEL
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            return section
        section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    input_section = ensure_nested(updated_config, "input")
    output_section = ensure_nested(updated_config, "output")
    analysis_section = ensure_nested(updated_config, "analysis")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_list(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        target_dict[key_name] = [item.strip() for item in value_text.split(",") if item.strip()]

    override_string("CHARTSTATS_INPUT_DIRECTORY", input_section, "directory")
    override_string("CHARTSTATS_CHART_TYPE", input_section, "chart_type")
    override_list("CHARTSTATS_DIFFICULTIES", input_section, "difficulties")

    override_string("CHARTSTATS_STATS_CSV", output_section, "stats_csv")
    override_string("CHARTSTATS_STEPS_PER_SIDE_CSV", output_section, "steps_per_side_csv")

    override_int("CHARTSTATS_WORKERS", analysis_section, "workers")

    override_string("CHARTSTATS_LOG_LEVEL", updated_config, "log_level")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Path]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict = _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        raise ValueError(f"Config validation failed for {resolved_path}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Path]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path),
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
