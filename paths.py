# -*- coding: utf-8 -*-
########################
# paths.py
########################
# Purpose:
# - Central filesystem path helpers for the tool.
# - Defines where the config file is searched for and where relative output paths resolve.
#
# Design notes:
# - Keep path derivation consistent across modules.
# - Return pathlib.Path only. Nothing is created here.
#
########################
# Interfaces:
# Public functions:
# - user_config_directory() -> pathlib.Path
# - default_config_candidates() -> list[pathlib.Path]
# - resolve_output_path(path_text: str, *, base_directory: Optional[pathlib.Path] = None) -> pathlib.Path
#
# Inputs:
# - Current working directory and the platform user config dir.
#
# Outputs:
# - Paths used by config.py and chartstats.py.
#
########################

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from platformdirs import user_config_dir


CONFIG_FILE_NAME = "chartstats_config.json"


def user_config_directory() -> Path:
    return Path(user_config_dir("ChartStats", "ChartStats"))


def default_config_candidates() -> List[Path]:
    """Config search order: working directory first, then the user config dir."""
    return [
        Path.cwd() / CONFIG_FILE_NAME,
        user_config_directory() / CONFIG_FILE_NAME,
    ]


def resolve_output_path(path_text: str, *, base_directory: Optional[Path] = None) -> Path:
    """Resolve an output file path; relative paths are taken from base_directory (default: cwd)."""
    output_path = Path(str(path_text)).expanduser()
    if output_path.is_absolute():
        return output_path
    return (base_directory if base_directory is not None else Path.cwd()) / output_path
