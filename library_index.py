# -*- coding: utf-8 -*-
########################
# library_index.py
########################
# Purpose:
# - Locate simfile candidates under an input directory for batch analysis.
#
# Design notes:
# - Search order is deterministic: files sorted by full path.
# - File names are matched against a regex, optionally also the containing directory.
# - Unreadable directories are logged and skipped; they never abort the walk.
# - File system paths only.
#
########################
# Interfaces:
# Public dataclasses:
# - ChartCandidate(simfile_path: pathlib.Path)
#   - directory -> pathlib.Path
#
# Public functions:
# - list_chart_files(input_directory: pathlib.Path, *, file_name_pattern: str, directory_pattern: Optional[str] = None)
#     -> list[ChartCandidate]
#
# Inputs:
# - input_directory and name filters from config.py.
#
# Outputs:
# - Candidates consumed by chartstats.py.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import List, Optional

import re


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChartCandidate:
    simfile_path: Path

    @property
    def directory(self) -> Path:
        return self.simfile_path.parent


def _log_walk_error(error: OSError) -> None:
    logger.warning("Could not read directory %r: %s", getattr(error, "filename", None), error)


def list_chart_files(
    input_directory: Path,
    *,
    file_name_pattern: str,
    directory_pattern: Optional[str] = None,
) -> List[ChartCandidate]:
    root_directory = Path(input_directory)
    if not root_directory.is_dir():
        raise FileNotFoundError(f"Could not find input directory {str(root_directory)!r}")

    file_name_regex = re.compile(file_name_pattern, re.IGNORECASE)
    directory_regex = re.compile(directory_pattern, re.IGNORECASE) if directory_pattern else None

    matches: List[Path] = []
    for directory_text, _sub_directories, file_names in os.walk(root_directory, onerror=_log_walk_error):
        if directory_regex is not None and not directory_regex.search(directory_text):
            continue
        for file_name in file_names:
            if file_name_regex.search(file_name):
                matches.append(Path(directory_text) / file_name)

    return [ChartCandidate(simfile_path=path) for path in sorted(matches)]
