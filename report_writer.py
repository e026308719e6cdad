# -*- coding: utf-8 -*-
########################
# report_writer.py
########################
# Purpose:
# - Lay out chart analyses as CSV rows for spreadsheet graphing and write the two CSV files.
#
# Design notes:
# - No analysis logic. Only formatting of ChartAnalysis values.
# - Segment rows use fixed columns keyed by note type so segments of the same type always land
#   in the same column across rows. Variable timing segments get their own column.
# - Constant rhythm segments are emitted in denominator order, variable timing segments last.
#
########################
# Interfaces:
# Public functions:
# - lane_labels(num_inputs: int) -> list[str]
# - stats_header(num_inputs: int) -> list[str]
# - steps_per_side_header(valid_denominators: Sequence[int]) -> list[str]
# - stats_row(analysis: ChartAnalysis) -> list[object]
# - steps_per_side_rows(analysis: ChartAnalysis) -> list[list[object]]
# - write_reports(analyses, *, num_inputs, valid_denominators, stats_path, steps_per_side_path) -> None
#
########################

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from chart_stats import ChartAnalysis
from segmentation import SideRunSegment


_IDENTITY_COLUMNS = ["Path", "File", "Song", "Type", "Difficulty", "Rating"]
_PAD_LANE_NAMES = ["L", "D", "U", "R"]


def lane_labels(num_inputs: int) -> List[str]:
    count = int(num_inputs)
    if count > 0 and count % len(_PAD_LANE_NAMES) == 0:
        return _PAD_LANE_NAMES * (count // len(_PAD_LANE_NAMES))
    return [f"Lane {index + 1}" for index in range(count)]


def stats_header(num_inputs: int) -> List[str]:
    labels = lane_labels(num_inputs)
    return (
        _IDENTITY_COLUMNS
        + [
            "NPS",
            "Peak NPS",
            "% Under .5x NPS",
            "% Over 2x NPS",
            "% Over 3x NPS",
            "% Over 4x NPS",
            "Total Steps",
        ]
        + labels
        + ["%" + label for label in labels]
    )


def steps_per_side_header(valid_denominators: Sequence[int]) -> List[str]:
    header = _IDENTITY_COLUMNS + ["Time"]
    header += [f"1_{denominator} Steps" for denominator in valid_denominators]
    header += ["Variable Steps", "NPS"]
    header += [f"1_{denominator} Steps NPS" for denominator in valid_denominators]
    header += ["Variable Steps NPS"]
    return header


def _identity_cells(analysis: ChartAnalysis) -> List[object]:
    chart = analysis.chart
    source_path = chart.source_path
    directory_text = str(source_path.parent.resolve()) if source_path is not None else ""
    file_text = source_path.name if source_path is not None else ""
    return [directory_text, file_text, chart.title, chart.chart_type, chart.difficulty, chart.rating]


def stats_row(analysis: ChartAnalysis) -> List[object]:
    summary = analysis.summary
    row = _identity_cells(analysis)
    row += [
        summary.average_nps,
        summary.peak_nps,
        summary.density.under_half,
        summary.density.over_2x,
        summary.density.over_3x,
        summary.density.over_4x,
        summary.total_steps,
    ]
    row += list(summary.lane_step_counts)
    row += list(summary.lane_fractions())
    return row


def _segment_row(
    identity: List[object],
    segment: SideRunSegment,
    valid_denominators: Sequence[int],
) -> List[object]:
    nps_value: Optional[float] = segment.notes_per_second
    nps_cell: object = nps_value if nps_value is not None else ""
    denominator = segment.classification.denominator

    count_cells: List[object] = ["" for _ in valid_denominators] + [""]
    nps_cells: List[object] = ["" for _ in valid_denominators] + [""]
    column_index = len(valid_denominators) if denominator is None else list(valid_denominators).index(denominator)
    count_cells[column_index] = segment.step_count
    nps_cells[column_index] = nps_cell

    return identity + [segment.duration_seconds] + count_cells + [nps_cell] + nps_cells


def steps_per_side_rows(analysis: ChartAnalysis) -> List[List[object]]:
    identity = _identity_cells(analysis)
    valid_denominators = analysis.segments.valid_denominators()
    return [_segment_row(identity, segment, valid_denominators) for segment in analysis.segments.ordered()]


def _write_csv(output_path: Path, header: List[str], rows: Iterable[List[object]]) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        writer.writerows(rows)


def write_reports(
    analyses: Sequence[ChartAnalysis],
    *,
    num_inputs: int,
    valid_denominators: Sequence[int],
    stats_path: Path,
    steps_per_side_path: Path,
) -> None:
    _write_csv(Path(stats_path), stats_header(num_inputs), (stats_row(analysis) for analysis in analyses))

    segment_rows: List[List[object]] = []
    for analysis in analyses:
        segment_rows.extend(steps_per_side_rows(analysis))
    _write_csv(Path(steps_per_side_path), steps_per_side_header(valid_denominators), segment_rows)
