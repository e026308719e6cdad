import csv

import pytest

import report_writer
import synthetic_charts
from chart_stats import analyze_chart
from segmentation import DEFAULT_VALID_DENOMINATORS


def _analysis():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3] * 2)
    return analyze_chart(chart)


def test_lane_labels():
    assert report_writer.lane_labels(8) == ["L", "D", "U", "R", "L", "D", "U", "R"]
    assert report_writer.lane_labels(6) == ["Lane 1", "Lane 2", "Lane 3", "Lane 4", "Lane 5", "Lane 6"]


def test_headers():
    stats_header = report_writer.stats_header(4)
    assert stats_header[:7] == ["Path", "File", "Song", "Type", "Difficulty", "Rating", "NPS"]
    assert stats_header[-4:] == ["%L", "%D", "%U", "%R"]

    side_header = report_writer.steps_per_side_header((4, 8))
    assert side_header[6:] == [
        "Time",
        "1_4 Steps",
        "1_8 Steps",
        "Variable Steps",
        "NPS",
        "1_4 Steps NPS",
        "1_8 Steps NPS",
        "Variable Steps NPS",
    ]


def test_stats_row_matches_header_width():
    analysis = _analysis()
    row = report_writer.stats_row(analysis)

    assert len(row) == len(report_writer.stats_header(4))
    assert row[12] == 8
    assert row[13:17] == [2, 2, 2, 2]


def test_segment_rows_use_fixed_columns():
    rows = report_writer.steps_per_side_rows(_analysis())
    width = len(report_writer.steps_per_side_header(DEFAULT_VALID_DENOMINATORS))
    eighth_column = 7 + list(DEFAULT_VALID_DENOMINATORS).index(8)
    variable_column = 7 + len(DEFAULT_VALID_DENOMINATORS)
    nps_column = variable_column + 1

    assert len(rows) == 3
    assert all(len(row) == width for row in rows)

    first, _second, last = rows
    assert first[6] == pytest.approx(0.25)
    assert first[eighth_column] == 2
    assert first[variable_column] == ""
    assert first[nps_column] == pytest.approx(8.0)
    assert first[nps_column + 1 + list(DEFAULT_VALID_DENOMINATORS).index(8)] == pytest.approx(8.0)

    assert last[variable_column] == 4
    assert last[eighth_column] == ""
    assert last[-1] == pytest.approx(4 / 0.75)


def test_write_reports(tmp_path):
    stats_path = tmp_path / "out" / "stats.csv"
    side_path = tmp_path / "out" / "side.csv"
    report_writer.write_reports(
        [_analysis()],
        num_inputs=4,
        valid_denominators=DEFAULT_VALID_DENOMINATORS,
        stats_path=stats_path,
        steps_per_side_path=side_path,
    )

    with stats_path.open(encoding="utf-8", newline="") as handle:
        stats_rows = list(csv.reader(handle))
    with side_path.open(encoding="utf-8", newline="") as handle:
        side_rows = list(csv.reader(handle))

    assert len(stats_rows) == 2
    assert stats_rows[1][2] == "Synthetic"
    assert len(side_rows) == 4
