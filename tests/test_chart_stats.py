import random
from fractions import Fraction

import pytest

import synthetic_charts
from chart_models import ChartDescriptor, MetricPosition, NoteEvent
from chart_stats import ChartAnalysisError, analyze_chart
from segmentation import RunClassification


def _random_chart(seed, num_inputs=8, length=96):
    generator = random.Random(seed)
    lanes = []
    for _ in range(length):
        roll = generator.random()
        if roll < 0.15:
            lanes.append(None)
        elif roll < 0.25:
            lanes.append(tuple(sorted(generator.sample(range(num_inputs), 2))))
        else:
            lanes.append(generator.randrange(num_inputs))
    return synthetic_charts.build_lane_sequence_chart(lanes=lanes, num_inputs=num_inputs, rows_per_beat=4, seconds_per_row=0.125)


@pytest.mark.parametrize("seed", range(12))
def test_invariants_hold_for_generated_charts(seed):
    chart = _random_chart(seed)
    analysis = analyze_chart(chart)
    assert analysis is not None
    summary = analysis.summary

    assert sum(summary.lane_step_counts) == summary.total_steps
    assert sum(summary.lane_fractions()) == pytest.approx(1.0, abs=1e-9)
    assert len(analysis.nps_samples) == summary.total_steps
    assert summary.peak_nps >= max(analysis.nps_samples)
    for segment in analysis.segments.ordered():
        assert segment.step_count >= 1
        assert segment.duration_seconds >= 0.0


def test_chart_without_steps_produces_nothing():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[None, None, None, None])
    assert analyze_chart(chart) is None


def test_summary_counts_every_note_of_a_jump():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[(0, 3), 1, 2, 1], seconds_per_row=0.5)
    analysis = analyze_chart(chart)
    summary = analysis.summary

    assert summary.total_steps == 5
    assert summary.lane_step_counts == (1, 2, 1, 1)
    assert summary.average_nps == pytest.approx(5 / 1.5)
    assert summary.peak_nps == pytest.approx(2.0)
    assert len(analysis.nps_samples) == 5


def test_uniform_stream_has_no_density_outliers():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3] * 4, seconds_per_row=0.25)
    density = analyze_chart(chart).summary.density

    assert density.under_half == 0.0
    assert density.over_2x == 0.0
    assert density.over_3x == 0.0
    assert density.over_4x == 0.0


def test_segments_are_partitioned_by_note_type():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3] * 4)
    segments = analyze_chart(chart).segments

    assert len(segments.constant_rhythm(8)) == 7
    assert len(segments.variable_timing()) == 1
    assert segments.constant_rhythm(16) == []


def test_custom_valid_denominators_drive_the_fallback():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3, 0, 1], rows_per_beat=5, seconds_per_row=0.1)
    segments = analyze_chart(chart, valid_denominators=(4, 12, 24)).segments

    assert [segment.classification for segment in segments.ordered()] == [
        RunClassification.constant_rhythm(24),
        RunClassification.variable_timing(),
    ]


@pytest.mark.parametrize("rows_between_steps", [4, 8])
def test_half_and_whole_note_runs_stay_out_of_the_finest_column(rows_between_steps):
    lanes = []
    for lane in [0, 1, 2, 3, 0, 1, 2, 3]:
        lanes.append(lane)
        lanes.extend([None] * (rows_between_steps - 1))
    chart = synthetic_charts.build_lane_sequence_chart(lanes=lanes, rows_per_beat=2)
    segments = analyze_chart(chart).segments

    assert len(segments) == 3
    assert segments.constant_rhythm(48) == []
    assert len(segments.variable_timing()) == 3


def test_repeated_analysis_is_independent():
    chart = _random_chart(99)
    first = analyze_chart(chart)
    second = analyze_chart(chart)

    assert first.summary == second.summary
    assert first.nps_samples == second.nps_samples
    assert first.segments.ordered() == second.segments.ordered()


def test_odd_lane_count_is_rejected():
    chart = synthetic_charts.build_rows_chart(["10000", "01000"])
    with pytest.raises(ChartAnalysisError):
        analyze_chart(chart)


def test_lane_outside_the_chart_is_rejected():
    chart = ChartDescriptor(
        title="Broken",
        chart_type="dance-single",
        difficulty="Easy",
        rating=1,
        num_inputs=4,
        events=(NoteEvent(0.0, MetricPosition(0, 0, Fraction(0)), 6),),
    )
    with pytest.raises(ChartAnalysisError):
        analyze_chart(chart)
