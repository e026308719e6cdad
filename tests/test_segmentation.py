from fractions import Fraction

import pytest

import synthetic_charts
from chart_models import ChartDescriptor, MetricPosition, NoteEvent
from segmentation import (
    DEFAULT_VALID_DENOMINATORS,
    RunClassification,
    SegmentBuckets,
    SegmentationMachine,
    Side,
    SideRunSegment,
)
from side_tracker import SideHoldTracker
from step_groups import iter_step_groups


def _run(chart, valid_denominators=DEFAULT_VALID_DENOMINATORS):
    machine = SegmentationMachine(valid_denominators)
    tracker = SideHoldTracker(chart.num_inputs)
    segments = []
    for group in iter_step_groups(chart.events, chart.num_inputs):
        segment = machine.process(group, tracker.update(group))
        if segment is not None:
            segments.append(segment)
    return segments, machine


def test_strict_alternation_never_closes_a_run():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 2] * 4)
    segments, machine = _run(chart)

    assert segments == []
    assert machine.state.current_side is Side.NONE
    assert machine.state.steps_on_current_side == 8


def test_same_lane_pairs_are_jacks_and_never_close_a_run():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 0, 3, 3] * 4)
    segments, machine = _run(chart)

    assert segments == []
    assert machine.state.steps_on_current_side == 16


def test_side_pairs_close_a_run_on_every_crossing():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3] * 4)
    segments, machine = _run(chart)

    assert [segment.step_count for segment in segments] == [4, 2, 2, 2, 2, 2, 2, 2]
    # The first step's delta is measured from zero, so the first run is always irregular.
    assert segments[0].classification.is_variable_timing
    assert segments[0].duration_seconds == pytest.approx(0.75)
    for segment in segments[1:]:
        assert segment.classification == RunClassification.constant_rhythm(8)
        assert segment.duration_seconds == pytest.approx(0.25)
    assert machine.state.current_side is Side.RIGHT


def test_trailing_open_run_is_not_reported():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3, 0])
    segments, machine = _run(chart)

    assert len(segments) == 1
    assert machine.state.steps_on_current_side == 1


def test_jumps_on_one_side_that_repeat_are_jacks():
    repeated = synthetic_charts.build_lane_sequence_chart(lanes=[(0, 1), (0, 1), (0, 1)])
    _, machine = _run(repeated)
    assert machine.state.current_side is Side.NONE

    moving = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1])
    _, machine = _run(moving)
    assert machine.state.current_side is Side.LEFT


def test_hold_on_the_other_side_blocks_the_transition():
    held = synthetic_charts.build_rows_chart(["0002", "1000", "0100", "0003"])
    _, machine = _run(held)
    assert machine.state.current_side is Side.NONE

    released = synthetic_charts.build_rows_chart(["0001", "1000", "0100", "0000"])
    _, machine = _run(released)
    assert machine.state.current_side is Side.LEFT


def test_jump_across_both_sides_never_transitions():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[(0, 3), (1, 2), (0, 3), (1, 2)])
    segments, machine = _run(chart)

    assert segments == []
    assert machine.state.current_side is Side.NONE


def test_unlisted_note_type_falls_back_to_largest_denominator():
    # Quintuplets: the greatest note type seen is 20.
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3, 0, 1], rows_per_beat=5, seconds_per_row=0.1)
    segments, _ = _run(chart)

    assert len(segments) == 2
    assert segments[1].classification == RunClassification.constant_rhythm(48)
    assert segments[1].step_count == 2
    assert segments[1].duration_seconds == pytest.approx(0.1)


def test_fallback_uses_the_configured_maximum():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3, 0, 1], rows_per_beat=5, seconds_per_row=0.1)
    segments, _ = _run(chart, valid_denominators=(4, 8))

    assert segments[1].classification == RunClassification.constant_rhythm(8)


def _spaced(lanes, rests):
    spaced_lanes = []
    for lane in lanes:
        spaced_lanes.append(lane)
        spaced_lanes.extend([None] * rests)
    return spaced_lanes


def test_quarter_note_runs_are_constant_rhythm():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=_spaced([0, 1, 2, 3, 0, 1, 2, 3], 1))
    segments, _ = _run(chart)

    assert [segment.step_count for segment in segments] == [4, 2, 2]
    assert segments[1].classification == RunClassification.constant_rhythm(4)
    assert segments[2].classification == RunClassification.constant_rhythm(4)
    assert segments[1].duration_seconds == pytest.approx(0.5)


@pytest.mark.parametrize("rests, duration", [(3, 1.0), (7, 2.0)])
def test_half_and_whole_note_runs_are_variable(rests, duration):
    chart = synthetic_charts.build_lane_sequence_chart(lanes=_spaced([0, 1, 2, 3, 0, 1, 2, 3], rests))
    segments, _ = _run(chart)

    assert [segment.step_count for segment in segments] == [4, 2, 2]
    assert all(segment.classification.is_variable_timing for segment in segments)
    assert segments[1].duration_seconds == pytest.approx(duration)


def test_note_type_does_not_depend_on_the_beat_in_the_measure():
    for beat in range(4):
        assert MetricPosition(0, beat).note_type_denominator() == 4
        assert MetricPosition(0, beat, Fraction(1, 2)).note_type_denominator() == 8
        assert MetricPosition(0, beat, Fraction(2, 3)).note_type_denominator() == 12
        assert MetricPosition(0, beat, Fraction(3, 4)).note_type_denominator() == 16


def test_gap_before_a_run_marks_it_variable():
    # Step spacing is compared with the previous step chart wide, not per run.
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3, None, 0, 1, 2, 3])
    segments, _ = _run(chart)

    assert [segment.step_count for segment in segments] == [4, 2, 2]
    assert segments[0].classification.is_variable_timing
    assert segments[1].classification.is_variable_timing
    assert segments[2].classification == RunClassification.constant_rhythm(8)


def test_off_grid_closing_step_marks_the_run_variable():
    def note(time_seconds, beat, subdivision, lane):
        return NoteEvent(time_seconds, MetricPosition(0, beat, subdivision), lane)

    events = (
        note(0.0, 0, Fraction(0), 0),
        note(0.25, 0, Fraction(1, 2), 1),
        note(0.5, 1, Fraction(0), 2),
        note(0.75, 1, Fraction(1, 2), 3),
        note(1.0, 2, Fraction(0), 0),
        # Even time spacing, but a sixteenth lands where the next sixteenth should be a beat later.
        note(1.25, 2, Fraction(3, 4), 1),
    )
    chart = ChartDescriptor(
        title="Off grid",
        chart_type="dance-single",
        difficulty="Hard",
        rating=9,
        num_inputs=4,
        events=events,
    )
    segments, _ = _run(chart)

    assert len(segments) == 2
    assert segments[1].classification.is_variable_timing


def test_close_run_resets_the_run_fields():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3])
    _, machine = _run(chart)
    state = machine.state

    assert state.steps_on_current_side == 0
    assert state.time_of_first_step_on_current_side == 0.0
    assert state.greatest_denominator_seen == 0
    assert not state.uses_variable_timing


def test_segment_buckets_order_constant_before_variable():
    buckets = SegmentBuckets((4, 8))
    variable = SideRunSegment(1.0, 3, RunClassification.variable_timing())
    eighth = SideRunSegment(0.5, 2, RunClassification.constant_rhythm(8))
    quarter = SideRunSegment(1.0, 2, RunClassification.constant_rhythm(4))
    for segment in (variable, eighth, quarter):
        buckets.add(segment)

    assert buckets.ordered() == [quarter, eighth, variable]
    assert buckets.constant_rhythm(8) == [eighth]
    assert buckets.variable_timing() == [variable]
    assert len(buckets) == 3


def test_segment_nps_is_undefined_for_zero_duration():
    assert SideRunSegment(0.0, 2, RunClassification.constant_rhythm(4)).notes_per_second is None
    assert SideRunSegment(0.5, 2, RunClassification.constant_rhythm(4)).notes_per_second == 4.0


def test_empty_denominator_list_is_rejected():
    with pytest.raises(ValueError):
        SegmentationMachine(())
