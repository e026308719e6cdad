import synthetic_charts
from side_tracker import SideHoldTracker
from step_groups import iter_step_groups


def _contexts(chart):
    tracker = SideHoldTracker(chart.num_inputs)
    return [tracker.update(group) for group in iter_step_groups(chart.events, chart.num_inputs)], tracker


def test_hold_stays_active_until_its_end():
    chart = synthetic_charts.build_rows_chart(["0002", "1000", "0100", "0003", "1000"])
    contexts, tracker = _contexts(chart)

    assert [context.held_right for context in contexts] == [True, True, True, False, False]
    assert not any(context.held_left for context in contexts)
    assert tracker.held_lanes() == frozenset()


def test_hold_started_in_the_current_group_counts_as_held():
    chart = synthetic_charts.build_rows_chart(["2000"])
    contexts, tracker = _contexts(chart)

    assert contexts[0].held_left
    assert tracker.held_lanes() == frozenset({0})


def test_first_step_is_never_a_jack():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0])
    contexts, _ = _contexts(chart)
    assert not contexts[0].jack


def test_repeated_lane_set_is_a_jack():
    chart = synthetic_charts.build_lane_sequence_chart(lanes=[0, 0, (0, 1), 0, 1])
    contexts, _ = _contexts(chart)
    assert [context.jack for context in contexts] == [False, True, False, True, False]


def test_hold_end_group_does_not_replace_previous_step():
    chart = synthetic_charts.build_rows_chart(["2000", "0100", "3000", "0100"])
    contexts, _ = _contexts(chart)

    # The hold end group in between is skipped when comparing stepped lanes.
    assert contexts[2].jack
    assert contexts[3].jack
