# -*- coding: utf-8 -*-
########################
# side_tracker.py
########################
# Purpose:
# - Track which lanes are held and whether the current step group repeats the previous stepped lanes.
#
# Design notes:
# - Hold flags are per lane and persist across groups until the matching hold end.
# - Held flags are read after applying the current group's hold events.
# - Jack: every stepped lane of the group was stepped by the previous stepped group.
#   A group with no stepped lanes is trivially a jack and never updates the previous record.
# - One tracker per chart. No state survives across charts.
#
########################
# Interfaces:
# Public dataclasses:
# - SideContext(held_left: bool, held_right: bool, jack: bool)
#
# Public classes:
# - class SideHoldTracker
#   - __init__(num_inputs: int)
#   - update(group: StepGroup) -> SideContext
#   - held_lanes() -> frozenset[int]
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, List

from chart_models import NoteKind
from step_groups import StepGroup, is_left_lane


@dataclass(frozen=True)
class SideContext:
    held_left: bool
    held_right: bool
    jack: bool


class SideHoldTracker:
    def __init__(self, num_inputs: int) -> None:
        self._num_inputs = int(num_inputs)
        self._holds: List[bool] = [False] * self._num_inputs
        self._previous_stepped_lanes: FrozenSet[int] = frozenset()

    def held_lanes(self) -> FrozenSet[int]:
        return frozenset(lane for lane, held in enumerate(self._holds) if held)

    def update(self, group: StepGroup) -> SideContext:
        for event in group.events:
            if event.kind is NoteKind.HOLD_START:
                self._holds[event.lane] = True
            elif event.kind is NoteKind.HOLD_END:
                self._holds[event.lane] = False

        held_left = False
        held_right = False
        for lane, held in enumerate(self._holds):
            if not held:
                continue
            if is_left_lane(lane, self._num_inputs):
                held_left = True
            else:
                held_right = True

        jack = group.stepped_lanes <= self._previous_stepped_lanes
        if group.is_step:
            self._previous_stepped_lanes = group.stepped_lanes

        return SideContext(held_left=held_left, held_right=held_right, jack=jack)


def _run_unit_tests() -> None:
    from fractions import Fraction

    from chart_models import MetricPosition, NoteEvent
    from step_groups import iter_step_groups

    def at(beat: int) -> MetricPosition:
        return MetricPosition(0, beat, Fraction(0))

    events = [
        NoteEvent(0.0, at(0), 3, NoteKind.HOLD_START),
        NoteEvent(0.5, at(1), 0, NoteKind.TAP_START),
        NoteEvent(1.0, at(2), 0, NoteKind.TAP_START),
        NoteEvent(1.5, at(3), 3, NoteKind.HOLD_END),
    ]
    tracker = SideHoldTracker(4)
    contexts = [tracker.update(group) for group in iter_step_groups(events, 4)]
    assert contexts[0].held_right and not contexts[0].jack
    assert contexts[1].held_right and not contexts[1].jack
    assert contexts[2].jack
    assert not contexts[3].held_right
    assert tracker.held_lanes() == frozenset()


if __name__ == "__main__":
    _run_unit_tests()
    print("side_tracker.py: ok")
