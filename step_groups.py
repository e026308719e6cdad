# -*- coding: utf-8 -*-
########################
# step_groups.py
########################
# Purpose:
# - Group a chart's ordered note events into step groups: all events sharing one metric position.
#
# Design notes:
# - Pure transformation. Hold state is owned by side_tracker.py, which reads StepGroup.events.
# - Grouping is by consecutive equal positions only; input order is trusted.
# - Hold ends travel with their group but never count as stepped lanes.
#
########################
# Interfaces:
# Public dataclasses:
# - StepGroup(time_seconds, position, events, stepped_lanes, step_count, is_left, is_right)
#   - is_step -> bool
#   - is_fully_left -> bool
#   - is_fully_right -> bool
#
# Public functions:
# - is_left_lane(lane: int, num_inputs: int) -> bool
# - iter_step_groups(events: Iterable[NoteEvent], num_inputs: int) -> Iterator[StepGroup]
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Iterator, List, Tuple

from chart_models import MetricPosition, NoteEvent


@dataclass(frozen=True)
class StepGroup:
    time_seconds: float
    position: MetricPosition
    events: Tuple[NoteEvent, ...]
    stepped_lanes: FrozenSet[int]
    step_count: int
    is_left: bool
    is_right: bool

    @property
    def is_step(self) -> bool:
        return self.step_count > 0

    @property
    def is_fully_left(self) -> bool:
        return self.is_left and not self.is_right

    @property
    def is_fully_right(self) -> bool:
        return self.is_right and not self.is_left


def is_left_lane(lane: int, num_inputs: int) -> bool:
    return int(lane) < (int(num_inputs) >> 1)


def _build_group(pending_events: List[NoteEvent], num_inputs: int) -> StepGroup:
    stepped_lanes = set()
    step_count = 0
    is_left = False
    is_right = False
    for event in pending_events:
        if not event.is_step:
            continue
        step_count += 1
        stepped_lanes.add(int(event.lane))
        if is_left_lane(event.lane, num_inputs):
            is_left = True
        else:
            is_right = True

    last_event = pending_events[-1]
    return StepGroup(
        time_seconds=float(last_event.time_seconds),
        position=last_event.position,
        events=tuple(pending_events),
        stepped_lanes=frozenset(stepped_lanes),
        step_count=step_count,
        is_left=is_left,
        is_right=is_right,
    )


def iter_step_groups(events: Iterable[NoteEvent], num_inputs: int) -> Iterator[StepGroup]:
    pending_events: List[NoteEvent] = []
    for event in events:
        if pending_events and event.position != pending_events[-1].position:
            yield _build_group(pending_events, num_inputs)
            pending_events = []
        pending_events.append(event)

    if pending_events:
        yield _build_group(pending_events, num_inputs)


def _run_unit_tests() -> None:
    from fractions import Fraction

    from chart_models import NoteKind

    first = MetricPosition(0, 0, Fraction(0))
    second = MetricPosition(0, 0, Fraction(1, 2))
    third = MetricPosition(0, 1, Fraction(0))
    events = [
        NoteEvent(0.0, first, 0, NoteKind.TAP_START),
        NoteEvent(0.0, first, 3, NoteKind.HOLD_START),
        NoteEvent(0.25, second, 3, NoteKind.HOLD_END),
        NoteEvent(0.5, third, 1, NoteKind.TAP_START),
    ]
    groups = list(iter_step_groups(events, 4))
    assert len(groups) == 3
    assert groups[0].stepped_lanes == frozenset({0, 3})
    assert groups[0].is_left and groups[0].is_right
    assert not groups[1].is_step
    assert groups[2].is_fully_left


if __name__ == "__main__":
    _run_unit_tests()
    print("step_groups.py: ok")
