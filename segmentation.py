# -*- coding: utf-8 -*-
########################
# segmentation.py
########################
# Purpose:
# - Split a chart's steps into side runs: consecutive steps confined to one half of the pads.
# - Classify each finished run as a constant-rhythm stream (by note type) or as variable timing.
#
########################
# Key Logic:
# - Sides: NONE until the first recognized transition, then LEFT or RIGHT.
# - A transition to LEFT is recognized when:
#   - the current group is fully on the left
#   - the previous stepped group was also fully on the left
#   - nothing is held on the right
#   - the current group is not a jack
#   RIGHT is symmetric. Jumps touching both halves never trigger a transition.
# - A transition to the other side closes the open run. The transition group itself is counted
#   in the run being closed; the next run starts at the following stepped group.
# - Two separate checks feed the same variable timing flag:
#   - step spacing check: elapsed time since the previous step differs from the previous
#     elapsed time by more than 0.001s. The previous elapsed time is tracked across the whole
#     chart and is not reset per run.
#   - stream spacing check (at close): the closing group does not sit exactly one note of the
#     greatest seen note type after the previous stepped group. Note types are never coarser
#     than a quarter note, so half and whole note runs fail this check and count as variable.
# - The run still open when the chart ends is never closed or reported.
#
########################
# Interfaces:
# Public enums:
# - class Side(enum.Enum): NONE | LEFT | RIGHT
#
# Public constants:
# - DEFAULT_VALID_DENOMINATORS = (4, 8, 12, 16, 24, 32, 48)
#
# Public dataclasses:
# - RunClassification(denominator: Optional[int])
#   - constant_rhythm(denominator: int) -> RunClassification
#   - variable_timing() -> RunClassification
#   - is_variable_timing -> bool
# - SideRunSegment(duration_seconds: float, step_count: int, classification: RunClassification)
#   - notes_per_second -> Optional[float]
# - SideRunState(...)
#   - close_run(*, current_position, current_time_seconds, valid_denominators) -> SideRunSegment
#
# Public classes:
# - class SegmentBuckets
#   - add(segment: SideRunSegment) -> None
#   - constant_rhythm(denominator: int) -> list[SideRunSegment]
#   - variable_timing() -> list[SideRunSegment]
#   - ordered() -> list[SideRunSegment]
# - class SegmentationMachine
#   - __init__(valid_denominators: Sequence[int] = DEFAULT_VALID_DENOMINATORS)
#   - state -> SideRunState
#   - process(group: StepGroup, context: SideContext) -> Optional[SideRunSegment]
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Dict, List, Optional, Sequence, Tuple

from chart_models import BEATS_PER_MEASURE, MetricPosition
from side_tracker import SideContext
from step_groups import StepGroup


DEFAULT_VALID_DENOMINATORS: Tuple[int, ...] = (4, 8, 12, 16, 24, 32, 48)

_TIMING_TOLERANCE_SECONDS = 0.001
_POSITION_TOLERANCE_BEATS = 0.001


class Side(enum.Enum):
    NONE = "none"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class RunClassification:
    denominator: Optional[int] = None

    @classmethod
    def constant_rhythm(cls, denominator: int) -> "RunClassification":
        return cls(denominator=int(denominator))

    @classmethod
    def variable_timing(cls) -> "RunClassification":
        return cls(denominator=None)

    @property
    def is_variable_timing(self) -> bool:
        return self.denominator is None


@dataclass(frozen=True)
class SideRunSegment:
    duration_seconds: float
    step_count: int
    classification: RunClassification

    @property
    def notes_per_second(self) -> Optional[float]:
        if self.duration_seconds <= 0.0:
            return None
        return float(self.step_count) / float(self.duration_seconds)


@dataclass
class SideRunState:
    current_side: Side = Side.NONE
    steps_on_current_side: int = 0
    time_of_first_step_on_current_side: float = 0.0
    greatest_denominator_seen: int = 0
    uses_variable_timing: bool = False
    previous_was_fully_left: bool = False
    previous_was_fully_right: bool = False
    previous_time_seconds: float = 0.0
    previous_delta_seconds: float = 0.0
    previous_position: MetricPosition = field(default_factory=lambda: MetricPosition(0, 0))

    def _breaks_stream_spacing(self, current_position: MetricPosition) -> bool:
        if self.greatest_denominator_seen <= 0:
            return False
        # One note of the greatest note type, in beats: 1.0 for quarters, 0.5 for eighths.
        expected_beats = float(BEATS_PER_MEASURE) / float(self.greatest_denominator_seen)
        current_beats = current_position.total_beats()
        previous_beats = self.previous_position.total_beats()
        return abs(current_beats - (previous_beats + expected_beats)) > _POSITION_TOLERANCE_BEATS

    def close_run(
        self,
        *,
        current_position: MetricPosition,
        current_time_seconds: float,
        valid_denominators: Sequence[int],
    ) -> SideRunSegment:
        if self._breaks_stream_spacing(current_position):
            self.uses_variable_timing = True

        if self.uses_variable_timing:
            classification = RunClassification.variable_timing()
        elif self.greatest_denominator_seen in valid_denominators:
            classification = RunClassification.constant_rhythm(self.greatest_denominator_seen)
        else:
            classification = RunClassification.constant_rhythm(max(valid_denominators))

        segment = SideRunSegment(
            duration_seconds=float(current_time_seconds) - float(self.time_of_first_step_on_current_side),
            step_count=int(self.steps_on_current_side),
            classification=classification,
        )

        self.steps_on_current_side = 0
        self.time_of_first_step_on_current_side = 0.0
        self.uses_variable_timing = False
        self.greatest_denominator_seen = 0
        return segment


class SegmentBuckets:
    """Finished segments keyed by note type, plus one list for variable timing."""

    def __init__(self, valid_denominators: Sequence[int] = DEFAULT_VALID_DENOMINATORS) -> None:
        self._valid_denominators = tuple(int(value) for value in valid_denominators)
        self._constant: Dict[int, List[SideRunSegment]] = {value: [] for value in self._valid_denominators}
        self._variable: List[SideRunSegment] = []

    def valid_denominators(self) -> Tuple[int, ...]:
        return self._valid_denominators

    def add(self, segment: SideRunSegment) -> None:
        if segment.classification.is_variable_timing:
            self._variable.append(segment)
            return
        self._constant[int(segment.classification.denominator)].append(segment)

    def constant_rhythm(self, denominator: int) -> List[SideRunSegment]:
        return list(self._constant.get(int(denominator), []))

    def variable_timing(self) -> List[SideRunSegment]:
        return list(self._variable)

    def ordered(self) -> List[SideRunSegment]:
        ordered_segments: List[SideRunSegment] = []
        for denominator in self._valid_denominators:
            ordered_segments.extend(self._constant[denominator])
        ordered_segments.extend(self._variable)
        return ordered_segments

    def __len__(self) -> int:
        return sum(len(items) for items in self._constant.values()) + len(self._variable)


class SegmentationMachine:
    def __init__(self, valid_denominators: Sequence[int] = DEFAULT_VALID_DENOMINATORS) -> None:
        denominators = tuple(int(value) for value in valid_denominators)
        if not denominators:
            raise ValueError("valid_denominators must not be empty")
        self._valid_denominators = denominators
        self._state = SideRunState()

    @property
    def state(self) -> SideRunState:
        return self._state

    def _fold_group_into_run(self, group: StepGroup) -> None:
        state = self._state
        denominator = group.position.note_type_denominator()
        for _ in range(group.step_count):
            if state.steps_on_current_side == 0:
                state.time_of_first_step_on_current_side = float(group.time_seconds)
            state.steps_on_current_side += 1
            state.greatest_denominator_seen = max(state.greatest_denominator_seen, denominator)

    def _check_step_spacing(self, delta_seconds: float) -> None:
        if abs(delta_seconds - self._state.previous_delta_seconds) > _TIMING_TOLERANCE_SECONDS:
            self._state.uses_variable_timing = True

    def _enter_side(self, side: Side, group: StepGroup) -> Optional[SideRunSegment]:
        state = self._state
        segment = None
        if state.current_side is not Side.NONE and state.current_side is not side:
            segment = state.close_run(
                current_position=group.position,
                current_time_seconds=group.time_seconds,
                valid_denominators=self._valid_denominators,
            )
        state.current_side = side
        return segment

    def process(self, group: StepGroup, context: SideContext) -> Optional[SideRunSegment]:
        if not group.is_step:
            return None

        state = self._state
        self._fold_group_into_run(group)

        delta_seconds = float(group.time_seconds) - float(state.previous_time_seconds)
        self._check_step_spacing(delta_seconds)

        segment = None
        if group.is_fully_left and state.previous_was_fully_left and not context.held_right and not context.jack:
            segment = self._enter_side(Side.LEFT, group)
        elif group.is_fully_right and state.previous_was_fully_right and not context.held_left and not context.jack:
            segment = self._enter_side(Side.RIGHT, group)

        state.previous_was_fully_left = group.is_fully_left
        state.previous_was_fully_right = group.is_fully_right
        state.previous_time_seconds = float(group.time_seconds)
        state.previous_delta_seconds = delta_seconds
        state.previous_position = group.position
        return segment


def _run_unit_tests() -> None:
    import synthetic_charts
    from side_tracker import SideHoldTracker
    from step_groups import iter_step_groups

    chart = synthetic_charts.build_lane_sequence_chart(
        lanes=[0, 1, 2, 3, 0, 1, 2, 3],
        num_inputs=4,
        rows_per_beat=2,
        seconds_per_row=0.25,
    )
    machine = SegmentationMachine()
    tracker = SideHoldTracker(chart.num_inputs)
    segments = []
    for group in iter_step_groups(chart.events, chart.num_inputs):
        segment = machine.process(group, tracker.update(group))
        if segment is not None:
            segments.append(segment)

    assert [segment.step_count for segment in segments] == [4, 2, 2]
    assert all(segment.duration_seconds >= 0.0 for segment in segments)
    assert segments[1].classification == RunClassification.constant_rhythm(8)
    assert machine.state.steps_on_current_side == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("segmentation.py: ok")
