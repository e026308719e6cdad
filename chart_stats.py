# -*- coding: utf-8 -*-
########################
# chart_stats.py
########################
# Purpose:
# - Single pass rhythm statistics for one chart.
# - Wires step grouping, hold/side tracking, side run segmentation and NPS sampling together
#   and returns a summary plus the finished side run segments.
#
########################
# Key Logic:
# - Strict contract:
#   - All state is created per call and discarded afterwards. Safe to run charts in parallel.
#   - A chart with zero steps is a normal outcome: returns None, no summary and no segments.
#   - Lane counts must be even and positive; lanes must be in [0, num_inputs).
# - Per group order:
#   - hold/jack context first
#   - NPS sample against the previous stepped group's time
#   - segmentation (which then advances the previous step record)
#
########################
# Interfaces:
# Public exceptions:
# - class ChartAnalysisError(ValueError)
#
# Public dataclasses:
# - ChartStatsSummary(total_steps, lane_step_counts, average_nps, peak_nps, density)
#   - lane_fractions() -> tuple[float, ...]
# - ChartAnalysis(chart: ChartDescriptor, summary: ChartStatsSummary, segments: SegmentBuckets, nps_samples: tuple[float, ...])
#
# Public functions:
# - analyze_chart(chart: ChartDescriptor, *, valid_denominators: Sequence[int] = DEFAULT_VALID_DENOMINATORS) -> Optional[ChartAnalysis]
#
########################
# Smoke Tests:
#   - python chart_stats.py
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional, Sequence, Tuple

from chart_models import ChartDescriptor
from density import DensityBuckets, DensitySampler, average_nps, density_bucket_fractions
from segmentation import DEFAULT_VALID_DENOMINATORS, SegmentBuckets, SegmentationMachine
from side_tracker import SideHoldTracker
from step_groups import iter_step_groups


logger = logging.getLogger(__name__)


class ChartAnalysisError(ValueError):
    """Raised when a chart cannot be analysed with the fixed two sided lane model."""


@dataclass(frozen=True)
class ChartStatsSummary:
    total_steps: int
    lane_step_counts: Tuple[int, ...]
    average_nps: float
    peak_nps: float
    density: DensityBuckets

    def lane_fractions(self) -> Tuple[float, ...]:
        if self.total_steps <= 0:
            return tuple(0.0 for _ in self.lane_step_counts)
        return tuple(float(count) / float(self.total_steps) for count in self.lane_step_counts)


@dataclass(frozen=True)
class ChartAnalysis:
    chart: ChartDescriptor
    summary: ChartStatsSummary
    segments: SegmentBuckets
    nps_samples: Tuple[float, ...]


def _validate_chart(chart: ChartDescriptor) -> None:
    num_inputs = int(chart.num_inputs)
    if num_inputs <= 0 or num_inputs % 2 != 0:
        raise ChartAnalysisError(f"num_inputs must be a positive even number, got {num_inputs}")
    for event in chart.events:
        if event.lane < 0 or event.lane >= num_inputs:
            raise ChartAnalysisError(f"Lane {event.lane} out of range for {num_inputs} inputs at {event.position}")


def analyze_chart(
    chart: ChartDescriptor,
    *,
    valid_denominators: Sequence[int] = DEFAULT_VALID_DENOMINATORS,
) -> Optional[ChartAnalysis]:
    _validate_chart(chart)
    num_inputs = int(chart.num_inputs)

    tracker = SideHoldTracker(num_inputs)
    machine = SegmentationMachine(valid_denominators)
    sampler = DensitySampler()
    buckets = SegmentBuckets(valid_denominators)

    lane_step_counts: List[int] = [0] * num_inputs
    total_steps = 0
    first_note_seconds: Optional[float] = None
    last_note_seconds = 0.0

    for group in iter_step_groups(chart.events, num_inputs):
        context = tracker.update(group)

        for event in group.events:
            if not event.is_step:
                continue
            lane_step_counts[event.lane] += 1
            total_steps += 1
            if first_note_seconds is None:
                first_note_seconds = float(event.time_seconds)
            last_note_seconds = float(event.time_seconds)

        sampler.sample(group, machine.state.previous_time_seconds)

        segment = machine.process(group, context)
        if segment is not None:
            buckets.add(segment)

    if total_steps == 0:
        logger.debug("Skipping %r %s: no steps", chart.title, chart.difficulty)
        return None

    sampler.finish()
    samples = tuple(sampler.samples())
    chart_average_nps = average_nps(total_steps, float(first_note_seconds or 0.0), last_note_seconds)

    summary = ChartStatsSummary(
        total_steps=total_steps,
        lane_step_counts=tuple(lane_step_counts),
        average_nps=chart_average_nps,
        peak_nps=sampler.peak_nps(),
        density=density_bucket_fractions(samples, average_nps=chart_average_nps, total_steps=total_steps),
    )

    logger.debug(
        "Analysed %r %s: %d steps, %d side runs (open run of %d steps not reported)",
        chart.title,
        chart.difficulty,
        total_steps,
        len(buckets),
        machine.state.steps_on_current_side,
    )

    return ChartAnalysis(chart=chart, summary=summary, segments=buckets, nps_samples=samples)


def _assert(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def _run_chunk_tests() -> None:
    import synthetic_charts

    # Uniform eighth note stream across all lanes.
    stream = synthetic_charts.build_lane_sequence_chart(lanes=[0, 1, 2, 3] * 4, seconds_per_row=0.25)
    analysis = analyze_chart(stream)
    _assert(analysis is not None, "Expected an analysis for a stream chart")
    _assert(analysis.summary.total_steps == 16, "Expected 16 steps")
    _assert(len(analysis.nps_samples) == 16, "Expected one NPS sample per note")
    _assert(sum(analysis.summary.lane_step_counts) == 16, "Lane counts must add up to total steps")
    _assert(analysis.summary.density.over_2x == 0.0, "Uniform stream must not have dense outliers")

    # Rests only.
    empty = synthetic_charts.build_lane_sequence_chart(lanes=[None, None, None])
    _assert(analyze_chart(empty) is None, "Expected no analysis for a chart without steps")

    # Odd lane count is rejected.
    odd = synthetic_charts.build_rows_chart(["100", "010"])
    try:
        analyze_chart(odd)
    except ChartAnalysisError:
        pass
    else:
        raise AssertionError("Expected ChartAnalysisError for odd lane count")


def main() -> int:
    """Chunk test entrypoint."""
    try:
        _run_chunk_tests()
    except Exception as exc:
        print("Chart stats chunk tests: FAIL")
        print(str(exc))
        return 2

    print("Chart stats chunk tests: PASS")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
