# -*- coding: utf-8 -*-
########################
# density.py
########################
# Purpose:
# - Instantaneous notes-per-second (NPS) per step group, assigned to every note of the group.
# - Chart average NPS and the fraction of notes falling into relative density buckets.
#
# Design notes:
# - The first stepped group has no preceding interval. Its notes take the NPS of the second
#   stepped group, so every note ends up with exactly one sample.
# - A zero interval samples as 0.0 NPS, never inf or NaN.
# - A chart whose steps all share one group samples every note as 0.0 on finish().
#
########################
# Interfaces:
# Public dataclasses:
# - NpsSample(nps: float, is_peak: bool)
# - DensityBuckets(under_half: float, over_2x: float, over_3x: float, over_4x: float)
#
# Public classes:
# - class DensitySampler
#   - sample(group: StepGroup, previous_time_seconds: float) -> Optional[NpsSample]
#   - finish() -> None
#   - samples() -> list[float]
#   - peak_nps() -> float
#
# Public functions:
# - average_nps(total_steps: int, first_note_seconds: float, last_note_seconds: float) -> float
# - density_bucket_fractions(samples: Sequence[float], *, average_nps: float, total_steps: int) -> DensityBuckets
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from step_groups import StepGroup


@dataclass(frozen=True)
class NpsSample:
    nps: float
    is_peak: bool


@dataclass(frozen=True)
class DensityBuckets:
    under_half: float
    over_2x: float
    over_3x: float
    over_4x: float


class DensitySampler:
    def __init__(self) -> None:
        self._samples: List[float] = []
        self._peak_nps = 0.0
        self._seen_first_group = False
        self._pending_backfill = 0

    def samples(self) -> List[float]:
        return list(self._samples)

    def peak_nps(self) -> float:
        return float(self._peak_nps)

    def sample(self, group: StepGroup, previous_time_seconds: float) -> Optional[NpsSample]:
        if not group.is_step:
            return None

        if not self._seen_first_group:
            self._seen_first_group = True
            self._pending_backfill = int(group.step_count)
            return None

        delta_seconds = float(group.time_seconds) - float(previous_time_seconds)
        nps = float(group.step_count) / delta_seconds if delta_seconds > 0.0 else 0.0

        is_peak = nps > self._peak_nps
        if is_peak:
            self._peak_nps = nps

        self._samples.extend([nps] * int(group.step_count))
        if self._pending_backfill:
            self._samples[0:0] = [nps] * self._pending_backfill
            self._pending_backfill = 0

        return NpsSample(nps=nps, is_peak=is_peak)

    def finish(self) -> None:
        if self._pending_backfill:
            self._samples[0:0] = [0.0] * self._pending_backfill
            self._pending_backfill = 0


def average_nps(total_steps: int, first_note_seconds: float, last_note_seconds: float) -> float:
    play_time_seconds = float(last_note_seconds) - float(first_note_seconds)
    if play_time_seconds <= 0.0:
        return 0.0
    return float(total_steps) / play_time_seconds


def density_bucket_fractions(samples: Sequence[float], *, average_nps: float, total_steps: int) -> DensityBuckets:
    if total_steps <= 0:
        return DensityBuckets(under_half=0.0, over_2x=0.0, over_3x=0.0, over_4x=0.0)

    average = float(average_nps)
    under_half = 0
    over_2x = 0
    over_3x = 0
    over_4x = 0
    for nps in samples:
        if nps < 0.5 * average:
            under_half += 1
        elif 2.0 * average < nps <= 3.0 * average:
            over_2x += 1
        elif 3.0 * average < nps <= 4.0 * average:
            over_3x += 1
        elif nps > 4.0 * average:
            over_4x += 1

    total = float(total_steps)
    return DensityBuckets(
        under_half=under_half / total,
        over_2x=over_2x / total,
        over_3x=over_3x / total,
        over_4x=over_4x / total,
    )


def _run_unit_tests() -> None:
    import synthetic_charts
    from step_groups import iter_step_groups

    chart = synthetic_charts.build_lane_sequence_chart(lanes=[(0, 3), 1, 2], seconds_per_row=0.5)
    sampler = DensitySampler()
    previous_time = 0.0
    for group in iter_step_groups(chart.events, chart.num_inputs):
        sampler.sample(group, previous_time)
        previous_time = group.time_seconds
    sampler.finish()
    assert sampler.samples() == [2.0, 2.0, 2.0, 2.0]
    assert sampler.peak_nps() == 2.0

    buckets = density_bucket_fractions([1.0, 1.0, 10.0, 0.1], average_nps=1.0, total_steps=4)
    assert buckets.under_half == 0.25
    assert buckets.over_4x == 0.25
    assert average_nps(3, 1.0, 1.0) == 0.0


if __name__ == "__main__":
    _run_unit_tests()
    print("density.py: ok")
