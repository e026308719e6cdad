# -*- coding: utf-8 -*-
########################
# chart_models.py
########################
# Purpose:
# - Plain value types for a parsed chart: note kinds, metric positions, note events
#   and the chart descriptor handed to the analysis engine.
#
# Design notes:
# - Produced by sm_store.py, read-only to everything downstream.
# - Meter is fixed at 4 beats per measure.
# - MetricPosition equality is exact (Fraction based), which is what step grouping relies on.
#
########################
# Interfaces:
# Public constants:
# - BEATS_PER_MEASURE = 4
#
# Public enums:
# - class NoteKind(enum.Enum): TAP_START | HOLD_START | HOLD_END
#
# Public dataclasses:
# - MetricPosition(measure: int, beat: int, subdivision: fractions.Fraction)
#   - total_beats() -> float
#   - beat_denominator() -> int
#   - note_type_denominator() -> int
# - NoteEvent(time_seconds: float, position: MetricPosition, lane: int, kind: NoteKind)
#   - is_step -> bool
# - ChartDescriptor(title, chart_type, difficulty, rating, num_inputs, events, source_path)
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from fractions import Fraction
from pathlib import Path
from typing import Optional, Tuple


BEATS_PER_MEASURE = 4


class NoteKind(enum.Enum):
    TAP_START = "tap_start"
    HOLD_START = "hold_start"
    HOLD_END = "hold_end"


@dataclass(frozen=True, order=True)
class MetricPosition:
    measure: int
    beat: int
    subdivision: Fraction = field(default_factory=Fraction)

    def total_beats(self) -> float:
        return float(self.measure * BEATS_PER_MEASURE + self.beat) + float(self.subdivision)

    def beat_denominator(self) -> int:
        """Reduced denominator of the subdivision within its beat. 1 on a beat, 2 on an offbeat eighth."""
        return Fraction(self.subdivision).denominator

    def note_type_denominator(self) -> int:
        """Note type of this position: 4 for quarter notes, 8 for eighths, 12 for eighth triplets.

        Positions on a beat are quarter notes; slower spacing has no note type of its own.
        """
        return BEATS_PER_MEASURE * self.beat_denominator()


@dataclass(frozen=True)
class NoteEvent:
    time_seconds: float
    position: MetricPosition
    lane: int
    kind: NoteKind = NoteKind.TAP_START

    @property
    def is_step(self) -> bool:
        return self.kind is not NoteKind.HOLD_END


@dataclass(frozen=True)
class ChartDescriptor:
    title: str
    chart_type: str
    difficulty: str
    rating: int
    num_inputs: int
    events: Tuple[NoteEvent, ...]
    source_path: Optional[Path] = None
