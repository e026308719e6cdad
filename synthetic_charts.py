# -*- coding: utf-8 -*-
########################
# synthetic_charts.py
########################
# Purpose:
# - Build deterministic ChartDescriptor values without a simfile, for module self-tests and tests.
#
# Design notes:
# - Every row is one slot on an even grid: rows_per_beat rows per beat, seconds_per_row apart.
# - Positions follow the same measure/beat/subdivision layout sm_store.py produces.
# - No randomness here. Callers that want variety seed their own generator.
#
########################
# Interfaces:
# Public functions:
# - position_for_row(row_index: int, rows_per_beat: int) -> MetricPosition
# - build_rows_chart(rows: Sequence[str], *, rows_per_beat=2, seconds_per_row=0.25, start_seconds=0.0,
#                    title="Synthetic", chart_type="dance-single", difficulty="Medium", rating=5) -> ChartDescriptor
# - build_lane_sequence_chart(*, lanes: Sequence[LaneStep], num_inputs=4, rows_per_beat=2,
#                             seconds_per_row=0.25, start_seconds=0.0) -> ChartDescriptor
#
########################

from __future__ import annotations

from fractions import Fraction
from typing import List, Optional, Sequence, Union

from chart_models import BEATS_PER_MEASURE, ChartDescriptor, MetricPosition, NoteEvent, NoteKind


_ROW_SYMBOL_KINDS = {
    "1": NoteKind.TAP_START,
    "2": NoteKind.HOLD_START,
    "3": NoteKind.HOLD_END,
}

LaneStep = Optional[Union[int, Sequence[int]]]


def position_for_row(row_index: int, rows_per_beat: int) -> MetricPosition:
    total_beats, row_in_beat = divmod(int(row_index), int(rows_per_beat))
    measure, beat = divmod(total_beats, BEATS_PER_MEASURE)
    return MetricPosition(measure=measure, beat=beat, subdivision=Fraction(row_in_beat, int(rows_per_beat)))


def build_rows_chart(
    rows: Sequence[str],
    *,
    rows_per_beat: int = 2,
    seconds_per_row: float = 0.25,
    start_seconds: float = 0.0,
    title: str = "Synthetic",
    chart_type: str = "dance-single",
    difficulty: str = "Medium",
    rating: int = 5,
) -> ChartDescriptor:
    """Build a chart from StepMania-like rows on an evenly spaced grid.

    Each row is one grid slot, '0' empty, '1' tap, '2' hold start, '3' hold end.
    """
    num_inputs = len(rows[0]) if rows else 4
    events: List[NoteEvent] = []
    for row_index, row_text in enumerate(rows):
        if len(row_text) != num_inputs:
            raise ValueError(f"Row width mismatch: {row_text!r}")
        position = position_for_row(row_index, rows_per_beat)
        time_seconds = float(start_seconds) + float(row_index) * float(seconds_per_row)
        for lane, symbol in enumerate(row_text):
            kind = _ROW_SYMBOL_KINDS.get(symbol)
            if kind is None:
                continue
            events.append(NoteEvent(time_seconds=time_seconds, position=position, lane=lane, kind=kind))

    return ChartDescriptor(
        title=title,
        chart_type=chart_type,
        difficulty=difficulty,
        rating=int(rating),
        num_inputs=num_inputs,
        events=tuple(events),
    )


def build_lane_sequence_chart(
    *,
    lanes: Sequence[LaneStep],
    num_inputs: int = 4,
    rows_per_beat: int = 2,
    seconds_per_row: float = 0.25,
    start_seconds: float = 0.0,
) -> ChartDescriptor:
    """One grid slot per entry: a lane, a tuple of lanes for a jump, or None for a rest."""
    rows: List[str] = []
    for step in lanes:
        row = ["0"] * int(num_inputs)
        if step is not None:
            stepped = [step] if isinstance(step, int) else list(step)
            for lane in stepped:
                row[int(lane)] = "1"
        rows.append("".join(row))

    return build_rows_chart(
        rows,
        rows_per_beat=rows_per_beat,
        seconds_per_row=seconds_per_row,
        start_seconds=start_seconds,
        chart_type="dance-double" if int(num_inputs) == 8 else "dance-single",
    )
