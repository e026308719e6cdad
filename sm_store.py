# -*- coding: utf-8 -*-
########################
# sm_store.py
########################
# Purpose:
# - Parse StepMania .sm files into chart_models.ChartDescriptor values for analysis.
#
# Design notes:
# - Pure parsing. No analysis logic here.
# - Parsing must be tolerant of minor format variance but never silently accept invalid charts.
# - Every #NOTES block with a known step type becomes one ChartDescriptor; unknown step types are skipped.
# - An invalid #NOTES block is logged and dropped on its own. The other charts of the file are kept.
# - Files that are not UTF-8 are decoded with replacement characters; only free text like #TITLE is affected.
# - Meter is assumed to be 4/4: each measure spans 4 beats regardless of its row count.
#
########################
# Interfaces:
# Public exceptions:
# - class SimfileError(Exception)
# - class SimfileParseError(SimfileError)
# - class SimfileValidationError(SimfileError)
#
# Public dataclasses:
# - SimfileHeader(title: str, offset_seconds: float, bpm_segments: Sequence[tuple[float,float]],
#                 stops: Sequence[tuple[float,float]])
# - StepChartBlock(step_type: str, difficulty: str, meter: int, description: str, notes_text: str)
# - LoadedSimfile(header: SimfileHeader, charts: list[ChartDescriptor], source_path: pathlib.Path)
#
# Public functions:
# - normalize_difficulty(difficulty: str) -> str
# - difficulty_label(difficulty: str) -> str
# - lane_count_for_step_type(step_type: str) -> Optional[int]
# - parse_simfile_text(simfile_text: str, *, source_path: Optional[pathlib.Path] = None) -> LoadedSimfile
# - load_simfile(simfile_path: pathlib.Path) -> LoadedSimfile
#
# Inputs:
# - .sm file path or text.
#
# Outputs:
# - LoadedSimfile with one ChartDescriptor per supported #NOTES block.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import logging
import re

from chart_models import BEATS_PER_MEASURE, ChartDescriptor, MetricPosition, NoteEvent, NoteKind


logger = logging.getLogger(__name__)


class SimfileError(Exception):
    """Base error for simfile parsing and validation."""


class SimfileParseError(SimfileError):
    """Raised when the file cannot be parsed into expected .sm structure."""


class SimfileValidationError(SimfileError):
    """Raised when the file parses but violates the chart rules used for analysis."""


@dataclass(frozen=True)
class SimfileHeader:
    title: str
    offset_seconds: float
    bpm_segments: Sequence[Tuple[float, float]]
    stops: Sequence[Tuple[float, float]]


@dataclass(frozen=True)
class StepChartBlock:
    step_type: str
    difficulty: str
    meter: int
    description: str
    notes_text: str


@dataclass(frozen=True)
class LoadedSimfile:
    header: SimfileHeader
    charts: List[ChartDescriptor]
    source_path: Optional[Path]


_ALLOWED_DIFFICULTIES = {
    "beginner",
    "easy",
    "medium",
    "hard",
    "challenge",
    "edit",
}

_DIFFICULTY_CANONICAL_LABEL = {
    "beginner": "Beginner",
    "easy": "Easy",
    "medium": "Medium",
    "hard": "Hard",
    "challenge": "Challenge",
    "edit": "Edit",
}

_STEP_TYPE_LANES = {
    "dance-single": 4,
    "dance-solo": 6,
    "dance-double": 8,
    "pump-single": 5,
    "pump-halfdouble": 6,
    "pump-double": 10,
}

_SYMBOL_KINDS = {
    "1": NoteKind.TAP_START,
    "L": NoteKind.TAP_START,
    "2": NoteKind.HOLD_START,
    "4": NoteKind.HOLD_START,
    "3": NoteKind.HOLD_END,
}

_IGNORED_SYMBOLS = {"0", "M", "F", "K"}


def normalize_difficulty(difficulty: str) -> str:
    difficulty_text = str(difficulty or "").strip().lower()
    if difficulty_text not in _ALLOWED_DIFFICULTIES:
        raise ValueError(
            f"Unsupported difficulty: {difficulty!r}. Allowed: {sorted(_ALLOWED_DIFFICULTIES)}"
        )
    return difficulty_text


def difficulty_label(difficulty: str) -> str:
    return _DIFFICULTY_CANONICAL_LABEL[normalize_difficulty(difficulty)]


def lane_count_for_step_type(step_type: str) -> Optional[int]:
    return _STEP_TYPE_LANES.get(str(step_type or "").strip().lower())


def _read_simfile_text(file_path: Path) -> str:
    try:
        raw_bytes = file_path.read_bytes()
    except OSError as exc:
        raise SimfileParseError(f"Failed to read simfile: {file_path}") from exc

    try:
        return raw_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.warning("Simfile is not valid UTF-8, undecodable bytes replaced: %s", file_path)
        return raw_bytes.decode("utf-8-sig", errors="replace")


def _strip_comments(simfile_text: str) -> str:
    return re.sub(r"//[^\n]*", "", simfile_text)


def _parse_sm_tags(simfile_text: str) -> Dict[str, str]:
    """Parse #TAG:value; fields, values may span lines.

    #NOTES is excluded; note blocks are extracted separately.
    """
    tags: Dict[str, str] = {}
    for match in re.finditer(r"(?s)#([A-Za-z0-9_]+)\s*:(.*?);", simfile_text):
        tag_name = str(match.group(1) or "").strip().upper()
        if tag_name == "NOTES":
            continue
        tags[tag_name] = str(match.group(2) or "").strip()
    return tags


def _parse_offset_seconds(tags: Dict[str, str]) -> float:
    raw_text = tags.get("OFFSET", "").strip()
    if not raw_text:
        return 0.0
    try:
        return float(raw_text)
    except ValueError as exc:
        raise SimfileParseError(f"Invalid #OFFSET value: {raw_text!r}") from exc


def _parse_beat_value_pairs(raw_text: str, *, tag_name: str) -> List[Tuple[float, float]]:
    pairs: List[Tuple[float, float]] = []
    for item in raw_text.split(","):
        item_text = item.strip()
        if not item_text:
            continue
        if "=" not in item_text:
            raise SimfileParseError(f"Invalid #{tag_name} segment: {item_text!r}")
        beat_text, value_text = item_text.split("=", 1)
        try:
            pairs.append((float(beat_text.strip()), float(value_text.strip())))
        except ValueError as exc:
            raise SimfileParseError(f"Invalid #{tag_name} segment numeric values: {item_text!r}") from exc
    pairs.sort(key=lambda pair: pair[0])
    return pairs


def _parse_bpm_segments(tags: Dict[str, str]) -> List[Tuple[float, float]]:
    segments = _parse_beat_value_pairs(tags.get("BPMS", ""), tag_name="BPMS")
    for _, bpm_value in segments:
        if bpm_value <= 0.0:
            raise SimfileParseError(f"Invalid BPM value (must be > 0): {bpm_value!r}")

    if not segments:
        segments.append((0.0, 120.0))

    if segments[0][0] > 0.0:
        # Anything before the first listed change plays at its tempo.
        segments.insert(0, (0.0, segments[0][1]))

    return segments


def _parse_stops(tags: Dict[str, str]) -> List[Tuple[float, float]]:
    raw_text = tags.get("STOPS", "") or tags.get("FREEZES", "")
    stops = _parse_beat_value_pairs(raw_text, tag_name="STOPS")
    return [(beat_value, seconds) for beat_value, seconds in stops if seconds > 0.0]


def _extract_notes_blocks(simfile_text: str) -> List[str]:
    """Extract raw #NOTES blocks without the leading marker and trailing semicolon."""
    blocks: List[str] = []
    pattern = re.compile(r"(?is)#NOTES\s*:\s*(.*?)\s*;", re.MULTILINE)
    for match in pattern.finditer(simfile_text):
        block_body = str(match.group(1) or "")
        blocks.append(block_body)
    return blocks


def _parse_notes_block(block_body: str) -> StepChartBlock:
    parts = block_body.split(":", 5)
    if len(parts) != 6:
        raise SimfileParseError("Invalid #NOTES block structure: expected 6 colon-separated fields")

    step_type_text = str(parts[0]).strip().lower()
    description_text = str(parts[1]).strip()
    difficulty_text_raw = str(parts[2]).strip()
    meter_text = str(parts[3]).strip()
    # radar values are parts[4], ignored but required
    notes_text = str(parts[5])

    if not step_type_text:
        raise SimfileParseError("Missing step type in #NOTES block")
    if not difficulty_text_raw:
        raise SimfileParseError("Missing difficulty in #NOTES block")

    try:
        meter_value = int(meter_text) if meter_text else 1
    except ValueError as exc:
        raise SimfileParseError(f"Invalid meter value in #NOTES block: {meter_text!r}") from exc

    try:
        normalized_difficulty = normalize_difficulty(difficulty_text_raw)
    except ValueError as exc:
        raise SimfileValidationError(str(exc)) from exc

    return StepChartBlock(
        step_type=step_type_text,
        difficulty=normalized_difficulty,
        meter=meter_value,
        description=description_text,
        notes_text=notes_text,
    )


def _build_header_from_tags(tags: Dict[str, str]) -> SimfileHeader:
    title_text = tags.get("TITLE", "").strip() or "Untitled"
    return SimfileHeader(
        title=title_text,
        offset_seconds=float(_parse_offset_seconds(tags)),
        bpm_segments=_parse_bpm_segments(tags),
        stops=_parse_stops(tags),
    )


def _build_beat_to_seconds_mapper(header: SimfileHeader) -> Callable[[float], float]:
    segments = list(header.bpm_segments) if header.bpm_segments else [(0.0, 120.0)]
    segments.sort(key=lambda segment: segment[0])
    stops = list(header.stops)
    offset_seconds = float(header.offset_seconds)

    cumulative_seconds_at_start: List[float] = [0.0]
    for index in range(1, len(segments)):
        prev_start_beat, prev_bpm = segments[index - 1]
        current_start_beat, _ = segments[index]
        beat_delta = float(current_start_beat) - float(prev_start_beat)
        seconds_per_beat = 60.0 / float(prev_bpm)
        cumulative_seconds_at_start.append(cumulative_seconds_at_start[-1] + beat_delta * seconds_per_beat)

    def beat_to_seconds(beat_value: float) -> float:
        beat_number = float(beat_value)
        segment_index = 0
        for index in range(len(segments)):
            start_beat, _ = segments[index]
            if beat_number >= float(start_beat):
                segment_index = index
            else:
                break
        segment_start_beat, segment_bpm = segments[segment_index]
        seconds_per_beat = 60.0 / float(segment_bpm)
        seconds = cumulative_seconds_at_start[segment_index] + (beat_number - float(segment_start_beat)) * seconds_per_beat
        # A note on a stop's beat plays before the stop.
        seconds += sum(stop_seconds for stop_beat, stop_seconds in stops if stop_beat < beat_number)
        return seconds - offset_seconds

    return beat_to_seconds


def _split_measures(notes_text: str) -> List[List[str]]:
    measures: List[List[str]] = []
    current_measure_rows: List[str] = []

    for raw_line in notes_text.splitlines():
        line_text = "".join(char for char in str(raw_line) if not char.isspace())
        if not line_text:
            continue

        if line_text == ",":
            measures.append(current_measure_rows)
            current_measure_rows = []
            continue

        if line_text.endswith(","):
            row_part = line_text[:-1]
            if row_part:
                current_measure_rows.append(row_part)
            measures.append(current_measure_rows)
            current_measure_rows = []
            continue

        current_measure_rows.append(line_text)

    if current_measure_rows:
        measures.append(current_measure_rows)
    return measures


def _parse_notes_text_to_events(
    notes_text: str,
    *,
    num_inputs: int,
    beat_to_seconds: Callable[[float], float],
) -> List[NoteEvent]:
    events: List[NoteEvent] = []

    for measure_index, measure_rows in enumerate(_split_measures(notes_text)):
        rows_per_measure = len(measure_rows)
        if rows_per_measure <= 0:
            continue

        for row_index, row_text in enumerate(measure_rows):
            if len(row_text) != num_inputs:
                raise SimfileValidationError(
                    f"Invalid row width. Expected {num_inputs}, got {len(row_text)}: {row_text!r}"
                )

            beat_in_measure = Fraction(row_index * BEATS_PER_MEASURE, rows_per_measure)
            whole_beat = int(beat_in_measure)
            position = MetricPosition(
                measure=measure_index,
                beat=whole_beat,
                subdivision=beat_in_measure - whole_beat,
            )
            time_seconds = float(beat_to_seconds(position.total_beats()))

            for lane_index, symbol in enumerate(row_text.upper()):
                if symbol in _IGNORED_SYMBOLS:
                    continue
                kind = _SYMBOL_KINDS.get(symbol)
                if kind is None:
                    raise SimfileValidationError(f"Unsupported note symbol {symbol!r} in row {row_text!r}.")
                events.append(NoteEvent(time_seconds=time_seconds, position=position, lane=lane_index, kind=kind))

    events.sort(key=lambda event: (event.time_seconds, event.position, event.lane))
    return events


def parse_simfile_text(simfile_text: str, *, source_path: Optional[Path] = None) -> LoadedSimfile:
    cleaned_text = _strip_comments(simfile_text)
    tags = _parse_sm_tags(cleaned_text)
    header = _build_header_from_tags(tags)

    notes_blocks_raw = _extract_notes_blocks(cleaned_text)
    if not notes_blocks_raw:
        raise SimfileParseError("No #NOTES blocks found")

    beat_to_seconds = _build_beat_to_seconds_mapper(header)

    charts: List[ChartDescriptor] = []
    for block_index, block_body in enumerate(notes_blocks_raw):
        try:
            block = _parse_notes_block(block_body)
            num_inputs = lane_count_for_step_type(block.step_type)
            if num_inputs is None:
                continue
            events = _parse_notes_text_to_events(
                block.notes_text,
                num_inputs=num_inputs,
                beat_to_seconds=beat_to_seconds,
            )
        except SimfileError as exc:
            logger.warning(
                "Skipping #NOTES block %d in %s: %s",
                block_index + 1,
                source_path if source_path is not None else header.title,
                exc,
            )
            continue

        charts.append(
            ChartDescriptor(
                title=header.title,
                chart_type=block.step_type,
                difficulty=difficulty_label(block.difficulty),
                rating=int(block.meter),
                num_inputs=int(num_inputs),
                events=tuple(events),
                source_path=source_path,
            )
        )

    return LoadedSimfile(header=header, charts=charts, source_path=source_path)


def load_simfile(simfile_path: Path) -> LoadedSimfile:
    simfile_text = _read_simfile_text(Path(simfile_path))
    return parse_simfile_text(simfile_text, source_path=Path(simfile_path))
