# -*- coding: utf-8 -*-
########################
# osu_store.py
########################
# Purpose:
# - Parse osu! beatmap (.osu) text into the internal gameplay_models.Chart representation.
# - Project osu! playfield coordinates onto the 4 lane x 3 floor grid.
#
# Design notes:
# - Parsing is tolerant: a malformed field or line is skipped, never fatal.
#   Defaults: slider multiplier 1.4, long note length 1.0s, tempo 100 BPM (timing_resolver).
# - Section scoped: only [General], [Metadata], [Difficulty], [TimingPoints] and [HitObjects] are read.
# - Long note durations are resolved here, once, through timing_resolver.TimingMap.
# - Output hit specs are sorted by time (stable), input order is not trusted.
#
########################
# Interfaces:
# Public exceptions:
# - class ChartError(Exception)
# - class ChartReadError(ChartError)
#
# Public dataclasses:
# - LoadedChart(chart: gameplay_models.Chart, source_path: pathlib.Path, dropped_line_count: int)
#
# Public functions:
# - lane_from_x(x: int) -> int
# - floor_from_y(y: int) -> int
# - parse_chart_text(text: str) -> gameplay_models.Chart
# - parse_chart_text_with_diagnostics(text: str) -> tuple[gameplay_models.Chart, int]
# - load_chart(chart_path: pathlib.Path) -> LoadedChart
#   - Raises ChartReadError if the file cannot be read or decoded.
#
# Inputs:
# - Raw .osu text.
#
# Outputs:
# - Chart with sorted HitSpec tuple, timing points and metadata.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from gameplay_models import (
    FLOOR_COUNT,
    LANE_COUNT,
    Chart,
    ChartMetadata,
    HitSpec,
    NoteKind,
    TimingPoint,
    TimingPointKind,
)
from timing_resolver import TimingMap

logger = logging.getLogger(__name__)

DEFAULT_SLIDER_MULTIPLIER = 1.4
DEFAULT_LONG_NOTE_SECONDS = 1.0
MIN_LONG_NOTE_SECONDS = 0.1

_PLAYFIELD_LANE_WIDTH = 128
_FLOOR_TOP_Y = 128
_FLOOR_MIDDLE_Y = 256

_TYPE_SLIDER = 2
_TYPE_MANIA_HOLD = 128

_METADATA_KEYS = {"Title": "title", "Artist": "artist", "Version": "version"}


class ChartError(Exception):
    """Base error for chart loading."""


class ChartReadError(ChartError):
    """Raised when a chart file cannot be read or decoded."""


@dataclass(frozen=True)
class LoadedChart:
    chart: Chart
    source_path: Path
    dropped_line_count: int


def _parse_int(text: str) -> Optional[int]:
    value_text = str(text).strip()
    try:
        return int(value_text)
    except ValueError:
        pass
    # Some editors write playfield coordinates as decimals.
    try:
        return int(float(value_text))
    except (ValueError, OverflowError):
        return None


def _parse_float(text: str) -> Optional[float]:
    try:
        value = float(str(text).strip())
    except ValueError:
        return None
    # inf and nan count as unparseable.
    if not math.isfinite(value):
        return None
    return value


def lane_from_x(x: int) -> int:
    return min(max(int(x) // _PLAYFIELD_LANE_WIDTH, 0), LANE_COUNT - 1)


def floor_from_y(y: int) -> int:
    # Playfield Y grows downward, floors grow upward.
    if int(y) < _FLOOR_TOP_Y:
        return FLOOR_COUNT - 1
    if int(y) < _FLOOR_MIDDLE_Y:
        return 1
    return 0


def _key_value(line_text: str) -> Tuple[str, str]:
    if ":" not in line_text:
        return ("", "")
    key_text, value_text = line_text.split(":", 1)
    return (key_text.strip(), value_text.strip())


def _parse_timing_point(line_text: str) -> Optional[TimingPoint]:
    parts = line_text.split(",")
    if len(parts) < 2:
        return None

    time_ms = _parse_float(parts[0])
    beat_length = _parse_float(parts[1])
    if time_ms is None or beat_length is None:
        return None

    kind = TimingPointKind.UNINHERITED
    if len(parts) >= 7:
        uninherited_flag = _parse_int(parts[6])
        if uninherited_flag == 0:
            kind = TimingPointKind.INHERITED

    return TimingPoint(time_ms=time_ms, beat_length=beat_length, kind=kind)


def _parse_curve_points(curve_text: str, head: Tuple[int, int]) -> Tuple[Tuple[int, int], ...]:
    curve_points: List[Tuple[int, int]] = [head]
    # First token is the curve type marker (B, L, P, C).
    for token in curve_text.split("|")[1:]:
        xy_parts = token.split(":")
        if len(xy_parts) != 2:
            continue
        x_value = _parse_int(xy_parts[0])
        y_value = _parse_int(xy_parts[1])
        if x_value is None or y_value is None:
            continue
        point = (lane_from_x(x_value), floor_from_y(y_value))
        if point != curve_points[-1]:
            curve_points.append(point)
    return tuple(curve_points)


def _slider_duration_seconds(
    parts: List[str],
    *,
    time_ms: float,
    timing_map: TimingMap,
    slider_multiplier: float,
) -> float:
    if len(parts) < 8:
        return DEFAULT_LONG_NOTE_SECONDS

    repeats = _parse_int(parts[6])
    if repeats is None:
        repeats = 1

    pixel_length = _parse_float(parts[7])
    if pixel_length is None:
        return DEFAULT_LONG_NOTE_SECONDS

    if pixel_length == 0.0:
        logger.debug("Zero length slider at %.0f ms", time_ms)

    try:
        duration_seconds = timing_map.slider_duration_seconds(
            slider_multiplier=slider_multiplier,
            time_ms=time_ms,
            pixel_length=pixel_length,
            repeats=repeats,
        )
    except ValueError as exc:
        logger.debug("Slider at %.0f ms has no usable velocity: %s", time_ms, exc)
        return DEFAULT_LONG_NOTE_SECONDS
    if not math.isfinite(duration_seconds):
        return DEFAULT_LONG_NOTE_SECONDS
    return duration_seconds


def _mania_hold_duration_seconds(parts: List[str], *, time_ms: float) -> float:
    if len(parts) < 6:
        return DEFAULT_LONG_NOTE_SECONDS
    # Format: endTime:hitSample
    end_time_ms = _parse_float(parts[5].split(":")[0])
    if end_time_ms is None:
        return DEFAULT_LONG_NOTE_SECONDS
    return (end_time_ms - time_ms) / 1000.0


def _parse_hit_object(
    line_text: str,
    *,
    timing_map: TimingMap,
    slider_multiplier: float,
) -> Optional[HitSpec]:
    parts = line_text.split(",")
    if len(parts) < 4:
        return None

    x_value = _parse_int(parts[0])
    y_value = _parse_int(parts[1])
    time_ms = _parse_float(parts[2])
    type_mask = _parse_int(parts[3])
    if x_value is None or y_value is None or time_ms is None or type_mask is None:
        return None

    lane = lane_from_x(x_value)
    floor = floor_from_y(y_value)

    if type_mask & _TYPE_SLIDER:
        curve_points: Tuple[Tuple[int, int], ...] = ((lane, floor),)
        if len(parts) >= 6:
            curve_points = _parse_curve_points(parts[5], (lane, floor))
        duration_seconds = _slider_duration_seconds(
            parts,
            time_ms=time_ms,
            timing_map=timing_map,
            slider_multiplier=slider_multiplier,
        )
        kind = NoteKind.HOLD
    elif type_mask & _TYPE_MANIA_HOLD:
        curve_points = ()
        duration_seconds = _mania_hold_duration_seconds(parts, time_ms=time_ms)
        kind = NoteKind.HOLD
    else:
        return HitSpec(time_seconds=time_ms / 1000.0, lane=lane, floor=floor)

    if not duration_seconds >= MIN_LONG_NOTE_SECONDS:
        duration_seconds = MIN_LONG_NOTE_SECONDS

    return HitSpec(
        time_seconds=time_ms / 1000.0,
        lane=lane,
        floor=floor,
        kind=kind,
        duration_seconds=float(duration_seconds),
        curve_points=curve_points,
    )


def parse_chart_text_with_diagnostics(text: str) -> Tuple[Chart, int]:
    """Parse .osu text. Returns the chart and the number of dropped record lines."""
    slider_multiplier = DEFAULT_SLIDER_MULTIPLIER
    metadata_fields: Dict[str, str] = {}
    timing_points: List[TimingPoint] = []
    hit_object_lines: List[str] = []
    dropped_line_count = 0

    current_section = ""
    for raw_line in str(text or "").splitlines():
        line_text = raw_line.strip()
        if not line_text:
            continue
        if line_text.startswith("["):
            current_section = line_text
            continue

        if current_section == "[General]":
            key_text, value_text = _key_value(line_text)
            if key_text == "AudioFilename":
                metadata_fields["audio_filename"] = value_text
        elif current_section == "[Metadata]":
            key_text, value_text = _key_value(line_text)
            if key_text in _METADATA_KEYS:
                metadata_fields[_METADATA_KEYS[key_text]] = value_text
        elif current_section == "[Difficulty]":
            key_text, value_text = _key_value(line_text)
            if key_text == "SliderMultiplier":
                parsed_multiplier = _parse_float(value_text)
                if parsed_multiplier is not None and parsed_multiplier > 0.0:
                    slider_multiplier = parsed_multiplier
                else:
                    logger.debug("Ignoring SliderMultiplier %r", value_text)
        elif current_section == "[TimingPoints]":
            timing_point = _parse_timing_point(line_text)
            if timing_point is None:
                dropped_line_count += 1
                logger.debug("Dropped timing point line %r", line_text)
                continue
            timing_points.append(timing_point)
        elif current_section == "[HitObjects]":
            # Sliders depend on timing points, which may appear later in the file.
            hit_object_lines.append(line_text)

    timing_map = TimingMap(timing_points)
    hit_specs: List[HitSpec] = []
    for line_text in hit_object_lines:
        hit_spec = _parse_hit_object(line_text, timing_map=timing_map, slider_multiplier=slider_multiplier)
        if hit_spec is None:
            dropped_line_count += 1
            logger.debug("Dropped hit object line %r", line_text)
            continue
        hit_specs.append(hit_spec)

    hit_specs.sort(key=lambda spec: spec.time_seconds)

    chart = Chart(
        slider_multiplier=float(slider_multiplier),
        timing_points=timing_map.points,
        hit_specs=tuple(hit_specs),
        metadata=ChartMetadata(**metadata_fields),
    )
    return chart, dropped_line_count


def parse_chart_text(text: str) -> Chart:
    chart, _dropped_line_count = parse_chart_text_with_diagnostics(text)
    return chart


def _read_text_utf8(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ChartReadError(f"Chart is not valid UTF-8: {file_path}") from exc
    except OSError as exc:
        raise ChartReadError(f"Failed to read chart: {file_path}") from exc


def load_chart(chart_path: Path) -> LoadedChart:
    resolved_path = Path(chart_path)
    chart, dropped_line_count = parse_chart_text_with_diagnostics(_read_text_utf8(resolved_path))
    if dropped_line_count:
        logger.warning("Loaded %s with %d malformed line(s) skipped", resolved_path.name, dropped_line_count)
    logger.info(
        "Loaded chart %s: %d notes, %d timing points",
        resolved_path.name,
        len(chart.hit_specs),
        len(chart.timing_points),
    )
    return LoadedChart(chart=chart, source_path=resolved_path, dropped_line_count=int(dropped_line_count))


def _run_unit_tests() -> None:
    text = "\n".join(
        [
            "[Difficulty]",
            "SliderMultiplier:1.4",
            "[TimingPoints]",
            "0,500,4,1,0,100,1,0",
            "[HitObjects]",
            "256,300,2000,2,0,B|384:100,1,700",
            "0,0,1000,1,0",
            "bad,line",
        ]
    )
    chart, dropped = parse_chart_text_with_diagnostics(text)
    assert dropped == 1
    assert [spec.time_seconds for spec in chart.hit_specs] == [1.0, 2.0]
    slider = chart.hit_specs[1]
    assert slider.kind is NoteKind.HOLD
    assert abs(slider.duration_seconds - 2.5) < 1e-9
    assert slider.curve_points == ((2, 0), (3, 2))


if __name__ == "__main__":
    _run_unit_tests()
    print("osu_store.py: ok")
