# test_chart.py
from __future__ import annotations

from typing import List, Tuple

from gameplay_models import Chart
import osu_store

TEST_CHART_TITLE = "Test Chart"
TEST_CHART_ARTIST = "FloorBeat"

_LEAD_IN_MS = 2500
_FLOOR_Y = {0: 320, 1: 192, 2: 64}


def _normalize_difficulty(difficulty: str) -> str:
    normalized = (difficulty or "easy").strip().lower() or "easy"
    if normalized not in ("easy", "medium", "hard"):
        return "easy"
    return normalized


def _x_for_lane(lane: int) -> int:
    return int(lane) * 128 + 64


def build_test_chart_text(*, difficulty: str) -> str:
    """Deterministic .osu chart covering every lane and floor, one long note and one curved long note."""
    normalized_difficulty = _normalize_difficulty(difficulty)

    if normalized_difficulty == "hard":
        beat_length_ms = 400
    elif normalized_difficulty == "medium":
        beat_length_ms = 550
    else:
        beat_length_ms = 750

    # (lane, floor) walk: each floor left to right, then a few floor changes.
    tap_pattern: List[Tuple[int, int]] = [
        (0, 0), (1, 0), (2, 0), (3, 0),
        (3, 1), (2, 1), (1, 1), (0, 1),
        (0, 2), (1, 2), (2, 2), (3, 2),
        (1, 0), (2, 1), (1, 2), (2, 0),
    ]

    hit_object_lines: List[str] = []
    time_ms = _LEAD_IN_MS
    for note_index, (lane, floor) in enumerate(tap_pattern):
        hit_object_lines.append(f"{_x_for_lane(lane)},{_FLOOR_Y[floor]},{time_ms},1,0,0:0:0:0:")

        # Same floor chords on higher difficulties.
        if normalized_difficulty in ("medium", "hard") and note_index in (3, 7, 11):
            paired_lane = (lane + 2) % 4
            hit_object_lines.append(f"{_x_for_lane(paired_lane)},{_FLOOR_Y[floor]},{time_ms},1,0,0:0:0:0:")

        time_ms += beat_length_ms

    # Long note, two beats.
    time_ms += beat_length_ms
    hold_end_ms = time_ms + 2 * beat_length_ms
    hit_object_lines.append(f"{_x_for_lane(1)},{_FLOOR_Y[0]},{time_ms},128,0,{hold_end_ms}:0:0:0:0:")

    # Curved long note climbing from floor 0 to floor 2 over two beats (280 px at 1.4x).
    time_ms = hold_end_ms + 2 * beat_length_ms
    hit_object_lines.append(
        f"{_x_for_lane(0)},{_FLOOR_Y[0]},{time_ms},2,0,"
        f"B|{_x_for_lane(1)}:{_FLOOR_Y[1]}|{_x_for_lane(2)}:{_FLOOR_Y[2]},1,280"
    )

    lines = [
        "osu file format v14",
        "",
        "[General]",
        "AudioFilename: silence.mp3",
        "",
        "[Metadata]",
        f"Title:{TEST_CHART_TITLE}",
        f"Artist:{TEST_CHART_ARTIST}",
        f"Version:{normalized_difficulty}",
        "",
        "[Difficulty]",
        "SliderMultiplier:1.4",
        "",
        "[TimingPoints]",
        f"0,{beat_length_ms},4,1,0,100,1,0",
        "",
        "[HitObjects]",
    ]
    lines.extend(hit_object_lines)
    return "\n".join(lines) + "\n"


def build_test_chart(*, difficulty: str) -> Chart:
    return osu_store.parse_chart_text(build_test_chart_text(difficulty=difficulty))
