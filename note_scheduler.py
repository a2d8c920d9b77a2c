# -*- coding: utf-8 -*-
########################
# note_scheduler.py
########################
# Purpose:
# - Decide when each HitSpec becomes a live note (NoteTimeline).
# - Define the mutable per-note runtime record (LiveNote) and its track geometry.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - The timeline holds a single forward cursor. It is restartable only by constructing a new one,
#   and never seeks backward. Specs already handed out stay handed out after a clock seek.
# - The timeline only produces specs. It never touches live notes after handoff; JudgeEngine owns them.
# - Positions are distances along the track from the judgement line, computed from song time:
#     head_position = (spec_time + global_offset - song_time) * note_speed
#   so visuals and judgement follow the audio clock with no per-frame drift.
#
########################
# Interfaces:
# Public constants:
# - END_OF_SONG_TIMEOUT_SECONDS = 20.0
#
# Public dataclasses:
# - LiveNote(spec: HitSpec, spec_index: int, note_speed: float, global_offset_seconds: float,
#            head_position: float, is_holding: bool, is_unpressable: bool, is_resolved: bool,
#            hold_score_accumulator: float)
#   - tail_position -> float
#   - track_length -> float
#   - is_approaching -> bool
#   - update_position(song_time_seconds: float) -> None
#   - position_at_offset(local_distance: float) -> tuple[float, float]
#
# Public classes:
# - class NoteTimeline
#   - __init__(hit_specs, *, note_speed: float, spawn_distance: float, global_offset_seconds: float)
#   - approach_time_seconds() -> float
#   - spawn_time_seconds(spec: HitSpec) -> float
#   - advance(song_time_seconds: float) -> list[tuple[int, HitSpec]]
#   - is_exhausted() -> bool
#   - last_spec_time_seconds() -> float
#   - should_end_session(*, song_time_seconds: float, outstanding_note_count: int, timeout_seconds: float) -> bool
#
# Inputs:
# - Sorted HitSpec sequence from osu_store, song time from SongClock.
#
# Outputs:
# - Newly due (spec_index, HitSpec) pairs consumed by JudgeEngine.spawn.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Sequence, Tuple

from gameplay_models import HitSpec

logger = logging.getLogger(__name__)

END_OF_SONG_TIMEOUT_SECONDS = 20.0


@dataclass
class LiveNote:
    spec: HitSpec
    spec_index: int
    note_speed: float
    global_offset_seconds: float = 0.0
    head_position: float = 0.0
    is_holding: bool = False
    is_unpressable: bool = False
    is_resolved: bool = False
    hold_score_accumulator: float = 0.0

    @property
    def track_length(self) -> float:
        if not self.spec.is_hold:
            return 0.0
        return float(self.spec.duration_seconds) * float(self.note_speed)

    @property
    def tail_position(self) -> float:
        return self.head_position + self.track_length

    @property
    def is_approaching(self) -> bool:
        return not (self.is_holding or self.is_unpressable or self.is_resolved)

    def update_position(self, song_time_seconds: float) -> None:
        hit_time = float(self.spec.time_seconds) + float(self.global_offset_seconds)
        self.head_position = (hit_time - float(song_time_seconds)) * float(self.note_speed)

    def position_at_offset(self, local_distance: float) -> Tuple[float, float]:
        """(lateral, vertical) offset of the note body local_distance units behind its head.

        Offsets are in lane and floor units relative to the head's own lane and floor. Curve
        points are spread evenly over the note length and joined linearly.
        """
        points = self.spec.curve_points
        length = self.track_length
        if len(points) < 2 or length <= 0.0:
            return (0.0, 0.0)

        fraction = min(max(float(local_distance) / length, 0.0), 1.0)
        scaled = fraction * (len(points) - 1)
        segment_index = min(int(scaled), len(points) - 2)
        segment_fraction = scaled - segment_index

        start_lane, start_floor = points[segment_index]
        end_lane, end_floor = points[segment_index + 1]
        lane_value = start_lane + (end_lane - start_lane) * segment_fraction
        floor_value = start_floor + (end_floor - start_floor) * segment_fraction
        return (lane_value - self.spec.lane, floor_value - self.spec.floor)


class NoteTimeline:
    def __init__(
        self,
        hit_specs: Sequence[HitSpec],
        *,
        note_speed: float,
        spawn_distance: float,
        global_offset_seconds: float = 0.0,
    ) -> None:
        if float(note_speed) <= 0.0:
            raise ValueError(f"note_speed must be positive, got {note_speed!r}")
        self._hit_specs: Tuple[HitSpec, ...] = tuple(sorted(hit_specs, key=lambda spec: float(spec.time_seconds)))
        self._note_speed = float(note_speed)
        self._spawn_distance = float(spawn_distance)
        self._global_offset_seconds = float(global_offset_seconds)
        self._cursor = 0

    @property
    def note_speed(self) -> float:
        return self._note_speed

    @property
    def global_offset_seconds(self) -> float:
        return self._global_offset_seconds

    @property
    def hit_specs(self) -> Tuple[HitSpec, ...]:
        return self._hit_specs

    def approach_time_seconds(self) -> float:
        return self._spawn_distance / self._note_speed

    def spawn_time_seconds(self, spec: HitSpec) -> float:
        return float(spec.time_seconds) + self._global_offset_seconds - self.approach_time_seconds()

    def advance(self, song_time_seconds: float) -> List[Tuple[int, HitSpec]]:
        due: List[Tuple[int, HitSpec]] = []
        now = float(song_time_seconds)
        while self._cursor < len(self._hit_specs):
            spec = self._hit_specs[self._cursor]
            if self.spawn_time_seconds(spec) > now:
                break
            due.append((self._cursor, spec))
            self._cursor += 1
        if len(due) > 1:
            logger.debug("Spawned %d notes at %.3fs (next index %d)", len(due), now, self._cursor)
        return due

    def is_exhausted(self) -> bool:
        return self._cursor >= len(self._hit_specs)

    def last_spec_time_seconds(self) -> float:
        if not self._hit_specs:
            return 0.0
        return float(self._hit_specs[-1].time_seconds)

    def first_spec_time_seconds(self) -> float:
        if not self._hit_specs:
            return 0.0
        return float(self._hit_specs[0].time_seconds)

    def should_end_session(
        self,
        *,
        song_time_seconds: float,
        outstanding_note_count: int,
        timeout_seconds: float = END_OF_SONG_TIMEOUT_SECONDS,
    ) -> bool:
        if not self.is_exhausted():
            return False
        if int(outstanding_note_count) <= 0:
            return True
        # Failsafe against a note that never leaves the live set.
        return float(song_time_seconds) >= self.last_spec_time_seconds() + float(timeout_seconds)

    def make_live_note(self, spec_index: int, spec: HitSpec) -> LiveNote:
        return LiveNote(
            spec=spec,
            spec_index=int(spec_index),
            note_speed=self._note_speed,
            global_offset_seconds=self._global_offset_seconds,
        )


def _run_unit_tests() -> None:
    specs = [
        HitSpec(time_seconds=6.0, lane=1, floor=0),
        HitSpec(time_seconds=5.0, lane=0, floor=0),
    ]
    timeline = NoteTimeline(specs, note_speed=10.0, spawn_distance=50.0)
    assert abs(timeline.approach_time_seconds() - 5.0) < 1e-9

    assert timeline.advance(-1.0) == []
    first = timeline.advance(0.0)
    assert [spec.time_seconds for _index, spec in first] == [5.0]
    assert timeline.advance(0.0) == []
    second = timeline.advance(1.5)
    assert [index for index, _spec in second] == [1]
    assert timeline.is_exhausted()
    assert timeline.should_end_session(song_time_seconds=7.0, outstanding_note_count=0)
    assert not timeline.should_end_session(song_time_seconds=7.0, outstanding_note_count=1)
    assert timeline.should_end_session(song_time_seconds=26.0, outstanding_note_count=1)

    note = timeline.make_live_note(0, specs[1])
    note.update_position(4.0)
    assert abs(note.head_position - 10.0) < 1e-9


if __name__ == "__main__":
    _run_unit_tests()
    print("note_scheduler.py: ok")
