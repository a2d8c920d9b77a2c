# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Hit judgement engine for tap, hold and curved hold notes.
# - Owns the collection of live notes, maps lane presses and releases on the selected floor to notes,
#   and reports every outcome as a JudgementEvent. Player outcomes are grades, never exceptions.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Distances are track units between a note position and the judgement line (shifted by the
#   calibrated judgement offset). Positive means the note has not reached the line yet.
# - Note lifecycle:
#     approaching -> resolved                       (tap hit, tap late miss)
#     approaching -> holding -> resolved            (hold head hit, then tail release or over-hold)
#     approaching -> unpressable -> removed         (hold head missed)
#     holding -> unpressable -> removed             (curved hold lost its track)
#   Entering unpressable reports one Miss. Removal of an unpressable note reports nothing.
# - Per frame ordering is fixed: holding notes first (releases, curve tracking, over-hold, ticks),
#   then new presses, then same frame releases of holds that just started, then the late sweep.
#   A hold slot vacated by a release cannot be double counted.
# - Hold ticks accrue from the previous frame time. reset_frame_time() drops it after a clock seek.
# - ScoreState is mutated only from here.
#
########################
# Interfaces:
# Public dataclasses:
# - JudgementWindows(perfect: float, great: float, good: float, bad: float)
#   - from_note_speed(note_speed: float) -> JudgementWindows
#   - classify_distance(distance: float) -> Grade
#
# Public classes:
# - class JudgeEngine
#   - __init__(score_state: ScoreState, judgement_windows: JudgementWindows, *, destroy_position: float,
#              judgement_offset: float, hold_tick_interval_seconds: float, hold_tick_score: int,
#              curve_tolerance: float)
#   - score_state() -> ScoreState
#   - judgement_windows() -> JudgementWindows
#   - spawn(live_note: LiveNote) -> bool
#   - update_positions(song_time_seconds: float) -> None
#   - reset_frame_time() -> None
#   - process_frame(song_time_seconds: float, input_frame: InputFrame) -> list[JudgementEvent]
#   - live_notes() -> tuple[LiveNote, ...]
#   - outstanding_count() -> int
#   - recent_judgements() -> list[JudgementEvent]
#   - clear_recent_judgements() -> None
#
# Inputs:
# - LiveNote objects handed over by NoteTimeline, song time from SongClock, InputFrame per tick.
#
# Outputs:
# - JudgementEvent objects for UI and stats. Score and combo changes on ScoreState.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Dict, List, Optional, Set, Tuple

from gameplay_models import Grade, InputFrame, JudgementEvent
from note_scheduler import LiveNote
from score_state import ScoreState
from touch_bar import floor_position_for_height

logger = logging.getLogger(__name__)

DEFAULT_DESTROY_POSITION = -10.0
DEFAULT_HOLD_TICK_INTERVAL_SECONDS = 0.5
DEFAULT_HOLD_TICK_SCORE = 50
DEFAULT_CURVE_TOLERANCE = 0.6

_REFERENCE_NOTE_SPEED = 10.0
_HEAD_FEEDBACK_GRADES = frozenset({Grade.PERFECT, Grade.GREAT, Grade.GOOD})


@dataclass(frozen=True)
class JudgementWindows:
    perfect: float
    great: float
    good: float
    bad: float

    @classmethod
    def from_note_speed(cls, note_speed: float) -> "JudgementWindows":
        speed_multiplier = float(note_speed) / _REFERENCE_NOTE_SPEED
        return cls(
            perfect=0.5 * speed_multiplier,
            great=0.8 * speed_multiplier,
            good=1.1 * speed_multiplier,
            bad=1.4 * speed_multiplier,
        )

    def classify_distance(self, distance: float) -> Grade:
        abs_distance = abs(float(distance))
        if abs_distance <= self.perfect:
            return Grade.PERFECT
        if abs_distance <= self.great:
            return Grade.GREAT
        if abs_distance <= self.good:
            return Grade.GOOD
        if abs_distance <= self.bad:
            return Grade.BAD
        return Grade.MISS


class JudgeEngine:
    def __init__(
        self,
        score_state: ScoreState,
        judgement_windows: JudgementWindows,
        *,
        destroy_position: float = DEFAULT_DESTROY_POSITION,
        judgement_offset: float = 0.0,
        hold_tick_interval_seconds: float = DEFAULT_HOLD_TICK_INTERVAL_SECONDS,
        hold_tick_score: int = DEFAULT_HOLD_TICK_SCORE,
        curve_tolerance: float = DEFAULT_CURVE_TOLERANCE,
    ) -> None:
        if float(hold_tick_interval_seconds) <= 0.0:
            raise ValueError("hold_tick_interval_seconds must be positive")
        self._score_state = score_state
        self._judgement_windows = judgement_windows
        self._destroy_position = float(destroy_position)
        self._judgement_offset = float(judgement_offset)
        self._hold_tick_interval_seconds = float(hold_tick_interval_seconds)
        self._hold_tick_score = int(hold_tick_score)
        self._curve_tolerance = float(curve_tolerance)

        # Insertion ordered; keyed by spec index so a spec can never have two live notes.
        self._live_notes: Dict[int, LiveNote] = {}
        self._spawned_indices: Set[int] = set()
        self._last_song_time_seconds: Optional[float] = None
        self._recent_judgements: List[JudgementEvent] = []

    def score_state(self) -> ScoreState:
        return self._score_state

    def judgement_windows(self) -> JudgementWindows:
        return self._judgement_windows

    def recent_judgements(self) -> List[JudgementEvent]:
        return list(self._recent_judgements)

    def clear_recent_judgements(self) -> None:
        self._recent_judgements.clear()

    def live_notes(self) -> Tuple[LiveNote, ...]:
        return tuple(self._live_notes.values())

    def outstanding_count(self) -> int:
        return sum(1 for note in self._live_notes.values() if not note.is_resolved)

    def spawn(self, live_note: LiveNote) -> bool:
        spec_index = int(live_note.spec_index)
        if spec_index in self._spawned_indices:
            logger.warning("Ignoring duplicate spawn of spec %d", spec_index)
            return False
        self._spawned_indices.add(spec_index)
        self._live_notes[spec_index] = live_note
        return True

    def update_positions(self, song_time_seconds: float) -> None:
        for note in self._live_notes.values():
            note.update_position(song_time_seconds)

    def reset_frame_time(self) -> None:
        """Forget the previous frame time so skipped song time pays no hold ticks."""
        self._last_song_time_seconds = None

    # -----------------
    # Frame processing
    # -----------------

    def process_frame(self, song_time_seconds: float, input_frame: InputFrame) -> List[JudgementEvent]:
        now = float(song_time_seconds)
        elapsed = 0.0
        if self._last_song_time_seconds is not None:
            elapsed = max(0.0, now - self._last_song_time_seconds)
        self._last_song_time_seconds = now

        self.update_positions(now)

        events: List[JudgementEvent] = []
        holding_events = self._process_holding_notes(now, input_frame, elapsed)
        events.extend(holding_events)

        # Press and release order inside one frame is lost. A release edge ends at most one hold,
        # so a lane whose release already ended a held note keeps its new hold.
        pending_release_lanes = {int(lane) for lane in input_frame.releases}
        pending_release_lanes -= {event.lane for event in holding_events if event.phase == "tail"}
        held_before = {index for index, note in self._live_notes.items() if note.is_holding}

        for lane in input_frame.presses:
            event = self._process_press(now, int(lane), input_frame.selected_floor)
            if event is not None:
                events.append(event)

        for spec_index, note in list(self._live_notes.items()):
            if not note.is_holding or spec_index in held_before:
                continue
            if note.spec.lane not in pending_release_lanes:
                continue
            pending_release_lanes.discard(note.spec.lane)
            tail_distance = self._distance(note.tail_position)
            grade = self._judgement_windows.classify_distance(tail_distance)
            events.append(self._resolve(now, note, grade, tail_distance, "tail"))

        events.extend(self._sweep(now))

        for spec_index in [index for index, note in self._live_notes.items() if note.is_resolved]:
            del self._live_notes[spec_index]

        self._recent_judgements.extend(events)
        return events

    def _distance(self, position: float) -> float:
        return float(position) - self._judgement_offset

    def _make_event(self, now: float, note: LiveNote, grade: Grade, distance: float, phase: str) -> JudgementEvent:
        return JudgementEvent(
            song_time_seconds=now,
            lane=int(note.spec.lane),
            floor=int(note.spec.floor),
            grade=grade,
            distance=float(distance),
            spec_index=int(note.spec_index),
            phase=phase,
        )

    def _resolve(self, now: float, note: LiveNote, grade: Grade, distance: float, phase: str) -> JudgementEvent:
        note.is_holding = False
        note.is_resolved = True
        self._score_state.apply_resolution(grade)
        logger.debug("Spec %d resolved %s (%s, distance %.3f)", note.spec_index, grade.value, phase, distance)
        return self._make_event(now, note, grade, distance, phase)

    def _make_unpressable(self, now: float, note: LiveNote, distance: float, phase: str) -> JudgementEvent:
        note.is_holding = False
        note.is_unpressable = True
        self._score_state.apply_resolution(Grade.MISS)
        logger.debug("Spec %d unpressable (%s, distance %.3f)", note.spec_index, phase, distance)
        return self._make_event(now, note, Grade.MISS, distance, phase)

    def _bar_floor_position(self, input_frame: InputFrame) -> Optional[float]:
        if input_frame.bar_height is not None:
            return floor_position_for_height(input_frame.bar_height)
        if input_frame.selected_floor is not None:
            return float(input_frame.selected_floor)
        return None

    def _curve_mismatch(self, note: LiveNote, input_frame: InputFrame) -> Optional[float]:
        """Vertical distance between the bar and the curve under it, or None when tracking."""
        bar_floor = self._bar_floor_position(input_frame)
        local_distance = self._judgement_offset - note.head_position
        _lateral, vertical = note.position_at_offset(local_distance)
        target_floor = float(note.spec.floor) + vertical
        if bar_floor is None:
            return float("inf")
        mismatch = abs(bar_floor - target_floor)
        if mismatch > self._curve_tolerance:
            return mismatch
        return None

    def _process_holding_notes(self, now: float, input_frame: InputFrame, elapsed: float) -> List[JudgementEvent]:
        events: List[JudgementEvent] = []
        released_lanes = {int(lane) for lane in input_frame.releases}
        bad_window = self._judgement_windows.bad

        for note in list(self._live_notes.values()):
            if not note.is_holding:
                continue
            tail_distance = self._distance(note.tail_position)

            if note.spec.lane in released_lanes:
                grade = self._judgement_windows.classify_distance(tail_distance)
                events.append(self._resolve(now, note, grade, tail_distance, "tail"))
                continue

            if note.spec.is_curved:
                mismatch = self._curve_mismatch(note, input_frame)
                if mismatch is not None:
                    events.append(self._make_unpressable(now, note, tail_distance, "curve_break"))
                    continue

            if tail_distance < -bad_window:
                events.append(self._resolve(now, note, Grade.MISS, tail_distance, "over_hold"))
                continue

            note.hold_score_accumulator += elapsed
            while note.hold_score_accumulator >= self._hold_tick_interval_seconds:
                note.hold_score_accumulator -= self._hold_tick_interval_seconds
                self._score_state.apply_hold_tick(self._hold_tick_score)

        return events

    def _select_note(self, lane: int, selected_floor: int) -> Optional[LiveNote]:
        bad_window = self._judgement_windows.bad
        candidates = [
            note
            for note in self._live_notes.values()
            if note.is_approaching
            and note.spec.lane == lane
            and note.spec.floor == selected_floor
            and self._distance(note.head_position) >= -bad_window
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda note: (note.head_position, note.spec_index))

    def _process_press(self, now: float, lane: int, selected_floor: Optional[int]) -> Optional[JudgementEvent]:
        if selected_floor is None:
            return None

        note = self._select_note(lane, int(selected_floor))
        if note is None:
            return None

        distance = self._distance(note.head_position)
        grade = self._judgement_windows.classify_distance(distance)
        if grade is Grade.MISS:
            # Too early to count. The press is ignored and the note keeps approaching.
            return None

        if not note.spec.is_hold:
            return self._resolve(now, note, grade, distance, "tap")

        note.is_holding = True
        note.hold_score_accumulator = 0.0
        if grade in _HEAD_FEEDBACK_GRADES:
            self._score_state.apply_head_hit()
            return self._make_event(now, note, grade, distance, "head")
        return None

    def _sweep(self, now: float) -> List[JudgementEvent]:
        events: List[JudgementEvent] = []
        bad_window = self._judgement_windows.bad

        for note in list(self._live_notes.values()):
            if note.is_resolved:
                continue

            if note.is_unpressable:
                if note.tail_position < self._destroy_position:
                    note.is_resolved = True
                continue

            if not note.is_approaching:
                continue

            distance = self._distance(note.head_position)
            if distance >= -bad_window and note.head_position >= self._destroy_position:
                continue

            if note.spec.is_hold:
                events.append(self._make_unpressable(now, note, distance, "late"))
            else:
                events.append(self._resolve(now, note, Grade.MISS, distance, "late"))

        return events


def _run_unit_tests() -> None:
    from gameplay_models import HitSpec
    from note_scheduler import NoteTimeline

    spec = HitSpec(time_seconds=5.0, lane=0, floor=0)
    timeline = NoteTimeline([spec], note_speed=10.0, spawn_distance=50.0)
    engine = JudgeEngine(ScoreState(), JudgementWindows.from_note_speed(10.0))
    for spec_index, due_spec in timeline.advance(0.0):
        assert engine.spawn(timeline.make_live_note(spec_index, due_spec))

    events = engine.process_frame(5.0, InputFrame(presses=(0,), selected_floor=0))
    assert [event.grade for event in events] == [Grade.PERFECT]
    assert engine.score_state().score == 500
    assert engine.outstanding_count() == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
