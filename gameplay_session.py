# -*- coding: utf-8 -*-
########################
# gameplay_session.py
########################
# Purpose:
# - One play of one chart: wires SongClock + NoteTimeline + JudgeEngine + ScoreState.
# - Drives everything from a single per-frame tick and handles end of song and best score storage.
#
# Design notes:
# - Dependencies are passed in explicitly and built once per session. There is no global engine.
# - One tick per rendered frame, in order:
#   1) read song time from the clock
#   2) spawn newly due notes from the timeline (a clock seek since the last tick resets hold tick timing)
#   3) judge (holding notes, then presses, then the late sweep)
#   4) fire due cosmetic callbacks
#   5) end of song detection
# - end() is idempotent. Best stats are compared and stored on the first call only.
# - Single threaded, no blocking calls.
#
########################
# Interfaces:
# Public exceptions:
# - class SessionError(Exception)
#
# Public dataclasses:
# - SessionState(song_id: str, is_started: bool, is_ended: bool, end_reason: str,
#                latest_judgement: Optional[JudgementEvent], best_updated: bool)
#
# Public classes:
# - class GameplaySession
#   - __init__(chart: Chart, clock: SongClock, *, config: AppConfig, song_id: Optional[str],
#              best_stats_store: Optional[BestStatsStore])
#   - start() -> None
#   - seek_to_first_note(*, lead_seconds: float) -> bool
#   - tick(input_frame: InputFrame) -> list[JudgementEvent]
#   - end(reason: str) -> SessionReport
#   - add_listener(callback: Callable[[JudgementEvent], None]) -> None
#   - state / timeline / judge_engine / score_state / live_notes()
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, List, Optional, Tuple

from best_stats_store import BestStatsError, BestStatsStore, record_if_best
from callback_scheduler import CallbackScheduler, ScheduledCallbackHandle
from config import AppConfig
from gameplay_models import Chart, InputFrame, JudgementEvent
from judge import JudgeEngine, JudgementWindows
from note_scheduler import LiveNote, NoteTimeline
from score_state import ScoreState, SessionReport
from timing_model import MissingClockSourceError, SongClock

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Raised when the session API is used out of order."""


@dataclass
class SessionState:
    song_id: str = ""
    is_started: bool = False
    is_ended: bool = False
    end_reason: str = ""
    latest_judgement: Optional[JudgementEvent] = None
    best_updated: bool = False


class GameplaySession:
    def __init__(
        self,
        chart: Chart,
        clock: Optional[SongClock],
        *,
        config: Optional[AppConfig] = None,
        song_id: Optional[str] = None,
        best_stats_store: Optional[BestStatsStore] = None,
    ) -> None:
        if clock is None:
            raise MissingClockSourceError("GameplaySession requires a SongClock")

        self._config = config if config is not None else AppConfig()
        gameplay = self._config.gameplay
        offsets = self._config.offsets

        self._chart = chart
        self._clock = clock
        self._best_stats_store = best_stats_store
        self._state = SessionState(song_id=str(song_id) if song_id is not None else chart.metadata.song_id())

        self._timeline = NoteTimeline(
            chart.hit_specs,
            note_speed=gameplay.note_speed,
            spawn_distance=gameplay.spawn_distance,
            global_offset_seconds=offsets.audio_offset_seconds,
        )
        self._score_state = ScoreState()
        self._judge_engine = JudgeEngine(
            self._score_state,
            JudgementWindows.from_note_speed(gameplay.note_speed),
            destroy_position=gameplay.destroy_position,
            judgement_offset=offsets.judgement_offset,
            hold_tick_interval_seconds=gameplay.hold_tick_interval_seconds,
            hold_tick_score=gameplay.hold_tick_score,
            curve_tolerance=gameplay.curve_tolerance,
        )

        self._callbacks = CallbackScheduler()
        self._judgement_clear_handle: Optional[ScheduledCallbackHandle] = None
        self._listeners: List[Callable[[JudgementEvent], None]] = []
        self._report: Optional[SessionReport] = None
        self._seen_seek_count = clock.seek_count()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def chart(self) -> Chart:
        return self._chart

    @property
    def timeline(self) -> NoteTimeline:
        return self._timeline

    @property
    def judge_engine(self) -> JudgeEngine:
        return self._judge_engine

    @property
    def score_state(self) -> ScoreState:
        return self._score_state

    def live_notes(self) -> Tuple[LiveNote, ...]:
        return self._judge_engine.live_notes()

    def add_listener(self, callback: Callable[[JudgementEvent], None]) -> None:
        self._listeners.append(callback)

    def start(self) -> None:
        if self._state.is_started:
            raise SessionError("Session already started")
        self._clock.start()
        self._state.is_started = True
        logger.info("Session started: %s (%d notes)", self._state.song_id, len(self._chart.hit_specs))

    def seek_to_first_note(self, *, lead_seconds: float = 2.0) -> bool:
        """Skip the intro so the first note spawns lead_seconds from now. Returns False if already past it."""
        if not self._state.is_started:
            raise SessionError("start() must be called before seeking")
        if not self._chart.hit_specs:
            return False
        first_spawn = self._timeline.spawn_time_seconds(self._chart.hit_specs[0])
        target = first_spawn - float(lead_seconds)
        if target <= self._clock.song_time_seconds():
            return False
        self._clock.seek(target)
        return True

    def tick(self, input_frame: Optional[InputFrame] = None) -> List[JudgementEvent]:
        if not self._state.is_started:
            raise SessionError("start() must be called before tick()")
        if self._state.is_ended:
            return []

        frame = input_frame if input_frame is not None else InputFrame()
        now = self._clock.song_time_seconds()
        if self._clock.seek_count() != self._seen_seek_count:
            # Song time jumped. Held notes must not collect ticks for the skipped span.
            self._seen_seek_count = self._clock.seek_count()
            self._judge_engine.reset_frame_time()

        for spec_index, spec in self._timeline.advance(now):
            self._judge_engine.spawn(self._timeline.make_live_note(spec_index, spec))

        events = self._judge_engine.process_frame(now, frame)
        self._judge_engine.clear_recent_judgements()
        for event in events:
            self._show_judgement(now, event)
            for listener in self._listeners:
                listener(event)

        self._callbacks.run_due(now)

        if self._timeline.should_end_session(
            song_time_seconds=now,
            outstanding_note_count=self._judge_engine.outstanding_count(),
            timeout_seconds=self._config.gameplay.end_timeout_seconds,
        ):
            reason = "complete" if self._judge_engine.outstanding_count() == 0 else "timeout"
            self.end(reason)

        return events

    def _show_judgement(self, now: float, event: JudgementEvent) -> None:
        if self._judgement_clear_handle is not None:
            self._judgement_clear_handle.cancel()
        self._state.latest_judgement = event
        self._judgement_clear_handle = self._callbacks.schedule(
            now + self._config.gameplay.judgement_display_seconds,
            self._clear_judgement,
        )

    def _clear_judgement(self) -> None:
        self._state.latest_judgement = None
        self._judgement_clear_handle = None

    def end(self, reason: str = "explicit") -> SessionReport:
        if self._report is not None:
            return self._report

        self._state.is_ended = True
        self._state.end_reason = str(reason)
        self._callbacks.cancel_all()
        self._report = self._score_state.report()
        logger.info(
            "Session ended (%s): score %d, max combo %d, accuracy %.2f%%",
            reason,
            self._report.score,
            self._report.max_combo,
            self._report.accuracy_percent,
        )

        if self._best_stats_store is not None:
            try:
                self._state.best_updated = record_if_best(
                    self._best_stats_store,
                    self._state.song_id,
                    score=self._report.score,
                    combo=self._report.max_combo,
                )
            except BestStatsError:
                logger.exception("Could not store best stats for %s", self._state.song_id)

        return self._report
