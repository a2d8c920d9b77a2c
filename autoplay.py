# -*- coding: utf-8 -*-
########################
# autoplay.py
########################
# Purpose:
# - Headless perfect play of a chart on a manual clock, printing the session report as JSON.
# - Exercises the full gameplay pipeline (parser, resolver, timeline, judge, score, session) without Qt.
#
# Design notes:
# - Every note is pressed on the first frame at or after its hit time, long notes are released on the
#   first frame at or after their end. With the default 120 fps every judgement lands inside Perfect.
# - One floor can be selected per frame; presses due on another floor wait for the next frame.
# - While a curved long note is held the bar follows the curve under the judgement line.
# - Logging goes to stderr, the JSON report to stdout.
#
########################
# Interfaces:
# Public dataclasses:
# - AutoplayAction(time_seconds: float, is_press: bool, spec_index: int, spec: HitSpec)
# - AutoplayResult(song_id: str, end_reason: str, report: SessionReport, judgements: list[JudgementEvent],
#                  best_updated: bool)
#
# Public functions:
# - build_action_schedule(chart: Chart, *, note_speed: float, audio_offset_seconds: float,
#                         judgement_offset: float) -> list[AutoplayAction]
# - run_autoplay(chart: Chart, *, config: Optional[AppConfig], frame_rate: float, song_id: Optional[str],
#                best_stats_store: Optional[BestStatsStore]) -> AutoplayResult
# - main(argv: Optional[list[str]] = None) -> int
#
# Usage:
#   python autoplay.py --difficulty hard
#   python autoplay.py --chart Songs/MySong/MySong.osu --fps 60
#   python autoplay.py --song-id "Title_Artist" --songs-dir ./Songs --save-best
#
########################

from __future__ import annotations

import argparse
from collections import deque
from dataclasses import dataclass, field
import json
import logging
from pathlib import Path
from typing import Deque, Dict, List, Optional

from best_stats_store import BestStatsStore, JsonBestStatsStore
from chart_engine import ChartEngine, ChartLoadError, ChartNotFoundError
from config import AppConfig, load_config
from gameplay_models import Chart, HitSpec, InputFrame, JudgementEvent
from gameplay_session import GameplaySession
from logging_setup import setup_logging
from note_scheduler import LiveNote
import osu_store
from score_state import SessionReport
import test_chart
from timing_model import ManualTimeSource, SongClock
from touch_bar import FLOOR_TRACK_HEIGHTS

logger = logging.getLogger(__name__)

DEFAULT_FRAME_RATE = 120.0
_FLOOR_SPACING = FLOOR_TRACK_HEIGHTS[1] - FLOOR_TRACK_HEIGHTS[0]
_EXTRA_RUN_SECONDS = 5.0


@dataclass(frozen=True)
class AutoplayAction:
    time_seconds: float
    is_press: bool
    spec_index: int
    spec: HitSpec


@dataclass
class AutoplayResult:
    song_id: str
    end_reason: str
    report: SessionReport
    judgements: List[JudgementEvent] = field(default_factory=list)
    best_updated: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "song_id": self.song_id,
            "end_reason": self.end_reason,
            "best_updated": self.best_updated,
            "judgement_count": len(self.judgements),
            "report": self.report.to_dict(),
        }


def build_action_schedule(
    chart: Chart,
    *,
    note_speed: float,
    audio_offset_seconds: float = 0.0,
    judgement_offset: float = 0.0,
) -> List[AutoplayAction]:
    """Press and release times that put each head and tail exactly on the judgement line."""
    line_shift_seconds = float(audio_offset_seconds) - float(judgement_offset) / float(note_speed)
    actions: List[AutoplayAction] = []
    for spec_index, spec in enumerate(chart.hit_specs):
        press_time = float(spec.time_seconds) + line_shift_seconds
        actions.append(AutoplayAction(time_seconds=press_time, is_press=True, spec_index=spec_index, spec=spec))
        if spec.is_hold:
            actions.append(
                AutoplayAction(
                    time_seconds=press_time + float(spec.duration_seconds),
                    is_press=False,
                    spec_index=spec_index,
                    spec=spec,
                )
            )
    # Releases sort before presses at equal times.
    actions.sort(key=lambda action: (action.time_seconds, action.is_press, action.spec_index))
    return actions


class _AutoplayPlayer:
    def __init__(self, actions: List[AutoplayAction], *, note_speed: float, audio_offset_seconds: float,
                 judgement_offset: float) -> None:
        self._pending: Deque[AutoplayAction] = deque(actions)
        self._note_speed = float(note_speed)
        self._audio_offset_seconds = float(audio_offset_seconds)
        self._judgement_offset = float(judgement_offset)
        self._selected_floor = 0
        self._held_curves: Dict[int, LiveNote] = {}

    def next_frame(self, now: float) -> InputFrame:
        presses: List[int] = []
        releases: List[int] = []
        press_floor: Optional[int] = None
        deferred: List[AutoplayAction] = []

        while self._pending and self._pending[0].time_seconds <= now:
            action = self._pending.popleft()
            if not action.is_press:
                releases.append(action.spec.lane)
                self._held_curves.pop(action.spec_index, None)
                continue

            if press_floor is None:
                press_floor = action.spec.floor
            if action.spec.floor != press_floor:
                deferred.append(action)
                continue

            presses.append(action.spec.lane)
            if action.spec.is_curved:
                self._held_curves[action.spec_index] = LiveNote(
                    spec=action.spec,
                    spec_index=action.spec_index,
                    note_speed=self._note_speed,
                    global_offset_seconds=self._audio_offset_seconds,
                )

        self._pending.extendleft(reversed(deferred))

        if press_floor is not None:
            self._selected_floor = press_floor

        return InputFrame(
            presses=tuple(presses),
            releases=tuple(releases),
            selected_floor=self._selected_floor,
            bar_height=self._bar_height(now),
        )

    def _bar_height(self, now: float) -> float:
        target_floor = float(self._selected_floor)
        if self._held_curves:
            note = next(iter(self._held_curves.values()))
            note.update_position(now)
            _lateral, vertical = note.position_at_offset(self._judgement_offset - note.head_position)
            target_floor = float(note.spec.floor) + vertical
        return FLOOR_TRACK_HEIGHTS[0] + target_floor * _FLOOR_SPACING


def run_autoplay(
    chart: Chart,
    *,
    config: Optional[AppConfig] = None,
    frame_rate: float = DEFAULT_FRAME_RATE,
    song_id: Optional[str] = None,
    best_stats_store: Optional[BestStatsStore] = None,
) -> AutoplayResult:
    if float(frame_rate) <= 0.0:
        raise ValueError("frame_rate must be positive")

    resolved_config = config if config is not None else AppConfig()
    gameplay = resolved_config.gameplay
    offsets = resolved_config.offsets

    source = ManualTimeSource(0.0)
    clock = SongClock(source, start_delay_seconds=gameplay.start_delay_seconds)
    session = GameplaySession(
        chart,
        clock,
        config=resolved_config,
        song_id=song_id,
        best_stats_store=best_stats_store,
    )
    judgements: List[JudgementEvent] = []
    session.add_listener(judgements.append)

    player = _AutoplayPlayer(
        build_action_schedule(
            chart,
            note_speed=gameplay.note_speed,
            audio_offset_seconds=offsets.audio_offset_seconds,
            judgement_offset=offsets.judgement_offset,
        ),
        note_speed=gameplay.note_speed,
        audio_offset_seconds=offsets.audio_offset_seconds,
        judgement_offset=offsets.judgement_offset,
    )

    frame_seconds = 1.0 / float(frame_rate)
    run_seconds = (
        chart.duration_seconds
        + gameplay.start_delay_seconds
        + abs(offsets.audio_offset_seconds)
        + gameplay.end_timeout_seconds
        + _EXTRA_RUN_SECONDS
    )
    max_frames = int(run_seconds * float(frame_rate)) + 1

    session.start()
    for _frame_index in range(max_frames):
        if session.state.is_ended:
            break
        source.advance(frame_seconds)
        session.tick(player.next_frame(clock.song_time_seconds()))

    report = session.end("frame_limit")
    state = session.state
    logger.info("Autoplay finished %s after %d judgement(s)", state.song_id, len(judgements))
    return AutoplayResult(
        song_id=state.song_id,
        end_reason=state.end_reason,
        report=report,
        judgements=judgements,
        best_updated=state.best_updated,
    )


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play a chart perfectly on a simulated clock and print the report.")
    source_group = parser.add_mutually_exclusive_group()
    source_group.add_argument("--chart", type=Path, help="Path to a .osu chart")
    source_group.add_argument("--song-id", help="Song id '{title}_{artist}' to resolve from the songs directory")
    parser.add_argument("--version", default=None, help="Difficulty name when resolving by song id")
    parser.add_argument("--songs-dir", type=Path, default=None, help="Songs directory (default: ./Songs)")
    parser.add_argument("--difficulty", default="easy", help="Built-in test chart difficulty: easy, medium, hard")
    parser.add_argument("--fps", type=float, default=DEFAULT_FRAME_RATE, help="Simulated frame rate")
    parser.add_argument("--config", type=Path, default=None, help="Config JSON path")
    parser.add_argument("--save-best", action="store_true", help="Store best score and combo")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def _resolve_chart(args: argparse.Namespace) -> Chart:
    if args.chart is not None:
        return osu_store.load_chart(args.chart).chart
    if args.song_id:
        return ChartEngine(args.songs_dir).load_song(args.song_id, version=args.version).chart
    return test_chart.build_test_chart(difficulty=args.difficulty)


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_arg_parser().parse_args(argv)

    try:
        config, _config_path = load_config(args.config)
    except (OSError, ValueError) as exception:
        print(json.dumps({"ok": False, "error": str(exception)}, ensure_ascii=False, indent=2))
        return 2

    setup_logging(config.logging.level, verbose=args.verbose)

    try:
        chart = _resolve_chart(args)
    except (osu_store.ChartError, ChartNotFoundError, ChartLoadError, ValueError) as exception:
        print(json.dumps({"ok": False, "error": str(exception)}, ensure_ascii=False, indent=2))
        return 2

    best_stats_store = None
    if args.save_best:
        best_stats_store = JsonBestStatsStore(config.storage.resolved_best_stats_path())

    result = run_autoplay(chart, config=config, frame_rate=args.fps, best_stats_store=best_stats_store)
    payload = {"ok": True}
    payload.update(result.to_dict())
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
