# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Core gameplay data models for the runtime gameplay pipeline.
# - Defines the parsed Chart representation, timing points, hit specs, grades and gameplay events.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - Parsed models are frozen. Mutable per-note runtime state lives in note_scheduler.LiveNote.
# - Sequences on frozen models are tuples so a Chart can be shared without copying.
#
########################
# Interfaces:
# Public enums:
# - class TimingPointKind(enum.Enum): UNINHERITED | INHERITED
# - class NoteKind(enum.Enum): TAP | HOLD
# - class Grade(enum.Enum): PERFECT | GREAT | GOOD | BAD | MISS
#
# Public dataclasses:
# - TimingPoint(time_ms: float, beat_length: float, kind: TimingPointKind)
# - HitSpec(time_seconds: float, lane: int, floor: int, kind: NoteKind, duration_seconds: float,
#           curve_points: tuple[tuple[int, int], ...])
# - ChartMetadata(title: str, artist: str, version: str, audio_filename: str)
# - Chart(slider_multiplier: float, timing_points: tuple[TimingPoint, ...], hit_specs: tuple[HitSpec, ...],
#         metadata: ChartMetadata)
# - LaneInputEvent(lane: int, is_press: bool)
# - InputFrame(presses: tuple[int, ...], releases: tuple[int, ...], selected_floor: Optional[int],
#              bar_height: Optional[float])
# - JudgementEvent(song_time_seconds: float, lane: int, floor: int, grade: Grade, distance: float,
#                  spec_index: int, phase: str)
#
# Inputs/Outputs:
# - These types are exchanged between osu_store, timing_resolver, NoteTimeline, JudgeEngine,
#   ScoreState and GameplaySession.
#
########################

from __future__ import annotations

from dataclasses import dataclass, field
import enum
from typing import Optional, Tuple

LANE_COUNT = 4
FLOOR_COUNT = 3


class TimingPointKind(enum.Enum):
    UNINHERITED = "uninherited"
    INHERITED = "inherited"


class NoteKind(enum.Enum):
    TAP = "tap"
    HOLD = "hold"


class Grade(enum.Enum):
    PERFECT = "perfect"
    GREAT = "great"
    GOOD = "good"
    BAD = "bad"
    MISS = "miss"

    @property
    def is_miss(self) -> bool:
        return self is Grade.MISS


@dataclass(frozen=True)
class TimingPoint:
    time_ms: float
    beat_length: float
    kind: TimingPointKind = TimingPointKind.UNINHERITED

    @property
    def is_inherited(self) -> bool:
        return self.kind is TimingPointKind.INHERITED


@dataclass(frozen=True)
class HitSpec:
    time_seconds: float
    lane: int
    floor: int
    kind: NoteKind = NoteKind.TAP
    duration_seconds: float = 0.0
    curve_points: Tuple[Tuple[int, int], ...] = ()

    @property
    def is_hold(self) -> bool:
        return self.kind is NoteKind.HOLD

    @property
    def is_curved(self) -> bool:
        return self.is_hold and len(self.curve_points) > 1


@dataclass(frozen=True)
class ChartMetadata:
    title: str = ""
    artist: str = ""
    version: str = ""
    audio_filename: str = ""

    def song_id(self) -> str:
        """Stable key used for best score storage."""
        return f"{self.title}_{self.artist}"


@dataclass(frozen=True)
class Chart:
    slider_multiplier: float = 1.4
    timing_points: Tuple[TimingPoint, ...] = ()
    hit_specs: Tuple[HitSpec, ...] = ()
    metadata: ChartMetadata = field(default_factory=ChartMetadata)

    @property
    def duration_seconds(self) -> float:
        if not self.hit_specs:
            return 0.0
        return max(spec.time_seconds + spec.duration_seconds for spec in self.hit_specs)


@dataclass(frozen=True)
class LaneInputEvent:
    lane: int
    is_press: bool


@dataclass(frozen=True)
class InputFrame:
    presses: Tuple[int, ...] = ()
    releases: Tuple[int, ...] = ()
    selected_floor: Optional[int] = None
    bar_height: Optional[float] = None


# Phases that end a note's lifecycle. "head" events are feedback only.
RESOLUTION_PHASES = frozenset({"tap", "tail", "over_hold", "curve_break", "late"})


@dataclass(frozen=True)
class JudgementEvent:
    song_time_seconds: float
    lane: int
    floor: int
    grade: Grade
    distance: float
    spec_index: int
    phase: str

    @property
    def is_resolution(self) -> bool:
        return self.phase in RESOLUTION_PHASES
