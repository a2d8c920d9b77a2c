# -*- coding: utf-8 -*-
########################
# calibration.py
########################
# Purpose:
# - Offset calibration against a metronome.
# - Audio calibration yields audio_offset_ms (delays note spawning).
# - Judgement calibration yields judgement_offset in track units (shifts the judgement line).
#
# Design notes:
# - No Qt usage. The caller plays the metronome and forwards taps with the audio clock time.
# - Each tap is compared with the nearest beat. Taps more than 0.2s before the first beat are ignored.
# - Results: audio offset = round(mean_diff * 1000) ms, judgement offset = mean_diff * note_speed.
#
########################
# Interfaces:
# Public enums:
# - class CalibrationKind(enum.Enum): AUDIO | JUDGEMENT
#
# Public dataclasses:
# - CalibrationResult(kind, tap_count, mean_diff_seconds, audio_offset_ms, judgement_offset)
#
# Public classes:
# - class OffsetCalibrator
#   - __init__(kind, *, bpm: float, start_time_seconds: float, required_taps: int, note_speed: float)
#   - beat_interval_seconds -> float
#   - on_tap(tap_time_seconds: float) -> Optional[float]
#   - is_complete() -> bool
#   - result() -> CalibrationResult
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
import logging
from typing import List, Optional

logger = logging.getLogger(__name__)

_EARLY_TAP_GRACE_SECONDS = 0.2


class CalibrationKind(enum.Enum):
    AUDIO = "audio"
    JUDGEMENT = "judgement"


@dataclass(frozen=True)
class CalibrationResult:
    kind: CalibrationKind
    tap_count: int
    mean_diff_seconds: float
    audio_offset_ms: int
    judgement_offset: float


class OffsetCalibrator:
    def __init__(
        self,
        kind: CalibrationKind,
        *,
        bpm: float = 120.0,
        start_time_seconds: float = 0.0,
        required_taps: int = 10,
        note_speed: float = 10.0,
    ) -> None:
        if float(bpm) <= 0.0:
            raise ValueError("bpm must be positive")
        if int(required_taps) <= 0:
            raise ValueError("required_taps must be positive")
        self._kind = kind
        self._beat_interval_seconds = 60.0 / float(bpm)
        self._start_time_seconds = float(start_time_seconds)
        self._required_taps = int(required_taps)
        self._note_speed = float(note_speed)
        self._tap_diffs: List[float] = []

    @property
    def kind(self) -> CalibrationKind:
        return self._kind

    @property
    def beat_interval_seconds(self) -> float:
        return self._beat_interval_seconds

    @property
    def tap_count(self) -> int:
        return len(self._tap_diffs)

    def on_tap(self, tap_time_seconds: float) -> Optional[float]:
        """Record a tap. Returns its signed distance to the nearest beat, or None if ignored."""
        if self.is_complete():
            return None
        elapsed = float(tap_time_seconds) - self._start_time_seconds
        if elapsed < -_EARLY_TAP_GRACE_SECONDS:
            return None

        nearest_beat_index = round(elapsed / self._beat_interval_seconds)
        nearest_beat_time = self._start_time_seconds + nearest_beat_index * self._beat_interval_seconds
        diff = float(tap_time_seconds) - nearest_beat_time
        self._tap_diffs.append(diff)
        logger.debug("Calibration tap %d: %.1f ms", len(self._tap_diffs), diff * 1000.0)
        return diff

    def is_complete(self) -> bool:
        return len(self._tap_diffs) >= self._required_taps

    def result(self) -> CalibrationResult:
        if not self._tap_diffs:
            raise ValueError("No calibration taps recorded")
        mean_diff = sum(self._tap_diffs) / len(self._tap_diffs)
        return CalibrationResult(
            kind=self._kind,
            tap_count=len(self._tap_diffs),
            mean_diff_seconds=mean_diff,
            audio_offset_ms=int(round(mean_diff * 1000.0)),
            judgement_offset=mean_diff * self._note_speed,
        )
