# -*- coding: utf-8 -*-
########################
# timing_model.py
########################
# Purpose:
# - Single source of truth for song time in gameplay.
# - Derives song time from an audio hardware clock, never from accumulated frame deltas.
#
# Design notes:
# - Gameplay code must use SongClock.song_time_seconds.
# - The audio clock source is injected as a callable returning monotonic seconds.
#   A missing source is fatal: the session refuses to run without a time base.
# - Song time never regresses between reads, except across an explicit seek.
# - No Qt usage. Keep this module pure and deterministic.
#
########################
# Interfaces:
# Public exceptions:
# - class MissingClockSourceError(Exception)
#
# Public dataclasses:
# - ClockSnapshot(audio_time_seconds: float, reference_audio_time_seconds: float, song_time_seconds: float,
#                 is_started: bool)
#
# Public classes:
# - class ManualTimeSource
#   - __call__() -> float
#   - set(seconds: float) -> None
#   - advance(seconds: float) -> None
# - class SongClock
#   - start() -> None
#   - is_started() -> bool
#   - song_time_seconds() -> float
#   - seek(song_time_seconds: float) -> None
#   - seek_count() -> int
#   - snapshot() -> ClockSnapshot
#
# Inputs:
# - audio_time_source: callable returning the audio device clock in seconds.
# - start_delay_seconds: lead-in between start() and song time zero.
#
# Outputs:
# - song_time_seconds used by NoteTimeline, JudgeEngine and GameplaySession.
#
########################

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_START_DELAY_SECONDS = 0.5


class MissingClockSourceError(Exception):
    """Raised when gameplay is constructed without an audio clock source."""


@dataclass(frozen=True)
class ClockSnapshot:
    audio_time_seconds: float
    reference_audio_time_seconds: float
    song_time_seconds: float
    is_started: bool


class ManualTimeSource:
    """Settable clock source for tests, autoplay and offline tools."""

    def __init__(self, start_seconds: float = 0.0) -> None:
        self._seconds = float(start_seconds)

    def __call__(self) -> float:
        return self._seconds

    def set(self, seconds: float) -> None:
        self._seconds = float(seconds)

    def advance(self, seconds: float) -> None:
        self._seconds += float(seconds)


class SongClock:
    def __init__(
        self,
        audio_time_source: Optional[Callable[[], float]],
        *,
        start_delay_seconds: float = DEFAULT_START_DELAY_SECONDS,
    ) -> None:
        if audio_time_source is None or not callable(audio_time_source):
            raise MissingClockSourceError("SongClock requires a callable audio clock source")
        self._audio_time_source: Callable[[], float] = audio_time_source
        self._start_delay_seconds = float(start_delay_seconds)
        self._reference_audio_time_seconds: Optional[float] = None
        self._last_song_time_seconds: Optional[float] = None
        self._seek_count = 0

    def start(self) -> None:
        audio_now = float(self._audio_time_source())
        self._reference_audio_time_seconds = audio_now + self._start_delay_seconds
        self._last_song_time_seconds = None
        logger.debug("Clock started at audio time %.4f (delay %.3fs)", audio_now, self._start_delay_seconds)

    def is_started(self) -> bool:
        return self._reference_audio_time_seconds is not None

    def song_time_seconds(self) -> float:
        if self._reference_audio_time_seconds is None:
            # Before start() the song sits at its lead-in.
            return -self._start_delay_seconds

        value = float(self._audio_time_source()) - self._reference_audio_time_seconds
        # Contract choice:
        # - audio clocks can jitter backwards by a sample on device changes
        # - song time holds its last value instead of regressing
        if self._last_song_time_seconds is not None and value < self._last_song_time_seconds:
            value = self._last_song_time_seconds
        self._last_song_time_seconds = value
        return value

    def seek(self, song_time_seconds: float) -> None:
        """Re-base the clock so that song time reads song_time_seconds now."""
        audio_now = float(self._audio_time_source())
        self._reference_audio_time_seconds = audio_now - float(song_time_seconds)
        self._last_song_time_seconds = None
        self._seek_count += 1
        logger.info("Clock seek to %.3fs", float(song_time_seconds))

    def seek_count(self) -> int:
        """Number of seeks so far. Consumers compare it to notice discontinuities."""
        return self._seek_count

    def snapshot(self) -> ClockSnapshot:
        audio_now = float(self._audio_time_source())
        reference = self._reference_audio_time_seconds
        return ClockSnapshot(
            audio_time_seconds=audio_now,
            reference_audio_time_seconds=float(reference) if reference is not None else 0.0,
            song_time_seconds=self.song_time_seconds(),
            is_started=self.is_started(),
        )


def _run_unit_tests() -> None:
    source = ManualTimeSource(100.0)
    clock = SongClock(source, start_delay_seconds=0.5)
    assert abs(clock.song_time_seconds() - (-0.5)) < 1e-9

    clock.start()
    assert abs(clock.song_time_seconds() - (-0.5)) < 1e-9

    source.advance(2.0)
    assert abs(clock.song_time_seconds() - 1.5) < 1e-9

    source.advance(-0.01)
    assert abs(clock.song_time_seconds() - 1.5) < 1e-9

    clock.seek(10.0)
    assert abs(clock.song_time_seconds() - 10.0) < 1e-9

    try:
        SongClock(None)
    except MissingClockSourceError:
        pass
    else:
        raise AssertionError("Expected MissingClockSourceError")


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_model.py: ok")
