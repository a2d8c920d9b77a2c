# -*- coding: utf-8 -*-
########################
# timing_resolver.py
########################
# Purpose:
# - Resolve effective tempo and slider velocity from a chart's timing points.
# - Compute long note durations for sliders at parse time.
#
# Design notes:
# - Pure functions over an immutable, time-sorted sequence of TimingPoint.
# - "Latest point with time <= t" lookups use bisect. Points sharing a time keep chart order,
#   so the one written last in the chart wins.
# - Tempo comes from the latest uninherited point. Slider velocity comes from the latest point of
#   either kind, so an uninherited point after an inherited one resets velocity to 1.0.
#
########################
# Interfaces:
# Public constants:
# - DEFAULT_BEAT_LENGTH_MS = 600.0 (100 BPM)
#
# Public functions:
# - sorted_timing_points(points) -> tuple[TimingPoint, ...]
# - active_uninherited_point(points, time_ms) -> TimingPoint
# - active_point(points, time_ms) -> TimingPoint
# - slider_velocity_multiplier(point) -> float
# - effective_bpm(points, time_ms) -> float
# - slider_duration_seconds(points, slider_multiplier, time_ms, pixel_length, repeats) -> float
#   - Raises ValueError when the resolved velocity is not positive.
#
# Public classes:
# - class TimingMap
#   - same queries bound to one chart, with cached bisect keys
#
########################

from __future__ import annotations

from bisect import bisect_right
from typing import Iterable, List, Sequence, Tuple

from gameplay_models import TimingPoint, TimingPointKind

DEFAULT_BEAT_LENGTH_MS = 600.0

_DEFAULT_RED_POINT = TimingPoint(time_ms=0.0, beat_length=DEFAULT_BEAT_LENGTH_MS, kind=TimingPointKind.UNINHERITED)


def sorted_timing_points(points: Iterable[TimingPoint]) -> Tuple[TimingPoint, ...]:
    # sorted() is stable: equal times keep chart order.
    return tuple(sorted(points, key=lambda point: float(point.time_ms)))


def _latest_index(keys: Sequence[float], time_ms: float) -> int:
    """Index of the last key <= time_ms, or -1."""
    return bisect_right(keys, float(time_ms)) - 1


def active_uninherited_point(points: Sequence[TimingPoint], time_ms: float) -> TimingPoint:
    return TimingMap(points).active_uninherited_point(time_ms)


def active_point(points: Sequence[TimingPoint], time_ms: float) -> TimingPoint:
    return TimingMap(points).active_point(time_ms)


def slider_velocity_multiplier(point: TimingPoint) -> float:
    if not point.is_inherited:
        return 1.0
    beat_length = float(point.beat_length)
    if beat_length < 0.0:
        return 100.0 / -beat_length
    # Non-negative inherited values do not occur in valid charts.
    return 1.0


def effective_bpm(points: Sequence[TimingPoint], time_ms: float) -> float:
    return TimingMap(points).effective_bpm(time_ms)


def slider_duration_seconds(
    points: Sequence[TimingPoint],
    slider_multiplier: float,
    time_ms: float,
    pixel_length: float,
    repeats: int,
) -> float:
    return TimingMap(points).slider_duration_seconds(
        slider_multiplier=slider_multiplier,
        time_ms=time_ms,
        pixel_length=pixel_length,
        repeats=repeats,
    )


class TimingMap:
    """Timing queries for one chart.

    The input is re-sorted defensively; callers that already hold a sorted tuple pay only the
    cost of the stable sort on an ordered list.
    """

    def __init__(self, points: Iterable[TimingPoint]) -> None:
        self._points: Tuple[TimingPoint, ...] = sorted_timing_points(points)
        self._keys: List[float] = [float(point.time_ms) for point in self._points]
        self._red_points: Tuple[TimingPoint, ...] = tuple(point for point in self._points if not point.is_inherited)
        self._red_keys: List[float] = [float(point.time_ms) for point in self._red_points]

    @property
    def points(self) -> Tuple[TimingPoint, ...]:
        return self._points

    def active_uninherited_point(self, time_ms: float) -> TimingPoint:
        index = _latest_index(self._red_keys, time_ms)
        if index < 0:
            return _DEFAULT_RED_POINT
        return self._red_points[index]

    def active_point(self, time_ms: float) -> TimingPoint:
        index = _latest_index(self._keys, time_ms)
        if index < 0:
            return self.active_uninherited_point(time_ms)
        return self._points[index]

    def effective_bpm(self, time_ms: float) -> float:
        beat_length = float(self.active_uninherited_point(time_ms).beat_length)
        if beat_length <= 0.0:
            beat_length = DEFAULT_BEAT_LENGTH_MS
        return 60000.0 / beat_length

    def slider_velocity(self, *, slider_multiplier: float, time_ms: float) -> float:
        """Pixels per beat at time_ms."""
        multiplier = slider_velocity_multiplier(self.active_point(time_ms))
        return 100.0 * float(slider_multiplier) * multiplier

    def slider_duration_seconds(
        self,
        *,
        slider_multiplier: float,
        time_ms: float,
        pixel_length: float,
        repeats: int,
    ) -> float:
        red_point = self.active_uninherited_point(time_ms)
        velocity = self.slider_velocity(slider_multiplier=slider_multiplier, time_ms=time_ms)
        if not velocity > 0.0:
            raise ValueError(f"Slider velocity must be positive, got {velocity!r}")
        beats = (float(pixel_length) * int(repeats)) / velocity
        duration_ms = beats * float(red_point.beat_length)
        return duration_ms / 1000.0


def _run_unit_tests() -> None:
    red = TimingPoint(time_ms=0.0, beat_length=500.0)
    green = TimingPoint(time_ms=1000.0, beat_length=-200.0, kind=TimingPointKind.INHERITED)

    assert abs(slider_duration_seconds([red], 1.4, 2000.0, 700.0, 1) - 2.5) < 1e-9
    assert abs(slider_duration_seconds([red, green], 1.4, 2000.0, 700.0, 1) - 5.0) < 1e-9
    # Before the green line the slider runs at base velocity.
    assert abs(slider_duration_seconds([red, green], 1.4, 500.0, 700.0, 1) - 2.5) < 1e-9

    assert active_uninherited_point([], 0.0).beat_length == DEFAULT_BEAT_LENGTH_MS
    assert abs(effective_bpm([], 0.0) - 100.0) < 1e-9


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_resolver.py: ok")
