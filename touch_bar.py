# -*- coding: utf-8 -*-
########################
# touch_bar.py
########################
# Purpose:
# - Vertical touch bar that selects the active floor.
# - Converts relative mouse motion into a bar height and a floor index.
#
# Design notes:
# - No Qt usage. input_router feeds mouse deltas in, JudgeEngine reads floors out.
# - Floor tracks sit at heights 1.75 / 4.25 / 6.75; selection switches at 3.5 and 6.5.
# - floor_position_for_height gives a continuous floor coordinate for curved hold tracking.
#
########################
# Interfaces:
# Public functions:
# - floor_for_height(height: float) -> int
# - floor_position_for_height(height: float) -> float
#
# Public classes:
# - class TouchBar
#   - height -> float
#   - current_floor() -> int
#   - floor_position() -> float
#   - move_by_mouse_delta(delta_y: float) -> int
#   - set_height(height: float) -> int
#
########################

from __future__ import annotations

from typing import Tuple

FLOOR_TRACK_HEIGHTS: Tuple[float, float, float] = (1.75, 4.25, 6.75)
_FLOOR_SWITCH_HEIGHTS: Tuple[float, float] = (3.5, 6.5)


def floor_for_height(height: float) -> int:
    value = float(height)
    if value < _FLOOR_SWITCH_HEIGHTS[0]:
        return 0
    if value < _FLOOR_SWITCH_HEIGHTS[1]:
        return 1
    return 2


def floor_position_for_height(height: float) -> float:
    spacing = FLOOR_TRACK_HEIGHTS[1] - FLOOR_TRACK_HEIGHTS[0]
    return (float(height) - FLOOR_TRACK_HEIGHTS[0]) / spacing


class TouchBar:
    def __init__(
        self,
        *,
        sensitivity: float = 0.1,
        min_height: float = 0.0,
        max_height: float = 8.0,
        start_height: float = FLOOR_TRACK_HEIGHTS[0],
    ) -> None:
        if float(min_height) > float(max_height):
            raise ValueError("min_height must not exceed max_height")
        self._sensitivity = float(sensitivity)
        self._min_height = float(min_height)
        self._max_height = float(max_height)
        self._height = self._clamp(start_height)

    def _clamp(self, height: float) -> float:
        return min(max(float(height), self._min_height), self._max_height)

    @property
    def height(self) -> float:
        return self._height

    def current_floor(self) -> int:
        return floor_for_height(self._height)

    def floor_position(self) -> float:
        return floor_position_for_height(self._height)

    def move_by_mouse_delta(self, delta_y: float) -> int:
        self._height = self._clamp(self._height + float(delta_y) * self._sensitivity * 0.1)
        return self.current_floor()

    def set_height(self, height: float) -> int:
        self._height = self._clamp(height)
        return self.current_floor()
