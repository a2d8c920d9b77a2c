# -*- coding: utf-8 -*-
########################
# input_router.py
########################
# Purpose:
# - Single keyboard and mouse listener for gameplay lane input.
# - Translates QKeyEvent presses and releases into LaneInputEvent edges and mouse motion into
#   touch bar movement, then hands them to the session once per tick as an InputFrame.
#
# Design notes:
# - This must be the only lane input source. No duplicate key mapping elsewhere.
# - Debounce rules:
#   - Ignore auto repeat.
#   - Track pressed keys so a held key produces exactly one press and one release edge.
# - Edges are queued between ticks; drain_frame() empties the queue.
#
########################
# Interfaces:
# Public classes:
# - class InputRouter(PyQt6.QtCore.QObject)
#   - Signals:
#     - laneEvent(gameplay_models.LaneInputEvent)
#     - floorChanged(int)
#   - Methods:
#     - handle_key_press(event: QKeyEvent) -> bool
#     - handle_key_release(event: QKeyEvent) -> bool
#     - handle_mouse_delta(delta_y: float) -> None
#     - clear_pressed_keys() -> None
#     - drain_frame() -> gameplay_models.InputFrame
#
# Inputs:
# - Raw QKeyEvent from the Qt event loop, mouse Y deltas from the view.
#
# Outputs:
# - InputFrame consumed by GameplaySession.tick.
#
########################

from __future__ import annotations

from typing import Dict, List, Optional, Set

from PyQt6.QtCore import QObject, Qt, pyqtSignal
from PyQt6.QtGui import QKeyEvent

from gameplay_models import InputFrame, LaneInputEvent
from touch_bar import TouchBar


def _build_default_key_to_lane_map() -> Dict[int, int]:
    """
    Default lane mapping for the four lanes, left to right.

    Accepted keys:
      - A, S, D, F
      - Arrow keys: Left, Down, Up, Right
    """
    key_to_lane: Dict[int, int] = {}

    def bind(key_constant: int, lane_index: int) -> None:
        key_to_lane[int(key_constant.value) if hasattr(key_constant, "value") else int(key_constant)] = int(lane_index)

    bind(Qt.Key.Key_A, 0)
    bind(Qt.Key.Key_S, 1)
    bind(Qt.Key.Key_D, 2)
    bind(Qt.Key.Key_F, 3)

    bind(Qt.Key.Key_Left, 0)
    bind(Qt.Key.Key_Down, 1)
    bind(Qt.Key.Key_Up, 2)
    bind(Qt.Key.Key_Right, 3)

    return key_to_lane


class InputRouter(QObject):
    """
    Central input router for gameplay.

    This object never judges timing. Its only job is to:
      - map keys to lane indexes
      - record press and release edges until the next tick
      - move the touch bar and report the selected floor
    """

    laneEvent = pyqtSignal(object)
    floorChanged = pyqtSignal(int)

    def __init__(
        self,
        touch_bar: Optional[TouchBar] = None,
        parent: Optional[QObject] = None,
        key_to_lane_map: Optional[Dict[int, int]] = None,
    ) -> None:
        super().__init__(parent)

        self._touch_bar = touch_bar if touch_bar is not None else TouchBar()
        self._key_to_lane: Dict[int, int] = (
            dict(key_to_lane_map) if key_to_lane_map is not None else _build_default_key_to_lane_map()
        )

        self._pressed_keys: Set[int] = set()
        self._pending_events: List[LaneInputEvent] = []
        self._last_floor = self._touch_bar.current_floor()

    @property
    def touch_bar(self) -> TouchBar:
        return self._touch_bar

    @property
    def key_to_lane_map(self) -> Dict[int, int]:
        return dict(self._key_to_lane)

    def handle_key_press(self, event: QKeyEvent) -> bool:
        """Returns True if this router consumed the event."""
        key_code = int(event.key())
        lane_index = self._key_to_lane.get(key_code)
        if lane_index is None:
            return False

        if event.isAutoRepeat() or key_code in self._pressed_keys:
            return True

        self._pressed_keys.add(key_code)
        self._queue(LaneInputEvent(lane=lane_index, is_press=True))
        return True

    def handle_key_release(self, event: QKeyEvent) -> bool:
        """Returns True if this router consumed the event."""
        key_code = int(event.key())
        lane_index = self._key_to_lane.get(key_code)
        if lane_index is None:
            return False

        if event.isAutoRepeat() or key_code not in self._pressed_keys:
            return True

        self._pressed_keys.discard(key_code)
        self._queue(LaneInputEvent(lane=lane_index, is_press=False))
        return True

    def handle_mouse_delta(self, delta_y: float) -> None:
        floor = self._touch_bar.move_by_mouse_delta(delta_y)
        if floor != self._last_floor:
            self._last_floor = floor
            self.floorChanged.emit(floor)

    def clear_pressed_keys(self) -> None:
        """Release every held lane, e.g. on focus loss, so holds are judged instead of stuck."""
        for key_code in sorted(self._pressed_keys):
            self._queue(LaneInputEvent(lane=self._key_to_lane[key_code], is_press=False))
        self._pressed_keys.clear()

    def drain_frame(self) -> InputFrame:
        presses = tuple(event.lane for event in self._pending_events if event.is_press)
        releases = tuple(event.lane for event in self._pending_events if not event.is_press)
        self._pending_events.clear()
        return InputFrame(
            presses=presses,
            releases=releases,
            selected_floor=self._touch_bar.current_floor(),
            bar_height=self._touch_bar.height,
        )

    def _queue(self, lane_event: LaneInputEvent) -> None:
        self._pending_events.append(lane_event)
        self.laneEvent.emit(lane_event)
