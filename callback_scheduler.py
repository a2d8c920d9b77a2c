# -*- coding: utf-8 -*-
########################
# callback_scheduler.py
########################
# Purpose:
# - Run cosmetic callbacks at a future song time ("clear the judgement text after 0.5s").
# - Keeps presentation timers out of the judgement state machine.
#
# Design notes:
# - Driven by the gameplay tick: run_due(song_time) fires every callback whose time has come.
# - Every schedule() returns a handle that can cancel the callback before it fires.
# - Callbacks run in due time order; equal times run in scheduling order.
#
########################
# Interfaces:
# Public classes:
# - class ScheduledCallbackHandle
#   - cancel() -> None
#   - is_cancelled -> bool
#   - has_fired -> bool
# - class CallbackScheduler
#   - schedule(due_time_seconds: float, callback: Callable[[], None]) -> ScheduledCallbackHandle
#   - run_due(song_time_seconds: float) -> int
#   - cancel_all() -> None
#   - pending_count() -> int
#
########################

from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Tuple


class ScheduledCallbackHandle:
    def __init__(self, due_time_seconds: float, callback: Callable[[], None]) -> None:
        self.due_time_seconds = float(due_time_seconds)
        self._callback = callback
        self._is_cancelled = False
        self._has_fired = False

    @property
    def is_cancelled(self) -> bool:
        return self._is_cancelled

    @property
    def has_fired(self) -> bool:
        return self._has_fired

    def cancel(self) -> None:
        self._is_cancelled = True

    def _fire(self) -> None:
        self._has_fired = True
        self._callback()


class CallbackScheduler:
    def __init__(self) -> None:
        self._queue: List[Tuple[float, int, ScheduledCallbackHandle]] = []
        self._sequence = itertools.count()

    def schedule(self, due_time_seconds: float, callback: Callable[[], None]) -> ScheduledCallbackHandle:
        handle = ScheduledCallbackHandle(due_time_seconds, callback)
        heapq.heappush(self._queue, (handle.due_time_seconds, next(self._sequence), handle))
        return handle

    def run_due(self, song_time_seconds: float) -> int:
        """Fire callbacks due at or before song_time_seconds. Returns how many fired."""
        fired = 0
        now = float(song_time_seconds)
        while self._queue and self._queue[0][0] <= now:
            _due, _sequence, handle = heapq.heappop(self._queue)
            if handle.is_cancelled:
                continue
            handle._fire()
            fired += 1
        return fired

    def cancel_all(self) -> None:
        for _due, _sequence, handle in self._queue:
            handle.cancel()
        self._queue.clear()

    def pending_count(self) -> int:
        return sum(1 for _due, _sequence, handle in self._queue if not handle.is_cancelled)
