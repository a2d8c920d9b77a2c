"""
Unit tests for the Qt input router.

Skipped when PyQt6 (the optional "qt" extra) is not installed.
"""

import pytest

pytest.importorskip("PyQt6.QtGui")

from PyQt6.QtCore import QEvent, Qt  # noqa: E402
from PyQt6.QtGui import QKeyEvent  # noqa: E402


def key_event(key, *, is_press=True, auto_repeat=False):
    event_type = QEvent.Type.KeyPress if is_press else QEvent.Type.KeyRelease
    return QKeyEvent(event_type, key.value, Qt.KeyboardModifier.NoModifier, "", auto_repeat)


@pytest.fixture
def router():
    from input_router import InputRouter
    from touch_bar import TouchBar

    return InputRouter(TouchBar(sensitivity=1.0))


class TestInputRouter:
    """Test key and mouse routing into input frames."""

    def test_lane_keys(self, router):
        for key, lane in ((Qt.Key.Key_A, 0), (Qt.Key.Key_S, 1), (Qt.Key.Key_D, 2), (Qt.Key.Key_F, 3)):
            assert router.handle_key_press(key_event(key))
        assert router.drain_frame().presses == (0, 1, 2, 3)

    def test_arrow_keys(self, router):
        assert router.handle_key_press(key_event(Qt.Key.Key_Right))
        assert router.drain_frame().presses == (3,)

    def test_unmapped_key_not_consumed(self, router):
        assert not router.handle_key_press(key_event(Qt.Key.Key_Q))
        assert router.drain_frame().presses == ()

    def test_auto_repeat_ignored(self, router):
        router.handle_key_press(key_event(Qt.Key.Key_A))
        assert router.handle_key_press(key_event(Qt.Key.Key_A, auto_repeat=True))
        assert router.handle_key_press(key_event(Qt.Key.Key_A))
        assert router.drain_frame().presses == (0,)

    def test_press_and_release_edges(self, router):
        router.handle_key_press(key_event(Qt.Key.Key_D))
        router.handle_key_release(key_event(Qt.Key.Key_D, is_press=False))
        frame = router.drain_frame()
        assert frame.presses == (2,)
        assert frame.releases == (2,)
        assert router.drain_frame().releases == ()

    def test_release_without_press_ignored(self, router):
        router.handle_key_release(key_event(Qt.Key.Key_S, is_press=False))
        assert router.drain_frame().releases == ()

    def test_clear_pressed_keys_releases(self, router):
        router.handle_key_press(key_event(Qt.Key.Key_A))
        router.handle_key_press(key_event(Qt.Key.Key_F))
        router.drain_frame()

        router.clear_pressed_keys()
        assert sorted(router.drain_frame().releases) == [0, 3]

    def test_lane_event_signal(self, router):
        received = []
        router.laneEvent.connect(received.append)
        router.handle_key_press(key_event(Qt.Key.Key_S))
        assert [(event.lane, event.is_press) for event in received] == [(1, True)]

    def test_mouse_moves_floor(self, router):
        floors = []
        router.floorChanged.connect(floors.append)

        frame = router.drain_frame()
        assert frame.selected_floor == 0
        assert frame.bar_height == 1.75

        router.handle_mouse_delta(25.0)
        frame = router.drain_frame()
        assert frame.selected_floor == 1
        assert abs(frame.bar_height - 4.25) < 1e-9
        assert floors == [1]
