"""
Unit tests for the gameplay session.

Tests the per-frame tick pipeline, end of song detection,
best score storage and the judgement display timer.
"""

import pytest

from gameplay_models import Chart, ChartMetadata, Grade, HitSpec, InputFrame, NoteKind


START_DELAY = 0.5


def make_chart(*specs):
    return Chart(hit_specs=tuple(specs), metadata=ChartMetadata(title="Song", artist="Band"))


def tap(time_seconds, lane=0, floor=0):
    return HitSpec(time_seconds=time_seconds, lane=lane, floor=floor)


def press(*lanes, floor=0):
    return InputFrame(presses=tuple(lanes), selected_floor=floor)


@pytest.fixture
def source():
    from timing_model import ManualTimeSource
    return ManualTimeSource(0.0)


@pytest.fixture
def make_session(source):
    from gameplay_session import GameplaySession
    from timing_model import SongClock

    def _make(chart, **kwargs):
        clock = SongClock(source, start_delay_seconds=START_DELAY)
        session = GameplaySession(chart, clock, **kwargs)
        session.start()
        return session

    return _make


def at(source, song_time_seconds):
    source.set(song_time_seconds + START_DELAY)


class TestSessionLifecycle:
    """Test start, tick and end ordering."""

    def test_missing_clock(self):
        from gameplay_session import GameplaySession
        from timing_model import MissingClockSourceError

        with pytest.raises(MissingClockSourceError):
            GameplaySession(make_chart(tap(5.0)), None)

    def test_tick_before_start(self):
        from gameplay_session import GameplaySession, SessionError
        from timing_model import ManualTimeSource, SongClock

        session = GameplaySession(make_chart(tap(5.0)), SongClock(ManualTimeSource()))
        with pytest.raises(SessionError):
            session.tick()

    def test_double_start(self, make_session):
        from gameplay_session import SessionError

        session = make_session(make_chart(tap(5.0)))
        with pytest.raises(SessionError):
            session.start()

    def test_song_id_from_metadata(self, make_session):
        session = make_session(make_chart(tap(5.0)))
        assert session.state.song_id == "Song_Band"

    def test_play_to_completion(self, make_session, source):
        session = make_session(make_chart(tap(5.0)))

        at(source, 4.0)
        assert session.tick() == []
        assert len(session.live_notes()) == 1

        at(source, 5.0)
        events = session.tick(press(0))
        assert [event.grade for event in events] == [Grade.PERFECT]
        assert session.state.is_ended
        assert session.state.end_reason == "complete"
        assert session.tick(press(0)) == []

    def test_empty_chart_ends_on_first_tick(self, make_session):
        session = make_session(make_chart())
        session.tick()
        assert session.state.is_ended

    def test_timeout_with_stuck_note(self, make_session, source):
        long_hold = HitSpec(time_seconds=5.0, lane=0, floor=0, kind=NoteKind.HOLD, duration_seconds=100.0)
        session = make_session(make_chart(long_hold))

        at(source, 6.0)
        session.tick()
        assert not session.state.is_ended

        at(source, 25.0)
        session.tick()
        assert session.state.is_ended
        assert session.state.end_reason == "timeout"

    def test_end_is_idempotent(self, make_session):
        from best_stats_store import InMemoryBestStatsStore

        store = InMemoryBestStatsStore()
        session = make_session(make_chart(tap(5.0)), best_stats_store=store)
        first = session.end()
        second = session.end("again")
        assert first is second
        assert session.state.end_reason == "explicit"
        assert store.save_count == 0

    def test_listener_receives_events(self, make_session, source):
        received = []
        session = make_session(make_chart(tap(5.0), tap(6.0)))
        session.add_listener(received.append)

        at(source, 5.0)
        session.tick(press(0))
        at(source, 6.3)
        session.tick()
        assert [event.grade for event in received] == [Grade.PERFECT, Grade.MISS]

    def test_audio_offset_delays_notes(self, make_session, source):
        from config import AppConfig, OffsetConfig

        config = AppConfig(offsets=OffsetConfig(audio_offset_ms=100))
        session = make_session(make_chart(tap(5.0), tap(6.0, lane=1)), config=config)

        at(source, 5.0)
        assert [event.grade for event in session.tick(press(0))] == [Grade.GOOD]
        at(source, 6.1)
        assert [event.grade for event in session.tick(press(1))] == [Grade.PERFECT]

    def test_seek_to_first_note(self, make_session):
        session = make_session(make_chart(tap(30.0)))
        assert session.seek_to_first_note(lead_seconds=2.0)
        assert abs(session.timeline.spawn_time_seconds(session.chart.hit_specs[0]) - 25.0) < 1e-9
        assert not session.seek_to_first_note(lead_seconds=2.0)

    def test_seek_during_hold_pays_no_skipped_ticks(self, source):
        from gameplay_session import GameplaySession
        from timing_model import SongClock

        long_hold = HitSpec(time_seconds=5.0, lane=0, floor=0, kind=NoteKind.HOLD, duration_seconds=20.0)
        clock = SongClock(source, start_delay_seconds=START_DELAY)
        session = GameplaySession(make_chart(long_hold), clock)
        session.start()

        at(source, 5.0)
        session.tick(press(0))
        assert session.score_state.combo == 1

        clock.seek(20.0)
        session.tick(InputFrame(selected_floor=0))
        assert (session.score_state.score, session.score_state.combo) == (0, 1)

        source.advance(0.5)
        session.tick(InputFrame(selected_floor=0))
        assert (session.score_state.score, session.score_state.combo) == (50, 2)
        assert session.live_notes()[0].is_holding


class TestJudgementDisplay:
    """Test the latest judgement display timer."""

    def test_cleared_after_display_time(self, make_session, source):
        session = make_session(make_chart(tap(5.0), tap(8.0)))

        at(source, 5.0)
        session.tick(press(0))
        assert session.state.latest_judgement.grade is Grade.PERFECT

        at(source, 5.4)
        session.tick()
        assert session.state.latest_judgement is not None

        at(source, 5.5)
        session.tick()
        assert session.state.latest_judgement is None

    def test_new_judgement_restarts_timer(self, make_session, source):
        session = make_session(make_chart(tap(5.0), tap(5.3, lane=1), tap(9.0)))

        at(source, 5.0)
        session.tick(press(0))
        at(source, 5.3)
        session.tick(press(1))

        at(source, 5.6)
        session.tick()
        assert session.state.latest_judgement is not None
        assert session.state.latest_judgement.lane == 1

        at(source, 5.9)
        session.tick()
        assert session.state.latest_judgement is None


class TestBestStats:
    """Test best score storage at end of play."""

    def play_one_perfect(self, make_session, source, store):
        session = make_session(make_chart(tap(5.0)), best_stats_store=store)
        at(source, 5.0)
        session.tick(press(0))
        return session

    def test_first_play_is_saved(self, make_session, source):
        from best_stats_store import InMemoryBestStatsStore

        store = InMemoryBestStatsStore()
        session = self.play_one_perfect(make_session, source, store)
        assert session.state.best_updated
        assert store.load_best_stats("Song_Band") == (500, 1)
        assert store.save_count == 1

        session.end()
        assert store.save_count == 1

    def test_worse_play_not_saved(self, make_session, source):
        from best_stats_store import InMemoryBestStatsStore

        store = InMemoryBestStatsStore()
        store.save_best_stats("Song_Band", 1000, 5)
        session = self.play_one_perfect(make_session, source, store)
        assert not session.state.best_updated
        assert store.save_count == 1
        assert store.load_best_stats("Song_Band") == (1000, 5)

    def test_store_failure_is_not_fatal(self, make_session, source):
        from best_stats_store import BestStatsError

        class BrokenStore:
            def load_best_stats(self, song_id):
                return (0, 0)

            def save_best_stats(self, song_id, score, combo):
                raise BestStatsError("disk full")

        session = self.play_one_perfect(make_session, source, BrokenStore())
        assert session.state.is_ended
        assert not session.state.best_updated
