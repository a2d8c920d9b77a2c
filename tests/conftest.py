"""
Pytest configuration and fixtures for FloorBeat tests.
"""

import pytest
import sys
from pathlib import Path

# Modules live at the repository root
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(autouse=True)
def clean_floorbeat_env(monkeypatch):
    """Keep developer FLOORBEAT_* overrides out of the tests."""
    for name in (
        "FLOORBEAT_CONFIG_PATH",
        "FLOORBEAT_NOTE_SPEED",
        "FLOORBEAT_AUDIO_OFFSET_MS",
        "FLOORBEAT_JUDGEMENT_OFFSET",
        "FLOORBEAT_BEST_STATS_PATH",
        "FLOORBEAT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def windows():
    """Judgement windows at the default note speed."""
    from judge import JudgementWindows
    return JudgementWindows.from_note_speed(10.0)


@pytest.fixture
def make_engine(windows):
    """Build a JudgeEngine plus a helper that spawns specs through a NoteTimeline."""
    from judge import JudgeEngine
    from note_scheduler import NoteTimeline
    from score_state import ScoreState

    def _make(specs, **engine_kwargs):
        timeline = NoteTimeline(specs, note_speed=10.0, spawn_distance=50.0)
        engine = JudgeEngine(ScoreState(), windows, **engine_kwargs)
        for spec_index, spec in timeline.advance(1000.0):
            engine.spawn(timeline.make_live_note(spec_index, spec))
        return engine

    return _make


@pytest.fixture
def simple_osu_text():
    """Two taps and one slider at 120 BPM."""
    return "\n".join([
        "osu file format v14",
        "[General]",
        "AudioFilename: song.mp3",
        "[Metadata]",
        "Title:Song",
        "Artist:Band",
        "Version:Hard",
        "[Difficulty]",
        "SliderMultiplier:1.4",
        "[TimingPoints]",
        "0,500,4,1,0,100,1,0",
        "[HitObjects]",
        "64,320,1000,1,0,0:0:0:0:",
        "448,40,1500,1,0,0:0:0:0:",
        "256,300,2000,2,0,B|384:100,1,700",
    ])
