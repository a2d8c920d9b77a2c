"""
Unit tests for the .osu chart parser.

Tests section handling, coordinate projection onto lanes and floors,
long note durations and tolerance of malformed lines.
"""

import pytest

from gameplay_models import NoteKind, TimingPointKind


def chart_text(*hit_object_lines, timing_lines=("0,500,4,1,0,100,1,0",), difficulty_lines=("SliderMultiplier:1.4",)):
    lines = ["[Difficulty]", *difficulty_lines, "[TimingPoints]", *timing_lines, "[HitObjects]", *hit_object_lines]
    return "\n".join(lines)


class TestProjection:
    """Test playfield to lane and floor mapping."""

    def test_lane_from_x(self):
        from osu_store import lane_from_x

        assert lane_from_x(0) == 0
        assert lane_from_x(127) == 0
        assert lane_from_x(128) == 1
        assert lane_from_x(300) == 2
        assert lane_from_x(511) == 3

    def test_lane_is_clamped(self):
        from osu_store import lane_from_x

        assert lane_from_x(600) == 3
        assert lane_from_x(-5) == 0

    def test_floor_from_y(self):
        from osu_store import floor_from_y

        assert floor_from_y(0) == 2
        assert floor_from_y(127) == 2
        assert floor_from_y(128) == 1
        assert floor_from_y(255) == 1
        assert floor_from_y(256) == 0
        assert floor_from_y(384) == 0


class TestParseChart:
    """Test full chart parsing."""

    def test_metadata_and_notes(self, simple_osu_text):
        from osu_store import parse_chart_text

        chart = parse_chart_text(simple_osu_text)

        assert chart.metadata.title == "Song"
        assert chart.metadata.artist == "Band"
        assert chart.metadata.version == "Hard"
        assert chart.metadata.audio_filename == "song.mp3"
        assert chart.metadata.song_id() == "Song_Band"
        assert chart.slider_multiplier == 1.4

        assert [(spec.time_seconds, spec.lane, spec.floor) for spec in chart.hit_specs] == [
            (1.0, 0, 0),
            (1.5, 3, 2),
            (2.0, 2, 0),
        ]
        assert chart.hit_specs[0].kind is NoteKind.TAP
        assert chart.hit_specs[0].duration_seconds == 0.0

    def test_slider_becomes_curved_hold(self, simple_osu_text):
        from osu_store import parse_chart_text

        slider = parse_chart_text(simple_osu_text).hit_specs[2]
        assert slider.kind is NoteKind.HOLD
        assert abs(slider.duration_seconds - 2.5) < 1e-9
        assert slider.curve_points == ((2, 0), (3, 2))
        assert slider.is_curved

    def test_inherited_flag(self):
        from osu_store import parse_chart_text

        chart = parse_chart_text(chart_text(timing_lines=("0,500,4,1,0,100,1,0", "1000,-200,4,1,0,100,0,0")))
        assert [point.kind for point in chart.timing_points] == [
            TimingPointKind.UNINHERITED,
            TimingPointKind.INHERITED,
        ]

    def test_short_timing_line_is_uninherited(self):
        from osu_store import parse_chart_text

        chart = parse_chart_text(chart_text(timing_lines=("0,500",)))
        assert chart.timing_points[0].kind is TimingPointKind.UNINHERITED

    def test_inherited_point_slows_slider(self):
        from osu_store import parse_chart_text

        text = chart_text(
            "256,300,2000,2,0,B|384:100,1,700",
            timing_lines=("0,500,4,1,0,100,1,0", "1000,-200,4,1,0,100,0,0"),
        )
        assert abs(parse_chart_text(text).hit_specs[0].duration_seconds - 5.0) < 1e-9

    def test_timing_points_after_hit_objects(self):
        from osu_store import parse_chart_text

        text = "\n".join([
            "[HitObjects]",
            "256,300,2000,2,0,B|384:100,1,700",
            "[TimingPoints]",
            "0,500,4,1,0,100,1,0",
        ])
        assert abs(parse_chart_text(text).hit_specs[0].duration_seconds - 2.5) < 1e-9

    def test_hit_specs_sorted_by_time(self):
        from osu_store import parse_chart_text

        chart = parse_chart_text(chart_text("0,0,3000,1,0", "128,0,1000,1,0", "256,0,2000,1,0"))
        assert [spec.time_seconds for spec in chart.hit_specs] == [1.0, 2.0, 3.0]

    def test_decimal_coordinates(self):
        from osu_store import parse_chart_text

        spec = parse_chart_text(chart_text("200.5,140.7,1000,1,0")).hit_specs[0]
        assert (spec.lane, spec.floor) == (1, 1)

    def test_empty_text(self):
        from osu_store import parse_chart_text

        chart = parse_chart_text("")
        assert chart.hit_specs == ()
        assert chart.timing_points == ()
        assert chart.slider_multiplier == 1.4

    def test_other_sections_ignored(self):
        from osu_store import parse_chart_text

        text = "\n".join(["[Events]", "0,0,\"bg.jpg\",0,0", "[HitObjects]", "0,0,1000,1,0"])
        assert len(parse_chart_text(text).hit_specs) == 1


class TestLongNotes:
    """Test long note duration edge cases."""

    def test_mania_hold(self):
        from osu_store import parse_chart_text

        spec = parse_chart_text(chart_text("192,192,1000,128,0,1500:0:0:0:0:")).hit_specs[0]
        assert spec.kind is NoteKind.HOLD
        assert (spec.lane, spec.floor) == (1, 1)
        assert abs(spec.duration_seconds - 0.5) < 1e-9
        assert not spec.is_curved

    def test_mania_hold_without_end_time(self):
        from osu_store import parse_chart_text

        chart = parse_chart_text(chart_text("192,192,1000,128,0", "192,192,2000,128,0,abc:0:0"))
        assert [spec.duration_seconds for spec in chart.hit_specs] == [1.0, 1.0]

    def test_short_hold_is_clamped(self):
        from osu_store import MIN_LONG_NOTE_SECONDS, parse_chart_text

        chart = parse_chart_text(chart_text("0,0,1000,128,0,1050:0", "0,0,2000,128,0,1900:0"))
        assert [spec.duration_seconds for spec in chart.hit_specs] == [MIN_LONG_NOTE_SECONDS] * 2

    def test_zero_length_slider_is_clamped(self):
        from osu_store import MIN_LONG_NOTE_SECONDS, parse_chart_text

        spec = parse_chart_text(chart_text("0,0,1000,2,0,L|0:0,1,0")).hit_specs[0]
        assert spec.kind is NoteKind.HOLD
        assert spec.duration_seconds == MIN_LONG_NOTE_SECONDS
        assert spec.curve_points == ((0, 2),)
        assert not spec.is_curved

    def test_slider_without_length_uses_default(self):
        from osu_store import DEFAULT_LONG_NOTE_SECONDS, parse_chart_text

        spec = parse_chart_text(chart_text("0,0,1000,2,0,L|300:300")).hit_specs[0]
        assert spec.duration_seconds == DEFAULT_LONG_NOTE_SECONDS
        assert spec.curve_points == ((0, 2), (2, 0))


class TestTolerance:
    """Test that malformed input is skipped instead of failing."""

    def test_malformed_lines_are_counted(self):
        from osu_store import parse_chart_text_with_diagnostics

        text = chart_text(
            "garbage",
            "x,y,1000,1,0",
            "0,0,1000,1,0",
            timing_lines=("abc,def", "0,500,4,1,0,100,1,0"),
        )
        chart, dropped = parse_chart_text_with_diagnostics(text)
        assert dropped == 3
        assert len(chart.hit_specs) == 1
        assert len(chart.timing_points) == 1

    @pytest.mark.parametrize("beat_length", ["-inf", "inf", "nan"])
    def test_non_finite_timing_line_is_dropped(self, beat_length):
        from osu_store import parse_chart_text_with_diagnostics

        text = chart_text(
            "256,300,2000,2,0,B|384:100,1,700",
            timing_lines=("0,500,4,1,0,100,1,0", f"0,{beat_length},4,1,0,100,0,0"),
        )
        chart, dropped = parse_chart_text_with_diagnostics(text)
        assert dropped == 1
        assert len(chart.timing_points) == 1
        assert abs(chart.hit_specs[0].duration_seconds - 2.5) < 1e-9

    def test_vanishing_velocity_uses_default_duration(self):
        from osu_store import DEFAULT_LONG_NOTE_SECONDS, parse_chart_text

        text = chart_text(
            "256,300,2000,2,0,B|384:100,1,700",
            timing_lines=("0,500,4,1,0,100,1,0", "0,-1e308,4,1,0,100,0,0"),
        )
        chart = parse_chart_text(text)
        assert chart.hit_specs[0].duration_seconds == DEFAULT_LONG_NOTE_SECONDS

    @pytest.mark.parametrize(
        "bad_line",
        ["0,0,nan,1,0", "nan,0,1500,1,0", "0,inf,1500,1,0", "0,0,-inf,1,0", "64,0,1500,128,0,nan:0:0:0:0:"],
    )
    def test_non_finite_hit_object_fields(self, bad_line):
        from osu_store import DEFAULT_LONG_NOTE_SECONDS, parse_chart_text_with_diagnostics

        text = chart_text("0,0,3000,1,0", bad_line, "0,0,1000,1,0", "0,0,2000,1,0")
        chart, dropped = parse_chart_text_with_diagnostics(text)
        times = [spec.time_seconds for spec in chart.hit_specs]

        if bad_line.startswith("64,"):
            # Mania hold with a non-finite end time keeps the note at the default length.
            assert dropped == 0
            assert times == [1.0, 1.5, 2.0, 3.0]
            assert chart.hit_specs[1].duration_seconds == DEFAULT_LONG_NOTE_SECONDS
        else:
            assert dropped == 1
            assert times == [1.0, 2.0, 3.0]

    @pytest.mark.parametrize("value", ["abc", "0", "-1.5"])
    def test_bad_slider_multiplier_keeps_default(self, value):
        from osu_store import parse_chart_text

        chart = parse_chart_text(chart_text(difficulty_lines=(f"SliderMultiplier:{value}",)))
        assert chart.slider_multiplier == 1.4

    def test_custom_slider_multiplier(self):
        from osu_store import parse_chart_text

        text = chart_text("256,300,2000,2,0,B|384:100,1,700", difficulty_lines=("SliderMultiplier:2.8",))
        chart = parse_chart_text(text)
        assert chart.slider_multiplier == 2.8
        assert abs(chart.hit_specs[0].duration_seconds - 1.25) < 1e-9


class TestLoadChart:
    """Test reading chart files."""

    def test_load_with_bom(self, tmp_path, simple_osu_text):
        from osu_store import load_chart

        chart_path = tmp_path / "song.osu"
        chart_path.write_bytes(simple_osu_text.encode("utf-8-sig"))

        loaded = load_chart(chart_path)
        assert loaded.source_path == chart_path
        assert loaded.dropped_line_count == 0
        assert loaded.chart.metadata.title == "Song"

    def test_missing_file(self, tmp_path):
        from osu_store import ChartReadError, load_chart

        with pytest.raises(ChartReadError):
            load_chart(tmp_path / "missing.osu")

    def test_invalid_encoding(self, tmp_path):
        from osu_store import ChartError, load_chart

        chart_path = tmp_path / "broken.osu"
        chart_path.write_bytes(b"[Metadata]\nTitle:\xff\xfe\xfa\n")
        with pytest.raises(ChartError):
            load_chart(chart_path)
