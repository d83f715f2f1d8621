"""Tests for mkvmerge output parsing and path classification."""

from pathlib import Path

import pytest

from vlr.domain.enums import Classification, RenditionKind
from vlr.executor.command import build_ffmpeg_command
from vlr.introspector.interface import MediaIntrospectionError
from vlr.introspector.parsers import (
    classify_path,
    parse_dimensions,
    parse_mkvmerge_output,
)
from vlr.renditions.planner import RenditionPlanner
from vlr.renditions.profile import DEFAULT_PROFILE

PATH = Path("/library/Movies/Heat (1995)/Heat (1995).mkv")


def _identification(**overrides):
    data = {
        "container": {
            "recognized": True,
            "properties": {"duration": 10_248_000_000_000},
        },
        "tracks": [
            {
                "type": "video",
                "properties": {
                    "pixel_dimensions": "1920x1080",
                    "display_dimensions": "1920x1080",
                },
            },
            {"type": "audio", "properties": {"audio_channels": 2}},
            {
                "type": "audio",
                "properties": {"audio_channels": 6, "default_track": True},
            },
            {"type": "subtitles", "properties": {}},
        ],
    }
    data.update(overrides)
    return data


class TestClassifyPath:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/library/Movies/Heat (1995)/Heat (1995).mkv", Classification.MOVIE),
            ("/library/TV/Show/Season 1/Show S01E02.mkv", Classification.TV),
            ("/library/TV/Show/show.s1e10.mkv", Classification.TV),
            ("/library/Movies/Heat/Extras/Making Of.mkv", Classification.EXTRA),
            ("/library/Movies/Heat/-Extras-/Trailer S01E01.mkv", Classification.EXTRA),
            ("/library/Movies/Seven (1995).mkv", Classification.MOVIE),
        ],
    )
    def test_classify(self, path, expected):
        assert classify_path(Path(path)) == expected


class TestParseDimensions:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("1920x1080", (1920, 1080)),
            ("", (0, 0)),
            (None, (0, 0)),
            ("1920", (0, 0)),
            ("axb", (0, 0)),
        ],
    )
    def test_parse(self, value, expected):
        assert parse_dimensions(value) == expected


class TestParseMkvmergeOutput:
    """Tests for parse_mkvmerge_output()."""

    def test_full_identification(self):
        source = parse_mkvmerge_output(_identification(), PATH)

        assert (source.width, source.height) == (1920, 1080)
        assert source.duration_us == 10_248_000_000
        # The default audio track is the primary one
        assert source.audio_channels == 6
        assert source.audio_index == 1
        assert source.classification == Classification.MOVIE
        assert not source.stereoscopic
        assert not source.is_anamorphic

    def test_classification_override(self):
        source = parse_mkvmerge_output(_identification(), PATH, Classification.TV)

        assert source.classification == Classification.TV

    def test_anamorphic_video(self):
        data = _identification()
        data["tracks"][0]["properties"] = {
            "pixel_dimensions": "720x576",
            "display_dimensions": "1024x576",
        }

        source = parse_mkvmerge_output(data, PATH)

        assert source.is_anamorphic
        assert source.display_width == 1024

    def test_missing_display_dimensions_fall_back_to_pixels(self):
        data = _identification()
        data["tracks"][0]["properties"] = {"pixel_dimensions": "1280x720"}

        source = parse_mkvmerge_output(data, PATH)

        assert (source.display_width, source.display_height) == (1280, 720)

    def test_stereo_mode_marks_stereoscopic(self):
        data = _identification()
        data["tracks"][0]["properties"]["stereo_mode"] = 1

        assert parse_mkvmerge_output(data, PATH).stereoscopic

    def test_audio_only_file(self):
        data = _identification(
            tracks=[{"type": "audio", "properties": {"audio_channels": 2}}]
        )

        source = parse_mkvmerge_output(data, PATH)

        assert not source.has_video
        assert source.audio_channels == 2
        assert source.audio_index == 0

    def test_no_audio(self):
        data = _identification()
        data["tracks"] = data["tracks"][:1]

        assert parse_mkvmerge_output(data, PATH).audio_channels == 0

    def test_unrecognized_container(self):
        with pytest.raises(MediaIntrospectionError, match="Unrecognized"):
            parse_mkvmerge_output(
                _identification(container={"recognized": False}), PATH
            )

    def test_not_an_identification_result(self):
        with pytest.raises(MediaIntrospectionError):
            parse_mkvmerge_output({"errors": ["boom"]}, PATH)


class TestPrimaryAudioReachesEncoder:
    """The default audio track, not the first one, is what gets encoded."""

    def test_default_second_track_is_mapped(self):
        source = parse_mkvmerge_output(_identification(), PATH)
        plan = RenditionPlanner().plan(source, Path("/library/out"))
        (audio,) = [s for s in plan.specs if s.kind == RenditionKind.AUDIO]

        cmd = build_ffmpeg_command(
            Path("/usr/bin/ffmpeg"), PATH, audio, Path("/tmp/a.mp4"), DEFAULT_PROFILE
        )

        assert cmd[cmd.index("-map") + 1] == "0:a:1"
        assert cmd[cmd.index("-ac") + 1] == "6"

    def test_small_rendition_maps_same_track(self):
        source = parse_mkvmerge_output(_identification(), PATH)
        plan = RenditionPlanner().plan(source, Path("/library/out"))
        small = next(s for s in plan.specs if s.small)

        cmd = build_ffmpeg_command(
            Path("/usr/bin/ffmpeg"), PATH, small, Path("/tmp/s.mp4"), DEFAULT_PROFILE
        )

        assert "0:a:1" in cmd
        assert "0:a:0" not in cmd
