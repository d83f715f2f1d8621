"""Tests for domain models."""

from pathlib import Path

import pytest

from vlr.domain.enums import CodecFamily, PipelineOutcome, RenditionKind, TaskState
from vlr.domain.models import (
    ArtifactKey,
    ArtifactPresence,
    InvalidTransitionError,
    PipelineResult,
    PlanResult,
    RenditionSpec,
    Task,
    Transform,
)


def _spec(name: str = "1080p.av1", **kwargs) -> RenditionSpec:
    kwargs.setdefault("kind", RenditionKind.VIDEO)
    return RenditionSpec(name=name, output_path=Path(f"/out/a.{name}.mp4"), **kwargs)


class TestCodecRank:
    def test_av1_outranks_hevc_outranks_h264(self):
        assert CodecFamily.AV1.rank > CodecFamily.HEVC.rank > CodecFamily.H264.rank


class TestTaskTransitions:
    """Tests for the task state machine."""

    def test_normal_lifecycle(self):
        task = Task(_spec())

        task.transition(TaskState.RUNNING)
        task.transition(TaskState.FAILED)
        task.transition(TaskState.REDO_PENDING)
        task.transition(TaskState.RUNNING)
        task.transition(TaskState.SUCCEEDED)

        assert task.state == TaskState.SUCCEEDED
        assert task.state.is_terminal

    @pytest.mark.parametrize("terminal", [TaskState.SUCCEEDED, TaskState.CANCELLED])
    def test_terminal_states_cannot_move(self, terminal):
        task = Task(_spec(), state=terminal)

        with pytest.raises(InvalidTransitionError) as exc_info:
            task.transition(TaskState.RUNNING)

        assert exc_info.value.current == terminal
        assert "1080p.av1" in str(exc_info.value)

    def test_pending_cannot_succeed_directly(self):
        with pytest.raises(InvalidTransitionError):
            Task(_spec()).transition(TaskState.SUCCEEDED)


class TestArtifactPresence:
    """Tests for equivalent-or-better lookup."""

    def test_same_or_better_codec_matches(self):
        presence = ArtifactPresence(
            renditions=frozenset({ArtifactKey(720, CodecFamily.HEVC, True)})
        )

        assert presence.has_equivalent_or_better(720, CodecFamily.H264, True)
        assert presence.has_equivalent_or_better(720, CodecFamily.HEVC, True)
        assert not presence.has_equivalent_or_better(720, CodecFamily.AV1, True)
        assert not presence.has_equivalent_or_better(480, CodecFamily.H264, True)
        assert not presence.has_equivalent_or_better(720, CodecFamily.H264, False)

    def test_large_heights_excludes_small(self):
        presence = ArtifactPresence(
            renditions=frozenset(
                {
                    ArtifactKey(1080, CodecFamily.AV1, True),
                    ArtifactKey(320, CodecFamily.H264, False),
                }
            )
        )

        assert presence.large_heights == {1080}


class TestSourceDescriptor:
    def test_anamorphic_detection(self, source_factory):
        dvd = source_factory(
            Path("/a.mkv"), width=720, height=480, display_width=854, display_height=480
        )
        square = source_factory(Path("/b.mkv"))

        assert dvd.is_anamorphic
        assert not square.is_anamorphic

    def test_audio_only_source(self, source_factory):
        source = source_factory(Path("/song.mkv"), width=0, height=0)

        assert not source.has_video
        assert source.display_aspect is None
        assert not source.is_anamorphic

    def test_stem_and_duration(self, source_factory):
        source = source_factory(Path("/lib/Heat (1995).mkv"), duration_us=90_500_000)

        assert source.stem == "Heat (1995)"
        assert source.duration_seconds == 90.5


class TestRenditionSpec:
    def test_small_video_is_not_large(self):
        assert _spec().large
        assert not _spec("320p.h264.small", small=True).large
        assert not _spec("audio", kind=RenditionKind.AUDIO).large

    def test_window_overrides_duration(self):
        spec = _spec(
            "sample",
            kind=RenditionKind.SAMPLE,
            source_duration_us=600_000_000,
            transform=Transform(window=(10.0, 20.0)),
        )

        assert spec.duration_us == 20_000_000


class TestPlanResult:
    def test_specs_put_audio_last(self):
        audio = _spec("audio", kind=RenditionKind.AUDIO)
        plan = PlanResult(renditions=[_spec()], audio=audio)

        assert [s.name for s in plan.specs] == ["1080p.av1", "audio"]
        assert plan.needs_audio

    def test_manifest_only_plan_is_not_empty(self):
        assert PlanResult().is_empty
        assert not PlanResult(needs_manifest=True).is_empty

    def test_skip_reason_makes_plan_ineligible(self):
        assert PlanResult().eligible
        assert not PlanResult(skip_reason="stereoscopic").eligible


class TestPipelineResult:
    def test_to_dict(self):
        task = Task(_spec(), state=TaskState.SUCCEEDED, attempts=3)
        result = PipelineResult(
            source=Path("/lib/a.mkv"),
            outcome=PipelineOutcome.COMPLETED,
            tasks=[task],
            manifest_path=Path("/lib/a.mpd"),
            artifacts=[Path("/lib/a.mpd")],
        )

        data = result.to_dict()

        assert data["outcome"] == "completed"
        assert data["manifest"] == "/lib/a.mpd"
        assert data["total_attempts"] == 3
        assert data["message"] is None
