"""Tests for rendition profile loading and validation."""

import pytest

from vlr.domain.enums import CodecFamily
from vlr.renditions.profile import (
    DEFAULT_CANDIDATES,
    DEFAULT_ENCODERS,
    Candidate,
    ProfileValidationError,
    RenditionProfile,
    load_profile,
    load_profile_from_dict,
)


def _profile_data(**overrides):
    data = {
        "schema_version": 1,
        "candidates": [
            {"height": 1080, "codec": "av1"},
            {"height": 320, "codec": "h264", "small": True},
        ],
    }
    data.update(overrides)
    return data


class TestDefaultProfile:
    def test_default_table_ends_with_small_h264(self):
        assert DEFAULT_CANDIDATES[0] == Candidate(2160, CodecFamily.AV1)
        assert DEFAULT_CANDIDATES[-1] == Candidate(320, CodecFamily.H264, small=True)

    def test_encoder_for_falls_back_to_defaults(self):
        profile = RenditionProfile(encoders={})

        assert profile.encoder_for(CodecFamily.HEVC) == DEFAULT_ENCODERS[
            CodecFamily.HEVC
        ]


class TestLoadProfileFromDict:
    """Tests for load_profile_from_dict()."""

    def test_valid_profile(self):
        profile = load_profile_from_dict(
            _profile_data(encoders={"av1": {"encoder": "libaom-av1", "crf": 28}})
        )

        assert profile.candidates == (
            Candidate(1080, CodecFamily.AV1),
            Candidate(320, CodecFamily.H264, small=True),
        )
        assert profile.encoder_for(CodecFamily.AV1).encoder == "libaom-av1"
        assert profile.encoder_for(CodecFamily.AV1).crf == 28
        # Unlisted codecs keep built-in settings
        assert profile.encoder_for(CodecFamily.H264) == DEFAULT_ENCODERS[
            CodecFamily.H264
        ]

    @pytest.mark.parametrize("version", [None, 0, 2])
    def test_unsupported_schema_version(self, version):
        with pytest.raises(ProfileValidationError) as exc_info:
            load_profile_from_dict(_profile_data(schema_version=version))

        assert exc_info.value.field == "schema_version"

    def test_odd_height_rejected(self):
        with pytest.raises(ProfileValidationError, match="even"):
            load_profile_from_dict(
                _profile_data(candidates=[{"height": 1081, "codec": "av1"}])
            )

    def test_unknown_codec_rejected(self):
        with pytest.raises(ProfileValidationError, match="candidates"):
            load_profile_from_dict(
                _profile_data(candidates=[{"height": 1080, "codec": "vp9"}])
            )

    def test_empty_candidate_table_rejected(self):
        with pytest.raises(ProfileValidationError):
            load_profile_from_dict(_profile_data(candidates=[]))

    def test_duplicate_candidate_rejected(self):
        with pytest.raises(ProfileValidationError, match="duplicate"):
            load_profile_from_dict(
                _profile_data(
                    candidates=[
                        {"height": 720, "codec": "av1"},
                        {"height": 720, "codec": "av1"},
                    ]
                )
            )

    def test_same_height_small_and_large_allowed(self):
        profile = load_profile_from_dict(
            _profile_data(
                candidates=[
                    {"height": 360, "codec": "h264"},
                    {"height": 360, "codec": "h264", "small": True},
                ]
            )
        )

        assert len(profile.candidates) == 2

    def test_unknown_field_rejected(self):
        with pytest.raises(ProfileValidationError):
            load_profile_from_dict(_profile_data(bitrate_ladder=[]))

    @pytest.mark.parametrize("arg", ["-vf;rm", "$(id)", "`id`", "a|b", "x > y"])
    def test_shell_metacharacters_rejected(self, arg):
        data = _profile_data(
            encoders={"h264": {"encoder": "libx264", "extra_args": [arg]}}
        )

        with pytest.raises(ProfileValidationError, match="forbidden"):
            load_profile_from_dict(data)

    def test_crf_out_of_range_rejected(self):
        data = _profile_data(encoders={"av1": {"encoder": "libsvtav1", "crf": 99}})

        with pytest.raises(ProfileValidationError, match="crf"):
            load_profile_from_dict(data)


class TestLoadProfile:
    """Tests for load_profile() from YAML files."""

    def test_loads_yaml_file(self, temp_dir):
        path = temp_dir / "profile.yaml"
        path.write_text(
            "schema_version: 1\n"
            "candidates:\n"
            "  - {height: 720, codec: hevc}\n"
            "encoders:\n"
            "  hevc: {encoder: libx265, preset: slow}\n"
        )

        profile = load_profile(path)

        assert profile.candidates == (Candidate(720, CodecFamily.HEVC),)
        assert profile.encoder_for(CodecFamily.HEVC).preset == "slow"

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_profile(temp_dir / "missing.yaml")

    def test_invalid_yaml(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("candidates: [unclosed\n")

        with pytest.raises(ProfileValidationError, match="Invalid YAML"):
            load_profile(path)

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.yaml"
        path.write_text("")

        with pytest.raises(ProfileValidationError, match="empty"):
            load_profile(path)

    def test_non_mapping(self, temp_dir):
        path = temp_dir / "list.yaml"
        path.write_text("- 1080\n- 720\n")

        with pytest.raises(ProfileValidationError, match="mapping"):
            load_profile(path)
