"""Rendition profiles: the candidate table and per-codec encoder settings.

The built-in profile is used unless a YAML profile is configured:

    schema_version: 1
    candidates:
      - {height: 1080, codec: av1}
      - {height: 720, codec: av1}
      - {height: 320, codec: h264, small: true}
    encoders:
      av1: {encoder: libsvtav1, crf: 32, preset: "6"}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from vlr.domain.enums import CodecFamily

SCHEMA_VERSION = 1

# Shell metacharacters rejected in extra encoder arguments
FORBIDDEN_ARG_PATTERNS = (";", "|", "&", "$(", "`", "${", ">", "<", "\n")
MAX_EXTRA_ARGS = 50


@dataclass(frozen=True)
class Candidate:
    """One row of the candidate table."""

    height: int
    codec: CodecFamily
    small: bool = False


@dataclass(frozen=True)
class EncoderSettings:
    """ffmpeg encoder selection for a codec family."""

    encoder: str
    crf: int | None = None
    preset: str | None = None
    extra_args: tuple[str, ...] = ()


DEFAULT_CANDIDATES: tuple[Candidate, ...] = (
    Candidate(2160, CodecFamily.AV1),
    Candidate(1080, CodecFamily.AV1),
    Candidate(720, CodecFamily.AV1),
    Candidate(480, CodecFamily.AV1),
    Candidate(360, CodecFamily.AV1),
    Candidate(320, CodecFamily.H264, small=True),
)

DEFAULT_ENCODERS: dict[CodecFamily, EncoderSettings] = {
    CodecFamily.AV1: EncoderSettings("libsvtav1", crf=30, preset="8"),
    CodecFamily.HEVC: EncoderSettings(
        "libx265", crf=24, preset="medium", extra_args=("-tag:v", "hvc1")
    ),
    CodecFamily.H264: EncoderSettings(
        "libx264", crf=23, preset="veryfast", extra_args=("-profile:v", "main")
    ),
}


@dataclass(frozen=True)
class RenditionProfile:
    """Candidate table plus encoder settings."""

    candidates: tuple[Candidate, ...] = DEFAULT_CANDIDATES
    encoders: dict[CodecFamily, EncoderSettings] = field(
        default_factory=lambda: dict(DEFAULT_ENCODERS)
    )

    def encoder_for(self, codec: CodecFamily) -> EncoderSettings:
        return self.encoders.get(codec, DEFAULT_ENCODERS[codec])


DEFAULT_PROFILE = RenditionProfile()


class ProfileValidationError(Exception):
    """Error during rendition profile validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class CandidateModel(BaseModel):
    """Pydantic model for a candidate table row."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    height: int = Field(gt=0)
    codec: CodecFamily
    small: bool = False

    @field_validator("height")
    @classmethod
    def validate_height(cls, v: int) -> int:
        """Chroma subsampling needs even dimensions."""
        if v % 2:
            raise ValueError(f"height must be even, got {v}")
        return v


class EncoderModel(BaseModel):
    """Pydantic model for encoder settings."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    encoder: str = Field(min_length=1)
    crf: int | None = Field(default=None, ge=0, le=63)
    preset: str | None = None
    extra_args: list[str] = Field(default_factory=list)

    @field_validator("extra_args")
    @classmethod
    def validate_extra_args(cls, v: list[str]) -> list[str]:
        """Reject oversized argument lists and shell metacharacters."""
        if len(v) > MAX_EXTRA_ARGS:
            raise ValueError(
                f"extra_args count exceeds limit: {len(v)} > {MAX_EXTRA_ARGS}"
            )
        for i, arg in enumerate(v):
            for pattern in FORBIDDEN_ARG_PATTERNS:
                if pattern in arg:
                    raise ValueError(
                        f"extra_args[{i}] contains forbidden character: {pattern!r}"
                    )
        return v


class RenditionProfileModel(BaseModel):
    """Pydantic model for a rendition profile file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: int
    candidates: list[CandidateModel] = Field(min_length=1)
    encoders: dict[CodecFamily, EncoderModel] = Field(default_factory=dict)

    @field_validator("candidates")
    @classmethod
    def validate_unique(cls, v: list[CandidateModel]) -> list[CandidateModel]:
        seen: set[tuple[int, CodecFamily, bool]] = set()
        for candidate in v:
            key = (candidate.height, candidate.codec, candidate.small)
            if key in seen:
                raise ValueError(
                    f"duplicate candidate {candidate.height}p "
                    f"{candidate.codec.value}{' small' if candidate.small else ''}"
                )
            seen.add(key)
        return v


def _format_validation_error(error: Exception) -> str:
    """Format a Pydantic validation error into a user-friendly message."""
    if isinstance(error, ValidationError):
        errors = error.errors()
        if errors:
            first_error = errors[0]
            loc = ".".join(str(x) for x in first_error.get("loc", []))
            msg = first_error.get("msg", str(error))
            if loc:
                return f"Profile validation failed: {loc}: {msg}"
            return f"Profile validation failed: {msg}"

    return f"Profile validation failed: {error}"


def load_profile_from_dict(data: dict[str, Any]) -> RenditionProfile:
    """Load and validate a rendition profile from a dictionary.

    Raises:
        ProfileValidationError: If the profile data is invalid.
    """
    schema_version = data.get("schema_version")
    if schema_version != SCHEMA_VERSION:
        raise ProfileValidationError(
            f"Only schema_version {SCHEMA_VERSION} is supported, "
            f"got {schema_version}",
            field="schema_version",
        )

    try:
        model = RenditionProfileModel.model_validate(data)
    except ValidationError as e:
        raise ProfileValidationError(_format_validation_error(e)) from e

    encoders = dict(DEFAULT_ENCODERS)
    for codec, settings in model.encoders.items():
        encoders[codec] = EncoderSettings(
            encoder=settings.encoder,
            crf=settings.crf,
            preset=settings.preset,
            extra_args=tuple(settings.extra_args),
        )

    return RenditionProfile(
        candidates=tuple(
            Candidate(c.height, c.codec, c.small) for c in model.candidates
        ),
        encoders=encoders,
    )


def load_profile(profile_path: Path) -> RenditionProfile:
    """Load and validate a rendition profile from a YAML file.

    Raises:
        ProfileValidationError: If the profile file is invalid.
        FileNotFoundError: If the profile file does not exist.
    """
    if not profile_path.exists():
        raise FileNotFoundError(f"Profile file not found: {profile_path}")

    try:
        with open(profile_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ProfileValidationError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        raise ProfileValidationError("Profile file is empty")

    if not isinstance(data, dict):
        raise ProfileValidationError("Profile file must be a YAML mapping")

    return load_profile_from_dict(data)
