"""Rendition planner.

Decides which renditions an asset still needs, given its descriptor and the
artifacts already present in the output directory. Planning is pure: it
reads the descriptor's presence map and never touches the filesystem.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vlr.config.models import RenditionConfig
from vlr.domain.enums import CodecFamily, RenditionKind
from vlr.domain.models import PlanResult, RenditionSpec, SourceDescriptor, Transform
from vlr.renditions import naming
from vlr.renditions.profile import DEFAULT_PROFILE, Candidate, RenditionProfile

logger = logging.getLogger(__name__)

# Nominal aspect used to derive a candidate's width from its height
NOMINAL_ASPECT = 16 / 9

SKIP_STEREOSCOPIC = "stereoscopic (3-D) geometry is not supported"


def _even(value: float) -> int:
    """Round to the nearest even integer, as yuv420 encoders require."""
    return max(2, int(round(value / 2)) * 2)


class RenditionPlanner:
    """Compute the renditions still needed for a source asset."""

    def __init__(
        self,
        config: RenditionConfig | None = None,
        profile: RenditionProfile | None = None,
    ) -> None:
        self.config = config or RenditionConfig()
        self.profile = profile or DEFAULT_PROFILE

    def plan(self, source: SourceDescriptor, output_dir: Path) -> PlanResult:
        """Plan renditions for one asset.

        Args:
            source: Descriptor whose presence map reflects output_dir.
            output_dir: Directory the renditions will be written to.

        Returns:
            PlanResult with renditions ordered large (tallest first), small,
            then sample. skip_reason is set for ineligible assets.
        """
        stem = source.stem
        manifest = naming.manifest_path(output_dir, stem)

        if source.stereoscopic:
            logger.info("Skipping %s: %s", stem, SKIP_STEREOSCOPIC)
            return PlanResult(manifest_path=manifest, skip_reason=SKIP_STEREOSCOPIC)

        presence = source.presence
        transform = self._transform(source)
        selected = [c for c in self._candidates(source) if self._wanted(source, c)]

        planned_large = {c.height for c in selected if not c.small}
        total_large = len(presence.large_heights | planned_large)
        # A lone large rendition carries its own audio instead of a separate stream
        large_with_audio = source.has_audio and total_large <= 1

        renditions: list[RenditionSpec] = []
        for candidate in sorted(selected, key=lambda c: (c.small, -c.height)):
            with_audio = source.has_audio and (candidate.small or large_with_audio)
            renditions.append(
                RenditionSpec(
                    name=naming.rendition_name(
                        candidate.height, candidate.codec, candidate.small
                    ),
                    kind=RenditionKind.VIDEO,
                    output_path=naming.rendition_path(
                        output_dir, stem, candidate.height, candidate.codec,
                        candidate.small,
                    ),
                    height=candidate.height,
                    codec=candidate.codec,
                    small=candidate.small,
                    with_audio=with_audio,
                    audio_channels=source.audio_channels if with_audio else 0,
                    audio_index=source.audio_index,
                    source_duration_us=source.duration_us,
                    transform=transform,
                )
            )

        sample = self._sample(source, output_dir, transform)
        if sample is not None:
            renditions.append(sample)

        audio = None
        if source.has_audio and not presence.has_audio:
            # Audio-only assets get a stream of their own; otherwise only a
            # multi-rendition layout needs the separate audio stream
            if not source.has_video or total_large > 1:
                audio = RenditionSpec(
                    name=naming.AUDIO_NAME,
                    kind=RenditionKind.AUDIO,
                    output_path=naming.audio_path(output_dir, stem),
                    with_audio=True,
                    audio_channels=source.audio_channels,
                    audio_index=source.audio_index,
                    source_duration_us=source.duration_us,
                )

        needs_manifest = total_large > 1 and (
            not presence.has_manifest or bool(planned_large) or audio is not None
        )

        result = PlanResult(
            renditions=renditions,
            audio=audio,
            needs_manifest=needs_manifest,
            manifest_path=manifest,
        )
        logger.info(
            "Planned %d rendition(s) for %s",
            len(result.specs),
            stem,
            extra={
                "renditions": [spec.name for spec in result.specs],
                "needs_manifest": needs_manifest,
                "total_large": total_large,
            },
        )
        return result

    def _candidates(self, source: SourceDescriptor) -> list[Candidate]:
        if not source.has_video:
            return []
        return list(self.profile.candidates)

    def _wanted(self, source: SourceDescriptor, candidate: Candidate) -> bool:
        cap = self.config.max_height.get(source.classification)
        if cap is not None and candidate.height > cap:
            return False
        if self._is_upscale(source, candidate.height):
            return False
        if source.presence.has_equivalent_or_better(
            candidate.height, candidate.codec, not candidate.small
        ):
            return False
        return True

    def _is_upscale(self, source: SourceDescriptor, height: int) -> bool:
        """True when the candidate exceeds the source in both dimensions."""
        source_width, source_height = self._picture_size(source)
        limit = 1 + self.config.upscale_tolerance
        nominal_width = height * NOMINAL_ASPECT
        return height > source_height * limit and nominal_width > source_width * limit

    def _picture_size(self, source: SourceDescriptor) -> tuple[float, int]:
        """Displayed picture size after cropping, in square pixels."""
        if source.crop is not None:
            width, height = source.crop[0], source.crop[1]
        else:
            width, height = source.width, source.height
        if source.is_anamorphic:
            # Scale width by the sample aspect ratio
            sar = (source.display_width * source.height) / (
                source.display_height * source.width
            )
            return width * sar, height
        return float(width), height

    def _transform(self, source: SourceDescriptor) -> Transform:
        if not source.has_video:
            return Transform()
        square_pixel_width = None
        if source.is_anamorphic:
            square_pixel_width = _even(self._picture_size(source)[0])
        return Transform(crop=source.crop, square_pixel_width=square_pixel_width)

    def _sample(
        self, source: SourceDescriptor, output_dir: Path, transform: Transform
    ) -> RenditionSpec | None:
        sample = self.config.sample
        if not sample.enabled or not source.has_video or source.presence.has_sample:
            return None
        duration = source.duration_seconds
        if duration <= 0:
            return None

        start = duration * sample.start_fraction
        length = min(sample.length_seconds, duration - start)
        _, source_height = self._picture_size(source)
        height = min(sample.height, _even(source_height))

        return RenditionSpec(
            name=naming.SAMPLE_NAME,
            kind=RenditionKind.SAMPLE,
            output_path=naming.sample_path(output_dir, source.stem),
            height=height,
            codec=CodecFamily.H264,
            small=True,
            with_audio=source.has_audio,
            audio_channels=source.audio_channels,
            audio_index=source.audio_index,
            source_duration_us=source.duration_us,
            transform=Transform(
                crop=transform.crop,
                square_pixel_width=transform.square_pixel_width,
                window=(start, length),
            ),
        )
