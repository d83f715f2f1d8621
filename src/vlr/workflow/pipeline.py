"""Rendition pipeline.

Orchestrates one asset end to end:

1. take the output directory's busy marker (decline if another run holds it)
2. scan existing artifacts and plan what is missing
3. run the renditions through the task scheduler
4. once every task has succeeded, assemble the manifest (at most once)

A library sweep runs the pipeline asset by asset and keeps going when one
asset fails.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from pathlib import Path

from vlr.config.models import VLRConfig
from vlr.domain.enums import (
    Classification,
    CodecFamily,
    PipelineOutcome,
    TaskState,
)
from vlr.domain.models import (
    ArtifactPresence,
    PipelineResult,
    PlanResult,
    SourceDescriptor,
)
from vlr.executor.busy import busy_marker
from vlr.executor.interface import Transcoder
from vlr.executor.manifest import ManifestAssembler
from vlr.executor.transcode import FFmpegTranscoder
from vlr.introspector.interface import MediaIntrospectionError, MediaIntrospector
from vlr.jobs.exceptions import OutputDirectoryBusyError, PipelineError
from vlr.jobs.progress import ProgressAggregator
from vlr.jobs.scheduler import TaskScheduler
from vlr.logging import asset_context
from vlr.renditions import naming
from vlr.renditions.planner import RenditionPlanner
from vlr.renditions.profile import DEFAULT_PROFILE, RenditionProfile, load_profile

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = frozenset({".mkv"})

TranscoderFactory = Callable[[SourceDescriptor], Transcoder]


def find_sources(paths: Iterable[Path]) -> list[Path]:
    """Expand files and directories into the source files to process.

    Directories are walked recursively. Hidden entries, editor backups
    ("~" suffix) and symlinks are skipped.
    """
    found: list[Path] = []

    def _skip(path: Path) -> bool:
        return path.name.startswith(".") or path.name.endswith("~") or path.is_symlink()

    def _walk(directory: Path) -> None:
        for entry in sorted(directory.iterdir(), key=lambda p: p.name.casefold()):
            if _skip(entry):
                continue
            if entry.is_dir():
                _walk(entry)
            elif entry.suffix.lower() in SOURCE_SUFFIXES:
                found.append(entry)

    for path in paths:
        if path.is_dir():
            _walk(path)
        elif path.suffix.lower() in SOURCE_SUFFIXES:
            found.append(path)
        else:
            logger.warning("Skipping unsupported file: %s", path)
    return found


def manifest_inputs(
    presence: ArtifactPresence, output_dir: Path, stem: str
) -> list[Path]:
    """Large renditions for the manifest: best codec per height, tallest first."""
    best: dict[int, CodecFamily] = {}
    for key in presence.renditions:
        if not key.large:
            continue
        current = best.get(key.height)
        if current is None or key.codec.rank > current.rank:
            best[key.height] = key.codec
    return [
        naming.rendition_path(output_dir, stem, height, best[height])
        for height in sorted(best, reverse=True)
    ]


class RenditionPipeline:
    """Produce the missing renditions and manifest of source assets."""

    def __init__(
        self,
        config: VLRConfig | None = None,
        planner: RenditionPlanner | None = None,
        transcoder_factory: TranscoderFactory | None = None,
        assembler: ManifestAssembler | None = None,
        progress: ProgressAggregator | None = None,
    ) -> None:
        self.config = config or VLRConfig()
        self.profile = self._load_profile()
        self.planner = planner or RenditionPlanner(self.config.renditions, self.profile)
        self._transcoder_factory = transcoder_factory or self._ffmpeg_transcoder
        self.assembler = assembler or ManifestAssembler(self.config.tools.mp4box)
        self.progress = progress or ProgressAggregator(enabled=False)

    def _load_profile(self) -> RenditionProfile:
        """Load the configured rendition profile.

        Raises:
            ProfileValidationError: If the profile is invalid.
            FileNotFoundError: If the profile file does not exist.
        """
        path = self.config.renditions.profile
        if path is None:
            return DEFAULT_PROFILE
        logger.debug("Loading rendition profile %s", path)
        return load_profile(path)

    def _ffmpeg_transcoder(self, source: SourceDescriptor) -> Transcoder:
        return FFmpegTranscoder(source.path, self.profile, self.config.tools.ffmpeg)

    def plan(self, source: SourceDescriptor, output_dir: Path | None = None) -> PlanResult:
        """Plan against the current contents of the output directory."""
        output_dir = output_dir or source.path.parent
        presence = naming.scan_artifacts(output_dir, source.stem)
        return self.planner.plan(replace(source, presence=presence), output_dir)

    async def run(
        self, source: SourceDescriptor, output_dir: Path | None = None
    ) -> PipelineResult:
        """Run the pipeline for one asset.

        Args:
            source: Descriptor of the asset.
            output_dir: Where artifacts go; defaults to the asset's directory.

        Returns:
            PipelineResult. Skips are outcomes, not errors.

        Raises:
            RetryExhaustedError: A rendition ran out of retries.
            ManifestError: The manifest could not be assembled.
            OSError: The output directory or its busy marker is not writable.
        """
        output_dir = output_dir or source.path.parent
        with asset_context(source.stem, source.path):
            output_dir.mkdir(parents=True, exist_ok=True)
            try:
                with busy_marker(output_dir):
                    return await self._run_locked(source, output_dir)
            except OutputDirectoryBusyError as e:
                logger.info("Output directory busy, skipping %s", source.stem)
                return PipelineResult(
                    source=source.path,
                    outcome=PipelineOutcome.SKIPPED_BUSY,
                    message=str(e),
                )

    async def _run_locked(
        self, source: SourceDescriptor, output_dir: Path
    ) -> PipelineResult:
        plan = self.plan(source, output_dir)

        if not plan.eligible:
            return PipelineResult(
                source=source.path,
                outcome=PipelineOutcome.SKIPPED_INELIGIBLE,
                message=plan.skip_reason,
            )
        if plan.is_empty:
            logger.info("Nothing to do for %s", source.stem)
            return PipelineResult(
                source=source.path, outcome=PipelineOutcome.NOTHING_TO_DO
            )

        scheduler = TaskScheduler(
            self._transcoder_factory(source),
            self.config.pipeline,
            self.progress,
        )
        try:
            tasks = await scheduler.run(plan.specs)

            manifest = None
            if plan.needs_manifest and all(
                task.state == TaskState.SUCCEEDED for task in tasks
            ):
                manifest = await self._assemble(source, output_dir, plan)
        except BaseException:
            removed = naming.cleanup_temp_files(output_dir, source.stem)
            if removed:
                logger.debug("Removed %d temp file(s) after abort", len(removed))
            raise

        artifacts = [task.spec.output_path for task in tasks]
        if manifest is not None:
            artifacts.append(manifest)
        logger.info(
            "Rendered %s: %d artifact(s), %d attempt(s)",
            source.stem,
            len(artifacts),
            sum(task.attempts for task in tasks),
            extra={"max_running": scheduler.max_running},
        )
        return PipelineResult(
            source=source.path,
            outcome=PipelineOutcome.COMPLETED,
            tasks=tasks,
            manifest_path=manifest,
            artifacts=artifacts,
        )

    async def _assemble(
        self, source: SourceDescriptor, output_dir: Path, plan: PlanResult
    ) -> Path:
        presence = naming.scan_artifacts(output_dir, source.stem)
        videos = manifest_inputs(presence, output_dir, source.stem)
        audio = naming.audio_path(output_dir, source.stem) if presence.has_audio else None
        manifest = plan.manifest_path or naming.manifest_path(output_dir, source.stem)
        return await self.assembler.assemble(source.path, manifest, videos, audio)

    async def sweep(
        self,
        paths: Sequence[Path],
        introspector: MediaIntrospector,
        output_dir: Path | None = None,
        classification: Classification | None = None,
    ) -> list[PipelineResult]:
        """Run the pipeline for each source, continuing past failures.

        Args:
            paths: Source files.
            introspector: Builds a descriptor per source.
            output_dir: Common output directory; defaults to each source's own.
            classification: Override the classification derived from each path.

        Returns:
            One result per source. Fatal errors are recorded as FAILED.
        """
        results: list[PipelineResult] = []
        self.progress.on_start(len(paths))

        for index, path in enumerate(paths):
            self.progress.on_item_start(index, path.stem)
            try:
                source = introspector.get_descriptor(path, classification)
                result = await self.run(source, output_dir)
            except (PipelineError, MediaIntrospectionError, OSError) as e:
                logger.error("Failed to render %s: %s", path.name, e)
                result = PipelineResult(
                    source=path, outcome=PipelineOutcome.FAILED, message=str(e)
                )
            results.append(result)
            self.progress.on_item_complete(
                index, result.outcome != PipelineOutcome.FAILED, path.stem
            )

        self.progress.on_complete(
            all(r.outcome != PipelineOutcome.FAILED for r in results)
        )
        return results
