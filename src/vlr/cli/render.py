"""CLI render and plan commands."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import Any

import click

from vlr.cli.exit_codes import ExitCode
from vlr.cli.output import error_exit
from vlr.config import ConfigError, VLRConfig, get_config
from vlr.domain.enums import Classification, PipelineOutcome, RenditionKind
from vlr.core.formatting import format_duration, format_file_size
from vlr.domain.models import PipelineResult, PlanResult, SourceDescriptor
from vlr.executor.interface import ToolNotFoundError, require_tool
from vlr.introspector import MediaIntrospectionError, MkvmergeIntrospector
from vlr.jobs.progress import ProgressAggregator
from vlr.renditions.profile import ProfileValidationError
from vlr.workflow import RenditionPipeline, find_sources

logger = logging.getLogger(__name__)


def _validate_concurrency(
    ctx: click.Context, param: click.Parameter, value: int | None
) -> int | None:
    if value is not None and value < 1:
        raise click.BadParameter("must be at least 1")
    return value


def _load_config(
    ctx: click.Context,
    concurrency: int | None,
    profile_path: Path | None,
    sample: bool,
    json_output: bool,
) -> VLRConfig:
    try:
        config = get_config(
            ctx.obj.get("config_path") if ctx.obj else None,
            concurrency=concurrency,
            profile_path=profile_path,
        )
    except ConfigError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR, json_output)

    if sample:
        config.renditions = replace(
            config.renditions, sample=replace(config.renditions.sample, enabled=True)
        )
    return config


def _build_pipeline(
    config: VLRConfig, json_output: bool, progress: ProgressAggregator | None = None
) -> RenditionPipeline:
    try:
        return RenditionPipeline(config, progress=progress)
    except FileNotFoundError as e:
        error_exit(str(e), ExitCode.PROFILE_INVALID, json_output)
    except ProfileValidationError as e:
        error_exit(str(e), ExitCode.PROFILE_INVALID, json_output)


def _discover(paths: tuple[Path, ...], json_output: bool) -> list[Path]:
    sources = find_sources(paths)
    if not sources:
        error_exit(
            "No source files found in the specified paths.",
            ExitCode.TARGET_NOT_FOUND,
            json_output,
        )
    return sources


def _introspector(config: VLRConfig, json_output: bool) -> MkvmergeIntrospector:
    try:
        return MkvmergeIntrospector(config.tools.mkvmerge)
    except ToolNotFoundError as e:
        error_exit(str(e), ExitCode.TOOL_NOT_AVAILABLE, json_output)


def _format_result_human(result: PipelineResult) -> str:
    line = f"[{result.outcome.value}] {result.source.name}"
    if result.outcome == PipelineOutcome.COMPLETED:
        size = sum(p.stat().st_size for p in result.artifacts if p.is_file())
        line += (
            f": {len(result.artifacts)} artifact(s) ({format_file_size(size)}), "
            f"{result.total_attempts} attempt(s)"
        )
    elif result.message:
        line += f": {result.message}"
    return line


def _format_plan_json(source: SourceDescriptor, plan: PlanResult) -> dict[str, Any]:
    return {
        "source": str(source.path),
        "classification": source.classification.value,
        "duration_us": source.duration_us,
        "eligible": plan.eligible,
        "skip_reason": plan.skip_reason,
        "renditions": [
            {
                "name": spec.name,
                "kind": spec.kind.value,
                "output": str(spec.output_path),
                "with_audio": spec.with_audio,
            }
            for spec in plan.specs
        ],
        "needs_manifest": plan.needs_manifest,
        "manifest": str(plan.manifest_path) if plan.manifest_path else None,
    }


def _format_plan_human(source: SourceDescriptor, plan: PlanResult) -> str:
    lines = [
        f"{source.path.name} "
        f"({source.classification.value}, {format_duration(source.duration_us)}):"
    ]
    if not plan.eligible:
        lines.append(f"  skipped: {plan.skip_reason}")
        return "\n".join(lines)
    if plan.is_empty:
        lines.append("  nothing to do")
        return "\n".join(lines)
    for spec in plan.specs:
        with_audio = spec.with_audio and spec.kind == RenditionKind.VIDEO
        audio = " (+audio)" if with_audio else ""
        lines.append(f"  {spec.name}{audio} -> {spec.output_path.name}")
    if plan.needs_manifest and plan.manifest_path is not None:
        lines.append(f"  manifest -> {plan.manifest_path.name}")
    return "\n".join(lines)


classification_option = click.option(
    "--classification",
    type=click.Choice([c.value for c in Classification], case_sensitive=False),
    default=None,
    help="Treat every source as this classification (default: from its path).",
)
output_dir_option = click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Write artifacts here instead of beside each source.",
)
profile_option = click.option(
    "--profile",
    "profile_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML rendition profile replacing the built-in candidate table.",
)
sample_option = click.option(
    "--sample",
    is_flag=True,
    default=False,
    help="Also produce a short preview clip.",
)
json_option = click.option(
    "--json",
    "-j",
    "json_output",
    is_flag=True,
    default=False,
    help="Output in JSON format",
)
paths_argument = click.argument(
    "paths",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
    required=True,
)


@click.command("render")
@classification_option
@output_dir_option
@click.option(
    "--concurrency",
    "-c",
    type=int,
    default=None,
    callback=_validate_concurrency,
    help="Transcoder processes to run in parallel (default: from config or 6).",
)
@profile_option
@sample_option
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    default=False,
    help="Do not draw the progress line.",
)
@json_option
@paths_argument
@click.pass_context
def render_command(
    ctx: click.Context,
    classification: str | None,
    output_dir: Path | None,
    concurrency: int | None,
    profile_path: Path | None,
    sample: bool,
    quiet: bool,
    json_output: bool,
    paths: tuple[Path, ...],
) -> None:
    """Render the missing renditions and manifest of each source.

    PATHS can be files or directories; directories are searched recursively.

    Examples:

        vlr render /media/movies/Heat.mkv

        vlr render -c 4 --classification tv /media/shows/
    """
    config = _load_config(ctx, concurrency, profile_path, sample, json_output)
    sources = _discover(paths, json_output)
    introspector = _introspector(config, json_output)
    try:
        require_tool("ffmpeg", config.tools.ffmpeg)
    except ToolNotFoundError as e:
        error_exit(str(e), ExitCode.TOOL_NOT_AVAILABLE, json_output)

    progress = ProgressAggregator(
        enabled=not quiet and not json_output and sys.stderr.isatty()
    )
    pipeline = _build_pipeline(config, json_output, progress)
    forced = Classification(classification.lower()) if classification else None

    start = time.monotonic()
    try:
        results = asyncio.run(
            pipeline.sweep(sources, introspector, output_dir, forced)
        )
    except KeyboardInterrupt:
        progress.close()
        error_exit("Interrupted", ExitCode.INTERRUPTED, json_output)
    except ToolNotFoundError as e:
        progress.close()
        error_exit(str(e), ExitCode.TOOL_NOT_AVAILABLE, json_output)
    duration = time.monotonic() - start

    failed = sum(1 for r in results if r.outcome == PipelineOutcome.FAILED)

    if json_output:
        output = {
            "summary": {
                "total": len(results),
                "failed": failed,
                "duration_seconds": round(duration, 2),
            },
            "results": [r.to_dict() for r in results],
        }
        click.echo(json.dumps(output, indent=2))
    else:
        for result in results:
            click.echo(_format_result_human(result))
        click.echo(
            f"Rendered {len(results)} source(s): "
            f"{len(results) - failed} ok, {failed} failed in {duration:.1f}s"
        )

    if failed:
        sys.exit(ExitCode.OPERATION_FAILED)
    sys.exit(ExitCode.SUCCESS)


@click.command("plan")
@classification_option
@output_dir_option
@profile_option
@sample_option
@json_option
@paths_argument
@click.pass_context
def plan_command(
    ctx: click.Context,
    classification: str | None,
    output_dir: Path | None,
    profile_path: Path | None,
    sample: bool,
    json_output: bool,
    paths: tuple[Path, ...],
) -> None:
    """Show what render would produce, without running anything.

    Examples:

        vlr plan /media/movies/

        vlr plan --json Heat.mkv
    """
    config = _load_config(ctx, None, profile_path, sample, json_output)
    sources = _discover(paths, json_output)
    introspector = _introspector(config, json_output)
    pipeline = _build_pipeline(config, json_output)
    forced = Classification(classification.lower()) if classification else None

    plans: list[dict[str, Any]] = []
    errors = 0
    for path in sources:
        try:
            source = introspector.get_descriptor(path, forced)
        except MediaIntrospectionError as e:
            logger.error("Could not probe %s: %s", path.name, e)
            errors += 1
            if not json_output:
                click.echo(f"{path.name}:\n  error: {e}")
            continue
        plan = pipeline.plan(source, output_dir)
        if json_output:
            plans.append(_format_plan_json(source, plan))
        else:
            click.echo(_format_plan_human(source, plan))

    if json_output:
        click.echo(json.dumps({"plans": plans, "errors": errors}, indent=2))

    if errors:
        sys.exit(ExitCode.PROBE_ERROR)
    sys.exit(ExitCode.SUCCESS)
