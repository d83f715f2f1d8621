"""Pipeline orchestration for Video Library Renditions."""

from vlr.workflow.pipeline import RenditionPipeline, find_sources, manifest_inputs

__all__ = ["RenditionPipeline", "find_sources", "manifest_inputs"]
