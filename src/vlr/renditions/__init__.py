"""Rendition planning: naming contract, candidate profiles and the planner."""

from vlr.renditions.planner import RenditionPlanner
from vlr.renditions.profile import (
    DEFAULT_PROFILE,
    Candidate,
    EncoderSettings,
    ProfileValidationError,
    RenditionProfile,
    load_profile,
)

__all__ = [
    "DEFAULT_PROFILE",
    "Candidate",
    "EncoderSettings",
    "ProfileValidationError",
    "RenditionPlanner",
    "RenditionProfile",
    "load_profile",
]
