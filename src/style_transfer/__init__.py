"""Package for style catalog and image transform backends."""

from .base import SUPPORTED_ASPECT_RATIOS, TransformService, closest_aspect_ratio
from .styles import ArtStyle, RegenerationEngine, STYLE_PREFIXES, build_style_prompt

__all__ = [
    "ArtStyle",
    "RegenerationEngine",
    "STYLE_PREFIXES",
    "SUPPORTED_ASPECT_RATIOS",
    "TransformService",
    "build_style_prompt",
    "closest_aspect_ratio",
]
