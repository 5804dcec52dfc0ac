from __future__ import annotations

from typing import Dict, Type

from pydantic import BaseModel

from ..functions.compose_story_spec import (
    CaptionSvgRequest,
    CompositionRequest,
    CompositionResult,
    ScaledPlacement,
    TextOverlayAnalytics,
)


# Registry mapping output schema filenames to models for generation
SCHEMA_MODELS: Dict[str, Type[BaseModel]] = {
    "composition.request.schema.json": CompositionRequest,
    "composition.result.schema.json": CompositionResult,
    "text_overlay.analytics.schema.json": TextOverlayAnalytics,
    "scaled.placement.schema.json": ScaledPlacement,
    "caption_svg.request.schema.json": CaptionSvgRequest,
}

__all__ = [
    "CaptionSvgRequest",
    "CompositionRequest",
    "CompositionResult",
    "ScaledPlacement",
    "TextOverlayAnalytics",
    "SCHEMA_MODELS",
]
