"""Aspect-preserving fit of a foreground image into a target rectangle."""
from __future__ import annotations

from storycomposer.media.geometry import CONTENT_RECT, Rect
from storycomposer.specs.functions.compose_story_spec import ScaledPlacement


def fit_within(source_width: int, source_height: int, target: Rect = CONTENT_RECT) -> ScaledPlacement:
    """Scale ``source_width`` x ``source_height`` to fit ``target`` and center it.

    The result never exceeds the target on either axis and keeps the source
    aspect ratio to within rounding.
    """
    if source_width <= 0 or source_height <= 0:
        raise ValueError(f"Source dimensions must be positive, got {source_width}x{source_height}")
    if target.width <= 0 or target.height <= 0:
        raise ValueError(f"Target dimensions must be positive, got {target.width}x{target.height}")

    source_ratio = source_width / source_height
    target_ratio = target.width / target.height

    if source_ratio > target_ratio:
        width = target.width
        height = round(width / source_ratio)
    else:
        height = target.height
        width = round(height * source_ratio)
        # Rounding at extreme ratios can still overflow the width
        if width > target.width:
            width = target.width
            height = round(width / source_ratio)

    width = max(1, min(width, target.width))
    height = max(1, min(height, target.height))

    return ScaledPlacement(
        width=width,
        height=height,
        x=target.x + round((target.width - width) / 2),
        y=target.y + round((target.height - height) / 2),
        scale_factor=width / source_width,
        source_aspect_ratio=source_ratio,
    )
