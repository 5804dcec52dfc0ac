"""
Asset edge detection

Finds where the foreground asset visually ends inside the content rectangle of
an already composed canvas, and maps that edge to one of the caption tiers.

This is a row-scan heuristic, not segmentation: a row counts as "asset" when the
five sampled pixels disagree with each other or with the background colour
taken from the region's corners. Any detector honouring
``detect_asset_bottom_edge(canvas) -> int`` can replace it.
"""
from __future__ import annotations

from typing import NamedTuple, Sequence, Union

import numpy as np
from PIL import Image

from storycomposer.media.geometry import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CAPTION_TIER_POSITIONS,
    CONTENT_RECT,
)
from storycomposer.shared.logging_utils import warning as log_warning

VARIANCE_THRESHOLD = 100
BACKGROUND_DIFF_THRESHOLD = 30
CORNER_INSET = 10
SAMPLE_FRACTIONS = (0.2, 0.35, 0.5, 0.65, 0.8)

TIER_1_MAX_EDGE = 900
TIER_2_MAX_EDGE = 1100


class CaptionTier(NamedTuple):
    tier: int
    y: int


def color_variance(colors) -> Union[float, np.ndarray]:
    """Mean over samples of the summed squared channel deviation from the mean colour.

    ``colors`` is ``(..., N, 3)``; leading axes are kept, so a whole
    ``H x N x 3`` block of row samples yields one variance per row.
    """
    samples = np.asarray(colors, dtype=np.float64)
    deviation = samples - samples.mean(axis=-2, keepdims=True)
    variance = (deviation ** 2).sum(axis=(-2, -1)) / samples.shape[-2]
    return float(variance) if variance.ndim == 0 else variance


def _scan_rows(pixels: np.ndarray) -> int:
    """Return the lowest asset row index in ``pixels`` (H x W x 3), or -1."""
    height, width = pixels.shape[:2]
    corners = pixels[
        [CORNER_INSET, CORNER_INSET, height - CORNER_INSET, height - CORNER_INSET],
        [CORNER_INSET, width - CORNER_INSET, CORNER_INSET, width - CORNER_INSET],
    ]
    reference = corners.mean(axis=0)

    xs = [int(width * f) for f in SAMPLE_FRACTIONS]
    samples = pixels[:, xs, :]  # H x 5 x 3

    variance = color_variance(samples)
    differs = (np.abs(samples - reference).sum(axis=2) > BACKGROUND_DIFF_THRESHOLD).any(axis=1)

    hits = np.flatnonzero((variance > VARIANCE_THRESHOLD) | differs)
    return int(hits[-1]) if hits.size else -1


def detect_asset_bottom_edge(canvas: Image.Image) -> int:
    """Absolute canvas Y of the asset's lower edge, or 0 when nothing is detected."""
    try:
        if canvas.size != (CANVAS_WIDTH, CANVAS_HEIGHT):
            raise ValueError(f"Expected a {CANVAS_WIDTH}x{CANVAS_HEIGHT} canvas, got {canvas.size[0]}x{canvas.size[1]}")
        region = canvas.convert("RGB").crop(CONTENT_RECT.box)
        pixels = np.asarray(region, dtype=np.float64)
        row = _scan_rows(pixels)
    except Exception as exc:
        log_warning(None, "edge:detect_failed", error=str(exc))
        return 0
    if row < 0:
        return 0
    return CONTENT_RECT.y + row


def calculate_text_tier(asset_bottom_y: int, positions: Sequence[int] = CAPTION_TIER_POSITIONS) -> CaptionTier:
    """Pick the caption tier that keeps the caption below the detected asset edge."""
    if asset_bottom_y == 0 or asset_bottom_y < TIER_1_MAX_EDGE:
        tier = 1
    elif asset_bottom_y <= TIER_2_MAX_EDGE:
        tier = 2
    else:
        tier = 3
    return CaptionTier(tier, positions[tier - 1])
