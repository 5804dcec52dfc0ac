"""
Brightness sampling and adaptive shadow selection

Samples the composed canvas under the caption area so the caption gets a dark
shadow on light backgrounds and a light shadow on dark ones.
"""
from __future__ import annotations

from typing import List, NamedTuple

from PIL import Image

from storycomposer.media.geometry import Rect
from storycomposer.shared.logging_utils import warning as log_warning
from storycomposer.specs.common.enums import ShadowType

NEUTRAL_BRIGHTNESS = 128
BRIGHTNESS_MIDPOINT = 127.5
GRID_FRACTIONS = (0.167, 0.5, 0.833)

SHADOW_COLORS = {
    ShadowType.DARK: "rgba(0,0,0,0.8)",
    ShadowType.LIGHT: "rgba(255,255,255,0.8)",
}


class BrightnessSample(NamedTuple):
    average: float
    samples: List[int]


class AdaptiveShadow(NamedTuple):
    shadow_type: ShadowType
    shadow_color: str
    average: float
    samples: List[int]


def perceived_brightness(r: int, g: int, b: int) -> int:
    # ITU-R BT.601 luma
    return round(0.299 * r + 0.587 * g + 0.114 * b)


def neutral_sample() -> BrightnessSample:
    return BrightnessSample(NEUTRAL_BRIGHTNESS, [NEUTRAL_BRIGHTNESS] * 9)


def sample_brightness(canvas: Image.Image, region: Rect) -> BrightnessSample:
    """Sample a 3x3 grid inside ``region``; neutral 128s on any failure."""
    try:
        if region.width <= 0 or region.height <= 0:
            raise ValueError(f"Empty sampling region {region}")
        if region.x < 0 or region.y < 0 or region.right > canvas.width or region.bottom > canvas.height:
            raise ValueError(f"Sampling region {region} lies outside the {canvas.width}x{canvas.height} canvas")
        area = canvas.convert("RGB").crop(region.box)
        samples = []
        for fy in GRID_FRACTIONS:
            for fx in GRID_FRACTIONS:
                r, g, b = area.getpixel((int(region.width * fx), int(region.height * fy)))
                samples.append(perceived_brightness(r, g, b))
    except Exception as exc:
        log_warning(None, "brightness:sample_failed", error=str(exc), region=list(region))
        return neutral_sample()
    return BrightnessSample(round(sum(samples) / len(samples)), samples)


def select_shadow(average_brightness: float) -> ShadowType:
    return ShadowType.DARK if average_brightness > BRIGHTNESS_MIDPOINT else ShadowType.LIGHT


def shadow_color(shadow_type: ShadowType) -> str:
    return SHADOW_COLORS[shadow_type]


def determine_adaptive_shadow(canvas: Image.Image, region: Rect) -> AdaptiveShadow:
    sample = sample_brightness(canvas, region)
    shadow = select_shadow(sample.average)
    return AdaptiveShadow(shadow, shadow_color(shadow), sample.average, sample.samples)
