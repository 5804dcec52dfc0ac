"""Story canvas layout: canvas size, UI exclusion bands and the content rectangle."""
from __future__ import annotations

import math
from typing import NamedTuple


CANVAS_WIDTH = 1080
CANVAS_HEIGHT = 1920

# Bands covered by the platform UI (profile header, reply bar)
TOP_BAND_HEIGHT = 250
BOTTOM_BAND_HEIGHT = 180

CONTENT_SCALE = 0.70

CAPTION_MAX_LINES = 3
# First-line baseline Y for caption tiers 1, 2, 3
CAPTION_TIER_POSITIONS = (1560, 1520, 1480)
CAPTION_LINE_HEIGHT = 1.3


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def box(self) -> tuple[int, int, int, int]:
        """(left, upper, right, lower) as expected by ``Image.crop``."""
        return (self.x, self.y, self.right, self.bottom)

    def contains(self, other: "Rect") -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.right <= self.right
            and other.bottom <= self.bottom
        )


def centered_rect(width: int, height: int, within: Rect) -> Rect:
    return Rect(
        within.x + round((within.width - width) / 2),
        within.y + round((within.height - height) / 2),
        width,
        height,
    )


CANVAS_RECT = Rect(0, 0, CANVAS_WIDTH, CANVAS_HEIGHT)
TOP_BAND = Rect(0, 0, CANVAS_WIDTH, TOP_BAND_HEIGHT)
BOTTOM_BAND = Rect(0, CANVAS_HEIGHT - BOTTOM_BAND_HEIGHT, CANVAS_WIDTH, BOTTOM_BAND_HEIGHT)
# 756x1344 at (162, 288)
CONTENT_RECT = centered_rect(
    round(CANVAS_WIDTH * CONTENT_SCALE), round(CANVAS_HEIGHT * CONTENT_SCALE), CANVAS_RECT
)


def caption_region(y: int, font_size: int, max_width: int, center_x: int = CANVAS_WIDTH // 2) -> Rect:
    """Bounding box of a caption whose first baseline sits at ``y``.

    Covers the full three-line block and is clamped to the canvas.
    """
    left = max(0, center_x - max_width // 2)
    right = min(CANVAS_WIDTH, center_x + max_width // 2)
    top = max(0, y - font_size)
    bottom = min(CANVAS_HEIGHT, top + math.ceil(font_size * CAPTION_LINE_HEIGHT * CAPTION_MAX_LINES))
    return Rect(left, top, right - left, bottom - top)
