"""
Caption layout and SVG rendering

Wraps caption text to at most three lines and renders it as a full-canvas SVG
layer (custom font, adaptive drop shadow, centered lines) that can be
rasterized and alpha-composited over the story.
"""
from __future__ import annotations

import io
import math
import re
from typing import List, NamedTuple, Tuple

from PIL import Image

from storycomposer.media.geometry import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CAPTION_LINE_HEIGHT,
    CAPTION_MAX_LINES,
)
from storycomposer.specs.common.errors import CaptionRenderError

SOFT_HYPHEN = "\u00ad"
DEFAULT_CHARS_PER_LINE = 28
DEFAULT_GLYPH_WIDTH_FACTOR = 0.52

_XML_ESCAPES = {"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&apos;"}


class CaptionStyle(NamedTuple):
    text: str
    x: int
    y: int
    font_size: int
    font_weight: str
    color: str
    shadow_color: str
    max_width: int = 900
    font_family: str = "DM Sans"
    font_url: str = ""
    glyph_width_factor: float = DEFAULT_GLYPH_WIDTH_FACTOR


class CaptionMarkup(NamedTuple):
    svg: str
    lines: List[str]


def escape_xml(text: str) -> str:
    return re.sub(r"[&<>\"']", lambda m: _XML_ESCAPES[m.group(0)], text)


def chars_per_line(max_width: int, font_size: int, glyph_width_factor: float = DEFAULT_GLYPH_WIDTH_FACTOR) -> int:
    return max(1, math.floor((max_width / font_size) / glyph_width_factor))


class _LineBuilder:
    """Accumulates wrapped lines and refuses to grow past the line cap."""

    def __init__(self, max_chars: int, max_lines: int) -> None:
        self.max_chars = max_chars
        self.max_lines = max_lines
        self.lines: List[str] = []
        self.current = ""

    @property
    def full(self) -> bool:
        return len(self.lines) >= self.max_lines

    def fits(self, piece: str) -> bool:
        candidate = f"{self.current} {piece}" if self.current else piece
        return len(candidate) <= self.max_chars

    def append(self, piece: str) -> None:
        self.current = f"{self.current} {piece}" if self.current else piece

    def break_line(self) -> None:
        if self.current:
            self.lines.append(self.current.strip())
            self.current = ""

    def add_hyphenated(self, word: str) -> None:
        segments = word.split(SOFT_HYPHEN)
        piece = ""
        for i, segment in enumerate(segments):
            suffix = "" if i == len(segments) - 1 else "-"
            if (not piece and not self.current) or self.fits(piece + segment + suffix):
                piece += segment + suffix
                continue
            # Break at the soft hyphen in front of this segment
            if piece:
                self.append(piece)
            self.break_line()
            if self.full:
                return
            piece = segment + suffix
        if not piece:
            return
        if self.fits(piece):
            self.append(piece)
        else:
            self.break_line()
            if not self.full:
                self.current = piece

    def add_word(self, word: str) -> None:
        if self.fits(word):
            self.append(word)
        elif len(word) > self.max_chars:
            self.break_line()
            for start in range(0, len(word), self.max_chars):
                if self.full:
                    return
                self.break_line()
                if self.full:
                    return
                self.current = word[start:start + self.max_chars]
        else:
            self.break_line()
            if not self.full:
                self.current = word

    def finish(self) -> List[str]:
        if not self.full:
            self.break_line()
        return self.lines[: self.max_lines]


def wrap_caption(text: str, max_chars: int = DEFAULT_CHARS_PER_LINE, max_lines: int = CAPTION_MAX_LINES) -> List[str]:
    """Greedy word wrap capped at ``max_lines``; words past the cap are dropped.

    Soft hyphens are preferred break points; every segment but the last keeps
    a visible ``-``. Words longer than ``max_chars`` are hard-split.
    """
    if not text or not text.strip():
        return [""]
    builder = _LineBuilder(max(1, max_chars), max_lines)
    for word in text.split():
        if builder.full:
            break
        if SOFT_HYPHEN in word:
            builder.add_hyphenated(word)
        else:
            builder.add_word(word)
    lines = builder.finish()
    return lines or [""]


def render_caption_svg(style: CaptionStyle) -> CaptionMarkup:
    max_chars = chars_per_line(style.max_width, style.font_size, style.glyph_width_factor)
    lines = wrap_caption(style.text, max_chars)
    line_height = style.font_size * CAPTION_LINE_HEIGHT
    filter_id = "textShadow"

    font_face = ""
    if style.font_url:
        font_face = f"""
    <style type="text/css">
      @font-face {{
        font-family: '{escape_xml(style.font_family)}';
        src: url('{escape_xml(style.font_url)}') format('woff2-variations');
        font-weight: 100 1000;
      }}
    </style>"""

    tspans = "\n      ".join(
        f'<tspan x="{style.x}" dy="{0 if i == 0 else round(line_height, 2)}">{escape_xml(line)}</tspan>'
        for i, line in enumerate(lines)
    )

    svg = f"""<svg width="{CANVAS_WIDTH}" height="{CANVAS_HEIGHT}" xmlns="http://www.w3.org/2000/svg">
  <defs>{font_face}
    <filter id="{filter_id}">
      <feDropShadow dx="0" dy="2" stdDeviation="4" flood-color="{escape_xml(style.shadow_color)}"/>
    </filter>
  </defs>
  <text
    x="{style.x}"
    y="{style.y}"
    font-family="{escape_xml(style.font_family)}"
    font-size="{style.font_size}"
    font-weight="{escape_xml(style.font_weight)}"
    fill="{escape_xml(style.color)}"
    text-anchor="middle"
    letter-spacing="-0.02em"
    filter="url(#{filter_id})"
  >
      {tspans}
  </text>
</svg>"""
    return CaptionMarkup(svg, lines)


def rasterize_caption(svg: str, size: Tuple[int, int] = (CANVAS_WIDTH, CANVAS_HEIGHT)) -> Image.Image:
    """Render caption markup to an RGBA layer of ``size``."""
    try:
        # loads the native cairo library
        import cairosvg  # type: ignore

        png_bytes = cairosvg.svg2png(
            bytestring=svg.encode("utf-8"),
            output_width=size[0],
            output_height=size[1],
            unsafe=True,
        )
        layer = Image.open(io.BytesIO(png_bytes)).convert("RGBA")
    except Exception as exc:
        raise CaptionRenderError(f"Caption rasterization failed: {exc}") from exc
    if layer.size != size:
        layer = layer.resize(size)
    return layer
