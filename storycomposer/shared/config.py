"""
Composition settings passed explicitly into the composer.
"""
import os
from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storycomposer.media.geometry import CAPTION_TIER_POSITIONS
from storycomposer.specs.common.errors import ConfigurationError, PathOutsideRootError


DEFAULT_CAPTION_TEXT = "Get this exclusive premium asset for free (today only!) - link in bio"

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_FONT_PATH = _PACKAGE_ROOT / "assets" / "fonts" / "DMSans-Variable.woff2"


class CompositionConfig(BaseModel):
    """Settings for a ``StoryComposer`` instance.

    Built once by the caller (``from_env`` for the process defaults) and never
    read from the environment again while composing.
    """

    model_config = ConfigDict(frozen=True)

    default_caption: str = Field(DEFAULT_CAPTION_TEXT, min_length=1)
    font_path: Path = DEFAULT_FONT_PATH
    font_family: str = "DM Sans"
    font_size: int = Field(42, gt=0)
    font_weight: str = "700"
    text_color: str = "#FFFFFF"
    caption_x: int = 540
    caption_max_width: int = Field(900, gt=0)
    glyph_width_factor: float = Field(0.52, gt=0)
    tier_positions: Tuple[int, int, int] = CAPTION_TIER_POSITIONS
    temp_suffix: str = Field(".base.tmp", min_length=1)
    batch_concurrency: int = Field(5, ge=1)
    media_root: Optional[Path] = None

    @classmethod
    def from_env(cls, **overrides) -> "CompositionConfig":
        values = {}
        caption = os.getenv("DEFAULT_TEXT_OVERLAY_CONTENT")
        if caption:
            values["default_caption"] = caption
        font_path = os.getenv("CAPTION_FONT_PATH")
        if font_path:
            values["font_path"] = Path(font_path)
        media_root = os.getenv("COMPOSE_MEDIA_ROOT")
        if media_root:
            values["media_root"] = Path(media_root)
        concurrency = os.getenv("COMPOSE_BATCH_CONCURRENCY")
        if concurrency:
            values["batch_concurrency"] = concurrency
        values.update(overrides)
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ConfigurationError(
                "Invalid composition configuration",
                details={"errors": [e["msg"] for e in exc.errors()]},
            ) from exc

    def tier_y(self, tier: int) -> int:
        if tier not in (1, 2, 3):
            raise ValueError(f"Unknown caption tier: {tier}")
        return self.tier_positions[tier - 1]

    def font_url(self) -> str:
        return self.font_path.resolve().as_uri()

    def confine(self, field: str, path: Path) -> Path:
        """Resolve ``path`` against ``media_root`` and refuse anything outside it.

        Relative paths are taken relative to the root. Symlinks are resolved
        before the check.
        """
        if self.media_root is None:
            raise ConfigurationError("COMPOSE_MEDIA_ROOT is not configured")
        root = self.media_root.resolve()
        resolved = (root / path).resolve()
        if not resolved.is_relative_to(root):
            raise PathOutsideRootError(field, str(path))
        return resolved
