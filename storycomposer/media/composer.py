"""
Story composition orchestrator

Runs one composition end to end:

    validating -> compositing -> [captioning] -> finalizing

and ends in ``succeeded``, ``succeeded_with_fallback`` or ``failed``.

Validation problems (missing file, unsupported extension) are raised to the
caller. Every other processing failure comes back as ``success=False``. Caption
failures never fail the composition: the caption is retried once at fixed
defaults (tier 2, default text) and, if that also fails, the plain composite is
written instead.
"""
from __future__ import annotations

import shutil
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from PIL import Image

from storycomposer.media.brightness import determine_adaptive_shadow
from storycomposer.media.compositor import PathLike, compose_base, save_canvas, validate_inputs
from storycomposer.media.edge_detection import CaptionTier, calculate_text_tier, detect_asset_bottom_edge
from storycomposer.media.geometry import caption_region
from storycomposer.media.text_overlay import CaptionStyle, rasterize_caption, render_caption_svg
from storycomposer.shared.config import CompositionConfig
from storycomposer.shared.logging_utils import info as log_info
from storycomposer.shared.logging_utils import warning as log_warning
from storycomposer.specs.common.enums import CompositionState
from storycomposer.specs.common.errors import CompositionValidationError
from storycomposer.specs.functions.compose_story_spec import (
    CompositionRequest,
    CompositionResult,
    TextOverlayAnalytics,
)

Rasterizer = Callable[[str, Tuple[int, int]], Image.Image]

RETRY_TIER = 2


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)


class StoryComposer:
    def __init__(self, config: Optional[CompositionConfig] = None, *, rasterize: Rasterizer = rasterize_caption) -> None:
        self.config = config or CompositionConfig()
        self._rasterize = rasterize

    def temp_path_for(self, output_path: PathLike) -> Path:
        """Deterministic scratch path next to ``output_path``.

        Concurrent calls must use distinct output paths.
        """
        output = Path(output_path)
        return output.with_name(output.name + self.config.temp_suffix)

    def compose(self, request: CompositionRequest) -> CompositionResult:
        trace_id = uuid.uuid4().hex
        output = Path(request.output_path)
        temp = self.temp_path_for(output)
        start = time.perf_counter()
        self._enter(trace_id, CompositionState.VALIDATING, output=str(output))
        try:
            validate_inputs(request.background_path, request.asset_path)

            self._enter(trace_id, CompositionState.COMPOSITING)
            compose_base(request.background_path, request.asset_path, temp)

            if not request.include_caption:
                self._enter(trace_id, CompositionState.FINALIZING)
                shutil.copyfile(temp, output)
                self._enter(trace_id, CompositionState.SUCCEEDED)
                return CompositionResult(
                    success=True,
                    output_path=output,
                    analytics=TextOverlayAnalytics(enabled=False),
                )

            self._enter(trace_id, CompositionState.CAPTIONING)
            analytics = self._caption(trace_id, temp, output, request.caption_override)
            self._enter(trace_id, CompositionState.FINALIZING)
            final_state = (
                CompositionState.SUCCEEDED_WITH_FALLBACK
                if analytics.fallback_applied
                else CompositionState.SUCCEEDED
            )
            self._enter(trace_id, final_state, tier=analytics.position_tier_used, retries=analytics.retry_count)
            return CompositionResult(success=True, output_path=output, analytics=analytics)
        except CompositionValidationError as exc:
            self._enter(trace_id, CompositionState.FAILED, code=exc.code, error=str(exc))
            raise
        except Exception as exc:
            self._enter(trace_id, CompositionState.FAILED, error=str(exc))
            return CompositionResult(
                success=False,
                output_path=output,
                analytics=TextOverlayAnalytics(
                    enabled=request.include_caption,
                    failed=True,
                    error=str(exc),
                    render_time_ms=_elapsed_ms(start),
                ),
            )
        finally:
            self._cleanup(trace_id, temp)

    def _caption(self, trace_id: str, canvas_path: Path, output: Path, override: Optional[str]) -> TextOverlayAnalytics:
        start = time.perf_counter()
        text = override.strip() if override and override.strip() else self.config.default_caption

        attempt: Dict[str, Any] = {}
        try:
            self._render_caption(canvas_path, output, text, attempt)
            return self._analytics(attempt, start, retry_count=0)
        except Exception as exc:
            log_warning(trace_id, "caption:retry", error=str(exc), tier=attempt.get("position_tier_used"))

        attempt = {}
        try:
            self._render_caption(canvas_path, output, self.config.default_caption, attempt, fixed_tier=RETRY_TIER)
            return self._analytics(attempt, start, retry_count=1)
        except Exception as exc:
            log_warning(trace_id, "caption:fallback", error=str(exc))
            shutil.copyfile(canvas_path, output)
            attempt["lines_count"] = 0
            return self._analytics(
                attempt, start, retry_count=1, failed=True, fallback_applied=True, error=str(exc)
            )

    def _render_caption(
        self,
        canvas_path: Path,
        output: Path,
        text: str,
        attempt: Dict[str, Any],
        fixed_tier: Optional[int] = None,
    ) -> None:
        """Place, style and composite one caption; ``attempt`` collects analytics as steps finish."""
        cfg = self.config
        with Image.open(canvas_path) as img:
            canvas = img.convert("RGBA")

        if fixed_tier is None:
            tier = calculate_text_tier(detect_asset_bottom_edge(canvas), cfg.tier_positions)
        else:
            tier = CaptionTier(fixed_tier, cfg.tier_y(fixed_tier))
        attempt.update(position_tier_used=tier.tier, position_y=tier.y)

        region = caption_region(tier.y, cfg.font_size, cfg.caption_max_width, cfg.caption_x)
        shadow = determine_adaptive_shadow(canvas, region)
        attempt.update(
            shadow_type=shadow.shadow_type,
            avg_brightness=shadow.average,
            brightness_samples=shadow.samples,
        )

        markup = render_caption_svg(
            CaptionStyle(
                text=text,
                x=cfg.caption_x,
                y=tier.y,
                font_size=cfg.font_size,
                font_weight=cfg.font_weight,
                color=cfg.text_color,
                shadow_color=shadow.shadow_color,
                max_width=cfg.caption_max_width,
                font_family=cfg.font_family,
                font_url=cfg.font_url(),
                glyph_width_factor=cfg.glyph_width_factor,
            )
        )
        attempt["lines_count"] = len(markup.lines)

        layer = self._rasterize(markup.svg, canvas.size)
        canvas.alpha_composite(layer.convert("RGBA"))
        save_canvas(canvas.convert("RGB"), output)

    def _analytics(self, attempt: Dict[str, Any], start: float, *, retry_count: int, **flags: Any) -> TextOverlayAnalytics:
        applied_at = None if flags.get("fallback_applied") else datetime.now(timezone.utc)
        return TextOverlayAnalytics(
            enabled=True,
            render_time_ms=_elapsed_ms(start),
            retry_count=retry_count,
            applied_at=applied_at,
            **attempt,
            **flags,
        )

    def _enter(self, trace_id: str, state: CompositionState, **dimensions: Any) -> None:
        log_info(trace_id, "compose:state", state=state.value, **dimensions)

    def _cleanup(self, trace_id: str, temp: Path) -> None:
        try:
            temp.unlink(missing_ok=True)
        except OSError as exc:
            log_warning(trace_id, "cleanup:failed", path=str(temp), error=str(exc))


def compose_story(
    background_path: PathLike,
    asset_path: PathLike,
    output_path: PathLike,
    *,
    include_caption: bool = True,
    caption_override: Optional[str] = None,
    config: Optional[CompositionConfig] = None,
) -> CompositionResult:
    composer = StoryComposer(config)
    return composer.compose(
        CompositionRequest(
            background_path=background_path,
            asset_path=asset_path,
            output_path=output_path,
            include_caption=include_caption,
            caption_override=caption_override,
        )
    )
