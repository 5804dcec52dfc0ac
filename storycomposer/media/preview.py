"""
Lightweight previews: the story composite without a caption.
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel

from storycomposer.media.compositor import PathLike
from storycomposer.media.composer import StoryComposer
from storycomposer.shared.logging_utils import warning as log_warning
from storycomposer.shared.retry_utils import retry_with_backoff
from storycomposer.specs.common.errors import StoryComposerError
from storycomposer.specs.functions.compose_story_spec import CompositionRequest, CompositionResult

PREVIEW_ATTEMPTS = 2


class PreviewResult(BaseModel):
    success: bool
    preview_url: Optional[str] = None
    generated_at: Optional[datetime] = None
    generation_time_ms: Optional[float] = None
    error: Optional[str] = None


def get_preview_path(uploads_dir: PathLike, asset_id: str, version: int) -> Path:
    return Path(uploads_dir) / asset_id / f"preview-v{version}.png"


def get_preview_url(asset_id: str, version: int) -> str:
    return f"/uploads/{asset_id}/preview-v{version}.png"


def _as_utc(value: Union[datetime, str]) -> datetime:
    """Parse ISO strings (including a trailing ``Z``); naive values are taken as UTC."""
    if isinstance(value, str):
        text = value.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def is_preview_stale(
    created_at: Union[datetime, str],
    preview_generated_at: Optional[Union[datetime, str]],
) -> bool:
    """A preview is stale when it was never generated or predates its version."""
    if not preview_generated_at:
        return True
    return _as_utc(preview_generated_at) < _as_utc(created_at)


def generate_preview(
    composer: StoryComposer,
    background_path: PathLike,
    asset_path: PathLike,
    uploads_dir: PathLike,
    asset_id: str,
    version: int,
    *,
    retry_delay: float = 0.0,
) -> PreviewResult:
    """Compose an uncaptioned preview, trying twice before reporting failure.

    Never raises; problems are returned in ``PreviewResult.error``.
    """
    start = time.perf_counter()
    preview_path = get_preview_path(uploads_dir, asset_id, version)

    def attempt() -> CompositionResult:
        result = composer.compose(
            CompositionRequest(
                background_path=background_path,
                asset_path=asset_path,
                output_path=preview_path,
                include_caption=False,
            )
        )
        if not result.success:
            raise StoryComposerError(result.analytics.error or "Composition failed", code="PREVIEW_FAILED")
        return result

    def on_error(attempt_no: int, exc: Exception) -> None:
        log_warning(None, "preview:attempt_failed", assetId=asset_id, version=version, attempt=attempt_no, error=str(exc))

    try:
        preview_path.parent.mkdir(parents=True, exist_ok=True)
        retry_with_backoff(attempt, attempts=PREVIEW_ATTEMPTS, delay=retry_delay, on_error=on_error)
    except Exception as exc:
        return PreviewResult(success=False, error=str(exc))

    return PreviewResult(
        success=True,
        preview_url=get_preview_url(asset_id, version),
        generated_at=datetime.now(timezone.utc),
        generation_time_ms=round((time.perf_counter() - start) * 1000, 2),
    )
