"""Bounded fan-out of compositions for bulk approval and preview jobs."""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from storycomposer.media.composer import StoryComposer
from storycomposer.shared.logging_utils import info as log_info
from storycomposer.specs.common.errors import CompositionValidationError
from storycomposer.specs.functions.compose_story_spec import CompositionRequest, CompositionResult


class BatchItemResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: CompositionRequest
    success: bool
    result: Optional[CompositionResult] = None
    error: Optional[str] = None


def _chunks(items: Sequence[CompositionRequest], size: int) -> List[Sequence[CompositionRequest]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


async def _compose_one(composer: StoryComposer, request: CompositionRequest) -> BatchItemResult:
    try:
        result = await asyncio.to_thread(composer.compose, request)
    except CompositionValidationError as exc:
        return BatchItemResult(request=request, success=False, error=str(exc))
    return BatchItemResult(request=request, success=result.success, result=result, error=result.analytics.error)


async def compose_batch(
    composer: StoryComposer,
    requests: Sequence[CompositionRequest],
    concurrency: Optional[int] = None,
) -> List[BatchItemResult]:
    """Compose ``requests`` in waves of at most ``concurrency`` parallel calls.

    Each wave is awaited before the next one starts. Results keep request order.
    """
    size = concurrency if concurrency is not None else composer.config.batch_concurrency
    if size < 1:
        raise ValueError("concurrency must be >= 1")
    outputs = [Path(r.output_path).resolve() for r in requests]
    if len(set(outputs)) != len(outputs):
        raise ValueError("Batch requests must have distinct output paths")

    results: List[BatchItemResult] = []
    waves = _chunks(list(requests), size)
    for index, wave in enumerate(waves, start=1):
        log_info(None, "batch:wave", wave=index, waves=len(waves), size=len(wave))
        results.extend(await asyncio.gather(*(_compose_one(composer, r) for r in wave)))
    return results
