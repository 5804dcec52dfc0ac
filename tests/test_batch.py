import asyncio
import threading
import time
from pathlib import Path

import pytest

from storycomposer.media.batch import compose_batch
from storycomposer.shared.config import CompositionConfig
from storycomposer.specs.functions.compose_story_spec import (
    CompositionRequest,
    CompositionResult,
    TextOverlayAnalytics,
)


class SlowComposer:
    def __init__(self, concurrency: int = 5) -> None:
        self.config = CompositionConfig(batch_concurrency=concurrency)
        self.events = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def compose(self, request: CompositionRequest) -> CompositionResult:
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.events.append(("start", request.output_path.name))
        time.sleep(0.02)
        with self._lock:
            self.active -= 1
            self.events.append(("end", request.output_path.name))
        return CompositionResult(
            success=True,
            output_path=request.output_path,
            analytics=TextOverlayAnalytics(enabled=False),
        )


def _requests(count: int, root: Path = Path("/tmp/batch")):
    return [
        CompositionRequest(
            background_path=root / "bg.png",
            asset_path=root / "asset.png",
            output_path=root / f"out-{i}.png",
            include_caption=False,
        )
        for i in range(count)
    ]


def test_waves_are_bounded_and_sequential():
    composer = SlowComposer()
    results = asyncio.run(compose_batch(composer, _requests(5), concurrency=2))

    assert [r.request.output_path.name for r in results] == [f"out-{i}.png" for i in range(5)]
    assert all(r.success for r in results)
    assert composer.max_active <= 2
    events = composer.events
    # third request starts only after the whole first wave finished
    assert events.index(("start", "out-2.png")) > events.index(("end", "out-0.png"))
    assert events.index(("start", "out-2.png")) > events.index(("end", "out-1.png"))
    assert events.index(("start", "out-4.png")) > events.index(("end", "out-3.png"))


def test_default_concurrency_comes_from_config():
    composer = SlowComposer(concurrency=3)
    asyncio.run(compose_batch(composer, _requests(7)))
    assert composer.max_active <= 3


def test_rejects_invalid_concurrency():
    with pytest.raises(ValueError):
        asyncio.run(compose_batch(SlowComposer(), _requests(1), concurrency=0))


def test_rejects_duplicate_output_paths():
    requests = _requests(2)
    requests.append(requests[0])
    with pytest.raises(ValueError, match="distinct output paths"):
        asyncio.run(compose_batch(SlowComposer(), requests))


def test_empty_batch():
    assert asyncio.run(compose_batch(SlowComposer(), [])) == []


def test_validation_errors_are_reported_per_item(composer, background, landscape_asset, fixtures_dir, output_dir):
    requests = [
        CompositionRequest(background_path=background, asset_path=landscape_asset, output_path=output_dir / "ok.png", include_caption=False),
        CompositionRequest(background_path=background, asset_path=fixtures_dir / "missing.png", output_path=output_dir / "bad.png", include_caption=False),
    ]
    results = asyncio.run(compose_batch(composer, requests))
    assert results[0].success is True
    assert results[0].result.success is True
    assert results[1].success is False
    assert results[1].result is None
    assert "Asset file not found" in results[1].error
