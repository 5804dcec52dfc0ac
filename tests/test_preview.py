from datetime import datetime, timedelta, timezone
from pathlib import Path

from PIL import Image

from storycomposer.media.preview import (
    generate_preview,
    get_preview_path,
    get_preview_url,
    is_preview_stale,
)
from storycomposer.shared.config import CompositionConfig
from storycomposer.specs.functions.compose_story_spec import CompositionResult, TextOverlayAnalytics


def test_preview_paths():
    assert get_preview_path("/srv/uploads", "asset-1", 3) == Path("/srv/uploads/asset-1/preview-v3.png")
    assert get_preview_url("asset-1", 3) == "/uploads/asset-1/preview-v3.png"


def test_preview_staleness():
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert is_preview_stale(created, None) is True
    assert is_preview_stale(created, created - timedelta(seconds=1)) is True
    assert is_preview_stale(created, created + timedelta(minutes=5)) is False
    assert is_preview_stale(created, "2024-05-01T13:00:00+00:00") is False


def test_preview_staleness_mixes_naive_and_aware_times():
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert is_preview_stale(created, "2024-05-01T13:00:00") is False
    assert is_preview_stale(created, datetime(2024, 5, 1, 11, 0)) is True
    assert is_preview_stale(datetime(2024, 5, 1, 12, 0), created + timedelta(hours=1)) is False


def test_preview_staleness_accepts_zulu_strings():
    assert is_preview_stale("2024-05-01T12:00:00.000Z", "2024-05-01T13:00:00.000Z") is False
    assert is_preview_stale("2024-05-01T12:00:00.000Z", "2024-05-01T11:59:59.999Z") is True
    assert is_preview_stale(datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc), "2024-05-01T12:30:00z") is False


def test_generate_preview_writes_uncaptioned_story(composer, background, landscape_asset, tmp_path):
    uploads = tmp_path / "uploads"
    result = generate_preview(composer, background, landscape_asset, uploads, "asset-1", 2)
    assert result.success is True
    assert result.preview_url == "/uploads/asset-1/preview-v2.png"
    assert result.generation_time_ms >= 0
    with Image.open(uploads / "asset-1" / "preview-v2.png") as img:
        assert img.size == (1080, 1920)


class FailingComposer:
    config = CompositionConfig()

    def __init__(self) -> None:
        self.calls = 0

    def compose(self, request):
        self.calls += 1
        assert request.include_caption is False
        return CompositionResult(
            success=False,
            output_path=request.output_path,
            analytics=TextOverlayAnalytics(enabled=False, failed=True, error="disk full"),
        )


def test_generate_preview_retries_once_then_reports(tmp_path):
    composer = FailingComposer()
    result = generate_preview(composer, tmp_path / "bg.png", tmp_path / "a.png", tmp_path, "asset-1", 1)
    assert result.success is False
    assert result.error == "disk full"
    assert composer.calls == 2


def test_generate_preview_never_raises_on_validation_errors(composer, tmp_path):
    result = generate_preview(composer, tmp_path / "missing.png", tmp_path / "a.png", tmp_path, "asset-1", 1)
    assert result.success is False
    assert "Background file not found" in result.error
