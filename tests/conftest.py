from pathlib import Path

import pytest

from image_helpers import ASSET_COLOR, BACKGROUND_COLOR, transparent_layer, write_image
from storycomposer.media.composer import StoryComposer
from storycomposer.shared.config import CompositionConfig


@pytest.fixture
def fixtures_dir(tmp_path: Path) -> Path:
    d = tmp_path / "fixtures"
    d.mkdir()
    return d


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    d = tmp_path / "output"
    d.mkdir()
    return d


@pytest.fixture
def background(fixtures_dir: Path) -> Path:
    return write_image(fixtures_dir / "background-1080x1920.png", (1080, 1920), BACKGROUND_COLOR)


@pytest.fixture
def landscape_asset(fixtures_dir: Path) -> Path:
    return write_image(fixtures_dir / "asset-landscape.png", (1200, 800), ASSET_COLOR + (255,), mode="RGBA")


@pytest.fixture
def config() -> CompositionConfig:
    return CompositionConfig(default_caption="Fallback caption text")


@pytest.fixture
def composer(config: CompositionConfig) -> StoryComposer:
    return StoryComposer(config, rasterize=transparent_layer)
