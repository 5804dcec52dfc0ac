"""Flatten a background and a fitted foreground asset onto the story canvas."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, ImageOps

from storycomposer.media.geometry import CANVAS_HEIGHT, CANVAS_WIDTH, CONTENT_RECT
from storycomposer.media.scaler import fit_within
from storycomposer.specs.common.errors import (
    AssetNotFoundError,
    CompositingError,
    UnsupportedFormatError,
)
from storycomposer.specs.functions.compose_story_spec import ScaledPlacement

PathLike = Union[str, os.PathLike]

SUPPORTED_EXTENSIONS: Tuple[str, ...] = (".png", ".jpg", ".jpeg")
OUTPUT_FORMAT = "PNG"


def validate_inputs(background_path: PathLike, asset_path: PathLike) -> None:
    """Reject missing files first, then extensions outside the allow-list.

    Only the extension is checked; file content is not sniffed.
    """
    for role, path in (("background", background_path), ("asset", asset_path)):
        if not Path(path).is_file():
            raise AssetNotFoundError(role, str(path))
    for role, path in (("background", background_path), ("asset", asset_path)):
        ext = Path(path).suffix.lower()
        if ext not in SUPPORTED_EXTENSIONS:
            raise UnsupportedFormatError(role, ext, SUPPORTED_EXTENSIONS)


def cover_fit(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Fill ``size`` completely, cropping overflow around the center."""
    return ImageOps.fit(image, size, method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))


def contain_fit(image: Image.Image, size: Tuple[int, int]) -> Image.Image:
    """Fit inside ``size`` without distortion, padding with transparency."""
    image = image.convert("RGBA")
    fitted = ImageOps.contain(image, size, method=Image.Resampling.LANCZOS)
    if fitted.size == size:
        return fitted
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(fitted, ((size[0] - fitted.width) // 2, (size[1] - fitted.height) // 2))
    return canvas


def save_canvas(image: Image.Image, output_path: PathLike) -> None:
    # Always PNG, whatever the extension says
    image.save(output_path, format=OUTPUT_FORMAT, compress_level=9)


def compose_base(background_path: PathLike, asset_path: PathLike, output_path: PathLike) -> ScaledPlacement:
    """Write the uncaptioned composite to ``output_path`` and return the asset placement.

    Raises the validation errors from ``validate_inputs`` unchanged; any other
    failure is wrapped in ``CompositingError``.
    """
    validate_inputs(background_path, asset_path)
    try:
        with Image.open(background_path) as bg:
            background = cover_fit(bg.convert("RGBA"), (CANVAS_WIDTH, CANVAS_HEIGHT))
        with Image.open(asset_path) as src:
            placement = fit_within(src.width, src.height, CONTENT_RECT)
            asset = contain_fit(src, (placement.width, placement.height))
        background.alpha_composite(asset, dest=(placement.x, placement.y))
        save_canvas(background.convert("RGB"), output_path)
    except Exception as exc:
        raise CompositingError(str(exc), details={"output_path": str(output_path)}) from exc
    return placement
