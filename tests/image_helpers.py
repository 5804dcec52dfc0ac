from pathlib import Path
from typing import Tuple

from PIL import Image, ImageChops

BACKGROUND_COLOR = (100, 150, 200)
ASSET_COLOR = (255, 200, 100)


def write_image(path: Path, size: Tuple[int, int], color, mode: str = "RGB") -> Path:
    Image.new(mode, size, color).save(path)
    return path


def same_pixels(a: Path, b: Path) -> bool:
    with Image.open(a) as img_a, Image.open(b) as img_b:
        return ImageChops.difference(img_a.convert("RGB"), img_b.convert("RGB")).getbbox() is None


def cairo_available() -> bool:
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError):
        return False
    return True


def transparent_layer(svg: str, size: Tuple[int, int]) -> Image.Image:
    return Image.new("RGBA", size, (0, 0, 0, 0))


def close_to(pixel, expected, tolerance: int = 2) -> bool:
    return all(abs(a - b) <= tolerance for a, b in zip(pixel, expected))
