import itertools

import pytest

from storycomposer.media.geometry import CONTENT_RECT, Rect
from storycomposer.media.scaler import fit_within


def test_landscape_fits_by_width():
    placement = fit_within(1200, 800)
    assert (placement.width, placement.height) == (756, 504)
    assert (placement.x, placement.y) == (162, 708)
    assert placement.scale_factor == pytest.approx(0.63)
    assert placement.source_aspect_ratio == pytest.approx(1.5)


def test_portrait_narrower_than_zone_fits_by_height():
    placement = fit_within(600, 1200)
    assert (placement.width, placement.height) == (672, 1344)
    assert (placement.x, placement.y) == (204, 288)


def test_portrait_wider_than_zone_ratio_fits_by_width():
    # 0.6 is wider than the 756/1344 zone ratio
    placement = fit_within(600, 1000)
    assert (placement.width, placement.height) == (756, 1260)
    assert (placement.x, placement.y) == (162, 330)


def test_square_asset():
    placement = fit_within(700, 700)
    assert (placement.width, placement.height) == (756, 756)
    assert placement.y == 288 + (1344 - 756) // 2


def test_custom_target_rect():
    placement = fit_within(100, 100, Rect(10, 20, 50, 200))
    assert (placement.width, placement.height) == (50, 50)
    assert (placement.x, placement.y) == (10, 95)


@pytest.mark.parametrize("width,height", [(0, 100), (100, 0), (-5, 10)])
def test_rejects_non_positive_dimensions(width, height):
    with pytest.raises(ValueError):
        fit_within(width, height)


@pytest.mark.parametrize(
    "width,height",
    list(itertools.product([1, 3, 97, 756, 1080, 4000, 20000], [1, 7, 640, 1344, 1920, 9000, 30000])),
)
def test_placement_is_contained_and_keeps_aspect(width, height):
    placement = fit_within(width, height)
    placed = Rect(placement.x, placement.y, placement.width, placement.height)
    assert CONTENT_RECT.contains(placed)
    ratio = width / height
    # Within one pixel of the exact aspect on the derived dimension
    if placement.width == CONTENT_RECT.width:
        assert abs(placement.height - placement.width / ratio) <= 1 or placement.height == 1
    else:
        assert abs(placement.width - placement.height * ratio) <= 1 or placement.width == 1
