from __future__ import annotations

import pytest

from pictura_mcp.provider_spec import clamp_size, get_dimensions_for_ratio, nearest_ratio
from pictura_mcp.shard.constants import BASE_DIMENSIONS
from pictura_mcp.shard.enums import AspectRatio, ImageSize

MULTIPLIERS = {ImageSize.ONE_K: 0.5, ImageSize.TWO_K: 1, ImageSize.FOUR_K: 2}


@pytest.mark.parametrize("ratio", list(AspectRatio))
@pytest.mark.parametrize("size", list(ImageSize))
def test_dimensions_follow_base_table(ratio, size):
    base_w, base_h = BASE_DIMENSIONS[ratio]
    m = MULTIPLIERS[size]

    width, height = get_dimensions_for_ratio(ratio, size)

    assert (width, height) == (int(base_w * m + 0.5), int(base_h * m + 0.5))


def test_known_dimensions():
    assert get_dimensions_for_ratio("16:9", "2K") == (2048, 1152)
    assert get_dimensions_for_ratio("16:9", "4K") == (4096, 2304)
    assert get_dimensions_for_ratio("16:9", "1K") == (1024, 576)
    # 877.5 rounds up, not to even
    assert get_dimensions_for_ratio("3:2", "1K") == (1024, 683)
    assert get_dimensions_for_ratio("21:9", "1K") == (1024, 439)


def test_default_size_is_2k():
    assert get_dimensions_for_ratio(AspectRatio.ONE_ONE) == (2048, 2048)


def test_unknown_ratio_rejected():
    with pytest.raises(ValueError):
        get_dimensions_for_ratio("7:3", "2K")


def test_clamp_size():
    assert clamp_size("4K", "1K") == ImageSize.ONE_K
    assert clamp_size("2K", "4K") == ImageSize.TWO_K
    assert clamp_size(ImageSize.FOUR_K, ImageSize.FOUR_K) == ImageSize.FOUR_K


def test_nearest_ratio():
    assert nearest_ratio(3840, 2160) == AspectRatio.SIXTEEN_NINE
    assert nearest_ratio(1000, 1000) == AspectRatio.ONE_ONE
    assert nearest_ratio(1080, 1920) == AspectRatio.NINE_SIXTEEN
    assert nearest_ratio(0, 0) == AspectRatio.ONE_ONE


def test_aspect_ratio_from_str():
    assert AspectRatio.from_str("4:5") == AspectRatio.FOUR_FIVE
    assert AspectRatio.from_str(" 1:1 ") == AspectRatio.ONE_ONE
    assert AspectRatio.from_str("7:3") is None
    assert AspectRatio.from_str(None) is None
