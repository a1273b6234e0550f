import math

import pytest
from PIL import Image, ImageChops

from tilemark.pattern import (
    density_multiplier,
    effective_spacing,
    generate_overlay,
    layout_tiles,
    render_overlay,
    tile_diagonal,
)
from tilemark.settings import WatermarkSettings


def small_settings(**overrides):
    values = dict(text="SAMPLE", font_size=20, color=(255, 0, 0), rotation=0,
                  h_spacing=300, v_spacing=300, opacity=100, density=5)
    values.update(overrides)
    return WatermarkSettings(**values)


def test_density_multiplier_range():
    assert density_multiplier(1) == pytest.approx(2.0)
    assert density_multiplier(10) == pytest.approx(0.2)
    assert density_multiplier(0) == density_multiplier(1)
    assert density_multiplier(99) == density_multiplier(10)


def test_effective_spacing_for_working_resolution():
    # 3072x2048: base scale 2.048, density 5 -> multiplier 1.2
    assert effective_spacing(300, 3072, 2048, 5) == 737
    assert effective_spacing(300, 1000, 1000, 10) == 60


def test_spacing_shrinks_as_density_grows():
    steps = [effective_spacing(300, 2048, 3072, density) for density in range(1, 11)]
    assert all(a > b for a, b in zip(steps, steps[1:]))


def test_spacing_never_below_one_pixel():
    assert effective_spacing(1, 10, 10, 10) == 1


def test_layout_grid_is_row_major_and_covers_rotation_box():
    layout = layout_tiles(300, 200, small_settings())
    diagonal = tile_diagonal(300, 200)
    assert diagonal == math.ceil(math.sqrt(300 ** 2 + 200 ** 2))
    points = list(layout.placements())
    assert len(points) == layout.count
    assert points[0] == (-diagonal, -diagonal)
    assert points[1] == (-diagonal + layout.h_step, -diagonal)
    assert points[len(layout.xs)] == (-diagonal, -diagonal + layout.v_step)
    assert max(x for x, _ in points) < 2 * diagonal
    assert max(y for _, y in points) < 2 * diagonal


def test_placements_within_keeps_order_and_bounds():
    layout = layout_tiles(300, 200, small_settings())
    inside = list(layout.placements_within(0, 0, 300, 200))
    expected = [(x, y) for x, y in layout.placements() if 0 <= x <= 300 and 0 <= y <= 200]
    assert inside == expected


def test_rotation_transform_round_trip():
    layout = layout_tiles(300, 200, small_settings(rotation=30))
    flat = layout_tiles(300, 200, small_settings(rotation=0))
    for x, y in list(layout.placements())[:50]:
        cx, cy = layout.to_canvas(x, y)
        bx, by = layout.from_canvas(cx, cy)
        assert bx == pytest.approx(x)
        assert by == pytest.approx(y)
        assert flat.to_canvas(x, y) == pytest.approx((x, y))


def test_rotation_turns_counter_clockwise_on_screen():
    layout = layout_tiles(200, 200, small_settings(rotation=90))
    # A point to the right of the centre ends up above it (y grows downwards).
    x, y = layout.to_canvas(150, 100)
    assert x == pytest.approx(100)
    assert y == pytest.approx(50)


def test_overlay_is_deterministic():
    settings = small_settings(rotation=30, opacity=50)
    first = generate_overlay(300, 200, settings)
    second = generate_overlay(300, 200, settings)
    assert first.size == (300, 200)
    assert first.mode == "RGBA"
    assert ImageChops.difference(first, second).getbbox() is None


def test_overlay_uses_colour_and_opacity():
    overlay = generate_overlay(300, 200, small_settings(opacity=50, density=5))
    alphas = overlay.getchannel("A")
    low, high = alphas.getextrema()
    assert low == 0
    assert 0 < high <= 128
    red, green, blue = (overlay.getchannel(c).getextrema() for c in "RGB")
    assert red == (255, 255)
    assert green == (0, 0)
    assert blue == (0, 0)


def test_overlay_empty_when_transparent_or_no_text():
    assert generate_overlay(120, 80, small_settings(opacity=0)).getchannel("A").getbbox() is None
    assert generate_overlay(120, 80, small_settings(text="")).getchannel("A").getbbox() is None


def test_half_turn_rotated_back_matches_unrotated():
    flat = generate_overlay(300, 200, small_settings(rotation=0, density=8))
    turned = generate_overlay(300, 200, small_settings(rotation=180, density=8))
    restored = turned.transpose(Image.Transpose.ROTATE_180)
    diff = ImageChops.difference(flat.getchannel("A"), restored.getchannel("A"))
    assert diff.getextrema()[1] <= 1


def test_rotated_overlay_covers_corners():
    layout = layout_tiles(300, 200, small_settings(rotation=45, density=10, font_size=30))
    overlay = render_overlay(layout)
    alpha = overlay.getchannel("A")
    quarters = [(0, 0, 150, 100), (150, 0, 300, 100), (0, 100, 150, 200), (150, 100, 300, 200)]
    for box in quarters:
        assert alpha.crop(box).getbbox() is not None


def test_layout_rejects_empty_canvas():
    with pytest.raises(ValueError):
        layout_tiles(0, 100, small_settings())


def alpha_centroid(image):
    alpha = image.getchannel("A")
    width = alpha.width
    total = sx = sy = 0
    for index, value in enumerate(alpha.getdata()):
        if value:
            total += value
            sx += value * (index % width)
            sy += value * (index // width)
    return total, (sx / total, sy / total)


def test_rotated_tile_maps_back_onto_unrotated_tile():
    # 400x400 at density 1: step 736, so only the tile at (170, 170) reaches the canvas.
    lone_tile = dict(h_spacing=920, v_spacing=920, density=1, font_size=20)
    flat = generate_overlay(400, 400, small_settings(rotation=0, **lone_tile))
    layout = layout_tiles(400, 400, small_settings(rotation=30, **lone_tile))
    assert (170, 170) in list(layout.placements())

    flat_total, flat_center = alpha_centroid(flat)
    turned_total, turned_center = alpha_centroid(render_overlay(layout))
    restored = layout.from_canvas(*turned_center)

    assert restored[0] == pytest.approx(flat_center[0], abs=1.5)
    assert restored[1] == pytest.approx(flat_center[1], abs=1.5)
    assert turned_total == pytest.approx(flat_total, rel=0.1)


def test_rotated_overlay_allocates_no_more_than_the_canvas(monkeypatch):
    allocated = []
    original_new = Image.new

    def recording_new(mode, size, *args, **kwargs):
        allocated.append(size)
        return original_new(mode, size, *args, **kwargs)

    monkeypatch.setattr(Image, "new", recording_new)
    width, height = 60, 1500
    overlay = generate_overlay(width, height, small_settings(rotation=30, density=5))

    assert overlay.size == (width, height)
    assert overlay.getchannel("A").getbbox() is not None
    assert max(w * h for w, h in allocated) <= width * height
