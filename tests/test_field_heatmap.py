import numpy as np
import pytest

from fdheatmap.config import FractalConfig
from fdheatmap.errors import InsufficientSamples, PaletteGap
from fdheatmap.field import fractal_dimension_field, row_ranges
from fdheatmap.heatmap import (DEFAULT_COLORS, DEFAULT_EDGES, DiscretePalette, GradientPalette, make_palette,
                               raster_bytes, render_heatmap)


def random_mask(shape, p=0.35, seed=11):
    rng = np.random.default_rng(seed)
    return (rng.random(shape) < p).astype(np.uint8)


@pytest.mark.parametrize("occupancy", ["any", "all"])
@pytest.mark.parametrize("n, min_box", [(8, 1), (16, 1), (16, 2), (9, 1)])
def test_engines_agree(occupancy, n, min_box):
    grid = random_mask((21, 17))
    direct = fractal_dimension_field(grid, FractalConfig(neighborhood_size=n, min_box=min_box,
                                                          occupancy=occupancy, engine="direct"))
    integral = fractal_dimension_field(grid, FractalConfig(neighborhood_size=n, min_box=min_box,
                                                            occupancy=occupancy, engine="integral"))
    assert direct.shape == integral.shape == grid.shape
    assert np.allclose(direct, integral, rtol=0, atol=1e-9)


def test_direct_engine_process_pool_matches_serial():
    grid = random_mask((12, 10), seed=5)
    serial = fractal_dimension_field(grid, FractalConfig(neighborhood_size=8, min_box=1, engine="direct"))
    pooled = fractal_dimension_field(grid, FractalConfig(neighborhood_size=8, min_box=1, engine="direct", workers=2))
    assert np.array_equal(serial, pooled)


def test_field_of_empty_grid_is_zero():
    field = fractal_dimension_field(np.zeros((10, 10), dtype=np.uint8), FractalConfig(neighborhood_size=8, min_box=1))
    assert np.all(field == 0.0)
    assert not np.any(np.signbit(field))


def test_field_interior_of_filled_grid():
    grid = np.ones((32, 32), dtype=np.uint8)
    field = fractal_dimension_field(grid, FractalConfig(neighborhood_size=8, min_box=1))
    assert field[16, 16] == pytest.approx(2.0)
    # window at (1, 1) holds a 5x5 block of foreground: counts 25 and 9
    assert field[1, 1] == pytest.approx(np.log(25 / 9) / np.log(2))
    assert field[1, 1] < field[16, 16]


def test_field_along_a_line():
    grid = np.zeros((24, 40), dtype=np.uint8)
    grid[12, :] = 1
    field = fractal_dimension_field(grid, FractalConfig(neighborhood_size=16, min_box=1))
    assert np.allclose(field[12, 8:32], 1.0)


def test_field_values_within_default_palette_for_any():
    grid = random_mask((20, 20), p=0.5, seed=2)
    field = fractal_dimension_field(grid, FractalConfig(neighborhood_size=16, min_box=1))
    assert field.min() >= 0.0
    assert field.max() <= 2.0 + 1e-12


def test_row_ranges_cover_disjointly():
    ranges = row_ranges(10, 3)
    assert ranges[0][0] == 0 and ranges[-1][1] == 10
    assert all(a[1] == b[0] for a, b in zip(ranges, ranges[1:]))
    assert row_ranges(2, 8) == [(0, 1), (1, 2)]


def test_config_rejects_bad_values():
    with pytest.raises(InsufficientSamples):
        FractalConfig(neighborhood_size=4, min_box=1)
    with pytest.raises(ValueError):
        FractalConfig(occupancy="center")
    with pytest.raises(ValueError):
        FractalConfig(scaling_factor=1)
    with pytest.raises(ValueError):
        FractalConfig(foreground=2)


def test_discrete_palette_covers_zero_to_two():
    values = np.linspace(0.0, 2.0, 20001)
    colors = DiscretePalette().colors(values)
    assert colors.shape == (20001, 3)
    assert colors.dtype == np.uint8


def test_discrete_palette_buckets_are_half_open():
    p = DiscretePalette()
    assert p.color(0.0) == DEFAULT_COLORS[0]
    assert p.color(0.05) == DEFAULT_COLORS[0]
    assert p.color(0.1) == DEFAULT_COLORS[1]
    assert p.color(1.999) == DEFAULT_COLORS[-1]
    assert p.color(2.0) == DEFAULT_COLORS[-1]


@pytest.mark.parametrize("value", [-0.01, 2.01, float("nan"), float("inf")])
def test_palette_gap(value):
    with pytest.raises(PaletteGap):
        DiscretePalette().color(value)
    with pytest.raises(PaletteGap):
        GradientPalette().color(value)


def test_discrete_palette_validation():
    with pytest.raises(ValueError):
        DiscretePalette(edges=(0.0, 1.0, 0.5), palette=((0, 0, 0), (1, 1, 1)))
    with pytest.raises(ValueError):
        DiscretePalette(edges=(0.0, 1.0), palette=((0, 0, 0), (1, 1, 1)))
    with pytest.raises(ValueError):
        DiscretePalette(edges=(0.0, 1.0), palette=((0, 0, 300),))


def test_gradient_palette_unit_range():
    p = GradientPalette(0.0, 1.0)
    assert p.color(0.0) == (0, 0, 255)
    assert p.color(1.0) == (255, 0, 0)
    assert p.color(0.5) == (128, 0, 128)


def test_gradient_palette_default_covers_zero_to_two():
    colors = GradientPalette().colors(np.linspace(0.0, 2.0, 2001))
    assert tuple(colors[0]) == (0, 0, 255)
    assert tuple(colors[-1]) == (255, 0, 0)


def test_render_heatmap_shape_and_bytes():
    field = np.array([[0.0, 0.5, 1.0], [1.5, 2.0, 0.25]])
    for name in ("discrete", "gradient"):
        raster = render_heatmap(field, make_palette(name))
        assert raster.shape == (2, 3, 3)
        assert raster.dtype == np.uint8
        data, w, h, c = raster_bytes(raster)
        assert (w, h, c) == (3, 2, 3)
        assert len(data) == 2 * 3 * 3
        assert tuple(data[3:6]) == tuple(raster[0, 1])


def test_all_occupancy_can_leave_palette_range():
    checker = (np.indices((8, 8)).sum(axis=0) % 2).astype(np.uint8)
    field = fractal_dimension_field(checker, FractalConfig(neighborhood_size=8, min_box=1, occupancy="all"))
    # centre window: 32 occupied 1x1 boxes, no fully occupied 2x2 box
    assert field[4, 4] == pytest.approx(5.0)
    with pytest.raises(PaletteGap):
        render_heatmap(field, make_palette("discrete"))


def test_palettes_absorb_round_off_at_the_bounds():
    assert DiscretePalette().color(2.0000000000000004) == DEFAULT_COLORS[-1]
    assert DiscretePalette().color(-1e-15) == DEFAULT_COLORS[0]
    assert GradientPalette().color(2.0000000000000004) == (255, 0, 0)
    with pytest.raises(PaletteGap):
        DiscretePalette().color(2.0 + 1e-6)


def test_filled_grid_with_default_boxes_renders():
    grid = np.ones((64, 64), dtype=np.uint8)
    for engine in ("integral", "direct"):
        field = fractal_dimension_field(grid, FractalConfig(engine=engine))
        assert field[32, 32] == pytest.approx(2.0, abs=1e-12)
        raster = render_heatmap(field, make_palette("discrete"))
        assert tuple(raster[32, 32]) == DEFAULT_COLORS[-1]


def test_make_palette_custom_range():
    p = make_palette("discrete", 0.0, 6.0)
    assert p.lo == 0.0 and p.hi == 6.0
    assert len(p.edges) == len(DEFAULT_COLORS) + 1
    assert p.color(5.9) == DEFAULT_COLORS[-1]
    assert make_palette("discrete").edges == DEFAULT_EDGES
    g = make_palette("gradient", 1.0, 3.0)
    assert g.color(1.0) == (0, 0, 255)
    assert g.color(3.0) == (255, 0, 0)
    with pytest.raises(ValueError):
        make_palette("gradient", 2.0, 2.0)
    with pytest.raises(ValueError):
        FractalConfig(palette_min=1.0, palette_max=0.5)
