#!/usr/bin/env python3
"""
Tests for the headless frame driver and the renderer.

Verifies:
1. Grid sizing and agent counts
2. Speed accumulator, pause and presets
3. Pointer handling and pixel mapping
4. Render output: shape, orientation, palettes, bloom, scaling
"""

import logging

import numpy as np
import pytest

from slime_mold.colormaps import (
    COLORMAP_ORDER, apply_colormap, get_colormap, random_trail_color, tint_lut,
)
from slime_mold.errors import SlimeConfigError
from slime_mold.presets import PRESET_ORDER, PRESETS, list_presets, preset_params
from slime_mold.render import TrailRenderer, apply_bloom, scale_frame
from slime_mold.simulator import (
    DISPATCH_WIDTH, POINTER_RADIUS_FRAC, SlimeSimulator, agents_for_extent,
    grid_extent,
)


def _sim(preset="network", width=64, height=48, **kw):
    kw.setdefault("seed", 5)
    kw.setdefault("warmup", False)
    return SlimeSimulator(preset, width=width, height=height, **kw)


# ── Sizing ───────────────────────────────────────────────────────────────

def test_grid_extent():
    assert grid_extent(1280, 720) == (640, 360)
    assert grid_extent(1280, 720, scale=1.0) == (1280, 720)
    assert grid_extent(1, 1, scale=0.1) == (1, 1)


def test_agents_for_extent_is_dispatch_multiple():
    n = agents_for_extent(100, 100)
    assert n % DISPATCH_WIDTH == 0
    assert 1200 <= n < 1200 + DISPATCH_WIDTH
    assert agents_for_extent(1, 1) == DISPATCH_WIDTH


def test_preset_density_sets_population():
    sim = _sim("mesh", width=100, height=100)
    assert sim.engine.agent_count == agents_for_extent(100, 100, PRESETS["mesh"]["density"])
    assert _sim(agent_count=77).engine.agent_count == 77


@pytest.mark.parametrize("count", [0, -5])
def test_explicit_agent_count_is_validated(count):
    with pytest.raises(SlimeConfigError):
        _sim(agent_count=count)


# ── Frames ───────────────────────────────────────────────────────────────

def test_speed_accumulator_fractional():
    sim = _sim()
    sim.set_runtime_params(speed=0.5)
    assert [sim.advance(1 / 60) for _ in range(4)] == [0, 1, 0, 1]
    assert sim.engine.generation == 2


def test_speed_accumulator_multiple_steps():
    sim = _sim()
    sim.set_runtime_params(speed=2.5)
    assert sim.advance(1 / 60) + sim.advance(1 / 60) == 5


def test_negative_speed_clamps_to_zero():
    sim = _sim()
    sim.set_runtime_params(speed=-3)
    assert sim.sim_speed == 0.0
    assert sim.advance(1 / 60) == 0


def test_paused_runs_nothing():
    sim = _sim()
    sim.paused = True
    assert sim.advance(1 / 60) == 0
    assert sim.engine.generation == 0


def test_warmup_steps_engine():
    sim = _sim()
    sim.run_warmup(steps=7)
    assert sim.engine.generation == 7
    assert sim.stats["mass"] > 0


def test_unknown_preset_falls_back(caplog):
    with caplog.at_level(logging.WARNING):
        sim = _sim("does-not-exist")
    assert sim.preset_key == "network"
    assert "unknown preset" in caplog.text


def test_runtime_preset_switch():
    sim = _sim()
    sim.set_runtime_params(preset="lace")
    assert sim.preset_key == "lace"
    assert sim.engine.spawn == "clusters"
    assert sim.engine.params.edge_policy == "clamp"
    assert sim.renderer.palette == "frost"


def test_runtime_structural_params_apply_immediately():
    sim = _sim()
    sim.set_runtime_params(neighborhood="moore", edge_policy="clamp")
    assert sim.engine.params.neighborhood == "moore"
    assert sim.engine.params.edge_policy == "clamp"


def test_runtime_tunables_drift():
    sim = _sim()
    sim.set_runtime_params(move_speed=10.0)
    assert sim.engine.params.move_speed == 20.0
    sim.advance(0.1)
    assert 10.0 < sim.engine.params.move_speed < 20.0


def test_clear_and_reseed_flags():
    sim = _sim()
    sim.run_warmup(steps=3)
    sim.set_runtime_params(clear=True)
    assert sim.stats["mass"] == 0.0
    before = sim.engine.positions
    sim.set_runtime_params(reseed=True)
    assert not np.array_equal(before, sim.engine.positions)


# ── Pointer ──────────────────────────────────────────────────────────────

def test_pointer_sets_perturbation_and_colour():
    sim = _sim()
    assert sim.renderer.trail_color is None
    sim.pointer(3.0, -4.0)
    p = sim.engine.perturbation
    assert p.active
    assert (p.x, p.y) == (3.0, -4.0)
    assert p.radius == pytest.approx(POINTER_RADIUS_FRAC * 48)
    assert sim.renderer.trail_color is not None
    assert not sim.smoother.settled

    sim.release_pointer()
    assert not sim.engine.perturbation.active


def test_pointer_without_randomise():
    sim = _sim()
    sim.pointer(0.0, 0.0, radius=3.0, randomise=False)
    assert sim.engine.perturbation.radius == 3.0
    assert sim.renderer.trail_color is None
    assert sim.smoother.settled


def test_pixel_to_field():
    sim = _sim()
    assert sim.pixel_to_field(0, 0, 128, 96) == (-32.0, 24.0)
    assert sim.pixel_to_field(64, 48, 128, 96) == (0.0, 0.0)
    assert sim.pixel_to_field(128, 96, 128, 96) == (32.0, -24.0)


# ── Resize & render ──────────────────────────────────────────────────────

def test_step_returns_rgb_frame():
    sim = _sim()
    rgb = sim.step(1 / 60)
    assert rgb.shape == (48, 64, 3)
    assert rgb.dtype == np.uint8
    f = sim.render_float(1 / 60)
    assert f.dtype == np.float32
    assert 0.0 <= f.min() and f.max() <= 1.0


def test_resize_changes_frame_shape():
    sim = _sim()
    sim.run_warmup(steps=2)
    sim.resize(32, 24)
    assert (sim.width, sim.height) == (32, 24)
    assert sim.step(1 / 60).shape == (24, 32, 3)


def test_render_puts_positive_y_at_top():
    renderer = TrailRenderer(palette="mono", exposure=1.0, bloom=0.0)
    field = np.zeros((10, 10), dtype=np.float32)
    field[9, 3] = 1.0   # highest row = most positive Y
    rgb = renderer.render(field)
    assert tuple(rgb[0, 3]) == (255, 255, 255)
    assert not rgb[9].any()


def test_render_agent_overlay():
    renderer = TrailRenderer(palette="mono", bloom=0.0, show_agents=True)
    rgb = renderer.render(np.zeros((10, 10), dtype=np.float32), np.array([[0.0, 0.0]]))
    # cell (5, 5), flipped to screen row 4
    assert tuple(rgb[4, 5]) == (255, 255, 255)
    assert rgb.sum() == 3 * 255


def test_trail_colour_ramp():
    renderer = TrailRenderer(bloom=0.0, exposure=1.0)
    renderer.set_trail_color((200, 100, 50))
    rgb = renderer.render(np.ones((4, 4), dtype=np.float32))
    assert tuple(rgb[0, 0]) == (200, 100, 50)
    renderer.set_palette("moss")
    assert renderer.trail_color is None


def test_bloom_saturates_without_wrapping():
    rgb = np.full((16, 16, 3), 250, dtype=np.uint8)
    out = apply_bloom(rgb, intensity=1.0)
    assert out.dtype == np.uint8
    assert out.min() == 255


def test_bloom_spreads_glow():
    rgb = np.zeros((32, 32, 3), dtype=np.uint8)
    rgb[12:20, 12:20] = 255
    out = apply_bloom(rgb, sigma=8, intensity=1.0)
    assert out[8, 16].sum() > 0
    assert np.all(out >= rgb)


def test_scale_frame_exact_shape():
    rgb = np.random.default_rng(0).integers(0, 255, (10, 20, 3), dtype=np.uint8)
    assert scale_frame(rgb, 20, 10) is rgb
    for w, h in [(40, 25), (33, 7), (7, 33)]:
        assert scale_frame(rgb, w, h).shape == (h, w, 3)


# ── Palettes & presets ───────────────────────────────────────────────────

@pytest.mark.parametrize("name", COLORMAP_ORDER)
def test_palettes_are_luts(name):
    lut = get_colormap(name)
    assert lut.shape == (256, 3)
    assert lut.dtype == np.uint8
    # Brighter trail never renders darker
    lum = lut.astype(np.int32).sum(axis=1)
    assert lum[-1] > lum[0]


def test_tint_and_apply_colormap():
    lut = tint_lut((255, 0, 0))
    assert tuple(lut[0]) == (0, 0, 0)
    assert tuple(lut[-1]) == (255, 0, 0)
    rgb = apply_colormap(np.array([[0.0, 1.0], [2.0, -1.0]]), lut)
    assert rgb.shape == (2, 2, 3)
    assert tuple(rgb[1, 0]) == (255, 0, 0)
    assert tuple(rgb[1, 1]) == (0, 0, 0)


def test_random_trail_colour_is_bright():
    rng = np.random.default_rng(1)
    for _ in range(20):
        color = random_trail_color(rng)
        assert max(color) >= 254
        assert all(0 <= c <= 255 for c in color)


def test_presets_are_listed_and_valid():
    assert [k for k, _, _ in list_presets()] == PRESET_ORDER
    for key in PRESET_ORDER:
        preset = PRESETS[key]
        assert preset["palette"] in COLORMAP_ORDER
        params = preset_params(preset)
        assert "palette" not in params and "spawn" not in params


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-q"]))
