"""
Slime Simulator - headless frame driver

Wraps the Physarum engine with everything a display needs per frame:
preset switching, a fractional speed accumulator, EMA parameter drift,
pointer handling (perturbation + parameter/colour re-roll), resize and
rendering to RGB. Zero pygame dependency.

Usage:
    from slime_mold.simulator import SlimeSimulator
    sim = SlimeSimulator("network", width=320, height=180)
    rgb = sim.step(1 / 60)   # (H, W, 3) uint8
"""

import logging
import math

import numpy as np

from .colormaps import random_trail_color
from .params import SlimeParams
from .physarum import Physarum
from .presets import DEFAULT_PRESET, get_preset, preset_params
from .render import TrailRenderer
from .smoothing import ParamSmoother

logger = logging.getLogger(__name__)

# Grid cells per display pixel
GRID_SCALE = 0.5
# Agent counts are padded to a multiple of this (vector batch width)
DISPATCH_WIDTH = 64
# Agents per grid cell when a preset does not say
DEFAULT_DENSITY = 0.12
# Pointer radius as a fraction of the shorter grid side
POINTER_RADIUS_FRAC = 0.12
# Largest frame time fed to the engine (seconds)
MAX_DT = 0.1

WARMUP_STEPS = 120


def grid_extent(surface_w, surface_h, scale=GRID_SCALE):
    """Field width/height for a display surface of the given pixel size."""
    return (max(1, int(round(surface_w * scale))),
            max(1, int(round(surface_h * scale))))


def agents_for_extent(width, height, density=DEFAULT_DENSITY):
    """Agent count for a field, rounded up to a multiple of DISPATCH_WIDTH."""
    n = max(1, int(math.ceil(width * height * density)))
    return ((n + DISPATCH_WIDTH - 1) // DISPATCH_WIDTH) * DISPATCH_WIDTH


class SlimeSimulator:
    """Headless simulation core shared by the viewer, CLI and pipeline.

    Args:
        preset_key: Initial preset name (e.g. 'network', 'veins')
        width, height: Field extent in cells
        agent_count: Population size (default: from preset density)
        seed: Random seed (default: fresh entropy)
        warmup: Run WARMUP_STEPS steps after each preset switch
    """

    def __init__(self, preset_key=DEFAULT_PRESET, width=320, height=180,
                 agent_count=None, seed=None, warmup=True):
        self.width = width
        self.height = height
        self._agent_count = agent_count
        self._seed = seed
        self._warmup = warmup

        # Fractional speed system (accumulator pattern)
        self.sim_speed = 1.0
        self.speed_accumulator = 0.0
        self.paused = False

        self.engine = Physarum()
        self.renderer = TrailRenderer()
        self.smoother = None
        self.randomise_on_click = True
        self._rng = np.random.default_rng(seed)

        self.preset_key = None
        self.apply_preset(preset_key)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def apply_preset(self, key):
        """Switch preset: new params, palette and a fresh population."""
        preset = get_preset(key)
        if preset is None:
            logger.warning("unknown preset %r, using %r", key, DEFAULT_PRESET)
            key = DEFAULT_PRESET
            preset = get_preset(key)
        self.preset_key = key

        params = SlimeParams(**preset_params(preset))
        count = self._agent_count
        if count is None:
            count = agents_for_extent(
                self.width, self.height, preset.get("density", DEFAULT_DENSITY))
        self.engine.initialize(self.width, self.height, count, params=params,
                               seed=self._seed, spawn=preset.get("spawn", "random"))
        self.smoother = ParamSmoother(params)
        self.renderer.set_palette(preset.get("palette", "amber"))
        self.speed_accumulator = 0.0
        logger.info("preset %s: %d agents on %dx%d", key, count, self.width, self.height)

        if self._warmup:
            self.run_warmup()

    def set_runtime_params(self, **kwargs):
        """Set runtime parameters from pipeline/host kwargs.

        Supported keys:
            preset: Switch to named preset
            speed: Set sim_speed
            brightness: Renderer brightness
            bloom: Renderer bloom intensity
            show_agents: Agent point overlay on/off
            reseed: Any truthy value respawns the agents
            clear: Any truthy value wipes the trail
            any SlimeParams key: drift toward the new value
        """
        for key, val in kwargs.items():
            if key == "preset":
                if val != self.preset_key:
                    self.apply_preset(val)
            elif key == "speed":
                self.sim_speed = max(0.0, float(val))
            elif key == "brightness":
                self.renderer.brightness = float(val)
            elif key == "bloom":
                self.renderer.bloom = float(val)
            elif key == "show_agents":
                self.renderer.show_agents = bool(val)
            elif key == "reseed":
                if val:
                    self.engine.reseed()
            elif key == "clear":
                if val:
                    self.engine.clear()
            elif key in ("neighborhood", "edge_policy"):
                self.engine.set_params(**{key: val})
            elif key in self.smoother.smoothed:
                self.smoother.set_targets(**{key: val})

    # -- pointer --------------------------------------------------------------

    def pointer(self, x, y, radius=None, randomise=None):
        """Pointer trigger at field-local (x, y).

        Sets the perturbation and, unless disabled, re-rolls the steering
        parameters (they drift there) and the trail colour.
        """
        if radius is None:
            radius = POINTER_RADIUS_FRAC * min(self.width, self.height)
        self.engine.set_perturbation((x, y), radius)
        if randomise is None:
            randomise = self.randomise_on_click
        if randomise:
            self.randomise_params()
            self.renderer.set_trail_color(random_trail_color(self._rng))

    def randomise_params(self):
        """Pick new steering parameters within range and drift toward them."""
        target = self.engine.params.randomised(self._rng)
        self.smoother.set_targets(**target.as_dict())
        return target

    def pointer_at_pixel(self, px, py, surface_w, surface_h, **kw):
        """Pointer trigger at display pixel (px, py), origin top-left."""
        x, y = self.pixel_to_field(px, py, surface_w, surface_h)
        self.pointer(x, y, **kw)

    def pixel_to_field(self, px, py, surface_w, surface_h):
        x = (px / surface_w - 0.5) * self.width
        y = (0.5 - py / surface_h) * self.height
        return x, y

    def release_pointer(self):
        self.engine.clear_perturbation()

    # -- resize ---------------------------------------------------------------

    def resize(self, width, height):
        """New field extent. Trail is discarded, agents keep their positions."""
        self.engine.resize(width, height)
        self.width = width
        self.height = height

    # -- frames ---------------------------------------------------------------

    def advance(self, dt):
        """Run the engine steps owed for a frame of dt seconds. Returns steps run."""
        dt = min(max(0.0, float(dt)), MAX_DT)
        if self.smoother is not None and not self.smoother.settled:
            self.engine.set_params(**self.smoother.update(dt))
        if self.paused:
            return 0
        self.speed_accumulator += self.sim_speed
        steps = int(self.speed_accumulator)
        self.speed_accumulator -= steps
        for _ in range(steps):
            self.engine.step(dt)
        return steps

    def step(self, dt) -> np.ndarray:
        """Advance one rendered frame and return (H, W, 3) uint8 RGB."""
        self.advance(dt)
        return self.render()

    def render(self) -> np.ndarray:
        positions = self.engine.positions if self.renderer.show_agents else None
        return self.renderer.render(self.engine.snapshot(), positions)

    def render_float(self, dt) -> np.ndarray:
        """Advance and return (H, W, 3) float32 in [0, 1] (caller owns the data)."""
        return self.step(dt).astype(np.float32) / 255.0

    def run_warmup(self, steps=WARMUP_STEPS, dt=1.0 / 60):
        """Let the network form before the first displayed frame."""
        for _ in range(steps):
            self.engine.step(dt)

    @property
    def stats(self):
        return self.engine.stats
