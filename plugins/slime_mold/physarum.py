"""
Physarum Slime-Mold Engine

Owns the trail field, the agent pool, the parameter set and the pointer
perturbation, and sequences one frame:

  1. fade + diffuse   read buffer -> write buffer
  2. steer agents     sense write buffer, move, deposit into write buffer
  3. swap             write buffer becomes the new current field

A single lock serialises step() against resize/reseed/clear/snapshot, so a
background thread can drive the simulation while another one reads it.
Parameters and perturbation are immutable values swapped by reference;
they take effect on the next step and are never seen half-updated.

References:
  Jeff Jones, "Characteristics of pattern formation and evolution in
  approximations of Physarum transport networks" (2010)
"""

import enum
import functools
import logging
import threading

import numpy as np

from .agents import SPAWN_MODES, AgentPool, agent_noise
from .diffusion import Diffuser
from .errors import SimulationStateError, SlimeConfigError, require_positive_int
from .field import TrailField
from .params import PARAM_RANGES, SlimeParams
from .perturbation import INACTIVE, Perturbation
from .steering import update_agents

logger = logging.getLogger(__name__)

# The per-agent hash keys on the seed as a uint64
MAX_SEED = 2 ** 64 - 1


class SimState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STEPPING = "stepping"


class Physarum:
    """Agent-based trail simulation on a double-buffered scalar field."""

    engine_name = "physarum"
    engine_label = "Physarum"

    def __init__(self):
        self.field = None
        self.pool = AgentPool()
        self.params = SlimeParams()
        self.perturbation = INACTIVE
        self.seed_value = 0
        self.spawn = "random"
        self.generation = 0
        self.elapsed = 0.0
        self.state = SimState.UNINITIALIZED
        self._lock = threading.Lock()
        self._diffuse = Diffuser()
        self._rng = np.random.default_rng()

    # ── lifecycle ─────────────────────────────────────────────────────────

    def initialize(self, width, height, agent_count, params=None, seed=None,
                   spawn="random"):
        """Allocate the field and spawn the agents. Returns self.

        Raises:
            SlimeConfigError: non-positive width, height or agent_count,
                a seed outside [0, MAX_SEED], or an unknown spawn mode
        """
        width = require_positive_int("width", width)
        height = require_positive_int("height", height)
        agent_count = require_positive_int("agent_count", agent_count)
        if spawn not in SPAWN_MODES:
            raise SlimeConfigError(
                f"unknown spawn mode {spawn!r}, expected one of {SPAWN_MODES}")
        if seed is None:
            seed = int(np.random.default_rng().integers(0, 2 ** 63 - 1))
        seed = int(seed)
        if not 0 <= seed <= MAX_SEED:
            raise SlimeConfigError(f"seed must be in [0, 2**64 - 1], got {seed}")

        field = TrailField(width, height)
        pool = AgentPool()
        pool.initialize(agent_count, width, height, rng_seed=seed, mode=spawn)

        with self._lock:
            self.field = field
            self.pool = pool
            if params is not None:
                self.params = params
            self.seed_value = seed
            self.spawn = spawn
            self.generation = 0
            self.elapsed = 0.0
            self._rng = np.random.default_rng(seed)
            self._diffuse = Diffuser(field.shape)
            self.state = SimState.READY

        logger.info("initialized %dx%d field, %d agents, seed=%d, spawn=%s",
                    width, height, agent_count, seed, spawn)
        return self

    def _require_ready(self, action):
        if self.state is SimState.UNINITIALIZED:
            raise SimulationStateError(f"{action}() called before initialize()")

    def step(self, dt):
        """Advance one frame of dt seconds. Returns the new current field."""
        dt = max(0.0, float(dt))
        with self._lock:
            self._require_ready("step")
            self.state = SimState.STEPPING
            try:
                params = self.params
                read = self.field.read_buffer()
                write = self.field.write_buffer()
                self._diffuse(read, write, params.decay, params.neighborhood)

                noise = functools.partial(agent_noise, self.pool.ids, self.seed_value,
                                          self.generation, self.elapsed)
                update_agents(self.pool, write, params, self.perturbation, dt, noise)

                self.field.swap()
                self.generation += 1
                self.elapsed += dt
            finally:
                self.state = SimState.READY
            return self._readonly_field()

    def step_n(self, n, dt):
        """Advance n frames. Returns the final field."""
        field = self.current_field()
        for _ in range(n):
            field = self.step(dt)
        return field

    def resize(self, width, height):
        """Reallocate the field at a new extent. Trail is lost, agents stay put.

        Agents now outside the extent are brought back by the next step's
        boundary handling. Blocks until any in-flight step has finished.
        """
        width = require_positive_int("width", width)
        height = require_positive_int("height", height)
        with self._lock:
            self._require_ready("resize")
            self.field.allocate(width, height)
        logger.info("resized field to %dx%d", width, height)

    # ── field access ──────────────────────────────────────────────────────

    def _readonly_field(self):
        view = self.field.read_buffer().view()
        view.flags.writeable = False
        return view

    def current_field(self):
        """Read-only view of the buffer currently in the read role.

        The view aliases live memory: the next step overwrites it. Use
        snapshot() for a copy that stays valid.
        """
        self._require_ready("current_field")
        return self._readonly_field()

    def snapshot(self):
        """Copy of the current field, taken between steps."""
        with self._lock:
            self._require_ready("snapshot")
            return self.field.read_buffer().copy()

    @property
    def positions(self):
        """(N, 2) copy of the agent positions, field-local coordinates."""
        with self._lock:
            return self.pool.positions.copy()

    @property
    def width(self):
        return self.field.width if self.field is not None else 0

    @property
    def height(self):
        return self.field.height if self.field is not None else 0

    @property
    def agent_count(self):
        return self.pool.count

    # ── perturbation ──────────────────────────────────────────────────────

    def set_perturbation(self, point, radius):
        """Repel agents from point (field-local x, y) within radius from the next step."""
        self.perturbation = Perturbation.at(point, radius)
        logger.debug("perturbation at (%.1f, %.1f) r=%.1f",
                     self.perturbation.x, self.perturbation.y, self.perturbation.radius)

    def clear_perturbation(self):
        self.perturbation = INACTIVE

    # ── parameters ────────────────────────────────────────────────────────

    def set_params(self, **params):
        """Update known parameters (clamped). Unknown keys are ignored."""
        self.params = self.params.updated(**params)

    def get_params(self):
        return self.params.as_dict()

    def randomise_params(self, rng=None):
        """Re-roll the steering parameters within their ranges. Returns the new dict."""
        self.params = self.params.randomised(rng if rng is not None else self._rng)
        logger.debug("randomised params: %s", self.params)
        return self.get_params()

    # ── population / field resets ─────────────────────────────────────────

    def reseed(self, spawn=None, seed=None):
        """Respawn the same population. The trail is left as is."""
        spawn = spawn or self.spawn
        with self._lock:
            self._require_ready("reseed")
            if seed is None:
                seed = int(self._rng.integers(0, 2 ** 63 - 1))
            self.pool.reseed(self.field.width, self.field.height,
                             rng_seed=seed, mode=spawn)
            self.spawn = spawn
        logger.info("reseeded %d agents, spawn=%s", self.pool.count, spawn)

    def clear(self):
        """Zero the trail field."""
        with self._lock:
            self._require_ready("clear")
            self.field.clear()

    @property
    def stats(self):
        """Return current field statistics."""
        if self.field is None:
            return {"generation": 0, "mass": 0.0, "mean": 0.0, "max": 0.0,
                    "coverage_pct": 0.0}
        world = self.field.read_buffer()
        return {
            "generation": self.generation,
            "mass": float(world.sum()),
            "mean": float(world.mean()),
            "max": float(world.max()),
            "coverage_pct": float((world > 0.01).sum()) / world.size * 100,
        }

    @classmethod
    def get_slider_defs(cls):
        """Value ranges for external controllers.

        Same shape as the other engines' definitions:
            {"key": ..., "label": ..., "section": ..., "min": ..., "max": ...,
             "default": ..., "fmt": ..., "step": ...}
        """
        defaults = SlimeParams()
        labels = [
            ("sensor_offset", "Sensor Distance", "SENSING", ".1f", None),
            ("sensor_angle", "Sensor Angle", "SENSING", ".3f", None),
            ("sensor_size", "Sensor Size", "SENSING", "d", 1),
            ("turn_rate", "Turn Rate", "MOTION", ".2f", None),
            ("move_speed", "Move Speed", "MOTION", ".1f", None),
            ("decay", "Decay", "TRAIL", ".3f", None),
            ("deposit_value", "Deposit", "TRAIL", ".2f", None),
        ]
        defs = []
        for key, label, section, fmt, step in labels:
            lo, hi = PARAM_RANGES[key]
            defs.append({"key": key, "label": label, "section": section,
                         "min": lo, "max": hi, "default": getattr(defaults, key),
                         "fmt": fmt, "step": step})
        return defs
