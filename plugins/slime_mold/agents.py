"""
Agent Pool

Fixed-size struct-of-arrays store for the slime agents:

  positions  (N, 2) float64  field-local x, y (origin at grid centre)
  headings   (N,)   float64  radians, never normalised
  reserved   (N,)   float32  spare per-agent channel, unused by the kernels
  ids        (N,)   int64    stable identifiers feeding the per-agent hash

Agents never read each other, so every kernel is free to update the whole
pool at once with numpy.

Also home to agent_noise(), the counter-based hash that gives every agent
its own reproducible random numbers for a given frame.
"""

import math

import numpy as np

from .errors import SlimeConfigError, require_positive_int


SPAWN_MODES = ("random", "center", "ring", "clusters")

# Hash purposes. Each kernel draw gets its own salt so drawing one value
# never shifts another.
SALT_TURN = 1
SALT_TIE = 2
SALT_PUSH = 3
SALT_BOUNCE = 4

_GOLDEN = np.uint64(0x9E3779B97F4A7C15)
_MIX_A = np.uint64(0xBF58476D1CE4E5B9)
_MIX_B = np.uint64(0x94D049BB133111EB)


def _splitmix64(x):
    """SplitMix64 finalizer over a uint64 array (wraps modulo 2**64)."""
    x = x + _GOLDEN
    x = (x ^ (x >> np.uint64(30))) * _MIX_A
    x = (x ^ (x >> np.uint64(27))) * _MIX_B
    return x ^ (x >> np.uint64(31))


def agent_noise(ids, seed, frame, elapsed, salt):
    """Uniform [0, 1) value per agent, derived only from its inputs.

    Args:
        ids: int array of stable agent identifiers
        seed: simulation seed
        frame: frame counter
        elapsed: elapsed-time accumulator in seconds
        salt: purpose tag (SALT_*)

    Returns:
        float64 array shaped like ids
    """
    elapsed_bits = np.array([elapsed], dtype=np.float64).view(np.uint64)
    prefix = np.array([seed], dtype=np.uint64)
    for part in (np.array([frame], dtype=np.uint64), elapsed_bits,
                 np.array([salt], dtype=np.uint64)):
        prefix = _splitmix64(prefix ^ part)
    keys = np.asarray(ids).astype(np.uint64) * _GOLDEN
    bits = _splitmix64(keys ^ prefix)
    return (bits >> np.uint64(11)).astype(np.float64) * (1.0 / (1 << 53))


class AgentPool:
    """Fixed population of point agents."""

    def __init__(self):
        self.positions = np.zeros((0, 2), dtype=np.float64)
        self.headings = np.zeros(0, dtype=np.float64)
        self.reserved = np.zeros(0, dtype=np.float32)
        self.ids = np.zeros(0, dtype=np.int64)

    def __len__(self):
        return len(self.ids)

    @property
    def count(self):
        return len(self.ids)

    def initialize(self, count, extent_width, extent_height, rng_seed=None,
                   mode="random"):
        """Create count agents inside a extent_width x extent_height field.

        Positions are uniform over the extent and headings uniform in
        [0, 2*pi) for the default "random" mode.
        """
        count = require_positive_int("agent_count", count)
        self.positions = np.zeros((count, 2), dtype=np.float64)
        self.headings = np.zeros(count, dtype=np.float64)
        self.reserved = np.zeros(count, dtype=np.float32)
        self.ids = np.arange(count, dtype=np.int64)
        self.reseed(extent_width, extent_height, rng_seed, mode)

    def reseed(self, extent_width, extent_height, rng_seed=None, mode="random"):
        """Reposition the existing population. Count never changes."""
        if mode not in SPAWN_MODES:
            raise SlimeConfigError(
                f"unknown spawn mode {mode!r}, expected one of {SPAWN_MODES}")
        rng = np.random.default_rng(rng_seed)
        half_w = extent_width / 2.0
        half_h = extent_height / 2.0
        n = self.count

        if mode == "center":
            spread = min(half_w, half_h) * 0.1
            self.positions[:, 0] = rng.normal(0.0, spread, n)
            self.positions[:, 1] = rng.normal(0.0, spread, n)
            self.headings[:] = rng.uniform(0.0, 2.0 * math.pi, n)
        elif mode == "ring":
            # Evenly spaced on a circle, all facing the centre
            angles = 2.0 * math.pi * np.arange(n) / n
            radius = min(half_w, half_h) * 0.7
            self.positions[:, 0] = np.cos(angles) * radius
            self.positions[:, 1] = np.sin(angles) * radius
            self.headings[:] = angles + math.pi
        elif mode == "clusters":
            # Two groups on opposite sides that have to find each other
            side = np.where(np.arange(n) % 2 == 0, -1.0, 1.0)
            spread = min(half_w, half_h) * 0.08
            self.positions[:, 0] = side * half_w * 0.5 + rng.normal(0.0, spread, n)
            self.positions[:, 1] = rng.normal(0.0, spread, n)
            self.headings[:] = rng.uniform(0.0, 2.0 * math.pi, n)
        else:
            self.positions[:, 0] = rng.uniform(-half_w, half_w, n)
            self.positions[:, 1] = rng.uniform(-half_h, half_h, n)
            self.headings[:] = rng.uniform(0.0, 2.0 * math.pi, n)

        np.clip(self.positions[:, 0], -half_w, half_w, out=self.positions[:, 0])
        np.clip(self.positions[:, 1], -half_h, half_h, out=self.positions[:, 1])

    def for_each(self, visitor):
        """Call visitor(agent_id, position, heading) for every agent.

        position is a writable view into the pool. If the visitor returns a
        new heading, it is stored. Order carries no meaning.
        """
        for i in range(self.count):
            new_heading = visitor(int(self.ids[i]), self.positions[i], self.headings[i])
            if new_heading is not None:
                self.headings[i] = new_heading
