"""
Tunable Slime Parameters

The parameter set read by the steering and diffusion kernels. Values are
clamped into their documented ranges on construction, never rejected, so
any external controller (sliders, OSC, click randomisation) can push
whatever it likes.

Instances are frozen: changing a parameter means building a new set and
swapping the reference, so a kernel running in another thread always sees
a consistent set.
"""

import math
from dataclasses import dataclass, fields, replace

import numpy as np


NEIGHBORHOODS = ("von_neumann", "moore")
EDGE_POLICIES = ("clamp", "zero")

# key -> (min, max). decay is (0, 1] in principle; below 0.5 the trail
# vanishes within a couple of frames, so that is the practical floor.
PARAM_RANGES = {
    "sensor_offset": (5.0, 20.0),
    "sensor_angle": (math.pi / 6, math.pi / 2),
    "sensor_size": (2, 6),
    "turn_rate": (6.0, 10.0),
    "move_speed": (5.0, 30.0),
    "decay": (0.5, 1.0),
    "deposit_value": (0.0, 1.0),
}

# Keys re-rolled by randomise(); decay/deposit stay put so a click
# changes behaviour without wiping the picture.
RANDOMISED_KEYS = ("sensor_offset", "sensor_angle", "sensor_size",
                   "turn_rate", "move_speed")


def _clamp(value, lo, hi):
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class SlimeParams:
    sensor_offset: float = 9.0
    sensor_angle: float = math.pi / 4
    sensor_size: int = 2
    turn_rate: float = 8.0
    move_speed: float = 20.0
    decay: float = 0.97
    deposit_value: float = 1.0
    neighborhood: str = "von_neumann"
    edge_policy: str = "zero"

    def __post_init__(self):
        # frozen dataclass: write the clamped values through object.__setattr__
        for key, (lo, hi) in PARAM_RANGES.items():
            value = getattr(self, key)
            if key == "sensor_size":
                value = int(round(_clamp(float(value), lo, hi)))
            else:
                value = float(_clamp(float(value), lo, hi))
            object.__setattr__(self, key, value)
        if self.neighborhood not in NEIGHBORHOODS:
            object.__setattr__(self, "neighborhood", "von_neumann")
        if self.edge_policy not in EDGE_POLICIES:
            object.__setattr__(self, "edge_policy", "zero")

    def updated(self, **changes):
        """Return a copy with the known keys in changes applied (and clamped).

        Unknown keys are ignored, same as the engines' set_params(**_kw).
        None values mean "leave unchanged".
        """
        known = {f.name for f in fields(self)}
        applied = {k: v for k, v in changes.items() if k in known and v is not None}
        if not applied:
            return self
        return replace(self, **applied)

    def randomised(self, rng=None):
        """Return a copy with the steering keys drawn uniformly from their ranges."""
        rng = rng if rng is not None else np.random.default_rng()
        changes = {}
        for key in RANDOMISED_KEYS:
            lo, hi = PARAM_RANGES[key]
            if key == "sensor_size":
                changes[key] = int(rng.integers(lo, hi + 1))
            else:
                changes[key] = float(rng.uniform(lo, hi))
        return replace(self, **changes)

    def as_dict(self):
        return {f.name: getattr(self, f.name) for f in fields(self)}
