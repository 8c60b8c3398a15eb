"""
EMA-Smoothed Parameter Drift

Randomised or externally set parameters drift toward their new values
over a couple of seconds instead of snapping, so the network visibly
reorganises rather than jumping.

1. SmoothedParameter - EMA wrapper for one numeric value
2. ParamSmoother - one SmoothedParameter per numeric SlimeParams field

All smoothing is frame-rate independent via delta-time integration.
"""

import math

from .params import PARAM_RANGES


class SmoothedParameter:
    """EMA wrapper for a single numeric parameter.

    Time constant controls the "feel":
    - tau=2.0s: dreamy drift
    - tau=0.5s: responsive but smooth
    - tau=5.0s: very slow drift
    """

    def __init__(self, initial_value, time_constant=2.0):
        """Initialize smoothed parameter.

        Args:
            initial_value: Starting value (both current and target)
            time_constant: Time in seconds to reach ~63% of target (tau)
        """
        self.target = initial_value
        self.current = initial_value
        self.tau = time_constant

    def set_target(self, new_target):
        self.target = new_target

    def update(self, dt):
        """Advance EMA by delta-time (called each frame).

        alpha = 1 - exp(-dt / tau)
        current += alpha * (target - current)
        """
        if dt <= 0:
            return
        alpha = 1.0 - math.exp(-dt / self.tau)
        self.current += alpha * (self.target - self.current)

    def get_value(self):
        return self.current

    def snap(self, value):
        """Immediately set both target and current (for preset switches)."""
        self.target = value
        self.current = value

    @property
    def settled(self):
        return abs(self.target - self.current) < 1e-6


class ParamSmoother:
    """Smooths the numeric fields of a SlimeParams toward a target set.

    update(dt) returns the dict of current values to hand to
    Physarum.set_params(); sensor_size is rounded there by the clamp.
    """

    KEYS = tuple(PARAM_RANGES.keys())

    def __init__(self, params, time_constant=2.0):
        self.time_constant = time_constant
        self.smoothed = {
            key: SmoothedParameter(float(getattr(params, key)), time_constant)
            for key in self.KEYS
        }

    def set_targets(self, **targets):
        """Set drift targets. Non-numeric and unknown keys are ignored."""
        for key, value in targets.items():
            if key in self.smoothed and value is not None:
                self.smoothed[key].set_target(float(value))

    def snap_to(self, params):
        """Jump straight to params (no drift)."""
        for key, sp in self.smoothed.items():
            sp.snap(float(getattr(params, key)))

    def update(self, dt):
        for sp in self.smoothed.values():
            sp.update(dt)
        return self.values()

    def values(self):
        return {key: sp.get_value() for key, sp in self.smoothed.items()}

    @property
    def settled(self):
        return all(sp.settled for sp in self.smoothed.values())
