"""
Pointer perturbation state.

A repulsion point that nearby agents are probabilistically pushed away
from. It is an immutable value: the interaction layer builds a new one
and the driver swaps its reference, so a step running on another thread
never sees half of an update.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Perturbation:
    x: float = 0.0
    y: float = 0.0
    radius: float = 0.0

    @property
    def point(self):
        return (self.x, self.y)

    @property
    def active(self):
        return self.radius > 0.0

    @classmethod
    def at(cls, point, radius):
        x, y = point
        return cls(float(x), float(y), max(0.0, float(radius)))


INACTIVE = Perturbation()
