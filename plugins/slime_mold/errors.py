"""
Exceptions raised at the edges of the slime simulation.

The kernels themselves never raise: out-of-range coordinates and
parameters are clamped. Only setup mistakes and calls made in the wrong
driver state surface as errors.
"""


class SlimeError(Exception):
    """Base class for all slime simulation errors."""


class SlimeConfigError(SlimeError, ValueError):
    """Invalid initialization parameters (grid size, agent count)."""


class SimulationStateError(SlimeError, RuntimeError):
    """Driver operation called before initialize()."""


def require_positive_int(name, value):
    """Return value as int, or raise SlimeConfigError if it is not > 0."""
    try:
        as_int = int(value)
    except (TypeError, ValueError):
        raise SlimeConfigError(f"{name} must be a positive integer, got {value!r}") from None
    if as_int != value or as_int <= 0:
        raise SlimeConfigError(f"{name} must be a positive integer, got {value!r}")
    return as_int
