"""
Trail Palettes

Maps trail intensity [0, 1] to RGB. Each palette is a (256, 3) uint8
lookup table built from colour stops; tint_lut() builds a single-colour
ramp for the click-randomised trail colour.
"""

import colorsys

import numpy as np


def _interpolate_colors(stops, n=256):
    """
    Build a LUT by smoothstep interpolation between colour stops.

    Args:
        stops: List of (position, (r, g, b)) where position is [0, 1],
            ascending, first at 0 and last at 1
        n: Number of entries in the LUT
    """
    positions = np.array([s[0] for s in stops], dtype=np.float64)
    colors = np.array([s[1] for s in stops], dtype=np.float64)
    t = np.linspace(0.0, 1.0, n)

    j = np.clip(np.searchsorted(positions, t, side="right") - 1, 0, len(stops) - 2)
    span = positions[j + 1] - positions[j]
    frac = np.where(span > 0, (t - positions[j]) / np.where(span > 0, span, 1.0), 0.0)
    frac = frac * frac * (3 - 2 * frac)  # smoothstep
    rgb = colors[j] + frac[:, None] * (colors[j + 1] - colors[j])
    return np.clip(rgb, 0, 255).astype(np.uint8)


def amber():
    """Warm yellow veins on near-black, the look of a live plasmodium."""
    return _interpolate_colors([
        (0.00, (4, 3, 2)),
        (0.15, (45, 25, 5)),
        (0.40, (170, 100, 15)),
        (0.70, (245, 200, 60)),
        (1.00, (255, 250, 210)),
    ])


def bioluminescent():
    """Deep blue to cyan glow."""
    return _interpolate_colors([
        (0.00, (0, 2, 10)),
        (0.20, (5, 20, 60)),
        (0.45, (10, 110, 170)),
        (0.75, (60, 230, 220)),
        (1.00, (220, 255, 250)),
    ])


def moss():
    """Dark earth tones to vibrant green - organic growth."""
    return _interpolate_colors([
        (0.00, (5, 5, 2)),
        (0.20, (20, 30, 10)),
        (0.40, (40, 80, 20)),
        (0.60, (60, 160, 40)),
        (0.80, (100, 220, 80)),
        (1.00, (180, 255, 150)),
    ])


def ember():
    """Black through red to yellow-white."""
    return _interpolate_colors([
        (0.00, (0, 0, 0)),
        (0.20, (60, 5, 0)),
        (0.45, (190, 35, 5)),
        (0.70, (245, 130, 20)),
        (1.00, (255, 245, 190)),
    ])


def frost():
    """Cold violet to white lace."""
    return _interpolate_colors([
        (0.00, (2, 0, 8)),
        (0.25, (30, 15, 80)),
        (0.55, (120, 110, 220)),
        (0.80, (200, 210, 255)),
        (1.00, (255, 255, 255)),
    ])


def mono():
    """Plain white trail on black."""
    return _interpolate_colors([(0.0, (0, 0, 0)), (1.0, (255, 255, 255))])


COLORMAPS = {
    "amber": amber,
    "bioluminescent": bioluminescent,
    "moss": moss,
    "ember": ember,
    "frost": frost,
    "mono": mono,
}

COLORMAP_ORDER = list(COLORMAPS.keys())


def get_colormap(name):
    """Get a palette LUT (256, 3) uint8 array by name."""
    return COLORMAPS[name]()


def tint_lut(color, n=256):
    """Linear black -> color ramp. color is (r, g, b) in 0-255."""
    return _interpolate_colors([(0.0, (0, 0, 0)), (1.0, tuple(color))], n)


def random_trail_color(rng):
    """A saturated, bright colour drawn from rng (numpy Generator)."""
    h = float(rng.uniform(0.0, 1.0))
    s = float(rng.uniform(0.5, 0.9))
    r, g, b = colorsys.hsv_to_rgb(h, s, 1.0)
    return (int(r * 255), int(g * 255), int(b * 255))


def apply_colormap(field, lut):
    """
    Apply a palette LUT to a 2D float field.

    Args:
        field: 2D numpy array with values in [0, 1]
        lut: (256, 3) uint8 lookup table

    Returns:
        (H, W, 3) uint8 RGB image
    """
    indices = (np.clip(field, 0, 1) * 255).astype(np.uint8)
    return lut[indices]
