"""
Trail Renderer

Turns the scalar trail field into an RGB frame: exposure, palette LUT
(or a single trail-colour ramp), brightness, a soft bloom halo and an
optional overlay of the agents themselves. Rows are flipped on output so
field +Y points up on screen.

No pygame here; viewer.py, the CLI snapshot and the video pipeline all
share this.
"""

import numpy as np
from scipy.ndimage import gaussian_filter, zoom

from .colormaps import apply_colormap, get_colormap, tint_lut
from .field import position_to_cell


class TrailRenderer:
    """Field -> (H, W, 3) uint8 RGB."""

    def __init__(self, palette="amber", exposure=2.5, brightness=1.0,
                 bloom=0.35, show_agents=False):
        self.palette = palette
        self.lut = get_colormap(palette)
        self.trail_color = None
        self.exposure = exposure
        self.brightness = brightness
        self.bloom = bloom
        self.show_agents = show_agents
        self.agent_color = np.array([255, 255, 255], dtype=np.uint8)

    def set_palette(self, name):
        self.palette = name
        self.trail_color = None
        self.lut = get_colormap(name)

    def set_trail_color(self, color):
        """Render as a black -> color ramp instead of the palette."""
        self.trail_color = tuple(int(c) for c in color)
        self.lut = tint_lut(self.trail_color)

    def render(self, field, positions=None):
        """Render field (H, W) float to (H, W, 3) uint8.

        Args:
            field: trail grid in [0, deposit_value]
            positions: optional (N, 2) agent positions for the overlay
        """
        world = np.asarray(field, dtype=np.float32) * (self.exposure * self.brightness)
        np.clip(world, 0.0, 1.0, out=world)
        rgb = apply_colormap(world, self.lut)

        if self.bloom > 0:
            rgb = apply_bloom(rgb, intensity=self.bloom)

        if self.show_agents and positions is not None and len(positions):
            h, w = world.shape
            rows, cols = position_to_cell(positions, w, h)
            rgb[rows, cols] = self.agent_color

        # Field row 0 is -Y; screen row 0 is the top
        return np.ascontiguousarray(rgb[::-1])

    def render_float(self, field, positions=None):
        """Same as render(), as (H, W, 3) float32 in [0, 1]."""
        return self.render(field, positions).astype(np.float32) / 255.0


def apply_bloom(rgb, sigma=12, intensity=0.35, factor=4):
    """Coloured glow halo via downsample-blur-upsample additive blend."""
    h, w = rgb.shape[:2]
    factor = max(1, min(factor, h, w))
    small = rgb[::factor, ::factor, :].astype(np.float32)
    small_sigma = max(1.0, sigma / factor)
    glow = gaussian_filter(small, [small_sigma, small_sigma, 0])

    np.multiply(glow, intensity, out=glow)
    np.clip(glow, 0, 255, out=glow)
    glow_u8 = glow.astype(np.uint8)

    glow_up = np.repeat(np.repeat(glow_u8, factor, axis=0), factor, axis=1)[:h, :w, :]

    # Saturating add via uint16
    return np.minimum(rgb.astype(np.uint16) + glow_up, 255).astype(np.uint8)


def scale_frame(rgb, width, height):
    """Resize an (H, W, 3) frame to (height, width, 3) with bilinear zoom."""
    h, w = rgb.shape[:2]
    if (h, w) == (height, width):
        return rgb
    scaled = zoom(rgb, (height / h, width / w, 1), order=1)
    # zoom rounds the output shape; pin it to the requested size
    out = np.zeros((height, width, rgb.shape[2]), dtype=rgb.dtype)
    hh = min(height, scaled.shape[0])
    ww = min(width, scaled.shape[1])
    out[:hh, :ww] = scaled[:hh, :ww]
    if hh < height:
        out[hh:, :ww] = scaled[hh - 1:hh, :ww]
    if ww < width:
        out[:, ww:] = out[:, ww - 1:ww]
    return out
