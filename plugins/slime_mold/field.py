"""
Double-Buffered Trail Field

Two equally sized float32 grids plus a role index. One grid is read by
the current pass while the other is written, then the roles flip. The
kernels never read and write the same grid within a pass.

Layout is (height, width), indexed [row, col]. Field-local coordinates
put the origin at the grid centre: +X runs along columns, +Y along rows.
"""

import numpy as np

from .errors import require_positive_int


def position_to_cell(positions, width, height, clamp=True):
    """Field-local (N, 2) positions -> (rows, cols) integer index arrays.

    With clamp=False the indices may fall outside the grid (the sensors
    need that to apply their own edge policy).
    """
    positions = np.asarray(positions, dtype=np.float64)
    cols = np.floor(positions[:, 0] + width / 2.0).astype(np.intp)
    rows = np.floor(positions[:, 1] + height / 2.0).astype(np.intp)
    if clamp:
        np.clip(cols, 0, width - 1, out=cols)
        np.clip(rows, 0, height - 1, out=rows)
    return rows, cols


class TrailField:
    """Ping-pong pair of scalar grids."""

    def __init__(self, width, height):
        self.width = 0
        self.height = 0
        self._buffers = None
        self._read_idx = 0
        self.allocate(width, height)

    def allocate(self, width, height):
        """Zero-fill both buffers at the given extent (previous contents are lost)."""
        self.width = require_positive_int("width", width)
        self.height = require_positive_int("height", height)
        # Single (2, H, W) block, same shape as the taichi physarum grid
        self._buffers = np.zeros((2, self.height, self.width), dtype=np.float32)
        self._read_idx = 0

    resize = allocate

    @property
    def shape(self):
        return (self.height, self.width)

    @property
    def read_index(self):
        return self._read_idx

    def read_buffer(self):
        return self._buffers[self._read_idx]

    def write_buffer(self):
        return self._buffers[1 - self._read_idx]

    def swap(self):
        """Exchange read/write roles. Constant time, no data copied."""
        self._read_idx = 1 - self._read_idx

    def sample(self, buffer, x, y):
        """Value at integer cell (x=col, y=row), clamped to the grid edge."""
        col = min(max(int(x), 0), self.width - 1)
        row = min(max(int(y), 0), self.height - 1)
        return float(buffer[row, col])

    def cell_of(self, positions):
        """Map field-local (N, 2) positions to clamped (rows, cols) index arrays."""
        return position_to_cell(positions, self.width, self.height)

    def clear(self):
        self._buffers[:] = 0.0
