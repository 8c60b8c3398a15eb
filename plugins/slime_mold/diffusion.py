"""
Fade-and-diffuse pass over the trail field.

Every cell becomes the mean of itself and its neighbours (4 for
von Neumann, 8 for Moore) read from the previous frame, times the decay
factor. Edges are clamped: a border cell's missing neighbours repeat the
border value. One pass both blurs and fades the trail.
"""

import numpy as np


def _pad_edge(field, out):
    """Copy field into the (H+2, W+2) buffer out with a clamped 1-cell border.

    Same pad+slice idea as the Gray-Scott laplacian, edge-clamped instead
    of wrapped.
    """
    out[1:-1, 1:-1] = field
    out[0, 1:-1] = field[0, :]
    out[-1, 1:-1] = field[-1, :]
    out[:, 0] = out[:, 1]
    out[:, -1] = out[:, -2]
    return out


def fade_and_diffuse(read, write, decay, neighborhood="von_neumann", padded=None):
    """Write decay * local mean of read into write.

    Args:
        read: (H, W) source grid, never modified
        write: (H, W) destination grid, fully overwritten
        decay: fade factor in (0, 1]
        neighborhood: "von_neumann" (5 samples) or "moore" (9 samples)
        padded: optional (H+2, W+2) scratch buffer reused across frames

    Returns:
        write
    """
    if np.may_share_memory(read, write):
        raise ValueError("fade_and_diffuse needs distinct read and write buffers")
    h, w = read.shape
    if padded is None or padded.shape != (h + 2, w + 2):
        padded = np.empty((h + 2, w + 2), dtype=read.dtype)
    p = _pad_edge(read, padded)

    # Cardinal neighbours + centre
    np.add(p[:-2, 1:-1], p[2:, 1:-1], out=write)
    write += p[1:-1, :-2]
    write += p[1:-1, 2:]
    write += read
    samples = 5

    if neighborhood == "moore":
        write += p[:-2, :-2]
        write += p[:-2, 2:]
        write += p[2:, :-2]
        write += p[2:, 2:]
        samples = 9

    write *= decay / samples
    return write


class Diffuser:
    """Holds the padded scratch buffer so the per-frame pass never allocates."""

    def __init__(self, shape=None):
        self._padded = None
        if shape is not None:
            self._ensure(shape)

    def _ensure(self, shape):
        h, w = shape
        if self._padded is None or self._padded.shape != (h + 2, w + 2):
            self._padded = np.empty((h + 2, w + 2), dtype=np.float32)
        return self._padded

    def __call__(self, read, write, decay, neighborhood="von_neumann"):
        padded = self._ensure(read.shape)
        if padded.dtype != read.dtype:
            padded = None
        return fade_and_diffuse(read, write, decay, neighborhood, padded=padded)
