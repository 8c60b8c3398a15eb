"""
Sensing & Steering Kernel

Per-agent update, applied to the whole pool at once:

  1. sense the trail ahead, ahead-left and ahead-right
  2. pick a turn from the three weights
  3. move forward at move_speed
  4. get pushed away from the pointer perturbation (probabilistic)
  5. bounce off the field edge at a randomised angle
  6. commit position and heading
  7. deposit onto the cell the agent was standing on before moving

Sensing reads the grid the fade/diffuse pass just wrote, and deposits go
into that same grid. All weights are taken before any deposit lands, so
agents never see each other's writes from the current frame.

Heading convention: +angle turns from +X toward +Y. "Left" is the
heading + sensor_angle side, "right" the heading - sensor_angle side.
"""

import enum
import math
from collections import namedtuple

import numpy as np

from .agents import SALT_BOUNCE, SALT_PUSH, SALT_TIE, SALT_TURN
from .field import position_to_cell


class TurnDecision(enum.IntEnum):
    NO_TURN = 0
    TURN_RANDOM = 1
    TURN_RIGHT = 2
    TURN_LEFT = 3


# Distance a bounced agent is placed inside the edge it crossed
BOUNDARY_INSET = 0.5


class SensorTable:
    """Summed-area table over the trail for O(1) square-window sums.

    The grid is padded by twice the sensor half-width so every window whose
    centre is within half-width of the grid can be read without bounds
    checks. The "clamp" policy pads by repeating edge cells (every sampled
    coordinate is clamped to the grid); "zero" pads with zeros (outside
    cells contribute nothing).
    """

    def __init__(self, field, sensor_size, edge_policy="zero"):
        self.k = int(sensor_size)
        self.height, self.width = field.shape
        self.edge_policy = edge_policy
        margin = 2 * self.k
        self.margin = margin
        mode = "edge" if edge_policy == "clamp" else "constant"
        padded = np.pad(field.astype(np.float64), margin, mode=mode)
        self.table = np.zeros((padded.shape[0] + 1, padded.shape[1] + 1), dtype=np.float64)
        np.cumsum(np.cumsum(padded, axis=0), axis=1, out=self.table[1:, 1:])

    def window_sum(self, rows, cols):
        """Sum of the (2k+1)^2 window centred on each (row, col), any integers."""
        k = self.k
        r = np.clip(rows, -k, self.height - 1 + k)
        c = np.clip(cols, -k, self.width - 1 + k)
        r0 = r + self.margin - k
        c0 = c + self.margin - k
        r1 = r + self.margin + k + 1
        c1 = c + self.margin + k + 1
        t = self.table
        sums = t[r1, c1] - t[r0, c1] - t[r1, c0] + t[r0, c0]
        if self.edge_policy != "clamp":
            # Centres pulled in by the clip above would wrongly pick up
            # border cells; anything that far out sees nothing.
            outside = (rows != r) | (cols != c)
            sums[outside] = 0.0
        return sums


SenseState = namedtuple(
    "SenseState", ["positions", "headings", "table", "sensor_offset", "width", "height"])


def sense_at(angle_offset, state):
    """Trail weight sensed at heading + angle_offset, one value per agent."""
    theta = state.headings + angle_offset
    probes = np.empty_like(state.positions)
    probes[:, 0] = state.positions[:, 0] + state.sensor_offset * np.cos(theta)
    probes[:, 1] = state.positions[:, 1] + state.sensor_offset * np.sin(theta)
    rows, cols = position_to_cell(probes, state.width, state.height, clamp=False)
    return state.table.window_sum(rows, cols)


def decide_turn(forward, left, right):
    """Classify each agent's turn from its three sensor weights.

    forward >= both sides          -> NO_TURN
    forward <  both sides          -> TURN_RANDOM
    right sensor beats forward     -> TURN_RIGHT
    left sensor beats forward      -> TURN_LEFT

    Scalar inputs return a single TurnDecision, arrays an int8 array.
    """
    forward = np.asarray(forward)
    left = np.asarray(left)
    right = np.asarray(right)
    keep = (forward >= left) & (forward >= right)
    weakest = (forward < left) & (forward < right)
    one_side = ~keep & ~weakest

    decision = np.full(np.broadcast(forward, left, right).shape,
                       TurnDecision.NO_TURN, dtype=np.int8)
    decision[weakest] = TurnDecision.TURN_RANDOM
    decision[one_side & (right > forward)] = TurnDecision.TURN_RIGHT
    decision[one_side & (left > forward)] = TurnDecision.TURN_LEFT
    if decision.ndim == 0:
        return TurnDecision(int(decision))
    return decision


def apply_turn(headings, decision, left, right, turn_rate, dt, turn_draw, tie_draw):
    """New headings after applying each agent's decision.

    Every turn is turn_rate * u * dt radians, u in [0, 1) per agent. A
    TURN_RANDOM agent turns toward the stronger side, flipping a coin when
    both sides are equal.
    """
    sign = np.zeros(headings.shape, dtype=np.float64)
    sign[decision == TurnDecision.TURN_LEFT] = 1.0
    sign[decision == TurnDecision.TURN_RIGHT] = -1.0

    random_turn = decision == TurnDecision.TURN_RANDOM
    if random_turn.any():
        toward = np.sign(left - right)
        coin = np.where(tie_draw < 0.5, -1.0, 1.0)
        toward = np.where(toward == 0.0, coin, toward)
        sign = np.where(random_turn, toward, sign)

    return headings + sign * turn_rate * turn_draw * dt


def deflect(positions, headings, perturbation, distance, push_draw):
    """Push agents near the perturbation point directly away from it, in place.

    Inside the radius the push chance is (1 - d/radius)^3: certain at the
    point, fading to nothing at the rim. This is a nudge, not a wall.
    """
    if perturbation is None or not perturbation.active:
        return positions
    dx = positions[:, 0] - perturbation.x
    dy = positions[:, 1] - perturbation.y
    dist_sq = dx * dx + dy * dy
    near = dist_sq < perturbation.radius ** 2
    if not near.any():
        return positions

    dist = np.sqrt(dist_sq)
    chance = (1.0 - dist / perturbation.radius) ** 3
    push = near & (push_draw < chance)

    # An agent sitting exactly on the point is pushed along its heading
    on_point = dist == 0.0
    safe = np.where(on_point, 1.0, dist)
    ux = np.where(on_point, np.cos(headings), dx / safe)
    uy = np.where(on_point, np.sin(headings), dy / safe)
    positions[push, 0] += ux[push] * distance
    positions[push, 1] += uy[push] * distance
    return positions


def reflect_at_bounds(positions, headings, width, height, bounce_draw):
    """Clamp escaped agents back inside and send them off at a random angle.

    Target headings: pi after a +X exit, 0 after -X, -pi/2 after +Y,
    pi/2 after -Y (Y wins if both axes crossed). The new heading is the
    target plus an offset in [-1, 1) radians.

    Modifies positions in place and returns the new headings.
    """
    lim_x = width / 2.0
    lim_y = height / 2.0
    inset_x = min(BOUNDARY_INSET, lim_x)
    inset_y = min(BOUNDARY_INSET, lim_y)
    x = positions[:, 0]
    y = positions[:, 1]
    hit = np.zeros(len(positions), dtype=bool)
    target = np.zeros(len(positions), dtype=np.float64)

    for mask, edge, angle in (
            (x > lim_x, lim_x - inset_x, math.pi),
            (x < -lim_x, -lim_x + inset_x, 0.0)):
        x[mask] = edge
        target[mask] = angle
        hit |= mask
    for mask, edge, angle in (
            (y > lim_y, lim_y - inset_y, -math.pi / 2),
            (y < -lim_y, -lim_y + inset_y, math.pi / 2)):
        y[mask] = edge
        target[mask] = angle
        hit |= mask

    offset = bounce_draw * 2.0 - 1.0
    return np.where(hit, target + offset, headings)


def update_agents(pool, trail, params, perturbation, dt, noise):
    """Run one steering pass over the pool and deposit into trail.

    Args:
        pool: AgentPool, updated in place
        trail: (H, W) grid just written by the fade/diffuse pass; sensed,
            then deposited into
        params: SlimeParams
        perturbation: Perturbation or None
        dt: elapsed seconds for this frame
        noise: callable(salt) -> per-agent uniform [0, 1) array
    """
    if pool.count == 0:
        return
    height, width = trail.shape

    table = SensorTable(trail, params.sensor_size, params.edge_policy)
    state = SenseState(pool.positions, pool.headings, table,
                       params.sensor_offset, width, height)
    forward = sense_at(0.0, state)
    left = sense_at(params.sensor_angle, state)
    right = sense_at(-params.sensor_angle, state)

    decision = decide_turn(forward, left, right)
    headings = apply_turn(pool.headings, decision, left, right,
                          params.turn_rate, dt, noise(SALT_TURN), noise(SALT_TIE))

    previous = pool.positions.copy()
    step_len = params.move_speed * dt
    moved = previous.copy()
    moved[:, 0] += step_len * np.cos(headings)
    moved[:, 1] += step_len * np.sin(headings)

    if perturbation is not None and perturbation.active:
        deflect(moved, headings, perturbation, step_len, noise(SALT_PUSH))

    headings = reflect_at_bounds(moved, headings, width, height, noise(SALT_BOUNCE))

    pool.positions[:] = moved
    pool.headings[:] = headings

    # Mark the cell the agent left, not the one it is heading into.
    # Duplicate cells are fine: every writer stores the same value.
    rows, cols = position_to_cell(previous, width, height)
    trail[rows, cols] = params.deposit_value
