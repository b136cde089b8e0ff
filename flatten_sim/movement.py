"""Agent movement, agent-agent collisions and wall reflection.

Movement is straight-line between collisions:
    center += actual_velocity × dt

Agent-agent collisions are detected after the move (disks overlap) and
resolved in continuous time. Both centers are parametrized linearly over
the tick, t ∈ [0, 1]:
    d(t) = a + t·b,  a = p₁ − n₁,  b = (p₂ − p₁) − (n₂ − n₁)
and the earliest t with |d(t)| = 2r solves
    |b|²t² + 2(a·b)t + |a|² − 4r² = 0
The moving agent is rewound to its position at t and sent straight away
from its partner at full speed.

Walls: the arena is [0, ARENA_WIDTH] × [0, ARENA_HEIGHT]. A disk that
crosses a wall is pushed back by the overlap and the matching velocity
component flips sign.
"""

from __future__ import annotations

import math
from typing import Optional

from flatten_sim.agent import Agent
from flatten_sim.vector import ZERO, Vector, sign

# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

ARENA_WIDTH = 1.0
ARENA_HEIGHT = 0.5


# ═══════════════════════════════════════════════════════════════════════
# STRAIGHT-LINE MOTION
# ═══════════════════════════════════════════════════════════════════════

def move(agent: Agent, time_progress: float) -> None:
    """Integrate the agent's position over one tick (in-place)."""
    velocity = agent.actual_velocity
    if not velocity.is_zero:
        agent.center = agent.center + velocity * time_progress


# ═══════════════════════════════════════════════════════════════════════
# AGENT-AGENT COLLISIONS
# ═══════════════════════════════════════════════════════════════════════

def time_of_impact(
    center: Vector,
    velocity: Vector,
    neighbor_center: Vector,
    neighbor_velocity: Vector,
    time_progress: float,
    squared_point_radius: float,
) -> float:
    """Fraction of the tick at which two disks first touched.

    Centers are the post-move positions; velocities the actual velocities
    used for the move. Returns 0 (resolve at the current position) when
    the solution is outside [0, 1] or undefined: near-identical
    velocities make |b|² tiny and t unreliable, and two stationary
    agents have no relative motion at all.
    """
    start = center - velocity * time_progress
    neighbor_start = neighbor_center - neighbor_velocity * time_progress

    a = start - neighbor_start
    b = (center - start) - (neighbor_center - neighbor_start)
    b_length_squared = b.length_squared()
    if b_length_squared == 0.0:
        return 0.0

    p = 2.0 * a.dot(b) / b_length_squared
    q = (a.length_squared() - 4.0 * squared_point_radius) / b_length_squared
    discriminant = p * p / 4.0 - q
    if not math.isfinite(discriminant) or discriminant < 0.0:
        return 0.0

    t = -p / 2.0 - math.sqrt(discriminant)
    if not math.isfinite(t) or t < 0.0 or t > 1.0:
        return 0.0
    return t


def deflected_velocity(
    connecting: Vector,
    velocity_abs: float,
    squared_velocity_abs: float,
) -> Optional[Vector]:
    """Velocity of magnitude ``velocity_abs`` pointing away from a partner.

    Args:
        connecting: Vector from the agent to its partner at impact.

    Returns:
        The new velocity, or None when the geometry is degenerate
        (coincident centers) and the old velocity should be kept.
    """
    length = math.hypot(connecting.x, connecting.y)
    if length == 0.0 or not math.isfinite(length):
        return None
    new_y = velocity_abs * abs(connecting.y) / length * -sign(connecting.y)
    new_x = math.sqrt(max(0.0, squared_velocity_abs - new_y * new_y)) * -sign(connecting.x)
    if not (math.isfinite(new_x) and math.isfinite(new_y)):
        return None
    return Vector(new_x, new_y)


# ═══════════════════════════════════════════════════════════════════════
# WALL COLLISIONS
# ═══════════════════════════════════════════════════════════════════════

def _axis_overlap(position: float, radius: float, upper: float) -> float:
    if position - radius < 0.0:
        return position - radius
    if position + radius > upper:
        return position + radius - upper
    return 0.0


def wall_offset(center: Vector, point_radius: float) -> Vector:
    """Signed overlap of a disk with the arena walls (zero if inside)."""
    return Vector(
        _axis_overlap(center.x, point_radius, ARENA_WIDTH),
        _axis_overlap(center.y, point_radius, ARENA_HEIGHT),
    )


def reflect_off_walls(agent: Agent, point_radius: float) -> bool:
    """Push the agent back inside and flip velocity components (in-place).

    Returns:
        True if the agent touched a wall.
    """
    offset = wall_offset(agent.center, point_radius)
    if offset == ZERO:
        return False

    if offset.x != 0.0:
        x = point_radius if offset.x < 0.0 else ARENA_WIDTH - point_radius
    else:
        x = agent.center.x
    if offset.y != 0.0:
        y = point_radius if offset.y < 0.0 else ARENA_HEIGHT - point_radius
    else:
        y = agent.center.y
    agent.center = Vector(x, y)

    agent.nominal_velocity = Vector(
        -agent.nominal_velocity.x if offset.x != 0.0 else agent.nominal_velocity.x,
        -agent.nominal_velocity.y if offset.y != 0.0 else agent.nominal_velocity.y,
    )
    return True
