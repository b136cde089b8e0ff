"""Initial population — layout, headings and the index case.

Layout:
  The arena is split into a near-square grid of boxes (twice as many
  columns as rows, matching the 2:1 arena), separated by gaps of at
  least ``min_point_spacing`` radii plus two radii, with a margin of
  four radii to the walls. One box per agent is kept (shuffled, then
  truncated). Inside each box up to 10 candidate centers are drawn and
  the one farthest from all previously placed centers wins; the search
  stops early once a candidate is at least ~2.24 diameters
  (distance² ≥ 20 r²) from everyone.

Composition:
  Agent 0 is the infectious index case. It moves unless nobody moves,
  and is protected only if everyone in its category is. The remaining
  agents fill four susceptible buckets (protected-moving,
  unprotected-moving, protected-resting, unprotected-resting) from the
  rounded configured shares, minus the slot taken by the index case.
"""

from __future__ import annotations

import logging
import math
from typing import List, Tuple

import numpy as np

from flatten_sim.agent import Agent
from flatten_sim.config import SimulationConfig
from flatten_sim.disease import initial_infectious
from flatten_sim.movement import ARENA_HEIGHT, ARENA_WIDTH
from flatten_sim.types import State
from flatten_sim.vector import ZERO, Vector

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════
# CONSTANTS
# ═══════════════════════════════════════════════════════════════════════

MAX_ATTEMPTS_PER_CENTER = 10
AIMED_DISTANCE_SQUARED_RADII = 20.0   # (2 + ~2.5)² ≈ 20 radii²
MIN_SIDE_SPACING_RADII = 3.0          # Gap between disk edge and wall
SPACING_RELAXATION_STEP = 0.5         # Radii

Box = Tuple[Tuple[float, float], Tuple[float, float]]


class LayoutError(ValueError):
    """No box layout can hold the requested number of agents."""


# ═══════════════════════════════════════════════════════════════════════
# LAYOUT
# ═══════════════════════════════════════════════════════════════════════

def box_counts(number_of_points: int) -> Tuple[int, int]:
    """Columns × rows of the placement grid, at least ``number_of_points`` boxes."""
    y_unrounded = math.sqrt(number_of_points / 2.0)
    x_count = int(2.0 * y_unrounded)
    y_count = int(y_unrounded)

    if x_count * y_count < number_of_points:
        # Widen first; the product changes least that way
        x_count += 1
        if x_count * y_count < number_of_points:
            x_count -= 1
            y_count += 1
        if x_count * y_count < number_of_points:
            x_count += 1
    return x_count, y_count


def center_boxes(
    number_of_points: int,
    point_radius: float,
    rng: np.random.Generator,
    min_point_spacing: float = 1.0,
) -> List[Box]:
    """One randomly chosen placement box per agent.

    Args:
        number_of_points: Number of agents to place.
        point_radius: Agent radius (arena units).
        rng: Placement stream.
        min_point_spacing: Minimum gap between boxes, in radii. Relaxed
            in steps of 0.5 down to 1 if the boxes don't fit.

    Returns:
        List of ((x_min, x_max), (y_min, y_max)) of length number_of_points.

    Raises:
        LayoutError: If no positive box size exists even at the minimum
            spacing.
    """
    if number_of_points < 1:
        return []

    x_count, y_count = box_counts(number_of_points)
    side_margin = (MIN_SIDE_SPACING_RADII + 1.0) * point_radius

    spacing = min_point_spacing
    while True:
        separator = (spacing + 2.0) * point_radius
        x_length = (ARENA_WIDTH - (x_count - 1) * separator - 2.0 * side_margin) / x_count
        y_length = (ARENA_HEIGHT - (y_count - 1) * separator - 2.0 * side_margin) / y_count
        if x_length > 0.0 and y_length > 0.0:
            break
        if spacing > 1.0:
            spacing -= SPACING_RELAXATION_STEP
            logger.debug("Relaxing point spacing to %.1f radii", spacing)
            continue
        raise LayoutError(
            f"Too many points to fit into the arena: {number_of_points} agents "
            f"need a {x_count}×{y_count} grid"
        )

    boxes: List[Box] = []
    for ix in range(x_count):
        x0 = side_margin + ix * (x_length + separator)
        for iy in range(y_count):
            y0 = side_margin + iy * (y_length + separator)
            boxes.append(((x0, x0 + x_length), (y0, y0 + y_length)))

    order = rng.permutation(len(boxes))[:number_of_points]
    return [boxes[i] for i in order]


def generate_centers(
    boxes: List[Box],
    squared_point_radius: float,
    rng: np.random.Generator,
) -> List[Vector]:
    """Greedy blue-noise placement: one center per box."""
    aimed_distance_squared = AIMED_DISTANCE_SQUARED_RADII * squared_point_radius
    placed = np.empty((len(boxes), 2), dtype=np.float64)
    centers: List[Vector] = []

    for n, ((x0, x1), (y0, y1)) in enumerate(boxes):
        best = None
        best_distance_squared = -1.0
        for _ in range(MAX_ATTEMPTS_PER_CENTER):
            candidate = (rng.uniform(x0, x1), rng.uniform(y0, y1))
            if n == 0:
                best = candidate
                break
            diff = placed[:n] - candidate
            min_distance_squared = float(np.min(np.einsum('ij,ij->i', diff, diff)))
            if min_distance_squared > best_distance_squared:
                best = candidate
                best_distance_squared = min_distance_squared
            if min_distance_squared >= aimed_distance_squared:
                break

        placed[n] = best
        centers.append(Vector(float(best[0]), float(best[1])))

    return centers


def random_velocity(velocity_abs: float, rng: np.random.Generator) -> Vector:
    """Full-speed velocity in a uniformly random direction."""
    angle = rng.uniform(0.0, 2.0 * math.pi)
    return Vector(velocity_abs * math.cos(angle), velocity_abs * math.sin(angle))


# ═══════════════════════════════════════════════════════════════════════
# COMPOSITION
# ═══════════════════════════════════════════════════════════════════════

def _round_half_up(value: float) -> int:
    """Round a non-negative value with halves going up (2.5 → 3)."""
    return int(math.floor(value + 0.5))


def bucket_counts(config: SimulationConfig) -> Tuple[bool, bool, List[int]]:
    """Split the population into the index case and four buckets.

    Returns:
        Tuple of (index case moves, index case is protected,
        [protected-moving, unprotected-moving, protected-resting,
        unprotected-resting] counts excluding the index case).
    """
    behavior = config.behavior
    n = behavior.number_of_points

    first_is_moving = behavior.moving_share != 0.0
    if first_is_moving:
        first_is_protected = behavior.protection_share_among_moving == 1.0
    else:
        first_is_protected = behavior.protection_share_among_resting == 1.0

    moving = _round_half_up(behavior.moving_share * n)
    resting = n - moving
    protected_moving = _round_half_up(behavior.protection_share_among_moving * moving)
    protected_resting = _round_half_up(behavior.protection_share_among_resting * resting)
    counts = [
        protected_moving,
        moving - protected_moving,
        protected_resting,
        resting - protected_resting,
    ]

    # Take the index case's slot from its own bucket, else from the nearest
    # non-empty one
    if first_is_moving and moving > 0:
        preferred = [0, 1] if first_is_protected else [1, 0]
    else:
        preferred = [2, 3] if first_is_protected else [3, 2]
    for idx in preferred + [0, 1, 2, 3]:
        if counts[idx] > 0:
            counts[idx] -= 1
            break

    return first_is_moving, first_is_protected, counts


def generate_population(
    config: SimulationConfig,
    placement_rng: np.random.Generator,
    motion_rng: np.random.Generator,
    disease_rng: np.random.Generator,
) -> List[Agent]:
    """Create the initial agents: one infectious index case, rest susceptible.

    Raises:
        LayoutError: If the agents cannot be laid out in the arena.
    """
    n = config.behavior.number_of_points
    if n < 1:
        return []

    fixed = config.fixed
    speed_factor = config.behavior.infectious_speed_reduction_factor
    boxes = center_boxes(n, fixed.point_radius, placement_rng)
    centers = generate_centers(boxes, fixed.squared_point_radius, placement_rng)

    first_is_moving, first_is_protected, counts = bucket_counts(config)
    agents = [
        Agent(
            center=centers[0],
            nominal_velocity=(random_velocity(fixed.velocity_abs, motion_rng)
                              if first_is_moving else ZERO),
            is_fully_protected=first_is_protected,
            state=initial_infectious(config, disease_rng),
            infectious_speed_factor=speed_factor,
        )
    ]

    index = 1
    for bucket, count in enumerate(counts):
        is_moving = bucket <= 1
        is_protected = bucket in (0, 2)
        for _ in range(count):
            agents.append(Agent(
                center=centers[index],
                nominal_velocity=(random_velocity(fixed.velocity_abs, motion_rng)
                                  if is_moving else ZERO),
                is_fully_protected=is_protected,
                state=State.susceptible(),
                infectious_speed_factor=speed_factor,
            ))
            index += 1

    logger.debug(
        "Seeded %d agents (index case moving=%s protected=%s, buckets=%s)",
        len(agents), first_is_moving, first_is_protected, counts,
    )
    return agents
