"""Tests for flatten_sim.movement — motion, impacts and wall reflection.

Tests:
  1. Straight-line move uses the actual (state-dependent) velocity
  2. Time of impact for head-on and degenerate configurations
  3. Deflection heads straight away from the partner at full speed
  4. Wall reflection clamps the disk inside and flips velocity
"""

import math

import pytest

from flatten_sim.agent import Agent
from flatten_sim.movement import (
    ARENA_HEIGHT,
    ARENA_WIDTH,
    deflected_velocity,
    move,
    reflect_off_walls,
    time_of_impact,
    wall_offset,
)
from flatten_sim.types import State
from flatten_sim.vector import ZERO, Vector

R = 0.009
R2 = R * R
V = 0.15
DT = 0.05


# ═══════════════════════════════════════════════════════════════════════
# STRAIGHT-LINE MOTION
# ═══════════════════════════════════════════════════════════════════════

class TestMove:
    def test_moves_by_velocity_times_dt(self):
        a = Agent(center=Vector(0.5, 0.25), nominal_velocity=Vector(V, 0.0))
        move(a, DT)
        assert a.center.x == pytest.approx(0.5075)
        assert a.center.y == 0.25

    def test_infectious_slowed(self):
        a = Agent(center=Vector(0.5, 0.25), nominal_velocity=Vector(V, 0.0),
                  state=State.infectious(0.0), infectious_speed_factor=0.5)
        move(a, DT)
        assert a.center.x == pytest.approx(0.50375)

    def test_dead_do_not_move(self):
        a = Agent(center=Vector(0.5, 0.25), nominal_velocity=Vector(V, 0.0),
                  state=State.dead())
        move(a, DT)
        assert a.center == Vector(0.5, 0.25)


# ═══════════════════════════════════════════════════════════════════════
# AGENT-AGENT COLLISIONS
# ═══════════════════════════════════════════════════════════════════════

class TestTimeOfImpact:
    def test_head_on(self):
        # Pre-move centers 0.02 apart, closing at 0.3/s: touch at t = 2/15
        t = time_of_impact(
            Vector(0.3075, 0.25), Vector(V, 0.0),
            Vector(0.3125, 0.25), Vector(-V, 0.0),
            DT, R2,
        )
        assert t == pytest.approx(2.0 / 15.0)

    def test_moving_into_stationary(self):
        # Pre-move 0.0185 apart, closing at 0.15/s: touch after 0.0005 of 0.0075
        t = time_of_impact(
            Vector(0.5090, 0.25), Vector(V, 0.0),
            Vector(0.5200, 0.25), ZERO,
            DT, R2,
        )
        assert t == pytest.approx(0.0005 / 0.0075)

    def test_no_relative_motion(self):
        t = time_of_impact(Vector(0.5, 0.25), Vector(V, 0.0),
                           Vector(0.51, 0.25), Vector(V, 0.0), DT, R2)
        assert t == 0.0

    def test_both_stationary(self):
        assert time_of_impact(Vector(0.5, 0.25), ZERO,
                              Vector(0.51, 0.25), ZERO, DT, R2) == 0.0

    def test_already_overlapping(self):
        # Overlap at the start of the tick → t < 0 → resolve in place
        t = time_of_impact(Vector(0.5075, 0.25), Vector(V, 0.0),
                           Vector(0.505, 0.25), ZERO, DT, R2)
        assert t == 0.0

    def test_missed(self):
        # Passing at a lateral distance larger than 2r
        t = time_of_impact(Vector(0.5075, 0.25), Vector(V, 0.0),
                           Vector(0.505, 0.27), ZERO, DT, R2)
        assert t == 0.0


class TestDeflectedVelocity:
    def test_away_along_x(self):
        v = deflected_velocity(Vector(0.018, 0.0), V, V * V)
        assert v.x == pytest.approx(-V)
        assert v.y == 0.0

    def test_away_diagonal(self):
        v = deflected_velocity(Vector(-0.01, 0.01), V, V * V)
        assert v.x == pytest.approx(V / math.sqrt(2))
        assert v.y == pytest.approx(-V / math.sqrt(2))
        assert v.length_squared() == pytest.approx(V * V)

    def test_vertical_contact(self):
        v = deflected_velocity(Vector(0.0, -0.018), V, V * V)
        assert v.y == pytest.approx(V)
        assert v.x == pytest.approx(0.0)

    def test_coincident_centers(self):
        assert deflected_velocity(ZERO, V, V * V) is None


# ═══════════════════════════════════════════════════════════════════════
# WALL COLLISIONS
# ═══════════════════════════════════════════════════════════════════════

class TestWalls:
    def test_offset_inside_is_zero(self):
        assert wall_offset(Vector(0.5, 0.25), R) == ZERO

    def test_offset_signs(self):
        offset = wall_offset(Vector(0.005, 0.495), R)
        assert offset.x == pytest.approx(-0.004)
        assert offset.y == pytest.approx(0.004)

    def test_reflect_left_wall(self):
        a = Agent(center=Vector(0.005, 0.25), nominal_velocity=Vector(-V, 0.1))
        assert reflect_off_walls(a, R)
        assert a.center == Vector(R, 0.25)
        assert a.nominal_velocity == Vector(V, 0.1)

    def test_reflect_corner(self):
        a = Agent(center=Vector(0.995, 0.495), nominal_velocity=Vector(0.1, 0.1))
        assert reflect_off_walls(a, R)
        assert a.center == Vector(ARENA_WIDTH - R, ARENA_HEIGHT - R)
        assert a.nominal_velocity == Vector(-0.1, -0.1)

    def test_inside_untouched(self):
        a = Agent(center=Vector(0.5, 0.25), nominal_velocity=Vector(V, 0.0))
        assert not reflect_off_walls(a, R)
        assert a.center == Vector(0.5, 0.25)
        assert a.nominal_velocity == Vector(V, 0.0)
