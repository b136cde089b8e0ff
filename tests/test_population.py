"""Tests for flatten_sim.population — layout, buckets and the index case."""

import math

import numpy as np
import pytest

from flatten_sim.config import make_config
from flatten_sim.movement import ARENA_HEIGHT, ARENA_WIDTH
from flatten_sim.population import (
    LayoutError,
    box_counts,
    bucket_counts,
    center_boxes,
    generate_centers,
    generate_population,
    random_velocity,
)
from flatten_sim.rng import create_rng_streams
from flatten_sim.types import DiseaseState

R = 0.009


# ═══════════════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════════════

def populate(config, seed=42):
    rngs = create_rng_streams(seed)
    return generate_population(config, rngs['placement'], rngs['motion'],
                               rngs['disease'])


# ═══════════════════════════════════════════════════════════════════════
# LAYOUT
# ═══════════════════════════════════════════════════════════════════════

class TestBoxCounts:
    @pytest.mark.parametrize("n, expected", [
        (150, (17, 9)), (200, (20, 10)), (5, (3, 2)),
    ])
    def test_grid(self, n, expected):
        assert box_counts(n) == expected

    @pytest.mark.parametrize("n", [5, 17, 50, 99, 150, 199, 200])
    def test_enough_boxes(self, n):
        x, y = box_counts(n)
        assert x * y >= n


class TestCenterBoxes:
    def test_one_box_per_agent(self):
        boxes = center_boxes(150, R, np.random.default_rng(1))
        assert len(boxes) == 150
        assert len(set(boxes)) == 150

    def test_boxes_inside_margins(self):
        for (x0, x1), (y0, y1) in center_boxes(200, R, np.random.default_rng(1)):
            assert 0 < x0 < x1 < ARENA_WIDTH
            assert 0 < y0 < y1 < ARENA_HEIGHT
            assert x0 >= 4 * R - 1e-12
            assert y1 <= ARENA_HEIGHT - 4 * R + 1e-12

    def test_too_many_points(self):
        with pytest.raises(LayoutError):
            center_boxes(5000, R, np.random.default_rng(1))

    def test_layout_error_is_value_error(self):
        assert issubclass(LayoutError, ValueError)


class TestGenerateCenters:
    def test_centers_in_boxes_without_overlap(self):
        rng = np.random.default_rng(3)
        boxes = center_boxes(200, R, rng)
        centers = generate_centers(boxes, R * R, rng)
        for c, ((x0, x1), (y0, y1)) in zip(centers, boxes):
            assert x0 <= c.x <= x1
            assert y0 <= c.y <= y1
        pts = np.array([(c.x, c.y) for c in centers])
        diff = pts[:, None, :] - pts[None, :, :]
        d2 = np.einsum('ijk,ijk->ij', diff, diff)
        np.fill_diagonal(d2, np.inf)
        assert d2.min() >= 4 * R * R


class TestRandomVelocity:
    def test_full_speed(self):
        rng = np.random.default_rng(5)
        for _ in range(100):
            v = random_velocity(0.15, rng)
            assert math.hypot(v.x, v.y) == pytest.approx(0.15)


# ═══════════════════════════════════════════════════════════════════════
# COMPOSITION
# ═══════════════════════════════════════════════════════════════════════

class TestBucketCounts:
    def test_everyone_moving(self):
        assert bucket_counts(make_config()) == (True, False, [0, 149, 0, 0])

    def test_half_moving_quarter_protected(self):
        config = make_config(moving_percentage=50,
                             protection_percentage_among_moving=25,
                             protection_percentage_among_resting=25)
        assert bucket_counts(config) == (True, False, [19, 55, 19, 56])

    def test_nobody_moving(self):
        config = make_config(moving_percentage=0)
        assert bucket_counts(config) == (False, False, [0, 0, 0, 149])

    def test_index_case_protected_only_at_full_share(self):
        config = make_config(protection_percentage_among_moving=100)
        assert bucket_counts(config) == (True, True, [149, 0, 0, 0])

    def test_falls_back_to_sibling_bucket(self):
        config = make_config(number_of_points=5,
                             protection_percentage_among_moving=95)
        assert bucket_counts(config) == (True, False, [4, 0, 0, 0])

    def test_total_is_population_minus_index_case(self):
        config = make_config(number_of_points=37, moving_percentage=33,
                             protection_percentage_among_moving=50,
                             protection_percentage_among_resting=10)
        assert sum(bucket_counts(config)[2]) == 36


class TestGeneratePopulation:
    def test_single_index_case(self):
        agents = populate(make_config())
        assert len(agents) == 150
        assert agents[0].state.kind == DiseaseState.INFECTIOUS
        assert all(a.state.kind == DiseaseState.SUSCEPTIBLE for a in agents[1:])

    def test_moving_share(self):
        agents = populate(make_config(moving_percentage=50))
        moving = [a for a in agents if not a.nominal_velocity.is_zero]
        assert len(moving) == 75
        assert all(a.nominal_velocity.length_squared() == pytest.approx(0.0225)
                   for a in moving)

    def test_protection_assignment(self):
        config = make_config(moving_percentage=50,
                             protection_percentage_among_moving=25,
                             protection_percentage_among_resting=25)
        agents = populate(config)
        protected_moving = [a for a in agents
                            if a.is_fully_protected and not a.nominal_velocity.is_zero]
        protected_resting = [a for a in agents
                             if a.is_fully_protected and a.nominal_velocity.is_zero]
        assert len(protected_moving) == 19
        assert len(protected_resting) == 19

    def test_speed_factor_propagated(self):
        agents = populate(make_config(infectious_speed_reduction_percentage=75))
        assert all(a.infectious_speed_factor == pytest.approx(0.25) for a in agents)

    def test_unique_ids(self):
        agents = populate(make_config())
        assert len({a.uid for a in agents}) == 150

    def test_reproducible(self):
        a = populate(make_config(), seed=9)
        b = populate(make_config(), seed=9)
        assert [x.center for x in a] == [y.center for y in b]
        assert [x.nominal_velocity for x in a] == [y.nominal_velocity for y in b]
