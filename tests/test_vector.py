"""Tests for flatten_sim.vector — 2D arithmetic and sign helpers."""

import pytest

from flatten_sim.vector import ZERO, Vector, sign


class TestSign:
    @pytest.mark.parametrize("value, expected", [
        (3.2, 1.0), (-0.1, -1.0), (0.0, 0.0), (-0.0, 0.0),
    ])
    def test_sign(self, value, expected):
        assert sign(value) == expected

    def test_vector_sign(self):
        assert Vector(-2.0, 0.0).sign() == Vector(-1.0, 0.0)


class TestArithmetic:
    def test_add_sub(self):
        a = Vector(1.0, 2.0)
        b = Vector(0.5, -1.0)
        assert a + b == Vector(1.5, 1.0)
        assert a - b == Vector(0.5, 3.0)

    def test_scalar_multiply_both_sides(self):
        v = Vector(1.0, -2.0)
        assert v * 2.0 == Vector(2.0, -4.0)
        assert 2.0 * v == Vector(2.0, -4.0)

    def test_negate(self):
        assert -Vector(1.0, -2.0) == Vector(-1.0, 2.0)

    def test_dot_and_length(self):
        a = Vector(3.0, 4.0)
        assert a.dot(Vector(1.0, 2.0)) == 11.0
        assert a.length_squared() == 25.0
        assert a.distance_squared(ZERO) == 25.0

    def test_is_zero(self):
        assert ZERO.is_zero
        assert Vector(-0.0, 0.0).is_zero
        assert not Vector(1e-12, 0.0).is_zero

    def test_immutable(self):
        v = Vector(1.0, 1.0)
        with pytest.raises(AttributeError):
            v.x = 2.0
