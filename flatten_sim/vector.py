"""2D vector arithmetic for agent positions and velocities."""

from __future__ import annotations

from dataclasses import dataclass


def sign(value: float) -> float:
    """Return -1.0, 0.0 or 1.0 depending on the sign of ``value``."""
    if value == 0:
        return 0.0
    return 1.0 if value > 0 else -1.0


@dataclass(frozen=True)
class Vector:
    """Immutable (x, y) displacement or position in arena units."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector) -> Vector:
        return Vector(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector) -> Vector:
        return Vector(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector:
        return Vector(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __neg__(self) -> Vector:
        return Vector(-self.x, -self.y)

    @property
    def is_zero(self) -> bool:
        return self.x == 0 and self.y == 0

    def dot(self, other: Vector) -> float:
        return self.x * other.x + self.y * other.y

    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def distance_squared(self, other: Vector) -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def sign(self) -> Vector:
        """Component-wise sign (-1/0/1)."""
        return Vector(sign(self.x), sign(self.y))


ZERO = Vector(0.0, 0.0)
