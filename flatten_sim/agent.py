"""Agent — one simulated individual in the arena.

Identity is a process-unique integer ``uid``; two Agent objects with the
same uid are the same individual at different ticks. Protection is fixed
at creation. Velocity has two views:
  - nominal_velocity: intrinsic heading × speed (zero if resting)
  - actual_velocity:  zero if DEAD, slowed if INFECTIOUS, else nominal
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field, replace

from flatten_sim.disease import has_future_within
from flatten_sim.types import DiseaseState, State
from flatten_sim.vector import ZERO, Vector

_AGENT_IDS = itertools.count()


def next_agent_id() -> int:
    return next(_AGENT_IDS)


@dataclass(eq=False)
class Agent:
    center: Vector
    nominal_velocity: Vector = ZERO
    is_fully_protected: bool = False
    state: State = field(default_factory=State.susceptible)
    infectious_speed_factor: float = 1.0
    uid: int = field(default_factory=next_agent_id)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Agent):
            return NotImplemented
        return self.uid == other.uid

    def __hash__(self) -> int:
        return hash(self.uid)

    @property
    def actual_velocity(self) -> Vector:
        if self.state.kind == DiseaseState.DEAD:
            return ZERO
        if self.state.kind == DiseaseState.INFECTIOUS:
            return self.nominal_velocity * self.infectious_speed_factor
        return self.nominal_velocity

    @property
    def is_visible(self) -> bool:
        """False once dead for more than one time unit."""
        return self.state.is_visible

    def has_future_within(self, horizon: float) -> bool:
        """Whether this agent still has a transition scheduled by ``horizon``."""
        return has_future_within(self.state, horizon)

    def has_collided_with(self, other: Agent, squared_point_radius: float) -> bool:
        """Disks overlap: center distance² < (2r)²."""
        return self.center.distance_squared(other.center) < 4.0 * squared_point_radius

    def copy(self) -> Agent:
        """Same individual (same uid), independent mutable record."""
        return replace(self)
