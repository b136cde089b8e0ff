"""Population metrics: fraction of agents per disease state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from flatten_sim.agent import Agent
from flatten_sim.types import DiseaseState

N_STATES = len(DiseaseState)


def count_states(agents: Iterable[Agent]) -> np.ndarray:
    """Number of agents per DiseaseState, indexed by state value."""
    counts = np.zeros(N_STATES, dtype=np.int64)
    for agent in agents:
        counts[agent.state.kind] += 1
    return counts


@dataclass(frozen=True)
class Metrics:
    """Fractions of the population per state; sums to 1 unless empty."""
    susceptible: float = 0.0
    exposed: float = 0.0
    infectious: float = 0.0
    dead: float = 0.0
    immune: float = 0.0

    @classmethod
    def from_agents(cls, agents: Iterable[Agent]) -> Metrics:
        counts = count_states(agents)
        total = int(counts.sum()) or 1
        fractions = counts / total
        return cls(*(float(f) for f in fractions))

    def as_array(self) -> np.ndarray:
        """Fractions in DiseaseState order (S, E, I, D, R)."""
        return np.array([self.susceptible, self.exposed, self.infectious,
                         self.dead, self.immune], dtype=np.float64)

    def fraction(self, state: DiseaseState) -> float:
        return float(self.as_array()[state])


def compute_metrics(agents: Iterable[Agent]) -> Metrics:
    """Reduce a population to its five state fractions.

    An empty population yields all-zero fractions.
    """
    return Metrics.from_agents(agents)
