"""Simulation stepper — turns (agents, elapsed time) into the next agents.

One tick, in order:
  1. Clamp the delta to MAX_TIME_PROGRESS (one 20 Hz frame)
  2. First call only: generate the population and return it unmoved
  3. Per agent: advance the disease clock (firing due Futures), then move
  4. Rasterize the moved, visible agents
  5. Agent-agent collisions against the rasterized snapshot: rewind the
     moving agent to the earliest impact, deflect it, and transmit on
     Susceptible ↔ Infectious contact unless either side is protected
  6. Agent-wall collisions on the resolved positions
  7. Return the full agent list (dead included)

Only the earliest collision per agent and tick is resolved; an agent hit
by two partners in the same tick reacts to the first one only.

The previous tick's agent objects are never mutated: each tick works on
copies, so a returned list stays a valid snapshot.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np

from flatten_sim.agent import Agent
from flatten_sim.config import SimulationConfig
from flatten_sim.disease import advance_state, expose
from flatten_sim.metrics import Metrics, compute_metrics
from flatten_sim.movement import (
    deflected_velocity,
    move,
    reflect_off_walls,
    time_of_impact,
)
from flatten_sim.population import generate_population
from flatten_sim.rng import create_rng_streams
from flatten_sim.spatial import DEFAULT_RASTER_COUNT, Rasterizer
from flatten_sim.types import DiseaseState

logger = logging.getLogger(__name__)

# Largest time step ever integrated (s)
MAX_TIME_PROGRESS = 0.05


class Simulation:
    """Single-threaded epidemic engine driven by external time deltas.

    Args:
        config: Normalized configuration.
        seed: Master seed for the RNG streams; defaults to config.seed.
        agents: Optional initial population. When omitted, the
            population is generated on the first ``step()``.
        rngs: Optional pre-built RNG streams (see
            ``flatten_sim.rng.create_rng_streams``); overrides ``seed``.
        raster_count: Cells per axis of the neighbor grid.
    """

    def __init__(
        self,
        config: SimulationConfig,
        seed: Optional[int] = None,
        agents: Optional[Sequence[Agent]] = None,
        rngs: Optional[Dict[str, np.random.Generator]] = None,
        raster_count: int = DEFAULT_RASTER_COUNT,
    ):
        self.config = config
        self.seed = config.seed if seed is None else seed
        self.rngs = rngs if rngs is not None else create_rng_streams(self.seed)
        self.raster_count = raster_count
        self.elapsed_time = 0.0
        self._agents: List[Agent] = list(agents) if agents is not None else []

    @property
    def agents(self) -> List[Agent]:
        return list(self._agents)

    # ── Public API ─────────────────────────────────────────────────────

    def step(self, elapsed_time: float) -> List[Agent]:
        """Advance the simulation by ``elapsed_time`` seconds (capped).

        The first call seeds the population and returns it unmoved.

        Returns:
            The full next agent list, dead agents included.
        """
        time_progress = min(MAX_TIME_PROGRESS, max(0.0, elapsed_time))

        if not self._agents:
            self._agents = generate_population(
                self.config,
                self.rngs['placement'],
                self.rngs['motion'],
                self.rngs['disease'],
            )
            logger.debug("Generated %d agents (seed=%d)", len(self._agents), self.seed)
            return self.agents

        moved = [self._advance(agent, time_progress) for agent in self._agents]
        rasterizer = Rasterizer([a for a in moved if a.is_visible], self.raster_count)

        resolved = [
            self._resolve_collision(agent, rasterizer, time_progress)
            for agent in moved
        ]

        radius = self.config.fixed.point_radius
        for agent in resolved:
            reflect_off_walls(agent, radius)

        self._agents = resolved
        self.elapsed_time += time_progress
        return self.agents

    def metrics(self) -> Metrics:
        return compute_metrics(self._agents)

    def will_go_on(self, horizon: Optional[float] = None) -> bool:
        """Whether any agent still has a transition due by ``horizon``.

        Defaults to the configured simulation duration. A driver can stop
        ticking once this is False; nothing will change anymore except
        positions.
        """
        if horizon is None:
            horizon = self.config.simulation_duration
        return any(agent.has_future_within(horizon) for agent in self._agents)

    # ── Tick phases ────────────────────────────────────────────────────

    def _advance(self, agent: Agent, time_progress: float) -> Agent:
        agent = agent.copy()
        agent.state = advance_state(agent.state, time_progress)
        move(agent, time_progress)
        return agent

    def _resolve_collision(
        self,
        agent: Agent,
        rasterizer: Rasterizer,
        time_progress: float,
    ) -> Agent:
        """Resolve the earliest collision of ``agent`` against the snapshot."""
        squared_radius = self.config.fixed.squared_point_radius
        collided = [
            neighbor for neighbor in rasterizer.get_neighbors(agent)
            if agent.has_collided_with(neighbor, squared_radius)
        ]
        if not collided:
            return agent

        velocity = agent.actual_velocity
        first_t = None
        partner = None
        for neighbor in collided:
            t = time_of_impact(
                agent.center, velocity,
                neighbor.center, neighbor.actual_velocity,
                time_progress, squared_radius,
            )
            if first_t is None or t < first_t:
                first_t = t
                partner = neighbor

        resolved = agent.copy()

        if not velocity.is_zero:
            rewind = (1.0 - first_t) * time_progress
            at_impact = agent.center - velocity * rewind
            partner_at_impact = partner.center - partner.actual_velocity * rewind
            resolved.center = at_impact

            fixed = self.config.fixed
            new_velocity = deflected_velocity(
                partner_at_impact - at_impact,
                fixed.velocity_abs,
                fixed.squared_velocity_abs,
            )
            if new_velocity is not None:
                resolved.nominal_velocity = new_velocity

        if (
            not agent.is_fully_protected
            and not partner.is_fully_protected
            and agent.state.kind == DiseaseState.SUSCEPTIBLE
            and partner.state.kind == DiseaseState.INFECTIOUS
        ):
            resolved.state = expose(self.config, self.rngs['disease'])

        return resolved
