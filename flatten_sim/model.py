"""Headless driver — runs a Simulation on a simulated clock.

Replaces the interactive host: instead of a display link delivering
frame deltas, ``run_simulation`` ticks at a fixed ``frame_time`` until
either the configured duration has elapsed or no agent has anything
left scheduled within it.

Metrics are recorded on a grid of ``sample_count`` equal intervals over
the duration (at most one sample per interval), and once more at the
end, so the time series has the same shape regardless of frame rate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from flatten_sim.agent import Agent
from flatten_sim.config import SimulationConfig, default_config
from flatten_sim.metrics import Metrics
from flatten_sim.simulation import Simulation
from flatten_sim.types import DiseaseState

logger = logging.getLogger(__name__)

DEFAULT_FRAME_TIME = 1.0 / 60.0
DEFAULT_SAMPLE_COUNT = 200


@dataclass
class SimulationResult:
    """Results of one headless run."""
    # Time series (length = number of samples)
    times: np.ndarray = field(default_factory=lambda: np.zeros(0))
    fractions: np.ndarray = field(default_factory=lambda: np.zeros((0, len(DiseaseState))))

    # Final state
    final_agents: List[Agent] = field(default_factory=list)   # dead removed
    final_metrics: Metrics = field(default_factory=Metrics)

    # Run bookkeeping
    seed: int = 0
    n_steps: int = 0
    elapsed_time: float = 0.0
    stopped_early: bool = False

    @property
    def peak_infectious(self) -> float:
        if len(self.fractions) == 0:
            return 0.0
        return float(self.fractions[:, DiseaseState.INFECTIOUS].max())

    @property
    def peak_infectious_time(self) -> float:
        if len(self.fractions) == 0:
            return 0.0
        return float(self.times[int(np.argmax(self.fractions[:, DiseaseState.INFECTIOUS]))])

    @property
    def total_dead_fraction(self) -> float:
        return self.final_metrics.dead

    def summary(self) -> str:
        """Human-readable run summary."""
        lines = [
            f"Simulated {self.elapsed_time:.2f} s in {self.n_steps} steps "
            f"(seed {self.seed}{', stopped early' if self.stopped_early else ''})",
            f"Peak infectious: {100 * self.peak_infectious:.1f} % "
            f"at t = {self.peak_infectious_time:.2f} s",
            "Final state:",
        ]
        final = self.final_metrics.as_array()
        for state in DiseaseState:
            lines.append(f"  {state.label:<12} {100 * final[state]:>6.1f} %")
        return '\n'.join(lines)


def run_simulation(
    config: Optional[SimulationConfig] = None,
    seed: Optional[int] = None,
    frame_time: float = DEFAULT_FRAME_TIME,
    sample_count: int = DEFAULT_SAMPLE_COUNT,
) -> SimulationResult:
    """Run a full simulation without rendering.

    Loop per frame:
      1. Stop if the simulated clock passed the configured duration
      2. step(frame_time); the first call only seeds the population
      3. Record metrics if a new sample interval has started
      4. Stop if no agent has a transition due within the duration

    Args:
        config: Configuration; uses default_config() if None.
        seed: RNG seed; defaults to config.seed.
        frame_time: Simulated seconds per frame. Values above 0.05 are
            capped by the engine.
        sample_count: Number of metric sample intervals over the duration.

    Returns:
        SimulationResult with the metrics time series and final agents.

    Raises:
        ValueError: If frame_time or sample_count is not positive.
        LayoutError: If the population does not fit into the arena.
    """
    if config is None:
        config = default_config()
    if frame_time <= 0:
        raise ValueError(f"frame_time must be positive, got {frame_time}")
    if sample_count < 1:
        raise ValueError(f"sample_count must be >= 1, got {sample_count}")

    sim = Simulation(config, seed=seed)
    duration = config.simulation_duration
    sample_interval = duration / sample_count
    logger.info(
        "Running simulation: %d agents, %.1f s, seed %d",
        config.behavior.number_of_points, duration, sim.seed,
    )

    times: List[float] = []
    rows: List[np.ndarray] = []
    last_interval = -1
    n_steps = 0
    stopped_early = False
    agents: List[Agent] = []

    while sim.elapsed_time <= duration:
        agents = sim.step(frame_time)
        n_steps += 1

        now = sim.elapsed_time
        interval = min(int(np.floor(now / sample_interval)), sample_count)
        if interval > last_interval:
            # Snap to the interval start, never past the current clock
            times.append(min(interval * sample_interval, now))
            rows.append(sim.metrics().as_array())
            last_interval = interval

        if not sim.will_go_on(duration):
            stopped_early = True
            break

    final_metrics = sim.metrics()
    if not times or times[-1] < sim.elapsed_time:
        times.append(sim.elapsed_time)
        rows.append(final_metrics.as_array())

    result = SimulationResult(
        times=np.array(times, dtype=np.float64),
        fractions=np.vstack(rows),
        final_agents=[a for a in agents if a.state.kind != DiseaseState.DEAD],
        final_metrics=final_metrics,
        seed=sim.seed,
        n_steps=n_steps,
        elapsed_time=sim.elapsed_time,
        stopped_early=stopped_early,
    )
    logger.info(
        "Simulation finished after %d steps (%.2f s): %.1f %% dead",
        n_steps, sim.elapsed_time, 100 * result.total_dead_fraction,
    )
    return result
