"""Disease progression — scheduled transitions for the SEIDR model.

Randomness is front-loaded: every draw that decides an agent's course is
made the moment a state is entered, and the outcome is stored as that
state's Future. From exposure onwards an agent's whole trajectory is
therefore fixed, and a tick only has to ask whether the current Future
is due.

Draws (one uniform [0, 1) per decision, from the 'disease' stream):
  E → I   with p = infectious_share,   else E → R   at incubation_period
  I → D   with p = lethality / infectious_share,
          else I → R   at onset + infectious_duration
  R stays with p = permanent_immunity_share,
          else R → S   at onset + immunity_duration_of_non_permanent_immunes
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from flatten_sim.config import SimulationConfig
from flatten_sim.types import TERMINAL_STATES, DiseaseState, Future, State


# ═══════════════════════════════════════════════════════════════════════
# FUTURE GENERATION
# ═══════════════════════════════════════════════════════════════════════

def future_for_immune(
    time_since_exposal: float,
    config: SimulationConfig,
    rng: np.random.Generator,
) -> Optional[Future]:
    """Schedule loss of immunity, or None if immunity is permanent."""
    immunity = config.immunity
    if rng.random() < immunity.permanent_immunity_share:
        return None
    return Future(
        time=time_since_exposal + immunity.immunity_duration_of_non_permanent_immunes,
        state=State.susceptible(),
    )


def future_for_infectious(
    time_since_exposal: float,
    config: SimulationConfig,
    rng: np.random.Generator,
) -> Future:
    """Schedule the end of the infectious period: death or immunity.

    Only infectious agents can die, so the overall lethality is
    renormalized by the infectious share.
    """
    illness = config.illness
    end_time = time_since_exposal + illness.infectious_duration
    if rng.random() < illness.death_probability:
        return Future(time=end_time, state=State.dead(0.0))
    return Future(
        time=end_time,
        state=State.immune(end_time, future_for_immune(end_time, config, rng)),
    )


def future_for_exposed(
    config: SimulationConfig,
    rng: np.random.Generator,
) -> Future:
    """Schedule the end of incubation: infectious, or silently immune."""
    incubation = config.illness.incubation_period
    if rng.random() < config.illness.infectious_share:
        return Future(
            time=incubation,
            state=State.infectious(
                incubation, future_for_infectious(incubation, config, rng)),
        )
    return Future(
        time=incubation,
        state=State.immune(incubation, future_for_immune(incubation, config, rng)),
    )


# ═══════════════════════════════════════════════════════════════════════
# APPLYING FUTURES
# ═══════════════════════════════════════════════════════════════════════

def apply_future_if_due(state: State, at_time: float) -> Tuple[State, bool]:
    """Apply the state's Future, and any Future it leads to, if due.

    Futures are applied until the next one lies beyond ``at_time`` so
    that a large time jump never skips an intermediate state. The new
    state keeps the clock value stored in its Future.

    Args:
        state: Current state.
        at_time: Exposure-clock time to evaluate against.

    Returns:
        Tuple of (resulting state, whether any Future was applied).
    """
    applied = False
    while state.future is not None and at_time >= state.future.time:
        state = state.future.state
        applied = True
    return state, applied


def advance_state(state: State, time_progress: float) -> State:
    """Advance one agent's disease clock by ``time_progress``.

    Susceptible agents are unchanged; Dead agents age (for fade-out);
    all other states either fire their due Future(s) or just tick.
    """
    if state.kind == DiseaseState.SUSCEPTIBLE:
        return state
    if state.kind in TERMINAL_STATES:
        return state.bumped(time_progress)

    new_state, applied = apply_future_if_due(
        state, state.time_since_entry + time_progress)
    if not applied:
        return state.bumped(time_progress)
    return new_state


def has_future_within(state: State, horizon: float) -> bool:
    """True iff a non-terminal state has a Future firing at or before horizon."""
    if state.kind in TERMINAL_STATES:
        return False
    return state.future is not None and state.future.time <= horizon


# ═══════════════════════════════════════════════════════════════════════
# ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════════

def expose(config: SimulationConfig, rng: np.random.Generator) -> State:
    """State of a susceptible agent that has just been infected.

    Any Future already due at exposure time (e.g. a zero incubation
    period) is applied immediately.
    """
    exposed = State.exposed(0.0, future_for_exposed(config, rng))
    state, _ = apply_future_if_due(exposed, 0.0)
    return state


def initial_infectious(config: SimulationConfig, rng: np.random.Generator) -> State:
    """State of the seeded index case: infectious from time 0."""
    return State.infectious(0.0, future_for_infectious(0.0, config, rng))
