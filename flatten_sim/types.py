"""Core data types for flatten-sim.

This module is the SINGLE SOURCE OF TRUTH for:
  - DiseaseState: the five epidemiological compartments
  - Future: a scheduled transition (time, target state)
  - State: the per-agent tagged union (kind + clock + optional Future)

Clock semantics:
  Exposed, Infectious and Immune share one clock, ``time_since_entry``,
  measured since the agent was first EXPOSED. A Future fires once that
  clock reaches ``Future.time``. Dead keeps its own clock (time since
  death), which drives the fade-out of corpses. Susceptible has no clock.

Transitions (all others are invalid):
  S → E        transmission on contact
  E → I | R    Future, decided when E is entered
  I → D | R    Future, decided when I is entered
  R → S        Future, only for non-permanent immunity
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import IntEnum
from typing import Optional


# ═══════════════════════════════════════════════════════════════════════
# ENUMERATIONS
# ═══════════════════════════════════════════════════════════════════════

class DiseaseState(IntEnum):
    """SEIDR compartments, in metrics column order."""
    SUSCEPTIBLE = 0
    EXPOSED     = 1   # Carries the virus, not yet infectious
    INFECTIOUS  = 2   # Transmits on contact, may be slowed down
    DEAD        = 3   # Terminal; invisible one time unit after death
    IMMUNE      = 4   # Permanent, or returns to SUSCEPTIBLE

    @property
    def label(self) -> str:
        """Readable compartment name."""
        return self.name.capitalize()


# States that never schedule a Future
TERMINAL_STATES = frozenset({DiseaseState.SUSCEPTIBLE, DiseaseState.DEAD})

# Dead agents stop being drawn (and colliding) after this long
DEAD_VISIBILITY_TIME = 1.0


# ═══════════════════════════════════════════════════════════════════════
# STATE MACHINE VALUES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Future:
    """A transition to ``state`` once the exposure clock reaches ``time``.

    ``state`` is held by value and carries its own (later) Future, if
    any; a chain never points back to an earlier state.
    """
    time: float
    state: State


@dataclass(frozen=True)
class State:
    """Disease state of one agent.

    Use the named constructors (``State.exposed(...)`` etc.) rather than
    building instances by hand.
    """
    kind: DiseaseState
    time_since_entry: float = 0.0
    future: Optional[Future] = None

    def __post_init__(self):
        if self.kind in TERMINAL_STATES and self.future is not None:
            raise ValueError(
                f"{self.kind.label} state cannot carry a future transition"
            )
        if self.kind == DiseaseState.SUSCEPTIBLE and self.time_since_entry != 0.0:
            raise ValueError("Susceptible state has no clock")

    # ── Named constructors ─────────────────────────────────────────────

    @classmethod
    def susceptible(cls) -> State:
        return cls(DiseaseState.SUSCEPTIBLE)

    @classmethod
    def exposed(cls, time_since_exposal: float,
                future: Optional[Future] = None) -> State:
        return cls(DiseaseState.EXPOSED, time_since_exposal, future)

    @classmethod
    def infectious(cls, time_since_exposal: float,
                   future: Optional[Future] = None) -> State:
        return cls(DiseaseState.INFECTIOUS, time_since_exposal, future)

    @classmethod
    def immune(cls, time_since_exposal: float,
               future: Optional[Future] = None) -> State:
        return cls(DiseaseState.IMMUNE, time_since_exposal, future)

    @classmethod
    def dead(cls, time_since_death: float = 0.0) -> State:
        return cls(DiseaseState.DEAD, time_since_death)

    # ── Queries ────────────────────────────────────────────────────────

    @property
    def label(self) -> str:
        return self.kind.label

    @property
    def time_since_death(self) -> float:
        if self.kind != DiseaseState.DEAD:
            raise AttributeError(f"{self.kind.label} state has no death clock")
        return self.time_since_entry

    @property
    def is_visible(self) -> bool:
        return not (
            self.kind == DiseaseState.DEAD
            and self.time_since_entry > DEAD_VISIBILITY_TIME
        )

    def bumped(self, time_progress: float) -> State:
        """Advance the state's clock without applying its Future."""
        if self.kind == DiseaseState.SUSCEPTIBLE:
            return self
        return replace(self, time_since_entry=self.time_since_entry + time_progress)
