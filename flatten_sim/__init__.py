"""flatten-sim: Agent-based toy epidemic in a bounded 2D arena.

A deterministic, seedable engine that advances a population of moving
point-agents one tick at a time:
  - SEIDR disease states with front-loaded, scheduled transitions
  - Continuous-time agent-agent collisions with elastic deflection
  - Wall reflection inside a 2:1 arena
  - Raster-based neighbor lookup for near-linear collision search
  - Transmission on contact, blocked by full protection

The engine renders nothing and owns no clock; a driver (see
``flatten_sim.model``) feeds it elapsed-time deltas.
"""

__version__ = "0.1.0"
