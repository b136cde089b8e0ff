"""Raster-based spatial index for neighbor queries.

Each tick the visible agents are bucketed into a square grid of
``raster_count`` × ``raster_count`` cells over the unit square:
    cell = (clip(floor(x·n), 0, n−1), clip(floor(y·n), 0, n−1))

Neighbor candidates of an agent are the agents in its own cell and the
up to 8 surrounding cells (3×3 block, clipped at the edges). An agent
that crosses more than one cell width per tick could in principle miss
a partner two cells away; with a 0.05 s tick and 0.15 units/s speed an
agent moves 0.0075 units against a 0.05 cell width, so this does not
happen in practice.

The cell-adjacency table depends only on ``raster_count`` and is built
once per process and resolution, then shared read-only.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Sequence, Tuple

import numpy as np

from flatten_sim.agent import Agent

Cell = Tuple[int, int]

DEFAULT_RASTER_COUNT = 20

_NEIGHBOR_CELLS: Dict[int, Dict[Cell, Tuple[Cell, ...]]] = {}
_NEIGHBOR_CELLS_LOCK = threading.Lock()


# ═══════════════════════════════════════════════════════════════════════
# CELL ADJACENCY (memoized per resolution)
# ═══════════════════════════════════════════════════════════════════════

def _compute_neighbor_cells(raster_count: int) -> Dict[Cell, Tuple[Cell, ...]]:
    table: Dict[Cell, Tuple[Cell, ...]] = {}
    last = raster_count - 1
    for x in range(raster_count):
        for y in range(raster_count):
            table[(x, y)] = tuple(
                (nx, ny)
                for nx in range(max(0, x - 1), min(x + 1, last) + 1)
                for ny in range(max(0, y - 1), min(y + 1, last) + 1)
            )
    return table


def neighbor_cells(raster_count: int) -> Dict[Cell, Tuple[Cell, ...]]:
    """Cell → its 3×3 block of cells (itself included), clipped at edges.

    Computed on first use for each resolution and cached for the
    lifetime of the process. Callers must not mutate the result.
    """
    table = _NEIGHBOR_CELLS.get(raster_count)
    if table is None:
        with _NEIGHBOR_CELLS_LOCK:
            table = _NEIGHBOR_CELLS.get(raster_count)
            if table is None:
                table = _compute_neighbor_cells(raster_count)
                _NEIGHBOR_CELLS[raster_count] = table
    return table


# ═══════════════════════════════════════════════════════════════════════
# RASTERIZER
# ═══════════════════════════════════════════════════════════════════════

class Rasterizer:
    """Snapshot of agent positions bucketed into grid cells.

    Built fresh every tick; never updated in place.
    """

    def __init__(self, agents: Sequence[Agent],
                 raster_count: int = DEFAULT_RASTER_COUNT):
        if raster_count < 1:
            raise ValueError(f"raster_count must be >= 1, got {raster_count}")
        self.raster_count = raster_count
        self._neighbor_cells = neighbor_cells(raster_count)
        self._cell_for_agent: Dict[int, Cell] = {}
        self._agents_for_cell: Dict[Cell, List[Agent]] = {}

        if len(agents) == 0:
            return

        xs = np.fromiter((a.center.x for a in agents), dtype=np.float64, count=len(agents))
        ys = np.fromiter((a.center.y for a in agents), dtype=np.float64, count=len(agents))
        cx = np.clip(np.floor(xs * raster_count), 0, raster_count - 1).astype(int)
        cy = np.clip(np.floor(ys * raster_count), 0, raster_count - 1).astype(int)

        for agent, x, y in zip(agents, cx.tolist(), cy.tolist()):
            cell = (x, y)
            self._cell_for_agent[agent.uid] = cell
            self._agents_for_cell.setdefault(cell, []).append(agent)

    def __len__(self) -> int:
        return len(self._cell_for_agent)

    def cell_of(self, agent: Agent) -> Cell:
        """Cell an indexed agent was bucketed into.

        Raises:
            KeyError: If the agent is not part of this snapshot.
        """
        return self._cell_for_agent[agent.uid]

    def get_neighbors(self, agent: Agent) -> List[Agent]:
        """Agents in the same or an adjacent cell, excluding ``agent``.

        Agents not in the snapshot (e.g. faded-out dead) have none.
        """
        cell = self._cell_for_agent.get(agent.uid)
        if cell is None:
            return []

        neighbors: List[Agent] = []
        for neighbor_cell in self._neighbor_cells[cell]:
            for other in self._agents_for_cell.get(neighbor_cell, ()):
                if other.uid != agent.uid:
                    neighbors.append(other)
        return neighbors
