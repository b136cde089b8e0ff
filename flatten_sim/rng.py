"""Seeded RNG streams for reproducible simulations.

Uses NumPy's SeedSequence → PCG64 hierarchy to guarantee:
  - Statistical independence between the placement, motion and
    disease streams
  - Bit-exact replay with the same master seed
  - Changing illness parameters doesn't change the initial layout
"""

from __future__ import annotations

from typing import Dict

import numpy as np

STREAM_NAMES = ('placement', 'motion', 'disease')


def create_rng_streams(master_seed: int) -> Dict[str, np.random.Generator]:
    """Create independent RNG streams for one simulation.

    Streams created:
      - 'placement': box shuffling and candidate centers
      - 'motion':    initial headings of moving agents
      - 'disease':   every Future draw (turn infectious, die, keep immunity)

    Args:
        master_seed: Master RNG seed (non-negative integer).

    Returns:
        Dictionary mapping stream names to numpy Generator instances.

    Example:
        >>> rngs = create_rng_streams(42)
        >>> rngs['disease'].random()  # reproducible
    """
    ss = np.random.SeedSequence(master_seed)
    child_seeds = ss.spawn(len(STREAM_NAMES))
    return {
        name: np.random.Generator(np.random.PCG64(child))
        for name, child in zip(STREAM_NAMES, child_seeds)
    }


def rng_state_snapshot(
    rngs: Dict[str, np.random.Generator],
) -> Dict[str, dict]:
    """Capture full RNG state for checkpointing.

    Returns a dict of {name: state_dict} that can be restored with
    ``restore_rng_state()`` to replay a simulation exactly.
    """
    return {name: rng.bit_generator.state for name, rng in rngs.items()}


def restore_rng_state(
    rngs: Dict[str, np.random.Generator],
    states: Dict[str, dict],
) -> None:
    """Restore RNG state from a checkpoint snapshot.

    Raises:
        KeyError: If a stream in states doesn't exist in rngs.
    """
    for name, state in states.items():
        if name not in rngs:
            raise KeyError(f"Cannot restore RNG state for unknown stream '{name}'")
        rngs[name].bit_generator.state = state
