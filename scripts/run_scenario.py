#!/usr/bin/env python3
"""Run a flatten-sim scenario headlessly and print its outcome.

Usage:
    python scripts/run_scenario.py demo
    python scripts/run_scenario.py lethality_paradox --seed 7
    python scripts/run_scenario.py my_setup.yaml --json results/my_setup.json
    python scripts/run_scenario.py --list

A scenario is either the name of a bundled preset or a path to a YAML
file with the same layout (see flatten_sim/presets/).
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# ── Project imports ──────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from flatten_sim.config import list_presets, load_config, load_preset
from flatten_sim.model import DEFAULT_FRAME_TIME, run_simulation
from flatten_sim.types import DiseaseState


def resolve_config(scenario: str):
    """Load a preset by name, or a YAML file by path."""
    path = Path(scenario)
    if path.suffix in ('.yaml', '.yml'):
        return load_config(path)
    return load_preset(scenario)


def result_to_dict(result) -> dict:
    return {
        'seed': result.seed,
        'n_steps': result.n_steps,
        'elapsed_time': result.elapsed_time,
        'stopped_early': result.stopped_early,
        'peak_infectious': result.peak_infectious,
        'peak_infectious_time': result.peak_infectious_time,
        'times': result.times.tolist(),
        'fractions': {
            state.label.lower(): result.fractions[:, state].tolist()
            for state in DiseaseState
        },
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument('scenario', nargs='?',
                        help='Preset name or path to a YAML scenario')
    parser.add_argument('--list', action='store_true',
                        help='List bundled presets and exit')
    parser.add_argument('--seed', type=int, default=None,
                        help='RNG seed (default: from the scenario)')
    parser.add_argument('--frame-time', type=float, default=DEFAULT_FRAME_TIME,
                        help='Simulated seconds per frame (default: 1/60)')
    parser.add_argument('--json', type=Path, default=None,
                        help='Write the metrics time series to this JSON file')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    if args.list:
        for name in list_presets():
            print(name)
        return 0
    if args.scenario is None:
        parser.error('a scenario is required (or use --list)')

    try:
        config = resolve_config(args.scenario)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    result = run_simulation(config, seed=args.seed, frame_time=args.frame_time)
    print(result.summary())

    if args.json is not None:
        args.json.parent.mkdir(parents=True, exist_ok=True)
        with open(args.json, 'w') as f:
            json.dump(result_to_dict(result), f, indent=2)
        print(f"Wrote {args.json}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
