"""Configuration system for flatten-sim.

User-facing options arrive as percentages and durations (seconds of
simulated time). Every section normalizes its values on construction:
out-of-range inputs are clamped, never rejected, so building a
configuration always succeeds.

YAML configuration with deep-merge support:
  preset / base YAML → override dicts → make_config()

Bundled presets live in ``flatten_sim/presets/`` and reproduce the
introductory scenarios (demo, social distancing, lethality paradox, lab).
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

logger = logging.getLogger(__name__)

PRESET_DIR = Path(__file__).resolve().parent / "presets"


# ═══════════════════════════════════════════════════════════════════════
# CLAMPING HELPERS
# ═══════════════════════════════════════════════════════════════════════

def _clamp(name: str, value: float, lower: float,
           upper: Optional[float] = None) -> float:
    """Clamp ``value`` into [lower, upper], logging any adjustment."""
    clamped = max(lower, value)
    if upper is not None:
        clamped = min(upper, clamped)
    if clamped != value:
        logger.debug("Clamped %s from %r to %r", name, value, clamped)
    return clamped


def _share(percentage: float) -> float:
    return percentage / 100.0


# ═══════════════════════════════════════════════════════════════════════
# CONFIGURATION DATACLASSES
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BehaviorSection:
    """How agents move and protect themselves."""
    number_of_points: int = 150                    # [5, 200]
    moving_share: float = 1.0                      # [0, 1]
    protection_share_among_moving: float = 0.0     # [0, 1]
    protection_share_among_resting: float = 0.0    # [0, 1]
    infectious_speed_reduction_factor: float = 1.0  # [0, 1], 1 = full speed

    def __post_init__(self):
        object.__setattr__(self, 'number_of_points', int(
            _clamp('number_of_points', int(self.number_of_points), 5, 200)))
        for name in ('moving_share', 'protection_share_among_moving',
                     'protection_share_among_resting',
                     'infectious_speed_reduction_factor'):
            object.__setattr__(self, name,
                               _clamp(name, float(getattr(self, name)), 0.0, 1.0))

    @classmethod
    def from_percentages(
        cls,
        number_of_points: int = 150,
        moving_percentage: float = 100.0,
        protection_percentage_among_moving: float = 0.0,
        protection_percentage_among_resting: float = 0.0,
        infectious_speed_reduction_percentage: float = 0.0,
    ) -> BehaviorSection:
        return cls(
            number_of_points=number_of_points,
            moving_share=_share(moving_percentage),
            protection_share_among_moving=_share(protection_percentage_among_moving),
            protection_share_among_resting=_share(protection_percentage_among_resting),
            infectious_speed_reduction_factor=1.0 - _share(infectious_speed_reduction_percentage),
        )


@dataclass(frozen=True)
class IllnessSection:
    """Disease course parameters.

    infectious_share is the share of exposed agents that turn infectious
    (the rest become immune without ever transmitting). It is kept
    ≥ lethality because only infectious agents can die:
        P(die | infectious) = lethality / infectious_share ≤ 1
    """
    lethality: float = 0.1          # [0, 1]
    incubation_period: float = 2.0  # ≥ 0 (s)
    infectious_share: float = 1.0   # [lethality, 1]
    infectious_duration: float = 5.0  # ≥ 0 (s)

    def __post_init__(self):
        lethality = _clamp('lethality', float(self.lethality), 0.0, 1.0)
        object.__setattr__(self, 'lethality', lethality)
        object.__setattr__(self, 'incubation_period',
                           _clamp('incubation_period', float(self.incubation_period), 0.0))
        object.__setattr__(self, 'infectious_share',
                           _clamp('infectious_share', float(self.infectious_share),
                                  lethality, 1.0))
        object.__setattr__(self, 'infectious_duration',
                           _clamp('infectious_duration', float(self.infectious_duration), 0.0))

    @property
    def death_probability(self) -> float:
        """Probability that an infectious agent dies rather than recovers."""
        if self.infectious_share <= 0.0:
            return 0.0
        return self.lethality / self.infectious_share

    @classmethod
    def from_percentages(
        cls,
        lethality_percentage: float = 10.0,
        incubation_period: float = 2.0,
        infectious_percentage: float = 100.0,
        infectious_duration: float = 5.0,
    ) -> IllnessSection:
        return cls(
            lethality=_share(lethality_percentage),
            incubation_period=incubation_period,
            infectious_share=_share(infectious_percentage),
            infectious_duration=infectious_duration,
        )


@dataclass(frozen=True)
class ImmunitySection:
    """What happens after recovery."""
    permanent_immunity_share: float = 1.0               # [0, 1]
    immunity_duration_of_non_permanent_immunes: float = 0.0  # ≥ 0 (s)

    def __post_init__(self):
        object.__setattr__(self, 'permanent_immunity_share',
                           _clamp('permanent_immunity_share',
                                  float(self.permanent_immunity_share), 0.0, 1.0))
        object.__setattr__(self, 'immunity_duration_of_non_permanent_immunes',
                           _clamp('immunity_duration_of_non_permanent_immunes',
                                  float(self.immunity_duration_of_non_permanent_immunes),
                                  0.0))

    @classmethod
    def from_percentages(
        cls,
        permanent_immunity_percentage: float = 100.0,
        immunity_duration_of_non_permanent_immunes: float = 0.0,
    ) -> ImmunitySection:
        return cls(
            permanent_immunity_share=_share(permanent_immunity_percentage),
            immunity_duration_of_non_permanent_immunes=immunity_duration_of_non_permanent_immunes,
        )


@dataclass(frozen=True)
class FixedSection:
    """Constants of the arena model (arena units: width 1, height 0.5).

    Squares are precomputed for the per-agent collision path.
    """
    velocity_abs: float = 0.15    # arena units / s
    point_radius: float = 0.009   # arena units
    squared_velocity_abs: float = field(init=False)
    squared_point_radius: float = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'squared_velocity_abs', self.velocity_abs ** 2)
        object.__setattr__(self, 'squared_point_radius', self.point_radius ** 2)


@dataclass(frozen=True)
class SimulationConfig:
    """Complete, normalized simulation configuration.

    Build from raw user options via ``make_config()`` or from YAML via
    ``load_config()`` / ``load_preset()``.
    """
    simulation_duration: float = 20.0   # [5, 1000] (s)
    seed: int = 42
    behavior: BehaviorSection = field(default_factory=BehaviorSection)
    illness: IllnessSection = field(default_factory=IllnessSection)
    immunity: ImmunitySection = field(default_factory=ImmunitySection)
    fixed: FixedSection = field(default_factory=FixedSection)

    def __post_init__(self):
        object.__setattr__(self, 'simulation_duration',
                           _clamp('simulation_duration',
                                  float(self.simulation_duration), 5.0, 1000.0))


def make_config(
    simulation_duration: float = 20.0,
    number_of_points: int = 150,
    moving_percentage: float = 100.0,
    protection_percentage_among_moving: float = 0.0,
    protection_percentage_among_resting: float = 0.0,
    infectious_speed_reduction_percentage: float = 0.0,
    lethality_percentage: float = 10.0,
    incubation_period: float = 2.0,
    infectious_percentage: float = 100.0,
    infectious_duration: float = 5.0,
    permanent_immunity_percentage: float = 100.0,
    immunity_duration_of_non_permanent_immunes: float = 0.0,
    seed: int = 42,
) -> SimulationConfig:
    """Build a normalized configuration from raw user options.

    Percentages are given in [0, 100]; durations in seconds. Values
    outside their valid range are clamped; this function never raises
    for range problems.

    Defaults reproduce the introductory demo scenario.
    """
    return SimulationConfig(
        simulation_duration=simulation_duration,
        seed=int(seed),
        behavior=BehaviorSection.from_percentages(
            number_of_points=number_of_points,
            moving_percentage=moving_percentage,
            protection_percentage_among_moving=protection_percentage_among_moving,
            protection_percentage_among_resting=protection_percentage_among_resting,
            infectious_speed_reduction_percentage=infectious_speed_reduction_percentage,
        ),
        illness=IllnessSection.from_percentages(
            lethality_percentage=lethality_percentage,
            incubation_period=incubation_period,
            infectious_percentage=infectious_percentage,
            infectious_duration=infectious_duration,
        ),
        immunity=ImmunitySection.from_percentages(
            permanent_immunity_percentage=permanent_immunity_percentage,
            immunity_duration_of_non_permanent_immunes=immunity_duration_of_non_permanent_immunes,
        ),
    )


def default_config() -> SimulationConfig:
    """Return the introductory demo configuration."""
    return make_config()


# ═══════════════════════════════════════════════════════════════════════
# YAML LOADING & MERGING
# ═══════════════════════════════════════════════════════════════════════

# YAML section → {yaml key: make_config() keyword}
_YAML_KEYS = {
    'simulation': {
        'duration': 'simulation_duration',
        'seed': 'seed',
    },
    'behavior': {
        'number_of_points': 'number_of_points',
        'moving_percentage': 'moving_percentage',
        'protection_percentage_among_moving': 'protection_percentage_among_moving',
        'protection_percentage_among_resting': 'protection_percentage_among_resting',
        'infectious_speed_reduction_percentage': 'infectious_speed_reduction_percentage',
    },
    'illness': {
        'lethality_percentage': 'lethality_percentage',
        'incubation_period': 'incubation_period',
        'infectious_percentage': 'infectious_percentage',
        'infectious_duration': 'infectious_duration',
    },
    'immunity': {
        'permanent_immunity_percentage': 'permanent_immunity_percentage',
        'immunity_duration_of_non_permanent_immunes':
            'immunity_duration_of_non_permanent_immunes',
    },
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge override into base. Modifies base in place.

    - Dict values are merged recursively
    - Non-dict values are replaced
    - Keys in override but not base are added

    Returns:
        The merged base dictionary.
    """
    for key, value in override.items():
        if (
            key in base
            and isinstance(base[key], dict)
            and isinstance(value, dict)
        ):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def config_from_dict(data: Dict[str, Any]) -> SimulationConfig:
    """Convert a (merged) YAML dict to a SimulationConfig.

    Unknown sections and keys are ignored with a UserWarning; missing
    keys take the ``make_config()`` defaults.
    """
    kwargs: Dict[str, Any] = {}
    for section, values in data.items():
        if section not in _YAML_KEYS:
            warnings.warn(f"Ignoring unknown config section '{section}'",
                          UserWarning, stacklevel=3)
            continue
        if not isinstance(values, dict):
            warnings.warn(f"Config section '{section}' must be a mapping; ignored",
                          UserWarning, stacklevel=3)
            continue
        key_map = _YAML_KEYS[section]
        for key, value in values.items():
            if key not in key_map:
                warnings.warn(f"Ignoring unknown config key '{section}.{key}'",
                              UserWarning, stacklevel=3)
                continue
            kwargs[key_map[key]] = value
    return make_config(**kwargs)


def load_config(
    path: Union[str, Path],
    overrides: Optional[Dict] = None,
) -> SimulationConfig:
    """Load a YAML configuration and apply optional overrides.

    Args:
        path: YAML file with ``simulation``/``behavior``/``illness``/
            ``immunity`` sections holding raw (percentage) options.
        overrides: Optional nested dict merged on top of the file.

    Returns:
        Normalized SimulationConfig.

    Raises:
        FileNotFoundError: If path doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        config_dict = yaml.safe_load(f) or {}

    if overrides is not None:
        deep_merge(config_dict, overrides)

    return config_from_dict(config_dict)


def list_presets() -> List[str]:
    """Names of the bundled scenario presets."""
    return sorted(p.stem for p in PRESET_DIR.glob("*.yaml"))


def load_preset(name: str, overrides: Optional[Dict] = None) -> SimulationConfig:
    """Load a bundled preset by name (e.g. ``'lethality_paradox'``).

    Raises:
        ValueError: If no preset with that name exists.
    """
    path = PRESET_DIR / f"{name}.yaml"
    if not path.exists():
        raise ValueError(
            f"Unknown preset '{name}'. Available presets: {list_presets()}"
        )
    return load_config(path, overrides=overrides)
