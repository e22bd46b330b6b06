"""
interactsim.simulate

Public import surface for the simulation subpackage.
"""

from .config import ConfigError, SimConfig, validate_cfg, validate_correlation
from .core import SweepResult, run_sweep, simulate_at_r, summarize_sweep
from .outcomes import ObservationSet, additive_outcome, build_observations, multiplicative_outcome
from .sampling import draw_truncated_pairs, realized_correlation, rng_for_value

__all__ = [
    "ConfigError",
    "ObservationSet",
    "SimConfig",
    "SweepResult",
    "additive_outcome",
    "build_observations",
    "draw_truncated_pairs",
    "multiplicative_outcome",
    "realized_correlation",
    "rng_for_value",
    "run_sweep",
    "simulate_at_r",
    "summarize_sweep",
    "validate_cfg",
    "validate_correlation",
]
