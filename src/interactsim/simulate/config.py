# src/interactsim/simulate/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Literal

import math


# ---------------------------------------------------------------------
# Public types expected across simulate/*
# ---------------------------------------------------------------------
SeedPolicy = Literal["sequential", "stable_per_value"]

DEFAULT_CORRELATIONS: tuple[float, ...] = (0.0, 0.25, 0.5, 0.75, 0.9)


class ConfigError(ValueError):
    """User-fixable configuration error."""


def _finite(x: float) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(float(x))


def validate_correlation(r: float, *, where: str = "r") -> float:
    """
    Return r as float if it is a usable correlation coefficient.

    Rejects non-numeric, non-finite, and |r| > 1 with ConfigError.
    """
    if isinstance(r, bool):
        raise ConfigError(f"{where} must be a number, got bool {r!r}")
    try:
        rf = float(r)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{where} must be a number, got {r!r}") from e
    if not math.isfinite(rf):
        raise ConfigError(f"{where} must be finite, got {r!r}")
    if abs(rf) > 1.0:
        raise ConfigError(f"{where} must be in [-1, 1], got {rf}")
    return rf


# ---------------------------------------------------------------------
# Canonical config used by core.py / cli.py / tests
# ---------------------------------------------------------------------
@dataclass
class SimConfig:
    correlations: List[float] = field(default_factory=lambda: list(DEFAULT_CORRELATIONS))

    n: int = 1000
    mean: float = 15.0
    sd: float = 8.0
    seed: int = 20240101

    seed_policy: SeedPolicy = "sequential"

    ci_level: float = 0.95
    cond_limit: float = 1e12

    # internal cache for stable_per_value mapping
    _value_index_map: Dict[float, int] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if isinstance(self.seed_policy, str):
            self.seed_policy = self.seed_policy.lower()  # type: ignore[assignment]
        if isinstance(self.correlations, tuple):
            self.correlations = list(self.correlations)
        validate_cfg(self)
        # Rounded keys keep YAML/JSON float parsing from changing the seeding.
        keys = [round(float(x), 12) for x in self.correlations]
        uniq = sorted(set(keys))
        if len(uniq) != len(keys):
            raise ConfigError(
                "cfg.correlations contains duplicates (after rounding to 12 decimals). "
                f"Got: {self.correlations!r}"
            )
        self._value_index_map = {k: i for i, k in enumerate(uniq)}

    def value_index_for_seed(self, r: float) -> int:
        k = round(float(r), 12)
        try:
            return int(self._value_index_map[k])
        except KeyError as e:
            raise ConfigError(
                f"value_index_for_seed: r={r!r} not present in cfg.correlations. "
                f"Known keys={sorted(self._value_index_map.keys())}"
            ) from e

    def to_dict(self) -> Dict[str, object]:
        return {
            "correlations": [float(x) for x in self.correlations],
            "n": int(self.n),
            "mean": float(self.mean),
            "sd": float(self.sd),
            "seed": int(self.seed),
            "seed_policy": str(self.seed_policy),
            "ci_level": float(self.ci_level),
            "cond_limit": float(self.cond_limit),
        }


def validate_cfg(cfg: SimConfig) -> None:
    if cfg.seed_policy not in ("sequential", "stable_per_value"):
        raise ConfigError(f"seed_policy invalid: {cfg.seed_policy!r}")

    # --- sizes ---
    if isinstance(cfg.n, bool) or not isinstance(cfg.n, int) or cfg.n < 3:
        raise ConfigError(f"n must be an int >= 3, got {cfg.n!r}")
    if isinstance(cfg.seed, bool) or not isinstance(cfg.seed, int) or cfg.seed < 0:
        raise ConfigError(f"seed must be int >= 0, got {cfg.seed!r}")

    # --- distribution ---
    if not _finite(cfg.mean):
        raise ConfigError(f"mean must be finite, got {cfg.mean!r}")
    if not _finite(cfg.sd) or float(cfg.sd) <= 0.0:
        raise ConfigError(f"sd must be finite and > 0, got {cfg.sd!r}")

    # --- fitting ---
    if not _finite(cfg.ci_level) or not (0.0 < float(cfg.ci_level) < 1.0):
        raise ConfigError(f"ci_level must be in (0, 1), got {cfg.ci_level!r}")
    if not _finite(cfg.cond_limit) or float(cfg.cond_limit) <= 1.0:
        raise ConfigError(f"cond_limit must be finite and > 1, got {cfg.cond_limit!r}")

    # --- sweep ---
    if not isinstance(cfg.correlations, list) or len(cfg.correlations) == 0:
        raise ConfigError("correlations must be a non-empty list")
    for i, r in enumerate(cfg.correlations):
        validate_correlation(r, where=f"correlations[{i}]")


__all__ = [
    "ConfigError",
    "DEFAULT_CORRELATIONS",
    "SeedPolicy",
    "SimConfig",
    "validate_cfg",
    "validate_correlation",
]
