"""Shared factories for test data construction."""

from __future__ import annotations

import numpy as np

from interactsim.analysis.models import FittedModel
from interactsim.simulate.config import SimConfig
from interactsim.simulate.outcomes import ObservationSet, build_observations
from interactsim.simulate.sampling import draw_truncated_pairs


def mk_config(**overrides) -> SimConfig:
    base = dict(correlations=[0.0, 0.5, 0.9], n=200, seed=123)
    base.update(overrides)
    return SimConfig(**base)


def mk_observations(
    r: float = 0.0,
    *,
    n: int = 1000,
    mean: float = 15.0,
    sd: float = 8.0,
    seed: int = 123,
) -> ObservationSet:
    """Deterministic observation set drawn with a fresh Generator."""
    rng = np.random.default_rng(seed)
    x1, x2 = draw_truncated_pairs(rng, r=r, n=n, mean=mean, sd=sd)
    return build_observations(r, x1, x2)


def mk_fitted_model(
    outcome: str = "yadd",
    specification: str = "additive",
    *,
    r_target: float = 0.25,
    realized_r: float = 0.24,
) -> FittedModel:
    """Hand-built FittedModel for reporting/figure tests (no fitting involved)."""
    terms = ("Intercept", "x1", "x2")
    params = (0.5, 1.0, 1.1)
    if specification == "interaction":
        terms = terms + ("x1:x2",)
        params = params + (0.01,)
    k = len(terms)
    se = tuple(0.1 for _ in range(k))
    return FittedModel(
        outcome=outcome,
        specification=specification,
        r_target=r_target,
        realized_r=realized_r,
        terms=terms,
        params=params,
        std_errors=se,
        ci_low=tuple(p - 0.196 for p in params),
        ci_high=tuple(p + 0.196 for p in params),
        p_values=tuple(0.01 for _ in range(k)),
        rsquared=0.9,
        nobs=1000,
    )
