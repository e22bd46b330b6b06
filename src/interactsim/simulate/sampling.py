from __future__ import annotations

"""
simulate.sampling
=================

Correlated draws of two biomolecule levels + truncation at zero.

Key policies:
- Correlation is validated before any draw (|r| <= 1, finite).
- Negative levels are physically impossible: values below 0 are clamped to 0.
- Reproducibility is owned by the caller's Generator; nothing here reseeds.
"""

from typing import Tuple

import logging
import math
import warnings

import numpy as np
from scipy import stats as scipy_stats

from .config import ConfigError, validate_correlation

LOG = logging.getLogger(__name__)


def rng_for_value(seed: int, value_index: int) -> np.random.Generator:
    """
    Stable-per-value RNG keyed by (seed, value_index).

    Order-invariant guarantee depends on:
      - caller using canonical value_index (cfg.value_index_for_seed(r))
    """
    if not all(isinstance(x, int) and not isinstance(x, bool) for x in (seed, value_index)):
        raise TypeError("seed/value_index must both be ints.")
    ss = np.random.SeedSequence([seed, value_index])
    return np.random.default_rng(ss)


def correlation_cov(r: float, sd: float) -> np.ndarray:
    """2x2 covariance matrix sd^2 * [[1, r], [r, 1]]."""
    rf = validate_correlation(r)
    var = float(sd) ** 2
    return np.array([[var, rf * var], [rf * var, var]], dtype=np.float64)


def draw_truncated_pairs(
    rng: np.random.Generator,
    *,
    r: float,
    n: int,
    mean: float,
    sd: float,
    context: str = "",
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw n pairs from a bivariate normal with correlation r, clamped at 0.

    Returns (x1, x2), float64 arrays of length n.
    """
    ctx = f" {context}" if context else ""

    if not isinstance(rng, np.random.Generator):
        raise TypeError(f"rng must be a numpy.random.Generator, got {type(rng).__name__}.{ctx}")

    rf = validate_correlation(r)

    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise ConfigError(f"n must be an int > 0, got {n!r}.{ctx}")
    n_int = int(n)
    if n_int <= 0:
        raise ConfigError(f"n must be positive, got {n_int}.{ctx}")

    mu = float(mean)
    sigma = float(sd)
    if not math.isfinite(mu):
        raise ConfigError(f"mean must be finite, got {mean!r}.{ctx}")
    if not (math.isfinite(sigma) and sigma > 0.0):
        raise ConfigError(f"sd must be finite and > 0, got {sd!r}.{ctx}")

    cov = correlation_cov(rf, sigma)
    draws = rng.multivariate_normal([mu, mu], cov, size=n_int)
    if draws.shape != (n_int, 2):
        raise RuntimeError(f"Unexpected draw shape: {draws.shape}, expected ({n_int}, 2).{ctx}")

    x1 = np.clip(draws[:, 0], 0.0, None)
    x2 = np.clip(draws[:, 1], 0.0, None)

    LOG.debug(
        "Drew %d pairs at r=%.4g: truncated x1=%d x2=%d%s",
        n_int,
        rf,
        int(np.count_nonzero(x1 == 0.0)),
        int(np.count_nonzero(x2 == 0.0)),
        ctx,
    )
    return x1, x2


def realized_correlation(x1: np.ndarray, x2: np.ndarray) -> float:
    """
    Pearson correlation of the (clamped) sample.

    NaN when either side has zero variance or fewer than 2 rows.
    """
    a = np.asarray(x1, dtype=np.float64)
    b = np.asarray(x2, dtype=np.float64)
    if a.shape != b.shape or a.ndim != 1:
        raise ValueError(f"x1/x2 must be 1-D arrays of equal length, got {a.shape} and {b.shape}")
    if a.size < 2 or float(np.std(a)) == 0.0 or float(np.std(b)) == 0.0:
        return float("nan")
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", category=RuntimeWarning)
        res = scipy_stats.pearsonr(a, b)
    return float(res[0])


def truncation_counts(x1: np.ndarray, x2: np.ndarray) -> dict[str, int]:
    return {
        "n_truncated_x1": int(np.count_nonzero(np.asarray(x1) == 0.0)),
        "n_truncated_x2": int(np.count_nonzero(np.asarray(x2) == 0.0)),
    }


__all__ = [
    "correlation_cov",
    "draw_truncated_pairs",
    "realized_correlation",
    "rng_for_value",
    "truncation_counts",
]
