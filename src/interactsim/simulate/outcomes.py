from __future__ import annotations

"""
simulate.outcomes
=================

Derived outcomes for one observation set.

- yadd  : x1 + x2, but 0 whenever either input is 0 (both factors must be present)
- ymult : x1 * x2
"""

from dataclasses import dataclass
from typing import Tuple

import math

import numpy as np
import pandas as pd

from .sampling import realized_correlation


def _pair(x1: np.ndarray, x2: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    a = np.asarray(x1, dtype=np.float64)
    b = np.asarray(x2, dtype=np.float64)
    if a.ndim != 1 or b.ndim != 1:
        raise ValueError(f"x1/x2 must be 1-D, got ndim={a.ndim} and ndim={b.ndim}")
    if a.shape != b.shape:
        raise ValueError(f"x1/x2 must have equal length, got {a.size} and {b.size}")
    return a, b


def additive_outcome(x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    a, b = _pair(x1, x2)
    y = a + b
    y[(a * b) == 0.0] = 0.0
    return y


def multiplicative_outcome(x1: np.ndarray, x2: np.ndarray) -> np.ndarray:
    a, b = _pair(x1, x2)
    return a * b


def _frozen(a: np.ndarray) -> np.ndarray:
    out = np.array(a, dtype=np.float64, copy=True)
    out.flags.writeable = False
    return out


@dataclass(frozen=True, eq=False)
class ObservationSet:
    """One sweep value's simulated table; arrays are read-only."""

    r_target: float
    x1: np.ndarray
    x2: np.ndarray
    yadd: np.ndarray
    ymult: np.ndarray

    @property
    def n(self) -> int:
        return int(self.x1.size)

    @property
    def realized_r(self) -> float:
        return realized_correlation(self.x1, self.x2)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "x1": self.x1,
                "x2": self.x2,
                "yadd": self.yadd,
                "ymult": self.ymult,
            }
        )


def build_observations(r_target: float, x1: np.ndarray, x2: np.ndarray) -> ObservationSet:
    a, b = _pair(x1, x2)
    rt = float(r_target)
    if not math.isfinite(rt):
        raise ValueError(f"r_target must be finite, got {r_target!r}")
    return ObservationSet(
        r_target=rt,
        x1=_frozen(a),
        x2=_frozen(b),
        yadd=_frozen(additive_outcome(a, b)),
        ymult=_frozen(multiplicative_outcome(a, b)),
    )


__all__ = [
    "ObservationSet",
    "additive_outcome",
    "build_observations",
    "multiplicative_outcome",
]
