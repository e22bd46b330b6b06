# src/interactsim/analysis/models.py
"""
Module: interactsim.analysis.models
Purpose: OLS fits of the simulated outcomes under two regressor specifications.

Specifications
--------------
- additive    : outcome ~ x1 + x2
- interaction : outcome ~ x1 + x2 + x1:x2

Each fit is returned as an immutable FittedModel record (point estimates,
classical standard errors, confidence intervals, R^2). A design matrix that
is rank deficient or badly conditioned raises FitError naming the
(outcome, specification) pair; a failed model is never dropped silently.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

import numpy as np
import pandas as pd
import statsmodels.formula.api as smf

LOG = logging.getLogger(__name__)

Outcome = Literal["yadd", "ymult"]
Specification = Literal["additive", "interaction"]

OUTCOMES: Tuple[str, ...] = ("yadd", "ymult")
SPECIFICATIONS: Tuple[str, ...] = ("additive", "interaction")

_RHS: Mapping[str, str] = {
    "additive": "x1 + x2",
    "interaction": "x1 + x2 + x1:x2",
}

INTERACTION_TERM = "x1:x2"


class FitError(RuntimeError):
    """Model could not be estimated for one (outcome, specification) pair."""

    def __init__(
        self,
        outcome: str,
        specification: str,
        reason: str,
        *,
        r_target: Optional[float] = None,
    ) -> None:
        self.outcome = outcome
        self.specification = specification
        self.reason = reason
        self.r_target = r_target
        where = f"{outcome} ~ {specification}"
        if r_target is not None:
            where += f" (r_target={r_target:.6g})"
        super().__init__(f"Fit failed for {where}: {reason}")


@dataclass(frozen=True)
class FittedModel:
    """Read-only estimates for one (outcome, specification, sweep value)."""

    outcome: str
    specification: str
    r_target: float
    realized_r: float
    terms: Tuple[str, ...]
    params: Tuple[float, ...]
    std_errors: Tuple[float, ...]
    ci_low: Tuple[float, ...]
    ci_high: Tuple[float, ...]
    p_values: Tuple[float, ...]
    rsquared: float
    nobs: int
    ci_level: float = 0.95

    @property
    def label(self) -> str:
        return f"{self.outcome} ~ {self.specification}"

    def _index(self, term: str) -> int:
        try:
            return self.terms.index(term)
        except ValueError as e:
            raise KeyError(f"{self.label} has no term {term!r}; terms={list(self.terms)}") from e

    def coef(self, term: str) -> float:
        return self.params[self._index(term)]

    def se(self, term: str) -> float:
        return self.std_errors[self._index(term)]

    def ci(self, term: str) -> Tuple[float, float]:
        i = self._index(term)
        return self.ci_low[i], self.ci_high[i]

    def p_value(self, term: str) -> float:
        return self.p_values[self._index(term)]

    def to_records(self) -> List[Dict[str, Any]]:
        rows: List[Dict[str, Any]] = []
        for i, term in enumerate(self.terms):
            rows.append(
                {
                    "r_target": float(self.r_target),
                    "realized_r": float(self.realized_r),
                    "outcome": self.outcome,
                    "specification": self.specification,
                    "model": self.label,
                    "term": term,
                    "estimate": float(self.params[i]),
                    "std_error": float(self.std_errors[i]),
                    "ci_low": float(self.ci_low[i]),
                    "ci_high": float(self.ci_high[i]),
                    "p_value": float(self.p_values[i]),
                    "ci_level": float(self.ci_level),
                    "rsquared": float(self.rsquared),
                    "nobs": int(self.nobs),
                }
            )
        return rows


def formula_for(outcome: str, specification: str) -> str:
    if outcome not in OUTCOMES:
        raise ValueError(f"outcome must be one of {OUTCOMES}, got {outcome!r}")
    if specification not in _RHS:
        raise ValueError(f"specification must be one of {SPECIFICATIONS}, got {specification!r}")
    return f"{outcome} ~ {_RHS[specification]}"


def _check_design(
    exog: np.ndarray,
    names: List[str],
    *,
    outcome: str,
    specification: str,
    r_target: Optional[float],
    cond_limit: float,
) -> None:
    if exog.shape[0] <= exog.shape[1]:
        raise FitError(
            outcome,
            specification,
            f"need more rows than regressors, got {exog.shape[0]} rows for {exog.shape[1]} columns",
            r_target=r_target,
        )
    if not np.all(np.isfinite(exog)):
        raise FitError(outcome, specification, "design matrix has non-finite entries", r_target=r_target)

    for j, name in enumerate(names):
        if name == "Intercept":
            continue
        if float(np.ptp(exog[:, j])) == 0.0:
            raise FitError(outcome, specification, f"regressor {name!r} has zero variance", r_target=r_target)

    rank = int(np.linalg.matrix_rank(exog))
    if rank < exog.shape[1]:
        raise FitError(
            outcome,
            specification,
            f"design matrix is singular (rank {rank} < {exog.shape[1]} columns)",
            r_target=r_target,
        )

    cond = float(np.linalg.cond(exog))
    if not math.isfinite(cond) or cond > cond_limit:
        raise FitError(
            outcome,
            specification,
            f"design matrix is near-singular (condition number {cond:.3g} > {cond_limit:.3g})",
            r_target=r_target,
        )


def fit_model(
    data: pd.DataFrame,
    outcome: str,
    specification: str,
    *,
    r_target: float = float("nan"),
    realized_r: float = float("nan"),
    ci_level: float = 0.95,
    cond_limit: float = 1e12,
) -> FittedModel:
    """
    Fit one OLS model with statsmodels and freeze the estimates.

    Raises FitError if the design is degenerate.
    """
    formula = formula_for(outcome, specification)
    if not (0.0 < float(ci_level) < 1.0):
        raise ValueError(f"ci_level must be in (0, 1), got {ci_level!r}")
    rt = None if not math.isfinite(float(r_target)) else float(r_target)

    model = smf.ols(formula, data=data)
    names = list(model.exog_names)
    _check_design(
        np.asarray(model.exog, dtype=np.float64),
        names,
        outcome=outcome,
        specification=specification,
        r_target=rt,
        cond_limit=float(cond_limit),
    )

    res = model.fit()
    ci = res.conf_int(alpha=1.0 - float(ci_level))

    params = tuple(float(res.params[t]) for t in names)
    bse = tuple(float(res.bse[t]) for t in names)
    if not all(math.isfinite(v) for v in params):
        raise FitError(outcome, specification, "non-finite coefficient estimates", r_target=rt)

    fitted = FittedModel(
        outcome=outcome,
        specification=specification,
        r_target=float(r_target),
        realized_r=float(realized_r),
        terms=tuple(names),
        params=params,
        std_errors=bse,
        ci_low=tuple(float(ci.loc[t, 0]) for t in names),
        ci_high=tuple(float(ci.loc[t, 1]) for t in names),
        p_values=tuple(float(res.pvalues[t]) for t in names),
        rsquared=float(res.rsquared),
        nobs=int(res.nobs),
        ci_level=float(ci_level),
    )
    LOG.debug("Fitted %s at r=%.4g: R^2=%.4f", fitted.label, float(r_target), fitted.rsquared)
    return fitted


def fit_all(
    obs: Any,
    *,
    ci_level: float = 0.95,
    cond_limit: float = 1e12,
) -> List[FittedModel]:
    """
    Fit every (outcome, specification) pair for one ObservationSet.

    Order: yadd/additive, yadd/interaction, ymult/additive, ymult/interaction.
    """
    data = obs.to_frame()
    r_realized = float(obs.realized_r)
    out: List[FittedModel] = []
    for outcome in OUTCOMES:
        for spec in SPECIFICATIONS:
            out.append(
                fit_model(
                    data,
                    outcome,
                    spec,
                    r_target=float(obs.r_target),
                    realized_r=r_realized,
                    ci_level=ci_level,
                    cond_limit=cond_limit,
                )
            )
    return out


__all__ = [
    "FitError",
    "FittedModel",
    "INTERACTION_TERM",
    "OUTCOMES",
    "Outcome",
    "SPECIFICATIONS",
    "Specification",
    "fit_all",
    "fit_model",
    "formula_for",
]
