"""interactsim/analysis/reporting.py
===================================

Helpers for turning fitted models produced by :mod:`interactsim.analysis.models`
into tidy tables and small human-readable reports.  The tidy frame is what the
CLI writes to ``coefficients.csv``; the metric renderers build the per sweep
value tables of ``sweep_metrics.md``.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd

from .models import FittedModel, INTERACTION_TERM

# Default precision for numeric values in reports
_PRECISION = 4

COEFFICIENT_COLUMNS: Tuple[str, ...] = (
    "r_target",
    "realized_r",
    "outcome",
    "specification",
    "model",
    "term",
    "estimate",
    "std_error",
    "ci_low",
    "ci_high",
    "p_value",
    "ci_level",
    "rsquared",
    "nobs",
)


def coefficients_frame(models: Iterable[FittedModel]) -> pd.DataFrame:
    """Return one row per (r_target, outcome, specification, term)."""

    rows: List[Dict[str, object]] = []
    for m in models:
        rows.extend(m.to_records())
    if not rows:
        return pd.DataFrame(columns=list(COEFFICIENT_COLUMNS))
    df = pd.DataFrame.from_records(rows, columns=list(COEFFICIENT_COLUMNS))
    return df.sort_values(
        ["r_target", "outcome", "specification"], kind="mergesort"
    ).reset_index(drop=True)


def model_metrics(models: Sequence[FittedModel]) -> Dict[str, float]:
    """Flatten a sweep value's models into ``metric -> value`` pairs.

    Keys look like ``rsquared_yadd_additive`` and ``interaction_yadd``; the
    latter is the x1:x2 estimate of the interaction specification.
    """

    metrics: Dict[str, float] = {}
    for m in models:
        metrics[f"rsquared_{m.outcome}_{m.specification}"] = float(m.rsquared)
        if m.specification == "interaction":
            metrics[f"interaction_{m.outcome}"] = float(m.coef(INTERACTION_TERM))
            metrics[f"interaction_{m.outcome}_p"] = float(m.p_value(INTERACTION_TERM))
    return metrics


def summarize_metrics(
    metrics: Dict[str, float], precision: int = _PRECISION
) -> List[Tuple[str, float]]:
    """Sort :func:`model_metrics` output by key and round the values.

    NaN survives rounding, so an undefined p-value stays visible as ``nan``.
    """

    return [
        (k, round(float(v), precision)) for k, v in sorted(metrics.items())
    ]


def metrics_to_markdown(summary: Iterable[Tuple[str, float]]) -> str:
    """Two-column ``Metric | Value`` table for one sweep value."""

    lines = ["| Metric | Value |", "| --- | --- |"]
    for metric, value in summary:
        lines.append(f"| {metric} | {value} |")
    return "\n".join(lines) + "\n"


__all__ = [
    "COEFFICIENT_COLUMNS",
    "coefficients_frame",
    "metrics_to_markdown",
    "model_metrics",
    "summarize_metrics",
]
