# src/interactsim/analysis/figures.py
from __future__ import annotations

"""
Coefficient comparison figures
==============================

One figure per sweep value: every term of the four fitted models drawn as a
horizontal point estimate with its confidence interval, models dodged around
each term row, realized sample correlation in the title.

This module only draws from FittedModel records; the CLI decides what to save
and where.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import math

import matplotlib.pyplot as plt
import numpy as np

from .models import FittedModel


# ----------------------------
# Small utilities
# ----------------------------
def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _as_path(p: str | Path) -> Path:
    return p if isinstance(p, Path) else Path(p)


def _term_order(models: Sequence[FittedModel], *, show_intercept: bool) -> List[str]:
    seen: List[str] = []
    for m in models:
        for t in m.terms:
            if t == "Intercept" and not show_intercept:
                continue
            if t not in seen:
                seen.append(t)
    return seen


def save_figure(
    fig: plt.Figure,
    out_path_pdf: str | Path,
    out_path_png: Optional[str | Path] = None,
    *,
    dpi: int = 250,
) -> None:
    """Write PDF (and optionally PNG); the figure is closed even if saving fails."""
    try:
        pdf = _as_path(out_path_pdf)
        _ensure_dir(pdf.parent)
        fig.tight_layout()
        fig.savefig(pdf, bbox_inches="tight")
        if out_path_png is not None:
            png = _as_path(out_path_png)
            _ensure_dir(png.parent)
            fig.savefig(png, dpi=dpi, bbox_inches="tight")
    finally:
        plt.close(fig)


def figure_stem(r_target: float) -> str:
    """File stem for a sweep value, e.g. coefficients_r0p25 or coefficients_rm0p5."""
    s = f"{float(r_target):g}".replace("-", "m").replace(".", "p")
    return f"coefficients_r{s}"


# ----------------------------
# Plot configuration
# ----------------------------
@dataclass(frozen=True)
class FigureStyle:
    title_prefix: str = ""
    show_grid: bool = True
    dodge: float = 0.18
    marker_size: float = 5.0
    capsize: float = 3.0


_MARKERS = ("o", "s", "^", "D")


# ----------------------------
# Core plot
# ----------------------------
def plot_coefficients(
    models: Sequence[FittedModel],
    *,
    realized_r: Optional[float] = None,
    r_target: Optional[float] = None,
    show_intercept: bool = False,
    style: FigureStyle = FigureStyle(),
) -> plt.Figure:
    """
    Horizontal coefficient plot for one sweep value.

      - y rows: terms (intercept hidden unless show_intercept)
      - x: point estimate with CI whiskers
      - one series per model, labeled "<outcome> ~ <specification>"
      - vertical reference line at 0
    """
    if not models:
        raise ValueError("plot_coefficients needs at least one FittedModel")

    rt = float(models[0].r_target) if r_target is None else float(r_target)
    rr = float(models[0].realized_r) if realized_r is None else float(realized_r)

    terms = _term_order(models, show_intercept=show_intercept)
    if not terms:
        raise ValueError("No terms left to plot (only an intercept and show_intercept=False?)")
    row_of: Dict[str, int] = {t: i for i, t in enumerate(terms)}

    k = len(models)
    offsets = (np.arange(k, dtype=float) - (k - 1) / 2.0) * float(style.dodge)

    fig, ax = plt.subplots(figsize=(7.5, 1.2 + 0.9 * len(terms)))
    for j, m in enumerate(models):
        ys: List[float] = []
        xs: List[float] = []
        lo_err: List[float] = []
        hi_err: List[float] = []
        for i, t in enumerate(m.terms):
            if t not in row_of:
                continue
            est = float(m.params[i])
            ys.append(row_of[t] + float(offsets[j]))
            xs.append(est)
            lo_err.append(max(0.0, est - float(m.ci_low[i])))
            hi_err.append(max(0.0, float(m.ci_high[i]) - est))
        if not xs:
            continue
        ax.errorbar(
            xs,
            ys,
            xerr=[lo_err, hi_err],
            fmt=_MARKERS[j % len(_MARKERS)],
            ms=float(style.marker_size),
            capsize=float(style.capsize),
            lw=1.2,
            label=m.label,
        )

    ax.axvline(0.0, color="0.35", linewidth=1.0, linestyle="--")
    ax.set_yticks(range(len(terms)))
    ax.set_yticklabels(terms)
    ax.invert_yaxis()
    ax.set_xlabel(f"Coefficient estimate ({int(round(100 * models[0].ci_level))}% CI)")

    rr_txt = f"{rr:.3f}" if math.isfinite(rr) else "nan"
    title = f"{style.title_prefix}target r = {rt:.2f}, sample r = {rr_txt}".strip()
    ax.set_title(title)
    if style.show_grid:
        ax.grid(True, axis="x", linewidth=0.4, alpha=0.5)
    ax.legend(loc="best", fontsize="small")
    return fig


__all__ = [
    "FigureStyle",
    "figure_stem",
    "plot_coefficients",
    "save_figure",
]
