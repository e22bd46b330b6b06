from __future__ import annotations

"""
simulate.cli
============

CLI entrypoint + YAML schema parsing.

This file owns:
- YAML load errors
- flat + sectioned schema mapping -> SimConfig
- artifact bundle writing (tables, figures) + stable JSON diagnostics
"""

import argparse
import hashlib
import json
import logging
import platform
import subprocess
import sys
import time
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import matplotlib
import numpy as np
import pandas as pd
import scipy
import statsmodels
import yaml

from ..analysis.figures import figure_stem, plot_coefficients, save_figure
from ..analysis.models import FitError
from ..analysis.reporting import coefficients_frame, metrics_to_markdown, model_metrics, summarize_metrics
from .config import ConfigError, SimConfig, validate_cfg
from .core import SweepResult, run_sweep, summarize_sweep

LOG = logging.getLogger(__name__)


def _load_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        raise OSError(f"Could not read YAML config at path={path!r}: {e}") from e

    try:
        obj = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            loc = f"line={getattr(mark, 'line', '?')}, column={getattr(mark, 'column', '?')}"
            raise ValueError(f"YAML parse error in {path!r} ({loc}): {e}") from e
        raise ValueError(f"YAML parse error in {path!r}: {e}") from e

    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ValueError(f"YAML config must parse to a mapping/dict, got {type(obj).__name__}")
    return dict(obj)


def _parse_correlations(x: Any, name: str) -> list[float]:
    if isinstance(x, str):
        parts = [p.strip() for p in x.split(",") if p.strip()]
    elif isinstance(x, (list, tuple)):
        parts = list(x)
    else:
        raise ConfigError(f"{name} must be a list or comma-separated string, got {type(x).__name__}")
    out: list[float] = []
    for i, p in enumerate(parts):
        try:
            out.append(float(p))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name}[{i}] must be a number, got {p!r}") from e
    return out


def _cfg_from_dict(d: dict[str, Any]) -> SimConfig:
    def _dget(obj: Any, dotted: str, default: Any = None) -> Any:
        cur = obj
        for k in dotted.split("."):
            if not isinstance(cur, dict) or k not in cur:
                return default
            cur = cur[k]
        return cur

    def _f(x: Any, name: str) -> float:
        try:
            v = float(x)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name} must be a number, got {x!r}") from e
        if not np.isfinite(v):
            raise ConfigError(f"{name} must be finite, got {v!r}")
        return v

    def _i(x: Any, name: str) -> int:
        if isinstance(x, bool):
            raise ConfigError(f"{name} must be an int, got bool {x!r}")
        try:
            v = int(x)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{name} must be an int, got {x!r}") from e
        if v != x and not isinstance(x, str):
            raise ConfigError(f"{name} must be an integer (no silent truncation), got {x!r}")
        return v

    def _require_dict(x: Any, name: str) -> dict[str, Any]:
        if not isinstance(x, dict):
            raise ConfigError(f"Expected mapping for '{name}', got {type(x).__name__}")
        return x

    defaults = SimConfig()
    present = [k for k in ("sampling", "sweep", "fitting") if k in d]
    for k in present:
        _require_dict(d[k], k)
    has_sections = bool(present)

    if has_sections:
        corr = _dget(d, "sweep.correlations", d.get("correlations", defaults.correlations))
        n = _dget(d, "sampling.n", d.get("n", defaults.n))
        mean = _dget(d, "sampling.mean", d.get("mean", defaults.mean))
        sd = _dget(d, "sampling.sd", d.get("sd", defaults.sd))
        seed = _dget(d, "sampling.seed", d.get("seed", defaults.seed))
        seed_policy = _dget(d, "sampling.seed_policy", d.get("seed_policy", defaults.seed_policy))
        ci_level = _dget(d, "fitting.ci_level", d.get("ci_level", defaults.ci_level))
        cond_limit = _dget(d, "fitting.cond_limit", d.get("cond_limit", defaults.cond_limit))
        where = "sweep.correlations"
    else:
        corr = d.get("correlations", defaults.correlations)
        n = d.get("n", defaults.n)
        mean = d.get("mean", defaults.mean)
        sd = d.get("sd", defaults.sd)
        seed = d.get("seed", defaults.seed)
        seed_policy = d.get("seed_policy", defaults.seed_policy)
        ci_level = d.get("ci_level", defaults.ci_level)
        cond_limit = d.get("cond_limit", defaults.cond_limit)
        where = "correlations"

    return SimConfig(
        correlations=_parse_correlations(corr, where),
        n=_i(n, "n"),
        mean=_f(mean, "mean"),
        sd=_f(sd, "sd"),
        seed=_i(seed, "seed"),
        seed_policy=str(seed_policy),  # type: ignore[arg-type]
        ci_level=_f(ci_level, "ci_level"),
        cond_limit=_f(cond_limit, "cond_limit"),
    )


def _now_stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")


def _utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _ensure_dir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _atomic_write_text(path: Path, text: str) -> None:
    _ensure_dir(path.parent)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
    tmp.replace(path)


def _atomic_write_csv(df: pd.DataFrame, path: Path) -> None:
    _ensure_dir(path.parent)
    tmp = path.with_suffix(path.suffix + ".tmp")
    df.to_csv(tmp, index=False)
    tmp.replace(path)


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def _maybe_git_commit(repo_root: Path) -> str | None:
    try:
        out = subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            cwd=str(repo_root),
            stderr=subprocess.DEVNULL,
            text=True,
        ).strip()
        return out or None
    except (OSError, subprocess.CalledProcessError):
        return None


def _repo_root_guess() -> Path:
    here = Path(__file__).resolve()
    parents = list(here.parents)
    if len(parents) >= 4:
        # .../src/interactsim/simulate/cli.py -> repo root 3 up
        return parents[3]
    return here.parent


def _metrics_report(results: Sequence[SweepResult]) -> str:
    parts = ["# Sweep metrics\n"]
    for res in results:
        parts.append(f"\n## r = {res.r_target:g} (sample r = {res.realized_r:.4f})\n\n")
        parts.append(metrics_to_markdown(summarize_metrics(model_metrics(res.models))))
    return "".join(parts)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Simulate truncated correlated levels, fit additive vs interaction models, plot coefficients."
    )
    ap.add_argument("--config", type=str, default=None, help="Path to YAML config (defaults used if omitted).")
    ap.add_argument("--out_dir", type=str, default=None, help="Write the artifact bundle to this directory.")
    ap.add_argument("--seed", type=int, default=None, help="Override the configured seed.")
    ap.add_argument(
        "--correlations",
        type=str,
        default=None,
        help="Override the sweep, e.g. '0,0.25,0.5,0.75,0.9'.",
    )
    ap.add_argument("--no_figures", action="store_true", help="Skip rendering coefficient figures.")
    ap.add_argument("--print_head", type=int, default=5, help="Print first N rows of the sweep summary.")
    ap.add_argument("--log_level", type=str, default="INFO", help="Logging level.")
    ap.add_argument(
        "--overwrite", action="store_true", help="Overwrite outputs in out_dir if non-empty."
    )
    return ap


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    matplotlib.use("Agg")

    run_started_utc = _utc_iso()
    t0 = time.time()

    config_path: Path | None = Path(args.config).expanduser() if args.config else None
    if config_path is not None and not config_path.exists():
        print(f"ERROR: config path does not exist: {str(config_path)!r}", file=sys.stderr)
        return 2

    try:
        cfg_dict = _load_yaml(str(config_path)) if config_path is not None else {}
        if args.seed is not None:
            cfg_dict = {**cfg_dict, "seed": int(args.seed)}
            if isinstance(cfg_dict.get("sampling"), dict):
                cfg_dict["sampling"] = {**cfg_dict["sampling"], "seed": int(args.seed)}
        if args.correlations is not None:
            corr = _parse_correlations(args.correlations, "--correlations")
            cfg_dict = {**cfg_dict, "correlations": corr}
            if isinstance(cfg_dict.get("sweep"), dict):
                cfg_dict["sweep"] = {**cfg_dict["sweep"], "correlations": corr}
        cfg = _cfg_from_dict(cfg_dict)
        validate_cfg(cfg)
    except (ConfigError, ValueError, OSError) as e:
        LOG.exception("Config loading/validation failed.")
        print(f"ERROR: config loading/validation failed: {e}", file=sys.stderr)
        return 2

    out_dir = Path(args.out_dir).expanduser() if args.out_dir else Path.cwd() / "artifacts" / _now_stamp()
    if out_dir.exists() and any(out_dir.iterdir()) and not bool(args.overwrite):
        out_dir = out_dir / f"run_{_now_stamp()}"

    try:
        LOG.info(
            "Running sweep: n=%s mean=%s sd=%s correlations=%s seed=%s seed_policy=%s",
            cfg.n,
            cfg.mean,
            cfg.sd,
            cfg.correlations,
            cfg.seed,
            cfg.seed_policy,
        )
        results = run_sweep(cfg)
        df_coef = coefficients_frame(m for res in results for m in res.models)
        df_sum = summarize_sweep(results)
    except FitError as e:
        LOG.exception("Model fit failed for %s ~ %s.", e.outcome, e.specification)
        print(f"ERROR: model fit failed: {e}", file=sys.stderr)
        return 1
    except ConfigError as e:
        LOG.exception("Invalid simulation parameters.")
        print(f"ERROR: invalid simulation parameters: {e}", file=sys.stderr)
        return 2

    file_hashes: dict[str, str] = {}
    outputs: dict[str, str] = {}

    def _record(name: str, path: Path) -> None:
        outputs[name] = str(path)
        file_hashes[name] = _sha256_file(path)

    try:
        _ensure_dir(out_dir)
        coef_path = out_dir / "coefficients.csv"
        sum_path = out_dir / "sweep_summary.csv"
        _atomic_write_csv(df_coef, coef_path)
        _atomic_write_csv(df_sum, sum_path)
        _record("coefficients.csv", coef_path)
        _record("sweep_summary.csv", sum_path)

        cfg_snapshot = {"config_path": str(config_path) if config_path else None, **cfg.to_dict()}
        cfg_path = out_dir / "config_resolved.json"
        _atomic_write_text(cfg_path, json.dumps(cfg_snapshot, indent=2, sort_keys=True) + "\n")
        _record("config_resolved.json", cfg_path)

        metrics_path = out_dir / "sweep_metrics.md"
        _atomic_write_text(metrics_path, _metrics_report(results))
        _record("sweep_metrics.md", metrics_path)

        if not args.no_figures:
            fig_dir = out_dir / "figures"
            for res in results:
                stem = figure_stem(res.r_target)
                fig = plot_coefficients(list(res.models), realized_r=res.realized_r, r_target=res.r_target)
                pdf = fig_dir / f"{stem}.pdf"
                png = fig_dir / f"{stem}.png"
                save_figure(fig, pdf, png)
                _record(f"figures/{pdf.name}", pdf)
                _record(f"figures/{png.name}", png)

    except OSError as e:
        LOG.exception("Writing outputs failed.")
        print(f"ERROR: writing outputs failed: {e}", file=sys.stderr)
        return 1

    diag = {
        "run_started_utc": run_started_utc,
        "run_finished_utc": _utc_iso(),
        "elapsed_seconds": float(time.time() - t0),
        "sweep_values": len(results),
        "coefficient_rows": len(df_coef),
        "n": int(cfg.n),
        "seed": int(cfg.seed),
        "seed_policy": str(cfg.seed_policy),
        "realized_r": {f"{res.r_target:g}": float(res.realized_r) for res in results},
    }

    print(json.dumps(diag, sort_keys=True))

    try:
        diag_path = out_dir / "diagnostics.json"
        _atomic_write_text(diag_path, json.dumps(diag, indent=2, sort_keys=True) + "\n")
        _record("diagnostics.json", diag_path)

        manifest = {
            "run_started_utc": run_started_utc,
            "run_finished_utc": _utc_iso(),
            "elapsed_seconds": float(time.time() - t0),
            "python": sys.version,
            "platform": platform.platform(),
            "numpy": getattr(np, "__version__", None),
            "pandas": getattr(pd, "__version__", None),
            "scipy": getattr(scipy, "__version__", None),
            "statsmodels": getattr(statsmodels, "__version__", None),
            "matplotlib": getattr(matplotlib, "__version__", None),
            "git_commit": _maybe_git_commit(_repo_root_guess()),
            "config_path": str(config_path) if config_path else None,
            "config_sha256": _sha256_file(config_path) if config_path else None,
            "outputs": outputs,
            "file_sha256": file_hashes,
            "diagnostics": diag,
        }
        _atomic_write_text(out_dir / "manifest.json", json.dumps(manifest, indent=2, sort_keys=True) + "\n")
    except OSError:
        LOG.exception("Failed to write diagnostics/manifest bundle.")

    if args.print_head and int(args.print_head) > 0:
        with pd.option_context("display.width", 160, "display.max_columns", 200):
            print(df_sum.head(int(args.print_head)))

    print(f"[interactsim.simulate] outputs written to: {out_dir}", file=sys.stderr)
    return 0


def run() -> None:
    raise SystemExit(main())
