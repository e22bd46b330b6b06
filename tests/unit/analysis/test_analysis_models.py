"""Unit tests for the OLS fitting layer."""

import math

import numpy as np
import pandas as pd
import pytest

from interactsim.analysis.models import (
    FitError,
    FittedModel,
    INTERACTION_TERM,
    fit_all,
    fit_model,
    formula_for,
)
from tests._factories import mk_observations


def _linear_frame(n=400, seed=0):
    rng = np.random.default_rng(seed)
    x1 = rng.normal(10.0, 2.0, size=n)
    x2 = rng.normal(5.0, 1.0, size=n)
    noise = rng.normal(0.0, 0.5, size=n)
    y = 2.0 + 1.5 * x1 - 0.5 * x2 + noise
    return pd.DataFrame({"x1": x1, "x2": x2, "yadd": y, "ymult": x1 * x2})


def test_formula_for_specifications():
    assert formula_for("yadd", "additive") == "yadd ~ x1 + x2"
    assert formula_for("ymult", "interaction") == "ymult ~ x1 + x2 + x1:x2"
    with pytest.raises(ValueError):
        formula_for("y", "additive")
    with pytest.raises(ValueError):
        formula_for("yadd", "quadratic")


def test_fit_model_recovers_known_coefficients():
    m = fit_model(_linear_frame(), "yadd", "additive", r_target=0.0, realized_r=0.01)
    assert isinstance(m, FittedModel)
    assert m.terms == ("Intercept", "x1", "x2")
    assert m.coef("x1") == pytest.approx(1.5, abs=0.05)
    assert m.coef("x2") == pytest.approx(-0.5, abs=0.1)
    assert m.nobs == 400
    assert 0.0 < m.rsquared <= 1.0
    for t in m.terms:
        lo, hi = m.ci(t)
        assert lo < m.coef(t) < hi
        assert m.se(t) > 0.0
        assert 0.0 <= m.p_value(t) <= 1.0


def test_ci_level_controls_interval_width():
    df = _linear_frame()
    narrow = fit_model(df, "yadd", "additive", ci_level=0.80)
    wide = fit_model(df, "yadd", "additive", ci_level=0.99)
    lo_n, hi_n = narrow.ci("x1")
    lo_w, hi_w = wide.ci("x1")
    assert (hi_w - lo_w) > (hi_n - lo_n)
    with pytest.raises(ValueError, match="ci_level"):
        fit_model(df, "yadd", "additive", ci_level=1.5)


def test_interaction_specification_has_product_term():
    m = fit_model(_linear_frame(), "ymult", "interaction")
    assert m.terms == ("Intercept", "x1", "x2", INTERACTION_TERM)
    assert m.coef(INTERACTION_TERM) == pytest.approx(1.0, abs=1e-8)
    assert m.rsquared == pytest.approx(1.0, abs=1e-9)


def test_fitted_model_is_frozen_and_unknown_term_raises():
    m = fit_model(_linear_frame(), "yadd", "additive")
    with pytest.raises(AttributeError):
        m.rsquared = 0.0  # type: ignore[misc]
    with pytest.raises(KeyError, match="x1:x2"):
        m.coef(INTERACTION_TERM)


def test_to_records_one_row_per_term():
    m = fit_model(_linear_frame(), "yadd", "interaction", r_target=0.25, realized_r=0.2)
    rows = m.to_records()
    assert [r["term"] for r in rows] == list(m.terms)
    assert all(r["model"] == "yadd ~ interaction" for r in rows)
    assert all(r["r_target"] == 0.25 for r in rows)


def test_zero_variance_regressor_raises_fit_error():
    df = _linear_frame()
    df["x1"] = 3.0
    with pytest.raises(FitError) as ei:
        fit_model(df, "yadd", "additive", r_target=0.5)
    err = ei.value
    assert err.outcome == "yadd"
    assert err.specification == "additive"
    assert err.r_target == 0.5
    assert "zero variance" in err.reason


def test_collinear_regressors_raise_fit_error():
    df = _linear_frame()
    df["x2"] = 2.0 * df["x1"]
    with pytest.raises(FitError, match="singular"):
        fit_model(df, "ymult", "interaction")


def test_too_few_rows_raises_fit_error():
    df = _linear_frame(n=4)
    with pytest.raises(FitError, match="more rows"):
        fit_model(df, "yadd", "interaction")


def test_cond_limit_flags_near_singular_design():
    with pytest.raises(FitError, match="near-singular"):
        fit_model(_linear_frame(), "yadd", "interaction", cond_limit=10.0)


def test_fit_all_order_and_shared_realized_r():
    obs = mk_observations(0.5, n=600)
    models = fit_all(obs)
    assert [(m.outcome, m.specification) for m in models] == [
        ("yadd", "additive"),
        ("yadd", "interaction"),
        ("ymult", "additive"),
        ("ymult", "interaction"),
    ]
    rr = obs.realized_r
    assert all(math.isclose(m.realized_r, rr) for m in models)
    assert all(m.r_target == 0.5 for m in models)
