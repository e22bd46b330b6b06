import numpy as np
import pytest

from interactsim.analysis.models import FitError
from interactsim.simulate import core
from interactsim.simulate.config import SimConfig
from tests._factories import mk_config


def test_simulate_at_r_basic_shapes():
    cfg = mk_config()
    obs = core.simulate_at_r(cfg, r=0.5, value_index=cfg.value_index_for_seed(0.5), rng=np.random.default_rng(1))
    assert obs.r_target == 0.5
    assert obs.n == cfg.n
    assert np.all(obs.x1 >= 0.0)
    assert np.all(obs.x2 >= 0.0)


def test_simulate_at_r_rejects_invalid_value_index():
    cfg = mk_config()
    with pytest.raises(ValueError, match="value_index"):
        core.simulate_at_r(cfg, r=0.0, value_index=-1, rng=np.random.default_rng(0))


def test_run_sweep_one_result_per_value_with_four_models():
    cfg = mk_config()
    results = core.run_sweep(cfg)
    assert [res.r_target for res in results] == [0.0, 0.5, 0.9]
    for res in results:
        labels = [m.label for m in res.models]
        assert labels == [
            "yadd ~ additive",
            "yadd ~ interaction",
            "ymult ~ additive",
            "ymult ~ interaction",
        ]
        assert all(m.r_target == res.r_target for m in res.models)
        assert all(m.realized_r == pytest.approx(res.realized_r) for m in res.models)


@pytest.mark.parametrize("policy", ["sequential", "stable_per_value"])
def test_run_sweep_reproducible_under_fixed_seed(policy):
    a = core.run_sweep(mk_config(seed_policy=policy))
    b = core.run_sweep(mk_config(seed_policy=policy))
    for ra, rb in zip(a, b):
        assert np.array_equal(ra.observations.x1, rb.observations.x1)
        assert np.array_equal(ra.observations.x2, rb.observations.x2)
        assert [m.params for m in ra.models] == [m.params for m in rb.models]


def test_sequential_values_draw_from_one_stream():
    results = core.run_sweep(mk_config(seed_policy="sequential"))
    assert not np.array_equal(results[0].observations.x1, results[1].observations.x1)


def test_stable_per_value_is_order_invariant():
    a = core.run_sweep(mk_config(seed_policy="stable_per_value", correlations=[0.0, 0.5, 0.9]))
    b = core.run_sweep(mk_config(seed_policy="stable_per_value", correlations=[0.9, 0.0, 0.5]))
    by_r_a = {res.r_target: res for res in a}
    by_r_b = {res.r_target: res for res in b}
    for r in (0.0, 0.5, 0.9):
        assert np.array_equal(by_r_a[r].observations.x1, by_r_b[r].observations.x1)
        assert np.array_equal(by_r_a[r].observations.x2, by_r_b[r].observations.x2)


def test_reference_scenario_r0():
    cfg = SimConfig(correlations=[0.0], n=1000, mean=15.0, sd=8.0, seed=20240101)
    (res,) = core.run_sweep(cfg)
    yadd_add, yadd_int, ymult_add, ymult_int = res.models

    assert res.realized_r == pytest.approx(0.0, abs=0.1)

    # yadd ~ x1 + x2 recovers unit slopes up to the truncation distortion
    assert yadd_add.coef("x1") == pytest.approx(1.0, abs=0.15)
    assert yadd_add.coef("x2") == pytest.approx(1.0, abs=0.15)

    # truncation leaves a small interaction, far below the main effects
    assert abs(yadd_int.coef("x1:x2")) < 0.1 * abs(yadd_int.coef("x1"))

    # ymult is exactly x1*x2, so only the interaction fit is exact
    assert ymult_int.rsquared == pytest.approx(1.0, abs=1e-9)
    assert ymult_int.coef("x1:x2") == pytest.approx(1.0, abs=1e-8)
    assert ymult_add.rsquared < ymult_int.rsquared - 0.05


def test_interaction_vanishes_for_additive_outcome_without_truncation():
    cfg = SimConfig(correlations=[0.0], n=1000, mean=100.0, sd=8.0, seed=7)
    (res,) = core.run_sweep(cfg)
    assert int(np.count_nonzero(res.observations.x1 == 0.0)) == 0
    yadd_int = res.models[1]
    assert yadd_int.specification == "interaction"
    assert yadd_int.coef("x1:x2") == pytest.approx(0.0, abs=1e-8)
    assert yadd_int.coef("x1") == pytest.approx(1.0, abs=1e-6)


def test_run_sweep_propagates_fit_error_for_perfect_correlation():
    cfg = mk_config(correlations=[0.0, 1.0])
    with pytest.raises(FitError) as ei:
        core.run_sweep(cfg)
    err = ei.value
    assert err.r_target == 1.0
    assert err.outcome == "yadd"
    assert err.specification == "additive"
    assert "yadd ~ additive" in str(err)


def test_summarize_sweep_schema():
    results = core.run_sweep(mk_config())
    df = core.summarize_sweep(results)
    assert df["r_target"].tolist() == [0.0, 0.5, 0.9]
    for col in (
        "r_realized",
        "r_bias",
        "n",
        "n_truncated_x1",
        "n_truncated_x2",
        "n_yadd_zero",
        "rsquared_yadd_additive",
        "rsquared_yadd_interaction",
        "rsquared_ymult_additive",
        "rsquared_ymult_interaction",
        "interaction_yadd",
        "interaction_yadd_p",
    ):
        assert col in df.columns, col
    assert (df["n"] == 200).all()
    # a zeroed yadd row means at least one truncated input
    assert (df["n_yadd_zero"] <= df["n_truncated_x1"] + df["n_truncated_x2"]).all()
    assert df["r_bias"].to_numpy() == pytest.approx((df["r_realized"] - df["r_target"]).to_numpy())


def test_summarize_sweep_empty():
    assert core.summarize_sweep([]).empty
