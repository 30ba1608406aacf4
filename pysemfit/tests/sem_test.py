import dataclasses

import numpy as np
import pandas as pd
import pytest

from pysemfit import (FitConfig, SEM, SampleMoments, cfa, IdentificationError,
                      NonConvergence, TerminationState, UnderidentifiedModelError,
                      UnknownVariableError, VariableMismatchError)
from pysemfit.tests.simulated_models import (HS_FORMULA, HS_FORMULA_REORDERED,
                                             PD_FORMULA, MIMIC_FORMULA,
                                             NONRECURSIVE_FORMULA,
                                             population_moments, simulate_data)


@pytest.mark.parametrize("formula", [HS_FORMULA, PD_FORMULA, MIMIC_FORMULA])
def test_self_consistency(formula):
    moments, theta, builder = population_moments(formula)
    res = SEM(formula, moments).fit()
    estimates = dict(zip(res.theta_names, res.theta))
    truth = dict(zip(builder.theta_names, theta))
    assert(res.converged)
    assert(res.fmin < 1e-10)
    assert(res.chi2 < 1e-6)
    assert(np.allclose([estimates[k] for k in truth], list(truth.values()), atol=1e-4))
    assert(np.isclose(res.cfi, 1.0) and res.rmsea == 0.0)


def test_degrees_of_freedom():
    moments, _, _ = population_moments(HS_FORMULA)
    res = SEM(HS_FORMULA, moments, FitConfig(baseline=False)).fit()
    assert(res.df == 24)
    assert(res.fit_measures["npar"] == 21)
    moments, _, _ = population_moments(PD_FORMULA)
    res = SEM(PD_FORMULA, moments, FitConfig(baseline=False)).fit()
    assert(res.df == 66 - 31)


def test_reordered_indicators():
    data = simulate_data(HS_FORMULA, n_obs=300, seed=11)
    res1 = cfa(HS_FORMULA, data=data)
    res2 = cfa(HS_FORMULA_REORDERED, data=data)
    assert(res1.df == res2.df)
    for key in ["chisq", "cfi", "tli", "rmsea", "srmr"]:
        assert(np.isclose(res1.fit_measures[key], res2.fit_measures[key],
                          rtol=1e-5, atol=1e-8))
    assert(np.allclose(res1.Sigma, res2.Sigma, atol=1e-6))


def test_marker_and_variance_identification_agree():
    data = simulate_data(HS_FORMULA, n_obs=250, seed=3)
    res1 = cfa(HS_FORMULA, data=data)
    res2 = cfa(HS_FORMULA, data=data, identification="variance")
    assert(np.isclose(res1.chi2, res2.chi2, rtol=1e-5, atol=1e-8))
    assert(np.allclose(res1.Sigma, res2.Sigma, atol=1e-6))


def test_continuity():
    moments, theta, _ = population_moments(HS_FORMULA)
    rng = np.random.default_rng(5)
    E = rng.normal(size=(9, 9)) * 1e-5
    perturbed = SampleMoments(moments.sample_cov + E + E.T, moments.n_obs,
                              names=moments.names)
    config = FitConfig(baseline=False)
    res1 = SEM(HS_FORMULA, moments, config).fit()
    res2 = SEM(HS_FORMULA, perturbed, config).fit()
    assert(np.max(np.abs(res1.theta - res2.theta)) < 1e-3)


def test_simulated_fit():
    data = simulate_data(PD_FORMULA, n_obs=500, seed=7)
    res = cfa(PD_FORMULA, data=data)
    assert(res.converged)
    assert(res.df == 35)
    assert(0.0 <= res.cfi <= 1.0)
    assert(np.all(np.isfinite(res.se)))
    assert(res.fit_measures["baseline.chisq"] > res.chi2)
    assert(np.isclose(res.loglike, res.fit_measures["logl"]))


def test_scipy_method():
    data = simulate_data(HS_FORMULA, n_obs=300, seed=11)
    res1 = cfa(HS_FORMULA, data=data)
    res2 = cfa(HS_FORMULA, data=data, method="BFGS")
    assert(np.isclose(res1.chi2, res2.chi2, rtol=1e-3))


def test_param_table():
    moments, _, _ = population_moments(HS_FORMULA)
    res = SEM(HS_FORMULA, moments).fit()
    table = res.param_table
    fixed = table.loc[table["free"] == 0]
    assert(len(table) == 24)
    assert(len(fixed) == 3)
    assert(np.all(fixed["estimate"] == 1.0) and fixed["SE"].isna().all())
    assert(table.loc[table["free"] != 0, "SE"].notna().all())
    assert(set(table["matrix"]) == {"L", "F", "P"})


def test_result_is_immutable():
    moments, _, _ = population_moments(HS_FORMULA)
    res = SEM(HS_FORMULA, moments, FitConfig(baseline=False)).fit()
    with pytest.raises(dataclasses.FrozenInstanceError):
        res.theta = None
    with pytest.raises(ValueError):
        res.theta[0] = 10.0
    with pytest.raises(ValueError):
        res.matrices.L[0, 0] = 2.0
    table = res.param_table
    table["estimate"] = 0.0
    assert(not np.all(res.param_table["estimate"] == 0.0))
    frames = res.matrix_frames()
    assert(frames["L"].shape == (9, 3))
    assert(list(res.implied_cov.columns) == [f"x{i}" for i in range(1, 10)])


def test_iteration_budget():
    moments, _, _ = population_moments(HS_FORMULA)
    model = SEM(HS_FORMULA, moments)
    with pytest.warns(NonConvergence):
        res = model.fit(FitConfig(max_iter=2))
    assert(res.state == TerminationState.MAX_ITERATIONS)
    assert(any(isinstance(w, NonConvergence) for w in res.warnings))
    assert(np.all(np.isfinite(res.theta)))


def test_callback_stop():
    moments, _, _ = population_moments(HS_FORMULA)
    model = SEM(HS_FORMULA, moments, FitConfig(baseline=False))
    calls = []

    def callback(n_iter, theta, f):
        calls.append(theta.copy())
        return n_iter >= 3

    with pytest.warns(NonConvergence):
        res = model.fit(callback=callback)
    assert(res.state == TerminationState.MAX_ITERATIONS)
    assert(res.n_iter == 3)
    assert(np.all(calls[0] == model.theta_start))


def test_refit_with_other_identification():
    moments, _, _ = population_moments(HS_FORMULA)
    model = SEM(HS_FORMULA, moments, FitConfig(baseline=False))
    res = model.fit(FitConfig(baseline=False, identification="variance"))
    assert(res.config.identification == "variance")
    assert(res.chi2 < 1e-6)


def test_underidentified():
    moments = SampleMoments(np.array([[1.0]]), 100, names=["x1"])
    with pytest.raises(UnderidentifiedModelError) as excinfo:
        SEM("f =~ x1", moments).fit()
    assert(isinstance(excinfo.value, IdentificationError))
    assert(excinfo.value.df == -1)


def test_variable_checks():
    moments, _, _ = population_moments(HS_FORMULA)
    extra = SampleMoments(np.eye(10), 100, names=[f"x{i}" for i in range(1, 11)])
    with pytest.raises(VariableMismatchError):
        SEM(HS_FORMULA, extra)
    with pytest.raises(UnknownVariableError):
        SEM(HS_FORMULA + "\nspeed =~ x10", moments)
    model = SEM.from_samplestats(HS_FORMULA, np.eye(10), 100,
                                 names=[f"x{i}" for i in range(1, 11)])
    assert(model.sample_moments.p == 9)


def test_from_data_listwise():
    data = simulate_data(HS_FORMULA, n_obs=200, seed=2)
    data["other"] = np.arange(200.0)
    data.loc[[0, 5, 9], "x3"] = np.nan
    data.loc[[1], "other"] = np.nan
    model = SEM.from_data(HS_FORMULA, data)
    assert(model.sample_moments.n_obs == 197)
    assert(model.sample_moments.names == tuple(f"x{i}" for i in range(1, 10)))


def test_cfa_from_covariance():
    moments, _, _ = population_moments(HS_FORMULA)
    cov = pd.DataFrame(moments.sample_cov, index=moments.names, columns=moments.names)
    res = cfa(HS_FORMULA, sample_cov=cov, n_obs=300)
    assert(res.converged and res.fit_measures["ntotal"] == 300)
    with pytest.raises(ValueError):
        cfa(HS_FORMULA)


def test_observed_information_config():
    moments, _, _ = population_moments(HS_FORMULA)
    res = SEM(HS_FORMULA, moments, FitConfig(information="observed")).fit()
    assert(res.config.information == "observed")
    assert(np.all(np.isfinite(res.se)))


def test_singular_structural_matrix_is_penalized():
    moments, theta, builder = population_moments(NONRECURSIVE_FORMULA)
    model = SEM(NONRECURSIVE_FORMULA, moments, FitConfig(baseline=False))
    names = list(model.theta_names)
    singular = model.theta_start.copy()
    singular[names.index("y1~y2")] = singular[names.index("y2~y1")] = 1.0
    assert(model.fit_func_theta(singular) == np.inf)
    assert(np.all(np.isnan(model.gradient_theta(singular))))
    res = model.fit()
    estimates = dict(zip(res.theta_names, res.theta))
    truth = dict(zip(builder.theta_names, theta))
    assert(res.converged and res.df == 1)
    assert(np.isclose(estimates["y1~y2"], 0.4, atol=1e-4))
    assert(np.isclose(estimates["y2~y1"], 0.4, atol=1e-4))
    assert(np.allclose([estimates[k] for k in truth], list(truth.values()), atol=1e-4))
