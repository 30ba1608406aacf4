import numpy as np
import pytest

from pysemfit.fitfunctions import LikelihoodObjective
from pysemfit.model_data import SampleMoments
from pysemfit.sem import SEM
from pysemfit.tests.simulated_models import HS_FORMULA, PD_FORMULA, population_moments
from pysemfit.utilities.numerical_derivs import fo_fc_cd


def test_zero_at_sample_covariance():
    S = np.array([[2.0, 0.5], [0.5, 1.0]])
    objective = LikelihoodObjective(SampleMoments(S, 100))
    assert(np.isclose(objective.function(S), 0.0, atol=1e-12))
    assert(objective.function(S + np.eye(2)) > 0)


def test_infinite_outside_domain():
    S = np.array([[2.0, 0.5], [0.5, 1.0]])
    objective = LikelihoodObjective(SampleMoments(S, 100))
    assert(objective.function(np.array([[1.0, 2.0], [2.0, 1.0]])) == np.inf)


@pytest.mark.parametrize("formula", [HS_FORMULA, PD_FORMULA])
def test_gradient(formula):
    moments, theta, _ = population_moments(formula)
    model = SEM(formula, moments)
    rng = np.random.default_rng(1)
    theta = theta + rng.uniform(-0.05, 0.05, size=len(theta))
    g_analytic = model.gradient_theta(theta)
    g_numerical = fo_fc_cd(model.fit_func_theta, theta)
    assert(np.allclose(g_analytic, g_numerical, atol=1e-6, rtol=1e-5))


def test_gradient_log_scale():
    moments, theta, _ = population_moments(HS_FORMULA)
    model = SEM(HS_FORMULA, moments)
    eta = model.builder.theta_to_eta(theta * 1.1)
    assert(np.allclose(model.gradient(eta), fo_fc_cd(model.fit_func, eta),
                       atol=1e-6, rtol=1e-5))


def test_expected_hessian_at_perfect_fit():
    moments, theta, _ = population_moments(HS_FORMULA)
    model = SEM(HS_FORMULA, moments)
    Sigma, dSigma = model.cov_model.implied_cov_and_dsigma(theta)
    H = model.objective.hessian(Sigma, dSigma)
    H_numerical = np.array([fo_fc_cd(lambda t: model.gradient_theta(t)[i], theta)
                            for i in range(len(theta))])
    assert(np.allclose(H, H.T))
    assert(np.allclose(H, H_numerical, atol=1e-5, rtol=1e-4))
