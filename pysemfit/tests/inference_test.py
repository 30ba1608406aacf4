import numpy as np

from pysemfit.config import FitConfig
from pysemfit.fitfunctions import LikelihoodObjective
from pysemfit.inference import InferenceEngine, invert_information
from pysemfit.sem import SEM
from pysemfit.tests.simulated_models import HS_FORMULA, population_moments


class DegenerateModel:
    """Two parameters that enter Sigma only through their sum."""

    class cov_model:

        @staticmethod
        def implied_cov_and_dsigma(theta):
            dSigma = np.zeros((2, 2, 2))
            dSigma[0] = dSigma[1] = np.eye(2)
            return np.eye(2) * (1.0 + theta.sum()), dSigma

    objective = LikelihoodObjective()


def test_invert_regular():
    info = np.array([[2.0, 0.5], [0.5, 1.0]])
    acov, undefined = invert_information(info, 100)
    assert(np.allclose(acov, np.linalg.inv(info) / 100))
    assert(not np.any(undefined))


def test_invert_singular():
    info = np.array([[1.0, 1.0, 0.0], [1.0, 1.0, 0.0], [0.0, 0.0, 2.0]])
    acov, undefined = invert_information(info, 10)
    assert(list(undefined) == [True, True, False])
    assert(np.all(np.isnan(acov[:2])) and np.all(np.isnan(acov[:, :2])))
    assert(np.isclose(acov[2, 2], 0.5 / 10))


def test_singular_information_warning():
    engine = InferenceEngine("expected")
    res = engine.compute(DegenerateModel(), np.zeros(2), 50, names=["a", "b"])
    assert(np.all(np.isnan(res.se)))
    assert(res.warning is not None)
    assert(res.warning.parameters == ("a", "b"))


def _fit(n_obs, **config_kws):
    moments, _, _ = population_moments(HS_FORMULA, n_obs=n_obs)
    config = FitConfig(baseline=False, **config_kws)
    return SEM(HS_FORMULA, moments, config).fit()


def test_se_scales_with_sample_size():
    res1 = _fit(200, sample_scaling="n")
    res2 = _fit(800, sample_scaling="n")
    assert(np.allclose(res1.theta, res2.theta, atol=1e-8))
    assert(np.allclose(res1.se / res2.se, 2.0, rtol=1e-5))


def test_n_minus_one_scaling():
    res1 = _fit(201, sample_scaling="n-1")
    res2 = _fit(200, sample_scaling="n")
    assert(np.allclose(res1.se, res2.se, rtol=1e-5))


def test_observed_matches_expected_at_perfect_fit():
    res_exp = _fit(300, information="expected")
    res_obs = _fit(300, information="observed")
    assert(np.allclose(res_exp.se, res_obs.se, rtol=1e-3))


def test_wald_table():
    res = _fit(300)
    table = res.params
    assert(list(table.columns) == ["estimate", "SE", "z", "p", "LowerCI95", "UpperCI95"])
    assert(list(table.index) == list(res.theta_names))
    assert(np.allclose(table["z"], res.z_values))
    assert(np.allclose(table["p"], res.p_values))
    assert(np.all(table["LowerCI95"] < table["estimate"]))
