import numpy as np
import pytest

from pysemfit.cov_model import CovarianceStructure, implied_cov, structural_inverse
from pysemfit.errors import SingularStructuralMatrix, VariableMismatchError
from pysemfit.model_matrices import MatrixBuilder
from pysemfit.param_table import ParameterTable
from pysemfit.tests.simulated_models import (HS_FORMULA, PD_FORMULA, MIMIC_FORMULA,
                                             population_theta)
from pysemfit.utilities.numerical_derivs import jac_cd


def _structure(formula):
    ptable = ParameterTable(formula)
    builder = MatrixBuilder(ptable)
    return CovarianceStructure(builder), population_theta(ptable)


def test_matrix_shapes():
    cov_model, theta = _structure(HS_FORMULA)
    L, B, F, P = cov_model.builder.theta_to_mats(theta)
    assert(L.shape == (9, 3) and B.shape == (3, 3))
    assert(F.shape == (3, 3) and P.shape == (9, 9))
    assert(L[0, 0] == 1.0 and L[3, 1] == 1.0 and L[6, 2] == 1.0)
    assert(np.allclose(F, F.T) and np.allclose(P, np.diag(np.diag(P))))


def test_theta_round_trip():
    cov_model, theta = _structure(PD_FORMULA)
    builder = cov_model.builder
    mats = builder.theta_to_mats(theta)
    assert(np.allclose(builder.mats_to_theta(mats), theta))
    eta = builder.theta_to_eta(theta)
    assert(np.allclose(builder.eta_to_theta(eta), theta))


def test_templates_are_not_modified():
    cov_model, theta = _structure(HS_FORMULA)
    builder = cov_model.builder
    before = [t.copy() for t in builder.templates]
    builder.theta_to_mats(theta + 1.0)
    for t0, t1 in zip(before, builder.templates):
        assert(np.array_equal(t0, t1))
    Sigma1 = cov_model.implied_cov(theta)
    Sigma2 = cov_model.implied_cov(theta)
    assert(np.array_equal(Sigma1, Sigma2))


def test_observed_order():
    ptable = ParameterTable(HS_FORMULA)
    order = ["x9", "x1", "x5", "x2", "x3", "x4", "x6", "x7", "x8"]
    theta = population_theta(ptable)
    Sigma0 = CovarianceStructure(MatrixBuilder(ptable)).implied_cov(theta)
    Sigma1 = CovarianceStructure(MatrixBuilder(ptable, order)).implied_cov(theta)
    ix = [int(v[1]) - 1 for v in order]
    assert(np.allclose(Sigma0[np.ix_(ix, ix)], Sigma1))


def test_variable_mismatch():
    ptable = ParameterTable(HS_FORMULA)
    with pytest.raises(VariableMismatchError) as excinfo:
        MatrixBuilder(ptable, ["x1", "x2", "x3", "x4", "x5", "x6", "x7", "x8", "x10"])
    assert(excinfo.value.missing == ("x9",))
    assert(excinfo.value.extra == ("x10",))


@pytest.mark.parametrize("formula", [HS_FORMULA, PD_FORMULA, MIMIC_FORMULA])
def test_dsigma(formula):
    cov_model, theta = _structure(formula)
    rng = np.random.default_rng(0)
    theta = theta + rng.uniform(0.0, 0.1, size=len(theta))
    dS = cov_model.dsigma(theta)
    dS_numerical = jac_cd(cov_model.implied_cov, theta)
    assert(dS.shape == (len(theta), cov_model.p, cov_model.p))
    assert(np.allclose(dS, dS_numerical, atol=1e-6, rtol=1e-5))


def test_singular_structural_matrix():
    ptable = ParameterTable("y1 ~ y2\ny2 ~ y1")
    cov_model = CovarianceStructure(MatrixBuilder(ptable))
    names = ptable.theta_names
    theta = np.ones(len(names))
    with pytest.raises(SingularStructuralMatrix):
        cov_model.implied_cov(theta)
    theta[names.index("y1~y2")] = 0.5
    Sigma = cov_model.implied_cov(theta)
    assert(np.all(np.linalg.eigvalsh(Sigma) > 0))


def test_structural_inverse():
    B = np.array([[0.0, 0.0], [0.5, 0.0]])
    A = structural_inverse(B)
    assert(np.allclose(A.dot(np.eye(2) - B), np.eye(2)))
    assert(structural_inverse(np.zeros((0, 0))).shape == (0, 0))


def test_implied_cov_without_latents():
    cov_model, theta = _structure("x1 ~~ x2")
    mats = cov_model.builder.theta_to_mats(theta)
    assert(mats.L.shape == (2, 0))
    assert(np.allclose(implied_cov(mats), mats.P))
