#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 12:16:03 2026

@author: lukepinkel
"""
import logging
from typing import NamedTuple, Optional

import numpy as np

from .errors import SingularInformationMatrix
from .utilities.linalg_operations import symmetrize
from .utilities.numerical_derivs import so_gc_cd

logger = logging.getLogger(__name__)


class InferenceResult(NamedTuple):
    information: np.ndarray
    acov: np.ndarray
    se: np.ndarray
    warning: Optional[SingularInformationMatrix]


def invert_information(info, n_eff, tol=1e-10, null_tol=1e-6):
    """
    Parameter covariance matrix inv(info) / n_eff.

    A singular (or indefinite) information matrix is inverted on the span of
    its eigenvectors with eigenvalues above ``tol`` times the largest; rows
    and columns of parameters with a component larger than ``null_tol`` in
    the remaining null space are set to NaN.

    Returns
    -------
    acov : ndarray
        (q, q) covariance matrix.
    undefined : ndarray of bool
        Parameters whose variance is not defined.
    """
    q = info.shape[0]
    undefined = np.zeros(q, dtype=bool)
    if q == 0:
        return np.zeros((0, 0)), undefined
    w, U = np.linalg.eigh(symmetrize(info))
    wmax = np.max(np.abs(w))
    small = w <= tol * wmax if wmax > 0 else np.ones(q, dtype=bool)
    keep = ~small
    acov = (U[:, keep] / w[keep]).dot(U[:, keep].T) / n_eff
    if np.any(small):
        undefined = np.any(np.abs(U[:, small]) > null_tol, axis=1)
        acov[undefined, :] = np.nan
        acov[:, undefined] = np.nan
    return acov, undefined


class InferenceEngine(object):
    """
    Standard errors from the expected or observed information matrix.

    Per observation, the expected information of the ML fit function is
    ½ tr(Sigma^{-1} dSigma_k Sigma^{-1} dSigma_l) and the observed
    information is ½ times the hessian of F_ML; the parameter covariance is
    the inverse of n' times the information, n' being the multiplier of the
    test statistic.

    Parameters
    ----------
    information : {"expected", "observed"}
    """

    def __init__(self, information="expected"):
        self.information = information

    def information_matrix(self, model, theta):
        """
        Per observation information matrix of ``model`` (a ``SEM``) at the
        natural parameters theta.
        """
        if self.information == "observed":
            H = so_gc_cd(model.gradient_theta, theta)
        else:
            Sigma, dSigma = model.cov_model.implied_cov_and_dsigma(theta)
            H = model.objective.hessian(Sigma, dSigma)
        return symmetrize(H) / 2.0

    def compute(self, model, theta, n_eff, names=()):
        info = self.information_matrix(model, theta)
        acov, undefined = invert_information(info, n_eff)
        with np.errstate(invalid="ignore"):
            se = np.sqrt(np.diag(acov))
        warning = None
        if np.any(undefined):
            affected = [name for name, u in zip(names, undefined) if u]
            warning = SingularInformationMatrix(
                f"The {self.information} information matrix is singular; standard "
                f"errors are undefined for: {', '.join(affected)}", affected)
            logger.warning("%s", warning)
        return InferenceResult(info, acov, se, warning)
