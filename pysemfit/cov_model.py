#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 08:41:56 2026

@author: lukepinkel

Model implied covariance

    Sigma = L (I - B)^{-1} F (I - B)^{-T} L^T + P

and its first derivatives with respect to the free parameters.
"""

import numba
import numpy as np

from .errors import SingularStructuralMatrix
from .utilities.linalg_operations import reciprocal_condition, symmetrize


@numba.jit(nopython=True)
def _dsigma(dS, LA, AF, LAFAt, LAt, dA, r, c, kinds):
    """
    dS[k] = d Sigma / d cell_k with A = (I - B)^{-1}, LA = L A,
    AF = A F and LAFAt = L A F A^T.  Kinds 0, 1, 2, 3 are cells of
    L, B, F and P respectively.
    """
    for k in range(dS.shape[0]):
        J = np.ascontiguousarray(dA[k, :r[k], :c[k]])
        kind = kinds[k]
        if kind == 0:
            J1 = LAFAt.dot(np.ascontiguousarray(J.T))
            dS[k, :, :] = J1 + J1.T
        elif kind == 1:
            J1 = J.dot(AF)
            dS[k, :, :] = LA.dot(J1 + J1.T).dot(LAt)
        elif kind == 2:
            dS[k, :, :] = LA.dot(J).dot(LAt)
        else:
            dS[k, :, :] = J
    return dS


def structural_inverse(B, rcond_tol=1e-12):
    """
    Returns (I - B)^{-1}, raising ``SingularStructuralMatrix`` when the
    reciprocal condition number of I - B is below ``rcond_tol``.
    """
    m = B.shape[0]
    if m == 0:
        return np.zeros((0, 0))
    IB = np.eye(m) - B
    rcond = reciprocal_condition(IB)
    if rcond < rcond_tol:
        raise SingularStructuralMatrix(rcond, rcond_tol)
    return np.linalg.inv(IB)


def implied_cov(mats, rcond_tol=1e-12):
    """
    Model implied covariance of a set of ``ModelMatrices``.  Pure function of
    its arguments.
    """
    A = structural_inverse(mats.B, rcond_tol)
    LA = mats.L.dot(A)
    Sigma = LA.dot(mats.F).dot(LA.T) + mats.P
    return symmetrize(Sigma)


class CovarianceStructure(object):
    """
    Implied covariance of a model as a function of theta.

    Parameters
    ----------
    builder : MatrixBuilder
        Map from theta to the model matrices.
    rcond_tol : float
        Threshold on the reciprocal condition number of I - B.
    """

    def __init__(self, builder, rcond_tol=1e-12):
        self.builder = builder
        self.rcond_tol = rcond_tol
        self.p = builder.p

    def implied_cov(self, theta):
        return implied_cov(self.builder.theta_to_mats(theta), self.rcond_tol)

    def dsigma(self, theta):
        """
        Derivatives of Sigma with respect to theta, of shape (n_theta, p, p).
        """
        builder = self.builder
        L, B, F, _ = builder.theta_to_mats(theta)
        A = structural_inverse(B, self.rcond_tol)
        LA = np.ascontiguousarray(L.dot(A))
        AF = np.ascontiguousarray(A.dot(F))
        LAFAt = np.ascontiguousarray(LA.dot(F).dot(A.T))
        LAt = np.ascontiguousarray(LA.T)
        dS = np.zeros((builder.n_rows, self.p, self.p))
        if builder.n_rows > 0:
            dS = _dsigma(dS, LA, AF, LAFAt, LAt, builder.dA, builder.d_rows,
                         builder.d_cols, builder.d_kind)
        return np.einsum("kij,kt->tij", dS, builder.row_to_theta)

    def implied_cov_and_dsigma(self, theta):
        return self.implied_cov(theta), self.dsigma(theta)
