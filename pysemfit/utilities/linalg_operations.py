#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 11:02:45 2026

@author: lukepinkel
"""

import numpy as np
import scipy as sp
import scipy.linalg


def _vech(x):
    m = x.shape[-1]
    ix, jx = np.triu_indices(m, k=0)
    res = x[..., jx, ix]
    return res


def reciprocal_condition(A):
    """
    Reciprocal 2-norm condition number of a square matrix, zero for
    matrices with non-finite entries or no non-zero singular value.
    """
    if A.size == 0:
        return 1.0
    if not np.all(np.isfinite(A)):
        return 0.0
    s = np.linalg.svd(A, compute_uv=False)
    if s[0] <= 0:
        return 0.0
    return s[-1] / s[0]


def chol_logdet(A):
    """
    Cholesky factor and log determinant of a symmetric positive definite
    matrix.  Raises ``np.linalg.LinAlgError`` when A is not positive definite.
    """
    if not np.all(np.isfinite(A)):
        raise np.linalg.LinAlgError("Matrix contains non-finite values")
    c = sp.linalg.cho_factor(A, lower=True)
    lnd = 2.0 * np.sum(np.log(np.diag(c[0])))
    return c, lnd


def is_positive_definite(A):
    try:
        chol_logdet(A)
    except np.linalg.LinAlgError:
        return False
    return True


def symmetrize(A):
    return (A + np.swapaxes(A, -1, -2)) / 2.0
