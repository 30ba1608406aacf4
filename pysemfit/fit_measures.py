#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 13:02:44 2026

@author: lukepinkel
"""
import numpy as np
import scipy as sp
import scipy.optimize
import scipy.stats

from .utilities.func_utils import triangular_number
from .utilities.linalg_operations import _vech

LOG2PI = np.log(2.0 * np.pi)


def degrees_of_freedom(p, n_free):
    return triangular_number(p) - n_free


def chi2_test(fval, n_eff, df):
    """Test statistic T = n' F_ML and its chi-square p-value."""
    chi2 = n_eff * max(fval, 0.0)
    pval = sp.stats.chi2(df).sf(chi2) if df > 0 else np.nan
    return chi2, pval


def srmr(Sigma, S):
    """
    Root mean square of the standardized residuals
    (s_ij - sigma_ij) / sqrt(s_ii s_jj) over the non-redundant cells.
    """
    v = 1.0 / np.sqrt(np.diag(S))
    resids = (S - Sigma) * np.outer(v, v)
    return np.sqrt(np.mean(_vech(resids)**2))


def rmr(Sigma, S):
    return np.sqrt(np.mean(_vech(S - Sigma)**2))


def gfi(Sigma, S):
    p = S.shape[0]
    tmp1 = np.linalg.solve(Sigma, S)
    tmp2 = tmp1 - np.eye(p)
    y = 1.0 - np.trace(np.dot(tmp2, tmp2)) / np.trace(np.dot(tmp1, tmp1))
    return y


def agfi(Sigma, S, df):
    if df <= 0:
        return np.nan
    p = S.shape[0]
    t = (p + 1.0) * p
    y = 1.0 - (t / (2.0*df)) * (1.0-gfi(Sigma, S))
    return y


def rmsea(chi2, df, n_eff):
    if df <= 0:
        return np.nan
    return np.sqrt(max((chi2 / df - 1.0) / n_eff, 0.0))


def _nc_cdf(chi2, df, nc):
    if nc <= 0:
        return sp.stats.chi2(df).cdf(chi2)
    return sp.stats.ncx2(df, nc).cdf(chi2)


def _solve_noncentrality(chi2, df, target):
    """Noncentrality at which the cdf of chi2 equals target (0 if none)."""
    if _nc_cdf(chi2, df, 0.0) < target:
        return 0.0
    hi = max(1.0, chi2)
    while _nc_cdf(chi2, df, hi) > target:
        hi *= 2.0
    return sp.optimize.brentq(lambda nc: _nc_cdf(chi2, df, nc) - target, 0.0, hi)


def rmsea_ci(chi2, df, n_eff, level=0.90):
    if df <= 0:
        return np.nan, np.nan
    a = (1.0 - level) / 2.0
    lower = _solve_noncentrality(chi2, df, 1.0 - a)
    upper = _solve_noncentrality(chi2, df, a)
    return np.sqrt(lower / (n_eff * df)), np.sqrt(upper / (n_eff * df))


def rmsea_pclose(chi2, df, n_eff, close=0.05):
    """P(RMSEA <= close) test of close fit."""
    if df <= 0:
        return np.nan
    return 1.0 - _nc_cdf(chi2, df, n_eff * df * close**2)


def cfi(chi2, df, chi2_base, df_base):
    num = max(chi2 - df, 0.0)
    den = max(chi2 - df, chi2_base - df_base, 0.0)
    if den == 0:
        return 1.0
    return 1.0 - num / den


def tli(chi2, df, chi2_base, df_base):
    if df <= 0 or df_base <= 0:
        return np.nan
    t_base = chi2_base / df_base
    if t_base == 1.0:
        return np.nan
    return (t_base - chi2 / df) / (t_base - 1.0)


def nfi(chi2, chi2_base):
    if chi2_base <= 0:
        return np.nan
    return (chi2_base - chi2) / chi2_base


def _ml_cov(S, n_obs):
    return S * (n_obs - 1.0) / n_obs


def loglike(Sigma, S, n_obs):
    """
    Normal log likelihood with the N divisor covariance, S being the unbiased
    sample covariance.
    """
    p = S.shape[0]
    S = _ml_cov(S, n_obs)
    _, lndSigma = np.linalg.slogdet(Sigma)
    trSV = np.trace(np.linalg.solve(Sigma, S))
    return -n_obs / 2.0 * (p * LOG2PI + lndSigma + trSV)


def unrestricted_loglike(S, n_obs):
    p = S.shape[0]
    S = _ml_cov(S, n_obs)
    _, lndS = np.linalg.slogdet(S)
    return -n_obs / 2.0 * (p * LOG2PI + lndS + p)


def information_criteria(ll, n_free, n_obs):
    aic = -2.0 * ll + 2.0 * n_free
    bic = -2.0 * ll + np.log(n_obs) * n_free
    bic2 = -2.0 * ll + np.log((n_obs + 2.0) / 24.0) * n_free
    return aic, bic, bic2


class FitStatistics(object):
    """
    Overall fit measures of a fitted model, named as in lavaan's
    ``fitMeasures``.  ``fmin`` is the minimum of F_ML itself.  The
    log-likelihoods and information criteria use N and the N divisor
    covariance, the test statistics use n'.

    Parameters
    ----------
    n_eff : float
        Multiplier n' of the test statistic (N - 1 or N).
    """

    def __init__(self, n_eff):
        self.n_eff = n_eff

    def compute(self, fval, Sigma, sample_moments, n_free, baseline_fval=None):
        S, n_obs = sample_moments.sample_cov, sample_moments.n_obs
        p = sample_moments.p
        df = degrees_of_freedom(p, n_free)
        chi2, pval = chi2_test(fval, self.n_eff, df)
        ll = loglike(Sigma, S, n_obs)
        aic, bic, bic2 = information_criteria(ll, n_free, n_obs)
        lo, hi = rmsea_ci(chi2, df, self.n_eff)
        res = {"npar": n_free, "ntotal": n_obs, "fmin": fval, "chisq": chi2,
               "df": df, "pvalue": pval}
        if baseline_fval is not None:
            df_base = degrees_of_freedom(p, p)
            chi2_base, pval_base = chi2_test(baseline_fval, self.n_eff, df_base)
            res.update({"baseline.chisq": chi2_base, "baseline.df": df_base,
                        "baseline.pvalue": pval_base,
                        "cfi": cfi(chi2, df, chi2_base, df_base),
                        "tli": tli(chi2, df, chi2_base, df_base),
                        "nfi": nfi(chi2, chi2_base)})
        res.update({"logl": ll, "unrestricted.logl": unrestricted_loglike(S, n_obs),
                    "aic": aic, "bic": bic, "bic2": bic2,
                    "rmsea": rmsea(chi2, df, self.n_eff),
                    "rmsea.ci.lower": lo, "rmsea.ci.upper": hi,
                    "rmsea.pvalue": rmsea_pclose(chi2, df, self.n_eff),
                    "rmr": rmr(Sigma, S), "srmr": srmr(Sigma, S),
                    "gfi": gfi(Sigma, S), "agfi": agfi(Sigma, S, df)})
        return res
