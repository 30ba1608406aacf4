#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 14:20:51 2026

@author: lukepinkel
"""
import types
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

import numpy as np
import pandas as pd

from .config import FitConfig
from .model_matrices import MATRIX_NAMES, ModelMatrices
from .optimizer import TerminationState


def _readonly(arr):
    arr = np.array(arr, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class FitResult:
    """
    Outcome of a single fit.  Arrays are read only and the tables are handed
    out as copies, so a result cannot be changed after it was produced.

    Attributes
    ----------
    theta : ndarray
        Estimates of the free parameters.
    theta_names : tuple of str
        Name of each entry of theta.
    se : ndarray
        Standard errors, NaN where the information matrix is singular.
    acov : ndarray
        Covariance matrix of theta.
    Sigma : ndarray
        Model implied covariance at theta.
    matrices : ModelMatrices
        L, B, F and P at theta.
    state : TerminationState
        How the optimizer stopped.
    n_iter : int
        Optimizer iterations.
    fmin : float
        Minimum of the ML fit function.
    warnings : tuple of SEMWarning
        Non-fatal conditions met during the fit.
    config : FitConfig
        Settings the fit was run with.
    """
    theta: np.ndarray
    theta_names: Tuple[str, ...]
    se: np.ndarray
    acov: np.ndarray
    Sigma: np.ndarray
    matrices: ModelMatrices
    matrix_labels: Mapping[str, Tuple[Tuple[str, ...], Tuple[str, ...]]]
    state: TerminationState
    n_iter: int
    fmin: float
    warnings: Tuple[Any, ...]
    config: FitConfig
    _param_table: pd.DataFrame
    _wald_table: pd.DataFrame
    _fit_measures: Mapping[str, float]

    @classmethod
    def create(cls, theta, theta_names, se, acov, Sigma, matrices,
               matrix_labels, state, n_iter, fmin, warnings, config,
               param_table, wald_table, fit_measures):
        matrices = ModelMatrices(*[_readonly(mat) for mat in matrices])
        return cls(theta=_readonly(theta), theta_names=tuple(theta_names),
                   se=_readonly(se), acov=_readonly(acov), Sigma=_readonly(Sigma),
                   matrices=matrices,
                   matrix_labels=types.MappingProxyType(dict(matrix_labels)),
                   state=state, n_iter=int(n_iter), fmin=float(fmin),
                   warnings=tuple(warnings), config=config,
                   _param_table=param_table.copy(), _wald_table=wald_table.copy(),
                   _fit_measures=types.MappingProxyType(dict(fit_measures)))

    @property
    def converged(self):
        return self.state == TerminationState.CONVERGED

    @property
    def param_table(self):
        """
        One row per parameter of the model, fixed ones included, with the
        estimate, standard error, z statistic, p-value and confidence
        interval.  Fixed parameters have missing inferential columns.
        """
        return self._param_table.copy()

    @property
    def params(self):
        """Wald table of the free parameters indexed by their names."""
        return self._wald_table.copy()

    @property
    def fit_measures(self):
        return pd.Series(dict(self._fit_measures), dtype=float)

    @property
    def chi2(self):
        return self._fit_measures["chisq"]

    @property
    def df(self):
        return int(self._fit_measures["df"])

    @property
    def pvalue(self):
        return self._fit_measures["pvalue"]

    @property
    def loglike(self):
        return self._fit_measures["logl"]

    @property
    def cfi(self):
        return self._fit_measures.get("cfi", np.nan)

    @property
    def tli(self):
        return self._fit_measures.get("tli", np.nan)

    @property
    def rmsea(self):
        return self._fit_measures["rmsea"]

    @property
    def srmr(self):
        return self._fit_measures["srmr"]

    @property
    def z_values(self):
        with np.errstate(divide="ignore", invalid="ignore"):
            return self.theta / self.se

    @property
    def p_values(self):
        return self._wald_table["p"].values.copy()

    @property
    def implied_cov(self):
        names = self.matrix_labels["P"][0]
        return pd.DataFrame(self.Sigma, index=list(names), columns=list(names))

    def matrix_frames(self):
        """Model matrices as labelled DataFrames keyed by L, B, F and P."""
        frames = {}
        for name, mat in zip(MATRIX_NAMES, self.matrices):
            rows, cols = self.matrix_labels[name]
            frames[name] = pd.DataFrame(mat, index=list(rows), columns=list(cols))
        return frames
