#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 11:31:40 2026

@author: lukepinkel
"""
import logging

import numpy as np
import pandas as pd

from .errors import SpecificationError
from .utilities.linalg_operations import chol_logdet, is_positive_definite

logger = logging.getLogger(__name__)


class SampleMoments(object):
    """
    Sample covariance matrix, number of observations and variable names.

    The order of ``names`` is the row order of the loading matrix for any
    model fitted to these moments.  Instances are treated as immutable; the
    covariance array is read only.

    Parameters
    ----------
    sample_cov : array_like or pandas.DataFrame
        Symmetric positive definite (p, p) covariance matrix.
    n_obs : int
        Number of observations the covariance was computed from.
    names : sequence of str, optional
        Variable names.  Taken from the DataFrame columns when sample_cov is
        a DataFrame and otherwise defaulting to x1, ..., xp.
    """

    def __init__(self, sample_cov, n_obs, names=None):
        sample_cov, names = self._to_array_and_names(sample_cov, names)
        self._check_moments(sample_cov, n_obs, names)
        _, lndS = chol_logdet(sample_cov)
        sample_cov = sample_cov.copy()
        sample_cov.setflags(write=False)
        self.sample_cov = sample_cov
        self.names = tuple(names)
        self.n_obs = int(n_obs)
        self.p = len(self.names)
        self.lndS = lndS
        self.const = -lndS - self.p
        self.var_order = dict(zip(self.names, np.arange(self.p)))

    @staticmethod
    def _to_array_and_names(sample_cov, names):
        if isinstance(sample_cov, pd.DataFrame):
            if names is None:
                names = [str(x) for x in sample_cov.columns]
            arr = sample_cov.values.astype(float)
        else:
            arr = np.asarray(sample_cov, dtype=float)
            if names is None and arr.ndim == 2:
                names = [f"x{i}" for i in range(1, arr.shape[1]+1)]
        return arr, list(names)

    @staticmethod
    def _check_moments(sample_cov, n_obs, names):
        if sample_cov.ndim != 2 or sample_cov.shape[0] != sample_cov.shape[1]:
            raise SpecificationError("Sample covariance must be a square matrix")
        if len(names) != sample_cov.shape[0]:
            raise SpecificationError(f"Got {len(names)} names for a "
                                     f"{sample_cov.shape[0]} variable covariance")
        if len(set(names)) != len(names):
            raise SpecificationError("Variable names must be unique")
        if not np.all(np.isfinite(sample_cov)):
            raise SpecificationError("Sample covariance contains non-finite values")
        if not np.allclose(sample_cov, sample_cov.T):
            raise SpecificationError("Sample covariance is not symmetric")
        if n_obs is None or n_obs < 2:
            raise SpecificationError("At least two observations are required")
        if not is_positive_definite(sample_cov):
            raise SpecificationError("Sample covariance is not positive definite")

    @classmethod
    def from_dataframe(cls, data, variables=None, ddof=1):
        """
        Compute the moments of raw data after listwise deletion.

        Parameters
        ----------
        data : pandas.DataFrame or array_like
            Observations in rows.
        variables : sequence of str, optional
            Columns to use, in the given order.  Defaults to all columns.
        ddof : int
            Delta degrees of freedom of the covariance; 1 gives the unbiased
            estimate matching the default N - 1 test statistic scaling.  The
            log-likelihoods always treat the covariance as the N - 1 divisor
            estimate and rescale it by (N - 1) / N.
        """
        if not isinstance(data, pd.DataFrame):
            arr = np.asarray(data, dtype=float)
            columns = [f"x{i}" for i in range(1, arr.shape[1]+1)]
            data = pd.DataFrame(arr, columns=columns)
        if variables is not None:
            missing = [v for v in variables if v not in data.columns]
            if missing:
                raise SpecificationError("Variables not found in data: "
                                         + ", ".join(map(str, missing)))
            data = data.loc[:, list(variables)]
        n_total = data.shape[0]
        data = data.dropna()
        if data.shape[0] < n_total:
            logger.info("Listwise deletion removed %d of %d rows",
                        n_total - data.shape[0], n_total)
        X = data.values.astype(float)
        sample_cov = np.cov(X, rowvar=False, ddof=ddof)
        sample_cov = np.atleast_2d(sample_cov)
        return cls(sample_cov, X.shape[0], names=[str(x) for x in data.columns])

    @classmethod
    def from_samplestats(cls, sample_cov, n_obs, names=None):
        return cls(sample_cov, n_obs, names=names)

    def subset_and_order(self, variables):
        variables = list(variables)
        missing = [v for v in variables if v not in self.var_order]
        if missing:
            raise SpecificationError("Variables not found in sample moments: "
                                     + ", ".join(missing))
        ix = np.array([self.var_order[v] for v in variables], dtype=int)
        return SampleMoments(self.sample_cov[np.ix_(ix, ix)], self.n_obs,
                             names=variables)

    @property
    def sample_cov_df(self):
        return pd.DataFrame(self.sample_cov, index=self.names, columns=self.names)

    def __repr__(self):
        return f"SampleMoments(p={self.p}, n_obs={self.n_obs})"
