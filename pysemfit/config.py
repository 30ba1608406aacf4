#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 10:40:02 2026

@author: lukepinkel

Fit configuration.  Conventions that change numerical results (scaling of
the latent variables, the information matrix, the N - 1 versus N scaling of
the test statistic) are carried by a ``FitConfig`` value that is passed into
each fit rather than held as module state.
"""
import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

_CHOICES = {
    "identification": ("marker", "variance"),
    "information": ("expected", "observed"),
    "sample_scaling": ("n-1", "n"),
}


@dataclass(frozen=True)
class FitConfig:
    """
    Parameters
    ----------
    identification : {"marker", "variance"}
        "marker" fixes the first loading of each latent variable to one,
        "variance" fixes the latent variances to one and frees the loadings.
    information : {"expected", "observed"}
        Information matrix used for the standard errors.
    sample_scaling : {"n-1", "n"}
        Multiplier n' of the test statistic T = n' F_ML; the same n' scales
        the parameter covariance matrix.
    auto_cov_lv_x : bool
        Free covariances among exogenous latent variables.
    auto_cov_y : bool
        Free residual covariances among purely endogenous variables, latent
        as well as observed, as lavaan's ``auto.cov.y`` does.
    method : str
        Name of the ``scipy.optimize.minimize`` method, applied to the
        parameters with the variances on the log scale.
    max_iter : int
        Iteration budget.
    max_time : float, optional
        Wall clock budget in seconds, checked between iterations.
    ftol, xtol, gtol : float
        Relative change in F, relative change in theta and gradient
        max-norm tolerances.
    max_nonfinite : int
        Consecutive objective evaluations that are not finite before the fit
        is declared diverged.
    rcond_tol : float
        Smallest acceptable reciprocal condition number of I - B.
    baseline : bool
        Fit the independence model and report the incremental fit indices.
    alpha : float
        Significance level of the reported confidence intervals.
    minimize_kws : dict, optional
        Extra keyword arguments for ``scipy.optimize.minimize``.
    """
    identification: str = "marker"
    information: str = "expected"
    sample_scaling: str = "n-1"
    auto_cov_lv_x: bool = True
    auto_cov_y: bool = True
    method: str = "L-BFGS-B"
    max_iter: int = 1000
    max_time: Optional[float] = None
    ftol: float = 1e-12
    xtol: float = 1e-9
    gtol: float = 1e-8
    max_nonfinite: int = 20
    rcond_tol: float = 1e-12
    baseline: bool = True
    alpha: float = 0.05
    minimize_kws: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        for key, choices in _CHOICES.items():
            value = getattr(self, key)
            if value not in choices:
                raise ValueError(f"{key} must be one of {choices}, got {value!r}")
        if self.max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        if self.max_nonfinite < 1:
            raise ValueError("max_nonfinite must be at least 1")
        if self.max_time is not None and self.max_time <= 0:
            raise ValueError("max_time must be positive")
        for key in ("ftol", "xtol", "gtol", "rcond_tol"):
            if getattr(self, key) < 0:
                raise ValueError(f"{key} must be non-negative")
        if not 0.0 < self.alpha < 1.0:
            raise ValueError("alpha must lie in (0, 1)")

    @property
    def n_offset(self):
        return 1 if self.sample_scaling == "n-1" else 0

    def n_effective(self, n_obs):
        return n_obs - self.n_offset

    def replace(self, **kws):
        return dataclasses.replace(self, **kws)
