#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 15:07:36 2026

@author: lukepinkel
"""
import logging
import warnings

import numpy as np
import pandas as pd

from .config import FitConfig
from .cov_model import CovarianceStructure
from .errors import (NonConvergence, SingularStructuralMatrix,
                     UnderidentifiedModelError)
from .fit_measures import FitStatistics, loglike
from .fitfunctions import LikelihoodObjective
from .formula import FormulaParser
from .inference import InferenceEngine
from .model_data import SampleMoments
from .model_matrices import MATRIX_NAMES, MatrixBuilder
from .optimizer import Optimizer, TerminationState
from .param_table import ParameterTable
from .results import FitResult
from .utilities.output import get_param_table

logger = logging.getLogger(__name__)

_STRUCTURAL_OPTIONS = ("identification", "auto_cov_lv_x", "auto_cov_y",
                       "rcond_tol")


class SEM(object):
    """
    Structural equation model fitted by normal theory maximum likelihood.

    Parameters
    ----------
    formula : str
        Model description with ``=~``, ``~`` and ``~~`` statements.
    sample_moments : SampleMoments
        Sample covariance matrix; its variables must be exactly the observed
        variables of the model.
    config : FitConfig, optional
        Conventions and optimizer settings.

    Examples
    --------
    >>> moments = SampleMoments.from_dataframe(data)
    >>> model = SEM("f1 =~ x1 + x2 + x3\\nf2 =~ x4 + x5 + x6", moments)
    >>> res = model.fit()
    >>> res.param_table
    """

    def __init__(self, formula, sample_moments, config=None):
        config = FitConfig() if config is None else config
        self.config = config
        self.formula = formula
        self.sample_moments = sample_moments
        self.ptable = ParameterTable(formula, observed=sample_moments.names,
                                     identification=config.identification,
                                     auto_cov_lv_x=config.auto_cov_lv_x,
                                     auto_cov_y=config.auto_cov_y)
        self.builder = MatrixBuilder.from_moments(self.ptable, sample_moments)
        self.cov_model = CovarianceStructure(self.builder, config.rcond_tol)
        self.objective = LikelihoodObjective(sample_moments)
        self.theta_names = self.builder.theta_names
        self.n_theta = self.builder.n_theta
        self.theta_start = self.builder.free_parameters.values

    @staticmethod
    def model_variables(formula):
        """Observed variables named in ``formula``."""
        return FormulaParser(formula).var_names["obs"]

    @classmethod
    def from_data(cls, formula, data, config=None, ddof=1):
        """
        Model of the columns of ``data`` that appear in ``formula``; other
        columns are ignored and rows with missing values on the used columns
        are dropped.
        """
        if not isinstance(data, pd.DataFrame):
            arr = np.asarray(data, dtype=float)
            data = pd.DataFrame(arr, columns=[f"x{i}" for i in range(1, arr.shape[1]+1)])
        obs = cls.model_variables(formula)
        variables = [c for c in data.columns if str(c) in obs]
        data = data.loc[:, variables].rename(columns=str)
        moments = SampleMoments.from_dataframe(data, ddof=ddof)
        return cls(formula, moments, config)

    @classmethod
    def from_samplestats(cls, formula, sample_cov, n_obs, names=None, config=None):
        moments = SampleMoments.from_samplestats(sample_cov, n_obs, names=names)
        obs = cls.model_variables(formula)
        keep = [v for v in moments.names if v in obs]
        if keep and len(keep) < moments.p:
            moments = moments.subset_and_order(keep)
        return cls(formula, moments, config)

    def implied_cov(self, theta):
        return self.cov_model.implied_cov(theta)

    def fit_func_theta(self, theta):
        try:
            Sigma = self.cov_model.implied_cov(theta)
        except SingularStructuralMatrix:
            return np.inf
        return self.objective.function(Sigma)

    def gradient_theta(self, theta):
        try:
            Sigma, dSigma = self.cov_model.implied_cov_and_dsigma(theta)
            g = self.objective.gradient(Sigma, dSigma)
        except (SingularStructuralMatrix, np.linalg.LinAlgError):
            g = np.full(self.n_theta, np.nan)
        return g

    def fit_func(self, eta):
        """ML fit function at the unconstrained parameters eta."""
        return self.fit_func_theta(self.builder.eta_to_theta(eta))

    def gradient(self, eta):
        theta = self.builder.eta_to_theta(eta)
        return self.gradient_theta(theta) * self.builder.jac_eta_to_theta(eta)

    def loglike(self, theta):
        """Normal log likelihood of the sample at theta."""
        moments = self.sample_moments
        return loglike(self.implied_cov(theta), moments.sample_cov, moments.n_obs)

    def _baseline_formula(self):
        S = self.sample_moments.sample_cov
        lines = [f"{v} ~~ start({float(S[i, i]):.17g})*{v}"
                 for i, v in enumerate(self.sample_moments.names)]
        return "\n".join(lines)

    def fit_baseline(self, config=None):
        """
        Fits the independence model, which keeps the observed variances free
        and all covariances at zero.
        """
        config = self.config if config is None else config
        baseline = SEM(self._baseline_formula(), self.sample_moments,
                       config.replace(baseline=False))
        return baseline.fit()

    def _parameter_table(self, theta, se, alpha):
        table = self.ptable.visible_table
        free = table["free"].values.astype(int)
        padded_theta = np.concatenate([[np.nan], theta])
        padded_se = np.concatenate([[np.nan], se])
        est = np.where(free != 0, padded_theta[free], table["fixedval"].values)
        ses = np.where(free != 0, padded_se[free], np.nan)
        wald = get_param_table(est, ses, alpha=alpha)
        out = table[["lhs", "rel", "rhs", "label", "free"]].copy()
        out["matrix"] = [MATRIX_NAMES[i] for i in table["mat"]]
        for col in wald.columns:
            out[col] = wald[col].values
        return out

    def fit(self, config=None, callback=None):
        """
        Parameters
        ----------
        config : FitConfig, optional
            Overrides the configuration the model was built with.
        callback : callable, optional
            ``callback(n_iter, theta, f)`` called between iterations; a true
            return value stops the fit.

        Returns
        -------
        FitResult
        """
        config = self.config if config is None else config
        if any(getattr(config, k) != getattr(self.config, k) for k in _STRUCTURAL_OPTIONS):
            return SEM(self.formula, self.sample_moments, config).fit(callback=callback)
        builder, moments = self.builder, self.sample_moments
        df = builder.degrees_of_freedom
        if df < 0:
            raise UnderidentifiedModelError(df, builder.n_moments, self.n_theta)
        logger.info("Fitting %d free parameters to %d sample moments (df=%d, N=%d)",
                    self.n_theta, builder.n_moments, df, moments.n_obs)
        opt_callback = None
        if callback is not None:
            def opt_callback(n_iter, eta, f):
                return callback(n_iter, builder.eta_to_theta(eta), f)

        optimizer = Optimizer(config, self.theta_names)
        eta0 = builder.theta_to_eta(self.theta_start)
        opt = optimizer.minimize(self.fit_func, self.gradient, eta0, callback=opt_callback)
        fit_warnings = []
        if opt.state == TerminationState.MAX_ITERATIONS:
            w = NonConvergence(f"Optimizer did not converge after {opt.n_iter} "
                               f"iterations: {opt.message}", opt.n_iter)
            logger.warning("%s", w)
            fit_warnings.append(w)
        theta = builder.eta_to_theta(opt.x)
        n_eff = config.n_effective(moments.n_obs)
        inference = InferenceEngine(config.information).compute(self, theta, n_eff,
                                                                self.theta_names)
        if inference.warning is not None:
            fit_warnings.append(inference.warning)
        baseline_fval = None
        if config.baseline:
            baseline_fval = self.fit_baseline(config).fmin
        Sigma = self.implied_cov(theta)
        measures = FitStatistics(n_eff).compute(opt.fun, Sigma, moments,
                                                self.n_theta, baseline_fval)
        logger.info("Fit finished: %s after %d iterations, chisq=%.4f on %d df",
                    opt.state.value, opt.n_iter, measures["chisq"], df)
        for w in fit_warnings:
            warnings.warn(w, stacklevel=2)
        matrix_labels = {name: tuple(map(tuple, builder.mat_labels[i]))
                         for i, name in enumerate(MATRIX_NAMES)}
        wald = get_param_table(theta, inference.se, index=list(self.theta_names),
                               alpha=config.alpha)
        return FitResult.create(theta=theta, theta_names=self.theta_names,
                                se=inference.se, acov=inference.acov, Sigma=Sigma,
                                matrices=builder.theta_to_mats(theta),
                                matrix_labels=matrix_labels, state=opt.state,
                                n_iter=opt.n_iter, fmin=opt.fun,
                                warnings=fit_warnings, config=config,
                                param_table=self._parameter_table(theta, inference.se,
                                                                  config.alpha),
                                wald_table=wald, fit_measures=measures)


def cfa(formula, data=None, sample_cov=None, n_obs=None, config=None, **config_kws):
    """
    Fits a model in one call, from raw data or from a covariance matrix.

    Parameters
    ----------
    formula : str
        Model description.
    data : pandas.DataFrame, optional
        Raw observations.
    sample_cov : array_like or pandas.DataFrame, optional
        Sample covariance matrix, used when data is not given.
    n_obs : int, optional
        Sample size of sample_cov.
    config : FitConfig, optional
        Base configuration; ``config_kws`` override its fields.

    Returns
    -------
    FitResult
    """
    config = FitConfig(**config_kws) if config is None else config.replace(**config_kws)
    if data is not None:
        model = SEM.from_data(formula, data, config=config)
    elif sample_cov is not None:
        model = SEM.from_samplestats(formula, sample_cov, n_obs, config=config)
    else:
        raise ValueError("Either data or sample_cov has to be given")
    return model.fit()
