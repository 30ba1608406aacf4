#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 10:55:29 2026

@author: lukepinkel
"""
import enum
import logging
import time
from typing import NamedTuple

import numpy as np
import scipy as sp
import scipy.optimize

from .errors import OptimizationFailure
from .utilities.func_utils import handle_default_kws

logger = logging.getLogger(__name__)

LBFGSB_options = dict(maxfun=15000)
TrustConstr_options = dict(verbose=0, xtol=1e-10)
default_opts = {'L-BFGS-B': LBFGSB_options,
                'l-bfgs-b': LBFGSB_options,
                'trust-constr': TrustConstr_options}


class TerminationState(enum.Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    DIVERGED = "diverged"


class OptimizationResult(NamedTuple):
    x: np.ndarray
    fun: float
    grad: np.ndarray
    state: TerminationState
    n_iter: int
    n_fev: int
    message: str


class _Budget(object):
    """Wall clock and caller supplied stopping checks."""

    def __init__(self, max_time=None, callback=None):
        self.max_time = max_time
        self.callback = callback
        self._t0 = time.monotonic()

    def reason(self, n_iter, x, f):
        if self.max_time is not None and time.monotonic() - self._t0 > self.max_time:
            return f"time budget of {self.max_time:g}s exhausted"
        if self.callback is not None and self.callback(n_iter, np.array(x), f):
            return "stopped by callback"
        return None


class _GuardedObjective(object):
    """
    Wraps an objective that returns +inf outside its domain for use with
    ``scipy.optimize.minimize``.

    Non-finite values are handed to the line search as a finite penalty above
    the starting value, with the last finite gradient, so that the step is
    shortened instead of the interpolation breaking down.  A run of
    ``max_nonfinite`` consecutive non-finite evaluations raises
    ``OptimizationFailure``.
    """

    def __init__(self, func, grad, f0, g0, max_nonfinite, names=()):
        self._func, self._grad = func, grad
        self.penalty = f0 + 1e4 * (1.0 + abs(f0))
        self.max_nonfinite = max_nonfinite
        self.names = names
        self.n_fev = 0
        self.n_nonfinite = 0
        self.n_iter = 0
        self._g_last = g0
        self._x_bad = None

    def func(self, x):
        self.n_fev += 1
        f = self._func(x)
        if np.isfinite(f):
            self.n_nonfinite = 0
            self._x_bad = None
            return f
        self.n_nonfinite += 1
        self._x_bad = np.array(x)
        logger.debug("Non-finite objective (%d consecutive)", self.n_nonfinite)
        if self.n_nonfinite >= self.max_nonfinite:
            raise OptimizationFailure(f"Objective was not finite for {self.n_nonfinite} "
                                      "consecutive evaluations", self.n_iter, self.names)
        return self.penalty

    def grad(self, x):
        if self._x_bad is not None and np.array_equal(x, self._x_bad):
            return self._g_last
        g = self._grad(x)
        if not np.all(np.isfinite(g)):
            raise OptimizationFailure("Gradient is not finite", self.n_iter, self.names)
        self._g_last = g
        return g


class Optimizer(object):
    """
    Minimizes a fit function with a ``scipy.optimize.minimize`` method under
    the iteration, time and callback budget of a ``FitConfig``.

    Parameters
    ----------
    config : FitConfig
        Method, tolerances and budgets.
    names : sequence of str
        Parameter names, used in error messages.

    Notes
    -----
    Besides the stopping rules of the scipy method, a run is converged once
    the relative change of the objective and of the parameters over one
    iteration fall below ``config.ftol`` and ``config.xtol``.
    """

    def __init__(self, config, names=()):
        self.config = config
        self.names = tuple(names)

    def _options(self):
        config = self.config
        options = dict(maxiter=config.max_iter, gtol=config.gtol)
        if config.method.lower() == "l-bfgs-b":
            options["ftol"] = config.ftol
        return handle_default_kws(default_opts.get(config.method, {}), options)

    def minimize(self, func, grad, x0, callback=None):
        config = self.config
        x0 = np.array(x0, dtype=float)
        f0 = func(x0)
        if not np.isfinite(f0):
            raise OptimizationFailure("Objective is not finite at the starting "
                                      "values", 0, self.names)
        g0 = grad(x0)
        if not np.all(np.isfinite(g0)):
            raise OptimizationFailure("Gradient is not finite at the starting "
                                      "values", 0, self.names)
        objective = _GuardedObjective(func, grad, f0, g0, config.max_nonfinite,
                                      self.names)
        budget = _Budget(config.max_time, callback)
        track = {"x": x0, "f": f0, "x_prev": x0, "f_prev": f0,
                 "stop": None, "converged": False}

        stop = budget.reason(0, x0, f0)
        if stop is not None:
            return self._result(x0, f0, g0, TerminationState.MAX_ITERATIONS, 0,
                                objective.n_fev, stop)

        def _callback(xk, *args):
            objective.n_iter += 1
            fk = func(xk)
            x_prev, f_prev = track["x_prev"], track["f_prev"]
            track["x_prev"], track["f_prev"] = np.array(xk), fk
            if np.isfinite(fk) and fk <= track["f"]:
                track["x"], track["f"] = np.array(xk), fk
            logger.debug("Iteration %d: f=%.12g", objective.n_iter, fk)
            dfun, dx = abs(f_prev - fk), np.max(np.abs(xk - x_prev), initial=0.0)
            if (dfun <= config.ftol * max(1.0, abs(fk)) and
                    dx <= config.xtol * max(1.0, np.max(np.abs(xk), initial=0.0))):
                track["converged"] = True
                raise StopIteration
            reason = budget.reason(objective.n_iter, xk, fk)
            if reason is not None:
                track["stop"] = reason
                raise StopIteration

        minimize_kws = handle_default_kws(self.config.minimize_kws, {})
        options = handle_default_kws(minimize_kws.pop("options", None), self._options())
        try:
            res = sp.optimize.minimize(objective.func, x0, jac=objective.grad,
                                       method=config.method, callback=_callback,
                                       options=options, **minimize_kws)
            x, fun, success = res.x, res.fun, res.success
            message = str(res.message)
            n_iter = int(res.get("nit", objective.n_iter))
        except StopIteration:
            x, fun, success, message = track["x"], track["f"], False, ""
            n_iter = objective.n_iter
        if track["converged"]:
            x, fun, success = track["x"], track["f"], True
            message = "relative change in objective and parameters below tolerance"
            n_iter = objective.n_iter
        elif track["stop"] is not None:
            x, fun, message = track["x"], track["f"], track["stop"]
            n_iter = objective.n_iter
        elif not np.isfinite(func(x)):
            x, fun = track["x"], track["f"]
        if not np.isfinite(fun):
            raise OptimizationFailure(f"Objective is not finite at the solution "
                                      f"({message})", n_iter, self.names)
        if success and track["stop"] is None:
            state = TerminationState.CONVERGED
        else:
            state = TerminationState.MAX_ITERATIONS
        return self._result(np.asarray(x), fun, grad(x), state, n_iter,
                            objective.n_fev, message)

    @staticmethod
    def _result(x, fun, g, state, n_iter, n_fev, message):
        logger.debug("Optimizer finished: %s after %d iterations (%s)",
                     state.value, n_iter, message)
        return OptimizationResult(x, fun, g, state, n_iter, n_fev, message)
