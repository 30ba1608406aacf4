#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 09:37:12 2026

@author: lukepinkel
"""

import numpy as np
import scipy as sp
import scipy.linalg
from abc import ABCMeta, abstractmethod

from .utilities.linalg_operations import chol_logdet


class CovarianceFitFunction(metaclass=ABCMeta):
    """
    Abstract base class for discrepancy functions between a sample
    covariance matrix and a model implied covariance matrix.
    Subclasses must implement the _function, _gradient, and _hessian methods.

    Parameters
    ----------
    data : SampleMoments, optional
        The sample moments the fit function operates on. If None, they
        have to be supplied when calling the function, gradient or hessian
        methods.
    """

    def __init__(self, data=None):
        self.data = data

    def function(self, Sigma, data=None):
        """
        Parameters
        ----------
        Sigma : (p, p) array_like
            The model implied covariance matrix.
        data : SampleMoments, optional
            Overrides the stored sample moments.

        Returns
        -------
        float
            Value of the discrepancy function.
        """
        data = self.data if data is None else data
        return self._function(Sigma, data)

    def gradient(self, Sigma, dSigma, data=None):
        """
        Parameters
        ----------
        Sigma : (p, p) array_like
            The model implied covariance matrix.
        dSigma : (t, p, p) array_like
            Derivatives of Sigma with respect to t parameters.
        data : SampleMoments, optional
            Overrides the stored sample moments.

        Returns
        -------
        (t,) ndarray
            Gradient of the discrepancy function.
        """
        data = self.data if data is None else data
        return self._gradient(Sigma, dSigma, data)

    def hessian(self, Sigma, dSigma, data=None):
        """
        Expected (Fisher) second derivatives of the discrepancy function,
        i.e. the hessian evaluated where the sample and implied covariances
        agree.
        """
        data = self.data if data is None else data
        return self._hessian(Sigma, dSigma, data)

    @staticmethod
    @abstractmethod
    def _function(Sigma, data):
        pass

    @staticmethod
    @abstractmethod
    def _gradient(Sigma, dSigma, data):
        pass

    @staticmethod
    @abstractmethod
    def _hessian(Sigma, dSigma, data):
        pass


class LikelihoodObjective(CovarianceFitFunction):
    """
    Normal theory maximum likelihood discrepancy

        F_ML = log|Sigma| + tr(S Sigma^{-1}) - log|S| - p

    which is zero when Sigma equals S and infinite when Sigma is not
    positive definite.
    """

    @staticmethod
    def _function(Sigma, data):
        C = data.sample_cov
        try:
            chol, lndS = chol_logdet(Sigma)
        except np.linalg.LinAlgError:
            return np.inf
        trSinvC = np.trace(sp.linalg.cho_solve(chol, C))
        f = lndS + trSinvC + data.const
        return f

    @staticmethod
    def _gradient(Sigma, dSigma, data):
        """
        Gradient tr(Sigma^{-1} (Sigma - S) Sigma^{-1} dSigma_k) for each k.
        """
        C = data.sample_cov
        R = C - Sigma
        Sinv = np.linalg.inv(Sigma)
        A = Sinv.dot(R).dot(Sinv)
        g = -np.einsum("ji,kij->k", A, dSigma)
        return g

    @staticmethod
    def _hessian(Sigma, dSigma, data):
        """
        tr(Sigma^{-1} dSigma_k Sigma^{-1} dSigma_l) for each pair k, l.
        """
        Sinv = np.linalg.inv(Sigma)
        SinvD = np.einsum("ij,kjl->kil", Sinv, dSigma)
        H = np.einsum("kij,lji->kl", SinvD, SinvD)
        return H
