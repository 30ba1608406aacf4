#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 11:14:51 2026

@author: lukepinkel

Central difference derivatives, used for the observed information matrix
and for checking analytic derivatives.
"""
import numpy as np


def fo_fc_cd(f, x, eps=None, args=()):
    if eps is None:
        eps = (np.finfo(float).eps)**(1.0/3.0)
    n = len(np.asarray(x))
    g, h = np.zeros(n), np.zeros(n)
    for i in range(n):
        h[i] = eps
        g[i] = (f(x+h, *args) - f(x - h, *args)) / (2 * eps)
        h[i] = 0
    return g


def so_gc_cd(g, x, eps=None, args=()):
    if eps is None:
        eps = (np.finfo(float).eps)**(1./3.)
    n = len(np.asarray(x))
    H, h = np.zeros((n, n)), np.zeros(n)
    gxp, gxn = np.zeros((n, n)), np.zeros((n, n))
    for i in range(n):
        h[i] = eps
        gxp[i] = g(x+h, *args)
        gxn[i] = g(x-h, *args)
        h[i] = 0
    for i in range(n):
        for j in range(i+1):
            H[i, j] = ((gxp[i, j] - gxn[i, j] + gxp[j, i] - gxn[j, i])) / (4 * eps)
            H[j, i] = H[i, j]
    return H


def jac_cd(f, x, eps=None, args=()):
    """Central difference Jacobian of an array valued function."""
    if eps is None:
        eps = (np.finfo(float).eps)**(1./3.)
    x = np.asarray(x, dtype=float)
    f0 = np.asarray(f(x, *args))
    J = np.zeros((len(x),) + f0.shape)
    h = np.zeros(len(x))
    for i in range(len(x)):
        h[i] = eps
        J[i] = (np.asarray(f(x + h, *args)) - np.asarray(f(x - h, *args))) / (2 * eps)
        h[i] = 0
    return J
