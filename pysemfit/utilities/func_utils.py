#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 11:10:20 2026

@author: lukepinkel
"""
import numpy as np


def triangular_number(n):
    return n * (n + 1) // 2


def handle_default_kws(kws, default_kws):
    """
    Return a dictionary that includes default keyword arguments as well as
    custom keyword arguments, custom values taking precedence.

    Parameters
    ----------
    kws : dict or None
        The dictionary of custom keyword arguments
    default_kws : dict
        The dictionary of default keyword arguments

    Returns
    -------
    dict
        A dictionary that includes both the default and custom keyword arguments
    """
    kws = {} if kws is None else kws
    kws = {**default_kws, **kws}
    return kws


def is_missing(value):
    """True for None and float NaN, the two spellings of an absent entry."""
    if value is None:
        return True
    return isinstance(value, float) and np.isnan(value)
