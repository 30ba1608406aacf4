#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 11:20:07 2026

@author: lukepinkel
"""
import numpy as np
import scipy as sp
import scipy.stats
import pandas as pd


def get_param_table(params,
                    se_params,
                    index=None,
                    parameter_label=None,
                    stat_label=None,
                    pdist=None,
                    p_const=2.0,
                    alpha=0.05):
    """
    Creates a parameter summary table with Wald statistics and confidence
    intervals.

    Parameters
    ----------
    params : array-like
        A 1D array of parameter estimates.
    se_params : array-like
        A 1D array of standard errors corresponding to the parameter
        estimates.  NaN entries propagate to the statistic, p-value and
        interval of that row.
    index : array-like, optional
        The index for the resulting DataFrame.
    parameter_label : str, optional
        The label for the estimate column. Default is 'estimate'.
    stat_label : str, optional
        The label for the Wald statistic column. Default is 'z'.
    pdist : scipy.stats.rv_continuous, optional
        Reference distribution of the statistic. Default is the standard
        normal.
    p_const : float, optional
        The constant to multiply the p-values by. Default is 2.0.
    alpha : float, optional
        The significance level for the confidence intervals. Default is 0.05.

    Returns
    -------
    df : pandas.DataFrame
        A DataFrame containing the parameter summary table.
    """
    parameter_label = 'estimate' if parameter_label is None else parameter_label
    stat_label = 'z' if stat_label is None else stat_label
    pdist = sp.stats.norm() if pdist is None else pdist
    params = np.asarray(params, dtype=float).reshape(-1)
    se_params = np.asarray(se_params, dtype=float).reshape(-1)
    arr = np.vstack((params, se_params)).T
    df = pd.DataFrame(arr, index=index, columns=[parameter_label, 'SE'])
    with np.errstate(divide="ignore", invalid="ignore"):
        df[stat_label] = df[parameter_label] / df['SE']
    df['p'] = pdist.sf(np.abs(df[stat_label])) * p_const
    ci_lower = df[parameter_label] + pdist.ppf(alpha/2) * df["SE"]
    ci_upper = df[parameter_label] + pdist.ppf(1 - alpha/2) * df["SE"]
    ci_label = f"CI{100*(1-alpha):g}"
    df[f"Lower{ci_label}"] = ci_lower
    df[f"Upper{ci_label}"] = ci_upper
    return df
