#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 13:22:50 2026

@author: lukepinkel
"""
import itertools

import numpy as np
import pandas as pd

from .errors import IdentificationError
from .formula import PARAM_COLUMNS


def _default_row(lhs, rel, rhs, fixed=False, fixedval=np.nan, dummy=False):
    return {"lhs": lhs, "rel": rel, "rhs": rhs, "label": None,
            "fixed": fixed, "fixedval": fixedval, "start": np.nan,
            "na": False, "dummy": dummy, "statement": None}


class ModelBuilder:
    """
    Normalization pass adding the default parameters to a parsed table.

    Operates on ``self.param_df``, ``self.var_names`` and ``self.var_order``
    as set up by ``FormulaParser``.
    """

    def add_default_params(self, identification="marker", auto_cov_lv_x=True,
                           auto_cov_y=True):
        """
        Scales the latent variables, then adds variances, covariances and
        the unit loadings that carry observed regression variables into the
        structural part, and finally checks that each latent variable has
        exactly one scale.
        """
        if identification == "variance":
            self.fix_latent_variances()
        else:
            self.fix_first()
        self.add_variances()
        self.add_covariances(lvx_cov=auto_cov_lv_x, y_cov=auto_cov_y)
        self.add_latent_dummies()
        self.check_scaling()

    def _append_rows(self, rows):
        if rows:
            new_rows = pd.DataFrame(rows, columns=PARAM_COLUMNS)
            self.param_df = pd.concat([self.param_df, new_rows], ignore_index=True)

    def _loading_mask(self, var):
        param_df = self.param_df
        return ((param_df["rel"] == "=~") & (param_df["lhs"] == var)
                & ~param_df["dummy"].astype(bool))

    def _variance_mask(self, var):
        param_df = self.param_df
        return ((param_df["rel"] == "~~") & (param_df["lhs"] == var)
                & (param_df["rhs"] == var))

    def _n_markers(self, var):
        param_df = self.param_df
        ix = self._loading_mask(var) & param_df["fixed"].astype(bool)
        return int(np.sum(param_df.loc[ix, "fixedval"] != 0))

    def _variance_fixed(self, var):
        ix = self._variance_mask(var)
        return bool(np.any(self.param_df.loc[ix, "fixed"].astype(bool)))

    def fix_first(self):
        """
        Fixes the first loading of each latent variable to 1.0 unless the
        variable is already scaled, or its first loading was freed with NA.
        """
        param_df = self.param_df
        for v in self.var_order["nob"]:
            ix = param_df.index[self._loading_mask(v)]
            if len(ix) == 0 or np.any(param_df.loc[ix, "fixed"].astype(bool)):
                continue
            if self._variance_fixed(v) or param_df.loc[ix[0], "na"]:
                continue
            param_df.loc[ix[0], "fixed"] = True
            param_df.loc[ix[0], "fixedval"] = 1.0
        self.param_df = param_df

    def fix_latent_variances(self):
        """
        Fixes the (residual) variance of each latent variable without a fixed
        loading to 1.0.  An explicit variance statement is left untouched.
        """
        rows = []
        for v in self.var_order["nob"]:
            if self._n_markers(v) > 0 or np.any(self._variance_mask(v)):
                continue
            rows.append(_default_row(v, "~~", v, fixed=True, fixedval=1.0))
        self._append_rows(rows)

    def check_missing_variances(self, vars_to_check):
        """
        Returns the variables in ``vars_to_check`` (order preserved) that do
        not have a variance in the parameter table.
        """
        param_df = self.param_df
        cov_ix = (param_df["rel"] == "~~")
        sym_ix = (param_df["lhs"] == param_df["rhs"])
        existing = set(param_df.loc[cov_ix & sym_ix, "lhs"])
        return [v for v in vars_to_check if v not in existing]

    def add_variances(self):
        """
        Adds a free variance for every observed and latent variable that does
        not have one.
        """
        order = self.var_order["obs"] + self.var_order["nob"]
        rows = [_default_row(v, "~~", v) for v in self.check_missing_variances(order)]
        self._append_rows(rows)

    def check_missing_covs(self, vars_to_check):
        """
        Returns the pairs of ``vars_to_check`` without a covariance in the
        parameter table.
        """
        df = self.param_df.loc[self.param_df["rel"] == "~~"]
        existing = set(zip(df["lhs"], df["rhs"])) | set(zip(df["rhs"], df["lhs"]))
        pairs_to_add = [(x1, x2) for x1, x2 in itertools.combinations(vars_to_check, 2)
                        if (x1, x2) not in existing]
        return pairs_to_add

    def add_covariances(self, lvx_cov=True, y_cov=True):
        """
        Parameters
        ----------
        lvx_cov : bool
            whether to add covariances between latent exogenous variables
        y_cov : bool
            whether to add residual covariances between endogenous variables,
            observed or latent, that do not predict other variables

        Observed exogenous variables of the structural part are always
        covaried.
        """
        order = self.var_order
        pairs = self.check_missing_covs(order["lox"])
        if lvx_cov:
            pairs += self.check_missing_covs(order["lvx"])
        if y_cov:
            pairs += self.check_missing_covs(order["enx"])
        self._append_rows([_default_row(x1, "~~", x2) for x1, x2 in pairs])

    def add_latent_dummies(self):
        """
        Observed variables taking part in regressions enter the structural
        part through a unit loading on a structural variable of the same name.
        """
        rows = [_default_row(v, "=~", v, fixed=True, fixedval=1.0, dummy=True)
                for v in self.var_order["lvo"]]
        self._append_rows(rows)

    def check_scaling(self):
        """
        Every latent variable needs exactly one scale, a fixed non-zero
        loading or a fixed (residual) variance.
        """
        for v in self.var_order["nob"]:
            n_markers, var_fixed = self._n_markers(v), self._variance_fixed(v)
            if n_markers == 0 and not var_fixed:
                raise IdentificationError(f"Latent variable '{v}' has no scale; fix "
                                          "one loading or its variance", [v])
            if n_markers > 0 and var_fixed:
                raise IdentificationError(f"Latent variable '{v}' is scaled twice; "
                                          "it has both a fixed loading and a fixed "
                                          "variance", [v])
