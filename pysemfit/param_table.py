#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 16:03:37 2026

@author: lukepinkel
"""
import numpy as np

from .errors import SpecificationError
from .formula import FormulaParser
from .model_builder import ModelBuilder
from .model_matrices import ModelMatrixMapper
from .utilities.func_utils import is_missing



class ParameterTable(FormulaParser, ModelBuilder, ModelMatrixMapper):
    """
    Class that creates a normalized and indexed parameter table from a
    model description.
    """

    def __init__(self, formula, observed=None, identification="marker",
                 auto_cov_lv_x=True, auto_cov_y=True):
        """
        Parameters
        ----------
        formula : str
            Model description.
        observed : sequence of str, optional
            Observed variable names in sample order.
        identification : {"marker", "variance"}
            Scaling convention for the latent variables.
        auto_cov_lv_x, auto_cov_y : bool
            Default covariances, see ``ModelBuilder.add_covariances``.
        """
        super().__init__(formula, observed)
        self.add_default_params(identification=identification,
                                auto_cov_lv_x=auto_cov_lv_x,
                                auto_cov_y=auto_cov_y)
        self.assign_matrices()
        self.index_params()
        self.add_bounds()
        self.add_start_values()

    def set_table(self, param_df):
        self.param_df = param_df

    def get_table(self):
        return self.param_df.copy()

    def get_free_table(self):
        return self.param_df.loc[self.param_df["free"] != 0].copy().reset_index(drop=True)

    @staticmethod
    def _index_params(param_df):
        """
        Gives each free parameter a 1-based index in "free" (0 for fixed
        parameters) and a 0-based position among the free rows in "ind".
        Free parameters sharing a label share their index, e.g.

                | fixed | label | free | ind |
                |-------|-------|------|-----|
                | False | None  | 1    | 0   |
                | False | 'a'   | 2    | 1   |
                | False | 'a'   | 2    | 2   |
                | True  | None  | 0    | -1  |
                | False | None  | 3    | 3   |
        """
        fixed = param_df["fixed"].astype(bool).values
        labels = param_df["label"].values
        label_groups = {}
        for i, label in enumerate(labels):
            if not is_missing(label):
                label_groups.setdefault(label, []).append(i)
        for label, rows in label_groups.items():
            if len(set(fixed[rows])) > 1:
                raise SpecificationError(f"Label '{label}' is shared by fixed "
                                         "and free parameters")
        free = np.zeros(len(param_df), dtype=int)
        label_index = {}
        counter = 0
        for i, label in enumerate(labels):
            if fixed[i]:
                continue
            if not is_missing(label) and label in label_index:
                free[i] = label_index[label]
                continue
            counter += 1
            free[i] = counter
            if not is_missing(label):
                label_index[label] = counter
        param_df["free"] = free
        ind = np.full(len(param_df), -1, dtype=int)
        ind[free != 0] = np.arange(np.sum(free != 0))
        param_df["ind"] = ind
        return param_df

    def index_params(self):
        self.set_table(self._index_params(self.get_table()))

    @staticmethod
    def _add_bounds(param_df):
        """
        Variances are bounded below by zero and estimated on the log scale;
        a labelled parameter is transformed only when all of its rows are
        variances.
        """
        is_var = ((param_df["lhs"] == param_df["rhs"]) &
                  (param_df["rel"] == "~~")).values
        param_df["lb"] = np.where(is_var, 0.0, -np.inf)
        param_df["ub"] = np.inf
        transform = np.array([None] * len(param_df), dtype=object)
        free = param_df["free"].values
        for k in np.unique(free[free != 0]):
            rows = free == k
            if np.all(is_var[rows]):
                transform[rows] = "log"
        param_df["transform"] = transform
        return param_df

    def add_bounds(self):
        self.set_table(self._add_bounds(self.get_table()))

    def _unscaled_latents(self):
        return {v for v in self.var_order["nob"] if self._n_markers(v) == 0}

    def add_start_values(self):
        """
        User start values are kept; otherwise fixed parameters start at their
        value, variances at one and everything else at zero.  Loadings of a
        latent variable without a fixed loading start at one because all
        loadings equal to zero is a stationary point of the fit function.
        """
        param_df = self.get_table()
        unscaled = self._unscaled_latents()
        start = np.zeros(len(param_df))
        for i, row in enumerate(param_df.to_dict(orient="records")):
            if row["fixed"]:
                start[i] = row["fixedval"]
            elif not is_missing(row["start"]):
                start[i] = row["start"]
                if row["transform"] == "log" and start[i] <= 0:
                    raise SpecificationError(f"Start value of variance '{row['lhs']} "
                                             f"~~ {row['rhs']}' must be positive")
            elif row["rel"] == "~~" and row["lhs"] == row["rhs"]:
                start[i] = 1.0
            elif row["rel"] == "=~" and row["lhs"] in unscaled:
                start[i] = 1.0
        param_df["start"] = start
        for k in np.unique(param_df.loc[param_df["free"] != 0, "free"]):
            rows = param_df.index[param_df["free"] == k]
            param_df.loc[rows, "start"] = param_df.loc[rows[0], "start"]
        self.set_table(param_df)

    @property
    def n_theta(self):
        return int(self.param_df["free"].max()) if len(self.param_df) > 0 else 0

    @property
    def theta_names(self):
        """Name of each entry of theta: its label, or 'lhs rel rhs'."""
        param_df = self.param_df
        names = []
        for k in range(1, self.n_theta + 1):
            row = param_df.loc[param_df["free"] == k].iloc[0]
            if not is_missing(row["label"]):
                names.append(row["label"])
            else:
                names.append(f"{row['lhs']}{row['rel']}{row['rhs']}")
        return names

    @property
    def visible_table(self):
        """Parameter rows without the internal unit loadings."""
        return self.param_df.loc[~self.param_df["dummy"].astype(bool)].reset_index(drop=True)
