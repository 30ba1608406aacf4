#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 14:48:11 2026

@author: lukepinkel
"""
from typing import NamedTuple

import numpy as np

from .errors import SpecificationError, VariableMismatchError
from .utilities.func_utils import triangular_number

MATRIX_NAMES = ("L", "B", "F", "P")
IS_SYMMETRIC = (False, False, True, True)


class ModelMatrices(NamedTuple):
    """Loadings L (p, m), paths B (m, m), structural covariance F (m, m)
    and residual covariance P (p, p)."""
    L: np.ndarray
    B: np.ndarray
    F: np.ndarray
    P: np.ndarray


class FreeParameterVector(NamedTuple):
    values: np.ndarray
    names: tuple
    log_mask: np.ndarray


class ModelMatrixMapper:
    """
    Assigns each row of the parameter table to one of the model matrices and
    records its row and column there (as variable names).
    """
    @staticmethod
    def get_matrix_assignments(param_df, var_names):
        """
        Parameters
        ----------
        param_df: pandas DataFrame
            Parameter table with columns "rel", "lhs", "rhs" and "dummy".
        var_names: dict
            Variable categories from ``FormulaParser.classify_variables``.

        Returns
        -------
        dict
            Boolean indexing arrays keyed by matrix number (0=L, 1=B, 2=F, 3=P).
        """
        lav_names = var_names["lav"]
        mes = param_df["rel"] == "=~"
        reg = param_df["rel"] == "~"
        cov = param_df["rel"] == "~~"
        rvl = param_df["rhs"].isin(lav_names)
        lvl = param_df["lhs"].isin(lav_names)
        dmy = param_df["dummy"].astype(bool)
        mixed = cov & (rvl ^ lvl)
        if np.any(mixed):
            row = param_df.loc[mixed].iloc[0]
            raise SpecificationError(f"Cannot covary '{row['lhs']}' with '{row['rhs']}': "
                                     "one is a structural variable and the other "
                                     "a pure indicator")
        mats = {}
        mats[0] = (mes & ~rvl) | dmy
        mats[1] = ((mes & rvl) | reg) & ~dmy
        mats[2] = cov & lvl & rvl
        mats[3] = cov & ~lvl & ~rvl
        return mats

    @staticmethod
    def _assign_matrices(param_df, ix):
        """
        Adds the columns "mat", "r" and "c".  Loadings are stored with the
        indicator as row; a loading on a structural indicator becomes a path
        in B from the factor to the indicator.
        """
        param_df["mat"] = -1
        param_df["r"] = None
        param_df["c"] = None
        for i in range(4):
            param_df.loc[ix[i], "mat"] = i
            mes = ix[i] & (param_df["rel"] == "=~")
            other = ix[i] & ~mes
            param_df.loc[mes, "r"] = param_df.loc[mes, "rhs"]
            param_df.loc[mes, "c"] = param_df.loc[mes, "lhs"]
            param_df.loc[other, "r"] = param_df.loc[other, "lhs"]
            param_df.loc[other, "c"] = param_df.loc[other, "rhs"]
        param_df["mat"] = param_df["mat"].astype(int)
        return param_df

    def assign_matrices(self):
        param_df, var_names = self.get_table(), self.var_names
        mat_assignments = self.get_matrix_assignments(param_df, var_names)
        self.set_table(self._assign_matrices(param_df, mat_assignments))


class MatrixBuilder(object):
    """
    Fixed value templates of the model matrices together with the map from
    the free parameter vector theta to their writable cells.

    Every free cell (and its mirror in a symmetric matrix) is written by
    exactly one entry of theta; an entry of theta writes more than one cell
    only when parameters share a label.  The builder holds no state that
    changes during fitting, ``theta_to_mats`` returns fresh arrays.

    Parameters
    ----------
    param_table : ParameterTable
        Normalized and indexed parameter table.
    obs_order : sequence of str, optional
        Row order of L and P, normally the variable order of the sample
        moments.  Defaults to the order of the parameter table.
    """

    def __init__(self, param_table, obs_order=None):
        table = param_table.get_table()
        model_obs = param_table.var_order["obs"]
        if obs_order is None:
            obs_order = model_obs
        obs_order = [str(v) for v in obs_order]
        missing = [v for v in model_obs if v not in obs_order]
        extra = [v for v in obs_order if v not in model_obs]
        if missing or extra:
            raise VariableMismatchError(missing, extra)
        self.obs_order = tuple(obs_order)
        self.lav_order = tuple(param_table.lav_order)
        self.p, self.m = len(self.obs_order), len(self.lav_order)
        p, m = self.p, self.m
        self.mat_dims = {0: (p, m), 1: (m, m), 2: (m, m), 3: (p, p)}
        obs_ix = dict(zip(self.obs_order, range(p)))
        lav_ix = dict(zip(self.lav_order, range(m)))
        self._row_maps = {0: obs_ix, 1: lav_ix, 2: lav_ix, 3: obs_ix}
        self._col_maps = {0: lav_ix, 1: lav_ix, 2: lav_ix, 3: obs_ix}
        self.mat_labels = {i: ([self.obs_order, self.lav_order][i in (1, 2)],
                               [self.lav_order, self.obs_order][i == 3])
                           for i in range(4)}
        self.table = table
        self._build_templates(table)
        self._build_free_map(table, param_table)
        self._build_derivative_indicators()

    @classmethod
    def from_moments(cls, param_table, sample_moments):
        return cls(param_table, sample_moments.names)

    def _cell(self, mat, r, c):
        i, j = self._row_maps[mat][r], self._col_maps[mat][c]
        if IS_SYMMETRIC[mat] and j > i:
            i, j = j, i
        return i, j

    def _build_templates(self, table):
        templates = [np.zeros(self.mat_dims[i]) for i in range(4)]
        fixed = table.loc[table["fixed"].astype(bool)]
        for row in fixed.to_dict(orient="records"):
            mat = row["mat"]
            i, j = self._cell(mat, row["r"], row["c"])
            templates[mat][i, j] = row["fixedval"]
            if IS_SYMMETRIC[mat]:
                templates[mat][j, i] = row["fixedval"]
        for arr in templates:
            arr.setflags(write=False)
        self.templates = ModelMatrices(*templates)

    def _build_free_map(self, table, param_table):
        free = table.loc[table["free"] != 0]
        self.n_rows = len(free)
        self.n_theta = int(table["free"].max()) if len(free) > 0 else 0
        self.free_mat = free["mat"].values.astype(int)
        cells = [self._cell(mat, r, c) for mat, r, c in
                 zip(free["mat"], free["r"], free["c"])]
        self.free_r = np.array([cell[0] for cell in cells], dtype=int)
        self.free_c = np.array([cell[1] for cell in cells], dtype=int)
        self.free_theta = free["free"].values.astype(int) - 1
        self.row_to_theta = np.zeros((self.n_rows, self.n_theta))
        self.row_to_theta[np.arange(self.n_rows), self.free_theta] = 1.0
        first = np.unique(self.free_theta, return_index=True)[1]
        self._first_rows = first
        self.theta_names = tuple(param_table.theta_names)
        self.log_mask = np.zeros(self.n_theta, dtype=bool)
        self.log_mask[self.free_theta] = (free["transform"] == "log").values
        self.theta_start = free["start"].values[first].astype(float)
        self._cells = {}
        for mat in range(4):
            ix = self.free_mat == mat
            self._cells[mat] = (self.free_r[ix], self.free_c[ix], self.free_theta[ix])

    def _build_derivative_indicators(self):
        """
        Unit matrices J_k of each free cell, zero padded to a common shape,
        with the matrix kind and the true dimensions of each.
        """
        dim = max([1] + [max(d) for d in self.mat_dims.values()])
        dA = np.zeros((self.n_rows, dim, dim))
        r = np.zeros(self.n_rows, dtype=np.int64)
        c = np.zeros(self.n_rows, dtype=np.int64)
        for k in range(self.n_rows):
            mat, i, j = self.free_mat[k], self.free_r[k], self.free_c[k]
            r[k], c[k] = self.mat_dims[mat]
            dA[k, i, j] = 1.0
            if IS_SYMMETRIC[mat]:
                dA[k, j, i] = 1.0
        self.dA = dA
        self.d_rows, self.d_cols = r, c
        self.d_kind = self.free_mat.astype(np.int64)

    def theta_to_mats(self, theta):
        theta = np.asarray(theta, dtype=float)
        mats = [t.copy() for t in self.templates]
        for mat in range(4):
            r, c, t = self._cells[mat]
            mats[mat][r, c] = theta[t]
            if IS_SYMMETRIC[mat]:
                mats[mat][c, r] = theta[t]
        return ModelMatrices(*mats)

    def mats_to_theta(self, mats):
        theta = np.zeros(self.n_theta)
        for row in self._first_rows:
            mat, i, j = self.free_mat[row], self.free_r[row], self.free_c[row]
            theta[self.free_theta[row]] = mats[mat][i, j]
        return theta

    def theta_to_eta(self, theta):
        """Maps theta to the unconstrained scale (log of the variances)."""
        eta = np.array(theta, dtype=float)
        eta[self.log_mask] = np.log(eta[self.log_mask])
        return eta

    def eta_to_theta(self, eta):
        theta = np.array(eta, dtype=float)
        theta[self.log_mask] = np.exp(theta[self.log_mask])
        return theta

    def jac_eta_to_theta(self, eta):
        """Diagonal of d theta / d eta."""
        jac = np.ones(self.n_theta)
        jac[self.log_mask] = np.exp(np.asarray(eta, dtype=float)[self.log_mask])
        return jac

    @property
    def free_parameters(self):
        values = self.theta_start.copy()
        values.setflags(write=False)
        return FreeParameterVector(values, self.theta_names, self.log_mask.copy())

    @property
    def n_moments(self):
        return triangular_number(self.p)

    @property
    def degrees_of_freedom(self):
        return self.n_moments - self.n_theta

