#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sat Oct 17 12:05:18 2026

@author: lukepinkel
"""

import re
from typing import NamedTuple, Optional

import numpy as np
import pandas as pd

from .errors import (SpecificationError, UnknownVariableError,
                     DuplicateParameterError)
from .utilities.func_utils import is_missing

_RELATION = re.compile(r"=~|~~|~")
_NAME = re.compile(r"^[A-Za-z_.][A-Za-z0-9_.]*$")
_START = re.compile(r"^start\((.*)\)$")

PARAM_COLUMNS = ["lhs", "rel", "rhs", "label", "fixed", "fixedval", "start",
                 "na", "dummy", "statement"]


class Variable(NamedTuple):
    name: str
    role: str


class ParameterSpec(NamedTuple):
    lhs: str
    rel: str
    rhs: str
    free: bool
    fixedval: float
    start: float
    label: Optional[str]


class FormulaParser:
    """
    A class to parse a lavaan style model description and extract variables
    and parameters from it.

    Three relations are understood

        f =~ x1 + x2    f is measured by x1 and x2 (loadings)
        y ~ f + x       y is regressed on f and x (structural paths)
        x1 ~~ x2        x1 covaries with x2 (a variance when both sides agree)

    Terms may carry modifiers separated by ``*``: a number fixes the
    parameter, ``NA`` frees it, ``start(v)`` gives a start value and any other
    name is a label.  Parameters sharing a label are constrained equal.
    """

    def __init__(self, formula, observed=None):
        """
        Initialize the FormulaParser with a model description.

        Parameters
        ----------
        formula : str
            Model statements separated by newlines or semicolons.  Text after
            ``#`` or ``!`` is ignored.
        observed : sequence of str, optional
            Names of the observed variables.  When given every name that is
            not a latent variable must appear here.
        """
        self._formula = formula
        self._observed = None if observed is None else [str(v) for v in observed]
        self.parse_formula(formula)
        param_df = pd.DataFrame(self._param_list, columns=PARAM_COLUMNS)
        self.param_df = self.merge_duplicates(param_df)
        self.var_names = self.classify_variables(self.param_df)
        self.check_variables(self.param_df, self.var_names, self._observed)
        self.var_order = self.order_variables(self.param_df, self.var_names,
                                              self._observed)

    def parse_formula(self, formula):
        formula = re.sub(r"[#!].*", "", formula)
        self._param_list = []
        for eq in re.split(r"[\n;]", formula):
            if eq.strip():
                self.unpack_equation(eq.strip())
        if not self._param_list:
            raise SpecificationError("Model description contains no statements")

    def unpack_equation(self, eq):
        """
        Unpacks a statement into one parameter row for each pair of left and
        right hand side terms.
        """
        match = _RELATION.search(eq)
        if match is None:
            raise SpecificationError(f"No operator found in '{eq}'")
        rel = match.group(0)
        lhss, rhss = eq[:match.start()], eq[match.end():]
        if _RELATION.search(rhss) is not None or "=" in rhss:
            raise SpecificationError(f"More than one operator in '{eq}'")
        for ls in lhss.split('+'):
            ls = ls.strip()
            if not ls:
                raise SpecificationError(f"Missing left hand side term in '{eq}'")
            if not _NAME.match(ls):
                raise SpecificationError(f"Invalid variable name '{ls}' in '{eq}'")
            for rs in rhss.split('+'):
                row = self._get_var_pair(ls, rs, rel, eq)
                self._param_list.append(row)

    @staticmethod
    def _get_var_pair(ls, rs, rel, statement):
        comps = [comp.strip() for comp in rs.split('*')]
        name = comps[-1]
        if not name:
            raise SpecificationError(f"Missing right hand side term in '{statement}'")
        if name == "1" or name == "0":
            raise SpecificationError(f"Intercepts are not supported ('{statement}')")
        if not _NAME.match(name):
            raise SpecificationError(f"Invalid variable name '{name}' in '{statement}'")
        if name == ls and rel != "~~":
            raise SpecificationError(f"'{statement}' relates {name} to itself")
        row = {"lhs": ls, "rel": rel, "rhs": name, "label": None,
               "fixed": False, "fixedval": np.nan, "start": np.nan,
               "na": False, "dummy": False, "statement": statement}
        for mod in comps[:-1]:
            FormulaParser._apply_modifier(row, mod, statement)
        return row

    @staticmethod
    def _apply_modifier(row, mod, statement):
        if not mod:
            raise SpecificationError(f"Empty modifier in '{statement}'")
        try:
            value = float(mod)
        except ValueError:
            value = None
        start = _START.match(mod)
        if value is not None:
            if row["na"] or (row["fixed"] and row["fixedval"] != value):
                raise SpecificationError(f"Conflicting modifiers in '{statement}'")
            row["fixed"], row["fixedval"] = True, value
        elif mod.upper() == "NA":
            if row["fixed"]:
                raise SpecificationError(f"Conflicting modifiers in '{statement}'")
            row["na"] = True
        elif start is not None:
            try:
                row["start"] = float(start.group(1))
            except ValueError:
                raise SpecificationError(f"Invalid start value '{mod}' in "
                                         f"'{statement}'") from None
        elif _NAME.match(mod):
            if row["label"] is not None and row["label"] != mod:
                raise SpecificationError(f"Two labels given in '{statement}'")
            row["label"] = mod
        else:
            raise SpecificationError(f"Invalid modifier '{mod}' in '{statement}'")

    @staticmethod
    def _param_key(lhs, rel, rhs):
        if rel == "~~":
            lhs, rhs = sorted((lhs, rhs))
        return lhs, rel, rhs

    @staticmethod
    def _modifiers(row):
        fixedval = None if is_missing(row["fixedval"]) else float(row["fixedval"])
        start = None if is_missing(row["start"]) else float(row["start"])
        label = None if is_missing(row["label"]) else row["label"]
        return bool(row["fixed"]), fixedval, start, label, bool(row["na"])

    @classmethod
    def merge_duplicates(cls, param_df):
        """
        Drops exact repeats of a parameter and raises on a repeat whose
        modifiers differ from the first declaration.
        """
        seen, keep = {}, []
        for i, row in enumerate(param_df.to_dict(orient="records")):
            key = cls._param_key(row["lhs"], row["rel"], row["rhs"])
            mods = cls._modifiers(row)
            if key in seen:
                if seen[key] != mods:
                    raise DuplicateParameterError(*key)
                continue
            seen[key] = mods
            keep.append(i)
        return param_df.iloc[keep].reset_index(drop=True)

    @staticmethod
    def classify_variables(param_df):
        """
        Classifies variables from the formulas into different categories
        based on their roles.

        The variables are classified into the following categories:
        - 'all': All variables in the model.
        - 'nob': Non-observed (latent) variables.
        - 'obs': Observed variables, i.e., variables not in 'nob'.
        - 'ind': Indicator variables observed or unobserved.
        - 'end': Endogenous variables (left hand side of a regression).
        - 'exo': Predictors in a regression.
        - 'reg': Any variables involved in regression equations.
        - 'lvo': Observed variables that are part of the structural model.
        - 'lav': All variables treated as part of the structural model
                 (union of 'lvo' and 'nob').
        - 'lox': Observed exogenous variables in the structural model.
        - 'loy': Observed endogenous variables in the structural model.
        - 'lvx': Latent exogenous variables.
        - 'enx': Endogenous variables that predict nothing.
        - 'onx': Observed variables outside 'lox'.

        Parameters
        ----------
        param_df : pandas.DataFrame
            DataFrame where each row represents a parameter in the formula.

        Returns
        ----------
        names : dict
            A dictionary where keys are categories and values are sets of
            variable names in each category.
        """
        measurement_mask = param_df["rel"] == "=~"
        regressions_mask = param_df["rel"] == "~"
        if "dummy" in param_df:
            measurement_mask = measurement_mask & ~param_df["dummy"].astype(bool)
        all_var_names = set(param_df[["lhs", "rhs"]].values.flatten())
        nob_var_names = set(param_df.loc[measurement_mask, "lhs"])
        obs_var_names = all_var_names - nob_var_names
        ind_var_names = set(param_df.loc[measurement_mask, "rhs"])
        end_var_names = set(param_df.loc[regressions_mask, "lhs"])
        exo_var_names = set(param_df.loc[regressions_mask, "rhs"])
        reg_var_names = set.union(end_var_names, exo_var_names)
        lvo_var_names = reg_var_names - nob_var_names
        lav_var_names = lvo_var_names | nob_var_names
        lox_var_names = lav_var_names - \
            (nob_var_names | end_var_names | ind_var_names)
        loy_var_names = lav_var_names - \
            (nob_var_names | exo_var_names | ind_var_names)
        lvx_var_names = nob_var_names - (ind_var_names | end_var_names)
        enx_var_names = end_var_names - exo_var_names
        onx_var_names = obs_var_names - lox_var_names
        names = {"all": all_var_names, "nob": nob_var_names,
                 "obs": obs_var_names, "ind": ind_var_names,
                 "end": end_var_names, "exo": exo_var_names,
                 "reg": reg_var_names, "lvo": lvo_var_names,
                 "lav": lav_var_names, "lox": lox_var_names,
                 "loy": loy_var_names, "enx": enx_var_names,
                 "lvx": lvx_var_names, "onx": onx_var_names}
        return names

    @staticmethod
    def check_variables(param_df, var_names, observed):
        if observed is None:
            return
        observed = set(observed)
        latent_observed = sorted(var_names["nob"] & observed)
        if latent_observed:
            raise SpecificationError(f"Latent variable '{latent_observed[0]}' "
                                     "has the name of an observed variable")
        for row in param_df.to_dict(orient="records"):
            for name in (row["lhs"], row["rhs"]):
                if name not in var_names["nob"] and name not in observed:
                    raise UnknownVariableError(name, row["statement"])

    @staticmethod
    def order_variables(param_df, var_names, observed=None):
        """
        Orders each variable category.  Latent variables keep their order of
        first appearance; observed variables follow ``observed`` when given.
        """
        appearance = list(dict.fromkeys(param_df[["lhs", "rhs"]].values.flatten()))
        if observed is not None:
            obs = [v for v in observed if v in var_names["obs"]]
            appearance = [v for v in appearance if v in var_names["nob"]] + obs
        order = {key: [v for v in appearance if v in names]
                 for key, names in var_names.items()}
        return order

    @property
    def lav_order(self):
        return self.var_order["nob"] + self.var_order["lvo"]

    @property
    def obs_order(self):
        return self.var_order["obs"]

    @property
    def variables(self):
        latent = [Variable(v, "latent") for v in self.var_order["nob"]]
        observed = [Variable(v, "observed") for v in self.var_order["obs"]]
        return latent + observed

    @property
    def specs(self):
        specs = []
        for row in self.param_df.to_dict(orient="records"):
            if row["dummy"]:
                continue
            _, fixedval, start, label, _ = self._modifiers(row)
            specs.append(ParameterSpec(row["lhs"], row["rel"], row["rhs"],
                                       not row["fixed"],
                                       np.nan if fixedval is None else fixedval,
                                       np.nan if start is None else start,
                                       label))
        return specs
