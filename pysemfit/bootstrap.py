#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Created on Sun Oct 18 16:34:12 2026

@author: lukepinkel
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed

import numpy as np
import pandas as pd
import tqdm

from .config import FitConfig
from .errors import SEMError
from .sem import SEM

logger = logging.getLogger(__name__)


def _fit_resample(formula, data, config):
    return SEM.from_data(formula, data, config=config).fit().theta


def bootstrap_se(formula, data, n_samples=200, config=None, seed=None,
                 max_workers=None, progress_bar=False):
    """
    Nonparametric bootstrap standard errors.

    Rows of ``data`` are resampled with replacement and the model is refitted
    to each resample; every fit builds its own moments and parameter vector.

    Parameters
    ----------
    formula : str
        Model description.
    data : pandas.DataFrame
        Raw observations.
    n_samples : int
        Number of resamples.
    config : FitConfig, optional
        Settings of each fit.  The baseline model is not fitted.
    seed : int, optional
        Seed of the resampling indices, drawn before any fit starts so the
        result does not depend on scheduling.
    max_workers : int, optional
        Threads used for the fits; None or 1 fits sequentially.
    progress_bar : bool
        Show a tqdm progress bar.

    Returns
    -------
    se : pandas.Series
        Bootstrap standard error of each free parameter.
    samples : pandas.DataFrame
        Estimates of the successful resamples in rows.
    """
    config = FitConfig() if config is None else config
    config = config.replace(baseline=False)
    data = pd.DataFrame(data)
    names = list(SEM.from_data(formula, data, config=config).theta_names)
    rng = np.random.default_rng(seed)
    n = data.shape[0]
    indices = [rng.integers(0, n, size=n) for _ in range(n_samples)]
    resamples = [data.iloc[ix].reset_index(drop=True) for ix in indices]
    estimates = [None] * n_samples

    with tqdm.tqdm(total=n_samples, smoothing=1e-3, disable=not progress_bar) as pbar:

        def _store(i, fn, *args):
            try:
                estimates[i] = fn(*args)
            except SEMError as e:
                logger.info("Bootstrap sample %d skipped: %s", i, e)
            pbar.update(1)

        if max_workers is None or max_workers == 1:
            for i, sample in enumerate(resamples):
                _store(i, _fit_resample, formula, sample, config)
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = {executor.submit(_fit_resample, formula, sample, config): i
                           for i, sample in enumerate(resamples)}
                for future in as_completed(futures):
                    _store(futures[future], future.result)
    ok = [est for est in estimates if est is not None]
    n_failed = n_samples - len(ok)
    if n_failed > 0:
        logger.warning("%d of %d bootstrap fits failed", n_failed, n_samples)
    samples = pd.DataFrame(np.array(ok).reshape(len(ok), len(names)), columns=names)
    se = samples.std(ddof=1)
    return se, samples
