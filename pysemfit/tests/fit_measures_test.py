import numpy as np

from pysemfit import fit_measures
from pysemfit.fit_measures import FitStatistics
from pysemfit.model_data import SampleMoments

S = np.array([[2.0, 0.6, 0.4],
              [0.6, 1.5, 0.3],
              [0.4, 0.3, 1.0]])


def test_perfect_fit():
    assert(np.isclose(fit_measures.srmr(S, S), 0.0))
    assert(np.isclose(fit_measures.rmr(S, S), 0.0))
    assert(np.isclose(fit_measures.gfi(S, S), 1.0))
    assert(np.isclose(fit_measures.loglike(S * 0.99, S, 100),
                      fit_measures.unrestricted_loglike(S, 100)))


def test_srmr_includes_diagonal():
    Sigma = S.copy()
    Sigma[0, 0] = 1.0
    expected = np.sqrt((1.0 / 2.0)**2 / 6.0)
    assert(np.isclose(fit_measures.srmr(Sigma, S), expected))


def test_chi2_test():
    chi2, pval = fit_measures.chi2_test(0.1, 299, 24)
    assert(np.isclose(chi2, 29.9))
    assert(0 < pval < 1)
    chi2, pval = fit_measures.chi2_test(0.0, 299, 0)
    assert(chi2 == 0.0 and np.isnan(pval))


def test_rmsea():
    assert(fit_measures.rmsea(20.0, 24, 299) == 0.0)
    assert(np.isclose(fit_measures.rmsea(50.0, 24, 300),
                      np.sqrt((50.0 / 24.0 - 1.0) / 300.0)))
    assert(np.isnan(fit_measures.rmsea(0.0, 0, 300)))


def test_rmsea_ci():
    value = fit_measures.rmsea(50.0, 24, 300)
    lower, upper = fit_measures.rmsea_ci(50.0, 24, 300)
    assert(0 < lower < value < upper)
    lower, upper = fit_measures.rmsea_ci(10.0, 24, 300)
    assert(lower == 0.0 and upper >= 0.0)
    pclose = fit_measures.rmsea_pclose(50.0, 24, 300)
    assert(0.0 <= pclose <= 1.0)


def test_incremental_indices():
    assert(fit_measures.cfi(20.0, 24, 900.0, 36) == 1.0)
    assert(np.isclose(fit_measures.cfi(50.0, 24, 900.0, 36), 1.0 - 26.0 / 864.0))
    assert(np.isclose(fit_measures.tli(50.0, 24, 900.0, 36),
                      (25.0 - 50.0 / 24.0) / 24.0))
    assert(np.isnan(fit_measures.tli(0.0, 0, 900.0, 36)))
    assert(np.isclose(fit_measures.nfi(50.0, 900.0), 850.0 / 900.0))


def test_information_criteria():
    aic, bic, bic2 = fit_measures.information_criteria(-1000.0, 10, 300)
    assert(np.isclose(aic, 2020.0))
    assert(np.isclose(bic, 2000.0 + 10 * np.log(300)))
    assert(np.isclose(bic2, 2000.0 + 10 * np.log(302.0 / 24.0)))


def test_fit_statistics_keys():
    moments = SampleMoments(S, 100)
    Sigma = np.diag(np.diag(S))
    fval = np.linalg.slogdet(Sigma)[1] - np.linalg.slogdet(S)[1]
    measures = FitStatistics(99).compute(fval, Sigma, moments, 3, baseline_fval=fval)
    for key in ["npar", "fmin", "chisq", "df", "pvalue", "baseline.chisq",
                "baseline.df", "cfi", "tli", "nfi", "logl", "unrestricted.logl",
                "aic", "bic", "bic2", "rmsea", "rmsea.ci.lower", "rmsea.ci.upper",
                "rmsea.pvalue", "rmr", "srmr", "gfi", "agfi", "ntotal"]:
        assert(key in measures)
    assert(measures["df"] == 3 and measures["baseline.df"] == 3)
    assert(np.isclose(measures["chisq"], 99 * fval))
    assert(np.isclose(measures["nfi"], 0.0))
    no_baseline = FitStatistics(99).compute(fval, Sigma, moments, 3)
    assert("cfi" not in no_baseline)


def test_loglike_uses_n_divisor():
    n = 100
    S_n = S * (n - 1.0) / n
    expected = -n / 2.0 * (3 * np.log(2 * np.pi) + np.linalg.slogdet(S_n)[1] + 3)
    assert(np.isclose(fit_measures.unrestricted_loglike(S, n), expected))
    Sigma = np.diag(np.diag(S))
    expected = -n / 2.0 * (3 * np.log(2 * np.pi) + np.linalg.slogdet(Sigma)[1]
                           + np.trace(np.linalg.solve(Sigma, S_n)))
    assert(np.isclose(fit_measures.loglike(Sigma, S, n), expected))
    assert(fit_measures.loglike(S, S, n) < fit_measures.unrestricted_loglike(S, n))
