import numpy as np
import pytest

from incubation import estimators
from incubation.data import Dataset
from incubation.estimators import FitFailure, bootstrap, compare_families, fit
from incubation.synthetic import simulate_line_list


def test_identical_windows_give_median_near_five():
    dataset = Dataset.from_intervals([[0, 1, 5, 6]] * 3)
    result = fit(dataset, "lognormal", xatol = 1e-8, fatol = 1e-10)
    assert result.distribution.median() == pytest.approx(5.0, abs = 0.25)
    assert result.n == 3


def test_recovers_lognormal_parameters():
    dataset = simulate_line_list(200, "lognormal", (1.6, 0.4), rng = np.random.default_rng(7), exposure_width = (0, 3))
    result = fit(dataset, "lognormal")
    meanlog, sdlog = result.params
    assert meanlog == pytest.approx(1.6, abs = 0.15)
    assert sdlog   == pytest.approx(0.4, abs = 0.15)
    assert result.has_covariance
    assert np.allclose(result.cov, result.cov.T, rtol = 1e-4, atol = 1e-8)
    assert np.all(np.diag(result.cov) > 0)


def test_recovers_weibull_parameters():
    dataset = simulate_line_list(200, "weibull", (2.5, 6.0), rng = np.random.default_rng(11), exposure_width = (0, 3))
    result = fit(dataset, "weibull")
    shape, scale = result.params
    assert shape == pytest.approx(2.5, abs = 0.75)
    assert scale == pytest.approx(6.0, abs = 0.75)


def test_fit_named_params_and_aic(synthetic):
    result = fit(synthetic, "gamma")
    assert set(result.named_params()) == {"shape", "scale"}
    assert result.aic == pytest.approx(4 - 2 * result.loglik)
    assert result.loglik < 0


def test_fit_is_deterministic(synthetic):
    a = fit(synthetic, "lognormal")
    b = fit(synthetic, "lognormal")
    assert np.array_equal(a.params, b.params)


def test_non_convergence_is_a_fit_failure(synthetic):
    with pytest.raises(FitFailure):
        fit(synthetic, "lognormal", maxiter = 1)


def test_empty_dataset_is_a_fit_failure(travelers):
    with pytest.raises(FitFailure):
        fit(travelers.subset(np.zeros(len(travelers), dtype = bool)))


def test_bootstrap_is_deterministic_given_seed(synthetic):
    point = fit(synthetic, "lognormal")
    a = bootstrap(synthetic, "lognormal", 20, np.random.default_rng(5), initial = point.params)
    b = bootstrap(synthetic, "lognormal", 20, np.random.default_rng(5), initial = point.params)
    assert np.array_equal(a.params, b.params)
    assert a.params.shape == (20, 2)
    assert a.reliable and a.n_failed == 0


def test_bootstrap_skips_failed_replicates(synthetic, monkeypatch):
    real_fit = estimators.fit
    calls = []
    def flaky_fit(*args, **kwargs):
        calls.append(1)
        if len(calls) % 3 == 1:
            raise FitFailure("did not converge")
        return real_fit(*args, **kwargs)
    monkeypatch.setattr(estimators, "fit", flaky_fit)

    result = bootstrap(synthetic, "lognormal", 10, np.random.default_rng(0), max_failure_rate = 0.5)
    assert result.n_failed == 4
    assert result.params.shape == (6, 2)
    assert result.failure_rate == pytest.approx(0.4)
    assert result.reliable


def test_bootstrap_unreliable_when_too_many_failures(synthetic, monkeypatch):
    def failing_fit(*args, **kwargs):
        raise FitFailure("did not converge")
    monkeypatch.setattr(estimators, "fit", failing_fit)

    result = bootstrap(synthetic, "lognormal", 5, np.random.default_rng(0))
    assert result.n_failed == 5
    assert len(result.params) == 0
    assert not result.reliable


def test_compare_families(synthetic):
    table = compare_families(synthetic)
    assert list(table.index) == ["lognormal", "weibull", "gamma"]
    assert table["converged"].all()
    assert table["delta_aic"].min() == 0
