import numpy as np
import pytest
from scipy.stats import lognorm

from incubation.estimators import BootstrapResult, bootstrap, fit
from incubation.percentiles import (asymptotic_quantiles, bootstrap_quantiles, default_probs, moments,
                                    proportion_symptomatic, quantiles)
from incubation.synthetic import simulate_line_list


@pytest.fixture
def lognormal(synthetic):
    return fit(synthetic, "lognormal")


@pytest.fixture
def boot(synthetic, lognormal):
    return bootstrap(synthetic, "lognormal", 40, np.random.default_rng(3), initial = lognormal.params)


def test_point_estimates_are_fitted_quantiles(lognormal):
    table = quantiles(lognormal)
    assert list(table.index) == list(default_probs)
    assert np.allclose(table["estimate"], lognormal.distribution.ppf(default_probs))
    assert table["estimate"].is_monotonic_increasing


def test_asymptotic_bounds_bracket_estimates(lognormal):
    table = asymptotic_quantiles(lognormal, CI = 0.95)
    assert table.attrs["method"] == "asymptotic"
    assert np.all(table["lower"] < table["estimate"])
    assert np.all(table["estimate"] < table["upper"])
    assert np.all(table["lower"] > 0)


def test_asymptotic_bounds_lognormal_median_closed_form(lognormal):
    # for the median, log q = meanlog so the delta method reduces to meanlog +/- z * se(meanlog)
    table = asymptotic_quantiles(lognormal, probs = [0.5], CI = 0.95)
    se = np.sqrt(lognormal.cov[0, 0])
    assert table["lower"].iloc[0] == pytest.approx(np.exp(lognormal.params[0] - 1.959964 * se), rel = 1e-3)
    assert table["upper"].iloc[0] == pytest.approx(np.exp(lognormal.params[0] + 1.959964 * se), rel = 1e-3)


def test_asymptotic_bounds_undefined_without_covariance(lognormal):
    singular = lognormal._replace(cov = np.full((2, 2), np.nan))
    table = asymptotic_quantiles(singular)
    assert table["lower"].isna().all() and table["upper"].isna().all()
    assert table["estimate"].notna().all()


def test_wider_interval_for_higher_confidence(lognormal):
    narrow = asymptotic_quantiles(lognormal, CI = 0.5)
    wide   = asymptotic_quantiles(lognormal, CI = 0.95)
    assert np.all(wide["upper"] - wide["lower"] > narrow["upper"] - narrow["lower"])


def test_bootstrap_bounds(lognormal, boot):
    table = quantiles(lognormal, boot)
    assert table.attrs["method"] == "bootstrap"
    assert np.all(table["lower"] <= table["upper"])
    assert table["lower"].is_monotonic_increasing


def test_bootstrap_bounds_reproducible(synthetic, lognormal):
    tables = [
        bootstrap_quantiles(lognormal, bootstrap(synthetic, "lognormal", 15, np.random.default_rng(9), initial = lognormal.params))
        for _ in range(2)
    ]
    assert tables[0].equals(tables[1])


def test_bootstrap_bounds_independent_of_replicate_order(lognormal, boot):
    reversed_boot = boot._replace(params = boot.params[::-1])
    assert bootstrap_quantiles(lognormal, boot).equals(bootstrap_quantiles(lognormal, reversed_boot))


def test_unreliable_bootstrap_has_undefined_bounds(lognormal):
    unreliable = BootstrapResult(lognormal.family, lognormal.params[None, :], n_boot = 10, n_failed = 9, reliable = False)
    table = bootstrap_quantiles(lognormal, unreliable)
    assert table["lower"].isna().all() and table["upper"].isna().all()
    assert table["estimate"].notna().all()


def test_invalid_probabilities(lognormal):
    with pytest.raises(ValueError):
        quantiles(lognormal, probs = [0.5, 1.0])


def bootstrap_coverage(trials, n, n_boot, CI, probs, seed = 100):
    """ number of trials whose bootstrap interval covers the generating quantile, per probability level """
    truth = lognorm(s = 0.4, scale = np.exp(1.6)).ppf(probs)
    covered = np.zeros(len(probs), dtype = int)
    for trial in range(trials):
        rng = np.random.default_rng(seed + trial)
        dataset = simulate_line_list(n, "lognormal", (1.6, 0.4), rng = rng)
        point = fit(dataset, "lognormal", with_cov = False)
        boot = bootstrap(dataset, "lognormal", n_boot, rng, initial = point.params)
        table = bootstrap_quantiles(point, boot, probs = probs, CI = CI)
        covered += ((table["lower"] <= truth) & (truth <= table["upper"])).to_numpy(dtype = int)
    return covered


def test_bootstrap_interval_covers_generating_median():
    assert bootstrap_coverage(trials = 8, n = 50, n_boot = 40, CI = 0.9, probs = [0.5])[0] >= 5


@pytest.mark.slow
def test_bootstrap_coverage_at_full_replication():
    # 1000 replicates on 50 observations, nominal 95% intervals
    covered = bootstrap_coverage(trials = 20, n = 50, n_boot = 1000, CI = 0.95, probs = [0.5, 0.95])
    assert np.all(covered >= 14)


def test_proportion_symptomatic(lognormal, boot):
    asymptotic = proportion_symptomatic(lognormal, [7, 14])
    assert asymptotic.index.name == "days"
    assert asymptotic["estimate"].is_monotonic_increasing
    assert np.all((asymptotic["lower"] > 0) & (asymptotic["upper"] < 1))
    assert np.all(asymptotic["lower"] <= asymptotic["estimate"])

    bootstrapped = proportion_symptomatic(lognormal, [7, 14], boot)
    assert bootstrapped.attrs["method"] == "bootstrap"
    assert np.allclose(bootstrapped["estimate"], asymptotic["estimate"])


def test_moments(lognormal):
    meanlog, sdlog = lognormal.params
    summary = moments(lognormal)
    assert summary["mean"] == pytest.approx(np.exp(meanlog + sdlog**2/2))
    assert summary["sd"] > 0
