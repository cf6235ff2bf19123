import logging
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import norm
from statsmodels.tools.numdiff import approx_fprime

from .estimators import BootstrapResult, DistributionFit

logger = logging.getLogger(__name__)

# incubation time quantiles reported by default
default_probs = (0.05, 0.25, 0.50, 0.75, 0.95)

def check_probs(probs: Sequence[float]) -> np.ndarray:
    probs = np.atleast_1d(np.asarray(probs, dtype = float))
    if np.any((probs <= 0) | (probs >= 1)):
        raise ValueError(f"probability levels must lie strictly between 0 and 1, got {probs}")
    return probs

def table(index: Sequence[float], estimate, lower, upper, method: str, index_name: str = "p") -> pd.DataFrame:
    df = pd.DataFrame(
        {"estimate": estimate, "lower": lower, "upper": upper},
        index = pd.Index(index, name = index_name)
    )
    df.attrs["method"] = method
    return df

def replicate_bounds(replicates: np.ndarray, CI: float):
    """ empirical (1-CI)/2 and (1+CI)/2 quantiles across bootstrap replicates """
    return (
        np.quantile(replicates, (1 - CI)/2, axis = 0),
        np.quantile(replicates, (1 + CI)/2, axis = 0)
    )

def delta_method_bounds(fit: DistributionFit, statistic: Callable[[np.ndarray], float], CI: float):
    """ normal approximation for a scalar function of the parameters using the asymptotic covariance """
    if not fit.has_covariance:
        return (np.nan, np.nan)
    gradient = np.ravel(approx_fprime(fit.params, statistic, centered = True))
    se = np.sqrt(gradient @ fit.cov @ gradient)
    z = norm.ppf((1 + CI)/2)
    center = statistic(fit.params)
    return (center - z * se, center + z * se)

def bootstrap_quantiles(fit: DistributionFit, boot: BootstrapResult, probs: Sequence[float] = default_probs, CI: float = 0.95) -> pd.DataFrame:
    probs = check_probs(probs)
    estimate = fit.distribution.ppf(probs)
    if not boot.reliable or len(boot.params) == 0:
        logger.warning("not computing bootstrap bounds for %s: %s of %s replicates failed", fit.family.name, boot.n_failed, boot.n_boot)
        lower = upper = np.full(len(probs), np.nan)
    else:
        replicates = np.array([fit.family.distribution(theta).ppf(probs) for theta in boot.params])
        (lower, upper) = replicate_bounds(replicates, CI)
    return table(probs, estimate, lower, upper, "bootstrap")

def asymptotic_quantiles(fit: DistributionFit, probs: Sequence[float] = default_probs, CI: float = 0.95) -> pd.DataFrame:
    """ delta method bounds on the log quantile, mapped back to days """
    probs = check_probs(probs)
    estimate = fit.distribution.ppf(probs)
    lower, upper = [], []
    for p in probs:
        (lo, hi) = delta_method_bounds(fit, lambda theta: np.log(fit.family.distribution(theta).ppf(p)), CI)
        lower.append(np.exp(lo))
        upper.append(np.exp(hi))
    return table(probs, estimate, lower, upper, "asymptotic")

def quantiles(fit: DistributionFit, bootstrap: Optional[BootstrapResult] = None, probs: Sequence[float] = default_probs, CI: float = 0.95) -> pd.DataFrame:
    """ incubation time quantiles with bootstrap bounds if replicates are supplied, asymptotic bounds otherwise """
    if bootstrap is not None:
        return bootstrap_quantiles(fit, bootstrap, probs, CI)
    return asymptotic_quantiles(fit, probs, CI)

def logit(p):
    return np.log(p) - np.log1p(-p)

def expit(x):
    return 1/(1 + np.exp(-x))

def proportion_symptomatic(fit: DistributionFit, days: Sequence[float], bootstrap: Optional[BootstrapResult] = None, CI: float = 0.95) -> pd.DataFrame:
    """ share of cases expected to develop symptoms within each number of days after exposure """
    days = np.atleast_1d(np.asarray(days, dtype = float))
    estimate = fit.distribution.cdf(days)
    if bootstrap is not None:
        if bootstrap.reliable and len(bootstrap.params):
            replicates = np.array([fit.family.distribution(theta).cdf(days) for theta in bootstrap.params])
            (lower, upper) = replicate_bounds(replicates, CI)
        else:
            lower = upper = np.full(len(days), np.nan)
        return table(days, estimate, lower, upper, "bootstrap", "days")

    lower, upper = [], []
    for d in days:
        # logit scale keeps bounds inside (0, 1); clip to avoid infinite logits in the far tails
        statistic = lambda theta: logit(np.clip(fit.family.distribution(theta).cdf(d), 1e-12, 1 - 1e-12))
        (lo, hi) = delta_method_bounds(fit, statistic, CI)
        lower.append(expit(lo))
        upper.append(expit(hi))
    return table(days, estimate, lower, upper, "asymptotic", "days")

def moments(fit: DistributionFit) -> pd.Series:
    dist = fit.distribution
    return pd.Series({"mean": float(dist.mean()), "sd": float(dist.std())}, name = fit.family.name)
