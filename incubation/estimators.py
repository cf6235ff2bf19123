import logging
from typing import Dict, NamedTuple, Optional, Sequence, Union

import numpy as np
import pandas as pd
from scipy.optimize import minimize
from statsmodels.tools.numdiff import approx_hess

from .data import Dataset
from .distributions import Family, get_family
from .likelihood import log_likelihood

logger = logging.getLogger(__name__)

# default optimizer settings; tight tolerances since likelihood surfaces can be flat
optimizer_options = {"xatol": 1e-6, "fatol": 1e-8, "maxiter": 5000, "maxfev": 10000}

class FitFailure(ValueError):
    """ raised when the likelihood cannot be maximized for a dataset/family combination """

class DistributionFit(NamedTuple):
    family:     Family
    params:     np.ndarray          # natural-scale point estimates
    loglik:     float
    cov:        np.ndarray          # observed-information covariance, NaN if undefined
    n:          int                 # number of observations fitted
    iterations: int

    @property
    def distribution(self):
        return self.family.distribution(self.params)

    @property
    def aic(self) -> float:
        return 2 * len(self.params) - 2 * self.loglik

    @property
    def has_covariance(self) -> bool:
        return bool(np.all(np.isfinite(self.cov)))

    def named_params(self) -> Dict[str, float]:
        return dict(zip(self.family.params, map(float, self.params)))

class BootstrapResult(NamedTuple):
    family:   Family
    params:   np.ndarray            # (successful replicates, number of parameters)
    n_boot:   int
    n_failed: int
    reliable: bool

    @property
    def failure_rate(self) -> float:
        return self.n_failed / self.n_boot if self.n_boot else 0.0

def covariance(family: Family, params: np.ndarray, intervals: np.ndarray, nodes: Optional[int] = None) -> np.ndarray:
    """ inverse of the observed information at the MLE; NaN if the Hessian is not positive definite """
    undefined = np.full((len(params), len(params)), np.nan)
    try:
        hessian = approx_hess(params, lambda theta: -log_likelihood(family, theta, intervals, nodes))
        cov = np.linalg.inv(hessian)
    except (np.linalg.LinAlgError, ValueError) as e:
        logger.debug("%s covariance undefined: %s", family.name, e)
        return undefined
    if not np.all(np.isfinite(cov)) or np.any(np.diag(cov) <= 0):
        logger.debug("%s covariance undefined: observed information not positive definite", family.name)
        return undefined
    return cov

def fit(
    dataset:  Union[Dataset, np.ndarray],
    family:   Union[str, Family] = "lognormal",
    initial:  Optional[Sequence[float]] = None,
    method:   str  = "Nelder-Mead",
    nodes:    Optional[int] = None,
    with_cov: bool = True,
    **options
) -> DistributionFit:
    """ maximum likelihood fit of a parametric incubation period distribution to censored data """
    family    = get_family(family)
    intervals = dataset.intervals if isinstance(dataset, Dataset) else np.atleast_2d(np.asarray(dataset, dtype = float))
    if len(intervals) == 0:
        raise FitFailure(f"cannot fit {family.name} distribution to an empty dataset")

    theta0 = family.initial_guess(intervals) if initial is None else np.asarray(initial, dtype = float)
    x0 = family.clip(family.transform(theta0))

    def objective(x):
        ll = log_likelihood(family, family.untransform(x), intervals, nodes)
        return -ll if np.isfinite(ll) else np.inf

    options = {**optimizer_options, **options} if method == "Nelder-Mead" else options
    result = minimize(objective, x0, method = method, bounds = family.bounds, options = options)
    if not result.success or not np.isfinite(result.fun):
        raise FitFailure(f"{family.name} fit did not converge: {result.message}")

    params = family.untransform(result.x)
    cov = covariance(family, params, intervals, nodes) if with_cov else np.full((len(params), len(params)), np.nan)
    iterations = int(getattr(result, "nit", 0))
    logger.debug("%s fit on %s observations: %s (loglik = %.3f, %s iterations)", family.name, len(intervals), params, -result.fun, iterations)
    return DistributionFit(family, params, -float(result.fun), cov, len(intervals), iterations)

def bootstrap(
    dataset:          Dataset,
    family:           Union[str, Family] = "lognormal",
    n_boot:           int = 1000,
    rng:              Optional[np.random.Generator] = None,
    initial:          Optional[Sequence[float]] = None,
    max_failure_rate: float = 0.1,
    nodes:            Optional[int] = None,
    **options
) -> BootstrapResult:
    """ refit on same-size resamples with replacement; failed replicates are counted and skipped """
    family = get_family(family)
    rng = rng if rng is not None else np.random.default_rng()
    replicates = []
    n_failed = 0
    for b in range(n_boot):
        resample = dataset.resample(rng)
        try:
            replicates.append(fit(resample, family, initial, nodes = nodes, with_cov = False, **options).params)
        except FitFailure as e:
            n_failed += 1
            logger.debug("bootstrap replicate %s failed: %s", b, e)

    params = np.array(replicates).reshape(-1, len(family.params))
    reliable = n_boot > 0 and (n_failed / n_boot) <= max_failure_rate
    if n_failed:
        logger.warning("%s of %s %s bootstrap replicates failed to converge", n_failed, n_boot, family.name)
    if not reliable:
        logger.warning("%s bootstrap intervals unreliable: failure rate above %s", family.name, max_failure_rate)
    return BootstrapResult(family, params, n_boot, n_failed, reliable)

def compare_families(dataset: Dataset, families: Sequence[Union[str, Family]] = ("lognormal", "weibull", "gamma"), nodes: Optional[int] = None) -> pd.DataFrame:
    """ log-likelihood and AIC across candidate families """
    rows = []
    for family in map(get_family, families):
        try:
            result = fit(dataset, family, nodes = nodes, with_cov = False)
            rows.append({"family": family.name, "loglik": result.loglik, "aic": result.aic, "converged": True})
        except FitFailure as e:
            logger.warning("%s", e)
            rows.append({"family": family.name, "loglik": np.nan, "aic": np.nan, "converged": False})
    table = pd.DataFrame(rows).set_index("family")
    table["delta_aic"] = table["aic"] - table["aic"].min()
    return table
