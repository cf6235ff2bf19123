import logging
from typing import Sequence, Tuple

import arviz as az
import numpy as np
import pandas as pd
import pymc as pm
from scipy.stats import lognorm

from .data import Dataset
from .percentiles import default_probs

logger = logging.getLogger(__name__)

"""
Bayesian alternative to the maximum likelihood fits: log-normal incubation
period with latent exposure times, sampled via MCMC.
"""

def build_model(
    dataset:     Dataset,
    mu_prior:    Tuple[float, float] = (1.5, 1.0),  # normal prior on meanlog
    sigma_prior: float = 1.0,                       # half-normal prior scale on sdlog
    epsilon:     float = 1e-6                       # minimum window width
) -> pm.Model:
    """ log-normal incubation model with exposure ~ U[EL, ER] and onset constrained to [SL, SR] """
    EL, ER, SL, SR = dataset.intervals.T
    ER = np.maximum(ER, EL + epsilon)
    SR = np.maximum(SR, SL + epsilon)
    n = len(dataset)
    with pm.Model() as model:
        mu    = pm.Normal("mu", mu = mu_prior[0], sigma = mu_prior[1])
        sigma = pm.HalfNormal("sigma", sigma = sigma_prior)
        exposure = pm.Uniform("exposure", lower = EL, upper = ER, shape = (n,))

        incubation = pm.LogNormal.dist(mu = mu, sigma = sigma)
        log_upper = pm.logcdf(incubation, SR - exposure)
        log_lower = pm.logcdf(incubation, SL - exposure)
        pm.Potential("onset_window", pm.math.logdiffexp(log_upper, log_lower).sum())

        pm.Deterministic("median", pm.math.exp(mu))
    return model

def sample_posterior(dataset: Dataset, CI: float = 0.95, chains: int = 4, tune: int = 1000, draws: int = 1000, random_seed = None, **kwargs):
    """ sample the Bayesian incubation model; returns model, trace, and summary of the hyperparameters """
    model = build_model(dataset)
    logger.info("sampling incubation model on %s observations (%s chains, %s draws)", len(dataset), chains, draws)
    with model:
        trace = pm.sample(chains = chains, tune = tune, draws = draws, cores = 1, random_seed = random_seed, **kwargs)
    return (model, trace, az.summary(trace, var_names = ["mu", "sigma", "median"], hdi_prob = CI))

def posterior_quantiles(trace, probs: Sequence[float] = default_probs, CI: float = 0.95) -> pd.DataFrame:
    """ posterior median and credible interval of incubation time quantiles """
    mu    = trace.posterior["mu"].values.ravel()
    sigma = trace.posterior["sigma"].values.ravel()
    draws = lognorm.ppf(np.asarray(probs)[None, :], s = sigma[:, None], scale = np.exp(mu)[:, None])
    df = pd.DataFrame({
        "estimate": np.median(draws, axis = 0),
        "lower":    np.quantile(draws, (1 - CI)/2, axis = 0),
        "upper":    np.quantile(draws, (1 + CI)/2, axis = 0),
    }, index = pd.Index(probs, name = "p"))
    df.attrs["method"] = "mcmc"
    return df
