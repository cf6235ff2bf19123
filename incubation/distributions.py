from typing import Dict, Sequence, Tuple, Union

import numpy as np
from scipy.special import gamma as gamma_fn
from scipy.special import gammainc, gammaincc
from scipy.stats import gamma, lognorm, norm, weibull_min

"""
Parametric incubation period families. Parameters are kept on their natural
scale for reporting; optimizers work on an unconstrained transformation.
"""

# lower bound on incubation times when building initial guesses
min_incubation_guess = 0.5

tiny = np.finfo(float).tiny

def midpoint_incubation(intervals: np.ndarray) -> np.ndarray:
    """ crude incubation time estimates from window midpoints """
    EL, ER, SL, SR = np.asarray(intervals, dtype = float).T
    return np.clip((SL + SR)/2 - (EL + ER)/2, min_incubation_guess, None)

class Family():
    """ parent class for parametric incubation period distributions """
    name:   str = ""
    params: Tuple[str, str] = ("", "")
    # bounds on the transformed parameters
    bounds: Sequence[Tuple[float, float]] = ()

    def distribution(self, theta: Sequence[float]):
        raise NotImplementedError()

    def transform(self, theta: Sequence[float]) -> np.ndarray:
        return np.log(np.asarray(theta, dtype = float))

    def untransform(self, x: Sequence[float]) -> np.ndarray:
        return np.exp(np.asarray(x, dtype = float))

    def initial_guess(self, intervals: np.ndarray) -> np.ndarray:
        raise NotImplementedError()

    def lower_partial_mean(self, theta: Sequence[float], t: np.ndarray) -> np.ndarray:
        """ E[T; T <= t] for t > 0 """
        raise NotImplementedError()

    def upper_partial_mean(self, theta: Sequence[float], t: np.ndarray) -> np.ndarray:
        """ E[T; T > t] for t > 0 """
        raise NotImplementedError()

    def integrated_cdf(self, theta: Sequence[float], t: np.ndarray) -> np.ndarray:
        """ int_0^t F(u) du = t F(t) - E[T; T <= t], zero for t <= 0 """
        t = np.asarray(t, dtype = float)
        pos = np.maximum(t, tiny)
        G = pos * self.distribution(theta).cdf(pos) - self.lower_partial_mean(theta, pos)
        return np.where(t > 0, np.maximum(G, 0), 0.0)

    def integrated_sf(self, theta: Sequence[float], t: np.ndarray) -> np.ndarray:
        """ int_t^inf S(u) du = E[T; T > t] - t S(t), growing linearly for t < 0 where S = 1 """
        t = np.asarray(t, dtype = float)
        pos = np.maximum(t, tiny)
        H = self.upper_partial_mean(theta, pos) - pos * self.distribution(theta).sf(pos)
        return np.maximum(H, 0) + np.maximum(-t, 0)

    def clip(self, x: Sequence[float]) -> np.ndarray:
        """ pull a transformed parameter vector inside the optimizer bounds """
        lo, hi = zip(*self.bounds)
        return np.clip(np.asarray(x, dtype = float), lo, hi)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

class LogNormal(Family):
    """ log-normal with meanlog/sdlog parameterization; median = exp(meanlog) """
    name   = "lognormal"
    params = ("meanlog", "sdlog")
    bounds = [(-10.0, 10.0), (np.log(1e-2), np.log(20.0))]

    def distribution(self, theta):
        meanlog, sdlog = theta
        return lognorm(s = sdlog, scale = np.exp(meanlog))

    def transform(self, theta):
        meanlog, sdlog = theta
        return np.array([meanlog, np.log(sdlog)])

    def untransform(self, x):
        meanlog, log_sdlog = x
        return np.array([meanlog, np.exp(log_sdlog)])

    def lower_partial_mean(self, theta, t):
        meanlog, sdlog = theta
        z = (np.log(t) - meanlog)/sdlog
        return np.exp(meanlog + sdlog**2/2) * norm.cdf(z - sdlog)

    def upper_partial_mean(self, theta, t):
        meanlog, sdlog = theta
        z = (np.log(t) - meanlog)/sdlog
        return np.exp(meanlog + sdlog**2/2) * norm.sf(z - sdlog)

    def initial_guess(self, intervals):
        log_t = np.log(midpoint_incubation(intervals))
        return np.array([log_t.mean(), max(log_t.std(), 0.1)])

class Weibull(Family):
    name   = "weibull"
    params = ("shape", "scale")
    bounds = [(np.log(5e-2), np.log(50.0)), (-10.0, 10.0)]

    def distribution(self, theta):
        shape, scale = theta
        return weibull_min(c = shape, scale = scale)

    # partial means reduce to regularized incomplete gamma functions of (t/scale)^shape
    def lower_partial_mean(self, theta, t):
        shape, scale = theta
        return scale * gamma_fn(1 + 1/shape) * gammainc(1 + 1/shape, (t/scale)**shape)

    def upper_partial_mean(self, theta, t):
        shape, scale = theta
        return scale * gamma_fn(1 + 1/shape) * gammaincc(1 + 1/shape, (t/scale)**shape)

    def initial_guess(self, intervals):
        t = midpoint_incubation(intervals)
        cv = max(t.std(), 0.1) / t.mean()
        shape = np.clip(cv ** -1.086, 0.1, 20)
        return np.array([shape, t.mean() / gamma_fn(1 + 1/shape)])

class Gamma(Family):
    name   = "gamma"
    params = ("shape", "scale")
    bounds = [(np.log(5e-2), np.log(500.0)), (-10.0, 10.0)]

    def distribution(self, theta):
        shape, scale = theta
        return gamma(a = shape, scale = scale)

    def lower_partial_mean(self, theta, t):
        shape, scale = theta
        return shape * scale * gamma(a = shape + 1, scale = scale).cdf(t)

    def upper_partial_mean(self, theta, t):
        shape, scale = theta
        return shape * scale * gamma(a = shape + 1, scale = scale).sf(t)

    def initial_guess(self, intervals):
        t = midpoint_incubation(intervals)
        var = max(t.var(), 0.1)
        shape = np.clip(t.mean() ** 2 / var, 0.1, 400)
        return np.array([shape, t.mean() / shape])

# supported families
families: Dict[str, Family] = {
    "lognormal" : LogNormal(),
    "weibull"   : Weibull(),
    "gamma"     : Gamma(),
}

def get_family(family: Union[str, Family]) -> Family:
    if isinstance(family, Family):
        return family
    try:
        return families[family.lower()]
    except KeyError:
        raise KeyError(f"unknown family '{family}', expected one of {list(families)}")
