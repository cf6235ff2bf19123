from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .data import Dataset
from .distributions import Family, get_family
from .utils import days

def simulate_line_list(
    n:              int,
    family:         Union[str, Family] = "lognormal",
    theta:          Sequence[float] = (1.6, 0.4),
    rng:            Optional[np.random.Generator] = None,
    horizon:        float = 30*days,               # exposures occur uniformly over [0, horizon]
    exposure_width: Tuple[float, float] = (0, 7),  # range of exposure window widths
    onset_width:    Tuple[float, float] = (0, 2),  # range of onset window widths
    epoch:          str = "2019-12-01"
) -> Dataset:
    """ simulate doubly interval-censored observations that contain the true exposure and onset times """
    rng = rng if rng is not None else np.random.default_rng()
    dist = get_family(family).distribution(theta)

    exposure   = rng.uniform(0, horizon, n)
    incubation = dist.rvs(size = n, random_state = rng)
    onset      = exposure + incubation

    w_e = rng.uniform(*exposure_width, n)
    w_s = rng.uniform(*onset_width, n)
    EL = exposure - rng.uniform(0, 1, n) * w_e
    ER = EL + w_e
    SL = onset - rng.uniform(0, 1, n) * w_s
    SR = SL + w_s

    # windows may overlap for short incubation times; trimming keeps the truth inside both windows
    ER = np.minimum(ER, SR)
    SL = np.maximum(SL, EL)

    frame = pd.DataFrame({"id": [f"sim{i}" for i in range(n)], "EL": EL, "ER": ER, "SL": SL, "SR": SR})
    return Dataset(frame, epoch)
