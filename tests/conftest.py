import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from incubation.data import Dataset
from incubation.synthetic import simulate_line_list


def pytest_addoption(parser):
    parser.addoption("--runslow", action = "store_true", default = False, help = "run slow statistical checks")


def pytest_collection_modifyitems(config, items):
    if config.getoption("--runslow"):
        return
    skip_slow = pytest.mark.skip(reason = "needs --runslow")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def synthetic():
    """ log-normal incubation periods with median exp(1.6) ~ 4.95 days """
    return simulate_line_list(80, "lognormal", (1.6, 0.4), rng = np.random.default_rng(2020))


@pytest.fixture
def travelers():
    frame = pd.DataFrame({
        "id":       ["a", "b", "c", "d", "e"],
        "EL":       [0.0, 2.0, 1.0, 4.0, 0.0],
        "ER":       [3.0, 5.0, 2.0, 6.0, 1.0],
        "SL":       [6.0, 8.0, 5.0, 9.0, 5.0],
        "SR":       [7.0, 9.0, 8.0, 10.0, 6.0],
        "SL_fever": [6.0, np.nan, 6.0, 9.5, np.nan],
        "SR_fever": [7.0, np.nan, 7.0, 10.0, np.nan],
        "country":  ["China", "Japan", "Thailand", "China", "USA"],
    })
    return Dataset(frame, "2019-12-01")
