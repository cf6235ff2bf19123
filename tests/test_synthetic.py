import numpy as np

from incubation.synthetic import simulate_line_list


def test_simulated_windows_are_admissible():
    dataset = simulate_line_list(300, "gamma", (4.0, 1.3), rng = np.random.default_rng(1))
    # windows trimmed for overlap never produce inadmissible rows
    assert len(dataset) == 300
    EL, ER, SL, SR = dataset.intervals.T
    assert np.all((EL <= ER) & (ER <= SR) & (EL <= SL) & (SL <= SR))


def test_simulation_reproducible():
    a = simulate_line_list(20, rng = np.random.default_rng(3))
    b = simulate_line_list(20, rng = np.random.default_rng(3))
    assert np.array_equal(a.intervals, b.intervals)
