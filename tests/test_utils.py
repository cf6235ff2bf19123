import logging

from incubation.utils import fmt_params, setup


def test_setup_creates_directories(tmp_path):
    (data, figs) = setup(root = tmp_path, level = "info")
    assert data == tmp_path / "data" and data.is_dir()
    assert figs == tmp_path / "figs" and figs.is_dir()


def test_setup_is_idempotent(tmp_path):
    setup(root = tmp_path, level = logging.WARNING)
    assert (tmp_path / "data").is_dir()
    setup(root = tmp_path, level = logging.WARNING)


def test_fmt_params():
    assert fmt_params(n_boot = 1000, seed = 1) == "n boot: 1000, seed: 1"
