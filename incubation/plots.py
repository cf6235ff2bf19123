from collections import namedtuple
from pathlib import Path
from typing import Optional, Sequence

import matplotlib as mpl
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from matplotlib.pyplot import *

from .data import Dataset
from .estimators import BootstrapResult, DistributionFit

_ = plt # make mpl package available in incubation.plots

# default settings
mpl.rcParams["savefig.dpi"]     = 300
mpl.rcParams["xtick.labelsize"] = "large"
mpl.rcParams["ytick.labelsize"] = "large"
mpl.rcParams["svg.fonttype"]    = "none"

# palettes
BLK    = "#292f36"
BLK_CI = "#aeb7c2"

## censored windows
EXPOSURE_BLU = "#335970"
ONSET_RED    = "#D63231"

## fitted families
FAMILY_PALETTE = {
    "lognormal" : "#437034",
    "weibull"   : "#7D4343",
    "gamma"     : "#43587D",
}

# container class for different theme
Aesthetics = namedtuple(
    "Aesthetics",
    ["title", "label", "note", "ticks", "style", "palette", "accent", "despine", "framealpha", "handlelength"]
)

theme = default_settings = Aesthetics(
    title   = {"size": 28, "family": "Helvetica Neue", "weight": "regular"},
    label   = {"size": 20, "family": "Helvetica Neue", "weight": "regular"},
    note    = {"size": 14, "family": "Helvetica Neue", "weight": "regular"},
    ticks   = {"size": 10, "family": "Helvetica Neue"},
    style   = "whitegrid",
    palette = "bright",
    accent  = "dimgrey",
    despine = False,
    framealpha = 1,
    handlelength = 1
)

minimal_settings = Aesthetics(
    title   = {"size": 28, "family": "Helvetica Neue", "weight": "regular"},
    label   = {"size": 20, "family": "Helvetica Neue", "weight": "regular"},
    note    = {"size": 14, "family": "Helvetica Neue", "weight": "regular"},
    ticks   = {"size": 12, "family": "Helvetica Neue"},
    style   = "white",
    palette = "bright",
    accent  = "dimgrey",
    despine = True,
    framealpha = 0,
    handlelength = 0.5
)

plt.rcParams['mathtext.default'] = 'regular'

def set_theme(name):
    global theme
    if name == "minimal":
        theme = minimal_settings
    else: # default
        theme = default_settings
    sns.set_theme(style = theme.style, palette = theme.palette, font = theme.ticks["family"])
    mpl.rcParams.update({"font.size": 22})
    if theme.despine:
        plt.rc("axes.spines", top = False, right = False)
    return theme

set_theme("default")

# simple wrapper over plt to help chain commands
class PlotDevice():
    def __init__(self, fig: Optional[mpl.figure.Figure] = None):
        self.figure = fig if fig else plt.gcf()
        if theme.despine:
            sns.despine(top = True, right = True)

    def axis_labels(self, x, y, enforce_spacing = True, **kwargs):
        kwargs["fontdict"] = kwargs.get("fontdict", theme.label)
        if enforce_spacing and not x.startswith("\n"):
            x = "\n" + x
        if enforce_spacing and not y.endswith("\n"):
            y = y + "\n"
        return self.xlabel(x, **kwargs).ylabel(y, **kwargs)

    def xlabel(self, xl: str, **kwargs):
        kwargs["fontdict"] = kwargs.get("fontdict", theme.label)
        plt.xlabel(xl, **kwargs)
        plt.gca().xaxis.label.set_color("dimgray")
        return self

    def ylabel(self, yl: str, **kwargs):
        kwargs["fontdict"] = kwargs.get("fontdict", theme.label)
        plt.ylabel(yl, **kwargs)
        plt.gca().yaxis.label.set_color("dimgray")
        return self

    # left-aligned title
    def l_title(self, text: str, **kwargs):
        kwargs["loc"]        = "left"
        kwargs["ha"]         = kwargs.get("ha", "left")
        kwargs["va"]         = kwargs.get("va", "bottom")
        kwargs["fontsize"]   = kwargs.get("fontsize",   theme.title["size"])
        kwargs["fontdict"]   = kwargs.get("fontdict",   theme.title)
        kwargs["fontweight"] = kwargs.get("fontweight", theme.title["weight"])
        plt.title(text, **kwargs)
        return self

    def size(self, w, h):
        self.figure.set_size_inches(w, h)
        return self

    def save(self, filename: Path, **kwargs):
        kwargs["transparent"] = kwargs.get("transparent", str(filename).endswith("svg"))
        self.figure.savefig(filename, **kwargs)
        return self

    def show(self, **kwargs):
        plt.show(**kwargs)
        return self

    def close(self):
        plt.close(self.figure)
        return self

def censored_intervals(dataset: Dataset, ax = None) -> PlotDevice:
    """ plot exposure and onset windows for each observation, ordered by earliest onset """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    intervals = dataset.intervals
    intervals = intervals[np.argsort(intervals[:, 2], kind = "stable")]
    y = np.arange(len(intervals))
    EL, ER, SL, SR = intervals.T
    ax.hlines(y, EL, ER, color = EXPOSURE_BLU, linewidth = 2, label = "exposure window")
    ax.hlines(y, SL, SR, color = ONSET_RED,    linewidth = 2, label = "symptom onset window")
    # zero-width windows show up as points
    ax.scatter(EL[EL == ER], y[EL == ER], color = EXPOSURE_BLU, s = 6, zorder = 5)
    ax.scatter(SL[SL == SR], y[SL == SR], color = ONSET_RED,    s = 6, zorder = 5)
    ax.set_yticks([])
    ax.legend(framealpha = theme.framealpha, handlelength = theme.handlelength, loc = "best")
    return PlotDevice(fig)

def fitted_density(
    fit:       DistributionFit,
    dataset:   Optional[Dataset] = None,
    bootstrap: Optional[BootstrapResult] = None,
    CI:        float = 0.95,
    t_max:     Optional[float] = None,
    ax = None
) -> PlotDevice:
    """ fitted incubation density with bootstrap band, against the raw incubation time bounds """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    color = FAMILY_PALETTE.get(fit.family.name, BLK)
    t_max = t_max or float(fit.distribution.ppf(0.995))
    t = np.linspace(1e-3, t_max, 400)

    if bootstrap is not None and len(bootstrap.params):
        densities = np.array([fit.family.distribution(theta).pdf(t) for theta in bootstrap.params])
        lower, upper = np.quantile(densities, [(1 - CI)/2, (1 + CI)/2], axis = 0)
        ax.fill_between(t, lower, upper, color = color, alpha = 0.3, label = f"bootstrap {int(round(100*CI))}% band")
    ax.plot(t, fit.distribution.pdf(t), color = color, linewidth = 2, label = f"{fit.family.name} fit")

    if dataset is not None and len(dataset):
        EL, ER, SL, SR = dataset.intervals.T
        lo, hi = np.clip(SL - ER, 0, None), SR - EL
        order = np.argsort(hi, kind = "stable")
        # raw bounds drawn as a stack beneath the density
        top = ax.get_ylim()[1]
        y = -0.2 * top * (1 + np.arange(len(order))) / len(order)
        ax.hlines(y, lo[order], hi[order], color = BLK_CI, linewidth = 1, label = "incubation time bounds")
        ax.set_xlim(left = 0, right = max(t_max, float(np.quantile(hi, 0.95))))
    ax.legend(framealpha = theme.framealpha, handlelength = theme.handlelength, loc = "best")
    return PlotDevice(fig)

def quantile_comparison(tables: Sequence, labels: Sequence[str], ax = None) -> PlotDevice:
    """ point estimates and intervals of incubation time quantiles across fits """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure
    offsets = np.linspace(-0.2, 0.2, len(tables)) if len(tables) > 1 else [0]
    for (df, label, offset) in zip(tables, labels, offsets):
        x = np.arange(len(df)) + offset
        err = np.vstack([df["estimate"] - df["lower"], df["upper"] - df["estimate"]])
        ax.errorbar(x, df["estimate"], yerr = np.nan_to_num(err), fmt = "o", capsize = 3, label = label)
    ax.set_xticks(np.arange(len(tables[0])))
    ax.set_xticklabels([f"{100*p:g}th" for p in tables[0].index])
    ax.legend(framealpha = theme.framealpha, handlelength = theme.handlelength, loc = "best")
    return PlotDevice(fig)
