import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .data import Dataset
from .distributions import Family, get_family
from .estimators import BootstrapResult, DistributionFit, FitFailure, bootstrap, fit
from .etl import summarize
from .percentiles import asymptotic_quantiles, bootstrap_quantiles, default_probs, moments, proportion_symptomatic

logger = logging.getLogger(__name__)

class Analysis(NamedTuple):
    """ results for one dataset variant and one distribution family """
    variant:    str
    family:     str
    n:          int
    fit:        Optional[DistributionFit]        = None
    bootstrap:  Optional[BootstrapResult]        = None
    bootstrap_table:  Optional[pd.DataFrame]     = None
    asymptotic_table: Optional[pd.DataFrame]     = None
    symptomatic:      Optional[pd.DataFrame]     = None
    error:      Optional[str]                    = None

    @property
    def failed(self) -> bool:
        return self.fit is None

def analyze(
    dataset:             Dataset,
    variant:             str,
    families:            Sequence[Union[str, Family]] = ("lognormal", "weibull"),
    bootstrap_families:  Sequence[str] = ("lognormal",),
    n_boot:              int = 1000,
    rng:                 Optional[np.random.Generator] = None,
    probs:               Sequence[float] = default_probs,
    CI:                  float = 0.95,
    monitoring_days:     Sequence[float] = (14,),
    nodes:               Optional[int] = None
) -> List[Analysis]:
    """ fit each family to one dataset variant; fit failures are recorded rather than raised """
    rng = rng if rng is not None else np.random.default_rng()
    results = []
    for family in map(get_family, families):
        try:
            point = fit(dataset, family, nodes = nodes)
        except FitFailure as e:
            logger.warning("%s (%s): %s", variant, family.name, e)
            results.append(Analysis(variant, family.name, len(dataset), error = str(e)))
            continue
        logger.info("%s (%s): %s", variant, family.name, point.named_params())

        boot, boot_table = None, None
        if family.name in bootstrap_families and n_boot > 0:
            boot = bootstrap(dataset, family, n_boot, rng, initial = point.params, nodes = nodes)
            boot_table = bootstrap_quantiles(point, boot, probs, CI)
        results.append(Analysis(
            variant, family.name, len(dataset),
            fit              = point,
            bootstrap        = boot,
            bootstrap_table  = boot_table,
            asymptotic_table = asymptotic_quantiles(point, probs, CI),
            symptomatic      = proportion_symptomatic(point, monitoring_days, boot, CI),
        ))
    return results

def fmt(value: float, digits: int = 2) -> str:
    return "NA" if value is None or not np.isfinite(value) else f"{value:.{digits}f}"

def markdown_table(df: pd.DataFrame, index_label: str, index_fmt = lambda p: f"{100*p:g}%") -> List[str]:
    lines = [f"| {index_label} | estimate | lower | upper |", "|---|---|---|---|"]
    for (idx, row) in df.iterrows():
        lines.append(f"| {index_fmt(idx)} | {fmt(row['estimate'])} | {fmt(row['lower'])} | {fmt(row['upper'])} |")
    return lines

def render_markdown(analyses: Sequence[Analysis], path: Path, datasets: Optional[Dict[str, Dataset]] = None, figures: Optional[Dict[str, Path]] = None, CI: float = 0.95, title: str = "Incubation period estimates") -> Path:
    """ write the static report with parameter estimates and quantile tables per variant and family """
    path = Path(path)
    lines = [f"# {title}", ""]
    if datasets:
        lines += ["## Data", "", "| variant | observations | median exposure width | median onset width |", "|---|---|---|---|"]
        for (name, dataset) in datasets.items():
            summary = summarize(dataset)
            lines.append(f"| {name} | {int(summary['observations'])} | {fmt(summary['median exposure width'])} | {fmt(summary['median onset width'])} |")
        lines.append("")

    for variant in dict.fromkeys(a.variant for a in analyses):
        lines += [f"## {variant}", ""]
        if figures and variant in figures:
            lines += [f"![{variant}]({Path(figures[variant]).name})", ""]
        for analysis in (a for a in analyses if a.variant == variant):
            lines += [f"### {analysis.family} (n = {analysis.n})", ""]
            if analysis.failed:
                lines += [f"Fit failed: {analysis.error}", ""]
                continue
            params = ", ".join(f"{k} = {fmt(v, 3)}" for (k, v) in analysis.fit.named_params().items())
            summary = moments(analysis.fit)
            lines += [
                f"Parameters: {params}; log-likelihood = {fmt(analysis.fit.loglik, 2)}; AIC = {fmt(analysis.fit.aic, 2)}; mean = {fmt(summary['mean'])} days, sd = {fmt(summary['sd'])} days.",
                ""
            ]
            if analysis.bootstrap_table is not None:
                boot = analysis.bootstrap
                lines += [f"Bootstrap {100*CI:g}% intervals ({boot.n_boot - boot.n_failed} of {boot.n_boot} replicates converged):", ""]
                if not boot.reliable:
                    lines += ["Too many replicates failed; bootstrap intervals are undefined.", ""]
                lines += markdown_table(analysis.bootstrap_table, "percentile") + [""]
            lines += [f"Asymptotic {100*CI:g}% intervals:", ""]
            if not analysis.fit.has_covariance:
                lines += ["Observed information is singular; asymptotic intervals are undefined.", ""]
            lines += markdown_table(analysis.asymptotic_table, "percentile") + [""]
            lines += ["Proportion symptomatic:", ""]
            lines += markdown_table(analysis.symptomatic, "within", index_fmt = lambda d: f"{d:g} days") + [""]

    path.write_text("\n".join(lines))
    logger.info("wrote report to %s", path)
    return path

def save_tables(analyses: Sequence[Analysis], directory: Path) -> List[Path]:
    """ save each quantile table as csv """
    paths = []
    for analysis in analyses:
        for (method, df) in [("bootstrap", analysis.bootstrap_table), ("asymptotic", analysis.asymptotic_table)]:
            if df is None:
                continue
            filename = Path(directory) / f"{analysis.variant}_{analysis.family}_{method}.csv".replace(" ", "_")
            df.to_csv(filename)
            paths.append(filename)
    return paths
