import argparse
import logging
from pathlib import Path

import numpy as np

import incubation.plots as plt
from incubation.etl import clean, download_data, load_line_list, study_start
from incubation.estimators import compare_families
from incubation.report import analyze, render_markdown, save_tables
from incubation.utils import fmt_params, mkdir, setup

logger = logging.getLogger("incubation_report")

parser = argparse.ArgumentParser(description = "estimate incubation period distributions from a traveler line list")
parser.add_argument("--data",     type = str, default = "traveler_line_list.csv", help = "line list filename in the data directory")
parser.add_argument("--url",      type = str, default = None, help = "base url to download the line list from")
parser.add_argument("--seed",     type = int, default = 20200227)
parser.add_argument("--n-boot",   type = int, default = 1000)
parser.add_argument("--CI",       type = float, default = 0.95)
parser.add_argument("--origin",   type = str, default = "China", help = "outbreak origin country, excluded from the foreign-only variant")
parser.add_argument("--mcmc",     action = "store_true", help = "also sample the Bayesian model")
parser.add_argument("--level",    type = str, default = "INFO")
args = parser.parse_args()

(data, figs) = setup(root = Path(__file__).resolve().parent, level = args.level)
out = mkdir(Path(__file__).resolve().parent / "report")
plt.set_theme("minimal")
logger.info("run settings: %s", fmt_params(**vars(args)))

if args.url:
    download_data(data, args.data, args.url)

full = clean(load_line_list(data / args.data), start = study_start)
variants = {
    "full":         full,
    "fever-only":   full.fever_only(),
    "foreign-only": full.foreign_only(args.origin),
}

# single generator for every resampling step, so the whole report is reproducible from the seed
rng = np.random.default_rng(args.seed)

analyses, figures = [], {}
for (name, dataset) in variants.items():
    logger.info("%s: %s observations", name, len(dataset))
    results = analyze(dataset, name, families = ("lognormal", "weibull", "gamma"), n_boot = args.n_boot, rng = rng, CI = args.CI)
    analyses += results

    primary = next((r for r in results if r.family == "lognormal" and not r.failed), None)
    if primary is None:
        continue
    figures[name] = out / f"{name}_density.png"
    plt.fitted_density(primary.fit, dataset, primary.bootstrap, CI = args.CI)\
        .l_title(f"incubation period ({name})")\
        .axis_labels(x = "days since exposure", y = "density")\
        .size(11, 8)\
        .save(figures[name], bbox_inches = "tight")\
        .close()
    plt.censored_intervals(dataset)\
        .l_title(f"exposure and onset windows ({name})")\
        .axis_labels(x = f"days since {full.epoch.date()}", y = "traveler")\
        .size(11, 8)\
        .save(figs / f"{name}_intervals.png", bbox_inches = "tight")\
        .close()

    logger.info("%s family comparison:\n%s", name, compare_families(dataset))

save_tables(analyses, out)
render_markdown(analyses, out / "report.md", datasets = variants, figures = figures, CI = args.CI)

if args.mcmc:
    from incubation.mcmc import posterior_quantiles, sample_posterior
    (model, trace, summary) = sample_posterior(full, CI = args.CI, random_seed = args.seed)
    logger.info("posterior summary:\n%s", summary)
    logger.info("posterior incubation quantiles:\n%s", posterior_quantiles(trace, CI = args.CI))
