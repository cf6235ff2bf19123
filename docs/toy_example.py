import numpy as np
import incubation.plots as plt
from incubation.estimators import bootstrap, fit
from incubation.percentiles import asymptotic_quantiles, bootstrap_quantiles
from incubation.synthetic import simulate_line_list

rng = np.random.default_rng(0)

# 100 travelers with log-normal incubation periods (median ~5 days)
dataset = simulate_line_list(100, "lognormal", (1.6, 0.4), rng = rng)

lognormal = fit(dataset, "lognormal")
boot = bootstrap(dataset, "lognormal", n_boot = 200, rng = rng, initial = lognormal.params)

print("  + parameters:", lognormal.named_params())
print(bootstrap_quantiles(lognormal, boot))
print(asymptotic_quantiles(lognormal))

plt.fitted_density(lognormal, dataset, boot)\
    .l_title("Synthetic Incubation Period")\
    .axis_labels(x = "days since exposure", y = "density")\
    .size(11, 8)\
    .show()
