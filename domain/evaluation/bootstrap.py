"""Bootstrap confidence interval computation."""

import warnings
from collections.abc import Callable

import numpy as np
from scipy import stats


def bootstrap_ci(
    samples: np.ndarray,
    statistic: Callable[..., float] = np.mean,
    n_resamples: int = 1000,
    confidence_level: float = 0.95,
    method: str = "BCa",
    seed: int | None = 0,
) -> tuple[float, float]:
    """
    Non-parametric bootstrap CI for a scalar statistic of one sample.

    Args:
        samples: 1-D array of observations (booleans are treated as 0/1)
        statistic: Vectorised statistic taking (sample, axis=...) (e.g. np.mean)
        n_resamples: Number of bootstrap resamples
        confidence_level: e.g. 0.95 for a 95% CI
        method: "BCa", "percentile" or "basic"
        seed: Seed for a per-call generator; results are reproducible per call site

    Returns:
        Tuple of (lower, upper) bounds; (nan, nan) when the sample is degenerate
        (empty, a single observation, or constant)
    """
    x = np.asarray(samples, dtype=float)
    x = x[~np.isnan(x)]
    if x.size < 2 or np.all(x == x[0]):
        return float("nan"), float("nan")

    with warnings.catch_warnings():
        # BCa emits DegenerateDataWarning / RuntimeWarning on near-constant resamples
        warnings.simplefilter("ignore", category=RuntimeWarning)
        warnings.simplefilter("ignore", category=stats.DegenerateDataWarning)
        res = stats.bootstrap(
            (x,),
            statistic,
            n_resamples=n_resamples,
            confidence_level=confidence_level,
            method=method,
            vectorized=True,
            rng=np.random.default_rng(seed),
        )

    low = float(res.confidence_interval.low)
    high = float(res.confidence_interval.high)
    if np.isnan(low) or np.isnan(high):
        return float("nan"), float("nan")
    return low, high
