import math

import numpy as np
import pytest

from domain.evaluation import bootstrap_ci


@pytest.mark.parametrize("samples", [[], [1.0], [1, 1, 1, 1], [True, True, True]])
def test_degenerate_samples_have_no_interval(samples) -> None:
    low, high = bootstrap_ci(np.array(samples, dtype=float))

    assert math.isnan(low) and math.isnan(high)


def test_interval_brackets_the_mean() -> None:
    x = np.random.default_rng(7).normal(loc=0.3, scale=1.0, size=60)

    low, high = bootstrap_ci(x, n_resamples=500)

    assert low < x.mean() < high


def test_same_seed_same_interval() -> None:
    x = np.random.default_rng(1).integers(0, 2, size=50).astype(float)

    first = bootstrap_ci(x, n_resamples=300, seed=5)
    second = bootstrap_ci(x, n_resamples=300, seed=5)

    assert first == second


def test_nan_observations_are_ignored() -> None:
    x = np.random.default_rng(3).integers(0, 2, size=40).astype(float)
    with_nan = np.concatenate([x, [np.nan, np.nan]])

    assert bootstrap_ci(x, n_resamples=200, seed=0) == bootstrap_ci(with_nan, n_resamples=200, seed=0)


def test_percentile_interval_stays_in_unit_range_for_flags() -> None:
    x = np.array([1, 0, 0, 1, 0, 0, 0, 1, 0, 0] * 3, dtype=float)

    low, high = bootstrap_ci(x, method="percentile", n_resamples=400)

    assert 0.0 <= low <= x.mean() <= high <= 1.0
