from __future__ import annotations

import numpy as np
import pytest

from factorops import Discrete, Gaussian, GaussianArray, settings


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def random_discrete(rng):
    """Factory for strictly positive Discrete messages."""
    def _make(dimension: int = 4) -> Discrete:
        return Discrete(rng.dirichlet(np.ones(dimension)) + 1e-3)
    return _make


@pytest.fixture
def random_gaussian(rng):
    """Factory for proper scalar Gaussian messages."""
    def _make() -> Gaussian:
        return Gaussian.from_mean_and_variance(rng.normal(), rng.uniform(0.5, 2.0))
    return _make


@pytest.fixture
def random_gaussian_array(rng):
    """Factory for proper GaussianArray messages."""
    def _make(shape) -> GaussianArray:
        return GaussianArray.from_means_and_variances(rng.normal(size=shape),
                                                      rng.uniform(0.5, 2.0, size=shape))
    return _make


@pytest.fixture(autouse=True)
def default_settings():
    saved = (settings.force_proper, settings.ratio_fallback)
    yield
    settings.force_proper, settings.ratio_fallback = saved
