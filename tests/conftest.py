"""Shared fixtures for the sampler tests."""

import numpy as np
import pytest

from priors import HierarchicalPriors, TwoGroupPriors


def _exact_group(rng: np.random.Generator, mean: float, var: float, n: int) -> np.ndarray:
    """n values whose sample mean and (ddof=1) variance are exactly ``mean`` and ``var``."""
    z = rng.standard_normal(n)
    z = (z - z.mean()) / z.std(ddof=1)
    return mean + np.sqrt(var) * z


@pytest.fixture
def make_group():
    """Factory for groups with a prescribed sample mean and variance."""
    rng = np.random.default_rng(20240101)

    def _make(mean: float, var: float, n: int) -> np.ndarray:
        return _exact_group(rng, mean, var, n)

    return _make


@pytest.fixture
def three_groups(make_group) -> dict:
    return {
        "school_a": make_group(48.0, 80.0, 12),
        "school_b": make_group(52.0, 100.0, 20),
        "school_c": make_group(45.0, 90.0, 8),
    }


@pytest.fixture
def hierarchical_priors() -> HierarchicalPriors:
    return HierarchicalPriors(mu0=50.0, gamma0_sq=25.0, eta0=1.0, tau0_sq=100.0, nu0=1.0, sigma0_sq=100.0)


@pytest.fixture
def school_priors() -> TwoGroupPriors:
    """Two-school comparison priors."""
    return TwoGroupPriors(mu0=50.0, gamma0_sq=625.0, delta0=0.0, tau0_sq=625.0, nu0=1.0, sigma0_sq=100.0)
