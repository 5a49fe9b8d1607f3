"""
Random draws used by the Gibbs samplers.

Every function takes an explicit ``numpy.random.Generator``; nothing here
touches the global NumPy random state. Parameters may be scalars or arrays,
in which case one independent draw is made per element.

Parameterisations:
    Normal(mean, variance)
    Gamma(shape, rate)            mean = shape / rate
    InverseGamma(shape, scale)    1 / Gamma(shape, rate=scale)
    Geometric(p)                  support {1, 2, ...}
"""

from typing import Tuple, Union

import numpy as np

from sampler_errors import NumericalSamplingError, SamplerConfigError

ArrayLike = Union[float, np.ndarray]


def _require_positive(name: str, value: ArrayLike) -> None:
    # NaN passes here; check_finite reports it after the draw.
    if np.any(np.asarray(value) <= 0):
        raise SamplerConfigError(f"{name} must be strictly positive, got {value!r}")


def draw_normal(rng: np.random.Generator, mean: ArrayLike, variance: ArrayLike) -> ArrayLike:
    """Draw from Normal(mean, variance). Note: variance, not standard deviation."""
    _require_positive("variance", variance)
    return rng.normal(loc=mean, scale=np.sqrt(variance))


def draw_gamma(rng: np.random.Generator, shape: ArrayLike, rate: ArrayLike) -> ArrayLike:
    """Draw from Gamma(shape, rate)."""
    _require_positive("shape", shape)
    _require_positive("rate", rate)
    with np.errstate(divide="ignore"):
        scale = 1.0 / np.asarray(rate, dtype=float)
    return rng.gamma(shape=shape, scale=scale)


def draw_inverse_gamma(rng: np.random.Generator, shape: ArrayLike, scale: ArrayLike) -> ArrayLike:
    """
    Draw from InverseGamma(shape, scale) by inverting a Gamma(shape, rate=scale) draw.

    A gamma draw that underflows to zero yields ``inf``; it is returned as is
    and left to ``check_finite``.
    """
    g = draw_gamma(rng, shape, scale)
    with np.errstate(divide="ignore"):
        return 1.0 / g if np.ndim(g) else float(1.0 / np.float64(g))


def draw_geometric(rng: np.random.Generator, p: float) -> int:
    """Draw from Geometric(p), the number of trials up to and including the first success."""
    if not 0 < p <= 1:
        raise SamplerConfigError(f"p must lie in (0, 1], got {p!r}")
    return int(rng.geometric(p))


def normal_full_conditional(
    prior_mean: ArrayLike,
    prior_var: ArrayLike,
    data_precision: ArrayLike,
    data_weighted_sum: ArrayLike,
) -> Tuple[ArrayLike, ArrayLike]:
    """
    Mean and variance of a normal full conditional under a normal prior.

    With prior N(prior_mean, prior_var) and a likelihood contributing
    precision ``data_precision`` and precision-weighted sum
    ``data_weighted_sum`` (e.g. n * ybar / sigma2), the full conditional is
    N(var * (prior_mean / prior_var + data_weighted_sum), var) where
    var = 1 / (1 / prior_var + data_precision).
    """
    prior_precision = 1.0 / np.asarray(prior_var, dtype=float)
    var = 1.0 / (prior_precision + data_precision)
    mean = var * (prior_mean * prior_precision + data_weighted_sum)
    if np.ndim(var) == 0:
        return float(mean), float(var)
    return mean, var


def check_finite(name: str, value: ArrayLike, iteration: int = 0) -> ArrayLike:
    """Return ``value`` unchanged, or raise NumericalSamplingError if any element is NaN/inf."""
    if not np.all(np.isfinite(value)):
        raise NumericalSamplingError(name, iteration, value)
    return value


def check_positive(name: str, value: ArrayLike, iteration: int = 0) -> ArrayLike:
    """Like ``check_finite``, but variances must also be strictly positive."""
    check_finite(name, value, iteration)
    if np.any(np.asarray(value) <= 0):
        raise NumericalSamplingError(name, iteration, value, reason="non-positive")
    return value
