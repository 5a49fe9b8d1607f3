"""Prior hyper-parameters for the normal models."""

import math
from dataclasses import dataclass

from sampler_errors import SamplerConfigError


def _check_finite(**values: float) -> None:
    for name, value in values.items():
        if not math.isfinite(value):
            raise SamplerConfigError(f"{name} must be finite, got {value!r}")


def _check_positive(**values: float) -> None:
    _check_finite(**values)
    for name, value in values.items():
        if value <= 0:
            raise SamplerConfigError(f"{name} must be strictly positive, got {value!r}")


@dataclass(frozen=True)
class HierarchicalPriors:
    """
    Priors of the m-group hierarchical normal model.

        theta_j ~ N(mu, tau2)
        mu      ~ N(mu0, gamma0_sq)
        tau2    ~ IG(eta0 / 2, eta0 * tau0_sq / 2)
        sigma2  ~ IG(nu0 / 2, nu0 * sigma0_sq / 2)   (shared or per group)
    """

    mu0: float = 0.0
    gamma0_sq: float = 100.0
    eta0: float = 1.0
    tau0_sq: float = 1.0
    nu0: float = 1.0
    sigma0_sq: float = 1.0

    def validate(self) -> None:
        _check_finite(mu0=self.mu0)
        _check_positive(
            gamma0_sq=self.gamma0_sq,
            eta0=self.eta0,
            tau0_sq=self.tau0_sq,
            nu0=self.nu0,
            sigma0_sq=self.sigma0_sq,
        )


@dataclass(frozen=True)
class TwoGroupPriors:
    """
    Priors of the two-group model with group means mu + delta and mu - delta.

        mu     ~ N(mu0, gamma0_sq)
        delta  ~ N(delta0, tau0_sq)
        sigma2 ~ IG(nu0 / 2, nu0 * sigma0_sq / 2)
    """

    mu0: float = 0.0
    gamma0_sq: float = 100.0
    delta0: float = 0.0
    tau0_sq: float = 100.0
    nu0: float = 1.0
    sigma0_sq: float = 1.0

    def validate(self) -> None:
        _check_finite(mu0=self.mu0, delta0=self.delta0)
        _check_positive(
            gamma0_sq=self.gamma0_sq,
            tau0_sq=self.tau0_sq,
            nu0=self.nu0,
            sigma0_sq=self.sigma0_sq,
        )


@dataclass(frozen=True)
class Nu0Prior:
    """
    Hyper-priors that make nu0 and sigma0_sq random in the group-variance model.

        nu0       ~ Geometric(geometric_p), truncated to {1, ..., max_nu0}
        sigma0_sq ~ Gamma(sigma0_sq_shape, rate=sigma0_sq_rate)
    """

    geometric_p: float = 0.1
    max_nu0: int = 100
    sigma0_sq_shape: float = 1.0
    sigma0_sq_rate: float = 1.0

    def validate(self) -> None:
        if not 0 < self.geometric_p < 1:
            raise SamplerConfigError(f"geometric_p must lie in (0, 1), got {self.geometric_p!r}")
        if int(self.max_nu0) != self.max_nu0 or self.max_nu0 < 1:
            raise SamplerConfigError(f"max_nu0 must be a positive integer, got {self.max_nu0!r}")
        _check_positive(sigma0_sq_shape=self.sigma0_sq_shape, sigma0_sq_rate=self.sigma0_sq_rate)
