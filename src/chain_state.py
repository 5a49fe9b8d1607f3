from dataclasses import dataclass
from typing import Dict, Optional, Union

import numpy as np

from group_data import GroupedObservations
from priors import HierarchicalPriors, TwoGroupPriors
from sampler_errors import SamplerConfigError


@dataclass
class HierarchicalState:
    """
    Current values of the hierarchical model's unknowns.

    ``sigma2`` is a float for the shared-variance model and an array of
    length m for the group-variance model. ``nu0`` and ``sigma0_sq`` only
    change when they are sampled (random-nu0 extension); otherwise they
    hold the prior values.
    """

    theta: np.ndarray
    sigma2: Union[float, np.ndarray]
    mu: float
    tau2: float
    nu0: Optional[float] = None
    sigma0_sq: Optional[float] = None

    def snapshot(self) -> Dict[str, Union[float, np.ndarray]]:
        """Copy of the state, detached from later in-place updates."""
        snap = {
            "theta": np.array(self.theta, dtype=float),
            "sigma2": np.array(self.sigma2, dtype=float) if np.ndim(self.sigma2) else float(self.sigma2),
            "mu": float(self.mu),
            "tau2": float(self.tau2),
        }
        if self.nu0 is not None:
            snap["nu0"] = float(self.nu0)
        if self.sigma0_sq is not None:
            snap["sigma0_sq"] = float(self.sigma0_sq)
        return snap


@dataclass
class TwoGroupState:
    """Common mean ``mu``, half-difference ``delta`` and shared variance ``sigma2``."""

    mu: float
    delta: float
    sigma2: float

    def snapshot(self) -> Dict[str, float]:
        return {"mu": float(self.mu), "delta": float(self.delta), "sigma2": float(self.sigma2)}


def _first_usable(*candidates: float) -> float:
    for value in candidates:
        if np.isfinite(value) and value > 0:
            return float(value)
    raise SamplerConfigError("No usable starting value for a variance parameter.")


def default_hierarchical_state(
    observations: GroupedObservations,
    priors: HierarchicalPriors,
    variance: str = "shared",
) -> HierarchicalState:
    """
    Starting values:
        theta_j = ybar_j
        sigma2  = mean of the group sample variances (group model: s2_j each)
        mu      = mean of theta
        tau2    = variance of theta

    Groups with a single observation have no sample variance; those fall
    back to the pooled within-group variance, then to ``sigma0_sq``. A tau2
    that is undefined (m = 1) or zero (identical means) falls back to ``tau0_sq``.
    """
    theta = observations.ybar.copy()
    fallback_sigma2 = _first_usable(observations.pooled_variance(), priors.sigma0_sq)

    s2 = np.where(np.isfinite(observations.s2) & (observations.s2 > 0), observations.s2, fallback_sigma2)
    if variance == "shared":
        sigma2 = float(np.mean(s2))
    elif variance == "group":
        sigma2 = s2
    else:
        raise SamplerConfigError(f"Unknown variance model: {variance!r}")

    tau2 = _first_usable(np.var(theta, ddof=1) if theta.size > 1 else np.nan, priors.tau0_sq)

    return HierarchicalState(
        theta=theta,
        sigma2=sigma2,
        mu=float(np.mean(theta)),
        tau2=tau2,
        nu0=float(priors.nu0),
        sigma0_sq=float(priors.sigma0_sq),
    )


def default_two_group_state(y1: np.ndarray, y2: np.ndarray, priors: TwoGroupPriors) -> TwoGroupState:
    """mu and delta from the two sample means; sigma2 from the pooled sample variance."""
    ybar1, ybar2 = float(np.mean(y1)), float(np.mean(y2))
    dof = y1.size + y2.size - 2
    rss = np.sum((y1 - ybar1) ** 2) + np.sum((y2 - ybar2) ** 2)
    pooled = rss / dof if dof > 0 else np.nan
    return TwoGroupState(
        mu=(ybar1 + ybar2) / 2,
        delta=(ybar1 - ybar2) / 2,
        sigma2=_first_usable(pooled, priors.sigma0_sq),
    )


def validate_hierarchical_state(state: HierarchicalState, m: int, variance: str) -> None:
    theta = np.asarray(state.theta, dtype=float)
    if theta.shape != (m,):
        raise SamplerConfigError(f"theta must have one entry per group ({m}), got shape {theta.shape}")
    if not np.all(np.isfinite(theta)) or not np.isfinite(state.mu):
        raise SamplerConfigError("Initial group means and mu must be finite.")

    sigma2 = np.asarray(state.sigma2, dtype=float)
    expected = () if variance == "shared" else (m,)
    if sigma2.shape != expected:
        raise SamplerConfigError(
            f"sigma2 must have shape {expected} for the '{variance}' variance model, got {sigma2.shape}"
        )
    positives = (("sigma2", sigma2), ("tau2", state.tau2), ("nu0", state.nu0), ("sigma0_sq", state.sigma0_sq))
    for name, value in positives:
        # nu0 and sigma0_sq may be left unset; the sampler then takes them from the priors
        if value is None:
            continue
        if not np.all(np.isfinite(value)) or np.any(np.asarray(value) <= 0):
            raise SamplerConfigError(f"Initial {name} must be finite and strictly positive.")


def validate_two_group_state(state: TwoGroupState) -> None:
    if not (np.isfinite(state.mu) and np.isfinite(state.delta)):
        raise SamplerConfigError("Initial mu and delta must be finite.")
    if not (np.isfinite(state.sigma2) and state.sigma2 > 0):
        raise SamplerConfigError("Initial sigma2 must be finite and strictly positive.")
