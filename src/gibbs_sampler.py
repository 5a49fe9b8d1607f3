from typing import Callable, Hashable, Mapping, Optional, Sequence, Union

import numpy as np
from scipy.special import gammaln
from tqdm import trange

from chain_state import (
    HierarchicalState,
    default_hierarchical_state,
    validate_hierarchical_state,
)
from conjugate_draws import (
    check_finite,
    check_positive,
    draw_gamma,
    draw_inverse_gamma,
    draw_normal,
    normal_full_conditional,
)
from group_data import GroupedObservations
from priors import HierarchicalPriors, Nu0Prior
from sample_trace import SampleTrace
from sampler_errors import NumericalSamplingError, SamplerConfigError
from sampler_logging import get_logger

logger = get_logger(__name__)

VARIANCE_MODELS = ("shared", "group")


def log_nu0_full_conditional(
    nu_grid: np.ndarray,
    precisions: np.ndarray,
    sigma0_sq: float,
    geometric_p: float,
) -> np.ndarray:
    """
    Unnormalised log full conditional of nu0 on ``nu_grid``.

    Each 1/sigma2_j ~ Gamma(nu0/2, rate=nu0*sigma0_sq/2) and nu0 ~ Geometric(p):

        m * (nu/2 * log(nu*sigma0_sq/2) - lgamma(nu/2))
        + (nu/2 - 1) * sum_j log(1/sigma2_j)
        - nu * sigma0_sq/2 * sum_j 1/sigma2_j
        + (nu - 1) * log(1 - p)
    """
    nu = np.asarray(nu_grid, dtype=float)
    m = precisions.size
    half = nu / 2
    return (
        m * (half * np.log(half * sigma0_sq) - gammaln(half))
        + (half - 1) * np.sum(np.log(precisions))
        - half * sigma0_sq * np.sum(precisions)
        + (nu - 1) * np.log1p(-geometric_p)
    )


class HierarchicalGibbsSampler:
    def __init__(
        self,
        observations: Union[GroupedObservations, Mapping[Hashable, Sequence[float]]],
        priors: HierarchicalPriors,
        n_iter: int,
        variance: str = "shared",
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        nu0_prior: Optional[Nu0Prior] = None,
        verbose: bool = False,
    ):
        """
        Args:
            observations: group label → observations, or a prepared GroupedObservations
            priors: hyper-parameters mu0, gamma0_sq, eta0, tau0_sq, nu0, sigma0_sq
            n_iter: number of iterations (chain length S)
            variance: "shared" for one sigma2, "group" for one sigma2_j per group
            rng: random source; every draw comes from it
            seed: used to build a Generator when ``rng`` is not given
            nu0_prior: hyper-priors making nu0 and sigma0_sq random ("group" only)
            verbose: show a progress bar

        All arguments are validated here, before any draw is made.
        """
        if not isinstance(observations, GroupedObservations):
            observations = GroupedObservations(observations)
        if variance not in VARIANCE_MODELS:
            raise SamplerConfigError(f"Unknown variance model: {variance!r}, expected one of {VARIANCE_MODELS}")
        if isinstance(n_iter, bool) or not isinstance(n_iter, (int, np.integer)) or n_iter <= 0:
            raise SamplerConfigError(f"n_iter must be a positive integer, got {n_iter!r}")
        priors.validate()
        if nu0_prior is not None:
            if variance != "group":
                raise SamplerConfigError("A random nu0 requires the 'group' variance model.")
            nu0_prior.validate()

        self.observations = observations
        self.priors = priors
        self.n_iter = int(n_iter)
        self.variance = variance
        self.nu0_prior = nu0_prior
        self.verbose = verbose
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.parameter_names = ("theta", "sigma2", "mu", "tau2")
        if nu0_prior is not None:
            self.parameter_names += ("nu0", "sigma0_sq")
            self._nu_grid = np.arange(1, int(nu0_prior.max_nu0) + 1)

        self.state: Optional[HierarchicalState] = None
        self.iteration = 0

    def _check(self, name: str, value):
        return check_finite(name, value, self.iteration + 1)

    def _check_variance(self, name: str, value):
        return check_positive(name, value, self.iteration + 1)

    def sample_group_means(self):
        """
        theta_j ~ N(v_j * (n_j*ybar_j/sigma2_j + mu/tau2), v_j),
        v_j = 1 / (n_j/sigma2_j + 1/tau2)
        """
        st = self.state
        obs = self.observations
        mean, var = normal_full_conditional(
            prior_mean=st.mu,
            prior_var=st.tau2,
            data_precision=obs.n / st.sigma2,
            data_weighted_sum=obs.n * obs.ybar / st.sigma2,
        )
        st.theta = np.asarray(self._check("theta", draw_normal(self.rng, mean, var)), dtype=float)

    def sample_variance(self):
        """
        Shared:  sigma2   ~ IG((nu0 + N)/2,   (nu0*sigma0_sq + sum_j sum_i (y_ij - theta_j)^2)/2)
        Group:   sigma2_j ~ IG((nu0 + n_j)/2, (nu0*sigma0_sq + sum_i (y_ij - theta_j)^2)/2)
        """
        st = self.state
        rss = self.observations.residual_sum_of_squares(st.theta)
        prior_ss = st.nu0 * st.sigma0_sq

        if self.variance == "shared":
            shape = (st.nu0 + self.observations.N) / 2
            scale = (prior_ss + rss.sum()) / 2
        else:
            shape = (st.nu0 + self.observations.n) / 2
            scale = (prior_ss + rss) / 2

        st.sigma2 = self._check_variance("sigma2", draw_inverse_gamma(self.rng, shape, scale))

    def sample_population_mean(self):
        """mu ~ N(g * (m*thetabar/tau2 + mu0/gamma0_sq), g), g = 1 / (m/tau2 + 1/gamma0_sq)"""
        st = self.state
        m = self.observations.m
        mean, var = normal_full_conditional(
            prior_mean=self.priors.mu0,
            prior_var=self.priors.gamma0_sq,
            data_precision=m / st.tau2,
            data_weighted_sum=np.sum(st.theta) / st.tau2,
        )
        st.mu = float(self._check("mu", draw_normal(self.rng, mean, var)))

    def sample_between_group_variance(self):
        """tau2 ~ IG((eta0 + m)/2, (eta0*tau0_sq + sum_j (theta_j - mu)^2)/2)"""
        st = self.state
        p = self.priors
        shape = (p.eta0 + self.observations.m) / 2
        scale = (p.eta0 * p.tau0_sq + np.sum((st.theta - st.mu) ** 2)) / 2
        st.tau2 = float(self._check_variance("tau2", draw_inverse_gamma(self.rng, shape, scale)))

    def sample_sigma0_sq(self):
        """sigma0_sq ~ Gamma(a + m*nu0/2, rate = b + nu0/2 * sum_j 1/sigma2_j)"""
        st = self.state
        hp = self.nu0_prior
        shape = hp.sigma0_sq_shape + self.observations.m * st.nu0 / 2
        rate = hp.sigma0_sq_rate + st.nu0 / 2 * np.sum(1.0 / st.sigma2)
        st.sigma0_sq = float(self._check_variance("sigma0_sq", draw_gamma(self.rng, shape, rate)))

    def sample_nu0(self):
        """Exact draw of nu0 from its discrete full conditional on {1, ..., max_nu0}."""
        st = self.state
        log_p = log_nu0_full_conditional(
            self._nu_grid, 1.0 / np.asarray(st.sigma2), st.sigma0_sq, self.nu0_prior.geometric_p
        )
        self._check("nu0", np.max(log_p))
        probs = np.exp(log_p - np.max(log_p))
        probs /= probs.sum()
        st.nu0 = float(self.rng.choice(self._nu_grid, p=probs))

    def step(self) -> HierarchicalState:
        """
        One full sweep. The order is fixed and every draw reads the latest values:
            theta   <- sigma2, mu, tau2 (previous iteration)
            sigma2  <- theta (this iteration), nu0, sigma0_sq (previous iteration)
            mu      <- theta (this iteration), tau2 (previous iteration)
            tau2    <- theta, mu (this iteration)
            sigma0_sq <- sigma2 (this iteration), nu0 (previous iteration)   random-nu0 only
            nu0     <- sigma2, sigma0_sq (this iteration)     random-nu0 only
        """
        if self.state is None:
            raise RuntimeError("No chain state; call reset() or run() first.")
        self.sample_group_means()
        self.sample_variance()
        self.sample_population_mean()
        self.sample_between_group_variance()
        if self.nu0_prior is not None:
            self.sample_sigma0_sq()
            self.sample_nu0()
        self.iteration += 1
        return self.state

    def reset(self, initial_state: Optional[HierarchicalState] = None) -> HierarchicalState:
        """Install a fresh (validated, copied) starting state and rewind the iteration counter."""
        if initial_state is None:
            state = default_hierarchical_state(self.observations, self.priors, self.variance)
        else:
            validate_hierarchical_state(initial_state, self.observations.m, self.variance)
            state = HierarchicalState(
                theta=np.array(initial_state.theta, dtype=float),
                sigma2=(
                    np.array(initial_state.sigma2, dtype=float)
                    if self.variance == "group"
                    else float(initial_state.sigma2)
                ),
                mu=float(initial_state.mu),
                tau2=float(initial_state.tau2),
                nu0=float(initial_state.nu0 if initial_state.nu0 is not None else self.priors.nu0),
                sigma0_sq=float(
                    initial_state.sigma0_sq if initial_state.sigma0_sq is not None else self.priors.sigma0_sq
                ),
            )
        if self.nu0_prior is not None and (state.nu0 < 1 or int(state.nu0) != state.nu0):
            raise SamplerConfigError("With a random nu0 the initial nu0 must be a positive integer.")
        self.state = state
        self.iteration = 0
        return state

    def run(
        self,
        initial_state: Optional[HierarchicalState] = None,
        should_stop: Optional[Callable[[int, HierarchicalState], bool]] = None,
    ) -> SampleTrace:
        """
        Runs the Gibbs sampler for ``n_iter`` iterations and returns the frozen trace.

        Args:
            initial_state: starting values (default: see ``default_hierarchical_state``)
            should_stop: optional hook called after each iteration with
                (iteration, state); returning True ends the run early

        Raises:
            SamplerConfigError: invalid starting values, before any draw
            NumericalSamplingError: a draw was not finite; carries the partial trace
        """
        self.reset(initial_state)
        trace = SampleTrace(self.parameter_names, group_labels=self.observations.labels)

        logger.info(
            "Sampling %d iterations: %d groups, %d observations, %s variance",
            self.n_iter, self.observations.m, self.observations.N, self.variance,
        )
        iterator = trange(self.n_iter) if self.verbose else range(self.n_iter)
        for _ in iterator:
            try:
                self.step()
            except NumericalSamplingError as err:
                logger.error("Stopped at iteration %d: %s", err.iteration, err)
                raise err.with_trace(trace.freeze()) from None
            trace.append(self.state.snapshot())

            if should_stop is not None and should_stop(self.iteration, self.state):
                logger.warning("Early stop requested after %d of %d iterations", self.iteration, self.n_iter)
                break

        logger.info("Finished %d iterations", len(trace))
        return trace.freeze()


def run_hierarchical_gibbs(
    observations: Union[GroupedObservations, Mapping[Hashable, Sequence[float]]],
    priors: HierarchicalPriors,
    initial_state: Optional[HierarchicalState],
    chain_length: int,
    rng: Optional[np.random.Generator] = None,
    variance: str = "shared",
) -> SampleTrace:
    """Functional form: build a sampler and run it once."""
    sampler = HierarchicalGibbsSampler(
        observations, priors, n_iter=chain_length, variance=variance, rng=rng
    )
    return sampler.run(initial_state)
