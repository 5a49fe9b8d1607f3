from typing import Callable, Optional, Sequence

import numpy as np
from tqdm import trange

from chain_state import TwoGroupState, default_two_group_state, validate_two_group_state
from conjugate_draws import (
    check_finite,
    check_positive,
    draw_inverse_gamma,
    draw_normal,
    normal_full_conditional,
)
from group_data import GroupedObservations
from priors import TwoGroupPriors
from sample_trace import SampleTrace
from sampler_errors import NumericalSamplingError, SamplerConfigError
from sampler_logging import get_logger

logger = get_logger(__name__)


class TwoGroupGibbsSampler:
    def __init__(
        self,
        y1: Sequence[float],
        y2: Sequence[float],
        priors: TwoGroupPriors,
        n_iter: int,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
        verbose: bool = False,
    ):
        """
        Gibbs sampler for two groups with means mu + delta and mu - delta.

        Args:
            y1, y2: observations of group 1 and group 2
            priors: mu0, gamma0_sq (prior of mu), delta0, tau0_sq (prior of delta), nu0, sigma0_sq
            n_iter: number of iterations
            rng: random source; every draw comes from it
            seed: used to build a Generator when ``rng`` is not given
            verbose: show a progress bar
        """
        obs = GroupedObservations({1: y1, 2: y2})
        if isinstance(n_iter, bool) or not isinstance(n_iter, (int, np.integer)) or n_iter <= 0:
            raise SamplerConfigError(f"n_iter must be a positive integer, got {n_iter!r}")
        priors.validate()

        self.y1 = obs[1]
        self.y2 = obs[2]
        self.n = self.y1.size + self.y2.size
        self.sum_y1 = float(self.y1.sum())
        self.sum_y2 = float(self.y2.sum())
        self.priors = priors
        self.n_iter = int(n_iter)
        self.verbose = verbose
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        self.parameter_names = ("mu", "delta", "sigma2")
        self.state: Optional[TwoGroupState] = None
        self.iteration = 0

    def sample_variance(self):
        """sigma2 ~ IG((nu0 + n1 + n2)/2, (nu0*sigma0_sq + sum (y1 - mu - delta)^2 + sum (y2 - mu + delta)^2)/2)"""
        st = self.state
        p = self.priors
        rss = (
            np.sum((self.y1 - (st.mu + st.delta)) ** 2)
            + np.sum((self.y2 - (st.mu - st.delta)) ** 2)
        )
        shape = (p.nu0 + self.n) / 2
        scale = (p.nu0 * p.sigma0_sq + rss) / 2
        st.sigma2 = float(check_positive("sigma2", draw_inverse_gamma(self.rng, shape, scale), self.iteration + 1))

    def sample_mu(self):
        """mu ~ N(g * (mu0/gamma0_sq + (sum(y1 - delta) + sum(y2 + delta))/sigma2), g), g = 1/(1/gamma0_sq + n/sigma2)"""
        st = self.state
        mean, var = normal_full_conditional(
            prior_mean=self.priors.mu0,
            prior_var=self.priors.gamma0_sq,
            data_precision=self.n / st.sigma2,
            data_weighted_sum=(
                (self.sum_y1 - self.y1.size * st.delta) + (self.sum_y2 + self.y2.size * st.delta)
            ) / st.sigma2,
        )
        st.mu = float(check_finite("mu", draw_normal(self.rng, mean, var), self.iteration + 1))

    def sample_delta(self):
        """delta ~ N(v * (delta0/tau0_sq + (sum(y1 - mu) - sum(y2 - mu))/sigma2), v), v = 1/(1/tau0_sq + n/sigma2)"""
        st = self.state
        mean, var = normal_full_conditional(
            prior_mean=self.priors.delta0,
            prior_var=self.priors.tau0_sq,
            data_precision=self.n / st.sigma2,
            data_weighted_sum=(
                (self.sum_y1 - self.y1.size * st.mu) - (self.sum_y2 - self.y2.size * st.mu)
            ) / st.sigma2,
        )
        st.delta = float(check_finite("delta", draw_normal(self.rng, mean, var), self.iteration + 1))

    def step(self) -> TwoGroupState:
        """
        One sweep: sigma2 given (mu, delta), then mu given (sigma2, delta),
        then delta given (sigma2, mu), each reading the values just drawn.
        """
        if self.state is None:
            raise RuntimeError("No chain state; call reset() or run() first.")
        self.sample_variance()
        self.sample_mu()
        self.sample_delta()
        self.iteration += 1
        return self.state

    def reset(self, initial_state: Optional[TwoGroupState] = None) -> TwoGroupState:
        if initial_state is None:
            state = default_two_group_state(self.y1, self.y2, self.priors)
        else:
            validate_two_group_state(initial_state)
            state = TwoGroupState(
                mu=float(initial_state.mu),
                delta=float(initial_state.delta),
                sigma2=float(initial_state.sigma2),
            )
        self.state = state
        self.iteration = 0
        return state

    def run(
        self,
        initial_state: Optional[TwoGroupState] = None,
        should_stop: Optional[Callable[[int, TwoGroupState], bool]] = None,
    ) -> SampleTrace:
        """
        Runs the sampler for ``n_iter`` iterations and returns the frozen trace
        of (mu, delta, sigma2). Group means are mu + delta and mu - delta.
        """
        self.reset(initial_state)
        trace = SampleTrace(self.parameter_names)

        logger.info("Sampling %d iterations: two groups, n1=%d, n2=%d", self.n_iter, self.y1.size, self.y2.size)
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
