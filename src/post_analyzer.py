from typing import Callable, Dict, Hashable, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from sample_trace import SampleTrace


class PosteriorAnalyzer:
    def __init__(self, trace: SampleTrace, burn_in: int = 0):
        """
        Posterior summaries computed purely from a sample trace.

        Args:
            trace: trace returned by one of the samplers
            burn_in: number of leading iterations to discard
        """
        if not 0 <= burn_in < len(trace):
            raise ValueError(f"burn_in must lie in [0, {len(trace)}), got {burn_in}")
        self.trace = trace
        self.burn_in = burn_in
        self.group_labels = trace.group_labels

    def get_samples(self, name: str) -> np.ndarray:
        return self.trace.samples(name)[self.burn_in:]

    def get_group_samples(self, name: str, group: Hashable) -> np.ndarray:
        """Samples of a per-group parameter (e.g. theta) for one group label."""
        if self.group_labels is None or group not in self.group_labels:
            raise KeyError(f"Unknown group {group!r}")
        return self.get_samples(name)[:, self.group_labels.index(group)]

    def mean(self, name: str) -> Union[float, np.ndarray]:
        return self._reduce(np.mean(self.get_samples(name), axis=0))

    def median(self, name: str) -> Union[float, np.ndarray]:
        return self._reduce(np.median(self.get_samples(name), axis=0))

    def quantiles(self, name: str, q: Union[float, Sequence[float]]) -> np.ndarray:
        """Posterior quantiles; shape (len(q),) or (len(q), m) for per-group parameters."""
        return np.quantile(self.get_samples(name), q=q, axis=0)

    def credible_interval(self, name: str, ci: float = 0.95) -> Tuple[np.ndarray, np.ndarray]:
        """
        Equal-tailed credible interval.

        Args:
            ci: credible interval width (e.g., 0.9 = 90%)
        """
        if not 0 < ci < 1:
            raise ValueError("ci must fall within (0, 1).")
        lower_q = (1 - ci) / 2
        lower, upper = self.quantiles(name, [lower_q, 1 - lower_q])
        return self._reduce(lower), self._reduce(upper)

    def derive(self, fn: Callable[[Dict[str, np.ndarray]], np.ndarray]) -> np.ndarray:
        """
        Evaluate a derived quantity on every retained sample.

        ``fn`` receives parameter name → samples (after burn-in), e.g.
        ``lambda s: s["mu"] + s["delta"]`` for the first group mean of the two-group model.
        """
        samples = {name: self.get_samples(name) for name in self.trace.parameter_names}
        return np.asarray(fn(samples))

    def probability(self, event: Callable[[Dict[str, np.ndarray]], np.ndarray]) -> float:
        """Posterior probability of an event, e.g. ``lambda s: s["delta"] > 0``."""
        return float(np.mean(self.derive(event)))

    def pairwise_probability(self, group_a: Hashable, group_b: Hashable, name: str = "theta") -> float:
        """P(theta_a < theta_b | data)."""
        a = self.get_group_samples(name, group_a)
        b = self.get_group_samples(name, group_b)
        return float(np.mean(a < b))

    def variance_ratio(self) -> np.ndarray:
        """
        R = tau2 / (tau2 + sigma2) per sample: the share of total variance lying
        between groups. Shape (S,) with a shared sigma2, (S, m) with sigma2_j.
        """
        return self.derive(
            lambda s: s["tau2"][:, None] / (s["tau2"][:, None] + s["sigma2"])
            if s["sigma2"].ndim == 2
            else s["tau2"] / (s["tau2"] + s["sigma2"])
        )

    def summary(self, ci: float = 0.95) -> pd.DataFrame:
        """Mean, sd, median and equal-tailed interval for every scalar component."""
        if not 0 < ci < 1:
            raise ValueError("ci must fall within (0, 1).")
        frame = self.trace.to_frame().iloc[self.burn_in:]
        lower_q = (1 - ci) / 2
        return pd.DataFrame({
            "mean": frame.mean(),
            "sd": frame.std(ddof=1),
            "median": frame.median(),
            "lower": frame.quantile(lower_q),
            "upper": frame.quantile(1 - lower_q),
        })

    @staticmethod
    def _reduce(value: np.ndarray) -> Union[float, np.ndarray]:
        return float(value) if np.ndim(value) == 0 else value
