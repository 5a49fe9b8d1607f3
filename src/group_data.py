from typing import Dict, Hashable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

from sampler_errors import SamplerConfigError


class GroupedObservations:
    def __init__(self, groups: Mapping[Hashable, Sequence[float]]):
        """
        Args:
            groups: group label → sequence of real-valued observations.
                Group order follows the mapping's iteration order.

        Per-group summaries (n_j, ybar_j, s2_j) are computed once here; the
        observations are copied and never change afterwards.
        """
        if not groups:
            raise SamplerConfigError("At least one group of observations is required.")

        self.labels: List[Hashable] = list(groups)
        self.values: Dict[Hashable, np.ndarray] = {}

        for label in self.labels:
            y = np.array(groups[label], dtype=float).reshape(-1)
            if y.size == 0:
                raise SamplerConfigError(f"Group {label!r} has no observations.")
            if not np.all(np.isfinite(y)):
                raise SamplerConfigError(f"Group {label!r} contains non-finite observations.")
            y.setflags(write=False)
            self.values[label] = y

        self.n = np.array([self.values[g].size for g in self.labels], dtype=float)
        self.ybar = np.array([self.values[g].mean() for g in self.labels])
        self.s2 = np.array(
            [self.values[g].var(ddof=1) if self.values[g].size > 1 else np.nan for g in self.labels]
        )
        self.m = len(self.labels)
        self.N = int(self.n.sum())

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        group_col: str,
        value_col: str,
        groups: Optional[List[Hashable]] = None,
    ) -> "GroupedObservations":
        """
        Build the observation set from a long-format table, one row per observation.

        Args:
            df: table holding at least ``group_col`` and ``value_col``
            group_col: column with the group label of each row
            value_col: column with the measurement
            groups: optional subset of group labels to keep (or None = keep all)
        """
        for col in (group_col, value_col):
            if col not in df.columns:
                raise SamplerConfigError(f"Missing '{col}' column in observation table")

        data = df[[group_col, value_col]]
        if groups is not None:
            data = data[data[group_col].isin(groups)]

        grouped = {
            label: frame[value_col].to_numpy(dtype=float)
            for label, frame in data.groupby(group_col, sort=True)
        }
        return cls(grouped)

    def residual_sum_of_squares(self, theta: np.ndarray) -> np.ndarray:
        """Per-group sum_i (y_ij - theta_j)^2 for the given group means."""
        return np.array([
            np.sum((self.values[g] - theta[j]) ** 2)
            for j, g in enumerate(self.labels)
        ])

    def pooled_variance(self) -> float:
        """Unbiased variance of all observations around their own group means (NaN if undefined)."""
        dof = self.N - self.m
        if dof <= 0:
            return np.nan
        return float(self.residual_sum_of_squares(self.ybar).sum() / dof)

    def summary(self) -> pd.DataFrame:
        """Returns n, mean and sample variance per group."""
        return pd.DataFrame(
            {"n": self.n.astype(int), "mean": self.ybar, "var": self.s2},
            index=pd.Index(self.labels, name="group"),
        )

    def __len__(self) -> int:
        return self.m

    def __getitem__(self, label: Hashable) -> np.ndarray:
        return self.values[label]
