from typing import Dict, Hashable, Iterator, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

Snapshot = Dict[str, Union[float, np.ndarray]]


class SampleTrace:
    def __init__(self, parameter_names: Sequence[str], group_labels: Optional[Sequence[Hashable]] = None):
        """
        Ordered snapshots of the chain state, one per iteration.

        Args:
            parameter_names: names every snapshot must carry
            group_labels: labels of per-group (vector) parameters, used for column names

        Snapshots are appended while sampling and the trace is frozen when the
        run ends; after that it is read-only.
        """
        self.parameter_names = tuple(parameter_names)
        self.group_labels = tuple(group_labels) if group_labels is not None else None
        self._snapshots: List[Snapshot] = []
        self._arrays: Dict[str, np.ndarray] = {}
        self._frozen = False

    def append(self, snapshot: Snapshot) -> None:
        if self._frozen:
            raise RuntimeError("Cannot append to a frozen trace.")
        missing = [name for name in self.parameter_names if name not in snapshot]
        if missing:
            raise KeyError(f"Snapshot is missing parameters: {missing}")
        self._snapshots.append(snapshot)

    def freeze(self) -> "SampleTrace":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __len__(self) -> int:
        return len(self._snapshots)

    def __iter__(self) -> Iterator[Snapshot]:
        for i in range(len(self._snapshots)):
            yield self.snapshot(i)

    def snapshot(self, i: int) -> Snapshot:
        """Copy of the i-th snapshot."""
        return {
            name: value.copy() if isinstance(value, np.ndarray) else value
            for name, value in self._snapshots[i].items()
        }

    def samples(self, name: str) -> np.ndarray:
        """
        Trace of one parameter: shape (S,) for scalars, (S, m) for per-group parameters.
        """
        if name not in self.parameter_names:
            raise KeyError(f"Unknown parameter '{name}'. Available: {list(self.parameter_names)}")
        if name in self._arrays:
            return self._arrays[name]
        if not self._snapshots:
            arr = np.empty((0,))
        else:
            arr = np.stack([np.asarray(s[name], dtype=float) for s in self._snapshots])
        arr.setflags(write=False)
        # only cache once nothing can be appended any more
        if self._frozen:
            self._arrays[name] = arr
        return arr

    def __getitem__(self, key: Union[int, str]):
        if isinstance(key, str):
            return self.samples(key)
        return self.snapshot(key)

    def to_frame(self) -> pd.DataFrame:
        """One column per scalar component, e.g. ``theta[school_1]``; one row per iteration."""
        columns: Dict[str, np.ndarray] = {}
        for name in self.parameter_names:
            arr = self.samples(name)
            if arr.ndim == 1:
                columns[name] = arr
                continue
            labels = self.group_labels or range(arr.shape[1])
            for j, label in enumerate(labels):
                columns[f"{name}[{label}]"] = arr[:, j]
        frame = pd.DataFrame(columns)
        frame.index.name = "iteration"
        return frame
