from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional

import numpy as np
from tqdm import tqdm

from sample_trace import SampleTrace
from sampler_errors import SamplerConfigError
from sampler_logging import get_logger

logger = get_logger(__name__)


def spawn_generators(n_chains: int, seed: Optional[int] = None) -> List[np.random.Generator]:
    """Independent generators, one per chain, derived from a single seed."""
    if n_chains <= 0:
        raise SamplerConfigError(f"n_chains must be positive, got {n_chains}")
    children = np.random.SeedSequence(seed).spawn(n_chains)
    return [np.random.default_rng(child) for child in children]


def run_independent_chains(
    make_sampler: Callable[[np.random.Generator], object],
    n_chains: int = 4,
    seed: Optional[int] = None,
    max_workers: Optional[int] = None,
    verbose: bool = False,
) -> List[SampleTrace]:
    """
    Run several fully isolated chains, e.g. to compare their segments.

    Args:
        make_sampler: builds a fresh sampler around the given generator; called once per chain
        n_chains: number of chains
        seed: root seed; chain k always gets the same child stream for the same seed
        max_workers: thread pool size (None = executor default)
        verbose: show a progress bar over finished chains

    Returns:
        One trace per chain, in chain order.
    """
    samplers = [make_sampler(rng) for rng in spawn_generators(n_chains, seed)]
    if len({id(s) for s in samplers}) != n_chains:
        raise SamplerConfigError("make_sampler must return a new sampler for every chain.")

    logger.info("Running %d independent chains", n_chains)
    traces: List[Optional[SampleTrace]] = [None] * n_chains

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(sampler.run): k for k, sampler in enumerate(samplers)}
        done = as_completed(futures)
        if verbose:
            done = tqdm(done, total=n_chains, desc="Chains")
        for future in done:
            traces[futures[future]] = future.result()

    return traces
