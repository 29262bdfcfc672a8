"""Central RNG helpers using PCG64DXSM."""
from __future__ import annotations

from numpy.random import Generator, PCG64DXSM, SeedSequence


def make_rng(seed: int | None = None) -> Generator:
    """Return a generator; ``seed=None`` draws fresh OS entropy."""
    return Generator(PCG64DXSM(seed))


def generation_rng(seed: int | None, generation: int) -> Generator:
    """Independent stream per generation so seeded runs do not replay rolls."""
    if seed is None:
        return make_rng()
    return Generator(PCG64DXSM(SeedSequence([seed, generation])))
