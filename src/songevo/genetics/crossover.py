"""Diploid recombination and mutation."""
from __future__ import annotations

import numpy as np

from .decoder import bits_to_mutation_rate
from .genome import Bits, Chromosome, Genome

MAX_CROSSOVER_POINTS = 4
SUBSTITUTION_SHARE = 0.8
INSERTION_SHARE = 0.1
DELETION_SHARE = 0.1


def apply_mutation(
    bits: Bits,
    rate: float,
    rng: np.random.Generator,
    *,
    max_length: int | None = None,
) -> Bits:
    """Per-bit substitution plus at most one insertion and one deletion.

    Substitution flips each bit with probability ``0.8 * rate``. Insertion and
    deletion are chromosome-level events with probability ``0.1 * rate`` each.
    Deleting from an empty sequence is a no-op, and an insertion that would
    grow the sequence past ``max_length`` is dropped.
    """
    flips = rng.random(len(bits)) < rate * SUBSTITUTION_SHARE
    mutated = [bit ^ 1 if flip else bit for bit, flip in zip(bits, flips)]
    if rng.random() < rate * INSERTION_SHARE and (max_length is None or len(mutated) < max_length):
        pos = int(rng.integers(0, len(mutated), endpoint=True))
        mutated.insert(pos, int(rng.integers(0, 2)))
    if rng.random() < rate * DELETION_SHARE and mutated:
        del mutated[int(rng.integers(0, len(mutated)))]
    return tuple(mutated)


def _scaled(fraction: float, length: int) -> int:
    return int(np.floor(fraction * length + 0.5))


def cross_single(first: Bits, second: Bits, mutation_rate: float, rng: np.random.Generator) -> Bits:
    """Multi-point crossover of two alleles, followed by mutation.

    Crossover points are drawn as fractions and scaled to each allele's own
    length, so alleles that drifted apart through insertions and deletions
    still recombine.
    """
    alleles = (first, second)
    count = int(rng.integers(1, MAX_CROSSOVER_POINTS, endpoint=True))
    fractions = np.sort(rng.random(count))
    active = 0 if rng.random() < 0.5 else 1
    positions = [0, 0]
    child: list[int] = []
    for fraction in fractions:
        cuts = [_scaled(float(fraction), len(a)) for a in alleles]
        child.extend(alleles[active][positions[active] : cuts[active]])
        active = 1 - active
        positions = cuts
    child.extend(alleles[active][positions[active] :])
    return apply_mutation(tuple(child), mutation_rate, rng, max_length=len(first) + len(second))


def cross_chromosome(chrom: Chromosome, mutation_rate: float, rng: np.random.Generator) -> Bits:
    return cross_single(chrom.left, chrom.right, mutation_rate, rng)


def crossover(father: Genome, mother: Genome, rng: np.random.Generator) -> Genome:
    """Produce one child genome from two parents.

    Each parent recombines its own two alleles per slot using its own decoded
    mutation rate; a fair coin decides which parent's product becomes the
    child's left allele.
    """
    father_rate = bits_to_mutation_rate(father.mutation_rate.left)
    mother_rate = bits_to_mutation_rate(mother.mutation_rate.left)
    chromosomes = []
    for name, paternal in father.slots():
        maternal = getattr(mother, name)
        from_father = cross_chromosome(paternal, father_rate, rng)
        from_mother = cross_chromosome(maternal, mother_rate, rng)
        if rng.random() < 0.5:
            chromosomes.append(Chromosome(left=from_father, right=from_mother))
        else:
            chromosomes.append(Chromosome(left=from_mother, right=from_father))
    return Genome.from_slots(chromosomes)
