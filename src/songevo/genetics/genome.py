"""Diploid bit-string genome model.

A genome is ten named chromosome pairs. Every chromosome carries a ``left`` and
a ``right`` allele, each an independently lengthed tuple of 0/1 ints. Random
chromosomes start homozygous (``right`` is a copy of ``left``); alleles only
diverge through mutation during crossover.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Iterable, Iterator, Optional
import numpy as np

logger = logging.getLogger(__name__)

Bits = tuple[int, ...]

BITS_PER_PARAMETER = 8
NOTE_PARAMETERS = 5  # start_time, frequency, amplitude, duration, phase
MUTATION_RATE_SCALE = 255.0 * 5.0

SLOT_NAMES: tuple[str, ...] = (
    "notes",
    "effects",
    "sine_codon",
    "square_codon",
    "custom_codon",
    "low_pass_codon",
    "high_pass_codon",
    "reverb_codon",
    "echo_codon",
    "mutation_rate",
)
CODON_SLOTS: tuple[str, ...] = SLOT_NAMES[2:9]


def as_bits(values: Iterable[int]) -> Bits:
    bits = tuple(int(v) for v in values)
    if any(b not in (0, 1) for b in bits):
        raise ValueError("bit sequences may only contain 0 and 1")
    return bits


def bits_to_value(bits: Iterable[int]) -> int:
    """Accumulate bits MSB-first into an unsigned integer."""
    value = 0
    for bit in bits:
        value = (value << 1) | (bit & 1)
    return value


def value_to_bits(value: int, width: int) -> Bits:
    if value < 0 or value >= 1 << width:
        raise ValueError(f"{value} does not fit in {width} bits")
    return tuple((value >> shift) & 1 for shift in range(width - 1, -1, -1))


def random_bits(length: int, rng: np.random.Generator) -> Bits:
    return tuple(int(b) for b in rng.integers(0, 2, size=length))


@dataclass(frozen=True)
class Chromosome:
    """Pair of alleles for one genetic trait."""

    left: Bits = ()
    right: Bits = ()

    def __post_init__(self):
        object.__setattr__(self, "left", as_bits(self.left))
        object.__setattr__(self, "right", as_bits(self.right))

    @classmethod
    def from_bits(cls, left: Iterable[int], right: Iterable[int]) -> "Chromosome":
        return cls(left=left, right=right)

    @classmethod
    def random(cls, min_len: int, max_len: int, rng: np.random.Generator) -> "Chromosome":
        length = int(rng.integers(min_len, max_len, endpoint=True))
        left = random_bits(length, rng)
        return cls(left=left, right=left)

    @property
    def is_homozygous(self) -> bool:
        return self.left == self.right

    def to_dict(self) -> dict:
        return {
            "left": "".join(str(b) for b in self.left),
            "right": "".join(str(b) for b in self.right),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Chromosome":
        return cls.from_bits((int(c) for c in data.get("left", "")), (int(c) for c in data.get("right", "")))


def _empty() -> Chromosome:
    return Chromosome()


@dataclass
class Genome:
    """Ten chromosome pairs plus an identity assigned after persistence."""

    notes: Chromosome = field(default_factory=_empty)
    effects: Chromosome = field(default_factory=_empty)
    sine_codon: Chromosome = field(default_factory=_empty)
    square_codon: Chromosome = field(default_factory=_empty)
    custom_codon: Chromosome = field(default_factory=_empty)
    low_pass_codon: Chromosome = field(default_factory=_empty)
    high_pass_codon: Chromosome = field(default_factory=_empty)
    reverb_codon: Chromosome = field(default_factory=_empty)
    echo_codon: Chromosome = field(default_factory=_empty)
    mutation_rate: Chromosome = field(default_factory=_empty)
    song_id: Optional[int] = field(default=None, compare=False)

    @classmethod
    def random(
        cls,
        large_min: int,
        large_max: int,
        small_min: int,
        small_max: int,
        rng: np.random.Generator,
        *,
        mutation_rate_bits: int = BITS_PER_PARAMETER,
    ) -> "Genome":
        slots = {
            "notes": Chromosome.random(large_min, large_max, rng),
            "effects": Chromosome.random(large_min, large_max, rng),
        }
        for name in CODON_SLOTS:
            slots[name] = Chromosome.random(small_min, small_max, rng)
        slots["mutation_rate"] = Chromosome.random(mutation_rate_bits, mutation_rate_bits, rng)
        return cls(**slots)

    @classmethod
    def from_config(cls, genome_cfg, rng: np.random.Generator) -> "Genome":
        return cls.random(
            genome_cfg.large_min,
            genome_cfg.large_max,
            genome_cfg.small_min,
            genome_cfg.small_max,
            rng,
            mutation_rate_bits=genome_cfg.mutation_rate_bits,
        )

    @classmethod
    def from_slots(cls, chromosomes: Iterable[Chromosome], song_id: Optional[int] = None) -> "Genome":
        chromosomes = list(chromosomes)
        if len(chromosomes) != len(SLOT_NAMES):
            raise ValueError(f"expected {len(SLOT_NAMES)} chromosomes, got {len(chromosomes)}")
        return cls(**dict(zip(SLOT_NAMES, chromosomes)), song_id=song_id)

    def slots(self) -> Iterator[tuple[str, Chromosome]]:
        for name in SLOT_NAMES:
            yield name, getattr(self, name)

    def clone(self, *, keep_song_id: bool = False) -> "Genome":
        # Chromosomes hold immutable tuples, so sharing them is a deep copy.
        return Genome.from_slots(
            (chrom for _, chrom in self.slots()),
            song_id=self.song_id if keep_song_id else None,
        )

    def assign_song_id(self, song_id: int) -> None:
        if self.song_id is not None and self.song_id != song_id:
            logger.warning("overwriting song_id %s with %s", self.song_id, song_id)
        self.song_id = song_id

    def assign_mutation_rate(self, rate: float, *, width: int = BITS_PER_PARAMETER) -> None:
        """Encode ``rate`` into both alleles of the mutation-rate chromosome."""
        max_value = (1 << width) - 1
        value = int(min(max(round(rate * MUTATION_RATE_SCALE), 0), max_value))
        bits = value_to_bits(value, width)
        self.mutation_rate = Chromosome(left=bits, right=bits)

    def to_dict(self) -> dict:
        return {"song_id": self.song_id, **{name: chrom.to_dict() for name, chrom in self.slots()}}

    @classmethod
    def from_dict(cls, data: dict) -> "Genome":
        return cls.from_slots(
            (Chromosome.from_dict(data.get(name, {})) for name in SLOT_NAMES),
            song_id=data.get("song_id"),
        )
