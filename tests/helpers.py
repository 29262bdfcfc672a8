"""Shared genome builders for tests."""
from __future__ import annotations

from songevo.genetics.genome import Chromosome, Genome, SLOT_NAMES

SINE = (1, 0, 1, 1)
SQUARE = (0, 1, 1, 0)
CUSTOM = (1, 1, 1, 1, 0)
LOW_PASS = (1, 0, 0, 1)
HIGH_PASS = (0, 1, 0, 0, 1)
REVERB = (1, 1, 0, 0)
ECHO = (0, 0, 1, 1)
ZERO_RATE = (0,) * 8


def homozygous(bits) -> Chromosome:
    bits = tuple(bits)
    return Chromosome(left=bits, right=bits)


def make_genome(notes=(), effects=(), rate=ZERO_RATE, **codons) -> Genome:
    slots = {
        "notes": homozygous(notes),
        "effects": homozygous(effects),
        "sine_codon": homozygous(codons.get("sine", SINE)),
        "square_codon": homozygous(codons.get("square", SQUARE)),
        "custom_codon": homozygous(codons.get("custom", CUSTOM)),
        "low_pass_codon": homozygous(codons.get("low_pass", LOW_PASS)),
        "high_pass_codon": homozygous(codons.get("high_pass", HIGH_PASS)),
        "reverb_codon": homozygous(codons.get("reverb", REVERB)),
        "echo_codon": homozygous(codons.get("echo", ECHO)),
        "mutation_rate": homozygous(rate),
    }
    assert set(slots) == set(SLOT_NAMES)
    return Genome(**slots)


def byte(value: int) -> tuple[int, ...]:
    return tuple((value >> s) & 1 for s in range(7, -1, -1))
