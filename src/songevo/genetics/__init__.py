"""Genome model, binary codec, phenotype decoder and reproduction operators."""
from .genome import BITS_PER_PARAMETER, SLOT_NAMES, Chromosome, Genome, bits_to_value, value_to_bits
from .codec import decode_genome, encode_genome
from .decoder import (
    DecodedGenome,
    Echo,
    HighPass,
    LowPass,
    NoteParams,
    Reverb,
    WaveFunction,
    bits_to_mutation_rate,
    decode,
    decode_with_config,
    phenotype_summary,
)
from .crossover import apply_mutation, cross_single, crossover

__all__ = [
    "BITS_PER_PARAMETER",
    "SLOT_NAMES",
    "Chromosome",
    "Genome",
    "bits_to_value",
    "value_to_bits",
    "decode_genome",
    "encode_genome",
    "DecodedGenome",
    "Echo",
    "HighPass",
    "LowPass",
    "NoteParams",
    "Reverb",
    "WaveFunction",
    "bits_to_mutation_rate",
    "decode",
    "decode_with_config",
    "phenotype_summary",
    "apply_mutation",
    "cross_single",
    "crossover",
]
