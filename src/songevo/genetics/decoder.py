"""Phenotype decoding: genome bits to note and effect parameters.

Codons are not constants. Each genome carries its own marker patterns in the
left allele of its codon chromosomes, so the scan always takes the codon table
as an argument built from the genome being decoded.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from enum import Enum
from functools import partial
import math
from typing import Callable, Sequence, Union

from .genome import BITS_PER_PARAMETER, MUTATION_RATE_SCALE, NOTE_PARAMETERS, Bits, Genome, bits_to_value

DEFAULT_DURATION_UNIT_MS = 20
NOTE_BLOCK_BITS = NOTE_PARAMETERS * BITS_PER_PARAMETER


class WaveFunction(str, Enum):
    SINE = "sine"
    SQUARE = "square"
    CUSTOM = "custom"


@dataclass(frozen=True)
class NoteParams:
    start_time_ms: int
    frequency: float
    amplitude: float
    duration_ms: int
    phase: float
    wave_function: WaveFunction


@dataclass(frozen=True)
class LowPass:
    cutoff: float


@dataclass(frozen=True)
class HighPass:
    cutoff: float


@dataclass(frozen=True)
class Reverb:
    delay_ms: int
    feedback: float


@dataclass(frozen=True)
class Echo:
    delay_ms: int
    feedback: float


Effect = Union[LowPass, HighPass, Reverb, Echo]
Codon = tuple[Bits, Callable[[Bits], object], int]


@dataclass(frozen=True)
class DecodedGenome:
    notes: tuple[NoteParams, ...]
    effects: tuple[Effect, ...]

    @property
    def length_ms(self) -> int:
        return max((n.start_time_ms + n.duration_ms for n in self.notes), default=0)

    def as_dict(self) -> dict:
        return {
            "notes": [{**asdict(n), "wave_function": n.wave_function.value} for n in self.notes],
            "effects": [{"type": type(e).__name__, **asdict(e)} for e in self.effects],
        }


# --- numeric field decoders ---------------------------------------------------


def bits_to_frequency(bits: Sequence[int]) -> float:
    return bits_to_value(bits) * 5.0


def bits_to_amplitude(bits: Sequence[int]) -> float:
    return bits_to_value(bits) / 128.0


def bits_to_duration_ms(bits: Sequence[int], unit_ms: int = DEFAULT_DURATION_UNIT_MS) -> int:
    return bits_to_value(bits) * unit_ms


def bits_to_phase(bits: Sequence[int]) -> float:
    return bits_to_value(bits) * 2.0 * math.pi / 255.0


def bits_to_mutation_rate(bits: Sequence[int]) -> float:
    """Decode an 8-bit field into a rate between 0 and 0.2."""
    return bits_to_value(bits) / MUTATION_RATE_SCALE


# --- block builders -----------------------------------------------------------


def _fields(bits: Bits, count: int) -> list[Bits]:
    return [bits[k * BITS_PER_PARAMETER : (k + 1) * BITS_PER_PARAMETER] for k in range(count)]


def _note(wave: WaveFunction, unit_ms: int, bits: Bits) -> NoteParams:
    start, freq, amp, dur, phase = _fields(bits, NOTE_PARAMETERS)
    return NoteParams(
        start_time_ms=bits_to_duration_ms(start, unit_ms),
        frequency=bits_to_frequency(freq),
        amplitude=bits_to_amplitude(amp),
        duration_ms=bits_to_duration_ms(dur, unit_ms),
        phase=bits_to_phase(phase),
        wave_function=wave,
    )


def _filter(kind: type, bits: Bits) -> Effect:
    return kind(bits_to_amplitude(bits))


def _delay(kind: type, unit_ms: int, bits: Bits) -> Effect:
    delay, feedback = _fields(bits, 2)
    return kind(bits_to_duration_ms(delay, unit_ms), bits_to_amplitude(feedback))


def note_codons(genome: Genome, unit_ms: int = DEFAULT_DURATION_UNIT_MS) -> list[Codon]:
    return [
        (genome.sine_codon.left, partial(_note, WaveFunction.SINE, unit_ms), NOTE_BLOCK_BITS),
        (genome.square_codon.left, partial(_note, WaveFunction.SQUARE, unit_ms), NOTE_BLOCK_BITS),
        (genome.custom_codon.left, partial(_note, WaveFunction.CUSTOM, unit_ms), NOTE_BLOCK_BITS),
    ]


def effect_codons(genome: Genome, unit_ms: int = DEFAULT_DURATION_UNIT_MS) -> list[Codon]:
    return [
        (genome.low_pass_codon.left, partial(_filter, LowPass), BITS_PER_PARAMETER),
        (genome.high_pass_codon.left, partial(_filter, HighPass), BITS_PER_PARAMETER),
        (genome.reverb_codon.left, partial(_delay, Reverb, unit_ms), 2 * BITS_PER_PARAMETER),
        (genome.echo_codon.left, partial(_delay, Echo, unit_ms), 2 * BITS_PER_PARAMETER),
    ]


def scan(bits: Bits, codons: Sequence[Codon], *, min_codon_length: int = 1) -> list:
    """Scan ``bits`` left to right, emitting one record per codon hit.

    Codons are tried in order at each position; the first one that matches
    exactly and still has room for its parameter block wins and the cursor
    jumps past the block. Otherwise the cursor advances by one bit, so codons
    may overlap or sit inside earlier parameter-free regions. Truncated
    trailing blocks are skipped.
    """
    records = []
    n = len(bits)
    i = 0
    while i < n:
        for pattern, build, width in codons:
            size = len(pattern)
            if size < min_codon_length:
                continue
            end = i + size
            if end + width > n or bits[i:end] != pattern:
                continue
            records.append(build(bits[end : end + width]))
            i = end + width
            break
        else:
            i += 1
    return records


def decode(
    genome: Genome,
    *,
    duration_unit_ms: int = DEFAULT_DURATION_UNIT_MS,
    min_codon_length: int = 1,
) -> DecodedGenome:
    notes = scan(genome.notes.left, note_codons(genome, duration_unit_ms), min_codon_length=min_codon_length)
    effects = scan(genome.effects.left, effect_codons(genome, duration_unit_ms), min_codon_length=min_codon_length)
    return DecodedGenome(notes=tuple(notes), effects=tuple(effects))


def decode_with_config(genome: Genome, decoder_cfg) -> DecodedGenome:
    return decode(
        genome,
        duration_unit_ms=decoder_cfg.duration_unit_ms,
        min_codon_length=decoder_cfg.min_codon_length,
    )


def phenotype_summary(decoded: DecodedGenome) -> dict:
    waves = Counter(n.wave_function.value for n in decoded.notes)
    return {
        "note_count": len(decoded.notes),
        "waveforms": {w.value: waves.get(w.value, 0) for w in WaveFunction},
        "length_ms": decoded.length_ms,
        "effects": [type(e).__name__ for e in decoded.effects],
    }
