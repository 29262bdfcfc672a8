import math

import numpy as np
import pytest

from songevo.genetics.decoder import (
    Echo,
    HighPass,
    LowPass,
    Reverb,
    WaveFunction,
    bits_to_amplitude,
    bits_to_duration_ms,
    bits_to_frequency,
    bits_to_mutation_rate,
    bits_to_phase,
    decode,
    phenotype_summary,
)
from songevo.genetics.genome import Chromosome, Genome

from helpers import ECHO, HIGH_PASS, LOW_PASS, REVERB, SINE, SQUARE, byte, make_genome


def test_sine_codon_followed_by_zeros_gives_one_silent_note():
    decoded = decode(make_genome(notes=SINE + (0,) * 40))
    assert len(decoded.notes) == 1
    note = decoded.notes[0]
    assert note.wave_function is WaveFunction.SINE
    assert (note.start_time_ms, note.frequency, note.amplitude, note.duration_ms, note.phase) == (0, 0.0, 0.0, 0, 0.0)


def test_note_fields_are_decoded_in_order():
    bits = SQUARE + byte(1) + byte(2) + byte(3) + byte(4) + byte(5)
    (note,) = decode(make_genome(notes=bits)).notes
    assert note.wave_function is WaveFunction.SQUARE
    assert note.start_time_ms == 20
    assert note.frequency == 10.0
    assert note.amplitude == pytest.approx(3 / 128)
    assert note.duration_ms == 80
    assert note.phase == pytest.approx(5 * 2 * math.pi / 255)


def test_truncated_block_is_skipped():
    assert decode(make_genome(notes=SINE + (0,) * 39)).notes == ()


def test_codons_are_read_from_the_genome_itself():
    notes = SINE + (0,) * 40
    assert len(decode(make_genome(notes=notes)).notes) == 1
    assert decode(make_genome(notes=notes, sine=(1, 1, 0, 1))).notes == ()


def test_empty_codon_never_matches():
    decoded = decode(make_genome(notes=(0,) * 60, sine=()))
    assert decoded.notes == ()


def test_consecutive_notes_and_skipped_prefix():
    block = (0,) * 40
    notes = (0, 0) + SINE + block + SINE + block
    decoded = decode(make_genome(notes=notes))
    assert len(decoded.notes) == 2


def test_effects_decode_with_their_parameter_counts():
    effects = LOW_PASS + byte(128) + REVERB + byte(10) + byte(64) + HIGH_PASS + byte(32) + ECHO + byte(1) + byte(255)
    decoded = decode(make_genome(effects=effects))
    assert decoded.effects == (
        LowPass(1.0),
        Reverb(200, 0.5),
        HighPass(0.25),
        Echo(20, 255 / 128),
    )


def test_effect_without_room_is_skipped():
    decoded = decode(make_genome(effects=REVERB + byte(10)))
    assert decoded.effects == ()


def test_decode_is_deterministic():
    genome = Genome.random(128, 256, 3, 5, np.random.default_rng(21))
    assert decode(genome) == decode(genome)


def test_duration_unit_is_configurable():
    bits = SINE + byte(1) + byte(0) + byte(0) + byte(2) + byte(0)
    (note,) = decode(make_genome(notes=bits), duration_unit_ms=30).notes
    assert (note.start_time_ms, note.duration_ms) == (30, 60)


def test_numeric_field_ranges():
    ones = (1,) * 8
    assert bits_to_frequency(ones) == 1275.0
    assert bits_to_amplitude(ones) == pytest.approx(255 / 128)
    assert bits_to_duration_ms(ones) == 5100
    assert bits_to_phase(ones) == pytest.approx(2 * math.pi)
    assert bits_to_mutation_rate((0,) * 8) == 0.0
    assert bits_to_mutation_rate(ones) == pytest.approx(0.2)


def test_phenotype_summary_counts_waveforms():
    block = (0,) * 40
    decoded = decode(make_genome(notes=SINE + block + SQUARE + byte(0) + byte(0) + byte(0) + byte(5) + byte(0)))
    summary = phenotype_summary(decoded)
    assert summary["note_count"] == 2
    assert summary["waveforms"] == {"sine": 1, "square": 1, "custom": 0}
    assert summary["length_ms"] == 100
    assert decoded.as_dict()["notes"][0]["wave_function"] == "sine"


def test_list_built_codons_still_match():
    genome = make_genome(notes=SINE + (0,) * 40)
    genome.sine_codon = Chromosome(left=list(SINE), right=list(SINE))
    genome.notes = Chromosome(left=list(SINE) + [0] * 40, right=[])
    assert len(decode(genome).notes) == 1
