"""Binary genome encoding used for persistence.

Layout: the ten chromosome pairs in slot order, each pair written as a 4-byte
big-endian unsigned bit count followed by one byte per bit (0 or 1), first for
the left allele and then for the right. There is no header, checksum or
version tag, and ``song_id`` is never part of the payload.
"""
from __future__ import annotations

import struct

from songevo.errors import GenomeFormatError
from .genome import Bits, Chromosome, Genome, SLOT_NAMES

_LENGTH = struct.Struct(">I")


def _write_allele(out: bytearray, bits: Bits) -> None:
    out += _LENGTH.pack(len(bits))
    out += bytes(bits)


def _read_allele(raw: bytes, offset: int, slot: str) -> tuple[Bits, int]:
    if offset + _LENGTH.size > len(raw):
        raise GenomeFormatError(f"truncated length header in slot {slot!r} at byte {offset}")
    (length,) = _LENGTH.unpack_from(raw, offset)
    offset += _LENGTH.size
    end = offset + length
    if end > len(raw):
        raise GenomeFormatError(f"slot {slot!r} declares {length} bits but only {len(raw) - offset} bytes remain")
    payload = raw[offset:end]
    if payload.translate(None, b"\x00\x01"):
        raise GenomeFormatError(f"slot {slot!r} contains bytes other than 0/1")
    return tuple(payload), end


def encode_genome(genome: Genome) -> bytes:
    out = bytearray()
    for _, chrom in genome.slots():
        _write_allele(out, chrom.left)
        _write_allele(out, chrom.right)
    return bytes(out)


def decode_genome(raw: bytes) -> Genome:
    raw = bytes(raw)
    offset = 0
    chromosomes = []
    for slot in SLOT_NAMES:
        left, offset = _read_allele(raw, offset, slot)
        right, offset = _read_allele(raw, offset, slot)
        chromosomes.append(Chromosome(left=left, right=right))
    if offset != len(raw):
        raise GenomeFormatError(f"{len(raw) - offset} trailing bytes after the last chromosome")
    return Genome.from_slots(chromosomes)
