"""songevo: interactive evolution of codon-encoded songs."""
from __future__ import annotations

__version__ = "0.1.0"


def get_version() -> str:
    return __version__
