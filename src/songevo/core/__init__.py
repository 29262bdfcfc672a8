"""Core helpers."""
from .rng import generation_rng, make_rng
from .profiling import timer

__all__ = ["generation_rng", "make_rng", "timer"]
