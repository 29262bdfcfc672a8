"""Habitat graph of capacity-bounded demes."""
from .graph import Edge, Habitat, Node, Song

__all__ = ["Edge", "Habitat", "Node", "Song"]
