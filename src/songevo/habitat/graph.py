"""Habitat nodes, migration edges and resident songs."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Optional
import numpy as np

from songevo.errors import HabitatError
from songevo.genetics.genome import Genome

logger = logging.getLogger(__name__)


@dataclass
class Song:
    song_id: int
    node_id: int
    fitness: float = 0.0
    genome: Optional[Genome] = None


@dataclass
class Node:
    id: int
    capacity: int
    songs: List[Song] = field(default_factory=list)

    @property
    def is_full(self) -> bool:
        return len(self.songs) >= self.capacity


@dataclass(frozen=True)
class Edge:
    from_node: int
    to_node: int
    probability: float


class Habitat:
    """Directed graph of demes with migration probabilities on the edges."""

    def __init__(self):
        self.nodes: Dict[int, Node] = {}
        self.edges: List[Edge] = []

    @classmethod
    def from_config(cls, habitat_cfg) -> "Habitat":
        return cls.from_topology(
            ((n.id, n.capacity) for n in habitat_cfg.nodes),
            ((e.from_node, e.to_node, e.probability) for e in habitat_cfg.edges),
        )

    @classmethod
    def from_topology(cls, nodes: Iterable[tuple[int, int]], edges: Iterable[tuple[int, int, float]]) -> "Habitat":
        habitat = cls()
        for node_id, capacity in nodes:
            habitat.add_node(node_id, capacity)
        for from_node, to_node, probability in edges:
            habitat.add_edge(from_node, to_node, probability)
        return habitat

    def add_node(self, node_id: int, capacity: int) -> Node:
        if capacity < 0:
            raise HabitatError(f"node {node_id} has negative capacity {capacity}")
        node = Node(id=node_id, capacity=capacity)
        self.nodes[node_id] = node
        return node

    def add_edge(self, from_node: int, to_node: int, probability: float) -> Edge:
        for node_id in (from_node, to_node):
            if node_id not in self.nodes:
                raise HabitatError(f"edge references unknown node {node_id}")
        if not 0.0 <= probability <= 1.0:
            raise HabitatError(f"edge {from_node}->{to_node} probability {probability} outside [0, 1]")
        edge = Edge(from_node, to_node, float(probability))
        self.edges.append(edge)
        return edge

    def node(self, node_id: int) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise HabitatError(f"unknown node {node_id}") from None

    def capacity(self, node_id: int) -> int:
        return self.node(node_id).capacity

    def total_capacity(self) -> int:
        return sum(n.capacity for n in self.nodes.values())

    def incoming(self, node_id: int) -> List[Edge]:
        return [e for e in self.edges if e.to_node == node_id]

    def add_song_to_node(self, node_id: int, song: Song) -> bool:
        """Insert ``song`` unless the node is full; returns whether it was added."""
        node = self.node(node_id)
        if node.is_full:
            logger.debug("node %s at capacity %s, song %s not added", node_id, node.capacity, song.song_id)
            return False
        song.node_id = node_id
        node.songs.append(song)
        return True

    def get_random_song(self, node_id: int, rng: np.random.Generator) -> Optional[Song]:
        """Remove and return a random resident, or ``None`` if the node is empty."""
        node = self.nodes.get(node_id)
        if node is None or not node.songs:
            return None
        return node.songs.pop(int(rng.integers(len(node.songs))))

    def populate(self, songs: Iterable[Song]) -> int:
        added = 0
        for song in songs:
            if self.add_song_to_node(song.node_id, song):
                added += 1
        return added
