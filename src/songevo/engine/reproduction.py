"""Differential reproduction across the habitat graph.

One cycle moves through ``RatingsCollected -> FitnessComputed ->
MigrationPlanned -> ChildrenProduced -> Committed``. Every external read
happens in the collection stage and every write in the commit stage, so the
stages in between are pure functions of in-memory data and an injected RNG.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence
import numpy as np

from songevo.errors import SongEvoError
from songevo.genetics.codec import encode_genome
from songevo.genetics.crossover import crossover
from songevo.genetics.genome import Genome
from songevo.habitat.graph import Habitat

logger = logging.getLogger(__name__)

Weights = List[tuple[int, float]]


@dataclass(frozen=True)
class RatingRecord:
    song_id: int
    node_id: int
    total_rating: int


@dataclass(frozen=True)
class ChildRecord:
    generation: int
    node_id: int
    genome: Genome = field(compare=False)
    parent1_id: int
    parent2_id: int

    @property
    def genome_bytes(self) -> bytes:
        return encode_genome(self.genome)


class CycleStage(str, Enum):
    PENDING = "pending"
    RATINGS_COLLECTED = "ratings_collected"
    FITNESS_COMPUTED = "fitness_computed"
    MIGRATION_PLANNED = "migration_planned"
    CHILDREN_PRODUCED = "children_produced"
    COMMITTED = "committed"


class PopulationStore(Protocol):
    def latest_generation(self) -> Optional[int]: ...

    def fetch_ratings(self, generation: int) -> List[RatingRecord]: ...

    def fetch_habitat(self) -> Habitat: ...

    def get_genomes(self, song_ids: Iterable[int]) -> Dict[int, Genome]: ...

    def commit_generation(self, children: Sequence[ChildRecord], fitness: Dict[int, int]) -> List[int]: ...


# --- pure stages --------------------------------------------------------------


def smoothed_totals(ratings: Iterable[RatingRecord], smoothing: int = 1) -> Dict[int, int]:
    return {r.song_id: r.total_rating + smoothing for r in ratings}


def relative_fitness(ratings: Iterable[RatingRecord], smoothing: int = 1) -> Dict[int, Weights]:
    """Per-node fitness distribution, uniform when a node's total is zero."""
    by_node: Dict[int, List[tuple[int, int]]] = defaultdict(list)
    for record in ratings:
        if record.total_rating < 0:
            raise ValueError(f"song {record.song_id} has negative rating total {record.total_rating}")
        by_node[record.node_id].append((record.song_id, record.total_rating + smoothing))
    fitness: Dict[int, Weights] = {}
    for node_id, songs in by_node.items():
        total = sum(r for _, r in songs)
        if total == 0:
            fitness[node_id] = [(song_id, 1.0 / len(songs)) for song_id, _ in songs]
        else:
            fitness[node_id] = [(song_id, rating / total) for song_id, rating in songs]
    return fitness


def plan_migrations(habitat: Habitat, rng: np.random.Generator) -> List[tuple[int, int]]:
    """Roll every incoming edge once, yielding ``(source_node, dest_node)`` pairs.

    A successful roll sources the slot from the edge's origin; a failed roll
    keeps it local. Nodes without incoming edges get a single local slot.
    """
    plan: List[tuple[int, int]] = []
    for node_id in habitat.nodes:
        incoming = habitat.incoming(node_id)
        if not incoming:
            plan.append((node_id, node_id))
            continue
        for edge in incoming:
            roll = rng.random()
            plan.append((edge.from_node, node_id) if roll <= edge.probability else (node_id, node_id))
    return plan


def slot_counts(plan: Sequence[tuple[int, int]], habitat: Habitat, mode: str = "source") -> List[tuple[int, int, int]]:
    """Attach a child count to each planned pair.

    ``source`` fills the source node's capacity for every pair, which can
    overproduce relative to the destination. ``destination`` splits the
    destination's capacity across the pairs that target it.
    """
    if mode == "source":
        counts = [(src, dest, habitat.capacity(src)) for src, dest in plan]
        produced: Dict[int, int] = defaultdict(int)
        for _, dest, n in counts:
            produced[dest] += n
        for dest, n in produced.items():
            if n > habitat.capacity(dest):
                logger.warning("node %s receives %s children for capacity %s", dest, n, habitat.capacity(dest))
        return counts
    if mode != "destination":
        raise ValueError(f"unknown slot accounting mode {mode!r}")
    per_dest: Dict[int, int] = defaultdict(int)
    for _, dest in plan:
        per_dest[dest] += 1
    seen: Dict[int, int] = defaultdict(int)
    counts = []
    for src, dest in plan:
        share, extra = divmod(habitat.capacity(dest), per_dest[dest])
        counts.append((src, dest, share + (1 if seen[dest] < extra else 0)))
        seen[dest] += 1
    return counts


def weighted_choice(candidates: Weights, rng: np.random.Generator) -> int:
    """Cumulative roulette over weights summing to ~1.

    Falls back to the last candidate when rounding leaves the roll uncovered.
    """
    if not candidates:
        raise ValueError("cannot choose from an empty candidate list")
    roll = rng.random()
    cumulative = 0.0
    for song_id, weight in candidates:
        cumulative += weight
        if roll <= cumulative:
            return song_id
    return candidates[-1][0]


def pick_parents(candidates: Weights, rng: np.random.Generator, *, allow_selfing: bool = True) -> Optional[tuple[int, int]]:
    """Draw two distinct parents by weighted sampling without replacement.

    With a single candidate the pair is ``(song, song)`` when selfing is
    allowed, otherwise ``None``.
    """
    first = weighted_choice(candidates, rng)
    rest = [(song_id, w) for song_id, w in candidates if song_id != first]
    if not rest:
        return (first, first) if allow_selfing else None
    total = sum(w for _, w in rest)
    if total > 0:
        rest = [(song_id, w / total) for song_id, w in rest]
    else:
        rest = [(song_id, 1.0 / len(rest)) for song_id, _ in rest]
    return first, weighted_choice(rest, rng)


def produce_children(
    slots: Sequence[tuple[int, int, int]],
    fitness: Dict[int, Weights],
    genomes: Dict[int, Genome],
    next_generation: int,
    rng: np.random.Generator,
    *,
    allow_selfing: bool = True,
) -> List[ChildRecord]:
    children: List[ChildRecord] = []
    for source, dest, count in slots:
        candidates = fitness.get(source)
        if not candidates:
            logger.warning("node %s has no rated songs; skipping %s slots for node %s", source, count, dest)
            continue
        for _ in range(count):
            parents = pick_parents(candidates, rng, allow_selfing=allow_selfing)
            if parents is None:
                logger.warning("node %s has a single song and selfing is disabled; slot skipped", source)
                continue
            father_id, mother_id = parents
            child = crossover(genomes[father_id], genomes[mother_id], rng)
            children.append(ChildRecord(next_generation, dest, child, father_id, mother_id))
    return children


# --- cycle driver -------------------------------------------------------------


@dataclass
class CycleResult:
    current_generation: int
    next_generation: int
    fitness: Dict[int, int]
    plan: List[tuple[int, int]]
    children: List[ChildRecord]
    song_ids: List[int] = field(default_factory=list)

    def records(self) -> list[dict]:
        return [
            {
                "generation": child.generation,
                "song_id": song_id,
                "node": child.node_id,
                "parent1_id": child.parent1_id,
                "parent2_id": child.parent2_id,
                "parent1_fitness": self.fitness.get(child.parent1_id),
                "parent2_fitness": self.fitness.get(child.parent2_id),
            }
            for song_id, child in zip(self.song_ids or [None] * len(self.children), self.children)
        ]


class ReproductionCycle:
    """Single reproduction cycle bound to a store and a generator."""

    def __init__(self, store: PopulationStore, rng: np.random.Generator, reproduction_cfg, *, generation: Optional[int] = None):
        self.store = store
        self.rng = rng
        self.cfg = reproduction_cfg
        self.generation = generation
        self.stage = CycleStage.PENDING
        self.ratings: List[RatingRecord] = []
        self.habitat: Optional[Habitat] = None
        self.genomes: Dict[int, Genome] = {}
        self.totals: Dict[int, int] = {}
        self.fitness: Dict[int, Weights] = {}
        self.plan: List[tuple[int, int]] = []
        self.children: List[ChildRecord] = []

    def _require(self, expected: CycleStage):
        if self.stage is not expected:
            raise SongEvoError(f"cycle is {self.stage.value}, expected {expected.value}")

    def _enter(self, stage: CycleStage):
        self.stage = stage
        logger.debug("cycle stage -> %s", stage.value)

    @property
    def next_generation(self) -> int:
        return self.generation + 1

    def collect(self):
        self._require(CycleStage.PENDING)
        if self.generation is None:
            self.generation = self.store.latest_generation()
            if self.generation is None:
                raise SongEvoError("no generation to reproduce from")
        self.ratings = self.store.fetch_ratings(self.generation)
        self.habitat = self.store.fetch_habitat()
        self.genomes = self.store.get_genomes(r.song_id for r in self.ratings)
        self._enter(CycleStage.RATINGS_COLLECTED)
        logger.info("generation %s: collected %s songs", self.generation, len(self.ratings))

    def compute_fitness(self):
        self._require(CycleStage.RATINGS_COLLECTED)
        smoothing = self.cfg.rating_smoothing
        self.totals = smoothed_totals(self.ratings, smoothing)
        self.fitness = relative_fitness(self.ratings, smoothing)
        self._enter(CycleStage.FITNESS_COMPUTED)

    def plan_migrations(self):
        self._require(CycleStage.FITNESS_COMPUTED)
        self.plan = plan_migrations(self.habitat, self.rng)
        self._enter(CycleStage.MIGRATION_PLANNED)
        migrants = sum(1 for src, dest in self.plan if src != dest)
        logger.info("planned %s slots, %s migrant", len(self.plan), migrants)

    def produce(self):
        self._require(CycleStage.MIGRATION_PLANNED)
        slots = slot_counts(self.plan, self.habitat, self.cfg.slot_capacity)
        self.children = produce_children(
            slots,
            self.fitness,
            self.genomes,
            self.next_generation,
            self.rng,
            allow_selfing=self.cfg.allow_selfing,
        )
        self._enter(CycleStage.CHILDREN_PRODUCED)

    def commit(self) -> List[int]:
        self._require(CycleStage.CHILDREN_PRODUCED)
        song_ids = self.store.commit_generation(self.children, self.totals)
        self._enter(CycleStage.COMMITTED)
        logger.info("generation %s committed with %s children", self.next_generation, len(song_ids))
        return song_ids

    def run(self) -> CycleResult:
        self.collect()
        self.compute_fitness()
        self.plan_migrations()
        self.produce()
        song_ids = self.commit()
        return CycleResult(
            current_generation=self.generation,
            next_generation=self.next_generation,
            fitness=self.totals,
            plan=self.plan,
            children=self.children,
            song_ids=song_ids,
        )
