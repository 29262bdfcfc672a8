"""Experiment lifecycle: seeding Adam and Eve, approval, and serialized cycles."""
from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional
import numpy as np

from songevo.config import ConfigSchema
from songevo.core.profiling import timer
from songevo.core.rng import generation_rng
from songevo.errors import CycleInProgressError, HabitatError, ProposalError
from songevo.genetics.crossover import crossover
from songevo.genetics.genome import Genome
from songevo.habitat.graph import Habitat
from .metrics import fitness_frame, save_metrics
from .reproduction import ChildRecord, CycleResult, PopulationStore, ReproductionCycle
from .storage import SQLiteStore

logger = logging.getLogger(__name__)

FOUNDER_GENERATION = 0


def create_adam(genome_cfg, rng: np.random.Generator, *, mutation_rate: Optional[float] = None) -> Genome:
    adam = Genome.from_config(genome_cfg, rng)
    rate = genome_cfg.adam_mutation_rate if mutation_rate is None else mutation_rate
    adam.assign_mutation_rate(rate, width=genome_cfg.mutation_rate_bits)
    return adam


def create_adam_and_eve(genome_cfg, rng: np.random.Generator) -> tuple[Genome, Genome]:
    adam = create_adam(genome_cfg, rng)
    return adam, adam.clone()


def create_generation_one(habitat: Habitat, adam: Genome, eve: Genome, rng: np.random.Generator) -> List[ChildRecord]:
    """Fill every node to capacity with children of Adam and Eve."""
    children = []
    for node in habitat.nodes.values():
        for _ in range(node.capacity):
            child = crossover(adam, eve, rng)
            children.append(ChildRecord(FOUNDER_GENERATION + 1, node.id, child, adam.song_id, eve.song_id))
    return children


@dataclass
class InitResult:
    adam_id: int
    eve_id: int
    song_ids: List[int] = field(default_factory=list)


def initialise_experiment(
    store: SQLiteStore,
    config: ConfigSchema,
    rng: np.random.Generator,
    *,
    adam: Optional[Genome] = None,
) -> InitResult:
    """Create the schema, load the habitat, store the founders and generation 1."""
    habitat = Habitat.from_config(config.habitat)
    if not habitat.nodes:
        raise HabitatError("habitat has no nodes")
    store.create_schema()
    store.populate_habitat(habitat)

    if adam is None:
        adam, eve = create_adam_and_eve(config.genome, rng)
    else:
        eve = adam.clone()
    home = next(iter(habitat.nodes))
    adam.assign_song_id(store.insert_song(FOUNDER_GENERATION, home, adam))
    eve.assign_song_id(store.insert_song(FOUNDER_GENERATION, home, eve))
    logger.info("founders stored as songs %s and %s", adam.song_id, eve.song_id)

    children = create_generation_one(habitat, adam, eve, rng)
    song_ids = store.commit_generation(children, {})
    logger.info("generation 1 created with %s songs", len(song_ids))
    return InitResult(adam_id=adam.song_id, eve_id=eve.song_id, song_ids=song_ids)


class AdamProposal:
    """Holds the proposed but unconfirmed founder for one approval session.

    One writer at a time; regenerating replaces whatever was proposed before.
    """

    def __init__(self, genome_cfg, mutation_range: tuple[float, float] = (0.00125, 0.07)):
        self.genome_cfg = genome_cfg
        self.mutation_range = mutation_range
        self._lock = threading.Lock()
        self._current: Optional[Genome] = None

    def propose(self, rng: np.random.Generator) -> Genome:
        rate = float(rng.uniform(*self.mutation_range))
        adam = create_adam(self.genome_cfg, rng, mutation_rate=rate)
        with self._lock:
            self._current = adam
        return adam.clone()

    def reject(self, rng: np.random.Generator) -> Genome:
        return self.propose(rng)

    def current(self) -> Optional[Genome]:
        with self._lock:
            return None if self._current is None else self._current.clone()

    def accept(self) -> Genome:
        with self._lock:
            if self._current is None:
                raise ProposalError("no proposed genome to accept")
            adam, self._current = self._current, None
        return adam


@dataclass(frozen=True)
class CycleCompleted:
    current_generation: int
    next_generation: int
    children: int
    elapsed: float = 0.0


Listener = Callable[[CycleCompleted], None]


class Experiment:
    """Binds a store and config; serializes reproduction cycles."""

    def __init__(self, store: PopulationStore, config: ConfigSchema):
        self.store = store
        self.config = config
        self._cycle_lock = threading.Lock()
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def _emit(self, event: CycleCompleted):
        for listener in list(self._listeners):
            listener(event)

    def reproduce(self, rng: Optional[np.random.Generator] = None, *, generation: Optional[int] = None) -> CycleResult:
        if not self._cycle_lock.acquire(blocking=False):
            raise CycleInProgressError("a reproduction cycle is already running")
        try:
            if rng is None:
                current = generation if generation is not None else self.store.latest_generation()
                rng = generation_rng(self.config.seed, current or 0)
            cycle = ReproductionCycle(self.store, rng, self.config.reproduction, generation=generation)
            with timer("reproduction cycle") as timing:
                result = cycle.run()
            self._write_metrics(cycle, result)
        finally:
            self._cycle_lock.release()
        self._emit(
            CycleCompleted(result.current_generation, result.next_generation, len(result.children), timing["elapsed"])
        )
        return result

    def _write_metrics(self, cycle: ReproductionCycle, result: CycleResult) -> Optional[Path]:
        run_dir = self.config.outputs.run_dir
        if run_dir is None:
            return None
        nodes = {r.song_id: r.node_id for r in cycle.ratings}
        path = Path(run_dir) / f"generation_{result.current_generation}.csv"
        save_metrics(fitness_frame(result.fitness, nodes).to_dict("records"), path)
        save_metrics(result.records(), Path(run_dir) / f"children_{result.next_generation}.csv")
        return path
