"""SQLite persistence for songs, ratings and the habitat topology."""
from __future__ import annotations

import contextlib
import logging
import sqlite3
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from songevo.errors import RatingError, StorageError
from songevo.genetics.codec import decode_genome, encode_genome
from songevo.genetics.genome import Genome
from songevo.habitat.graph import Habitat, Song
from .reproduction import ChildRecord, RatingRecord

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS habitat (
    node INTEGER PRIMARY KEY,
    capacity INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS dispersal_probabilities (
    from_node INTEGER NOT NULL REFERENCES habitat(node),
    to_node INTEGER NOT NULL REFERENCES habitat(node),
    probability REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS songs (
    song_id INTEGER PRIMARY KEY AUTOINCREMENT,
    generation INTEGER NOT NULL,
    node INTEGER NOT NULL REFERENCES habitat(node),
    parent1_id INTEGER REFERENCES songs(song_id),
    parent2_id INTEGER REFERENCES songs(song_id),
    genome BLOB NOT NULL
);
CREATE TABLE IF NOT EXISTS current_generation_fitness (
    song_id INTEGER NOT NULL REFERENCES songs(song_id),
    rating INTEGER NOT NULL,
    timestamp TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE IF NOT EXISTS historic_fitness_scores (
    song_id INTEGER NOT NULL REFERENCES songs(song_id),
    sum_of_ratings INTEGER NOT NULL
);
"""

TABLES = ("current_generation_fitness", "historic_fitness_scores", "songs", "dispersal_probabilities", "habitat")
VALID_RATINGS = (0, 1)


@contextlib.contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise StorageError(f"failed to {action}: {exc}") from exc


class SQLiteStore:
    """Ratings, topology and genome source plus the next-generation sink."""

    def __init__(self, path: Path | str):
        self.path = path
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        with _storage_errors(f"open {path}"):
            self.conn = sqlite3.connect(str(path))
            self.conn.execute("PRAGMA foreign_keys = ON")

    def close(self):
        self.conn.close()

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc):
        self.close()

    # --- setup ----------------------------------------------------------------

    def create_schema(self):
        with _storage_errors("create schema"):
            self.conn.executescript(SCHEMA)

    def populate_habitat(self, habitat: Habitat):
        with _storage_errors("populate habitat"), self.conn:
            self.conn.executemany(
                "INSERT INTO habitat (node, capacity) VALUES (?, ?)",
                [(n.id, n.capacity) for n in habitat.nodes.values()],
            )
            self.conn.executemany(
                "INSERT INTO dispersal_probabilities (from_node, to_node, probability) VALUES (?, ?, ?)",
                [(e.from_node, e.to_node, e.probability) for e in habitat.edges],
            )

    # --- songs ----------------------------------------------------------------

    def insert_song(
        self,
        generation: int,
        node_id: int,
        genome: Genome,
        parent1_id: Optional[int] = None,
        parent2_id: Optional[int] = None,
    ) -> int:
        with _storage_errors("insert song"), self.conn:
            cur = self.conn.execute(
                "INSERT INTO songs (generation, node, genome, parent1_id, parent2_id) VALUES (?, ?, ?, ?, ?)",
                (generation, node_id, encode_genome(genome), parent1_id, parent2_id),
            )
        return int(cur.lastrowid)

    def get_genome(self, song_id: int) -> Genome:
        with _storage_errors(f"load song {song_id}"):
            row = self.conn.execute("SELECT genome FROM songs WHERE song_id = ?", (song_id,)).fetchone()
        if row is None:
            raise StorageError(f"song {song_id} does not exist")
        genome = decode_genome(row[0])
        genome.assign_song_id(song_id)
        return genome

    def get_genomes(self, song_ids: Iterable[int]) -> Dict[int, Genome]:
        return {song_id: self.get_genome(song_id) for song_id in song_ids}

    def latest_generation(self) -> Optional[int]:
        with _storage_errors("read latest generation"):
            row = self.conn.execute("SELECT MAX(generation) FROM songs").fetchone()
        return None if row[0] is None else int(row[0])

    def songs_in_generation(self, generation: int) -> List[Song]:
        with _storage_errors(f"list generation {generation}"):
            rows = self.conn.execute(
                "SELECT song_id, node FROM songs WHERE generation = ? ORDER BY song_id", (generation,)
            ).fetchall()
        return [Song(song_id=int(song_id), node_id=int(node)) for song_id, node in rows]

    def population(self, generation: int, *, with_genomes: bool = False) -> Habitat:
        """Habitat holding the songs of ``generation`` with their rating totals."""
        habitat = self.fetch_habitat()
        songs = [
            Song(
                song_id=r.song_id,
                node_id=r.node_id,
                fitness=float(r.total_rating),
                genome=self.get_genome(r.song_id) if with_genomes else None,
            )
            for r in self.fetch_ratings(generation)
        ]
        placed = habitat.populate(songs)
        if placed < len(songs):
            logger.warning("%s songs of generation %s exceed node capacity", len(songs) - placed, generation)
        return habitat

    # --- ratings --------------------------------------------------------------

    def add_rating(self, song_id: int, rating: int):
        if rating not in VALID_RATINGS:
            raise RatingError(f"rating must be 0 (dislike) or 1 (like), got {rating!r}")
        with _storage_errors(f"rate song {song_id}"), self.conn:
            self.conn.execute(
                "INSERT INTO current_generation_fitness (song_id, rating) VALUES (?, ?)", (song_id, rating)
            )

    def rating_count(self) -> int:
        with _storage_errors("count ratings"):
            return int(self.conn.execute("SELECT COUNT(*) FROM current_generation_fitness").fetchone()[0])

    def fetch_ratings(self, generation: int) -> List[RatingRecord]:
        """Raw rating sums per song of ``generation``; unrated songs sum to 0."""
        with _storage_errors(f"fetch ratings for generation {generation}"):
            rows = self.conn.execute(
                """
                SELECT s.song_id, s.node, COALESCE(SUM(f.rating), 0)
                FROM songs s
                LEFT JOIN current_generation_fitness f ON s.song_id = f.song_id
                WHERE s.generation = ?
                GROUP BY s.song_id, s.node
                ORDER BY s.song_id
                """,
                (generation,),
            ).fetchall()
        return [RatingRecord(int(song_id), int(node), int(total)) for song_id, node, total in rows]

    def historic_fitness(self, song_id: int) -> List[int]:
        with _storage_errors(f"read fitness history of {song_id}"):
            rows = self.conn.execute(
                "SELECT sum_of_ratings FROM historic_fitness_scores WHERE song_id = ?", (song_id,)
            ).fetchall()
        return [int(r[0]) for r in rows]

    # --- topology -------------------------------------------------------------

    def fetch_habitat(self) -> Habitat:
        with _storage_errors("fetch habitat"):
            nodes = self.conn.execute("SELECT node, capacity FROM habitat ORDER BY node").fetchall()
            edges = self.conn.execute(
                "SELECT from_node, to_node, probability FROM dispersal_probabilities ORDER BY rowid"
            ).fetchall()
        return Habitat.from_topology(nodes, edges)

    # --- commit ---------------------------------------------------------------

    def commit_generation(self, children: Sequence[ChildRecord], fitness: Dict[int, int]) -> List[int]:
        """Record fitness history, insert children and clear ratings atomically."""
        song_ids: List[int] = []
        with _storage_errors("commit generation"), self.conn:
            self.conn.executemany(
                "INSERT INTO historic_fitness_scores (song_id, sum_of_ratings) VALUES (?, ?)",
                list(fitness.items()),
            )
            for child in children:
                cur = self.conn.execute(
                    "INSERT INTO songs (generation, node, genome, parent1_id, parent2_id) VALUES (?, ?, ?, ?, ?)",
                    (child.generation, child.node_id, child.genome_bytes, child.parent1_id, child.parent2_id),
                )
                song_ids.append(int(cur.lastrowid))
            self.conn.execute("DELETE FROM current_generation_fitness")
        return song_ids

    # --- maintenance ----------------------------------------------------------

    def scrub_songs(self):
        with _storage_errors("scrub songs"), self.conn:
            self.conn.execute("DELETE FROM current_generation_fitness")
            self.conn.execute("DELETE FROM historic_fitness_scores")
            self.conn.execute("DELETE FROM songs")

    def scrub_database(self):
        with _storage_errors("scrub database"), self.conn:
            for table in TABLES:
                self.conn.execute(f"DELETE FROM {table}")
            self.conn.execute("DELETE FROM sqlite_sequence")
        logger.info("database scrubbed and sequences reset")
