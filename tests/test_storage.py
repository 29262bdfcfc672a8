import numpy as np
import pytest

from songevo.engine.reproduction import ChildRecord, RatingRecord
from songevo.engine.storage import SQLiteStore
from songevo.errors import RatingError, StorageError
from songevo.genetics.genome import Genome
from songevo.habitat.graph import Habitat


def _habitat():
    return Habitat.from_topology([(0, 2), (1, 3)], [(0, 1, 0.25)])


def _genome(seed=3):
    return Genome.random(16, 24, 4, 6, np.random.default_rng(seed))


def test_habitat_round_trip(store):
    store.populate_habitat(_habitat())
    loaded = store.fetch_habitat()
    assert loaded.capacity(0) == 2
    assert loaded.capacity(1) == 3
    assert [(e.from_node, e.to_node, e.probability) for e in loaded.incoming(1)] == [(0, 1, 0.25)]


def test_stored_genome_gets_its_row_id(store):
    store.populate_habitat(_habitat())
    genome = _genome()
    song_id = store.insert_song(1, 0, genome)
    loaded = store.get_genome(song_id)
    assert loaded == genome
    assert loaded.song_id == song_id


def test_missing_song_raises(store):
    with pytest.raises(StorageError):
        store.get_genome(99)


def test_ratings_are_summed_and_unrated_songs_count_zero(store):
    store.populate_habitat(_habitat())
    a = store.insert_song(1, 0, _genome(1))
    b = store.insert_song(1, 1, _genome(2))
    store.insert_song(2, 1, _genome(3))
    store.add_rating(a, 1)
    store.add_rating(a, 1)
    store.add_rating(a, 0)
    assert store.fetch_ratings(1) == [RatingRecord(a, 0, 2), RatingRecord(b, 1, 0)]
    assert store.rating_count() == 3
    assert store.latest_generation() == 2


def test_rating_unknown_song_is_a_storage_error(store):
    store.populate_habitat(_habitat())
    with pytest.raises(StorageError):
        store.add_rating(12, 1)


def test_commit_records_history_and_clears_ratings(store):
    store.populate_habitat(_habitat())
    parent = store.insert_song(1, 0, _genome())
    store.add_rating(parent, 1)
    child = ChildRecord(2, 1, _genome(7), parent, parent)
    song_ids = store.commit_generation([child], {parent: 2})
    assert len(song_ids) == 1
    assert store.rating_count() == 0
    assert store.historic_fitness(parent) == [2]
    assert [s.song_id for s in store.songs_in_generation(2)] == song_ids
    assert store.get_genome(song_ids[0]) == child.genome


def test_failed_commit_leaves_no_partial_state(store):
    store.populate_habitat(_habitat())
    parent = store.insert_song(1, 0, _genome())
    store.add_rating(parent, 1)
    good = ChildRecord(2, 0, _genome(4), parent, parent)
    bad = ChildRecord(2, 42, _genome(5), parent, parent)
    with pytest.raises(StorageError):
        store.commit_generation([good, bad], {parent: 2})
    assert store.latest_generation() == 1
    assert store.rating_count() == 1
    assert store.historic_fitness(parent) == []


def test_scrub_keeps_habitat_unless_everything(tmp_path):
    with SQLiteStore(tmp_path / "scrub.db") as store:
        store.create_schema()
        store.populate_habitat(_habitat())
        first = store.insert_song(1, 0, _genome())
        store.scrub_songs()
        assert store.latest_generation() is None
        assert len(store.fetch_habitat().nodes) == 2

        store.scrub_database()
        assert not store.fetch_habitat().nodes
        store.populate_habitat(_habitat())
        assert store.insert_song(1, 0, _genome()) == first


@pytest.mark.parametrize("rating", [2, -1, 50])
def test_only_like_or_dislike_is_stored(store, rating):
    store.populate_habitat(_habitat())
    song_id = store.insert_song(1, 0, _genome())
    with pytest.raises(RatingError):
        store.add_rating(song_id, rating)
    assert store.rating_count() == 0


def test_population_places_rated_songs_on_their_nodes(store):
    store.populate_habitat(_habitat())
    a = store.insert_song(1, 0, _genome(1))
    b = store.insert_song(1, 1, _genome(2))
    store.add_rating(a, 1)
    habitat = store.population(1, with_genomes=True)
    (song_a,) = habitat.node(0).songs
    (song_b,) = habitat.node(1).songs
    assert (song_a.song_id, song_a.fitness) == (a, 1.0)
    assert (song_b.song_id, song_b.fitness) == (b, 0.0)
    assert song_a.genome == _genome(1)
    assert store.population(1).node(0).songs[0].genome is None


def test_population_beyond_capacity_is_dropped_with_a_warning(store, caplog):
    store.populate_habitat(_habitat())
    for seed in range(3):
        store.insert_song(1, 0, _genome(seed))
    with caplog.at_level("WARNING", logger="songevo.engine.storage"):
        habitat = store.population(1)
    assert len(habitat.node(0).songs) == 2
    assert "exceed node capacity" in caplog.text
