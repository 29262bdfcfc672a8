import logging

from songevo.core import generation_rng, make_rng, timer


def test_seeded_generators_repeat():
    assert make_rng(5).random() == make_rng(5).random()


def test_generation_streams_differ_but_repeat():
    first = generation_rng(7, 1).random(4)
    assert list(first) == list(generation_rng(7, 1).random(4))
    assert list(first) != list(generation_rng(7, 2).random(4))


def test_timer_records_elapsed(caplog):
    with caplog.at_level(logging.DEBUG, logger="songevo.core.profiling"):
        with timer("stage") as timing:
            sum(range(1000))
    assert timing["elapsed"] >= 0.0
    assert "[PROFILE] stage" in caplog.text
