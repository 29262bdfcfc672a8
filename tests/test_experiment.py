import pytest

from songevo.config import ConfigSchema
from songevo.core.rng import make_rng
from songevo.engine.experiment import AdamProposal, create_adam_and_eve, initialise_experiment
from songevo.errors import ProposalError
from songevo.genetics.decoder import bits_to_mutation_rate


def _config(tmp_path, **overrides):
    data = {
        "genome": {"large_min": 32, "large_max": 48, "small_min": 4, "small_max": 6},
        "habitat": {
            "nodes": [{"id": 0, "capacity": 3}, {"id": 1, "capacity": 2}],
            "edges": [{"from_node": 0, "to_node": 1, "probability": 0.5}],
        },
        "outputs": {"run_dir": str(tmp_path / "runs")},
    }
    data.update(overrides)
    return ConfigSchema(**data)


def test_adam_and_eve_are_identical(tmp_path):
    adam, eve = create_adam_and_eve(_config(tmp_path).genome, make_rng(5))
    assert adam == eve
    assert all(c.is_homozygous for _, c in adam.slots())
    assert bits_to_mutation_rate(adam.mutation_rate.left) == pytest.approx(0.03, abs=1 / 1275)


def test_initialise_fills_every_node(store, tmp_path):
    result = initialise_experiment(store, _config(tmp_path), make_rng(11))
    assert (result.adam_id, result.eve_id) == (1, 2)
    assert len(result.song_ids) == 5
    songs = store.songs_in_generation(1)
    assert sorted(s.node_id for s in songs) == [0, 0, 0, 1, 1]
    assert store.latest_generation() == 1
    assert store.fetch_habitat().capacity(1) == 2


def test_initialised_experiment_reproduces(store, tmp_path):
    from songevo.engine.experiment import Experiment

    cfg = _config(tmp_path, seed=3)
    init = initialise_experiment(store, cfg, make_rng(3))
    store.add_rating(init.song_ids[0], 1)
    result = Experiment(store, cfg).reproduce()
    assert result.next_generation == 2
    assert store.latest_generation() == 2
    assert (tmp_path / "runs" / "generation_1.csv").exists()
    assert (tmp_path / "runs" / "children_2.csv").exists()


def test_proposal_accept_and_reject():
    proposal = AdamProposal(ConfigSchema().genome)
    rng = make_rng(8)
    with pytest.raises(ProposalError):
        proposal.accept()
    first = proposal.propose(rng)
    second = proposal.reject(rng)
    assert proposal.current() == second
    assert second != first
    accepted = proposal.accept()
    assert accepted == second
    assert proposal.current() is None
    rate = bits_to_mutation_rate(accepted.mutation_rate.left)
    assert 0.00125 - 1 / 1275 <= rate <= 0.07 + 1 / 1275
