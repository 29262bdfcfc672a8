"""Typer CLI for songevo."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from songevo.config import ConfigSchema, default_config_path, load_config
from songevo.core.rng import make_rng
from songevo.engine.experiment import AdamProposal, Experiment, initialise_experiment
from songevo.engine.storage import SQLiteStore
from songevo.errors import SongEvoError
from songevo.genetics.decoder import decode_with_config, phenotype_summary
from songevo.genetics.genome import Genome

app = typer.Typer(help="Interactive song evolution CLI")
console = Console()

_state: dict = {}


@app.callback()
def main(
    config: Path = typer.Option(default_config_path(), help="YAML config path"),
    database: Optional[Path] = typer.Option(None, help="Override SQLite database path"),
    seed: Optional[int] = typer.Option(None, help="Override seed"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    cfg = load_config(config)
    if database is not None:
        cfg.storage.database = database
    if seed is not None:
        cfg.seed = seed
    _state["config"] = cfg


def _config() -> ConfigSchema:
    return _state["config"]


def _store() -> SQLiteStore:
    return SQLiteStore(_config().storage.database)


@app.command()
def init(
    choose_adam: bool = typer.Option(False, "--choose-adam", help="Review candidate Adams and approve one"),
):
    """Create the database, store Adam and Eve and breed generation 1."""
    cfg = _config()
    rng = make_rng(cfg.seed)
    adam = _choose_adam(cfg, rng) if choose_adam else None
    with _store() as store:
        try:
            result = initialise_experiment(store, cfg, rng, adam=adam)
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    console.print(f"Experiment initialised: Adam={result.adam_id} Eve={result.eve_id}, {len(result.song_ids)} songs in generation 1")


def _choose_adam(cfg: ConfigSchema, rng) -> Genome:
    proposal = AdamProposal(cfg.genome)
    candidate = proposal.propose(rng)
    while True:
        console.print(phenotype_summary(decode_with_config(candidate, cfg.decoder)))
        if typer.confirm("Accept this Adam?", default=False):
            console.print("Adam accepted.")
            return proposal.accept()
        console.print("Generating a new Adam...")
        candidate = proposal.reject(rng)


@app.command()
def rate(
    song_id: int = typer.Argument(..., help="Song to rate"),
    rating: int = typer.Argument(..., min=0, max=1, help="1 for like, 0 for dislike"),
):
    """Record one rating for a song of the current generation."""
    with _store() as store:
        try:
            store.add_rating(song_id, rating)
            count = store.rating_count()
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    console.print(f"Recorded rating {rating} for song {song_id} ({count} ratings this generation)")


@app.command()
def reproduce():
    """Run one differential reproduction cycle."""
    cfg = _config()
    with _store() as store:
        experiment = Experiment(store, cfg)
        experiment.subscribe(lambda event: console.log(f"cycle complete -> generation {event.next_generation} in {event.elapsed:.2f}s"))
        try:
            result = experiment.reproduce()
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    if cfg.outputs.summarize:
        table = Table(title=f"Generation {result.next_generation}", show_lines=True)
        table.add_column("song")
        table.add_column("node")
        table.add_column("parents")
        for row in result.records():
            table.add_row(str(row["song_id"]), str(row["node"]), f"{row['parent1_id']} x {row['parent2_id']}")
        console.print(table)
    console.print(f"Differential reproduction complete. Next generation = {result.next_generation}")


@app.command()
def decode(
    song_id: int = typer.Argument(..., help="Song to decode"),
    as_json: bool = typer.Option(False, "--json", help="Print the full phenotype as JSON"),
):
    """Show the decoded phenotype of a stored song."""
    cfg = _config()
    with _store() as store:
        try:
            genome = store.get_genome(song_id)
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    decoded = decode_with_config(genome, cfg.decoder)
    if as_json:
        typer.echo(json.dumps({"summary": phenotype_summary(decoded), **decoded.as_dict()}, indent=2))
        return
    table = Table(title=f"Song {song_id}: {len(decoded.notes)} notes, {decoded.length_ms} ms")
    for column in ("wave", "start ms", "freq Hz", "amp", "dur ms", "phase"):
        table.add_column(column)
    for note in decoded.notes:
        table.add_row(
            note.wave_function.value,
            str(note.start_time_ms),
            f"{note.frequency:.0f}",
            f"{note.amplitude:.3f}",
            str(note.duration_ms),
            f"{note.phase:.3f}",
        )
    console.print(table)
    console.print({"effects": [type(e).__name__ for e in decoded.effects]})


@app.command()
def status():
    """Summarise the current generation per node."""
    with _store() as store:
        try:
            generation = store.latest_generation()
            habitat = store.fetch_habitat() if generation is None else store.population(generation)
            ratings = store.rating_count()
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    table = Table(title=f"Generation {generation}")
    table.add_column("node")
    table.add_column("capacity")
    table.add_column("songs")
    table.add_column("likes")
    for node in habitat.nodes.values():
        likes = sum(song.fitness for song in node.songs)
        table.add_row(str(node.id), str(node.capacity), str(len(node.songs)), f"{likes:.0f}")
    console.print(table)
    console.print(f"{ratings} ratings collected")


@app.command()
def sample(node_id: int = typer.Argument(0, help="Node to draw a song from")):
    """Pick a random song of the current generation to listen to and rate."""
    cfg = _config()
    with _store() as store:
        try:
            generation = store.latest_generation()
            if generation is None:
                raise SongEvoError("no songs stored; run init first")
            habitat = store.population(generation, with_genomes=True)
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    song = habitat.get_random_song(node_id, make_rng(cfg.seed))
    if song is None:
        raise typer.Exit(_fail(SongEvoError(f"node {node_id} has no songs")))
    console.print(f"Song {song.song_id} on node {song.node_id} ({song.fitness:.0f} likes so far)")
    console.print(phenotype_summary(decode_with_config(song.genome, cfg.decoder)))
    console.print(f"Rate it with: songevo rate {song.song_id} 1|0")


@app.command()
def scrub(everything: bool = typer.Option(False, "--all", help="Also remove the habitat")):
    """Delete songs and ratings (or the whole database with --all)."""
    with _store() as store:
        try:
            if everything:
                store.scrub_database()
            else:
                store.scrub_songs()
        except SongEvoError as exc:
            raise typer.Exit(_fail(exc))
    console.print("Database scrubbed." if everything else "Songs scrubbed.")


def _fail(exc: Exception) -> int:
    console.print(f"[red]error:[/red] {exc}")
    return 1


if __name__ == "__main__":
    app()
