"""Metrics aggregation and output."""
from __future__ import annotations
from pathlib import Path
import pandas as pd


def save_metrics(records: list[dict], path: Path):
    df = pd.DataFrame(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return df


def fitness_frame(fitness: dict[int, int], nodes: dict[int, int]) -> pd.DataFrame:
    """Smoothed fitness per song with its node and within-node share."""
    df = pd.DataFrame(
        [{"song_id": song_id, "node": nodes.get(song_id), "fitness": total} for song_id, total in fitness.items()],
        columns=["song_id", "node", "fitness"],
    )
    if df.empty:
        return df.assign(share=pd.Series(dtype=float))
    node_totals = df.groupby("node")["fitness"].transform("sum")
    return df.assign(share=df["fitness"] / node_totals)
