"""Reproduction engine, storage and experiment lifecycle."""
from .reproduction import (
    ChildRecord,
    CycleResult,
    CycleStage,
    RatingRecord,
    ReproductionCycle,
    pick_parents,
    plan_migrations,
    relative_fitness,
    weighted_choice,
)
from .storage import SQLiteStore
from .experiment import AdamProposal, CycleCompleted, Experiment, create_adam_and_eve, initialise_experiment

__all__ = [
    "ChildRecord",
    "CycleResult",
    "CycleStage",
    "RatingRecord",
    "ReproductionCycle",
    "pick_parents",
    "plan_migrations",
    "relative_fitness",
    "weighted_choice",
    "SQLiteStore",
    "AdamProposal",
    "CycleCompleted",
    "Experiment",
    "create_adam_and_eve",
    "initialise_experiment",
]
