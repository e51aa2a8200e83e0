"""Passive counters filled in by the trainer and the evolver.

Every record only ever grows: operations add to the fields they own and never
reset them.  Start from a fresh instance to measure a new run.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass


def clock_ticks() -> int:
    """Monotonic nanosecond clock used for every ``*_clock_ticks`` field."""

    return time.perf_counter_ns()


def _lower(current: int | None, candidate: int) -> int:
    return candidate if current is None else min(current, candidate)


@dataclass
class ExerciseStats:
    exercise_count: int = 0
    exercise_clock_ticks: int = 0
    activate_count: int = 0
    correct_total: int = 0
    incorrect_total: int = 0
    error: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TrainingStats:
    teach_total: int = 0
    pair_total: int = 0
    set_total: int = 0
    batches_total: int = 0
    stubborn_pairs_total: int = 0
    stubborn_batches_total: int = 0
    stubborn_sets_total: int = 0
    stagnate_sets_total: int = 0
    stagnate_batches_total: int = 0
    weight_correction_total: float = 0.0
    train_clock_ticks: int = 0
    best_error: int | None = None

    def record_error(self, error: int) -> None:
        self.best_error = _lower(self.best_error, error)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EvolutionStats:
    generation_count: int = 0
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    mate_networks_count: int = 0
    evolve_clock_ticks: int = 0
    best_error: int | None = None

    def record_error(self, error: int) -> None:
        self.best_error = _lower(self.best_error, error)

    def to_dict(self) -> dict:
        return asdict(self)


__all__ = ["ExerciseStats", "TrainingStats", "EvolutionStats", "clock_ticks"]
