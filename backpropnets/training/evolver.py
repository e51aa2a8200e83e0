"""Restart and mutation search layered over :class:`Trainer`."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, fields
from typing import Mapping, Sequence

from ..core.network import Network
from .stats import EvolutionStats, ExerciseStats, TrainingStats, clock_ticks
from .trainer import Trainer
from .training_set import TrainingSet

POLICIES = ("randomize", "prune", "mate", "pool")


@dataclass
class EvolverConfig:
    """Attempt budget and mutation policy for :class:`Evolver`.

    The ``pool`` policy trains ``pool_count`` networks side by side and reads
    ``max_attempts`` as its generation budget.
    """

    max_attempts: int = 8
    policy: str = "randomize"
    random_scale: float = 1.0
    prune_percent: float = 25.0
    mate_rate: float = 0.382
    pool_count: int = 4
    seed: int = 0

    def __post_init__(self) -> None:
        if self.policy not in POLICIES:
            raise ValueError(
                f"Unknown evolver policy {self.policy!r}; expected one of {POLICIES}"
            )
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if not 0.0 <= self.mate_rate <= 1.0:
            raise ValueError(f"mate_rate must be within [0, 1], got {self.mate_rate}")
        if self.random_scale < 0:
            raise ValueError(f"random_scale must be non-negative, got {self.random_scale}")
        if self.pool_count < 2:
            raise ValueError(f"pool_count must be at least 2, got {self.pool_count}")

    def set_to_default(self) -> None:
        for item in fields(self):
            setattr(self, item.name, item.default)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "EvolverConfig":
        known = {item.name for item in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise KeyError(f"Unknown evolver options: {', '.join(sorted(unknown))}")
        return cls(**data)  # type: ignore[arg-type]

    def to_dict(self) -> dict:
        return asdict(self)


class Evolver:
    """Retry training from perturbed weights until the set is learned.

    The first attempt trains the network as given.  After each failure the
    best network so far is snapshotted and the working network is mutated
    with ``seed + k`` feeding attempt ``k``.  When the budget runs out the best
    snapshot is loaded back, activations included, and its mismatch count
    returned.

    The ``pool`` policy instead keeps the given network plus
    ``pool_count - 1`` members randomized with ``seed + i``.  Each generation
    trains every member, then mates all but the best and the worst member of
    that generation toward the best network seen so far.
    """

    def __init__(
        self,
        config: EvolverConfig | None = None,
        *,
        callbacks: Sequence[object] | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.config = config or EvolverConfig()
        self.callbacks = list(callbacks or [])
        self.cancel = cancel

    def to_dict(self) -> dict:
        return {"config": self.config.to_dict()}

    def evolve(
        self,
        evolution_stats: EvolutionStats,
        trainer: Trainer,
        training_stats: TrainingStats,
        exercise_stats: ExerciseStats,
        network: Network,
        training_set: TrainingSet,
    ) -> int:
        start = clock_ticks()
        try:
            if self.config.policy == "pool":
                return self._evolve_pool(
                    evolution_stats,
                    trainer,
                    training_stats,
                    exercise_stats,
                    network,
                    training_set,
                )
            return self._evolve_single(
                evolution_stats,
                trainer,
                training_stats,
                exercise_stats,
                network,
                training_set,
            )
        finally:
            evolution_stats.evolve_clock_ticks += clock_ticks() - start

    def _evolve_single(
        self,
        evolution_stats: EvolutionStats,
        trainer: Trainer,
        training_stats: TrainingStats,
        exercise_stats: ExerciseStats,
        network: Network,
        training_set: TrainingSet,
    ) -> int:
        best: Network | None = None
        best_error: int | None = None
        for attempt in range(self.config.max_attempts):
            evolution_stats.attempts += 1
            result = trainer.train(training_stats, exercise_stats, network, training_set)
            evolution_stats.record_error(result)
            self._emit_attempt(
                attempt + 1,
                {
                    "mismatches": result,
                    "bit_errors": trainer.last_bit_errors,
                    "generation": evolution_stats.generation_count,
                    "best_error": result if best_error is None else min(best_error, result),
                },
            )
            if result == 0:
                evolution_stats.successes += 1
                return 0
            evolution_stats.failures += 1
            if best_error is None or result < best_error:
                best = network.copy()
                best_error = result
            if self._cancelled() or attempt + 1 == self.config.max_attempts:
                break
            self._mutate(evolution_stats, network, best, attempt + 1)
            evolution_stats.generation_count += 1
        network.load_record(best.to_record())  # type: ignore[union-attr]
        return int(best_error)  # type: ignore[arg-type]

    def _evolve_pool(
        self,
        evolution_stats: EvolutionStats,
        trainer: Trainer,
        training_stats: TrainingStats,
        exercise_stats: ExerciseStats,
        network: Network,
        training_set: TrainingSet,
    ) -> int:
        pool = [network.copy()]
        for idx in range(1, self.config.pool_count):
            member = network.copy()
            member.randomize(self.config.random_scale, seed=self.config.seed + idx)
            pool.append(member)

        best = pool[0].copy()
        best_error = trainer.exercise(exercise_stats, best, training_set)
        generation = 0
        while best_error and generation < self.config.max_attempts:
            errors: list[int] = []
            for member in pool:
                evolution_stats.attempts += 1
                result = trainer.train(training_stats, exercise_stats, member, training_set)
                errors.append(result)
                if result < best_error:
                    best = member.copy()
                    best_error = result
                if result == 0:
                    break
            generation += 1
            evolution_stats.record_error(best_error)
            self._emit_attempt(
                generation,
                {
                    "mismatches": min(errors),
                    "bit_errors": trainer.last_bit_errors,
                    "generation": evolution_stats.generation_count,
                    "best_error": best_error,
                },
            )
            if best_error == 0 or self._cancelled() or generation == self.config.max_attempts:
                break
            leader = errors.index(min(errors))
            laggard = errors.index(max(errors))
            for idx, member in enumerate(pool):
                if idx in (leader, laggard):
                    continue
                self._mate(member, best)
                evolution_stats.mate_networks_count += 1
            evolution_stats.generation_count += 1

        evolution_stats.record_error(best_error)
        network.load_record(best.to_record())
        if best_error == 0:
            evolution_stats.successes += 1
        else:
            evolution_stats.failures += 1
        return best_error

    # ------------------------------------------------------------------
    # Mutation policies

    def _mutate(
        self,
        evolution_stats: EvolutionStats,
        network: Network,
        best: Network | None,
        attempt: int,
    ) -> None:
        seed = self.config.seed + attempt
        if self.config.policy == "randomize":
            network.randomize(self.config.random_scale, seed=seed)
        elif self.config.policy == "prune":
            network.reseed(seed)
            network.prune(self.config.prune_percent)
        else:
            network.reseed(seed)
            self._mate(network, best if best is not None else network)
            evolution_stats.mate_networks_count += 1

    def _mate(self, network: Network, best: Network) -> None:
        """Blend ``network`` toward ``best`` with noise split by ``mate_rate``."""

        rng = network.rng
        rate = self.config.mate_rate
        for mine, theirs in zip(network.layers, best.layers):
            noise_best = rng.uniform(-1.0, 1.0, size=mine.shape) * rate
            noise_mine = rng.uniform(-1.0, 1.0, size=mine.shape) * (1.0 - rate)
            mine.w = ((theirs.w + noise_best) + (mine.w + noise_mine)) / 2.0

    def _cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def _emit_attempt(self, attempt: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(attempt, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(attempt, metrics)


__all__ = ["POLICIES", "Evolver", "EvolverConfig"]
