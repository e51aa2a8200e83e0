"""Backpropagation training loops for BackpropNets."""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass, fields
from typing import Iterable, Mapping, Sequence

from ..core import codec
from ..core.activations import sigmoid_deriv
from ..core.network import Network
from ..core.types import Symbol
from .stats import ExerciseStats, TrainingStats, clock_ticks
from .training_set import TrainingSet


@dataclass
class TrainerConfig:
    """Iteration caps and rates used by :class:`Trainer`.

    Every ``max_stagnate_*`` cap and ``min_*_weight_correction_limit`` of 0
    disables that check.  ``training_ratio`` below 1 presents a random draw of
    ``ratio * count`` pairs (at least one) per set instead of every pair in
    order.  ``batch_prune_rate`` steps the pruning threshold of a converged
    batch up to ``batch_prune_threshold``; 0 prunes at the threshold at once.
    """

    error_tolerance: int = 0
    learning_rate: float = 0.5
    momentum_rate: float = 0.0
    mutation_rate: float = 0.0
    max_reps: int = 255
    max_batch_sets: int = 256
    max_batches: int = 16
    stagnate_tolerance: int = 1
    max_stagnate_sets: int = 0
    max_stagnate_batches: int = 8
    min_set_weight_correction_limit: float = 0.0
    min_batch_weight_correction_limit: float = 0.0
    accelerate: bool = False
    batch_prune_threshold: float = 0.0
    batch_prune_rate: float = 0.0
    training_ratio: float = 1.0

    def __post_init__(self) -> None:
        for name in ("max_reps", "max_batch_sets", "max_batches"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1, got {getattr(self, name)}")
        for name in (
            "error_tolerance",
            "learning_rate",
            "momentum_rate",
            "mutation_rate",
            "stagnate_tolerance",
            "max_stagnate_sets",
            "max_stagnate_batches",
            "min_set_weight_correction_limit",
            "min_batch_weight_correction_limit",
            "batch_prune_threshold",
            "batch_prune_rate",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if not 0.0 < self.training_ratio <= 1.0:
            raise ValueError(f"training_ratio must be within (0, 1], got {self.training_ratio}")

    def set_to_default(self) -> None:
        for item in fields(self):
            setattr(self, item.name, item.default)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "TrainerConfig":
        known = {item.name for item in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise KeyError(f"Unknown trainer options: {', '.join(sorted(unknown))}")
        return cls(**data)  # type: ignore[arg-type]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class LearningAccelerator:
    """Raise the learning rate while the error keeps falling."""

    min_learning_rate: float = 0.1
    max_learning_rate: float = 0.9
    acceleration: float = 0.1

    def accelerate(self, rate: float, error_now: float, error_prev: float) -> float:
        low = min(self.min_learning_rate, self.max_learning_rate)
        if error_now > error_prev:
            return low
        if rate < low:
            return low
        if rate > self.max_learning_rate:
            return self.max_learning_rate
        return rate + self.acceleration


class Trainer:
    """Teach a :class:`Network` the pairs of a :class:`TrainingSet`.

    Every ``train*`` method returns ``0`` on convergence and a positive error
    count otherwise; non-convergence is never raised.
    """

    def __init__(
        self,
        config: TrainerConfig | None = None,
        *,
        callbacks: Sequence[object] | None = None,
        cancel: threading.Event | None = None,
        accelerator: LearningAccelerator | None = None,
    ) -> None:
        self.config = config or TrainerConfig()
        self.callbacks = list(callbacks or [])
        self.cancel = cancel
        self.accelerator = accelerator or LearningAccelerator()
        self.learning_rate = self.config.learning_rate
        self.epoch = 0
        self.last_bit_errors = 0
        self.last_set_correction = 0.0
        self.last_batch_correction = 0.0
        self._correction_total = 0.0

    def to_dict(self) -> dict:
        return {
            "config": self.config.to_dict(),
            "accelerator": asdict(self.accelerator),
            "learning_rate": self.learning_rate,
            "epoch": self.epoch,
        }

    # ------------------------------------------------------------------
    # Evaluation

    def exercise(
        self, stats: ExerciseStats, network: Network, training_set: TrainingSet
    ) -> int:
        """Count pairs whose output is off by more than ``error_tolerance`` bits."""

        start = clock_ticks()
        mismatches = 0
        bit_errors = 0
        for x, y in training_set.pairs():
            network.activate(x)
            errors = codec.count_bit_errors(
                network.output, codec.encode(y, network.y_size)
            )
            bit_errors += errors
            if errors > self.config.error_tolerance:
                mismatches += 1
        count = training_set.count
        stats.exercise_count += 1
        stats.activate_count += count
        stats.incorrect_total += mismatches
        stats.correct_total += count - mismatches
        stats.error += bit_errors
        stats.exercise_clock_ticks += clock_ticks() - start
        self.last_bit_errors = bit_errors
        return mismatches

    # ------------------------------------------------------------------
    # Teaching

    def teach_pair(
        self, stats: TrainingStats, network: Network, x: Symbol, y: Symbol
    ) -> int:
        """One forward pass, one backward pass and one weight update.

        Returns 0 when the output after the update is within
        ``error_tolerance`` bits of ``y``, otherwise its bit error.
        """

        target = codec.encode(y, network.y_size)
        network.activate(x)
        layers = network.layers

        out = layers[-1]
        out_y = out.y
        out.g = (target - out_y) * sigmoid_deriv(out_y)
        for lower, upper in zip(reversed(layers[:-1]), reversed(layers[1:])):
            lower.g = upper.weighted_gradient() * sigmoid_deriv(lower.y)

        correction = 0.0
        for layer in layers:
            correction += layer.correct(
                self.learning_rate,
                momentum_rate=self.config.momentum_rate,
                mutation_rate=self.config.mutation_rate,
            )
        self._correction_total += correction
        stats.teach_total += 1
        stats.weight_correction_total += correction

        network.activate(x)
        errors = codec.count_bit_errors(network.output, target)
        return 0 if errors <= self.config.error_tolerance else errors

    def train_pair(
        self, stats: TrainingStats, network: Network, x: Symbol, y: Symbol
    ) -> int:
        error = self.teach_pair(stats, network, x, y)
        reps = 1
        while error and reps < self.config.max_reps:
            error = self.teach_pair(stats, network, x, y)
            reps += 1
        stats.pair_total += 1
        if error:
            stats.stubborn_pairs_total += 1
        return error

    def train_set(
        self, stats: TrainingStats, network: Network, training_set: TrainingSet
    ) -> int:
        """Train the pairs of one set; returns the unconverged pair count.

        With ``training_ratio`` below 1 the pairs are drawn at random from the
        network generator, otherwise every pair is trained once in order.
        """

        pairs: Iterable[tuple[Symbol, Symbol]] = training_set.pairs()
        ratio = self.config.training_ratio
        if ratio < 1.0:
            count = training_set.count
            draws = max(1, int(ratio * count))
            picks = network.rng.integers(0, count, size=draws)
            pairs = [(training_set.x_at(int(i)), training_set.y_at(int(i))) for i in picks]
        unconverged = 0
        for x, y in pairs:
            if self.train_pair(stats, network, x, y):
                unconverged += 1
        stats.set_total += 1
        return unconverged

    # ------------------------------------------------------------------
    # Epoch loops

    def train_batch(
        self,
        stats: TrainingStats,
        exercise_stats: ExerciseStats,
        network: Network,
        training_set: TrainingSet,
    ) -> int:
        """Run ``train_set`` epochs until the set is learned or a cap is hit.

        Besides ``max_batch_sets`` the batch ends after ``max_stagnate_sets``
        sets in a row that improve the bit error by less than
        ``stagnate_tolerance``, or after a set whose summed weight correction
        falls below ``min_set_weight_correction_limit``.
        """

        mismatches = self.exercise(exercise_stats, network, training_set)
        prev_bits = self.last_bit_errors
        stagnant = 0
        for _ in range(self.config.max_batch_sets):
            before = self._correction_total
            self.train_set(stats, network, training_set)
            self.last_set_correction = self._correction_total - before
            mismatches = self.exercise(exercise_stats, network, training_set)
            bits = self.last_bit_errors
            self.epoch += 1
            self._emit_epoch(
                self.epoch,
                {
                    "mismatches": mismatches,
                    "bit_errors": bits,
                    "learning_rate": self.learning_rate,
                    "weight_correction": self.last_set_correction,
                },
            )
            if self.config.accelerate:
                self.learning_rate = self.accelerator.accelerate(
                    self.learning_rate, bits, prev_bits
                )
            if mismatches == 0 or self._cancelled():
                break
            if prev_bits - bits < self.config.stagnate_tolerance:
                stats.stagnate_sets_total += 1
                stagnant += 1
                limit = self.config.max_stagnate_sets
                if limit and stagnant >= limit:
                    break
            else:
                stagnant = 0
            prev_bits = bits
            if self.last_set_correction < self.config.min_set_weight_correction_limit:
                stats.stubborn_sets_total += 1
                break
        stats.batches_total += 1
        if mismatches == 0 and self.config.batch_prune_threshold > 0:
            self._prune_converged(exercise_stats, network, training_set)
        return mismatches

    def train(
        self,
        stats: TrainingStats,
        exercise_stats: ExerciseStats,
        network: Network,
        training_set: TrainingSet,
    ) -> int:
        """Run up to ``max_batches`` batches, giving up early on stagnation.

        Training also stops after a batch whose summed weight correction
        falls below ``min_batch_weight_correction_limit``.
        """

        start = clock_ticks()
        self.learning_rate = self.config.learning_rate
        stagnant = 0
        prev_bits: int | None = None
        mismatches = 0
        for _ in range(self.config.max_batches):
            before = self._correction_total
            mismatches = self.train_batch(stats, exercise_stats, network, training_set)
            self.last_batch_correction = self._correction_total - before
            stats.record_error(mismatches)
            if mismatches == 0 or self._cancelled():
                break
            stats.stubborn_batches_total += 1
            bits = self.last_bit_errors
            if prev_bits is not None and prev_bits - bits < self.config.stagnate_tolerance:
                stats.stagnate_batches_total += 1
                stagnant += 1
                limit = self.config.max_stagnate_batches
                if limit and stagnant >= limit:
                    break
            else:
                stagnant = 0
            prev_bits = bits
            if self.last_batch_correction < self.config.min_batch_weight_correction_limit:
                break
        stats.train_clock_ticks += clock_ticks() - start
        return mismatches

    # ------------------------------------------------------------------
    # Internal helpers

    def _prune_converged(
        self,
        exercise_stats: ExerciseStats,
        network: Network,
        training_set: TrainingSet,
    ) -> None:
        # Raise the threshold step by step; the first step that breaks the
        # set is undone and ends the pruning.
        limit = self.config.batch_prune_threshold
        rate = self.config.batch_prune_rate
        step = 1
        while True:
            threshold = min(rate * step, limit) if rate else limit
            snapshot = network.copy()
            if network.prune_below(threshold) and self.exercise(
                exercise_stats, network, training_set
            ):
                network.copy_weights_from(snapshot)
                self.exercise(exercise_stats, network, training_set)
                return
            if threshold >= limit:
                return
            step += 1

    def _cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = ["LearningAccelerator", "Trainer", "TrainerConfig"]
