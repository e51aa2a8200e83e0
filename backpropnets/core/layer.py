"""Fully-connected sigmoid layer."""

from __future__ import annotations

import math
from typing import Mapping

import numpy as np

from .activations import sigmoid
from .errors import ShapeMismatchError
from .types import Array, Vector


def _as_vector(values: Vector, size: int, name: str) -> Array:
    arr = np.array(values, dtype=np.float64)
    if arr.ndim != 1 or arr.size != size:
        raise ShapeMismatchError(f"{name} must have {size} values, got shape {arr.shape}")
    return arr


class Layer:
    """One stage ``y = sigmoid(x @ w)`` with a gradient buffer ``g``.

    ``w`` has shape ``(x_count, y_count)``; ``w[i, j]`` connects input ``i``
    to output ``j``.  Getters return copies, setters validate the shape.
    """

    def __init__(
        self,
        x_count: int,
        y_count: int,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        if x_count < 1 or y_count < 1:
            raise ShapeMismatchError(
                f"Layer dimensions must be positive, got {x_count}x{y_count}"
            )
        self._x_count = int(x_count)
        self._y_count = int(y_count)
        self._rng = rng if rng is not None else np.random.default_rng()
        self._x = np.zeros(self._x_count, dtype=np.float64)
        self._w = np.zeros((self._x_count, self._y_count), dtype=np.float64)
        self._y = np.zeros(self._y_count, dtype=np.float64)
        self._g = np.zeros(self._y_count, dtype=np.float64)
        self._velocity = np.zeros_like(self._w)

    def __repr__(self) -> str:
        return f"Layer(x_count={self._x_count}, y_count={self._y_count})"

    # ------------------------------------------------------------------
    # Shape

    @property
    def x_count(self) -> int:
        return self._x_count

    @property
    def y_count(self) -> int:
        return self._y_count

    @property
    def w_count(self) -> int:
        return self._x_count * self._y_count

    @property
    def shape(self) -> tuple[int, int]:
        return (self._x_count, self._y_count)

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    @rng.setter
    def rng(self, generator: np.random.Generator) -> None:
        self._rng = generator

    # ------------------------------------------------------------------
    # Buffers

    @property
    def x(self) -> Array:
        return self._x.copy()

    @x.setter
    def x(self, values: Vector) -> None:
        self._x = _as_vector(values, self._x_count, "x")

    @property
    def y(self) -> Array:
        return self._y.copy()

    @y.setter
    def y(self, values: Vector) -> None:
        self._y = _as_vector(values, self._y_count, "y")

    @property
    def g(self) -> Array:
        return self._g.copy()

    @g.setter
    def g(self, values: Vector) -> None:
        self._g = _as_vector(values, self._y_count, "g")

    @property
    def w(self) -> Array:
        return self._w.copy()

    @w.setter
    def w(self, values: Vector) -> None:
        arr = np.array(values, dtype=np.float64)
        if arr.shape == self.shape:
            self._w = arr
        elif arr.ndim == 1 and arr.size == self.w_count:
            self._w = arr.reshape(self.shape)
        else:
            raise ShapeMismatchError(
                f"w must have shape {self.shape} or {self.w_count} flat values, "
                f"got shape {arr.shape}"
            )
        self._velocity = np.zeros_like(self._w)

    # ------------------------------------------------------------------
    # Weight statistics

    @property
    def w_sum(self) -> float:
        return float(self._w.sum())

    @property
    def w_mean(self) -> float:
        return float(self._w.mean())

    @property
    def w_stddev(self) -> float:
        """Population standard deviation of the flattened weights."""

        return float(self._w.std())

    def nonzero_count(self) -> int:
        return int(np.count_nonzero(self._w))

    # ------------------------------------------------------------------
    # Forward pass

    def activate(self) -> Array:
        """Compute ``y`` from ``x`` and ``w``; returns a copy of ``y``."""

        self._y = sigmoid(self._x @ self._w)
        return self._y.copy()

    # ------------------------------------------------------------------
    # Weight mutation

    def randomize(
        self,
        scale: float,
        seed: int | None = None,
        *,
        rng: np.random.Generator | None = None,
    ) -> None:
        """Overwrite every weight with a draw from ``U[-scale, scale]``."""

        if seed is not None:
            generator = np.random.default_rng(seed)
        else:
            generator = rng if rng is not None else self._rng
        scale = abs(float(scale))
        self._w = generator.uniform(-scale, scale, size=self.shape)
        self._velocity = np.zeros_like(self._w)

    def jitter(self, amplitude: float, *, rng: np.random.Generator | None = None) -> None:
        """Add ``U[-amplitude, amplitude]`` noise to every weight."""

        if amplitude <= 0.0:
            return
        generator = rng if rng is not None else self._rng
        self._w += generator.uniform(-amplitude, amplitude, size=self.shape)

    def prune(self, percent: float) -> int:
        """Zero the smallest-magnitude ``percent`` % of weights.

        The number of pruned weights is ``ceil(w_count * percent / 100)``;
        ties are broken by flat index order.  Returns that number.
        """

        percent = min(max(float(percent), 0.0), 100.0)
        count = int(math.ceil(self.w_count * percent / 100.0))
        if count == 0:
            return 0
        flat = self._w.reshape(-1)
        order = np.argsort(np.abs(flat), kind="stable")
        flat[order[:count]] = 0.0
        return count

    def prune_below(self, threshold: float) -> int:
        """Zero every weight whose magnitude is below ``threshold``."""

        mask = np.abs(self._w) < threshold
        self._w[mask] = 0.0
        return int(mask.sum())

    def round(self) -> None:
        self._w = np.round(self._w)

    def identity(self) -> None:
        """Diagonal ones; for non-square layers the leading diagonal only."""

        self._w = np.eye(self._x_count, self._y_count, dtype=np.float64)
        self._velocity = np.zeros_like(self._w)

    def reset(self) -> None:
        """Zero ``x``, ``y`` and ``g``; weights are untouched."""

        self._x.fill(0.0)
        self._y.fill(0.0)
        self._g.fill(0.0)
        self._velocity.fill(0.0)

    # ------------------------------------------------------------------
    # Backpropagation helpers

    def weighted_gradient(self) -> Array:
        """Error signal seen by this layer's inputs, ``w @ g``."""

        return self._w @ self._g

    def correct(
        self,
        learning_rate: float,
        *,
        momentum_rate: float = 0.0,
        mutation_rate: float = 0.0,
    ) -> float:
        """Apply ``w += lr * outer(x, g)``; returns the summed absolute correction."""

        correction = learning_rate * np.outer(self._x, self._g)
        if momentum_rate:
            correction += momentum_rate * self._velocity
        self._velocity = correction
        self._w += correction
        if mutation_rate:
            self._w += mutation_rate * self._rng.uniform(-1.0, 1.0, size=self.shape)
        return float(np.abs(correction).sum())

    # ------------------------------------------------------------------
    # Records

    def to_record(self) -> dict:
        return {
            "x_count": self._x_count,
            "y_count": self._y_count,
            "x": self._x.tolist(),
            "w": self._w.reshape(-1).tolist(),
            "y": self._y.tolist(),
        }

    def load_record(self, record: Mapping[str, object]) -> None:
        """Restore ``x``, ``w`` and ``y`` from ``record`` in place."""

        missing = {"x", "w", "y"} - set(record)
        if missing:
            raise KeyError(f"Layer record is missing: {', '.join(sorted(missing))}")
        self.x = record["x"]  # type: ignore[assignment]
        self.w = record["w"]  # type: ignore[assignment]
        self.y = record["y"]  # type: ignore[assignment]

    @classmethod
    def from_record(
        cls, record: Mapping[str, object], *, rng: np.random.Generator | None = None
    ) -> "Layer":
        x = record.get("x", [])
        y = record.get("y", [])
        x_count = int(record.get("x_count", len(x)))  # type: ignore[arg-type]
        y_count = int(record.get("y_count", len(y)))  # type: ignore[arg-type]
        layer = cls(x_count, y_count, rng=rng)
        layer.load_record(record)
        return layer

    def copy(self) -> "Layer":
        other = Layer(self._x_count, self._y_count, rng=self._rng)
        other._x = self._x.copy()
        other._w = self._w.copy()
        other._y = self._y.copy()
        other._g = self._g.copy()
        return other


__all__ = ["Layer"]
