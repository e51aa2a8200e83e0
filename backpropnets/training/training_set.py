"""Immutable collections of input to output symbol pairs."""

from __future__ import annotations

from typing import Iterator, Mapping, Sequence

from ..core import codec
from ..core.errors import OutOfRangeError, SizeMismatchError
from ..core.types import Symbol


class TrainingSet:
    """Parallel input and output symbols sharing one width per side.

    ``x_size`` and ``y_size`` come from the first pair; every other pair must
    match them.
    """

    __slots__ = ("_inputs", "_outputs", "_x_size", "_y_size")

    def __init__(self, inputs: Sequence[Symbol], outputs: Sequence[Symbol]) -> None:
        inputs = tuple(inputs)
        outputs = tuple(outputs)
        if len(inputs) != len(outputs):
            raise SizeMismatchError(
                f"Got {len(inputs)} inputs but {len(outputs)} outputs"
            )
        if not inputs:
            raise SizeMismatchError("A training set needs at least one pair")
        x_size = codec.width(inputs[0])
        y_size = codec.width(outputs[0])
        if x_size == 0 or y_size == 0:
            raise SizeMismatchError("Training symbols must not be empty")
        for idx, (x, y) in enumerate(zip(inputs, outputs)):
            if codec.width(x) != x_size:
                raise SizeMismatchError(
                    f"Input {idx} ({x!r}) has width {codec.width(x)}, expected {x_size}"
                )
            if codec.width(y) != y_size:
                raise SizeMismatchError(
                    f"Output {idx} ({y!r}) has width {codec.width(y)}, expected {y_size}"
                )
        object.__setattr__(self, "_inputs", inputs)
        object.__setattr__(self, "_outputs", outputs)
        object.__setattr__(self, "_x_size", x_size)
        object.__setattr__(self, "_y_size", y_size)

    def __setattr__(self, name: str, value: object) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "TrainingSet":
        """Build from ``{"inputs": [...], "outputs": [...]}`` or ``{input: output}``."""

        if "inputs" in data and "outputs" in data:
            return cls(data["inputs"], data["outputs"])  # type: ignore[arg-type]
        if "x" in data and "y" in data:
            return cls(data["x"], data["y"])  # type: ignore[arg-type]
        return cls(list(data.keys()), list(data.values()))  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return (
            f"TrainingSet(count={self.count}, x_size={self._x_size}, "
            f"y_size={self._y_size})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrainingSet):
            return NotImplemented
        return self._inputs == other._inputs and self._outputs == other._outputs

    def __hash__(self) -> int:
        return hash((self._inputs, self._outputs))

    @property
    def count(self) -> int:
        return len(self._inputs)

    @property
    def x_size(self) -> int:
        return self._x_size

    @property
    def y_size(self) -> int:
        return self._y_size

    @property
    def inputs(self) -> tuple[Symbol, ...]:
        return self._inputs

    @property
    def outputs(self) -> tuple[Symbol, ...]:
        return self._outputs

    def _check_index(self, index: int) -> int:
        count = len(self._inputs)
        if not -count <= index < count:
            raise OutOfRangeError(f"Pair index {index} out of range for {count} pairs")
        return index

    def x_at(self, index: int) -> Symbol:
        return self._inputs[self._check_index(index)]

    def y_at(self, index: int) -> Symbol:
        return self._outputs[self._check_index(index)]

    def pairs(self) -> Iterator[tuple[Symbol, Symbol]]:
        return zip(self._inputs, self._outputs)

    def __len__(self) -> int:
        return len(self._inputs)

    def __iter__(self) -> Iterator[tuple[Symbol, Symbol]]:
        return self.pairs()

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "x_size": self._x_size,
            "y_size": self._y_size,
            "x": list(self._inputs),
            "y": list(self._outputs),
        }


__all__ = ["TrainingSet"]
