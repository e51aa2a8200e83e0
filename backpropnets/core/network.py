"""Chains of sigmoid layers with symbol-level activation."""

from __future__ import annotations

import copy as _copy
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, Mapping, Sequence

import numpy as np

from . import codec
from .errors import OutOfRangeError, ShapeMismatchError
from .layer import Layer
from .types import BITS_PER_SYMBOL, Array, Symbol, Vector


@dataclass
class NetworkConfig:
    """Construction options for :class:`Network`.

    ``x_size`` and ``y_size`` count symbols (characters).  Every
    intermediate boundary of the chain has
    ``hidden_factor * 8 * max(x_size, y_size)`` units.
    """

    x_size: int
    y_size: int
    layer_count: int = 2
    hidden_factor: int = 4
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.x_size < 1 or self.y_size < 1:
            raise ValueError(
                f"x_size and y_size must be positive, got {self.x_size} and {self.y_size}"
            )
        if self.layer_count < 2:
            raise ValueError(f"layer_count must be at least 2, got {self.layer_count}")
        if self.hidden_factor < 1:
            raise ValueError(f"hidden_factor must be positive, got {self.hidden_factor}")
        if self.jitter < 0:
            raise ValueError(f"jitter must be non-negative, got {self.jitter}")

    @property
    def hidden_count(self) -> int:
        return self.hidden_factor * BITS_PER_SYMBOL * max(self.x_size, self.y_size)

    def layer_dims(self) -> list[int]:
        """Unit counts at every boundary of the chain, input first."""

        inner = [self.hidden_count] * (self.layer_count - 1)
        return [BITS_PER_SYMBOL * self.x_size, *inner, BITS_PER_SYMBOL * self.y_size]

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "NetworkConfig":
        known = {"x_size", "y_size", "layer_count", "hidden_factor", "jitter"}
        unknown = set(data) - known
        if unknown:
            raise KeyError(f"Unknown network options: {', '.join(sorted(unknown))}")
        return cls(**data)  # type: ignore[arg-type]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LayerStats:
    x_count: int
    y_count: int
    w_count: int
    w_sum: float
    w_mean: float
    w_stddev: float


@dataclass(frozen=True)
class NetworkStats:
    """Immutable snapshot returned by :meth:`Network.stats`."""

    x_size: int
    y_size: int
    layers_count: int
    layers_w_count: int
    layers_w_mean: float
    layers_w_stddev: float
    layers: tuple[LayerStats, ...]

    def to_dict(self) -> dict:
        return asdict(self)


def _check_chain(layers: Sequence[Layer]) -> None:
    if len(layers) < 2:
        raise ShapeMismatchError(f"A network needs at least 2 layers, got {len(layers)}")
    for idx, (lower, upper) in enumerate(zip(layers[:-1], layers[1:])):
        if lower.y_count != upper.x_count:
            raise ShapeMismatchError(
                f"Layer {idx} emits {lower.y_count} units but layer {idx + 1} "
                f"expects {upper.x_count}"
            )
    for name, count in (("input", layers[0].x_count), ("output", layers[-1].y_count)):
        if count % BITS_PER_SYMBOL:
            raise ShapeMismatchError(
                f"Network {name} width {count} is not a multiple of {BITS_PER_SYMBOL}"
            )


class Network:
    """Ordered chain of :class:`Layer` objects.

    ``Network(NetworkConfig(...))`` and ``Network(x_size, y_size, layer_count)``
    are equivalent.  The network owns one ``numpy.random.Generator`` that
    feeds every layer.
    """

    def __init__(
        self,
        config: NetworkConfig | int,
        y_size: int | None = None,
        layer_count: int = 2,
        *,
        hidden_factor: int = 4,
        jitter: float = 0.0,
        rng: np.random.Generator | None = None,
        seed: int | None = None,
    ) -> None:
        if not isinstance(config, NetworkConfig):
            if y_size is None:
                raise TypeError("y_size is required when x_size is given directly")
            config = NetworkConfig(
                x_size=int(config),
                y_size=int(y_size),
                layer_count=int(layer_count),
                hidden_factor=int(hidden_factor),
                jitter=float(jitter),
            )
        if rng is None:
            rng = np.random.default_rng(seed)
        self._rng = rng
        dims = config.layer_dims()
        self._layers = [
            Layer(x_count, y_count, rng=self._rng)
            for x_count, y_count in zip(dims[:-1], dims[1:])
        ]
        self._jitter = float(config.jitter)
        self._output = np.zeros(self._layers[-1].y_count, dtype=np.float64)

    @classmethod
    def from_layers(
        cls,
        layers: Iterable[Layer],
        *,
        jitter: float = 0.0,
        rng: np.random.Generator | None = None,
    ) -> "Network":
        """Wrap existing layers after validating the chain."""

        layers = list(layers)
        _check_chain(layers)
        network = cls.__new__(cls)
        network._rng = rng if rng is not None else np.random.default_rng()
        network._layers = layers
        for layer in layers:
            layer.rng = network._rng
        network._jitter = 0.0
        network.jitter = jitter
        network._output = layers[-1].y
        return network

    def __repr__(self) -> str:
        dims = [self._layers[0].x_count] + [layer.y_count for layer in self._layers]
        return f"Network(x_size={self.x_size}, y_size={self.y_size}, dims={dims})"

    # ------------------------------------------------------------------
    # Shape

    @property
    def x_size(self) -> int:
        return self._layers[0].x_count // BITS_PER_SYMBOL

    @property
    def y_size(self) -> int:
        return self._layers[-1].y_count // BITS_PER_SYMBOL

    @property
    def x_count(self) -> int:
        return self._layers[0].x_count

    @property
    def y_count(self) -> int:
        return self._layers[-1].y_count

    @property
    def layers_count(self) -> int:
        return len(self._layers)

    @property
    def layers(self) -> tuple[Layer, ...]:
        return tuple(self._layers)

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    def layer_get(self, index: int) -> Layer:
        count = len(self._layers)
        if not -count <= index < count:
            raise OutOfRangeError(f"Layer index {index} out of range for {count} layers")
        return self._layers[index]

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self):
        return iter(self._layers)

    @property
    def jitter(self) -> float:
        return self._jitter

    @jitter.setter
    def jitter(self, value: float) -> None:
        value = float(value)
        if value < 0:
            raise ValueError(f"jitter must be non-negative, got {value}")
        self._jitter = value

    # ------------------------------------------------------------------
    # Activation

    def activate(self, values: Symbol | Vector) -> str | bytes | Array:
        """Feed ``values`` through every layer.

        A symbol is encoded and the output decoded back into a symbol of the
        same type (``str`` or ``bytes``); a numeric vector of ``x_count`` units
        returns the raw output vector.
        """

        if isinstance(values, (str, bytes, bytearray)):
            self._feed(codec.encode(values, self.x_size))
            decoded = codec.decode(self._output)
            if isinstance(values, str):
                return decoded
            return codec.to_bytes(decoded)
        vector = np.asarray(values, dtype=np.float64)
        if vector.ndim != 1 or vector.size != self.x_count:
            raise ShapeMismatchError(
                f"Input vector must have {self.x_count} units, got shape {vector.shape}"
            )
        self._feed(vector)
        return self._output.copy()

    def _feed(self, vector: Array) -> None:
        signal = vector
        for layer in self._layers:
            layer.x = signal
            signal = layer.activate()
        self._output = signal

    @property
    def output(self) -> Array:
        return self._output.copy()

    @property
    def output_symbol(self) -> str:
        return codec.decode(self._output)

    # ------------------------------------------------------------------
    # Weight mutation

    def randomize(self, scale: float, seed: int | None = None) -> None:
        """Randomize every layer, then add ``U[-jitter, jitter]`` noise once.

        A ``seed`` reseeds the network generator so the whole network is
        reproducible.
        """

        if seed is not None:
            self.reseed(seed)
        for layer in self._layers:
            layer.randomize(scale, rng=self._rng)
        if self._jitter:
            for layer in self._layers:
                layer.jitter(self._jitter, rng=self._rng)

    def reseed(self, seed: int | None) -> None:
        self._rng = np.random.default_rng(seed)
        for layer in self._layers:
            layer.rng = self._rng

    def prune(self, percent: float) -> int:
        return sum(layer.prune(percent) for layer in self._layers)

    def prune_below(self, threshold: float) -> int:
        return sum(layer.prune_below(threshold) for layer in self._layers)

    def round(self) -> None:
        for layer in self._layers:
            layer.round()

    def identity(self) -> None:
        for layer in self._layers:
            layer.identity()

    def reset(self) -> None:
        for layer in self._layers:
            layer.reset()
        self._output = np.zeros(self.y_count, dtype=np.float64)

    # ------------------------------------------------------------------
    # Statistics

    def _flat_weights(self) -> Array:
        return np.concatenate([layer.w.reshape(-1) for layer in self._layers])

    @property
    def w_count(self) -> int:
        return int(sum(layer.w_count for layer in self._layers))

    @property
    def w_sum(self) -> float:
        return float(sum(layer.w_sum for layer in self._layers))

    @property
    def w_mean(self) -> float:
        return self.w_sum / self.w_count

    @property
    def w_stddev(self) -> float:
        return float(self._flat_weights().std())

    def nonzero_count(self) -> int:
        return int(sum(layer.nonzero_count() for layer in self._layers))

    def stats(self) -> NetworkStats:
        layers = tuple(
            LayerStats(
                x_count=layer.x_count,
                y_count=layer.y_count,
                w_count=layer.w_count,
                w_sum=layer.w_sum,
                w_mean=layer.w_mean,
                w_stddev=layer.w_stddev,
            )
            for layer in self._layers
        )
        return NetworkStats(
            x_size=self.x_size,
            y_size=self.y_size,
            layers_count=self.layers_count,
            layers_w_count=self.w_count,
            layers_w_mean=self.w_mean,
            layers_w_stddev=self.w_stddev,
            layers=layers,
        )

    # ------------------------------------------------------------------
    # Copies

    def copy(self) -> "Network":
        """Deep copy with an independent clone of the generator."""

        rng = _copy.deepcopy(self._rng)
        layers = [layer.copy() for layer in self._layers]
        network = Network.from_layers(layers, jitter=self._jitter, rng=rng)
        network._output = self._output.copy()
        return network

    def same_shape(self, other: "Network") -> bool:
        return [layer.shape for layer in self._layers] == [
            layer.shape for layer in other._layers
        ]

    def copy_weights_from(self, other: "Network") -> None:
        if not self.same_shape(other):
            raise ShapeMismatchError(f"Cannot copy weights from {other!r} into {self!r}")
        for mine, theirs in zip(self._layers, other._layers):
            mine.w = theirs.w

    # ------------------------------------------------------------------
    # Records

    def to_record(self) -> dict:
        return {
            "x_size": self.x_size,
            "y_size": self.y_size,
            "layer_count": self.layers_count,
            "jitter": self._jitter,
            "layers": [layer.to_record() for layer in self._layers],
        }

    @classmethod
    def from_record(
        cls, record: Mapping[str, object], *, rng: np.random.Generator | None = None
    ) -> "Network":
        layers_data = record.get("layers")
        if not isinstance(layers_data, Sequence) or isinstance(layers_data, (str, bytes)):
            raise KeyError("Network record has no 'layers' sequence")
        layers = [Layer.from_record(item) for item in layers_data]  # type: ignore[arg-type]
        network = cls.from_layers(
            layers, jitter=float(record.get("jitter", 0.0)), rng=rng  # type: ignore[arg-type]
        )
        network._check_record_header(record)
        return network

    def load_record(self, record: Mapping[str, object]) -> None:
        """Restore every layer from ``record`` in place; shapes must match."""

        self._check_record_header(record)
        layers_data = record.get("layers")
        if not isinstance(layers_data, Sequence) or len(layers_data) != len(self._layers):
            raise ShapeMismatchError(
                f"Record does not describe {len(self._layers)} layers"
            )
        for idx, (layer, item) in enumerate(zip(self._layers, layers_data)):
            shape = (
                int(item.get("x_count", layer.x_count)),
                int(item.get("y_count", layer.y_count)),
            )
            if shape != layer.shape:
                raise ShapeMismatchError(
                    f"Record layer {idx} has shape {shape}, network has {layer.shape}"
                )
            layer.load_record(item)
        self.jitter = float(record.get("jitter", self._jitter))  # type: ignore[arg-type]
        self._output = self._layers[-1].y

    def _check_record_header(self, record: Mapping[str, object]) -> None:
        for key, actual in (
            ("x_size", self.x_size),
            ("y_size", self.y_size),
            ("layer_count", self.layers_count),
        ):
            if key in record and int(record[key]) != actual:  # type: ignore[arg-type]
                raise ShapeMismatchError(
                    f"Record {key}={record[key]} does not match network {key}={actual}"
                )

    def to_file(self, path: str | Path) -> Path:
        from ..persistence import save_record

        return save_record(self.to_record(), path)

    @classmethod
    def from_file(
        cls, path: str | Path, *, rng: np.random.Generator | None = None
    ) -> "Network":
        from ..persistence import load_record

        return cls.from_record(load_record(path), rng=rng)


__all__ = ["LayerStats", "Network", "NetworkConfig", "NetworkStats"]
