"""Core typing contracts for BackpropNets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

Array = np.ndarray

Symbol = Union[str, bytes]
Vector = Union[Sequence[float], Array]

BITS_PER_SYMBOL = 8


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`backpropnets.config.run_config`."""

    result: int
    mode: str
    network_path: str
    metrics_path: str
    manifest_path: str
