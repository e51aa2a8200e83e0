"""Activation utilities for BackpropNets."""

from __future__ import annotations

import numpy as np

from .types import Array


def sigmoid(z: Array) -> Array:
    """Return the logistic sigmoid ``1 / (1 + exp(-z))``."""

    return 1.0 / (1.0 + np.exp(-z))


def sigmoid_deriv(y: Array) -> Array:
    """Derivative of the sigmoid expressed through its output ``y``."""

    return y * (1.0 - y)
