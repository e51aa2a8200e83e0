"""Core numerical primitives for BackpropNets."""

from . import activations, codec, errors, types
from .layer import Layer
from .network import LayerStats, Network, NetworkConfig, NetworkStats

__all__ = [
    "activations",
    "codec",
    "errors",
    "types",
    "Layer",
    "LayerStats",
    "Network",
    "NetworkConfig",
    "NetworkStats",
]
