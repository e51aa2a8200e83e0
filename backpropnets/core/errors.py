"""Exception types raised by the engine."""

from __future__ import annotations


class BackpropError(Exception):
    """Base class for every error raised by BackpropNets."""


class ShapeMismatchError(BackpropError, ValueError):
    """A vector, matrix or layer chain does not have the declared shape."""


class OutOfRangeError(BackpropError, IndexError):
    """An index falls outside ``[-count, count)``."""


class SizeMismatchError(BackpropError, ValueError):
    """Training inputs and outputs do not line up."""


class SymbolError(BackpropError, ValueError):
    """A symbol cannot be represented by the byte codec."""


class PersistenceError(BackpropError, OSError):
    """A network record could not be read or written."""


__all__ = [
    "BackpropError",
    "ShapeMismatchError",
    "OutOfRangeError",
    "SizeMismatchError",
    "SymbolError",
    "PersistenceError",
]
