"""Byte-per-symbol codec shared by network activation and training.

Every symbol character is one Latin-1 byte.  A byte expands into
:data:`BITS_PER_SYMBOL` units, least significant bit first, where a set bit
is ``1.0`` and a clear bit ``0.0``.  Decoding thresholds every unit at
:data:`THRESHOLD` and packs the bits back into bytes, so
``decode(encode(s)) == s`` for every Latin-1 string.
"""

from __future__ import annotations

import numpy as np

from .errors import ShapeMismatchError, SymbolError
from .types import BITS_PER_SYMBOL, Array, Symbol, Vector

ENCODING = "latin-1"
THRESHOLD = 0.5


def to_bytes(symbol: Symbol) -> bytes:
    """Return the raw bytes of ``symbol``."""

    if isinstance(symbol, (bytes, bytearray)):
        return bytes(symbol)
    if not isinstance(symbol, str):
        raise SymbolError(f"Symbols must be str or bytes, got {type(symbol).__name__}")
    try:
        return symbol.encode(ENCODING)
    except UnicodeEncodeError as exc:
        raise SymbolError(f"Symbol {symbol!r} is outside the {ENCODING} alphabet") from exc


def width(symbol: Symbol) -> int:
    """Number of characters (bytes) in ``symbol``."""

    return len(to_bytes(symbol))


def encode(symbol: Symbol, size: int | None = None) -> Array:
    """Expand ``symbol`` into a float vector of ``BITS_PER_SYMBOL`` units per byte."""

    data = to_bytes(symbol)
    if size is not None and len(data) != size:
        raise ShapeMismatchError(
            f"Symbol {symbol!r} has width {len(data)}, expected {size}"
        )
    bits = np.unpackbits(np.frombuffer(data, dtype=np.uint8), bitorder="little")
    return bits.astype(np.float64)


def decode(values: Vector) -> str:
    """Threshold ``values`` at :data:`THRESHOLD` and pack them back into a symbol."""

    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size % BITS_PER_SYMBOL:
        raise ShapeMismatchError(
            f"Cannot decode {arr.size} units; expected a multiple of {BITS_PER_SYMBOL}"
        )
    bits = (arr > THRESHOLD).astype(np.uint8)
    return np.packbits(bits, bitorder="little").tobytes().decode(ENCODING)


def count_bit_errors(values: Vector, target: Vector) -> int:
    """Count units of ``values`` that land on the wrong side of the threshold."""

    actual = np.asarray(values, dtype=np.float64) > THRESHOLD
    wanted = np.asarray(target, dtype=np.float64) > THRESHOLD
    if actual.shape != wanted.shape:
        raise ShapeMismatchError(
            f"Cannot compare {actual.size} units against {wanted.size} target units"
        )
    return int(np.count_nonzero(actual != wanted))


def bit_errors(actual: Symbol, expected: Symbol) -> int:
    """Hamming distance between two symbols of equal width."""

    a = np.frombuffer(to_bytes(actual), dtype=np.uint8)
    e = np.frombuffer(to_bytes(expected), dtype=np.uint8)
    if a.size != e.size:
        raise ShapeMismatchError(f"Symbols {actual!r} and {expected!r} differ in width")
    return int(np.unpackbits(a ^ e).sum())


__all__ = [
    "ENCODING",
    "THRESHOLD",
    "to_bytes",
    "width",
    "encode",
    "decode",
    "count_bit_errors",
    "bit_errors",
]
