"""Read and write network records with checksum validation."""

from __future__ import annotations

import hashlib
import json
import zipfile
from pathlib import Path
from typing import Mapping

import numpy as np

from .core.errors import PersistenceError

FORMAT = "backpropnets.network"
VERSION = 1
REQUIRED_KEYS = ("x_size", "y_size", "layer_count", "layers")


def _sha256(payload: bytes) -> str:
    return hashlib.sha256(payload).hexdigest()


def record_checksum(record: Mapping[str, object]) -> str:
    """Stable sha256 of ``record`` serialised with sorted keys."""

    canonical = json.dumps(record, sort_keys=True, separators=(",", ":"))
    return _sha256(canonical.encode("utf-8"))


def _check_record(record: object, path: Path) -> dict:
    if not isinstance(record, Mapping):
        raise PersistenceError(f"{path} does not hold a network record")
    missing = [key for key in REQUIRED_KEYS if key not in record]
    if missing:
        raise PersistenceError(f"{path} is missing record keys: {', '.join(missing)}")
    return dict(record)


def save_record(record: Mapping[str, object], path: str | Path) -> Path:
    """Write ``record`` to ``path``; ``.npz`` uses compressed numpy arrays."""

    path = Path(path)
    record = _check_record(record, path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() == ".npz":
            _save_npz(record, path)
        else:
            envelope = {
                "format": FORMAT,
                "version": VERSION,
                "checksum": record_checksum(record),
                "network": record,
            }
            path.write_text(json.dumps(envelope, indent=2))
    except (OSError, TypeError, ValueError) as exc:
        raise PersistenceError(f"Failed to write network record to {path}: {exc}") from exc
    return path


def load_record(path: str | Path) -> dict:
    """Load a record written by :func:`save_record`."""

    path = Path(path)
    if path.suffix.lower() == ".npz":
        return _load_npz(path)
    try:
        envelope = json.loads(path.read_text())
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise PersistenceError(f"Failed to read network record from {path}: {exc}") from exc
    if not isinstance(envelope, Mapping) or envelope.get("format") != FORMAT:
        raise PersistenceError(f"{path} is not a {FORMAT} file")
    if envelope.get("version") != VERSION:
        raise PersistenceError(
            f"{path} has unsupported version {envelope.get('version')!r}"
        )
    record = _check_record(envelope.get("network"), path)
    digest = record_checksum(record)
    if digest != envelope.get("checksum"):
        raise PersistenceError(
            f"Checksum mismatch for {path}: {digest} != {envelope.get('checksum')}"
        )
    return record


def _save_npz(record: Mapping[str, object], path: Path) -> None:
    header = {key: value for key, value in record.items() if key != "layers"}
    arrays: dict[str, np.ndarray] = {
        "header": np.array(json.dumps(header, sort_keys=True)),
    }
    for idx, layer in enumerate(record["layers"]):  # type: ignore[union-attr]
        shape = (int(layer["x_count"]), int(layer["y_count"]))
        arrays[f"layer{idx}_x"] = np.asarray(layer["x"], dtype=np.float64)
        arrays[f"layer{idx}_w"] = np.asarray(layer["w"], dtype=np.float64).reshape(shape)
        arrays[f"layer{idx}_y"] = np.asarray(layer["y"], dtype=np.float64)
    with path.open("wb") as handle:
        np.savez_compressed(handle, **arrays)


def _load_npz(path: Path) -> dict:
    try:
        with np.load(path, allow_pickle=False) as data:
            header = json.loads(str(data["header"]))
            layers = []
            for idx in range(int(header["layer_count"])):
                w = data[f"layer{idx}_w"]
                layers.append(
                    {
                        "x_count": int(w.shape[0]),
                        "y_count": int(w.shape[1]),
                        "x": data[f"layer{idx}_x"].tolist(),
                        "w": w.reshape(-1).tolist(),
                        "y": data[f"layer{idx}_y"].tolist(),
                    }
                )
    except (OSError, KeyError, ValueError, zipfile.BadZipFile) as exc:
        raise PersistenceError(f"Failed to read network record from {path}: {exc}") from exc
    header["layers"] = layers
    return _check_record(header, path)


__all__ = ["FORMAT", "VERSION", "record_checksum", "save_record", "load_record"]
