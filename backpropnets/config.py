"""Presets, config files and the end-to-end run driver."""

from __future__ import annotations

import hashlib
import json
import string
import threading
import time
from copy import deepcopy
from pathlib import Path
from typing import Dict, Mapping

import yaml

from .core.network import Network, NetworkConfig
from .core.types import RunResult
from .reporting.artifacts import write_manifest
from .reporting.metrics import CsvSink, JsonlSink
from .training.evolver import Evolver, EvolverConfig
from .training.stats import EvolutionStats, ExerciseStats, TrainingStats
from .training.trainer import Trainer, TrainerConfig
from .training.training_set import TrainingSet

MODES = ("train", "evolve")
REQUIRED_SECTIONS = {"network", "data"}


def _caesar(shift: int) -> dict:
    letters = string.ascii_lowercase
    shifted = letters[shift:] + letters[:shift]
    return {"inputs": list(letters), "outputs": list(shifted)}


_PRESETS: Dict[str, Mapping[str, object]] = {
    "xor": {
        "network": {"x_size": 2, "y_size": 1, "layer_count": 2},
        "trainer": {"learning_rate": 0.5, "max_batch_sets": 128, "max_batches": 4},
        "evolver": {"max_attempts": 16, "policy": "randomize", "seed": 0},
        "data": {"inputs": ["00", "01", "10", "11"], "outputs": ["0", "1", "1", "0"]},
        "run": {"seed": 0, "random_scale": 1.0, "mode": "evolve", "run_dir": "runs/xor"},
    },
    "caesar-encode": {
        "network": {"x_size": 1, "y_size": 1, "layer_count": 2},
        "trainer": {"learning_rate": 0.5, "max_batch_sets": 256, "max_batches": 4},
        "evolver": {"max_attempts": 16, "policy": "randomize", "seed": 3},
        "data": _caesar(3),
        "run": {
            "seed": 3,
            "random_scale": 1.0,
            "mode": "evolve",
            "run_dir": "runs/caesar-encode",
        },
    },
    "caesar-decode": {
        "network": {"x_size": 1, "y_size": 1, "layer_count": 2},
        "trainer": {"learning_rate": 0.5, "max_batch_sets": 256, "max_batches": 4},
        "evolver": {"max_attempts": 16, "policy": "randomize", "seed": 23},
        "data": _caesar(23),
        "run": {
            "seed": 23,
            "random_scale": 1.0,
            "mode": "evolve",
            "run_dir": "runs/caesar-decode",
        },
    },
    "identity-pair": {
        "network": {"x_size": 1, "y_size": 1, "layer_count": 2},
        "trainer": {"learning_rate": 0.5, "max_batch_sets": 64, "max_batches": 2},
        "evolver": {"max_attempts": 4},
        "data": {"inputs": ["a", "b", "c"], "outputs": ["a", "b", "c"]},
        "run": {
            "seed": 1,
            "random_scale": 1.0,
            "mode": "train",
            "run_dir": "runs/identity-pair",
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[1] / "configs" / "presets"


def load_config(path: str | Path) -> Mapping[str, object]:
    """Read a JSON or YAML config file into a mapping."""

    path = Path(path)
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def presets() -> Dict[str, Mapping[str, object]]:
    """Built-in presets overlaid with the files under ``configs/presets``."""

    found: Dict[str, Mapping[str, object]] = deepcopy(_PRESETS)
    for file in sorted(_PRESET_DIR.glob("*.*")):
        if file.suffix.lower() in {".yaml", ".yml", ".json"}:
            found[file.stem] = dict(load_config(file))
    return found


def load_preset(name: str) -> Mapping[str, object]:
    try:
        return presets()[name]
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def merge(base: Mapping[str, object], override: Mapping[str, object]) -> dict:
    """Deep-merge ``override`` into a copy of ``base``."""

    merged = deepcopy(dict(base))
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge(merged[key], value)  # type: ignore[arg-type]
        else:
            merged[key] = deepcopy(value)
    return merged


def config_hash(config: Mapping[str, object]) -> str:
    """Return a stable 12-character hash for ``config``."""

    canonical = json.dumps(config, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:12]


def build(config: Mapping[str, object]):
    """Construct the network, training set, trainer and evolver configs."""

    missing = REQUIRED_SECTIONS - set(config)
    if missing:
        raise KeyError(f"Config is missing required sections: {', '.join(sorted(missing))}")
    network_cfg = NetworkConfig.from_mapping(config["network"])  # type: ignore[arg-type]
    trainer_cfg = TrainerConfig.from_mapping(config.get("trainer", {}))  # type: ignore[arg-type]
    evolver_cfg = EvolverConfig.from_mapping(config.get("evolver", {}))  # type: ignore[arg-type]
    training_set = TrainingSet.from_mapping(config["data"])  # type: ignore[arg-type]
    if (training_set.x_size, training_set.y_size) != (network_cfg.x_size, network_cfg.y_size):
        raise ValueError(
            f"Training set is {training_set.x_size}x{training_set.y_size} symbols but the "
            f"network is {network_cfg.x_size}x{network_cfg.y_size}"
        )
    return network_cfg, trainer_cfg, evolver_cfg, training_set


def run_config(
    config: Mapping[str, object], *, cancel: threading.Event | None = None
) -> RunResult:
    """Train or evolve a freshly randomized network as described by ``config``."""

    network_cfg, trainer_cfg, evolver_cfg, training_set = build(config)
    run_cfg = dict(config.get("run", {}))  # type: ignore[arg-type]
    mode = str(run_cfg.get("mode", "evolve"))
    if mode not in MODES:
        raise ValueError(f"Unknown run mode {mode!r}; expected one of {MODES}")
    seed = int(run_cfg.get("seed", 0))
    random_scale = float(run_cfg.get("random_scale", 1.0))
    run_dir = _resolve_run_dir(run_cfg, mode)
    run_dir.mkdir(parents=True, exist_ok=True)

    network = Network(network_cfg, seed=seed)
    network.randomize(random_scale)

    train_jsonl = JsonlSink(run_dir / "metrics.jsonl", split="train", seed=seed)
    train_csv = CsvSink(run_dir / "metrics.csv", split="train")
    trainer = Trainer(trainer_cfg, callbacks=[train_jsonl, train_csv], cancel=cancel)
    training_stats = TrainingStats()
    exercise_stats = ExerciseStats()
    evolution_stats = EvolutionStats()

    if mode == "train":
        result = trainer.train(training_stats, exercise_stats, network, training_set)
    else:
        attempts = JsonlSink(run_dir / "attempts.jsonl", split="evolve", seed=seed)
        evolver = Evolver(evolver_cfg, callbacks=[attempts], cancel=cancel)
        result = evolver.evolve(
            evolution_stats,
            trainer,
            training_stats,
            exercise_stats,
            network,
            training_set,
        )

    network_path = network.to_file(run_dir / str(run_cfg.get("network_file", "network.json")))
    resolved = json.loads(json.dumps(config))
    (run_dir / "config.json").write_text(json.dumps(resolved, indent=2))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=resolved,
        outcome={
            "mode": mode,
            "result": result,
            "converged": result == 0,
            "network": network.stats().to_dict(),
            "training_stats": training_stats.to_dict(),
            "exercise_stats": exercise_stats.to_dict(),
            "evolution_stats": evolution_stats.to_dict(),
        },
    )
    return RunResult(
        result=result,
        mode=mode,
        network_path=str(network_path),
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
    )


def _resolve_run_dir(run_cfg: Mapping[str, object], mode: str) -> Path:
    if "run_dir" in run_cfg:
        return Path(str(run_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / mode


__all__ = [
    "MODES",
    "build",
    "config_hash",
    "load_config",
    "load_preset",
    "merge",
    "presets",
    "run_config",
]
