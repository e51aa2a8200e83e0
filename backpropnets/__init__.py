"""BackpropNets public API."""

__version__ = "0.1.0"

from .config import load_config, load_preset, merge, presets, run_config  # noqa: E402
from .core import codec  # noqa: E402,F401
from .core.errors import (  # noqa: E402
    BackpropError,
    OutOfRangeError,
    PersistenceError,
    ShapeMismatchError,
    SizeMismatchError,
    SymbolError,
)
from .core.layer import Layer  # noqa: E402
from .core.network import Network, NetworkConfig, NetworkStats  # noqa: E402
from .core.types import RunResult  # noqa: E402
from .training import (  # noqa: E402
    EvolutionStats,
    Evolver,
    EvolverConfig,
    ExerciseStats,
    LearningAccelerator,
    Trainer,
    TrainerConfig,
    TrainingSet,
    TrainingStats,
)

__all__ = [
    "__version__",
    "BackpropError",
    "EvolutionStats",
    "Evolver",
    "EvolverConfig",
    "ExerciseStats",
    "Layer",
    "LearningAccelerator",
    "Network",
    "NetworkConfig",
    "NetworkStats",
    "OutOfRangeError",
    "PersistenceError",
    "RunResult",
    "ShapeMismatchError",
    "SizeMismatchError",
    "SymbolError",
    "Trainer",
    "TrainerConfig",
    "TrainingSet",
    "TrainingStats",
    "codec",
    "load_config",
    "load_preset",
    "merge",
    "presets",
    "run_config",
]
