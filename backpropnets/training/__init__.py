"""Training, evolution and their statistics."""

from .evolver import POLICIES, Evolver, EvolverConfig
from .stats import EvolutionStats, ExerciseStats, TrainingStats
from .trainer import LearningAccelerator, Trainer, TrainerConfig
from .training_set import TrainingSet

__all__ = [
    "POLICIES",
    "Evolver",
    "EvolverConfig",
    "EvolutionStats",
    "ExerciseStats",
    "TrainingStats",
    "LearningAccelerator",
    "Trainer",
    "TrainerConfig",
    "TrainingSet",
]
