"""Agent lifecycle, training loop and train/eval runners."""

from rlbridge.runners.agent import Agent, AgentState
from rlbridge.runners.async_task import BackgroundTrainer
from rlbridge.runners.manager import AgentManager
from rlbridge.runners.pipeline import evaluate, train
from rlbridge.runners.types import (
    EvaluationResult,
    TrainingProgress,
    TrainingResult,
    TrainingStatus,
    to_builtin,
)

__all__ = [
    "Agent",
    "AgentManager",
    "AgentState",
    "BackgroundTrainer",
    "EvaluationResult",
    "TrainingProgress",
    "TrainingResult",
    "TrainingStatus",
    "evaluate",
    "to_builtin",
    "train",
]
