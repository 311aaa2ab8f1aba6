"""Strongly typed status snapshots, runner results and serialization helpers."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any

import numpy as np


def to_builtin(value: Any) -> Any:
    """Convert numpy/dataclass/path values into JSON-serializable builtins."""

    if is_dataclass(value):
        return {f.name: to_builtin(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): to_builtin(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_builtin(v) for v in value]
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, Path):
        return str(value)
    return value


@dataclass(slots=True, frozen=True)
class TrainingStatus:
    """Point-in-time copy of an agent's training progress."""

    is_training: bool = False
    is_paused: bool = False
    current_step: int = 0
    current_episode: int = 0
    average_reward: float = 0.0
    last_episode_reward: float = 0.0
    replay_buffer_size: int = 0
    update_count: int = 0
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return to_builtin(self)


@dataclass(slots=True, frozen=True)
class TrainingProgress:
    """Progress published by a background training task."""

    current_step: int = 0
    average_reward: float = 0.0
    is_complete: bool = False
    was_successful: bool = False


@dataclass(slots=True)
class TrainingResult:
    """Top-level training result payload."""

    agent_name: str
    log_path: str
    policy_path: str | None
    status: TrainingStatus
    episode_rewards: list[float] = field(default_factory=list)
    perf: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return to_builtin(self)


@dataclass(slots=True)
class EvaluationResult:
    """Top-level evaluation result payload."""

    policy_path: str | None
    episodes: int
    reward_mean: float
    reward_std: float
    episode_rewards: list[float] = field(default_factory=list)
    success_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return to_builtin(self)
