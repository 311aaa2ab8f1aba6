"""Metrics extraction utilities."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from rlbridge.runners.types import TrainingStatus


def status_to_metrics(status: TrainingStatus) -> dict[str, float]:
    """Flatten a status snapshot into scalar metrics for the tianshou logger."""

    return {
        "episode": float(status.current_episode),
        "average_reward": float(status.average_reward),
        "last_episode_reward": float(status.last_episode_reward),
        "replay_buffer_size": float(status.replay_buffer_size),
        "update_count": float(status.update_count),
    }


def reward_stats(rewards: list[float] | np.ndarray) -> dict[str, float]:
    """Mean/std of episode returns; NaN when no episode finished."""

    arr = np.asarray(rewards, dtype=np.float32).reshape(-1)
    if arr.size == 0:
        return {"reward_mean": float("nan"), "reward_std": float("nan")}
    return {"reward_mean": float(arr.mean()), "reward_std": float(arr.std())}
