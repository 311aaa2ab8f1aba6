"""Gymnasium ``Box``-space environments exposed through the stepping contract."""

from __future__ import annotations

from typing import Any

import gymnasium as gym
import numpy as np
from gymnasium.spaces import Box

from rlbridge.core.exceptions import ConfigurationError
from rlbridge.data.normalization import NormalizationParams
from rlbridge.env.base import ExternalEnvironment


def _flat_dim(space: Box) -> int:
    return int(np.prod(space.shape))


class GymEnvironment(ExternalEnvironment):
    """Wraps a gymnasium env with continuous observation and action spaces."""

    def __init__(self, env: gym.Env, seed: int | None = None) -> None:
        if not isinstance(env.observation_space, Box) or not isinstance(env.action_space, Box):
            raise ConfigurationError(
                "GymEnvironment requires Box observation and action spaces, got "
                f"{type(env.observation_space).__name__}/{type(env.action_space).__name__}."
            )
        self.env = env
        self._seed = seed
        self._observation = np.zeros(_flat_dim(env.observation_space), dtype=np.float32)
        self._reward = 0.0
        self._terminated = False
        self._truncated = False
        self._last_info: dict[str, Any] = {}

    @classmethod
    def make(cls, task: str, seed: int | None = None, **kwargs: Any) -> GymEnvironment:
        return cls(gym.make(task, **kwargs), seed=seed)

    @property
    def action_low(self) -> np.ndarray:
        return np.asarray(self.env.action_space.low, dtype=np.float32).reshape(-1)

    @property
    def action_high(self) -> np.ndarray:
        return np.asarray(self.env.action_space.high, dtype=np.float32).reshape(-1)

    def action_normalization(self) -> NormalizationParams:
        """Params mapping tanh-range policy outputs onto the action bounds."""

        low, high = self.action_low, self.action_high
        return NormalizationParams(
            enabled=True,
            mean=tuple(((high + low) / 2.0).tolist()),
            stddev=tuple(((high - low) / 2.0).tolist()),
        )

    def reset(self) -> np.ndarray:
        obs, info = self.env.reset(seed=self._seed)
        # Only the first reset is seeded; later episodes continue the env's RNG stream.
        self._seed = None
        self._observation = np.asarray(obs, dtype=np.float32).reshape(-1)
        self._reward = 0.0
        self._terminated = False
        self._truncated = False
        self._last_info = dict(info)
        return self._observation.copy()

    def step(self, action: np.ndarray) -> None:
        space = self.env.action_space
        clipped = np.clip(
            np.asarray(action, dtype=np.float32).reshape(space.shape),
            space.low,
            space.high,
        )
        obs, reward, terminated, truncated, info = self.env.step(clipped)
        self._observation = np.asarray(obs, dtype=np.float32).reshape(-1)
        self._reward = float(reward)
        self._terminated = bool(terminated)
        self._truncated = bool(truncated)
        self._last_info = dict(info)

    def get_observation(self) -> np.ndarray:
        return self._observation.copy()

    def get_reward(self) -> float:
        return self._reward

    def is_terminated(self) -> bool:
        return self._terminated

    def is_truncated(self) -> bool:
        return self._truncated

    def get_observation_dim(self) -> int:
        return _flat_dim(self.env.observation_space)

    def get_action_dim(self) -> int:
        return _flat_dim(self.env.action_space)

    def get_max_episode_steps(self) -> int | None:
        spec = getattr(self.env, "spec", None)
        if spec is None or spec.max_episode_steps is None:
            return None
        return int(spec.max_episode_steps)

    def close(self) -> None:
        self.env.close()
