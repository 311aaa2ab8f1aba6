"""Environment contract consumed by the training core."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class ExternalEnvironment(ABC):
    """Synchronous stepping environment driven by an agent.

    ``step`` stores the resulting state internally; the core reads it back
    through ``get_observation``/``get_reward``/``is_terminated``/``is_truncated``.
    """

    @abstractmethod
    def reset(self) -> np.ndarray:
        """Start a new episode and return its first observation."""

    @abstractmethod
    def step(self, action: np.ndarray) -> None:
        """Advance the environment by one action."""

    @abstractmethod
    def get_observation(self) -> np.ndarray:
        """Return the current observation."""

    @abstractmethod
    def get_reward(self) -> float:
        """Return the reward produced by the last step."""

    @abstractmethod
    def is_terminated(self) -> bool:
        """Whether the episode ended on its own (goal reached, failure, ...)."""

    def is_truncated(self) -> bool:
        return False

    def is_done(self) -> bool:
        return self.is_terminated() or self.is_truncated()

    @abstractmethod
    def get_observation_dim(self) -> int:
        ...

    @abstractmethod
    def get_action_dim(self) -> int:
        ...

    def get_max_episode_steps(self) -> int | None:
        return None

    def close(self) -> None:
        return None
