"""Overridable environment base with step counting and termination bookkeeping."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from rlbridge.data.normalization import fit_to_length
from rlbridge.env.base import ExternalEnvironment

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ComponentConfig:
    observation_dim: int = 4
    action_dim: int = 2
    max_episode_length: int = 1000
    continuous_actions: bool = True


StepListener = Callable[[np.ndarray, float, bool, bool], None]
ResetListener = Callable[[np.ndarray], None]


class EnvironmentComponent(ExternalEnvironment):
    """Base environment that concrete tasks customize by overriding hooks.

    Subclasses override ``on_reset``, ``on_step``, ``compute_observation``,
    ``compute_reward``, ``check_terminated`` and ``check_truncated``. The base
    class owns the step counter, the cached observation/reward, and the rule
    that termination suppresses truncation unless the episode length cap was
    reached on the same step.
    """

    def __init__(self, config: ComponentConfig | None = None) -> None:
        self.config = config or ComponentConfig()
        self.current_step = 0
        self.terminated = False
        self.truncated = False
        self._last_observation = np.zeros(self.config.observation_dim, dtype=np.float32)
        self._last_reward = 0.0
        self._reset_listeners: list[ResetListener] = []
        self._step_listeners: list[StepListener] = []

    def add_reset_listener(self, listener: ResetListener) -> None:
        self._reset_listeners.append(listener)

    def add_step_listener(self, listener: StepListener) -> None:
        self._step_listeners.append(listener)

    # Hooks -------------------------------------------------------------

    def on_reset(self) -> np.ndarray | None:
        return None

    def on_step(self, action: np.ndarray) -> None:
        return None

    def compute_observation(self) -> np.ndarray:
        return self._last_observation

    def compute_reward(self) -> float:
        return 0.0

    def check_terminated(self) -> bool:
        return False

    def check_truncated(self) -> bool:
        return False

    # Contract ----------------------------------------------------------

    def reset(self) -> np.ndarray:
        self.current_step = 0
        self.terminated = False
        self.truncated = False
        self._last_reward = 0.0

        initial = self.on_reset()
        if initial is None:
            initial = np.zeros(self.config.observation_dim, dtype=np.float32)
        self._last_observation = fit_to_length(
            initial, self.config.observation_dim, "Reset observation"
        )
        for listener in self._reset_listeners:
            listener(self._last_observation)
        return self._last_observation.copy()

    def step(self, action: np.ndarray) -> None:
        if self.terminated or self.truncated:
            logger.warning("Step called on a finished episode; call reset() first.")
            self._notify_step()
            return

        self.on_step(np.asarray(action, dtype=np.float32).reshape(-1))
        self.current_step += 1

        observation = self.compute_observation()
        self._last_reward = float(self.compute_reward())
        self.terminated = bool(self.check_terminated())
        max_steps_reached = (
            self.config.max_episode_length > 0
            and self.current_step >= self.config.max_episode_length
        )
        self.truncated = bool(self.check_truncated()) or max_steps_reached
        if self.terminated and not max_steps_reached:
            self.truncated = False

        self._last_observation = fit_to_length(
            observation, self.config.observation_dim, "Step observation"
        )
        self._notify_step()

    def _notify_step(self) -> None:
        for listener in self._step_listeners:
            listener(self._last_observation, self._last_reward, self.terminated, self.truncated)

    def get_observation(self) -> np.ndarray:
        return self._last_observation.copy()

    def get_reward(self) -> float:
        return self._last_reward

    def is_terminated(self) -> bool:
        return self.terminated

    def is_truncated(self) -> bool:
        return self.truncated

    def is_episode_finished(self) -> bool:
        return self.terminated or self.truncated

    def get_observation_dim(self) -> int:
        return int(self.config.observation_dim)

    def get_action_dim(self) -> int:
        return int(self.config.action_dim)

    def get_max_episode_steps(self) -> int | None:
        if self.config.max_episode_length > 0:
            return int(self.config.max_episode_length)
        return None
