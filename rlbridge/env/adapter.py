"""Adapter exposing an external environment in the training core's representation."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from rlbridge.data.normalization import (
    NormalizationParams,
    fit_to_length,
    from_matrix,
    to_matrix,
)
from rlbridge.env.base import ExternalEnvironment

logger = logging.getLogger(__name__)

DEFAULT_MAX_EPISODE_STEPS = 1000


@dataclass(slots=True, frozen=True)
class AdapterStep:
    """Result of one adapter step, observation already in internal form."""

    obs_next: np.ndarray
    reward: float
    terminated: bool
    truncated: bool


class EnvironmentAdapter:
    """Converts between external observations/actions and normalized core tensors.

    Wrong-length external vectors are zero-padded or truncated with a warning so
    the training loop stays alive. A missing environment turns every call into a
    logged no-op returning a zero observation, zero reward and ``terminated=True``.
    """

    def __init__(
        self,
        environment: ExternalEnvironment | None,
        observation_dim: int,
        action_dim: int,
        observation_norm: NormalizationParams | None = None,
        action_norm: NormalizationParams | None = None,
        default_max_episode_steps: int = DEFAULT_MAX_EPISODE_STEPS,
    ) -> None:
        self.environment = environment
        self.observation_dim = int(observation_dim)
        self.action_dim = int(action_dim)
        self.observation_norm = observation_norm or NormalizationParams.disabled()
        self.action_norm = action_norm or NormalizationParams.disabled()
        self.default_max_episode_steps = int(default_max_episode_steps)

    @property
    def attached(self) -> bool:
        return self.environment is not None

    def detach(self) -> None:
        self.environment = None

    def _zero_observation(self) -> np.ndarray:
        return np.zeros(self.observation_dim, dtype=np.float32)

    def to_internal_observation(self, external_obs: np.ndarray) -> np.ndarray:
        obs = fit_to_length(external_obs, self.observation_dim, "Observation")
        return to_matrix(obs, 1, self.observation_dim, self.observation_norm)[0]

    def to_external_action(self, action_matrix: np.ndarray) -> np.ndarray:
        action = from_matrix(action_matrix, self.action_norm)
        return fit_to_length(action, self.action_dim, "Action")

    def reset(self) -> np.ndarray:
        if self.environment is None:
            logger.error("EnvironmentAdapter.reset called without an environment.")
            return self._zero_observation()
        return self.to_internal_observation(self.environment.reset())

    def observe(self) -> np.ndarray:
        if self.environment is None:
            logger.error("EnvironmentAdapter.observe called without an environment.")
            return self._zero_observation()
        return self.to_internal_observation(self.environment.get_observation())

    def step(self, action_matrix: np.ndarray) -> AdapterStep:
        if self.environment is None:
            logger.error("EnvironmentAdapter.step called without an environment.")
            return AdapterStep(
                obs_next=self._zero_observation(),
                reward=0.0,
                terminated=True,
                truncated=False,
            )

        self.environment.step(self.to_external_action(action_matrix))
        return AdapterStep(
            obs_next=self.to_internal_observation(self.environment.get_observation()),
            reward=float(self.environment.get_reward()),
            terminated=bool(self.environment.is_terminated()),
            truncated=bool(self.environment.is_truncated()),
        )

    def max_episode_steps(self) -> int:
        if self.environment is not None:
            cap = self.environment.get_max_episode_steps()
            if cap is not None and cap > 0:
                return int(cap)
        return self.default_max_episode_steps
