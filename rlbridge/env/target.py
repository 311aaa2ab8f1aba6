"""Planar target-reaching task used for demos and end-to-end tests."""

from __future__ import annotations

import numpy as np

from rlbridge.env.component import ComponentConfig, EnvironmentComponent


class SimpleTargetEnvironment(EnvironmentComponent):
    """Agent moves in a square arena and is rewarded for closing in on a target.

    Observation (8): agent position (2), agent velocity (2), target position
    (2), raw distance, distance normalized by the arena diagonal.
    Action (2): planar movement, clamped to the unit circle.
    """

    def __init__(
        self,
        *,
        arena_size: float = 1000.0,
        target_radius: float = 50.0,
        max_speed: float = 500.0,
        reward_scale: float = 1.0,
        delta_time: float = 0.016,
        randomize_target: bool = True,
        randomize_start_position: bool = True,
        max_episode_length: int = 1000,
        seed: int | None = None,
    ) -> None:
        super().__init__(
            ComponentConfig(
                observation_dim=8,
                action_dim=2,
                max_episode_length=max_episode_length,
                continuous_actions=True,
            )
        )
        self.arena_size = float(arena_size)
        self.target_radius = float(target_radius)
        self.max_speed = float(max_speed)
        self.reward_scale = float(reward_scale)
        self.delta_time = float(delta_time)
        self.randomize_target = bool(randomize_target)
        self.randomize_start_position = bool(randomize_start_position)
        self._rng = np.random.default_rng(seed)

        self.agent_position = np.zeros(2, dtype=np.float64)
        self.agent_velocity = np.zeros(2, dtype=np.float64)
        self.target_position = np.array([500.0, 0.0], dtype=np.float64)
        self._previous_position = np.zeros(2, dtype=np.float64)
        self.distance_to_target = 0.0
        self.last_distance_to_target = 0.0
        self._update_agent_state()

    def set_target_position(self, x: float, y: float) -> None:
        self.target_position = np.clip(
            np.array([x, y], dtype=np.float64), -self.arena_size, self.arena_size
        )
        self._update_agent_state()

    def randomize_target_position(self) -> None:
        self.target_position = self._random_position()
        self._update_agent_state()

    def randomize_agent_position(self) -> None:
        self.agent_position = self._random_position()
        while np.linalg.norm(self.agent_position - self.target_position) < self.target_radius * 2.0:
            self.agent_position = self._random_position()
        self._update_agent_state()

    def is_agent_at_target(self) -> bool:
        return self.distance_to_target <= self.target_radius

    def on_reset(self) -> np.ndarray:
        if self.randomize_target:
            self.randomize_target_position()
        if self.randomize_start_position:
            self.randomize_agent_position()
        else:
            self.agent_position = np.zeros(2, dtype=np.float64)

        self.agent_velocity = np.zeros(2, dtype=np.float64)
        self._previous_position = self.agent_position.copy()
        self._update_agent_state()
        self.last_distance_to_target = self.distance_to_target
        return self.compute_observation()

    def on_step(self, action: np.ndarray) -> None:
        self._previous_position = self.agent_position.copy()
        self.last_distance_to_target = self.distance_to_target

        movement = np.zeros(2, dtype=np.float64)
        movement[: min(2, action.size)] = action[:2]
        norm = float(np.linalg.norm(movement))
        if norm > 1.0:
            movement /= norm

        self.agent_position = self.agent_position + movement * self.max_speed * self.delta_time
        self.agent_position = np.clip(self.agent_position, -self.arena_size, self.arena_size)
        self._update_agent_state()

    def compute_observation(self) -> np.ndarray:
        max_distance = self.arena_size * np.sqrt(2.0)
        return np.array(
            [
                self.agent_position[0] / self.arena_size,
                self.agent_position[1] / self.arena_size,
                np.clip(self.agent_velocity[0] / self.max_speed, -1.0, 1.0),
                np.clip(self.agent_velocity[1] / self.max_speed, -1.0, 1.0),
                self.target_position[0] / self.arena_size,
                self.target_position[1] / self.arena_size,
                self.distance_to_target,
                np.clip(self.distance_to_target / max_distance, 0.0, 1.0),
            ],
            dtype=np.float32,
        )

    def compute_reward(self) -> float:
        reward = (self.last_distance_to_target - self.distance_to_target) * self.reward_scale
        if self.is_agent_at_target():
            reward += 100.0 * self.reward_scale
        reward -= 0.1 * self.reward_scale
        return float(reward)

    def check_terminated(self) -> bool:
        return self.is_agent_at_target()

    def _random_position(self) -> np.ndarray:
        return self._rng.uniform(-self.arena_size, self.arena_size, size=2)

    def _update_agent_state(self) -> None:
        if self.delta_time > 0.0:
            self.agent_velocity = (self.agent_position - self._previous_position) / self.delta_time
        self.distance_to_target = float(np.linalg.norm(self.agent_position - self.target_position))
