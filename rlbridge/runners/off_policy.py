"""Environment-interaction loop feeding a replay buffer and a TD3 learner."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

import numpy as np

from rlbridge.algos.td3 import TD3Learner
from rlbridge.core.config import AgentConfig
from rlbridge.core.context import NumericContext
from rlbridge.core.exceptions import InsufficientDataError
from rlbridge.data.replay_buffer import ReplayBuffer
from rlbridge.env.adapter import EnvironmentAdapter
from rlbridge.models import networks
from rlbridge.utils.perf import PerfTracker

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class EpisodeEnd:
    """How and with what return an episode finished."""

    episode: int
    reward: float
    length: int
    terminated: bool
    truncated: bool


class EpisodeTracker:
    """Per-episode counters, the end-of-episode decision and a trailing reward window."""

    def __init__(self, max_episode_steps: int, reward_window: int = 100) -> None:
        self.max_episode_steps = int(max_episode_steps)
        self.recent_rewards: deque[float] = deque(maxlen=int(reward_window))
        self.current_episode = 0
        self.episode_step = 0
        self.episode_reward = 0.0
        self.last_episode_reward = 0.0

    def reset(self) -> None:
        self.recent_rewards.clear()
        self.current_episode = 0
        self.last_episode_reward = 0.0
        self.start_episode()

    def start_episode(self) -> None:
        self.episode_step = 0
        self.episode_reward = 0.0

    @property
    def average_reward(self) -> float:
        if not self.recent_rewards:
            return 0.0
        return float(np.mean(self.recent_rewards))

    def record_step(self, reward: float, terminated: bool, truncated: bool) -> EpisodeEnd | None:
        """Account one step; return an ``EpisodeEnd`` when the episode is over.

        Termination wins over the step cap: a terminated episode reports
        ``truncated`` only when the cap was reached on that same step.
        """

        self.episode_step += 1
        self.episode_reward += float(reward)

        cap_reached = self.episode_step >= self.max_episode_steps
        if terminated:
            truncated = cap_reached
        else:
            truncated = bool(truncated) or cap_reached
        if not (terminated or truncated):
            return None

        end = EpisodeEnd(
            episode=self.current_episode,
            reward=self.episode_reward,
            length=self.episode_step,
            terminated=bool(terminated),
            truncated=truncated,
        )
        self.recent_rewards.append(self.episode_reward)
        self.last_episode_reward = self.episode_reward
        self.current_episode += 1
        self.start_episode()
        return end


@dataclass(slots=True)
class StepOutcome:
    episode_end: EpisodeEnd | None = None
    metrics: dict[str, float] = field(default_factory=dict)

    @property
    def updated(self) -> bool:
        return bool(self.metrics)


class OffPolicyRunner:
    """Drives one agent's collect/store/update cycle, one environment step at a time."""

    def __init__(
        self,
        adapter: EnvironmentAdapter,
        buffer: ReplayBuffer,
        learner: TD3Learner,
        config: AgentConfig,
        context: NumericContext,
        seed: int | None = None,
        perf: PerfTracker | None = None,
    ) -> None:
        self.adapter = adapter
        self.buffer = buffer
        self.learner = learner
        self.config = config
        self.context = context
        self.perf = perf or PerfTracker()
        self._rng = np.random.default_rng(seed)

        max_episode_steps = config.max_episode_steps or adapter.max_episode_steps()
        self.tracker = EpisodeTracker(max_episode_steps, config.reward_window)
        self.current_step = 0
        self.current_obs = np.zeros(config.observation_dim, dtype=np.float32)
        self.last_metrics: dict[str, float] = {}

    @property
    def update_count(self) -> int:
        return self.learner.update_count

    @property
    def finished(self) -> bool:
        return self.current_step >= self.config.max_training_steps

    def reset(self) -> None:
        self.current_step = 0
        self.last_metrics = {}
        self.tracker.reset()
        self.current_obs = self.adapter.reset()

    def policy_action(self, obs: np.ndarray) -> np.ndarray:
        """Deterministic actor output for one internal observation."""

        obs_tensor = self.context.as_tensor(obs).reshape(1, -1)
        action = networks.evaluate(self.learner.bundle.actor, obs_tensor)
        return action.cpu().numpy().reshape(-1).astype(np.float32)

    def select_action(self, obs: np.ndarray) -> np.ndarray:
        if len(self.buffer) < self.config.warmup_steps:
            return self._rng.uniform(-1.0, 1.0, size=self.config.action_dim).astype(np.float32)
        action = self.policy_action(obs)
        if self.config.exploration_noise > 0.0:
            action = action + self._rng.normal(
                0.0, self.config.exploration_noise, size=action.shape
            ).astype(np.float32)
        return np.clip(action, -1.0, 1.0)

    def should_update(self) -> bool:
        ready = len(self.buffer) >= max(self.config.warmup_steps, self.config.batch_size)
        return ready and self.current_step % self.config.training_interval == 0

    def step(self) -> StepOutcome:
        """Collect one transition, handle episode boundaries, maybe update the learner."""

        obs = self.current_obs
        action = self.select_action(obs)
        with self.perf.time("env_step"):
            result = self.adapter.step(action.reshape(1, -1))

        outcome = StepOutcome()
        outcome.episode_end = self.tracker.record_step(
            result.reward, result.terminated, result.truncated
        )
        truncated = outcome.episode_end.truncated if outcome.episode_end else result.truncated

        # Truncation does not cut the bootstrap; only true termination is stored as done.
        self.buffer.add(
            obs,
            action,
            result.reward,
            result.obs_next,
            result.terminated,
            terminated=result.terminated,
            truncated=truncated,
        )
        self.current_step += 1

        if outcome.episode_end is not None:
            logger.debug(
                "Episode %d finished after %d steps: reward=%.3f terminated=%s truncated=%s",
                outcome.episode_end.episode,
                outcome.episode_end.length,
                outcome.episode_end.reward,
                outcome.episode_end.terminated,
                outcome.episode_end.truncated,
            )
            self.current_obs = self.adapter.reset()
        else:
            self.current_obs = result.obs_next

        if self.should_update():
            outcome.metrics = self._update()

        if self.current_step % self.config.log_interval == 0:
            logger.info(
                "step=%d episode=%d avg_reward=%.3f buffer=%d updates=%d",
                self.current_step,
                self.tracker.current_episode,
                self.tracker.average_reward,
                len(self.buffer),
                self.update_count,
            )
        return outcome

    def _update(self) -> dict[str, float]:
        try:
            batch, _ = self.buffer.sample(self.config.batch_size)
        except InsufficientDataError:
            logger.debug("Skipping update at step %d: not enough data.", self.current_step)
            return {}
        with self.perf.time("update"):
            self.last_metrics = self.learner.update(batch)
        return self.last_metrics
