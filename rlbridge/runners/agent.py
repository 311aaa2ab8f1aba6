"""Agent lifecycle: initialization, training state machine, inference and policy I/O."""

from __future__ import annotations

import enum
import logging
import threading
from pathlib import Path
from typing import Any

import numpy as np
import torch

from rlbridge.algos.registry import get_algo_factory
from rlbridge.algos.td3 import TD3Learner
from rlbridge.core.config import AgentConfig, build_agent_config
from rlbridge.core.context import NumericContext
from rlbridge.core.exceptions import (
    ArchitectureMismatchError,
    ConfigurationError,
    DimensionMismatchError,
    NotInitializedError,
    PolicyFileNotFoundError,
    RLBridgeError,
)
from rlbridge.data.normalization import from_matrix, to_matrix
from rlbridge.data.replay_buffer import ReplayBuffer
from rlbridge.env.adapter import EnvironmentAdapter
from rlbridge.env.base import ExternalEnvironment
from rlbridge.models import networks
from rlbridge.models.networks import ActorCriticBundle
from rlbridge.models.registry import get_model_factory
from rlbridge.runners.off_policy import OffPolicyRunner
from rlbridge.runners.types import TrainingStatus
from rlbridge.utils.io import ensure_parent
from rlbridge.utils.perf import PerfTracker

logger = logging.getLogger(__name__)

POLICY_FORMAT_VERSION = 1


class AgentState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    SHUTDOWN = "shutdown"


_TRAINING_STATES = (AgentState.RUNNING, AgentState.PAUSED)
_READY_STATES = (
    AgentState.INITIALIZED,
    AgentState.RUNNING,
    AgentState.PAUSED,
    AgentState.STOPPED,
)


def _derive_seeds(seed: int, count: int) -> list[int]:
    children = np.random.SeedSequence(seed).spawn(count)
    return [int(child.generate_state(1, dtype=np.uint32)[0]) for child in children]


class Agent:
    """One named TD3 agent bound to an external environment.

    Every public method is serialized by a re-entrant lock, so a background
    trainer and foreground inference calls never interleave inside a step.
    ``get_action`` never raises; failures are logged and kept in ``last_error``.
    """

    def __init__(
        self,
        name: str = "agent",
        context: NumericContext | None = None,
        perf: PerfTracker | None = None,
    ) -> None:
        self.name = name
        self._owns_context = context is None
        self.context = context or NumericContext()
        self.perf = perf or PerfTracker()
        self._lock = threading.RLock()
        self._state = AgentState.UNINITIALIZED
        self._success = True
        self.last_error: Exception | None = None

        self.config: AgentConfig | None = None
        self.adapter: EnvironmentAdapter | None = None
        self.buffer: ReplayBuffer | None = None
        self.bundle: ActorCriticBundle | None = None
        self.learner: TD3Learner | None = None
        self.runner: OffPolicyRunner | None = None
        self._status = TrainingStatus()

    def __enter__(self) -> Agent:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, state={self._state.value})"

    @property
    def state(self) -> AgentState:
        return self._state

    def is_initialized(self) -> bool:
        return self._state in _READY_STATES

    def is_training(self) -> bool:
        return self._state in _TRAINING_STATES

    # Lifecycle ---------------------------------------------------------

    def initialize(
        self,
        environment: ExternalEnvironment,
        config: AgentConfig | Any,
    ) -> None:
        """Validate, then build adapter, replay buffer, networks and learner.

        On any failure every partial allocation is released and the agent
        stays ``UNINITIALIZED``.
        """

        with self._lock:
            if self._state is not AgentState.UNINITIALIZED:
                raise RLBridgeError(
                    f"Agent '{self.name}' cannot be initialized from state {self._state.value}."
                )
            self.context.require_open()
            if not isinstance(config, AgentConfig):
                config = build_agent_config(config)
            config.validate()
            self._validate_environment(environment, config)

            logger.info("Initializing agent '%s'.", self.name)
            seed = config.seed if config.seed is not None else self.context.spawn_seed()
            model_seed, algo_seed, buffer_seed, runner_seed = _derive_seeds(seed, 4)
            try:
                self.config = config
                self.adapter = EnvironmentAdapter(
                    environment,
                    config.observation_dim,
                    config.action_dim,
                    observation_norm=config.observation_norm,
                    action_norm=config.action_norm,
                )
                self.buffer = ReplayBuffer(
                    config.replay_buffer_capacity,
                    config.observation_dim,
                    config.action_dim,
                    seed=buffer_seed,
                )
                self.bundle = get_model_factory(config.model).build(
                    config, self.context, model_seed
                )
                self.learner = get_algo_factory(config.algo).build(
                    config, self.bundle, self.context, algo_seed
                )
                self.runner = OffPolicyRunner(
                    self.adapter,
                    self.buffer,
                    self.learner,
                    config,
                    self.context,
                    seed=runner_seed,
                    perf=self.perf,
                )
            except Exception:
                logger.exception("Initialization of agent '%s' failed; rolling back.", self.name)
                self._release()
                raise

            self._state = AgentState.INITIALIZED
            self._success = True
            self.last_error = None
            self._publish_status()
            logger.info("Agent '%s' initialized successfully.", self.name)

    def _validate_environment(self, environment: ExternalEnvironment, config: AgentConfig) -> None:
        if environment is None:
            raise ConfigurationError(f"Agent '{self.name}' requires an environment.")
        obs_dim = int(environment.get_observation_dim())
        act_dim = int(environment.get_action_dim())
        if obs_dim <= 0 or act_dim <= 0:
            raise DimensionMismatchError(
                f"Environment reports non-positive dims (observation={obs_dim}, action={act_dim})."
            )
        if obs_dim != config.observation_dim:
            raise DimensionMismatchError(
                f"Environment observation dim {obs_dim} != configured {config.observation_dim}."
            )
        if act_dim != config.action_dim:
            raise DimensionMismatchError(
                f"Environment action dim {act_dim} != configured {config.action_dim}."
            )

    def start_training(self) -> bool:
        with self._lock:
            if self.is_training():
                logger.warning("Agent '%s' is already training.", self.name)
                return True
            if self._state not in (AgentState.INITIALIZED, AgentState.STOPPED):
                self.last_error = NotInitializedError(
                    f"Agent '{self.name}' cannot start training from state {self._state.value}."
                )
                logger.error("%s", self.last_error)
                return False

            assert self.runner is not None
            try:
                self.runner.reset()
            except Exception as exc:
                logger.exception("Agent '%s' failed to reset its environment.", self.name)
                self.last_error = exc
                return False

            self._state = AgentState.RUNNING
            self._success = True
            self._publish_status()
            logger.info("Agent '%s' started training.", self.name)
            return True

    def pause(self) -> bool:
        with self._lock:
            if self._state is not AgentState.RUNNING:
                logger.warning("Agent '%s' is not running; pause ignored.", self.name)
                return False
            self._state = AgentState.PAUSED
            self._publish_status()
            logger.info("Agent '%s' paused.", self.name)
            return True

    def resume(self) -> bool:
        with self._lock:
            if self._state is not AgentState.PAUSED:
                logger.warning("Agent '%s' is not paused; resume ignored.", self.name)
                return False
            self._state = AgentState.RUNNING
            self._publish_status()
            logger.info("Agent '%s' resumed.", self.name)
            return True

    def stop_training(self) -> None:
        with self._lock:
            if not self.is_training():
                return
            self._state = AgentState.STOPPED
            self._publish_status()
            logger.info(
                "Agent '%s' stopped training at step %d.", self.name, self._status.current_step
            )

    def step_training(self, num_steps: int = 1) -> bool:
        """Advance training by up to ``num_steps`` environment steps.

        Returns ``False`` when the agent is not running or a step failed; a
        failure also stops training and clears the status success flag.
        """

        with self._lock:
            if self._state is not AgentState.RUNNING:
                return False
            assert self.runner is not None
            try:
                for _ in range(int(num_steps)):
                    self.runner.step()
                    if self.runner.finished:
                        self._state = AgentState.STOPPED
                        logger.info(
                            "Agent '%s' reached max training steps (%d).",
                            self.name,
                            self.runner.current_step,
                        )
                        break
            except Exception as exc:
                logger.exception("Training step failed for agent '%s'.", self.name)
                self.last_error = exc
                self._state = AgentState.STOPPED
                self._success = False
                self._publish_status()
                return False

            self._publish_status()
            return True

    def shutdown(self) -> None:
        """Release networks, replay buffer and adapter; safe to call repeatedly."""

        with self._lock:
            if self._state is AgentState.SHUTDOWN:
                return
            self._release()
            if self._owns_context:
                self.context.close()
            self._state = AgentState.SHUTDOWN
            self._publish_status()
            logger.info("Agent '%s' shut down.", self.name)

    def _release(self) -> None:
        if self.adapter is not None:
            self.adapter.detach()
        if self.buffer is not None:
            self.buffer.clear()
        self.runner = None
        self.learner = None
        self.bundle = None
        self.buffer = None
        self.adapter = None
        self.config = None

    # Status ------------------------------------------------------------

    def _publish_status(self) -> None:
        runner = self.runner
        if runner is None:
            self._status = TrainingStatus(success=self._success)
            return
        tracker = runner.tracker
        self._status = TrainingStatus(
            is_training=self.is_training(),
            is_paused=self._state is AgentState.PAUSED,
            current_step=runner.current_step,
            current_episode=tracker.current_episode,
            average_reward=tracker.average_reward,
            last_episode_reward=tracker.last_episode_reward,
            replay_buffer_size=len(runner.buffer),
            update_count=runner.update_count,
            success=self._success,
        )

    def get_training_status(self) -> TrainingStatus:
        return self._status

    def episode_rewards(self) -> list[float]:
        with self._lock:
            if self.runner is None:
                return []
            return list(self.runner.tracker.recent_rewards)

    # Inference ---------------------------------------------------------

    def get_action(self, observation: Any) -> np.ndarray:
        """Deterministic policy action for one external observation.

        Returns an empty array instead of raising; the reason is logged and
        stored in ``last_error``.
        """

        with self._lock:
            try:
                return self._compute_action(observation)
            except Exception as exc:
                logger.error("get_action failed for agent '%s': %s", self.name, exc)
                self.last_error = exc
                return np.empty(0, dtype=np.float32)

    def _compute_action(self, observation: Any) -> np.ndarray:
        if not self.is_initialized() or self.bundle is None or self.config is None:
            raise NotInitializedError(f"Agent '{self.name}' is not initialized.")
        obs = np.asarray(observation, dtype=np.float32).reshape(-1)
        if obs.size != self.config.observation_dim:
            raise DimensionMismatchError(
                f"Observation has {obs.size} values, expected {self.config.observation_dim}."
            )
        if not np.all(np.isfinite(obs)):
            raise ValueError("Observation contains non-finite values.")

        internal = to_matrix(obs, 1, self.config.observation_dim, self.config.observation_norm)
        action = networks.evaluate(self.bundle.actor, self.context.as_tensor(internal))
        return from_matrix(action.cpu().numpy(), self.config.action_norm)

    # Policy I/O --------------------------------------------------------

    def _require_initialized(self) -> None:
        if not self.is_initialized() or self.bundle is None or self.learner is None:
            raise NotInitializedError(f"Agent '{self.name}' is not initialized.")

    def _policy_header(self) -> dict[str, Any]:
        assert self.bundle is not None
        return {"format_version": POLICY_FORMAT_VERSION, **self.bundle.architecture()}

    def save_policy(self, path: str | Path) -> Path:
        """Write header plus network and optimizer state to ``path``."""

        with self._lock:
            self._require_initialized()
            assert self.bundle is not None and self.learner is not None
            target = ensure_parent(path)
            payload = {
                "header": self._policy_header(),
                "state": {
                    "networks": self.bundle.state_dict(),
                    "optimizers": self.learner.state_dict(),
                },
            }
            torch.save(payload, target)
            logger.info("Saved policy of agent '%s' to %s.", self.name, target)
            return target

    def load_policy(self, path: str | Path) -> None:
        with self._lock:
            self._require_initialized()
            assert self.bundle is not None and self.learner is not None
            source = Path(path)
            if not source.is_file():
                raise PolicyFileNotFoundError(f"Policy file not found: {source}")

            payload = torch.load(source, map_location=self.context.device, weights_only=True)
            header = payload.get("header") if isinstance(payload, dict) else None
            if not isinstance(header, dict):
                raise ArchitectureMismatchError(f"Policy file {source} has no header.")
            expected = self._policy_header()
            diffs = {
                key: (header.get(key), value)
                for key, value in expected.items()
                if header.get(key) != value
            }
            if diffs:
                details = ", ".join(
                    f"{key}: file={found!r} agent={want!r}" for key, (found, want) in diffs.items()
                )
                raise ArchitectureMismatchError(f"Policy file {source} does not match: {details}.")

            try:
                self.bundle.load_state_dict(payload["state"]["networks"])
                self.learner.load_state_dict(payload["state"]["optimizers"])
            except (KeyError, RuntimeError, ValueError) as exc:
                raise ArchitectureMismatchError(
                    f"Policy file {source} has incompatible parameters: {exc}"
                ) from exc
            logger.info("Loaded policy for agent '%s' from %s.", self.name, source)
