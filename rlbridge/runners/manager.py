"""Registry of named agents sharing one numeric context."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import numpy as np

from rlbridge.core.config import AgentConfig
from rlbridge.core.context import NumericContext
from rlbridge.core.exceptions import ConfigurationError, NotInitializedError, RLBridgeError
from rlbridge.env.base import ExternalEnvironment
from rlbridge.runners.agent import Agent
from rlbridge.runners.async_task import BackgroundTrainer, CompleteCallback, ProgressCallback
from rlbridge.runners.types import TrainingProgress, TrainingStatus
from rlbridge.utils.perf import PerfTracker

logger = logging.getLogger(__name__)


class AgentManager:
    """Creates, drives and tears down agents by name.

    The manager owns the ``NumericContext``: it is released only after every
    agent has been shut down.
    """

    def __init__(self, context: NumericContext | None = None, profile: bool = False) -> None:
        self.context = context or NumericContext()
        self.profile = profile
        self._agents: dict[str, Agent] = {}
        self._trainers: dict[str, BackgroundTrainer] = {}
        self._registry_lock = threading.Lock()
        self._name_locks: dict[str, threading.Lock] = {}
        self._shut_down = False

    def __enter__(self) -> AgentManager:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    @contextmanager
    def _locked(self, name: str) -> Iterator[None]:
        with self._registry_lock:
            lock = self._name_locks.setdefault(name, threading.Lock())
        with lock:
            yield

    def _require_open(self) -> None:
        if self._shut_down:
            raise RLBridgeError("AgentManager has been shut down.")

    def agent_names(self) -> tuple[str, ...]:
        with self._registry_lock:
            return tuple(sorted(self._agents))

    def get_agent(self, name: str) -> Agent | None:
        with self._registry_lock:
            return self._agents.get(name)

    def _agent_or_raise(self, name: str) -> Agent:
        agent = self.get_agent(name)
        if agent is None:
            raise NotInitializedError(f"No agent named '{name}'.")
        return agent

    def configure_agent(
        self,
        name: str,
        environment: ExternalEnvironment,
        config: AgentConfig | Any,
    ) -> Agent:
        """Create and initialize agent ``name``; an existing agent of that name is replaced."""

        self._require_open()
        if not name:
            raise ConfigurationError("Agent name must be a non-empty string.")
        with self._locked(name):
            previous = self.get_agent(name)
            if previous is not None:
                logger.info("Replacing existing agent '%s'.", name)
                self._teardown(name, previous)

            agent = Agent(name, context=self.context, perf=PerfTracker(enabled=self.profile))
            agent.initialize(environment, config)
            with self._registry_lock:
                self._agents[name] = agent
            logger.info("Configured agent '%s'.", name)
            return agent

    def remove_agent(self, name: str) -> bool:
        with self._locked(name):
            agent = self.get_agent(name)
            if agent is None:
                logger.warning("remove_agent: no agent named '%s'.", name)
                return False
            self._teardown(name, agent)
            logger.info("Removed agent '%s'.", name)
            return True

    def _teardown(self, name: str, agent: Agent) -> None:
        trainer = self._trainers.pop(name, None)
        if trainer is not None:
            trainer.stop()
        agent.shutdown()
        with self._registry_lock:
            self._agents.pop(name, None)

    # Training control ----------------------------------------------------

    def start_training(self, name: str) -> bool:
        agent = self.get_agent(name)
        if agent is None:
            logger.error("start_training: no agent named '%s'.", name)
            return False
        return agent.start_training()

    def step_training(self, name: str, num_steps: int = 1) -> bool:
        agent = self.get_agent(name)
        if agent is None:
            logger.error("step_training: no agent named '%s'.", name)
            return False
        return agent.step_training(num_steps)

    def pause_training(self, name: str) -> bool:
        agent = self.get_agent(name)
        return agent.pause() if agent is not None else False

    def resume_training(self, name: str) -> bool:
        agent = self.get_agent(name)
        return agent.resume() if agent is not None else False

    def stop_training(self, name: str) -> None:
        trainer = self._trainers.get(name)
        if trainer is not None:
            trainer.stop()
        agent = self.get_agent(name)
        if agent is not None:
            agent.stop_training()

    def start_async_training(
        self,
        name: str,
        max_steps: int,
        *,
        throttle_seconds: float = 0.001,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> bool:
        self._require_open()
        agent = self.get_agent(name)
        if agent is None:
            logger.error("start_async_training: no agent named '%s'.", name)
            return False
        previous = self._trainers.pop(name, None)
        if previous is not None:
            previous.stop()
        trainer = BackgroundTrainer(
            agent,
            throttle_seconds=throttle_seconds,
            on_progress=on_progress,
            on_complete=on_complete,
        )
        if not trainer.start(max_steps):
            return False
        self._trainers[name] = trainer
        return True

    def get_async_progress(self, name: str) -> TrainingProgress:
        trainer = self._trainers.get(name)
        if trainer is None:
            return TrainingProgress(is_complete=True)
        return trainer.progress

    def wait_for_training(self, name: str, timeout: float | None = None) -> bool:
        trainer = self._trainers.get(name)
        return True if trainer is None else trainer.wait(timeout)

    # Inference / status / IO ---------------------------------------------

    def get_action(self, name: str, observation: Any) -> np.ndarray:
        agent = self.get_agent(name)
        if agent is None:
            logger.error("get_action: no agent named '%s'.", name)
            return np.empty(0, dtype=np.float32)
        return agent.get_action(observation)

    def get_training_status(self, name: str) -> TrainingStatus:
        agent = self.get_agent(name)
        return agent.get_training_status() if agent is not None else TrainingStatus()

    def save_policy(self, name: str, path: str | Path) -> Path:
        return self._agent_or_raise(name).save_policy(path)

    def load_policy(self, name: str, path: str | Path) -> None:
        self._agent_or_raise(name).load_policy(path)

    def shutdown(self) -> None:
        """Stop background tasks, shut down every agent, then close the context."""

        if self._shut_down:
            return
        for trainer in list(self._trainers.values()):
            trainer.stop()
        self._trainers.clear()
        for name in self.agent_names():
            with self._locked(name):
                agent = self.get_agent(name)
                if agent is not None:
                    self._teardown(name, agent)
        self.context.close()
        self._shut_down = True
        logger.info("AgentManager shut down.")
