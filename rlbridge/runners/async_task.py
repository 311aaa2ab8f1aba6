"""Background thread that keeps stepping an agent's training loop."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from rlbridge.runners.agent import Agent, AgentState
from rlbridge.runners.types import TrainingProgress

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, float], None]
CompleteCallback = Callable[[bool], None]


class BackgroundTrainer:
    """Runs ``agent.step_training(1)`` on a worker thread until done or stopped.

    Progress is published as an immutable ``TrainingProgress`` that readers
    fetch with ``progress`` at any time. Callbacks run on the worker thread.
    """

    def __init__(
        self,
        agent: Agent,
        *,
        throttle_seconds: float = 0.001,
        progress_interval: int = 1,
        on_progress: ProgressCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        self.agent = agent
        self.throttle_seconds = float(throttle_seconds)
        self.progress_interval = max(int(progress_interval), 1)
        self.on_progress = on_progress
        self.on_complete = on_complete
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._progress = TrainingProgress(is_complete=True)

    @property
    def progress(self) -> TrainingProgress:
        return self._progress

    def is_active(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, max_steps: int) -> bool:
        """Stop any previous run, start training on the agent and spawn the worker."""

        if not self.agent.is_initialized():
            logger.error(
                "Cannot start background training: agent '%s' is not initialized.",
                self.agent.name,
            )
            return False
        self.stop()
        if not self.agent.start_training():
            logger.error("Agent '%s' refused to start training.", self.agent.name)
            return False

        self._stop_event.clear()
        self._progress = TrainingProgress()
        self._thread = threading.Thread(
            target=self._run,
            args=(int(max_steps),),
            name=f"rlbridge-train-{self.agent.name}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Background training started for agent '%s' (max_steps=%d).",
            self.agent.name,
            max_steps,
        )
        return True

    def stop(self, timeout: float | None = None) -> bool:
        """Request the worker to stop and wait for it to exit.

        Returns ``False`` when ``timeout`` elapsed with the worker still alive;
        the worker stays tracked so a later ``stop`` or ``start`` joins it.
        """

        thread = self._thread
        if thread is None:
            return True
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(
                    "Background worker for agent '%s' did not stop within %.3fs.",
                    self.agent.name,
                    timeout,
                )
                return False
        self._thread = None
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the current run completes; return whether it finished in time."""

        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run(self, max_steps: int) -> None:
        current_step = 0
        average_reward = 0.0
        was_successful = False
        last_reported = -1
        try:
            while not self._stop_event.is_set() and current_step < max_steps:
                if self.agent.state is AgentState.PAUSED:
                    time.sleep(max(self.throttle_seconds, 0.001))
                    continue
                if not self.agent.step_training(1):
                    if self.agent.state is AgentState.PAUSED:
                        continue
                    if self.agent.get_training_status().success:
                        logger.info("Agent '%s' left the running state.", self.agent.name)
                    else:
                        logger.error("Training step failed for agent '%s'.", self.agent.name)
                    break

                status = self.agent.get_training_status()
                current_step = status.current_step
                average_reward = status.average_reward
                self._progress = TrainingProgress(
                    current_step=current_step,
                    average_reward=average_reward,
                )
                due = current_step - last_reported >= self.progress_interval
                if self.on_progress is not None and due:
                    self.on_progress(current_step, average_reward)
                    last_reported = current_step
                if not self.agent.is_training():
                    break
                if self.throttle_seconds > 0.0:
                    time.sleep(self.throttle_seconds)

            status = self.agent.get_training_status()
            was_successful = (
                not self._stop_event.is_set()
                and status.success
                and (current_step >= max_steps or not self.agent.is_training())
            )
        except Exception:
            logger.exception("Background training crashed for agent '%s'.", self.agent.name)
            was_successful = False
        finally:
            self._progress = TrainingProgress(
                current_step=current_step,
                average_reward=average_reward,
                is_complete=True,
                was_successful=was_successful,
            )
            logger.info(
                "Background training finished for agent '%s': success=%s steps=%d",
                self.agent.name,
                was_successful,
                current_step,
            )
        if self.on_complete is not None:
            self.on_complete(was_successful)
