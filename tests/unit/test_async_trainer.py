from __future__ import annotations

import threading
from collections.abc import Callable

from rlbridge.runners.agent import Agent, AgentState
from rlbridge.runners.async_task import BackgroundTrainer

MakeAgent = Callable[..., Agent]


def test_background_training_runs_to_max_steps(make_agent: MakeAgent) -> None:
    agent = make_agent(warmup_steps=16)
    completed: list[bool] = []
    progress: list[int] = []
    trainer = BackgroundTrainer(
        agent,
        throttle_seconds=0.0,
        on_progress=lambda step, _reward: progress.append(step),
        on_complete=completed.append,
    )

    assert trainer.start(30)
    assert trainer.wait(timeout=30)

    assert trainer.progress.is_complete is True
    assert trainer.progress.was_successful is True
    assert trainer.progress.current_step == 30
    assert completed == [True]
    assert progress[-1] == 30
    assert agent.get_training_status().current_step == 30


def test_background_training_reports_agent_limit(make_agent: MakeAgent) -> None:
    agent = make_agent(max_training_steps=12)
    trainer = BackgroundTrainer(agent, throttle_seconds=0.0)

    trainer.start(100)
    trainer.wait(timeout=30)

    assert trainer.progress.was_successful is True
    assert trainer.progress.current_step == 12
    assert agent.state is AgentState.STOPPED


def test_stop_joins_worker(make_agent: MakeAgent) -> None:
    agent = make_agent()
    trainer = BackgroundTrainer(agent, throttle_seconds=0.01)

    assert trainer.start(1_000_000)
    trainer.stop(timeout=30)

    assert not trainer.is_active()
    assert trainer.progress.is_complete is True
    assert trainer.progress.was_successful is False


def test_start_requires_initialized_agent() -> None:
    agent = Agent("idle")
    trainer = BackgroundTrainer(agent)

    assert trainer.start(10) is False
    assert not trainer.is_active()
    agent.shutdown()


def test_paused_agent_does_not_advance(make_agent: MakeAgent) -> None:
    agent = make_agent()
    stepped = threading.Event()
    trainer = BackgroundTrainer(
        agent,
        throttle_seconds=0.001,
        on_progress=lambda _step, _reward: stepped.set(),
    )
    trainer.start(1_000_000)
    assert stepped.wait(timeout=30)

    agent.pause()
    paused_at = agent.get_training_status().current_step
    threading.Event().wait(0.05)

    assert agent.get_training_status().current_step == paused_at
    trainer.stop(timeout=30)


def test_restart_after_completion(make_agent: MakeAgent) -> None:
    agent = make_agent()
    trainer = BackgroundTrainer(agent, throttle_seconds=0.0)
    trainer.start(5)
    trainer.wait(timeout=30)
    agent.stop_training()

    assert trainer.start(7)
    assert trainer.wait(timeout=30)

    assert trainer.progress.current_step == 7
    assert trainer.progress.was_successful is True


def test_stop_timeout_keeps_tracking_live_worker(make_agent: MakeAgent) -> None:
    agent = make_agent()
    entered = threading.Event()
    release = threading.Event()

    def hold(_step: int, _reward: float) -> None:
        entered.set()
        release.wait(timeout=30)

    trainer = BackgroundTrainer(agent, throttle_seconds=0.0, on_progress=hold)
    trainer.start(1_000_000)
    assert entered.wait(timeout=30)

    assert trainer.stop(timeout=0.01) is False
    assert trainer.is_active()

    release.set()
    assert trainer.stop(timeout=30) is True
    assert not trainer.is_active()
    assert trainer.progress.is_complete is True
