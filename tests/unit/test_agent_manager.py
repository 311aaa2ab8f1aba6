from __future__ import annotations

import numpy as np
import pytest

from rlbridge.core.context import NumericContext
from rlbridge.core.exceptions import NotInitializedError, RLBridgeError
from rlbridge.runners.agent import AgentState
from rlbridge.runners.manager import AgentManager
from tests.factories.config_factory import agent_cfg_dict, make_agent_config
from tests.factories.env_factory import FakeEnvironment


@pytest.fixture
def manager():
    manager = AgentManager(NumericContext(seed=5))
    yield manager
    manager.shutdown()


def test_configure_get_and_remove(manager: AgentManager) -> None:
    agent = manager.configure_agent("walker", FakeEnvironment(), agent_cfg_dict())

    assert manager.get_agent("walker") is agent
    assert manager.agent_names() == ("walker",)
    assert agent.context is manager.context

    assert manager.remove_agent("walker") is True
    assert agent.state is AgentState.SHUTDOWN
    assert manager.get_agent("walker") is None
    assert manager.remove_agent("walker") is False
    assert not manager.context.closed


def test_configure_replaces_existing_agent(manager: AgentManager) -> None:
    first = manager.configure_agent("a", FakeEnvironment(), make_agent_config())
    second = manager.configure_agent("a", FakeEnvironment(), make_agent_config(hidden_dim=8))

    assert first.state is AgentState.SHUTDOWN
    assert manager.get_agent("a") is second
    assert manager.agent_names() == ("a",)


def test_failed_configure_registers_nothing(manager: AgentManager) -> None:
    with pytest.raises(RLBridgeError):
        manager.configure_agent("bad", FakeEnvironment(action_dim=3), make_agent_config())

    assert manager.get_agent("bad") is None


def test_unknown_agent_operations(manager: AgentManager, tmp_path) -> None:
    assert manager.start_training("ghost") is False
    assert manager.step_training("ghost") is False
    assert manager.pause_training("ghost") is False
    assert manager.get_action("ghost", np.zeros(4)).size == 0
    assert manager.get_training_status("ghost").current_step == 0
    assert manager.get_async_progress("ghost").is_complete is True
    with pytest.raises(NotInitializedError):
        manager.save_policy("ghost", tmp_path / "policy.pth")


def test_agents_train_independently(manager: AgentManager) -> None:
    manager.configure_agent("a", FakeEnvironment(), make_agent_config())
    manager.configure_agent("b", FakeEnvironment(), make_agent_config())
    manager.start_training("a")
    manager.start_training("b")

    manager.step_training("a", 7)
    manager.step_training("b", 3)

    assert manager.get_training_status("a").current_step == 7
    assert manager.get_training_status("b").current_step == 3


def test_async_training_through_manager(manager: AgentManager) -> None:
    manager.configure_agent("async", FakeEnvironment(), make_agent_config())
    finished: list[bool] = []

    assert manager.start_async_training(
        "async", 20, throttle_seconds=0.0, on_complete=finished.append
    )
    assert manager.wait_for_training("async", timeout=30)

    assert manager.get_async_progress("async").was_successful is True
    assert finished == [True]
    manager.stop_training("async")
    assert manager.get_agent("async").state is AgentState.STOPPED


def test_policy_io_through_manager(manager: AgentManager, tmp_path) -> None:
    manager.configure_agent("src", FakeEnvironment(), make_agent_config(seed=1))
    manager.configure_agent("dst", FakeEnvironment(), make_agent_config(seed=2))
    obs = np.full(4, 0.25, dtype=np.float32)

    path = manager.save_policy("src", tmp_path / "policy.pth")
    manager.load_policy("dst", path)

    np.testing.assert_array_equal(
        manager.get_action("src", obs), manager.get_action("dst", obs)
    )


def test_shutdown_closes_context_after_agents() -> None:
    manager = AgentManager(NumericContext())
    agent = manager.configure_agent("x", FakeEnvironment(), make_agent_config())
    manager.start_async_training("x", 1_000_000, throttle_seconds=0.01)

    manager.shutdown()
    manager.shutdown()

    assert agent.state is AgentState.SHUTDOWN
    assert manager.context.closed
    assert manager.agent_names() == ()
    with pytest.raises(RLBridgeError):
        manager.configure_agent("y", FakeEnvironment(), make_agent_config())
