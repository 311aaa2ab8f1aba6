from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import numpy as np
import pytest
import torch

from rlbridge.core.exceptions import (
    ArchitectureMismatchError,
    NotInitializedError,
    PolicyFileNotFoundError,
)
from rlbridge.runners.agent import POLICY_FORMAT_VERSION, Agent

MakeAgent = Callable[..., Agent]


def _trained(make_agent: MakeAgent, name: str = "trained", **overrides) -> Agent:
    agent = make_agent(name=name, **overrides)
    agent.start_training()
    agent.step_training(40)
    agent.stop_training()
    return agent


def test_save_then_load_restores_actions(make_agent: MakeAgent, tmp_path: Path) -> None:
    source = _trained(make_agent, seed=1)
    target = make_agent(name="fresh", seed=2)
    obs = np.array([0.3, -0.1, 0.2, 0.5], dtype=np.float32)
    assert not np.allclose(source.get_action(obs), target.get_action(obs))

    path = source.save_policy(tmp_path / "nested" / "policy.pth")
    target.load_policy(path)

    np.testing.assert_array_equal(source.get_action(obs), target.get_action(obs))
    assert target.learner is not None and source.learner is not None
    assert target.learner.update_count == source.learner.update_count


def test_policy_file_layout(make_agent: MakeAgent, tmp_path: Path) -> None:
    path = make_agent().save_policy(tmp_path / "policy.pth")

    payload = torch.load(path, weights_only=True)

    assert payload["header"] == {
        "format_version": POLICY_FORMAT_VERSION,
        "observation_dim": 4,
        "action_dim": 2,
        "hidden_dim": 16,
        "num_layers": 2,
        "activation": "relu",
    }
    assert set(payload["state"]["networks"]) == {
        "actor",
        "critic1",
        "critic2",
        "actor_target",
        "critic1_target",
        "critic2_target",
    }


def test_load_missing_file(make_agent: MakeAgent, tmp_path: Path) -> None:
    with pytest.raises(PolicyFileNotFoundError):
        make_agent().load_policy(tmp_path / "missing.pth")


@pytest.mark.parametrize(
    "overrides",
    [
        pytest.param({"hidden_dim": 32}, id="hidden-dim"),
        pytest.param({"num_layers": 3}, id="num-layers"),
        pytest.param({"activation": "tanh"}, id="activation"),
    ],
)
def test_load_rejects_architecture_mismatch(
    make_agent: MakeAgent, tmp_path: Path, overrides: dict
) -> None:
    path = make_agent(name="source").save_policy(tmp_path / "policy.pth")
    target = make_agent(name="target", **overrides)

    with pytest.raises(ArchitectureMismatchError):
        target.load_policy(path)


def test_load_rejects_file_without_header(make_agent: MakeAgent, tmp_path: Path) -> None:
    path = tmp_path / "raw.pth"
    torch.save({"weights": torch.zeros(2)}, path)

    with pytest.raises(ArchitectureMismatchError):
        make_agent().load_policy(path)


def test_policy_io_requires_initialization(tmp_path: Path) -> None:
    agent = Agent("empty")

    with pytest.raises(NotInitializedError):
        agent.save_policy(tmp_path / "policy.pth")
    with pytest.raises(NotInitializedError):
        agent.load_policy(tmp_path / "policy.pth")
    agent.shutdown()
