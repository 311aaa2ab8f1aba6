from __future__ import annotations

import numpy as np
import pytest
import torch
from tianshou.data import Batch

from rlbridge.algos.registry import get_algo_factory
from rlbridge.algos.td3 import TD3Learner
from rlbridge.core.context import NumericContext
from rlbridge.models.registry import get_model_factory
from tests.factories.config_factory import make_agent_config


def _learner(**overrides) -> TD3Learner:
    config = make_agent_config(**overrides)
    context = NumericContext()
    bundle = get_model_factory(config.model).build(config, context, seed=0)
    learner = get_algo_factory(config.algo).build(config, bundle, context, seed=0)
    assert isinstance(learner, TD3Learner)
    return learner


def _batch(n: int = 8, obs_dim: int = 4, act_dim: int = 2) -> Batch:
    rng = np.random.default_rng(0)
    return Batch(
        obs=rng.normal(size=(n, obs_dim)).astype(np.float32),
        act=rng.uniform(-1, 1, size=(n, act_dim)).astype(np.float32),
        rew=rng.normal(size=n).astype(np.float32),
        obs_next=rng.normal(size=(n, obs_dim)).astype(np.float32),
        done=np.zeros(n, dtype=np.bool_),
    )


def _snapshot(module: torch.nn.Module) -> list[torch.Tensor]:
    return [p.detach().clone() for p in module.parameters()]


def _changed(before: list[torch.Tensor], module: torch.nn.Module) -> bool:
    return any(not torch.equal(a, b) for a, b in zip(before, module.parameters()))


def test_actor_and_targets_update_only_on_delayed_calls() -> None:
    learner = _learner(policy_delay=2, tau=0.5)
    bundle = learner.bundle
    actor_before = _snapshot(bundle.actor)
    target_before = _snapshot(bundle.critic1_target)
    critic_before = _snapshot(bundle.critic1)

    first = learner.update(_batch())

    assert set(first) == {"loss/critic1", "loss/critic2"}
    assert _changed(critic_before, bundle.critic1)
    assert not _changed(actor_before, bundle.actor)
    assert not _changed(target_before, bundle.critic1_target)

    second = learner.update(_batch())

    assert "loss/actor" in second
    assert _changed(actor_before, bundle.actor)
    assert _changed(target_before, bundle.critic1_target)
    assert learner.update_count == 2


def test_failed_update_leaves_parameters_untouched() -> None:
    learner = _learner()
    snapshots = {name: _snapshot(m) for name, m in learner.bundle.modules().items()}

    with pytest.raises(RuntimeError):
        learner.update(_batch(obs_dim=5))

    for name, module in learner.bundle.modules().items():
        assert not _changed(snapshots[name], module)
    assert learner.update_count == 0


def test_terminal_transitions_do_not_bootstrap() -> None:
    learner = _learner(gamma=0.99)
    batch = _batch()
    batch.done = np.ones(len(batch.rew), dtype=np.bool_)

    target = learner._target_q(batch)

    np.testing.assert_allclose(target.numpy().reshape(-1), batch.rew, atol=1e-6)


def test_state_dict_round_trip() -> None:
    source = _learner()
    source.update(_batch())
    source.update(_batch())

    restored = _learner()
    restored.load_state_dict(source.state_dict())

    assert restored.update_count == 2
    assert restored.critic1_optim.state_dict()["state"].keys() == (
        source.critic1_optim.state_dict()["state"].keys()
    )
