from __future__ import annotations

import logging

import numpy as np
import pytest

from rlbridge.data.normalization import NormalizationParams
from rlbridge.env.adapter import DEFAULT_MAX_EPISODE_STEPS, EnvironmentAdapter
from tests.factories.env_factory import FakeEnvironment


def test_reset_and_step_convert_observations_and_actions() -> None:
    env = FakeEnvironment(observation_dim=2, action_dim=2, terminate_every=1, reward=0.5)
    adapter = EnvironmentAdapter(
        env,
        observation_dim=2,
        action_dim=2,
        observation_norm=NormalizationParams(enabled=True, mean=(0.1,), stddev=(0.5,)),
        action_norm=NormalizationParams(enabled=True, mean=(1.0, 0.0), stddev=(2.0, 3.0)),
    )

    np.testing.assert_allclose(adapter.reset(), [-0.2, -0.2], atol=1e-6)

    result = adapter.step(np.array([[0.5, -1.0]], dtype=np.float32))

    np.testing.assert_allclose(env.actions[-1], [2.0, -3.0])
    np.testing.assert_allclose(result.obs_next, [0.0, 0.0], atol=1e-6)
    np.testing.assert_allclose(adapter.observe(), result.obs_next)
    assert result.reward == pytest.approx(0.5)
    assert result.terminated is True
    assert result.truncated is False


def test_wrong_length_observation_is_padded(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    env = FakeEnvironment(observation_dim=3, action_dim=2)
    adapter = EnvironmentAdapter(env, observation_dim=4, action_dim=2)

    obs = adapter.reset()

    assert obs.shape == (4,)
    assert obs[3] == 0.0
    assert "dimension mismatch" in caplog.text


def test_wrong_length_action_is_truncated(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    env = FakeEnvironment(observation_dim=2, action_dim=2)
    adapter = EnvironmentAdapter(env, observation_dim=2, action_dim=2)
    adapter.reset()

    adapter.step(np.array([0.1, 0.2, 0.3], dtype=np.float32))

    np.testing.assert_allclose(env.actions[-1], [0.1, 0.2])
    assert "Action dimension mismatch" in caplog.text


def test_missing_environment_returns_noop_result(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR)
    adapter = EnvironmentAdapter(None, observation_dim=3, action_dim=1)

    np.testing.assert_array_equal(adapter.reset(), np.zeros(3))
    result = adapter.step(np.zeros((1, 1), dtype=np.float32))

    np.testing.assert_array_equal(result.obs_next, np.zeros(3))
    assert result.reward == 0.0
    assert result.terminated is True
    assert "without an environment" in caplog.text


def test_detach_turns_calls_into_noops(fake_env: FakeEnvironment) -> None:
    adapter = EnvironmentAdapter(fake_env, observation_dim=4, action_dim=2)
    assert adapter.attached
    adapter.detach()
    assert not adapter.attached
    assert adapter.step(np.zeros(2)).terminated is True
    np.testing.assert_array_equal(adapter.observe(), np.zeros(4))


@pytest.mark.parametrize(
    ("env_cap", "expected"),
    [
        pytest.param(25, 25, id="environment-cap"),
        pytest.param(None, DEFAULT_MAX_EPISODE_STEPS, id="default"),
    ],
)
def test_max_episode_steps(env_cap: int | None, expected: int) -> None:
    adapter = EnvironmentAdapter(
        FakeEnvironment(max_episode_steps=env_cap), observation_dim=4, action_dim=2
    )
    assert adapter.max_episode_steps() == expected
