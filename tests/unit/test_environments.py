from __future__ import annotations

import logging

import numpy as np
import pytest

from rlbridge.core.exceptions import ConfigurationError, RegistryError
from rlbridge.env.gym_env import GymEnvironment
from rlbridge.env.registry import build_environment
from rlbridge.env.target import SimpleTargetEnvironment
from tests.factories.env_factory import ScriptedComponent


def _run(env: ScriptedComponent, steps: int) -> tuple[bool, bool]:
    env.reset()
    for _ in range(steps):
        env.step(np.zeros(2, dtype=np.float32))
    return env.is_terminated(), env.is_truncated()


@pytest.mark.parametrize(
    ("terminate_on", "steps", "expected"),
    [
        pytest.param(None, 5, (False, True), id="cap-truncates"),
        pytest.param(3, 3, (True, False), id="termination-before-cap"),
        pytest.param(5, 5, (True, True), id="termination-on-cap"),
        pytest.param(None, 4, (False, False), id="still-running"),
    ],
)
def test_component_termination_and_truncation(
    terminate_on: int | None,
    steps: int,
    expected: tuple[bool, bool],
) -> None:
    env = ScriptedComponent(terminate_on=terminate_on, max_episode_length=5)
    assert _run(env, steps) == expected


def test_stepping_finished_episode_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    env = ScriptedComponent(terminate_on=2)
    _run(env, 2)

    env.step(np.zeros(2, dtype=np.float32))

    assert env.current_step == 2
    assert env.step_calls == 2
    assert "finished episode" in caplog.text


def test_component_pads_short_observations(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING)
    env = ScriptedComponent(observation_size=2)
    _run(env, 1)
    np.testing.assert_array_equal(env.get_observation(), [0.0, 1.0, 0.0, 0.0])


def test_component_listeners_are_notified() -> None:
    env = ScriptedComponent(terminate_on=1)
    seen: list[tuple[float, bool, bool]] = []
    resets: list[np.ndarray] = []
    env.add_step_listener(lambda obs, rew, term, trunc: seen.append((rew, term, trunc)))
    env.add_reset_listener(resets.append)

    _run(env, 1)

    assert len(resets) == 1
    assert seen == [(1.0, True, False)]


def _fixed_target_env(**kwargs) -> SimpleTargetEnvironment:
    env = SimpleTargetEnvironment(
        randomize_target=False,
        randomize_start_position=False,
        seed=0,
        **kwargs,
    )
    env.reset()
    return env


def test_simple_target_rewards_progress() -> None:
    env = _fixed_target_env()
    assert env.get_observation().shape == (8,)

    env.step(np.array([1.0, 0.0], dtype=np.float32))

    # 500 units/s for 0.016 s is 8 units closer, minus the per-step penalty.
    assert env.get_reward() == pytest.approx(7.9, abs=1e-6)
    assert env.is_terminated() is False
    assert env.get_observation()[6] == pytest.approx(492.0)


def test_simple_target_terminates_with_bonus_at_target() -> None:
    env = _fixed_target_env()
    env.set_target_position(10.0, 0.0)

    env.step(np.array([1.0, 0.0], dtype=np.float32))

    assert env.is_agent_at_target()
    assert env.is_terminated() is True
    assert env.is_truncated() is False
    assert env.get_reward() == pytest.approx(8.0 + 100.0 - 0.1, abs=1e-6)


def test_simple_target_clamps_action_to_unit_circle() -> None:
    env = _fixed_target_env()
    env.step(np.array([3.0, 4.0], dtype=np.float32))
    np.testing.assert_allclose(env.agent_position, [0.6 * 8.0, 0.8 * 8.0], atol=1e-9)


def test_simple_target_randomized_start_is_away_from_target() -> None:
    env = SimpleTargetEnvironment(seed=3)
    for _ in range(5):
        env.reset()
        assert env.distance_to_target >= 2.0 * env.target_radius


def test_gym_environment_wraps_box_spaces() -> None:
    env = GymEnvironment.make("Pendulum-v1", seed=0)
    try:
        assert env.get_observation_dim() == 3
        assert env.get_action_dim() == 1
        assert env.get_max_episode_steps() == 200

        norm = env.action_normalization()
        assert norm.mean == (0.0,)
        assert norm.stddev == (2.0,)

        obs = env.reset()
        assert obs.shape == (3,)
        env.step(np.array([10.0], dtype=np.float32))
        assert env.get_observation().shape == (3,)
        assert env.is_terminated() is False
    finally:
        env.close()


def test_gym_environment_rejects_discrete_actions() -> None:
    import gymnasium as gym

    with pytest.raises(ConfigurationError):
        GymEnvironment(gym.make("CartPole-v1"))


def test_build_environment_from_config() -> None:
    env = build_environment({"name": "simple_target", "seed": 1, "max_episode_length": 20})
    assert isinstance(env, SimpleTargetEnvironment)
    assert env.get_max_episode_steps() == 20

    with pytest.raises(RegistryError):
        build_environment({"name": "missing_env"})
