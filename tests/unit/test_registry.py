from __future__ import annotations

import pytest

from rlbridge.algos.registry import ALGO_REGISTRY, get_algo_factory
from rlbridge.algos.td3 import TD3Factory
from rlbridge.core.exceptions import RegistryError
from rlbridge.core.registry import Registry
from rlbridge.env.registry import ENV_REGISTRY, get_env_builder
from rlbridge.models.mlp import MLPActorCriticFactory
from rlbridge.models.registry import MODEL_REGISTRY, get_model_factory


def test_default_factories_are_registered() -> None:
    assert isinstance(get_model_factory("mlp_actor_critic"), MLPActorCriticFactory)
    assert isinstance(get_algo_factory("td3"), TD3Factory)
    get_env_builder("gym")

    assert "mlp_actor_critic" in MODEL_REGISTRY
    assert "td3" in ALGO_REGISTRY
    assert ENV_REGISTRY.keys() == ("gym", "simple_target")


@pytest.mark.parametrize(
    "lookup",
    [
        pytest.param(lambda: get_model_factory("cnn"), id="model"),
        pytest.param(lambda: get_algo_factory("ddpg"), id="algo"),
        pytest.param(lambda: get_env_builder("mujoco"), id="env"),
    ],
)
def test_unknown_names_raise(lookup) -> None:
    with pytest.raises(RegistryError, match="Available"):
        lookup()


def test_duplicate_registration_raises() -> None:
    registry: Registry[int] = Registry(namespace="test")
    registry.register("one", 1)

    with pytest.raises(RegistryError, match="already has item 'one'"):
        registry.register("one", 2)


def test_setdefault_keeps_first_binding() -> None:
    registry: Registry[int] = Registry(namespace="test")

    assert registry.setdefault("one", 1) == 1
    assert registry.setdefault("one", 2) == 1
    assert len(registry) == 1
    with pytest.raises(RegistryError, match="non-empty"):
        registry.register("", 3)
