"""Model registry and access helpers."""

from __future__ import annotations

from rlbridge.core.registry import Registry
from rlbridge.models.base import NetworkFactory
from rlbridge.models.mlp import MLPActorCriticFactory

MODEL_REGISTRY: Registry[NetworkFactory] = Registry(namespace="model")


def register_default_models() -> None:
    MODEL_REGISTRY.setdefault("mlp_actor_critic", MLPActorCriticFactory())


def get_model_factory(name: str) -> NetworkFactory:
    register_default_models()
    return MODEL_REGISTRY.get(name)
