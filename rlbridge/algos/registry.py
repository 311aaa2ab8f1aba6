"""Algorithm registry and access helpers."""

from __future__ import annotations

from rlbridge.algos.base import AlgoFactory
from rlbridge.algos.td3 import TD3Factory
from rlbridge.core.registry import Registry

ALGO_REGISTRY: Registry[AlgoFactory] = Registry(namespace="algo")


def register_default_algos() -> None:
    ALGO_REGISTRY.setdefault("td3", TD3Factory())


def get_algo_factory(name: str) -> AlgoFactory:
    register_default_algos()
    return ALGO_REGISTRY.get(name)
