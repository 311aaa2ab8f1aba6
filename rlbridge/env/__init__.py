"""Environment contract, adapter and reference environments."""

from rlbridge.env.adapter import AdapterStep, EnvironmentAdapter
from rlbridge.env.base import ExternalEnvironment
from rlbridge.env.registry import ENV_REGISTRY, build_environment

__all__ = [
    "AdapterStep",
    "ENV_REGISTRY",
    "EnvironmentAdapter",
    "ExternalEnvironment",
    "build_environment",
]
