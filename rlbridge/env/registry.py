"""Environment registry and config-driven construction."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from omegaconf import DictConfig, OmegaConf

from rlbridge.core.registry import Registry
from rlbridge.env.base import ExternalEnvironment
from rlbridge.env.gym_env import GymEnvironment
from rlbridge.env.target import SimpleTargetEnvironment

EnvBuilder = Callable[[dict[str, Any]], ExternalEnvironment]

ENV_REGISTRY: Registry[EnvBuilder] = Registry(namespace="env")


def _build_simple_target(params: dict[str, Any]) -> ExternalEnvironment:
    return SimpleTargetEnvironment(**params)


def _build_gym(params: dict[str, Any]) -> ExternalEnvironment:
    params = dict(params)
    task = params.pop("task")
    seed = params.pop("seed", None)
    kwargs = params.pop("kwargs", None) or {}
    return GymEnvironment.make(str(task), seed=seed, **kwargs)


def register_default_envs() -> None:
    ENV_REGISTRY.setdefault("simple_target", _build_simple_target)
    ENV_REGISTRY.setdefault("gym", _build_gym)


def get_env_builder(name: str) -> EnvBuilder:
    register_default_envs()
    return ENV_REGISTRY.get(name)


def build_environment(cfg: DictConfig | dict[str, Any]) -> ExternalEnvironment:
    """Instantiate the environment named by ``cfg.name`` with the remaining keys."""

    if isinstance(cfg, DictConfig):
        params = OmegaConf.to_container(cfg, resolve=True)
    else:
        params = dict(cfg)
    assert isinstance(params, dict)
    name = str(params.pop("name"))
    return get_env_builder(name)(params)
