"""Shared test factories."""

from .config_factory import (
    CONFIG_ROOT,
    FAST_TD3_AGENT_CFG,
    agent_cfg_dict,
    compose_config,
    make_agent_config,
)
from .env_factory import FakeEnvironment, ScriptedComponent

__all__ = [
    "CONFIG_ROOT",
    "FAST_TD3_AGENT_CFG",
    "FakeEnvironment",
    "ScriptedComponent",
    "agent_cfg_dict",
    "compose_config",
    "make_agent_config",
]
