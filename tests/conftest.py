from __future__ import annotations

import os
import random
from collections.abc import Callable, Iterator
from typing import Any

import numpy as np
import pytest

from rlbridge.runners.agent import Agent
from tests.factories.config_factory import make_agent_config
from tests.factories.env_factory import FakeEnvironment

# Keep torch on CPU-only path in test process to avoid expensive GPU probing.
os.environ.setdefault("CUDA_VISIBLE_DEVICES", "-1")
os.environ.setdefault("PYTORCH_NVML_BASED_CUDA_CHECK", "1")


@pytest.fixture(autouse=True)
def _stable_random_seed() -> None:
    import torch

    random.seed(0)
    np.random.seed(0)
    torch.manual_seed(0)


@pytest.fixture
def fake_env() -> FakeEnvironment:
    return FakeEnvironment()


@pytest.fixture
def make_agent() -> Iterator[Callable[..., Agent]]:
    """Build initialized agents against a ``FakeEnvironment``; all are shut down afterwards."""

    created: list[Agent] = []

    def _make(
        environment: FakeEnvironment | None = None,
        *,
        name: str = "agent",
        **config_overrides: Any,
    ) -> Agent:
        agent = Agent(name)
        created.append(agent)
        agent.initialize(environment or FakeEnvironment(), make_agent_config(**config_overrides))
        return agent

    yield _make
    for agent in created:
        agent.shutdown()
