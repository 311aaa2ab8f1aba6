"""Network factory interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rlbridge.core.config import AgentConfig
from rlbridge.core.context import NumericContext
from rlbridge.models.networks import ActorCriticBundle


class NetworkFactory(ABC):
    """Factory interface for constructing actor/critic networks and their targets."""

    @abstractmethod
    def build(self, config: AgentConfig, context: NumericContext, seed: int) -> ActorCriticBundle:
        """Build online and target networks on ``context.device``."""
