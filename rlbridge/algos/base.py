"""Algorithm factory interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rlbridge.core.config import AgentConfig
from rlbridge.core.context import NumericContext
from rlbridge.models.networks import ActorCriticBundle


class AlgoFactory(ABC):
    """Factory for creating learners bound to a network bundle."""

    @abstractmethod
    def build(
        self,
        config: AgentConfig,
        bundle: ActorCriticBundle,
        context: NumericContext,
        seed: int,
    ) -> Any:
        """Build a configured learner object."""
