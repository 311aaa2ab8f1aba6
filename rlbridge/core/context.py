"""Process-wide numeric execution context shared by agents of one manager."""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np
import torch

from rlbridge.core.exceptions import RLBridgeError


@dataclass(slots=True)
class NumericContext:
    """Device, dtype and seed source threaded explicitly into networks and buffers.

    A context is created once by its owner (usually an ``AgentManager``) and
    closed after every agent using it has been shut down.
    """

    device: str = "cpu"
    dtype: torch.dtype = torch.float32
    seed: int | None = 0
    _seed_sequence: np.random.SeedSequence = field(init=False, repr=False)
    _closed: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        self._seed_sequence = np.random.SeedSequence(self.seed)

    @property
    def closed(self) -> bool:
        return self._closed

    def require_open(self) -> None:
        if self._closed:
            raise RLBridgeError("NumericContext has already been closed.")

    def spawn_seed(self) -> int:
        """Derive an independent child seed (one per agent)."""

        self.require_open()
        child = self._seed_sequence.spawn(1)[0]
        return int(child.generate_state(1, dtype=np.uint32)[0])

    def as_tensor(self, array: np.ndarray | torch.Tensor) -> torch.Tensor:
        self.require_open()
        return torch.as_tensor(array, dtype=self.dtype, device=self.device)

    def close(self) -> None:
        self._closed = True
