"""Fixed-capacity circular replay buffer for off-policy training."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from tianshou.data import Batch

from rlbridge.core.exceptions import (
    ConfigurationError,
    DimensionMismatchError,
    InsufficientDataError,
)


@dataclass(slots=True, frozen=True)
class Transition:
    """One environment step as stored by the replay buffer."""

    obs: np.ndarray
    act: np.ndarray
    rew: float
    obs_next: np.ndarray
    done: bool
    terminated: bool = False
    truncated: bool = False


class ReplayBuffer:
    """Round-robin transition store with numpy-backed contiguous columns.

    Inserting at capacity overwrites the oldest transition in place.
    """

    def __init__(
        self,
        capacity: int,
        obs_dim: int,
        act_dim: int,
        seed: int | None = None,
    ) -> None:
        if capacity <= 0:
            raise ConfigurationError(f"Replay buffer capacity must be positive, got {capacity}.")
        if obs_dim <= 0 or act_dim <= 0:
            raise ConfigurationError(
                f"Replay buffer dims must be positive, got obs_dim={obs_dim}, act_dim={act_dim}."
            )

        self.capacity = int(capacity)
        self.obs_dim = int(obs_dim)
        self.act_dim = int(act_dim)
        self._rng = np.random.default_rng(seed)
        self._released = False
        self._allocate()

    def _allocate(self) -> None:
        self._obs = np.zeros((self.capacity, self.obs_dim), dtype=np.float32)
        self._act = np.zeros((self.capacity, self.act_dim), dtype=np.float32)
        self._rew = np.zeros(self.capacity, dtype=np.float32)
        self._obs_next = np.zeros((self.capacity, self.obs_dim), dtype=np.float32)
        self._done = np.zeros(self.capacity, dtype=np.bool_)
        self._terminated = np.zeros(self.capacity, dtype=np.bool_)
        self._truncated = np.zeros(self.capacity, dtype=np.bool_)
        self._write_index = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    @property
    def write_index(self) -> int:
        return self._write_index

    def add(
        self,
        obs: np.ndarray,
        act: np.ndarray,
        rew: float,
        obs_next: np.ndarray,
        done: bool,
        *,
        terminated: bool | None = None,
        truncated: bool = False,
    ) -> int:
        """Write one transition and return the slot index it occupies."""

        if self._released:
            raise RuntimeError("Replay buffer storage has been released.")
        obs_arr = np.asarray(obs, dtype=np.float32).reshape(-1)
        act_arr = np.asarray(act, dtype=np.float32).reshape(-1)
        obs_next_arr = np.asarray(obs_next, dtype=np.float32).reshape(-1)
        if obs_arr.size != self.obs_dim or obs_next_arr.size != self.obs_dim:
            raise DimensionMismatchError(
                f"Replay buffer expects observations of length {self.obs_dim}, "
                f"got {obs_arr.size} and {obs_next_arr.size}."
            )
        if act_arr.size != self.act_dim:
            raise DimensionMismatchError(
                f"Replay buffer expects actions of length {self.act_dim}, got {act_arr.size}."
            )

        idx = self._write_index
        self._obs[idx] = obs_arr
        self._act[idx] = act_arr
        self._rew[idx] = float(rew)
        self._obs_next[idx] = obs_next_arr
        self._done[idx] = bool(done)
        self._terminated[idx] = bool(done) if terminated is None else bool(terminated)
        self._truncated[idx] = bool(truncated)

        self._write_index = (idx + 1) % self.capacity
        self._size = min(self._size + 1, self.capacity)
        return idx

    def push(self, transition: Transition) -> int:
        return self.add(
            transition.obs,
            transition.act,
            transition.rew,
            transition.obs_next,
            transition.done,
            terminated=transition.terminated,
            truncated=transition.truncated,
        )

    def __getitem__(self, index: int) -> Transition:
        if not 0 <= index < self._size:
            raise IndexError(f"Replay buffer index {index} out of range [0, {self._size}).")
        return Transition(
            obs=self._obs[index].copy(),
            act=self._act[index].copy(),
            rew=float(self._rew[index]),
            obs_next=self._obs_next[index].copy(),
            done=bool(self._done[index]),
            terminated=bool(self._terminated[index]),
            truncated=bool(self._truncated[index]),
        )

    def sample_indices(self, batch_size: int) -> np.ndarray:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}.")
        if self._size < batch_size:
            raise InsufficientDataError(
                f"Replay buffer holds {self._size} transitions, {batch_size} requested."
            )
        return self._rng.integers(0, self._size, size=int(batch_size), dtype=np.int64)

    def sample(self, batch_size: int) -> tuple[Batch, np.ndarray]:
        """Draw ``batch_size`` indices uniformly (with replacement) and gather them."""

        indices = self.sample_indices(batch_size)
        batch = Batch(
            obs=np.take(self._obs, indices, axis=0),
            act=np.take(self._act, indices, axis=0),
            rew=np.take(self._rew, indices, axis=0),
            obs_next=np.take(self._obs_next, indices, axis=0),
            done=np.take(self._done, indices, axis=0),
            terminated=np.take(self._terminated, indices, axis=0),
            truncated=np.take(self._truncated, indices, axis=0),
        )
        return batch, indices

    def clear(self) -> None:
        """Drop all stored transitions and release the column storage."""

        self._obs = np.zeros((0, self.obs_dim), dtype=np.float32)
        self._act = np.zeros((0, self.act_dim), dtype=np.float32)
        self._rew = np.zeros(0, dtype=np.float32)
        self._obs_next = np.zeros((0, self.obs_dim), dtype=np.float32)
        self._done = np.zeros(0, dtype=np.bool_)
        self._terminated = np.zeros(0, dtype=np.bool_)
        self._truncated = np.zeros(0, dtype=np.bool_)
        self._write_index = 0
        self._size = 0
        self._released = True

    @property
    def released(self) -> bool:
        return self._released
