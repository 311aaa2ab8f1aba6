"""Replay storage and tensor conversion helpers."""

from rlbridge.data.normalization import NormalizationParams, from_matrix, to_matrix
from rlbridge.data.replay_buffer import ReplayBuffer, Transition

__all__ = ["NormalizationParams", "ReplayBuffer", "Transition", "from_matrix", "to_matrix"]
