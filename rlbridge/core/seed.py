"""Random seeding helpers."""

from __future__ import annotations

import random

import numpy as np
import torch


def set_global_seed(seed: int, *, seed_cuda: bool = False) -> None:
    """Seed Python, NumPy and PyTorch for reproducibility."""

    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    if seed_cuda and torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


def make_torch_generator(seed: int | None, device: str = "cpu") -> torch.Generator:
    """Build a dedicated torch generator so init/noise never touch global RNG state."""

    generator = torch.Generator(device=device)
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(int(seed))
    return generator
