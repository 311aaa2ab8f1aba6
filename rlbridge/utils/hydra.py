"""Hydra/OmegaConf utility helpers."""

from __future__ import annotations

from typing import Any

import torch
from omegaconf import DictConfig, OmegaConf

from rlbridge.core.context import NumericContext

_DTYPES = {
    "float32": torch.float32,
    "float64": torch.float64,
}


def resolve_config(cfg: DictConfig) -> dict[str, Any]:
    return OmegaConf.to_container(cfg, resolve=True)  # type: ignore[return-value]


def as_yaml(cfg: DictConfig) -> str:
    return OmegaConf.to_yaml(cfg, resolve=True)


def resolve_device(device: str) -> str:
    if device == "auto":
        return "cuda" if torch.cuda.is_available() else "cpu"
    return device


def build_context(cfg: DictConfig) -> NumericContext:
    """Create the numeric context described by the top-level ``device``/``dtype``/``seed``."""

    dtype_name = str(cfg.get("dtype", "float32"))
    if dtype_name not in _DTYPES:
        raise ValueError(f"Unsupported dtype '{dtype_name}'. Expected one of {sorted(_DTYPES)}.")
    return NumericContext(
        device=resolve_device(str(cfg.get("device", "cpu"))),
        dtype=_DTYPES[dtype_name],
        seed=cfg.get("seed"),
    )
