"""Flat-array <-> matrix conversion with optional per-dimension affine normalization."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from tianshou.utils import RunningMeanStd

from rlbridge.core.exceptions import ConfigurationError, DimensionMismatchError

logger = logging.getLogger(__name__)

# Standard deviations below this are treated as zero and never divided by.
STDDEV_EPSILON = 1e-4


@dataclass(slots=True, frozen=True)
class NormalizationParams:
    """Affine normalization parameters for one observation or action vector.

    ``mean`` and ``stddev`` may hold a single value broadcast to every
    dimension, one value per dimension, or fewer values than dimensions (the
    remaining dimensions fall back to mean 0 / stddev 1).
    """

    enabled: bool = False
    mean: tuple[float, ...] = field(default_factory=tuple)
    stddev: tuple[float, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mean", tuple(float(v) for v in self.mean))
        object.__setattr__(self, "stddev", tuple(float(v) for v in self.stddev))

    @classmethod
    def disabled(cls) -> NormalizationParams:
        return cls(enabled=False)

    @classmethod
    def fit(cls, samples: np.ndarray) -> NormalizationParams:
        """Estimate per-dimension mean/stddev from a ``(n, dim)`` sample array."""

        data = np.asarray(samples, dtype=np.float64)
        if data.ndim != 2 or data.shape[0] == 0:
            raise ValueError("NormalizationParams.fit expects a non-empty (n, dim) array.")
        rms = RunningMeanStd()
        rms.update(data)
        mean = np.asarray(rms.mean, dtype=np.float32).reshape(-1)
        stddev = np.sqrt(np.asarray(rms.var, dtype=np.float32).reshape(-1))
        return cls(enabled=True, mean=tuple(mean.tolist()), stddev=tuple(stddev.tolist()))

    @classmethod
    def from_cfg(cls, cfg: Any | None) -> NormalizationParams:
        """Build params from a config node with ``enabled``/``mean``/``stddev`` keys."""

        if cfg is None:
            return cls.disabled()
        mean = cfg.get("mean") or ()
        stddev = cfg.get("stddev") or ()
        if isinstance(mean, (int, float)):
            mean = (mean,)
        if isinstance(stddev, (int, float)):
            stddev = (stddev,)
        try:
            return cls(
                enabled=bool(cfg.get("enabled", False)),
                mean=tuple(mean),
                stddev=tuple(stddev),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid normalization parameters: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "mean": list(self.mean), "stddev": list(self.stddev)}


def _expand(values: Sequence[float], size: int, default: float, label: str) -> np.ndarray:
    """Resolve a broadcast/full/under-sized parameter list to exactly ``size`` values."""

    if len(values) == 0:
        return np.full(size, default, dtype=np.float32)
    if len(values) == 1:
        return np.full(size, values[0], dtype=np.float32)

    resolved = np.full(size, default, dtype=np.float32)
    count = min(len(values), size)
    resolved[:count] = np.asarray(values[:count], dtype=np.float32)
    if len(values) < size:
        logger.warning(
            "Normalization %s has %d values for %d elements; using default %.1f for "
            "indices %d..%d.",
            label,
            len(values),
            size,
            default,
            len(values),
            size - 1,
        )
    return resolved


def _normalize(values: np.ndarray, params: NormalizationParams) -> np.ndarray:
    size = values.shape[-1]
    mean = _expand(params.mean, size, 0.0, "mean")
    stddev = _expand(params.stddev, size, 1.0, "stddev")
    near_zero = np.abs(stddev) < STDDEV_EPSILON
    if near_zero.any():
        logger.warning(
            "Normalization stddev is near zero for element(s) %s; leaving them raw.",
            np.flatnonzero(near_zero).tolist(),
        )
    safe_stddev = np.where(near_zero, 1.0, stddev)
    safe_mean = np.where(near_zero, 0.0, mean)
    return ((values - safe_mean) / safe_stddev).astype(np.float32, copy=False)


def _denormalize(values: np.ndarray, params: NormalizationParams) -> np.ndarray:
    size = values.shape[-1]
    mean = _expand(params.mean, size, 0.0, "mean")
    stddev = _expand(params.stddev, size, 1.0, "stddev")
    return (values * stddev + mean).astype(np.float32, copy=False)


def to_matrix(
    flat_array: Sequence[float] | np.ndarray,
    rows: int,
    cols: int,
    params: NormalizationParams | None = None,
) -> np.ndarray:
    """Convert a flat vector into a ``(rows, cols)`` float32 matrix.

    Elements are laid out row-major; normalization index ``i`` is the
    element's position in ``flat_array``.
    """

    flat = np.asarray(flat_array, dtype=np.float32).reshape(-1)
    expected = int(rows) * int(cols)
    if flat.size != expected:
        raise DimensionMismatchError(
            f"Dimension mismatch: array has {flat.size} elements, matrix expects {expected}."
        )
    if params is not None and params.enabled:
        flat = _normalize(flat, params)
    else:
        flat = flat.copy()
    return flat.reshape(int(rows), int(cols))


def from_matrix(
    matrix: np.ndarray,
    params: NormalizationParams | None = None,
) -> np.ndarray:
    """Flatten a matrix row-major into a float32 vector, applying ``x*stddev + mean``."""

    flat = np.asarray(matrix, dtype=np.float32).reshape(-1)
    if params is not None and params.enabled:
        return _denormalize(flat, params)
    return flat.copy()


def normalize_batch(batch: np.ndarray, params: NormalizationParams | None) -> np.ndarray:
    """Normalize a ``(n, dim)`` array column-wise with the same fallback rules."""

    values = np.asarray(batch, dtype=np.float32)
    if params is None or not params.enabled:
        return values
    return _normalize(values, params)


def denormalize_batch(batch: np.ndarray, params: NormalizationParams | None) -> np.ndarray:
    values = np.asarray(batch, dtype=np.float32)
    if params is None or not params.enabled:
        return values
    return _denormalize(values, params)


def fit_to_length(values: Sequence[float] | np.ndarray, size: int, label: str) -> np.ndarray:
    """Zero-pad or truncate ``values`` to ``size`` elements, warning when resized."""

    flat = np.asarray(values, dtype=np.float32).reshape(-1)
    if flat.size == size:
        return flat
    logger.warning(
        "%s dimension mismatch: expected %d, got %d. Padding/truncating.",
        label,
        size,
        flat.size,
    )
    resized = np.zeros(size, dtype=np.float32)
    count = min(size, flat.size)
    resized[:count] = flat[:count]
    return resized
