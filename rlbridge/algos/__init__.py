"""Algorithm factories and registry."""

from rlbridge.algos.registry import ALGO_REGISTRY, get_algo_factory

__all__ = ["ALGO_REGISTRY", "get_algo_factory"]
