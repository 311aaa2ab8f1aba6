"""Model factories and registry."""

from rlbridge.models.registry import MODEL_REGISTRY, get_model_factory

__all__ = ["MODEL_REGISTRY", "get_model_factory"]
