"""Agent hyperparameters and their validation."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any

from omegaconf import DictConfig, OmegaConf

from rlbridge.core.exceptions import ConfigurationError
from rlbridge.data.normalization import NormalizationParams

_NORM_FIELDS = ("observation_norm", "action_norm")


@dataclass(slots=True, frozen=True)
class AgentConfig:
    """Immutable training configuration for one agent (TD3 defaults)."""

    observation_dim: int
    action_dim: int
    max_training_steps: int = 100_000
    actor_lr: float = 3e-4
    critic_lr: float = 3e-4
    gamma: float = 0.99
    tau: float = 0.005
    batch_size: int = 256
    replay_buffer_capacity: int = 1_000_000
    training_interval: int = 1
    warmup_steps: int = 10_000
    max_episode_steps: int | None = None
    policy_delay: int = 2
    policy_noise: float = 0.2
    noise_clip: float = 0.5
    exploration_noise: float = 0.1
    hidden_dim: int = 64
    num_layers: int = 2
    activation: str = "relu"
    reward_window: int = 100
    log_interval: int = 1000
    seed: int | None = 0
    model: str = "mlp_actor_critic"
    algo: str = "td3"
    observation_norm: NormalizationParams = field(default_factory=NormalizationParams.disabled)
    action_norm: NormalizationParams = field(default_factory=NormalizationParams.disabled)

    def validate(self) -> AgentConfig:
        """Raise ``ConfigurationError`` for values the training loop cannot run with."""

        positive_ints = (
            "observation_dim",
            "action_dim",
            "max_training_steps",
            "batch_size",
            "replay_buffer_capacity",
            "training_interval",
            "policy_delay",
            "hidden_dim",
            "num_layers",
            "reward_window",
            "log_interval",
        )
        for name in positive_ints:
            value = getattr(self, name)
            if int(value) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}.")

        if self.warmup_steps < 0:
            raise ConfigurationError(f"warmup_steps must be >= 0, got {self.warmup_steps}.")
        if self.max_episode_steps is not None and self.max_episode_steps <= 0:
            raise ConfigurationError(
                f"max_episode_steps must be positive or null, got {self.max_episode_steps}."
            )
        if self.actor_lr <= 0.0 or self.critic_lr <= 0.0:
            raise ConfigurationError("Learning rates must be positive.")
        if not 0.0 <= self.gamma <= 1.0:
            raise ConfigurationError(f"gamma must be in [0, 1], got {self.gamma}.")
        if not 0.0 <= self.tau <= 1.0:
            raise ConfigurationError(f"tau must be in [0, 1], got {self.tau}.")
        for name in ("policy_noise", "noise_clip", "exploration_noise"):
            if getattr(self, name) < 0.0:
                raise ConfigurationError(f"{name} must be >= 0, got {getattr(self, name)}.")
        if self.batch_size > self.replay_buffer_capacity:
            raise ConfigurationError(
                f"batch_size ({self.batch_size}) cannot exceed replay_buffer_capacity "
                f"({self.replay_buffer_capacity})."
            )
        return self

    def with_overrides(self, **overrides: Any) -> AgentConfig:
        return replace(self, **overrides).validate()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            data[item.name] = value.to_dict() if isinstance(value, NormalizationParams) else value
        return data


def build_agent_config(cfg: DictConfig | dict[str, Any], **overrides: Any) -> AgentConfig:
    """Build and validate an ``AgentConfig`` from a config node.

    Unknown keys are rejected so typos in YAML fail loudly instead of silently
    falling back to defaults.
    """

    if isinstance(cfg, DictConfig):
        raw = OmegaConf.to_container(cfg, resolve=True)
    else:
        raw = dict(cfg)
    assert isinstance(raw, dict)
    raw.update(overrides)

    known = {item.name for item in fields(AgentConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(f"Unknown agent config keys: {', '.join(unknown)}.")
    for required in ("observation_dim", "action_dim"):
        if raw.get(required) is None:
            raise ConfigurationError(f"Agent config is missing required key '{required}'.")

    for name in _NORM_FIELDS:
        value = raw.get(name)
        if value is None or isinstance(value, NormalizationParams):
            raw[name] = value or NormalizationParams.disabled()
        else:
            raw[name] = NormalizationParams.from_cfg(value)

    try:
        config = AgentConfig(**raw)
    except TypeError as exc:
        raise ConfigurationError(f"Invalid agent config: {exc}") from exc
    return config.validate()
