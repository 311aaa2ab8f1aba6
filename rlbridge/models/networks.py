"""Actor/critic networks and the primitive operations the learner drives them with."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import torch
from torch import nn
from tianshou.utils.net.common import MLP

from rlbridge.core.registry import Registry

ACTIVATION_REGISTRY: Registry[type[nn.Module]] = Registry(namespace="activation")


def register_default_activations() -> None:
    defaults: dict[str, type[nn.Module]] = {
        "relu": nn.ReLU,
        "tanh": nn.Tanh,
        "elu": nn.ELU,
        "leaky_relu": nn.LeakyReLU,
        "gelu": nn.GELU,
    }
    for name, module in defaults.items():
        ACTIVATION_REGISTRY.setdefault(name, module)


def get_activation(name: str) -> type[nn.Module]:
    register_default_activations()
    return ACTIVATION_REGISTRY.get(name)


def kaiming_init_(module: nn.Module, generator: torch.Generator) -> None:
    """He-normal weights drawn from ``generator``, zero biases, for every linear layer."""

    with torch.no_grad():
        for layer in module.modules():
            if not isinstance(layer, nn.Linear):
                continue
            fan_in = layer.weight.shape[1]
            std = math.sqrt(2.0) / math.sqrt(fan_in)
            sample = torch.randn(layer.weight.shape, generator=generator) * std
            layer.weight.copy_(sample.to(layer.weight))
            if layer.bias is not None:
                layer.bias.zero_()


class Actor(nn.Module):
    """Deterministic policy: observation -> action in ``[-1, 1]``."""

    def __init__(
        self,
        observation_dim: int,
        action_dim: int,
        hidden_dim: int = 64,
        num_layers: int = 2,
        activation: str = "relu",
    ) -> None:
        super().__init__()
        self.observation_dim = int(observation_dim)
        self.action_dim = int(action_dim)
        self.trunk = MLP(
            input_dim=self.observation_dim,
            output_dim=self.action_dim,
            hidden_sizes=[int(hidden_dim)] * int(num_layers),
            activation=get_activation(activation),
        )

    def forward(self, obs: torch.Tensor) -> torch.Tensor:
        return torch.tanh(self.trunk(obs))


class Critic(nn.Module):
    """Q-function: concat(observation, action) -> scalar value."""

    def __init__(
        self,
        observation_dim: int,
        action_dim: int,
        hidden_dim: int = 64,
        num_layers: int = 2,
        activation: str = "relu",
    ) -> None:
        super().__init__()
        self.observation_dim = int(observation_dim)
        self.action_dim = int(action_dim)
        self.trunk = MLP(
            input_dim=self.observation_dim + self.action_dim,
            output_dim=1,
            hidden_sizes=[int(hidden_dim)] * int(num_layers),
            activation=get_activation(activation),
        )

    def forward(self, obs: torch.Tensor, act: torch.Tensor) -> torch.Tensor:
        return self.trunk(torch.cat([obs, act], dim=-1))


@dataclass(slots=True)
class ForwardBuffer:
    """Caller-owned record of one differentiable forward pass."""

    inputs: tuple[torch.Tensor, ...] = ()
    outputs: torch.Tensor | None = None

    @property
    def empty(self) -> bool:
        return self.outputs is None

    def clear(self) -> None:
        self.inputs = ()
        self.outputs = None


def evaluate(network: nn.Module, *inputs: torch.Tensor) -> torch.Tensor:
    """Inference-only forward pass; no autograd graph is kept."""

    with torch.no_grad():
        return network(*inputs)


def forward(network: nn.Module, *inputs: torch.Tensor, buffer: ForwardBuffer) -> torch.Tensor:
    """Differentiable forward pass recorded into ``buffer`` for a later ``backward``."""

    outputs = network(*inputs)
    buffer.inputs = tuple(inputs)
    buffer.outputs = outputs
    return outputs


def backward(
    network: nn.Module,
    buffer: ForwardBuffer,
    loss: torch.Tensor,
) -> None:
    """Accumulate gradients for ``network`` from a recorded forward pass.

    ``loss`` is either a scalar loss built from ``buffer.outputs`` or a tensor
    shaped like the outputs holding dLoss/dOutput.
    """

    if buffer.empty:
        raise RuntimeError(
            f"backward called on {type(network).__name__} without a recorded forward pass."
        )
    assert buffer.outputs is not None
    if loss.dim() == 0:
        loss.backward()
    else:
        buffer.outputs.backward(gradient=loss)
    buffer.clear()


def step(optimizer: torch.optim.Optimizer, network: nn.Module) -> None:
    """Apply one optimizer update to ``network`` and clear its gradients."""

    optimizer.step()
    network.zero_grad(set_to_none=True)


def soft_update(target: nn.Module, online: nn.Module, tau: float) -> None:
    """Polyak average: ``target = tau * online + (1 - tau) * target``."""

    with torch.no_grad():
        for target_param, online_param in zip(target.parameters(), online.parameters()):
            if tau == 1.0:
                target_param.copy_(online_param)
            else:
                target_param.mul_(1.0 - tau).add_(online_param, alpha=tau)


def hard_update(target: nn.Module, online: nn.Module) -> None:
    soft_update(target, online, 1.0)


@dataclass(slots=True)
class ActorCriticBundle:
    """Online actor, twin critics and their target copies."""

    actor: Actor
    critic1: Critic
    critic2: Critic
    actor_target: Actor
    critic1_target: Critic
    critic2_target: Critic
    hidden_dim: int
    num_layers: int
    activation: str
    meta: dict[str, Any] = field(default_factory=dict)

    def architecture(self) -> dict[str, Any]:
        return {
            "observation_dim": self.actor.observation_dim,
            "action_dim": self.actor.action_dim,
            "hidden_dim": self.hidden_dim,
            "num_layers": self.num_layers,
            "activation": self.activation,
        }

    def modules(self) -> dict[str, nn.Module]:
        return {
            "actor": self.actor,
            "critic1": self.critic1,
            "critic2": self.critic2,
            "actor_target": self.actor_target,
            "critic1_target": self.critic1_target,
            "critic2_target": self.critic2_target,
        }

    def state_dict(self) -> dict[str, dict[str, torch.Tensor]]:
        return {name: module.state_dict() for name, module in self.modules().items()}

    def load_state_dict(self, state: dict[str, dict[str, torch.Tensor]]) -> None:
        for name, module in self.modules().items():
            module.load_state_dict(state[name])

    def to(self, device: str | torch.device) -> ActorCriticBundle:
        for module in self.modules().values():
            module.to(device)
        return self
