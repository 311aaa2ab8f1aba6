"""Twin Delayed DDPG learner operating on an ``ActorCriticBundle``."""

from __future__ import annotations

from typing import Any

import torch
import torch.nn.functional as F
from tianshou.data import Batch

from rlbridge.algos.base import AlgoFactory
from rlbridge.core.config import AgentConfig
from rlbridge.core.context import NumericContext
from rlbridge.core.seed import make_torch_generator
from rlbridge.models import networks
from rlbridge.models.networks import ActorCriticBundle, ForwardBuffer


class TD3Learner:
    """Critic updates every call; actor and target updates every ``policy_delay`` calls.

    Gradients for every network are computed before any optimizer steps, so a
    failure while building a loss leaves all parameters untouched.
    """

    def __init__(
        self,
        bundle: ActorCriticBundle,
        context: NumericContext,
        *,
        actor_lr: float = 3e-4,
        critic_lr: float = 3e-4,
        gamma: float = 0.99,
        tau: float = 0.005,
        policy_delay: int = 2,
        policy_noise: float = 0.2,
        noise_clip: float = 0.5,
        seed: int | None = None,
    ) -> None:
        self.bundle = bundle
        self.context = context
        self.gamma = float(gamma)
        self.tau = float(tau)
        self.policy_delay = int(policy_delay)
        self.policy_noise = float(policy_noise)
        self.noise_clip = float(noise_clip)
        self._noise_generator = make_torch_generator(seed)

        self.actor_optim = torch.optim.Adam(bundle.actor.parameters(), lr=actor_lr)
        self.critic1_optim = torch.optim.Adam(bundle.critic1.parameters(), lr=critic_lr)
        self.critic2_optim = torch.optim.Adam(bundle.critic2.parameters(), lr=critic_lr)
        self.update_count = 0

    def _smoothed_target_action(self, obs_next: torch.Tensor) -> torch.Tensor:
        target_act = networks.evaluate(self.bundle.actor_target, obs_next)
        noise = torch.randn(target_act.shape, generator=self._noise_generator)
        noise = (noise * self.policy_noise).clamp(-self.noise_clip, self.noise_clip)
        return (target_act + noise.to(target_act)).clamp(-1.0, 1.0)

    def _target_q(self, batch: Batch) -> torch.Tensor:
        obs_next = self.context.as_tensor(batch.obs_next)
        rew = self.context.as_tensor(batch.rew).reshape(-1, 1)
        done = self.context.as_tensor(batch.done).reshape(-1, 1)

        target_act = self._smoothed_target_action(obs_next)
        q1 = networks.evaluate(self.bundle.critic1_target, obs_next, target_act)
        q2 = networks.evaluate(self.bundle.critic2_target, obs_next, target_act)
        return rew + (1.0 - done) * self.gamma * torch.min(q1, q2)

    def update(self, batch: Batch) -> dict[str, float]:
        """Run one TD3 update on a sampled minibatch and return loss metrics."""

        obs = self.context.as_tensor(batch.obs)
        act = self.context.as_tensor(batch.act)
        target_q = self._target_q(batch)

        metrics: dict[str, float] = {}
        critic_buffers = {"critic1": ForwardBuffer(), "critic2": ForwardBuffer()}
        critic_losses: dict[str, torch.Tensor] = {}
        for name, buffer in critic_buffers.items():
            current_q = networks.forward(getattr(self.bundle, name), obs, act, buffer=buffer)
            critic_losses[name] = F.mse_loss(current_q, target_q)

        update_actor = (self.update_count + 1) % self.policy_delay == 0
        actor_buffer = ForwardBuffer()
        actor_loss: torch.Tensor | None = None
        if update_actor:
            critic1 = self.bundle.critic1
            critic1.requires_grad_(False)
            try:
                new_act = networks.forward(self.bundle.actor, obs, buffer=actor_buffer)
                actor_loss = -critic1(obs, new_act).mean()
            finally:
                critic1.requires_grad_(True)

        self.critic1_optim.zero_grad(set_to_none=True)
        self.critic2_optim.zero_grad(set_to_none=True)
        for name, buffer in critic_buffers.items():
            networks.backward(getattr(self.bundle, name), buffer, critic_losses[name])
        if actor_loss is not None:
            self.actor_optim.zero_grad(set_to_none=True)
            networks.backward(self.bundle.actor, actor_buffer, actor_loss)

        networks.step(self.critic1_optim, self.bundle.critic1)
        networks.step(self.critic2_optim, self.bundle.critic2)
        metrics["loss/critic1"] = float(critic_losses["critic1"].item())
        metrics["loss/critic2"] = float(critic_losses["critic2"].item())

        if actor_loss is not None:
            networks.step(self.actor_optim, self.bundle.actor)
            networks.soft_update(self.bundle.actor_target, self.bundle.actor, self.tau)
            networks.soft_update(self.bundle.critic1_target, self.bundle.critic1, self.tau)
            networks.soft_update(self.bundle.critic2_target, self.bundle.critic2, self.tau)
            metrics["loss/actor"] = float(actor_loss.item())

        self.update_count += 1
        return metrics

    def state_dict(self) -> dict[str, Any]:
        return {
            "actor_optim": self.actor_optim.state_dict(),
            "critic1_optim": self.critic1_optim.state_dict(),
            "critic2_optim": self.critic2_optim.state_dict(),
            "update_count": self.update_count,
        }

    def load_state_dict(self, state: dict[str, Any]) -> None:
        self.actor_optim.load_state_dict(state["actor_optim"])
        self.critic1_optim.load_state_dict(state["critic1_optim"])
        self.critic2_optim.load_state_dict(state["critic2_optim"])
        self.update_count = int(state.get("update_count", 0))


class TD3Factory(AlgoFactory):
    """Builds a ``TD3Learner`` from agent hyperparameters."""

    def build(
        self,
        config: AgentConfig,
        bundle: ActorCriticBundle,
        context: NumericContext,
        seed: int,
    ) -> TD3Learner:
        return TD3Learner(
            bundle,
            context,
            actor_lr=config.actor_lr,
            critic_lr=config.critic_lr,
            gamma=config.gamma,
            tau=config.tau,
            policy_delay=config.policy_delay,
            policy_noise=config.policy_noise,
            noise_clip=config.noise_clip,
            seed=seed,
        )
