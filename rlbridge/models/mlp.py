"""Default MLP network factory for continuous control."""

from __future__ import annotations

import copy

from rlbridge.core.config import AgentConfig
from rlbridge.core.context import NumericContext
from rlbridge.core.seed import make_torch_generator
from rlbridge.models.base import NetworkFactory
from rlbridge.models.networks import Actor, ActorCriticBundle, Critic, kaiming_init_


class MLPActorCriticFactory(NetworkFactory):
    """Builds deterministic actor and twin critics with shared MLP recipe.

    All three online networks draw their initial weights from one seeded
    generator, so the critics start independent of each other but the whole
    bundle is reproducible from ``seed``. Targets start as exact copies.
    """

    def build(self, config: AgentConfig, context: NumericContext, seed: int) -> ActorCriticBundle:
        context.require_open()
        generator = make_torch_generator(seed)
        shape = dict(
            observation_dim=config.observation_dim,
            action_dim=config.action_dim,
            hidden_dim=config.hidden_dim,
            num_layers=config.num_layers,
            activation=config.activation,
        )

        actor = Actor(**shape)
        critic1 = Critic(**shape)
        critic2 = Critic(**shape)
        for network in (actor, critic1, critic2):
            kaiming_init_(network, generator)

        bundle = ActorCriticBundle(
            actor=actor,
            critic1=critic1,
            critic2=critic2,
            actor_target=copy.deepcopy(actor),
            critic1_target=copy.deepcopy(critic1),
            critic2_target=copy.deepcopy(critic2),
            hidden_dim=config.hidden_dim,
            num_layers=config.num_layers,
            activation=config.activation,
        )
        for target in (bundle.actor_target, bundle.critic1_target, bundle.critic2_target):
            target.requires_grad_(False)
        return bundle.to(context.device)
