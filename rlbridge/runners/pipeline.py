"""Config-driven train/eval pipelines with strongly typed results."""

from __future__ import annotations

import datetime
import logging
import os
from pathlib import Path
from typing import Any

from omegaconf import DictConfig

from rlbridge.core.config import AgentConfig, build_agent_config
from rlbridge.core.exceptions import ConfigurationError
from rlbridge.core.seed import set_global_seed
from rlbridge.env.adapter import DEFAULT_MAX_EPISODE_STEPS
from rlbridge.env.base import ExternalEnvironment
from rlbridge.env.gym_env import GymEnvironment
from rlbridge.env.registry import build_environment
from rlbridge.logging.factory import LoggerArtifacts, build_logger
from rlbridge.logging.metrics import reward_stats, status_to_metrics
from rlbridge.runners.agent import Agent
from rlbridge.runners.manager import AgentManager
from rlbridge.runners.types import EvaluationResult, TrainingResult
from rlbridge.utils.hydra import as_yaml, build_context, resolve_config
from rlbridge.utils.io import ensure_dir, save_json, save_text

logger = logging.getLogger(__name__)


def _agent_config_for(cfg: DictConfig, environment: ExternalEnvironment) -> AgentConfig:
    """Fill environment-derived dims (and Box action bounds) into the agent config."""

    overrides: dict[str, Any] = {
        "observation_dim": environment.get_observation_dim(),
        "action_dim": environment.get_action_dim(),
    }
    action_norm_cfg = cfg.agent.get("action_norm")
    if isinstance(environment, GymEnvironment) and not (
        action_norm_cfg and action_norm_cfg.get("enabled")
    ):
        overrides["action_norm"] = environment.action_normalization()
    return build_agent_config(cfg.agent, **overrides)


def _run_name(cfg: DictConfig) -> str:
    timestamp = datetime.datetime.now().strftime("%y%m%d-%H%M%S")
    task = str(cfg.env.get("task") or cfg.env.name)
    return os.path.join(task, str(cfg.agent.algo), str(cfg.seed), timestamp)


def train(cfg: DictConfig) -> TrainingResult:
    """Train one agent against the configured environment and persist its policy."""

    run_name = _run_name(cfg)
    log_path = os.path.join(str(cfg.paths.logdir), run_name)
    ensure_dir(log_path)
    resolved_config_path = os.path.join(log_path, "resolved_config.yaml")
    save_text(resolved_config_path, as_yaml(cfg))

    context = build_context(cfg)
    set_global_seed(int(cfg.seed), seed_cuda=context.device.startswith("cuda"))
    agent_name = str(cfg.get("agent_name", "agent"))

    environment: ExternalEnvironment | None = None
    logger_artifacts: LoggerArtifacts | None = None
    manager = AgentManager(context, profile=bool(cfg.train.get("profile", False)))
    try:
        environment = build_environment(cfg.env)
        config = _agent_config_for(cfg, environment)
        agent = manager.configure_agent(agent_name, environment, config)
        if cfg.get("resume_path"):
            agent.load_policy(str(cfg.resume_path))

        logger_artifacts = build_logger(
            logger_cfg=cfg.logger,
            log_path=log_path,
            run_name=run_name,
            agent_name=agent_name,
            config_dict=resolve_config(cfg),
            resolved_config_path=resolved_config_path,
            resume_id=cfg.get("resume_id"),
        )

        if not agent.start_training():
            raise RuntimeError(f"Agent '{agent_name}' could not start training.")
        _drive_training(agent, int(cfg.train.log_every), logger_artifacts)

        status = agent.get_training_status()
        if not status.success:
            logger.error("Training of agent '%s' stopped after a failure.", agent_name)
        policy_path = agent.save_policy(Path(log_path) / str(cfg.paths.policy_filename))

        result = TrainingResult(
            agent_name=agent_name,
            log_path=log_path,
            policy_path=str(policy_path),
            status=status,
            episode_rewards=agent.episode_rewards(),
            perf=agent.perf.as_dict(),
        )
        save_json(Path(log_path) / str(cfg.paths.save_metrics_filename), result.to_dict())
        return result
    finally:
        if logger_artifacts is not None:
            logger_artifacts.close()
        manager.shutdown()
        if environment is not None:
            environment.close()


def _drive_training(agent: Agent, log_every: int, artifacts: LoggerArtifacts) -> None:
    while agent.is_training():
        ok = agent.step_training(log_every)
        status = agent.get_training_status()
        metrics = status_to_metrics(status)
        if agent.runner is not None:
            metrics.update(agent.runner.last_metrics)
        artifacts.write(status.current_step, metrics)
        if not ok:
            break


def evaluate(cfg: DictConfig, policy_path: str | None = None) -> EvaluationResult:
    """Roll out a saved policy deterministically and report episode returns."""

    effective_path = str(policy_path or cfg.get("policy_path") or "")
    if not effective_path:
        raise ConfigurationError(
            "policy_path is required for eval. "
            "Example: python scripts/eval.py policy_path=/path/policy.pth"
        )

    context = build_context(cfg)
    set_global_seed(int(cfg.seed), seed_cuda=context.device.startswith("cuda"))
    episodes = int(cfg.eval.episodes)

    environment: ExternalEnvironment | None = None
    manager = AgentManager(context)
    try:
        environment = build_environment(cfg.env)
        config = _agent_config_for(cfg, environment)
        agent = manager.configure_agent("eval", environment, config)
        agent.load_policy(effective_path)

        cap = config.max_episode_steps or environment.get_max_episode_steps()
        cap = cap or DEFAULT_MAX_EPISODE_STEPS
        rewards: list[float] = []
        successes = 0
        for _ in range(episodes):
            episode_reward, terminated = _rollout(agent, environment, cap)
            rewards.append(episode_reward)
            successes += int(terminated)

        stats = reward_stats(rewards)
        return EvaluationResult(
            policy_path=effective_path,
            episodes=episodes,
            reward_mean=stats["reward_mean"],
            reward_std=stats["reward_std"],
            episode_rewards=rewards,
            success_rate=successes / episodes if episodes else 0.0,
        )
    finally:
        manager.shutdown()
        if environment is not None:
            environment.close()


def _rollout(agent: Agent, environment: ExternalEnvironment, cap: int) -> tuple[float, bool]:
    obs = environment.reset()
    total = 0.0
    for _ in range(cap):
        action = agent.get_action(obs)
        if action.size == 0:
            raise RuntimeError(f"Policy inference failed: {agent.last_error}")
        environment.step(action)
        total += float(environment.get_reward())
        if environment.is_terminated():
            return total, True
        if environment.is_truncated():
            break
        obs = environment.get_observation()
    return total, False

