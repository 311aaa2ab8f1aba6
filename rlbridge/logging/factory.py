"""Metric logger factory for TensorBoard/WandB."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from torch.utils.tensorboard import SummaryWriter

from tianshou.utils import TensorboardLogger, WandbLogger

from rlbridge.core.exceptions import ConfigurationError


@dataclass(slots=True)
class LoggerArtifacts:
    logger: TensorboardLogger | WandbLogger
    writer: SummaryWriter

    def write(self, step: int, data: dict[str, float], scope: str = "train") -> None:
        if data:
            self.logger.write(f"{scope}/env_step", int(step), data)

    def close(self) -> None:
        self.writer.flush()
        self.writer.close()


def _build_run_summary(
    agent_name: str,
    config_dict: dict[str, Any] | None,
    resolved_config_path: str | None,
) -> str:
    lines = [f"agent: {agent_name}"]
    if resolved_config_path:
        lines.append(f"resolved_config_path: {resolved_config_path}")
    agent_cfg = (config_dict or {}).get("agent") or {}
    for key in ("algo", "model", "hidden_dim", "num_layers", "batch_size", "warmup_steps"):
        if key in agent_cfg:
            lines.append(f"{key}: {agent_cfg[key]}")
    return "\n".join(lines)


def build_logger(
    logger_cfg: Any,
    log_path: str,
    run_name: str,
    agent_name: str,
    config_dict: dict[str, Any] | None = None,
    resolved_config_path: str | None = None,
    resume_id: str | None = None,
) -> LoggerArtifacts:
    """Create the SummaryWriter and wrap it in the configured tianshou logger."""

    writer = SummaryWriter(log_path)
    summary = _build_run_summary(agent_name, config_dict, resolved_config_path)
    writer.add_text("run/summary", summary)

    if logger_cfg.type == "tensorboard":
        logger = TensorboardLogger(writer)
    elif logger_cfg.type == "wandb":
        logger = WandbLogger(
            save_interval=1,
            name=run_name.replace(os.path.sep, "__"),
            run_id=resume_id,
            config=config_dict or {},
            project=logger_cfg.wandb_project,
        )
        logger.load(writer)
    else:
        writer.close()
        raise ConfigurationError(f"Unsupported logger type: {logger_cfg.type}")

    return LoggerArtifacts(logger=logger, writer=writer)
