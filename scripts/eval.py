"""CLI for evaluating a saved policy."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import hydra
from omegaconf import DictConfig, OmegaConf

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rlbridge.core.exceptions import ConfigurationError  # noqa: E402
from rlbridge.runners import evaluate  # noqa: E402
from rlbridge.utils.env import load_env_file  # noqa: E402

load_env_file()


@hydra.main(version_base=None, config_path="../configs", config_name="config")
def main(cfg: DictConfig) -> None:
    print(OmegaConf.to_yaml(cfg, resolve=True))
    policy_path = cfg.get("policy_path")
    if not policy_path:
        raise ConfigurationError(
            "policy_path is required for eval. "
            "Example: python scripts/eval.py policy_path=/path/policy.pth"
        )

    result = evaluate(cfg, str(policy_path))
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
