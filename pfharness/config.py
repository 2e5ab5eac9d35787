"""Process settings: defaults, then an optional YAML file, then environment variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from pfharness.errors import ConfigError

logger = logging.getLogger(__name__)

ENGINES = ("local", "kubernetes")


@dataclass
class Settings:
    engine: str = "local"
    namespace: str = "pf-harness"
    priority_task_queue: str = "priority-queue"
    fairness_task_queue: str = "fairness-queue"
    step_duration_ms: int = 300
    local_workers: int = 5
    local_retention_s: int = 3600
    worker_image: str = "pfharness/worker:latest"
    log_level: str = "INFO"
    port: int = 7080

    def task_queue_for(self, fairness: bool) -> str:
        return self.fairness_task_queue if fairness else self.priority_task_queue


# env var -> settings field
ENV_VARS = {
    "PF_ENGINE": "engine",
    "PF_NAMESPACE": "namespace",
    "PF_PRIORITY_TASK_QUEUE": "priority_task_queue",
    "PF_FAIRNESS_TASK_QUEUE": "fairness_task_queue",
    "PF_STEP_DURATION_MS": "step_duration_ms",
    "PF_LOCAL_WORKERS": "local_workers",
    "PF_LOCAL_RETENTION_S": "local_retention_s",
    "PF_WORKER_IMAGE": "worker_image",
    "PF_LOG_LEVEL": "log_level",
    "PF_PORT": "port",
}


def _coerce(values: Mapping[str, Any]) -> Dict[str, Any]:
    types = {f.name: f.type for f in fields(Settings)}
    out: Dict[str, Any] = {}
    for name, raw in values.items():
        if name not in types:
            logger.warning(f"Ignoring unknown setting '{name}'")
            continue
        if types[name] == "int":
            try:
                out[name] = int(raw)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"setting '{name}' must be an integer, got {raw!r}") from e
        else:
            out[name] = str(raw)
    return out


def _load_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping of settings")
    return data


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    config_path = env.get("PF_CONFIG_PATH")
    if config_path:
        values.update(_load_yaml(Path(config_path)))
        logger.info(f"Loaded settings from {config_path}")

    for var, name in ENV_VARS.items():
        if var in env:
            values[name] = env[var]

    settings = Settings(**_coerce(values))
    settings.engine = settings.engine.strip().lower()
    if settings.engine not in ENGINES:
        raise ConfigError(f"unknown engine '{settings.engine}', expected one of {', '.join(ENGINES)}")
    return settings
