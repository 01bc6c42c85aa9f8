"""YAML configuration loader with environment variable overrides.

Layers, later ones winning:

  1. ``config/config.yaml`` -- static defaults checked into the repo
  2. ``.env`` file          -- local developer overrides (not committed)
  3. environment variables  -- set at deploy time

Only keys that :class:`~briefrag.config.settings.Settings` knows about are
overridden from the environment; everything else (CORS origins, API
metadata) lives in YAML alone.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from briefrag.config.settings import Settings
from briefrag.utils.errors import ConfigurationError


def load_config(path: str | Path = "config/config.yaml", settings: Settings | None = None) -> dict[str, Any]:
    """Load YAML config and merge environment-backed settings on top.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
            an empty base layer.
        settings: Settings instance to take overrides from; a fresh one is
            read from the environment when omitted.

    Returns:
        Fully resolved configuration dictionary.

    Raises:
        ConfigurationError: If the YAML file is malformed or not a mapping.
    """
    config_path = Path(path)
    yaml_config: dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Malformed config file {config_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
        yaml_config = loaded

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "chunking": {
            "max_size": settings.chunk_max_size,
            "overlap": settings.chunk_overlap,
        },
        "retrieval": {
            "max_results": settings.retrieval_max_results,
            "threshold": settings.retrieval_threshold,
        },
        "completion": {
            "model": settings.openai_chat_model,
            "temperature": settings.completion_temperature,
            "max_tokens": settings.completion_max_tokens,
        },
        "embedding": {
            "model": settings.openai_embedding_model,
            "dimension": settings.embedding_dimension,
            "concurrency": settings.embedding_concurrency,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge *overrides* into *base* in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
