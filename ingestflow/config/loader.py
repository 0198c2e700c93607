"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- Static defaults checked into the repo
  2. .env file           -- Local developer overrides (not committed)
  3. Environment vars    -- Set on the worker host at deploy time

The YAML file carries the per-job-type concurrency ceilings and retry
budgets; the env layer carries credentials, paths and chunking parameters.
"""

from pathlib import Path

import yaml

from ingestflow.config.settings import Settings

# Used when config/config.yaml is absent.  Provider-bound stages share the
# OpenAI rate limit; PDF text extraction is CPU-bound and can run wider.
_DEFAULT_JOBS: dict[str, dict[str, int]] = {
    "process-audio": {"concurrency": 5},
    "process-pdf": {"concurrency": 10},
    "process-text": {"concurrency": 5},
    "process-research-source": {"concurrency": 5},
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh :class:`Settings` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    base: dict = {"jobs": {name: dict(values) for name, values in _DEFAULT_JOBS.items()}}
    _deep_merge(base, yaml_config)

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
        },
        "chunking": {
            "chunk_size_tokens": settings.chunk_size_tokens,
            "overlap_tokens": settings.chunk_overlap_tokens,
        },
        "batching": {
            "embedding_batch_size": settings.embedding_batch_size,
            "insert_batch_size": settings.insert_batch_size,
        },
        "runtime": {
            "step_retries": settings.step_retries,
            "retry_backoff_seconds": settings.retry_backoff_seconds,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(base, env_overrides)
    return base


def job_concurrency(config: dict, function_id: str, default: int = 5) -> int:
    """Return the configured concurrency ceiling for *function_id*."""
    return int(config.get("jobs", {}).get(function_id, {}).get("concurrency", default))


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
