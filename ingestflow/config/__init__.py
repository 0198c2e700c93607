"""Configuration module - exports Settings and load_config."""

from ingestflow.config.loader import job_concurrency, load_config
from ingestflow.config.settings import Settings

__all__ = ["Settings", "job_concurrency", "load_config"]
