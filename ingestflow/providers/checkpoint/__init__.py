"""Step-log (checkpoint) backends for the job runtime."""

from ingestflow.providers.checkpoint.memory_step_store import MemoryStepStore
from ingestflow.providers.checkpoint.sqlite_step_store import SQLiteStepStore

__all__ = ["MemoryStepStore", "SQLiteStepStore"]
