"""ingestflow: crash-resumable ingestion of audio, PDF and research sources.

Source documents are extracted to text, split into overlapping chunks,
embedded, and persisted as searchable segments by a small event-driven job
runtime whose steps are checkpointed so an interrupted run resumes without
repeating completed provider calls.
"""

__version__ = "0.1.0"
