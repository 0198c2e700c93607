# =============================================================================
# ingestflow/cli/__init__.py - CLI Module Overview
# =============================================================================
#
# Command-line entry points for running the ingestion worker on one host.
# The CLI acts as the upload collaborator: it records pending documents,
# stores original files, emits the trigger events and drains the job
# runtime in-process.
#
# Architecture Notes:
#   - argparse is used for argument parsing (not Click/Typer) to keep the
#     dependency set to the core project requirements.
#   - Components come from ingestflow.main.build_pipeline, the same
#     assembly a long-running worker uses.
# =============================================================================

"""CLI tools for the ingestflow pipeline.

- ``python -m ingestflow.cli.ingest`` - ingest audio, PDF and research
  sources, retry failed documents, inspect status and search segments.
"""
