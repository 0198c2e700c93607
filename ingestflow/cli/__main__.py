"""Allow ``python -m ingestflow.cli`` execution."""

from ingestflow.cli.ingest import main

main()
