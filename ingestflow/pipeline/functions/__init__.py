"""Ingestion job functions, one per source type plus the shared text stage.

    Function                  Trigger                          Concurrency
    ───────────────────────────────────────────────────────────────────────
    process-audio             source/uploaded (kind=audio)     5
    process-pdf               source/uploaded (kind=pdf)       10
    process-text              text/extracted                   5
    process-research-source   research-source/created          5
"""

from __future__ import annotations

from ingestflow.config.loader import job_concurrency
from ingestflow.pipeline.functions.common import PipelineDeps, make_failure_hook
from ingestflow.pipeline.functions.process_audio import create_process_audio
from ingestflow.pipeline.functions.process_pdf import create_process_pdf
from ingestflow.pipeline.functions.process_research import create_process_research_source
from ingestflow.pipeline.functions.process_text import create_process_text
from ingestflow.pipeline.runtime import JobFunction

_FACTORIES = {
    "process-audio": (create_process_audio, 5),
    "process-pdf": (create_process_pdf, 10),
    "process-text": (create_process_text, 5),
    "process-research-source": (create_process_research_source, 5),
}


def build_functions(deps: PipelineDeps, config: dict | None = None) -> list[JobFunction]:
    """Create every job function, applying per-job limits from *config*.

    Extraction jobs whose extractor is not configured on *deps* are skipped.
    """
    config = config or {}
    retries = int(config.get("runtime", {}).get("step_retries", 3))
    functions: list[JobFunction] = []
    for function_id, (factory, default_concurrency) in _FACTORIES.items():
        if function_id == "process-audio" and deps.transcriber is None:
            continue
        if function_id == "process-pdf" and deps.pdf_extractor is None:
            continue
        if function_id == "process-research-source" and deps.flattener is None:
            continue
        functions.append(
            factory(
                deps,
                concurrency=job_concurrency(config, function_id, default_concurrency),
                retries=retries,
            )
        )
    return functions


__all__ = [
    "PipelineDeps",
    "build_functions",
    "create_process_audio",
    "create_process_pdf",
    "create_process_research_source",
    "create_process_text",
    "make_failure_hook",
]
