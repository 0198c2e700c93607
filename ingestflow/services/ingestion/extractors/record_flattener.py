"""Structured-record flattener for JSON research reports.

Walks a parsed JSON document and turns it into one plain-text blob suitable
for chunking.  Each JSON type has an explicit rule:

==========  ===============================================================
string      emitted verbatim (blank strings are skipped)
number      emitted with its key, e.g. ``revenue: 12.5``
boolean     emitted with its key as ``true``/``false``
null        skipped
array       each element visited in order, inheriting the array's key
object      each value visited in key order
==========  ===============================================================

A short header carrying the report's subject and category is prepended so
every chunk-level embedding of the report stays anchored to what it is about.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from ingestflow.utils.errors import ContentError

logger = structlog.get_logger(logger_name=__name__)


class RecordFlattener:
    """Typed visitor over JSON values producing newline-separated text."""

    def flatten(
        self,
        raw: str | bytes,
        subject: str | None = None,
        category: str | None = None,
    ) -> str:
        """Parse *raw* JSON and return the header plus flattened text.

        Raises
        ------
        ContentError
            If *raw* is not valid JSON.
        """
        try:
            record = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ContentError(message=f"Failed to parse JSON research report: {exc}") from exc

        pieces: list[str] = []
        self._visit(record, None, pieces)
        body = "\n".join(pieces)

        logger.debug("record_flattened", pieces=len(pieces), chars=len(body))
        return self.header(subject, category) + body

    @staticmethod
    def header(subject: str | None, category: str | None) -> str:
        lines = []
        if subject:
            lines.append(f"Source: {subject}")
        if category:
            lines.append(f"Category: {category}")
        return "\n".join(lines) + "\n\n" if lines else ""

    def _visit(self, node: Any, key: str | None, out: list[str]) -> None:
        if node is None:
            return
        if isinstance(node, str):
            if node.strip():
                out.append(node)
        # bool before int: True is an int in Python.
        elif isinstance(node, bool):
            out.append(self._labelled(key, "true" if node else "false"))
        elif isinstance(node, (int, float)):
            out.append(self._labelled(key, repr(node) if isinstance(node, float) else str(node)))
        elif isinstance(node, list):
            for item in node:
                self._visit(item, key, out)
        elif isinstance(node, dict):
            for child_key, value in node.items():
                self._visit(value, str(child_key), out)
        else:
            msg = f"Unsupported JSON value of type {type(node).__name__}"
            raise ContentError(message=msg)

    @staticmethod
    def _labelled(key: str | None, value: str) -> str:
        return f"{key}: {value}" if key else value
