"""Diagnostics sinks: where the resolver sends severity-tagged messages.

The resolver decides *whether* to emit (verbosity gating); sinks only decide
*where*. Any object with `emit(severity, message)` works as a sink.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence, Tuple

from ..io.log import append_jsonl
from .types import Severity

__all__ = ["DiagnosticsSink", "LoggingSink", "CollectingSink", "JsonlSink", "MultiSink"]


class DiagnosticsSink(Protocol):
    def emit(self, severity: Severity, message: str) -> None: ...


class LoggingSink:
    """Route diagnostics to a stdlib logger (default: 'jitflags.diagnostics')."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("jitflags.diagnostics")

    def emit(self, severity: Severity, message: str) -> None:
        if severity == "error":
            self.logger.error("%s", message)
        else:
            self.logger.info("%s", message)


class CollectingSink:
    """Keep (severity, message) pairs in memory, in emission order."""

    def __init__(self) -> None:
        self.records: List[Tuple[Severity, str]] = []

    def emit(self, severity: Severity, message: str) -> None:
        self.records.append((severity, str(message)))

    def messages(self, severity: Optional[Severity] = None) -> List[str]:
        return [m for s, m in self.records if severity is None or s == severity]

    def clear(self) -> None:
        self.records.clear()


class JsonlSink:
    """Append each diagnostic as a JSON line under the logs directory."""

    def __init__(self, filename: str = "diagnostics.jsonl", *, pass_id: Optional[str] = None):
        self.filename = filename
        self.pass_id = pass_id

    def emit(self, severity: Severity, message: str) -> None:
        rec = {"severity": severity, "message": message}
        if self.pass_id is not None:
            rec["pass_id"] = self.pass_id
        append_jsonl(self.filename, rec)


class MultiSink:
    """Fan out to several sinks in order."""

    def __init__(self, sinks: Sequence[DiagnosticsSink]):
        self.sinks = list(sinks)

    def emit(self, severity: Severity, message: str) -> None:
        for s in self.sinks:
            s.emit(severity, message)
