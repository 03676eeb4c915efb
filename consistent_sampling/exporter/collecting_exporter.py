"""Exporter collecting finished spans as records for offline estimation."""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Dict, List, Sequence

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from consistent_sampling.tracer.span_record import SpanRecord


class CollectingSpanExporter(SpanExporter):
    """Keeps every exported span in memory as a ``SpanRecord``."""

    def __init__(self) -> None:
        self._spans: List[SpanRecord] = []
        self._lock = threading.Lock()
        self._shutdown = False

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        if self._shutdown:
            return SpanExportResult.FAILURE
        records = [SpanRecord.from_readable_span(span) for span in spans]
        with self._lock:
            self._spans.extend(records)
        return SpanExportResult.SUCCESS

    def get_spans(self) -> List[SpanRecord]:
        with self._lock:
            return list(self._spans)

    def get_traces(self) -> Dict[str, List[SpanRecord]]:
        """Collected spans grouped by trace id."""
        traces: Dict[str, List[SpanRecord]] = defaultdict(list)
        for span in self.get_spans():
            traces[span.trace_id].append(span)
        return dict(traces)

    def clear(self) -> None:
        with self._lock:
            self._spans.clear()

    def shutdown(self) -> None:
        self._shutdown = True

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True
