"""Exporters delivering sampled spans to the estimation stage."""

from consistent_sampling.exporter.collecting_exporter import CollectingSpanExporter

__all__ = ["CollectingSpanExporter"]
