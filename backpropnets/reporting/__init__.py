"""Reporting utilities for BackpropNets."""

from .artifacts import write_manifest
from .metrics import CsvSink, JsonlSink, MemorySink

__all__ = ["write_manifest", "CsvSink", "JsonlSink", "MemorySink"]
