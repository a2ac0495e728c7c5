"""Outcome sinks."""

from viewpilot.plugins.output.jsonl_writer import JsonLinesWriter

__all__ = ["JsonLinesWriter"]
