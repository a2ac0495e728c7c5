"""Plugins: watch automation, behavior, browsers, evasion and output sinks."""
