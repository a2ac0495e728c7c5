"""Core module - models, interfaces, errors and the dispatch engine."""
