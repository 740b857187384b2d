"""Logging setup, request counting and domain event dispatch."""
