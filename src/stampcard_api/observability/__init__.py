"""Observability helpers: counters, tracing."""
