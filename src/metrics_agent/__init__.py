"""Metrics Agent - pluggable collection of metrics from text HTTP endpoints."""

__version__ = "0.1.0"
