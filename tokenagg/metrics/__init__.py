"""Prometheus metrics for source and aggregate calls."""
