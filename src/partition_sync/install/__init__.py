"""Helm installation and workload deployment adapters."""
