"""Catalog convergence and access token post-condition checks."""
