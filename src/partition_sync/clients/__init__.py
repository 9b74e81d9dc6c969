"""Kubernetes and Consul API clients."""
